"""
HTML report renderer.

Renders ``report.html`` from a Jinja2 template with autoescaping enabled, so
probe output is always escaped. Only the Plotly chart fragments are marked
safe.
"""

import logging
from typing import Any, Dict, List, Optional

from jinja2 import Environment, PackageLoader, select_autoescape

from ..models.config import ReportConfig
from ..models.report import ReportModel
from .base import (
    NO_SAMPLES_MESSAGE,
    ProbeOutcome,
    ReportRenderer,
    format_timestamp,
    key_counters,
    section_views,
)
from .charts import build_figures, figures_to_html
from .summary import SummaryRenderer

logger = logging.getLogger(__name__)

TEMPLATE_NAME = "report.html.j2"


def _create_environment() -> Environment:
    return Environment(
        loader=PackageLoader("serversnap.reporting", "templates"),
        autoescape=select_autoescape(enabled_extensions=("html", "j2"), default=True),
        trim_blocks=True,
        lstrip_blocks=True,
    )


def _outcome_context(outcome: ProbeOutcome, model: ReportModel) -> Dict[str, Any]:
    result = outcome.result
    output = result.text if result is not None else ""
    if result is None:
        placeholder = "No result recorded for this probe"
    elif not output.strip():
        placeholder = f"{result.status.label}: {result.detail}" if result.detail else "(no output)"
    else:
        placeholder = ""
    return {
        "name": outcome.probe_name,
        "label": outcome.label,
        "css": outcome.label.lower().replace(" ", "-"),
        "description": model.descriptions.get(outcome.probe_name, ""),
        "output": output if output.strip() else "",
        "placeholder": placeholder,
    }


class HtmlRenderer(ReportRenderer):
    """Renders the report model as a single self-contained ``report.html``."""

    format_name = "html"
    file_name = "report.html"

    def __init__(self, report_config: Optional[ReportConfig] = None):
        self.report_config = report_config or ReportConfig()
        self.environment = _create_environment()

    def build_context(self, model: ReportModel) -> Dict[str, Any]:
        summary = SummaryRenderer(self.report_config)
        services: List[Dict[str, Any]] = []
        for service in model.services.values():
            services.append({
                "name": service.name,
                "label": service.label,
                "pids": ", ".join(str(pid) for pid in service.pids) or "-",
                "counters": key_counters(model, service),
            })

        sections = []
        for view in section_views(model):
            sections.append({
                "key": view.key,
                "title": view.title,
                "outcomes": [_outcome_context(outcome, model) for outcome in view.outcomes],
            })

        charts = figures_to_html(build_figures(model), self.report_config.plotlyjs)
        return {
            "hostname": model.facts.hostname or "unknown host",
            "generated": format_timestamp(model.finished_at),
            "duration": f"{model.duration:.0f}s",
            "cancelled": model.cancelled,
            "digest": "\n".join(summary.digest_lines(model)),
            "services": services,
            "charts": charts,
            "no_samples_message": NO_SAMPLES_MESSAGE,
            "sections": sections,
            "output_directory": str(model.output_directory) if model.output_directory else "",
        }

    def render_text(self, model: ReportModel) -> str:
        template = self.environment.get_template(TEMPLATE_NAME)
        return template.render(**self.build_context(model))
