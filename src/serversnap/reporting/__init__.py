"""
Report rendering.

Renderers turn the frozen ReportModel into files in the report directory:
``summary.txt`` (plain text) and ``report.html`` (Jinja2 template with Plotly
charts).
"""

from .base import NO_DATA_LABEL, NO_SAMPLES_MESSAGE, ProbeOutcome, ReportRenderer, key_counters, section_views
from .charts import build_figures, figures_to_html
from .factory import create_renderer
from .html import HtmlRenderer
from .summary import SummaryRenderer

__all__ = [
    "NO_DATA_LABEL",
    "NO_SAMPLES_MESSAGE",
    "ProbeOutcome",
    "ReportRenderer",
    "SummaryRenderer",
    "HtmlRenderer",
    "build_figures",
    "create_renderer",
    "figures_to_html",
    "key_counters",
    "section_views",
]
