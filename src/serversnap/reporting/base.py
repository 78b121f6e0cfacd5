"""
Shared structures for report renderers.

Both renderers walk the same view of a ReportModel: every declared probe,
section by section, with a deterministic outcome even when the probe never
produced a result.
"""

import logging
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Tuple

from ..models.probe import ProbeResult
from ..models.report import ReportModel, ServiceStatus
from ..probes.registry import section_title

logger = logging.getLogger(__name__)

NO_DATA_LABEL = "NO DATA"
NO_SAMPLES_MESSAGE = "No sampled data collected"


@dataclass(frozen=True)
class ProbeOutcome:
    """One declared probe as the reports show it."""

    probe_name: str
    result: Optional[ProbeResult]

    @property
    def label(self) -> str:
        return self.result.status.label if self.result else NO_DATA_LABEL

    @property
    def summary_line(self) -> str:
        """First output line, or the reason there is none."""
        if self.result is None:
            return "no result recorded"
        line = self.result.first_line
        detail = self.result.detail
        if detail and (not line or not self.result.succeeded):
            return f"{detail}: {line}" if line and line != detail else detail
        return line or "(no output)"


@dataclass(frozen=True)
class SectionView:
    key: str
    title: str
    outcomes: Tuple[ProbeOutcome, ...]


def section_views(model: ReportModel) -> List[SectionView]:
    """Every declared probe with its outcome, section by section."""
    views = []
    for section, names in model.declared_sections().items():
        outcomes = tuple(ProbeOutcome(name, model.result_for(name)) for name in names)
        views.append(SectionView(key=section, title=section_title(section), outcomes=outcomes))
    return views


def key_counters(model: ReportModel, service: ServiceStatus) -> List[Tuple[str, str]]:
    """
    Highlighted probe values shown under a service.

    A highlighted probe belongs to the service whose name is its section key.
    Returns (label, value) pairs; failed or skipped probes show their status.
    """
    counters = []
    for result in model.sections.get(service.name, ()):
        if result.probe_name not in model.highlights:
            continue
        probe_label = model.descriptions.get(result.probe_name, result.probe_name)
        value = result.first_line if result.succeeded and result.first_line else result.status.label
        counters.append((probe_label, value))
    return counters


def format_bytes(num_bytes: float) -> str:
    for unit in ("B", "KiB", "MiB", "GiB", "TiB"):
        if abs(num_bytes) < 1024 or unit == "TiB":
            return f"{num_bytes:.1f} {unit}" if unit != "B" else f"{int(num_bytes)} B"
        num_bytes /= 1024
    return f"{num_bytes:.1f} TiB"


def format_uptime(boot_time: Optional[float], now: Optional[float] = None) -> str:
    if not boot_time:
        return "unknown"
    seconds = int((now or time.time()) - boot_time)
    days, seconds = divmod(seconds, 86400)
    hours, seconds = divmod(seconds, 3600)
    minutes = seconds // 60
    if days:
        return f"{days} days, {hours:02d}:{minutes:02d}"
    return f"{hours:02d}:{minutes:02d}"


def format_timestamp(timestamp: float) -> str:
    return time.strftime("%Y-%m-%d %H:%M:%S", time.localtime(timestamp))


class ReportRenderer(ABC):
    """
    Abstract base class for report renderers.

    A renderer turns a frozen ReportModel into one file inside the report
    directory and returns its path.
    """

    format_name: str = ""
    file_name: str = ""

    @abstractmethod
    def render_text(self, model: ReportModel) -> str:
        """The full document as a string."""

    def render(self, model: ReportModel, output_dir: Path) -> Path:
        """
        Render the model and write it into ``output_dir``.

        Returns:
            Path of the written file
        """
        path = Path(output_dir) / self.file_name
        path.write_text(self.render_text(model), encoding="utf-8")
        logger.info(f"{self.format_name} report written to {path}")
        return path
