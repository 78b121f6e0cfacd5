"""
Plain-text summary renderer.

Writes ``summary.txt``: a host digest followed by the outcome of every
declared probe, section by section.
"""

import logging
from typing import List, Optional

from ..models.config import ReportConfig
from ..models.report import ReportModel
from ..storage.timeseries import metric_statistics
from .base import (
    NO_SAMPLES_MESSAGE,
    ReportRenderer,
    format_bytes,
    format_timestamp,
    format_uptime,
    key_counters,
    section_views,
)

logger = logging.getLogger(__name__)

RULE = "=" * 72
THIN_RULE = "-" * 72


def _heading(title: str) -> List[str]:
    return ["", f"--- {title} ---"]


class SummaryRenderer(ReportRenderer):
    """Renders the report model as ``summary.txt``."""

    format_name = "summary"
    file_name = "summary.txt"

    def __init__(self, report_config: Optional[ReportConfig] = None):
        self.report_config = report_config or ReportConfig()

    def render_text(self, model: ReportModel) -> str:
        lines = self.digest_lines(model)
        lines.extend(self.probe_lines(model))
        lines.extend(["", RULE])
        if model.output_directory is not None:
            lines.append(f"Report directory: {model.output_directory}")
        if model.cancelled:
            lines.append("Run was cancelled before completion; this report is partial.")
        return "\n".join(lines) + "\n"

    def digest_lines(self, model: ReportModel) -> List[str]:
        """Header, host identity, services, processes, disks, ports and statistics."""
        facts = model.facts
        lines = [
            RULE,
            "Server Diagnostic Summary",
            RULE,
            f"Generated: {format_timestamp(model.finished_at)}",
            f"Monitoring duration: {model.duration:.0f}s",
        ]

        lines.extend(_heading("System"))
        lines.append(f"Hostname: {facts.hostname or 'unknown'}")
        lines.append(f"OS: {facts.os_name or 'unknown'}")
        lines.append(f"Kernel: {facts.kernel or 'unknown'} ({facts.architecture or 'unknown'})")
        lines.append(f"Uptime: {format_uptime(facts.boot_time, model.finished_at)}")

        lines.extend(_heading("Hardware"))
        lines.append(f"CPU: {facts.cpu_model or 'unknown'} ({facts.cpu_cores} cores)")
        lines.append(
            f"Memory: {format_bytes(facts.memory_total_bytes)} total, "
            f"{facts.memory_used_percent:.1f}% used"
        )

        lines.extend(_heading("Current Load"))
        one, five, fifteen = facts.load_average
        lines.append(f"Load average: {one:.2f}, {five:.2f}, {fifteen:.2f}")
        lines.append(f"CPU usage: {facts.cpu_percent:.1f}%")

        lines.extend(_heading("Services"))
        if not model.services:
            lines.append("No services configured")
        for service in model.services.values():
            pids = ", ".join(str(pid) for pid in service.pids) or "-"
            lines.append(f"{service.name}: {service.label} (PIDs: {pids})")
            for label, value in key_counters(model, service):
                lines.append(f"    {label}: {value}")

        top_n = self.report_config.top_n
        lines.extend(_heading(f"Top {top_n} Processes by CPU"))
        lines.extend(self._process_lines(facts.top_cpu[:top_n]))
        lines.extend(_heading(f"Top {top_n} Processes by Memory"))
        lines.extend(self._process_lines(facts.top_memory[:top_n]))

        lines.extend(_heading("Disk Usage"))
        if not facts.disks:
            lines.append("No disks found")
        for disk in facts.disks:
            lines.append(
                f"{disk.device:<20} {disk.mountpoint:<20} {disk.fstype:<8} "
                f"{format_bytes(disk.used_bytes)} / {format_bytes(disk.total_bytes)} "
                f"({disk.percent:.1f}%)"
            )

        ports_limit = self.report_config.ports_limit
        lines.extend(_heading(f"Listening Ports (first {ports_limit})"))
        if not facts.listening_ports:
            lines.append("No listening ports found")
        for port in facts.listening_ports[:ports_limit]:
            owner = f" pid {port.pid}" if port.pid else ""
            lines.append(f"{port.protocol:<5} {port.address}:{port.port}{owner}")

        lines.extend(_heading("Sampled Metrics"))
        lines.extend(self._statistics_lines(model))

        if facts.errors:
            lines.extend(_heading("Digest Errors"))
            lines.extend(facts.errors)
        return lines

    def probe_lines(self, model: ReportModel) -> List[str]:
        lines: List[str] = []
        for view in section_views(model):
            lines.extend(_heading(view.title))
            for outcome in view.outcomes:
                lines.append(f"[{outcome.label:<9}] {outcome.probe_name}: {outcome.summary_line}")
        return lines

    @staticmethod
    def _process_lines(processes) -> List[str]:
        if not processes:
            return ["No process data"]
        lines = [f"{'PID':>7} {'USER':<12} {'%CPU':>6} {'%MEM':>6}  COMMAND"]
        for proc in processes:
            lines.append(
                f"{proc.pid:>7} {proc.user[:12]:<12} {proc.cpu_percent:>6.1f} "
                f"{proc.memory_percent:>6.1f}  {proc.command[:80]}"
            )
        return lines

    @staticmethod
    def _statistics_lines(model: ReportModel) -> List[str]:
        if not model.has_samples:
            return [NO_SAMPLES_MESSAGE]
        stats = metric_statistics(model)
        lines = [f"{'METRIC':<36} {'COUNT':>6} {'MEAN':>12} {'PEAK':>12}"]
        for row in stats.iter_rows(named=True):
            lines.append(
                f"{row['metric']:<36} {row['count']:>6} {row['mean']:>12.2f} {row['peak']:>12.2f}"
            )
        return lines
