"""
Runtime data models.

This module contains the data structures used while a run is in progress and
the outcome handed back to the caller.
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Optional

from .report import ReportModel

SUMMARY_FILE_NAME = "summary.txt"
HTML_FILE_NAME = "report.html"
RUN_LOG_FILE_NAME = "run.log"
TIMESERIES_DIR_NAME = "timeseries"


@dataclass
class RunPaths:
    """
    A container for all generated file paths of a single run.
    """

    # The timestamped report directory.
    output_dir: Path
    # Human-readable digest.
    summary_file: Path
    # Self-contained HTML report.
    html_file: Path
    # Engine log for this run.
    run_log_file: Path
    # One file per sampled metric.
    timeseries_dir: Path

    @classmethod
    def for_directory(cls, output_dir: Path) -> "RunPaths":
        output_dir = Path(output_dir)
        return cls(
            output_dir=output_dir,
            summary_file=output_dir / SUMMARY_FILE_NAME,
            html_file=output_dir / HTML_FILE_NAME,
            run_log_file=output_dir / RUN_LOG_FILE_NAME,
            timeseries_dir=output_dir / TIMESERIES_DIR_NAME,
        )

    def probe_sink(self, sink_name: str) -> Path:
        return self.output_dir / f"{sink_name}.txt"


@dataclass
class RunOutcome:
    """What a finished (or cancelled) run produced."""

    output_directory: Path
    # Format name -> rendered file.
    report_paths: Dict[str, Path] = field(default_factory=dict)
    # Format name -> error message for formats that failed to render.
    render_errors: Dict[str, str] = field(default_factory=dict)
    model: Optional[ReportModel] = None
    cancelled: bool = False
