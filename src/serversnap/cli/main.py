"""
Command-line interface for the serversnap diagnostic snapshot tool.

This module parses the command line, loads and validates the configuration,
runs one diagnostic snapshot and prints where the report went together with
the plain-text summary.
"""

import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional

from ..config import SECTION_KEYS, build_run_config, get_config, set_config_path
from ..models.runtime import RunOutcome
from ..probes import load_catalog, section_title
from ..orchestration import Orchestrator, SignalHandler
from ..system import build_service_detectors
from ..validation import (
    CollectorStartError,
    DirectoryCreationError,
    RenderError,
    ValidationError,
    handle_cli_error,
)

# --- Logging Setup ---
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)-5.5s] %(name)s:%(filename)s:%(lineno)d\t %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
    stream=sys.stdout,
)
logger = logging.getLogger(__name__)

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR")

# Exit codes
EXIT_RUN_FAILED = 1
EXIT_USAGE = 2


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="serversnap",
        description=(
            "Collect a diagnostic snapshot of this server: run the probe catalog, "
            "sample performance and network metrics, and write a text summary "
            "and an HTML report."
        ),
    )
    parser.add_argument(
        "-d", "--duration", type=float,
        help="Monitoring duration in seconds (config default: 3600).",
    )
    parser.add_argument(
        "-i", "--interval", type=float,
        help="Sampling interval in seconds for every collector; must not exceed the duration.",
    )
    parser.add_argument(
        "-p", "--perf-interval", type=float,
        help="Sampling interval of the performance collector (config default: 60).",
    )
    parser.add_argument(
        "-n", "--net-interval", type=float,
        help="Sampling interval of the network collector (config default: 5).",
    )
    parser.add_argument(
        "-o", "--output-dir", type=Path,
        help="Report directory (default: <output_root>/server_report_<timestamp>).",
    )
    parser.add_argument(
        "-s", "--sections", type=str,
        help=f"Comma-separated sections to run. Available: {','.join(SECTION_KEYS)}",
    )
    parser.add_argument(
        "--formats", type=str,
        help="Comma-separated report formats (summary, html).",
    )
    parser.add_argument(
        "--timeout", type=float,
        help="Per-probe timeout in seconds (config default: 60).",
    )
    parser.add_argument(
        "-c", "--config", type=Path,
        help="Path to an alternative config.toml.",
    )
    parser.add_argument(
        "--log-level", type=str.upper, choices=LOG_LEVELS, default="INFO",
        help="Console log level (default: INFO).",
    )
    parser.add_argument(
        "--list-sections", action="store_true",
        help="List the available sections and exit.",
    )
    return parser


def list_sections() -> None:
    for key in SECTION_KEYS:
        print(f"{key:<12} {section_title(key)}")


def print_banner(outcome: RunOutcome) -> None:
    """Print the report locations followed by the summary text."""
    rule = "=" * 72
    print(rule)
    if outcome.cancelled:
        print("Run cancelled: partial report written.")
    else:
        print("Diagnostic snapshot complete.")
    print(f"Report directory: {outcome.output_directory}")
    for format_name, path in outcome.report_paths.items():
        print(f"  {format_name:<8} {path}")
    for format_name, error in outcome.render_errors.items():
        print(f"  {format_name:<8} FAILED: {error}")
    print(rule)

    summary_path = outcome.report_paths.get("summary")
    if summary_path and summary_path.exists():
        print(summary_path.read_text(encoding="utf-8"))


def main_cli(argv: Optional[List[str]] = None) -> None:
    """
    Main command-line interface for serversnap.

    Exit codes: 0 when the run completed (probe failures and cancelled runs
    included), 1 when the run itself failed, 2 for usage and configuration
    errors.

    Raises:
        SystemExit: On invalid arguments, configuration errors or run failures.
    """
    parser = build_parser()
    args = parser.parse_args(argv)
    root_logger = logging.getLogger()
    root_logger.setLevel(args.log_level)
    # the run log raises the package logger to DEBUG; the console keeps its level
    for handler in root_logger.handlers:
        handler.setLevel(args.log_level)

    if args.list_sections:
        list_sections()
        return

    if args.config:
        set_config_path(args.config)

    # Load application configuration and the probe catalog
    try:
        app_config = get_config()
        definitions = load_catalog(app_config.probes_path)
    except (FileNotFoundError, KeyError, ValueError, ValidationError) as e:
        handle_cli_error(
            error=e,
            context="configuration loading",
            exit_code=EXIT_USAGE,
            logger=logger,
        )

    overrides = {
        "duration": args.duration,
        "interval": args.interval,
        "perf_interval": args.perf_interval,
        "net_interval": args.net_interval,
        "output_dir": args.output_dir,
        "sections": args.sections,
        "formats": args.formats,
        "timeout": args.timeout,
    }
    try:
        service_detectors = build_service_detectors(app_config.services)
        run_config = build_run_config(app_config, overrides, service_detectors)
    except (ValidationError, ValueError) as e:
        handle_cli_error(
            error=e,
            context="argument validation",
            exit_code=EXIT_USAGE,
            logger=logger,
        )

    orchestrator = Orchestrator(run_config, definitions=definitions)
    try:
        with SignalHandler(orchestrator.request_shutdown):
            outcome = orchestrator.run_sync()
    except (DirectoryCreationError, CollectorStartError, RenderError) as e:
        handle_cli_error(
            error=e,
            context="diagnostic run",
            exit_code=EXIT_RUN_FAILED,
            logger=logger,
        )
    except ValidationError as e:
        handle_cli_error(
            error=e,
            context="probe catalog",
            exit_code=EXIT_USAGE,
            logger=logger,
        )

    print_banner(outcome)


if __name__ == "__main__":
    main_cli()
