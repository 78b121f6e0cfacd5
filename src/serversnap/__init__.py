"""
serversnap: diagnostic snapshot of a Linux server.

Runs a catalog of diagnostic commands once, samples performance and network
metrics over a time window, and renders everything into a plain-text summary
and a self-contained HTML report.

The package is organized into specialized modules:
- config: Configuration management and validation
- models: Data structures and type definitions
- validation: Input validation, exception taxonomy and error handling
- system: Command execution, service detection and host facts
- probes: The section registry and the default probe catalog
- collectors: Time-sampled metric collectors
- storage: The report aggregator and time-series persistence
- reporting: Summary and HTML renderers
- orchestration: Drives one run end to end
- cli: Command-line interface

Usage:
    From command line:
        serversnap -d 600 -o /tmp/report

    Programmatically:
        from serversnap import Orchestrator, build_run_config, get_config
        run_config = build_run_config(get_config(), {"duration": 60})
        outcome = Orchestrator(run_config).run_sync()
"""

# Main interfaces
from .config import build_run_config, clear_config_cache, get_config, set_config_path
from .orchestration import Orchestrator
from .cli import main_cli

# Model classes for external use
from .models import (
    AppConfig,
    CommandSpec,
    Probe,
    ProbeResult,
    ProbeStatus,
    ReportModel,
    RunConfig,
    RunOutcome,
)

from .probes import SectionRegistry
from .system import CommandRunner
from .collectors import SampledCollector
from .storage import ReportAggregator
from .reporting import HtmlRenderer, SummaryRenderer, create_renderer

# Validation utilities
from .validation import (
    CollectorStartError,
    DirectoryCreationError,
    RenderError,
    SnapshotError,
    ValidationError,
)

__version__ = "1.0.0"

__all__ = [
    # Main interfaces
    "get_config",
    "clear_config_cache",
    "set_config_path",
    "build_run_config",
    "Orchestrator",
    "main_cli",
    # Models
    "AppConfig",
    "CommandSpec",
    "Probe",
    "ProbeResult",
    "ProbeStatus",
    "ReportModel",
    "RunConfig",
    "RunOutcome",
    # Components
    "SectionRegistry",
    "CommandRunner",
    "SampledCollector",
    "ReportAggregator",
    "SummaryRenderer",
    "HtmlRenderer",
    "create_renderer",
    # Errors
    "SnapshotError",
    "ValidationError",
    "DirectoryCreationError",
    "CollectorStartError",
    "RenderError",
]
