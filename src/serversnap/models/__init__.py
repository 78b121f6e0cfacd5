"""
Data models and structures for the snapshot engine.

Probe Models:
- Typed command descriptors and probe definitions
- Probe statuses and immutable probe results

Sample Models:
- Time-series samples and per-tick batches

Report Models:
- Service states, host facts and the frozen report aggregate

Configuration and Runtime Models:
- Loaded configuration, the immutable run configuration, output paths and the
  run outcome
"""

from .config import (
    AppConfig,
    CollectorConfig,
    ReportConfig,
    RunConfig,
    RunSettings,
    ServiceConfig,
    ServiceDetector,
)
from .probe import CommandSpec, Probe, ProbeResult, ProbeStatus
from .report import (
    DiskUsage,
    HostFacts,
    ListeningPort,
    ProcessInfo,
    ReportModel,
    ServiceStatus,
)
from .runtime import RunOutcome, RunPaths
from .samples import Sample, SampleBatch

__all__ = [
    # Configuration
    "AppConfig",
    "CollectorConfig",
    "ReportConfig",
    "RunConfig",
    "RunSettings",
    "ServiceConfig",
    "ServiceDetector",
    # Probes
    "CommandSpec",
    "Probe",
    "ProbeResult",
    "ProbeStatus",
    # Samples
    "Sample",
    "SampleBatch",
    # Report
    "DiskUsage",
    "HostFacts",
    "ListeningPort",
    "ProcessInfo",
    "ReportModel",
    "ServiceStatus",
    # Runtime
    "RunOutcome",
    "RunPaths",
]
