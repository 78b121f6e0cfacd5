"""
Configuration data models.

This module contains the configuration structures loaded from `config.toml`
and the immutable per-run configuration derived from them.
"""

from dataclasses import dataclass, field
from pathlib import Path
from types import MappingProxyType
from typing import Callable, Dict, List, Mapping, Optional, Tuple

from .report import ServiceStatus

# Filesystem types never listed in the disk usage digest.
DEFAULT_PSEUDO_FILESYSTEMS = [
    "tmpfs", "devtmpfs", "proc", "sysfs", "overlay", "squashfs", "cgroup", "cgroup2",
    "devpts", "mqueue", "debugfs", "tracefs", "securityfs", "pstore", "autofs",
    "configfs", "fusectl", "hugetlbfs", "bpf", "nsfs", "ramfs", "binfmt_misc",
]


@dataclass
class RunSettings:
    """
    Run defaults, loaded from the `[run]` table.
    """

    # Total seconds of sampled collection.
    duration: float
    # Directory under which the timestamped report directory is created.
    output_root: Path
    # Default per-probe timeout in seconds.
    probe_timeout: float
    # Section keys to include; None means every section.
    sections: Optional[List[str]] = None


@dataclass
class CollectorConfig:
    """
    Configuration for one sampled collector, loaded from `[collectors.<name>]`.
    """

    name: str
    # Seconds between two ticks.
    interval: float
    # Built-in metric sources: "load", "memory", "network".
    metrics: List[str] = field(default_factory=list)
    # Command-valued metrics: metric name -> shell command printing a number.
    commands: Dict[str, str] = field(default_factory=dict)
    enabled: bool = True


@dataclass
class ServiceConfig:
    """
    How to detect one service, loaded from `[services.<name>]`.
    """

    name: str
    # "process" (command line regex) or "systemd" (unit is-active check).
    detector: str
    # Regex matched against process command lines for "process" detectors.
    pattern: str = ""
    # Unit names (globs allowed) for "systemd" detectors.
    units: List[str] = field(default_factory=list)
    # Extra template variables exposed to probe commands, e.g. tomcat_home.
    variables: Dict[str, str] = field(default_factory=dict)


@dataclass
class ReportConfig:
    """
    Rendering options, loaded from `[report]`.
    """

    formats: List[str] = field(default_factory=lambda: ["summary", "html"])
    top_n: int = 5
    ports_limit: int = 10
    # "csv" or "parquet".
    timeseries_format: str = "csv"
    # "inline" embeds plotly.js in the HTML file, "cdn" links it.
    plotlyjs: str = "inline"
    pseudo_filesystems: List[str] = field(default_factory=lambda: list(DEFAULT_PSEUDO_FILESYSTEMS))


@dataclass
class AppConfig:
    """
    The root configuration object that aggregates all loaded settings.
    """

    run: RunSettings
    collectors: List[CollectorConfig]
    services: List[ServiceConfig]
    report: ReportConfig
    # Probe catalog file (probes.toml).
    probes_path: Path


ServiceDetector = Callable[[], ServiceStatus]


@dataclass(frozen=True)
class RunConfig:
    """
    Everything one run needs, fixed at startup.

    Built by :func:`serversnap.config.build_run_config` from the loaded
    :class:`AppConfig` and command-line overrides; never mutated afterwards.
    """

    duration: float
    output_directory: Path
    # Overrides every collector's interval when set.
    sample_interval: Optional[float] = None
    service_detectors: Mapping[str, ServiceDetector] = field(
        default_factory=lambda: MappingProxyType({})
    )
    probe_timeout: float = 60.0
    collectors: Tuple[CollectorConfig, ...] = ()
    sections: Optional[Tuple[str, ...]] = None
    formats: Tuple[str, ...] = ("summary", "html")
    report: ReportConfig = field(default_factory=ReportConfig)
    variables: Mapping[str, str] = field(default_factory=lambda: MappingProxyType({}))
    probes_path: Optional[Path] = None

    def interval_for(self, collector: CollectorConfig) -> float:
        if self.sample_interval is not None:
            return self.sample_interval
        return collector.interval

    def includes_section(self, section_key: str) -> bool:
        return self.sections is None or section_key in self.sections
