"""
Report data models.

This module defines the frozen aggregate handed to renderers together with the
host facts and service states that feed the summary digest.
"""

from dataclasses import dataclass, field
from pathlib import Path
from types import MappingProxyType
from typing import Dict, List, Mapping, Optional, Tuple

from .probe import ProbeResult
from .samples import Sample


@dataclass(frozen=True)
class ServiceStatus:
    """Result of a service detector."""

    name: str
    running: bool
    pids: Tuple[int, ...] = ()
    # What the detector checked, e.g. "process pattern 'tomcat'".
    detail: str = ""

    @property
    def label(self) -> str:
        return "RUNNING" if self.running else "NOT RUNNING"


@dataclass(frozen=True)
class ProcessInfo:
    pid: int
    user: str
    cpu_percent: float
    memory_percent: float
    command: str


@dataclass(frozen=True)
class DiskUsage:
    device: str
    mountpoint: str
    fstype: str
    total_bytes: int
    used_bytes: int
    percent: float


@dataclass(frozen=True)
class ListeningPort:
    protocol: str
    address: str
    port: int
    pid: Optional[int] = None


@dataclass(frozen=True)
class HostFacts:
    """
    Point-in-time host digest gathered once per run.

    Every field has an empty default so a partially collected digest (for
    example on a platform where connection listing is denied) still renders.
    """

    hostname: str = ""
    os_name: str = ""
    kernel: str = ""
    architecture: str = ""
    boot_time: Optional[float] = None
    cpu_model: str = ""
    cpu_cores: int = 0
    memory_total_bytes: int = 0
    memory_used_percent: float = 0.0
    load_average: Tuple[float, float, float] = (0.0, 0.0, 0.0)
    cpu_percent: float = 0.0
    top_cpu: Tuple[ProcessInfo, ...] = ()
    top_memory: Tuple[ProcessInfo, ...] = ()
    disks: Tuple[DiskUsage, ...] = ()
    listening_ports: Tuple[ListeningPort, ...] = ()
    # Digest fields that could not be collected and why.
    errors: Tuple[str, ...] = ()


@dataclass(frozen=True)
class ReportModel:
    """
    The read-only aggregate of one run.

    ``sections`` maps section name to probe results in execution order,
    ``series`` maps metric name to its time-ordered samples and ``declared``
    lists every registered (section, probe name) pair so renderers can emit a
    placeholder for probes that never produced a result.
    """

    sections: Mapping[str, Tuple[ProbeResult, ...]]
    series: Mapping[str, Tuple[Sample, ...]]
    declared: Tuple[Tuple[str, str], ...] = ()
    # Probe name -> short description, for declared probes that have one.
    descriptions: Mapping[str, str] = field(default_factory=lambda: MappingProxyType({}))
    # Probes whose first output line is shown as a key counter.
    highlights: Tuple[str, ...] = ()
    services: Mapping[str, ServiceStatus] = field(default_factory=lambda: MappingProxyType({}))
    facts: HostFacts = field(default_factory=HostFacts)
    started_at: float = 0.0
    finished_at: float = 0.0
    duration: float = 0.0
    cancelled: bool = False
    output_directory: Optional[Path] = None

    def results(self) -> List[ProbeResult]:
        """Every probe result, section by section."""
        return [result for results in self.sections.values() for result in results]

    def result_for(self, probe_name: str) -> Optional[ProbeResult]:
        for result in self.results():
            if result.probe_name == probe_name:
                return result
        return None

    def declared_sections(self) -> Dict[str, List[str]]:
        """Declared probe names grouped by section, order preserved."""
        grouped: Dict[str, List[str]] = {}
        for section, probe_name in self.declared:
            grouped.setdefault(section, []).append(probe_name)
        for section, results in self.sections.items():
            names = grouped.setdefault(section, [])
            for result in results:
                if result.probe_name not in names:
                    names.append(result.probe_name)
        return grouped

    @property
    def has_samples(self) -> bool:
        return any(self.series.values())
