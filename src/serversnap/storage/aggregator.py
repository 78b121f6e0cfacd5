"""
The in-memory aggregate every probe and collector writes to.

Single-shot probes and concurrently running collectors share one
ReportAggregator. Appends are guarded by a lock; once :meth:`snapshot` has
produced the frozen :class:`ReportModel`, further writes are refused.
"""

import logging
import threading
import time
from pathlib import Path
from types import MappingProxyType
from typing import Dict, List, Mapping, Optional, Set, Tuple

from ..models.probe import ProbeResult
from ..models.report import HostFacts, ReportModel, ServiceStatus
from ..models.samples import Sample, SampleBatch

logger = logging.getLogger(__name__)


class ReportAggregator:
    """
    Collects probe results, samples, service states and host facts.

    Invariants kept here:
      - at most one result per probe name
      - each metric's samples are strictly increasing in time; they are never
        reordered or deduplicated
      - nothing changes after the snapshot
    """

    def __init__(self, started_at: Optional[float] = None):
        self.started_at = started_at if started_at is not None else time.time()
        self._lock = threading.Lock()
        self._frozen = False
        self._declared: List[Tuple[str, str]] = []
        self._declared_names: Set[str] = set()
        self._descriptions: Dict[str, str] = {}
        self._highlights: List[str] = []
        self._sections: Dict[str, List[ProbeResult]] = {}
        self._recorded_names: Set[str] = set()
        self._series: Dict[str, List[Sample]] = {}
        self._services: Dict[str, ServiceStatus] = {}
        self._facts = HostFacts()

    def _ensure_open(self) -> None:
        if self._frozen:
            raise RuntimeError("Report aggregator is frozen; no further writes are accepted")

    def declare(self, section: str, probe_name: str, description: str = "", highlight: bool = False) -> None:
        """Announce a probe so a missing result is visible in the reports."""
        with self._lock:
            self._ensure_open()
            if probe_name in self._declared_names:
                raise ValueError(f"Probe '{probe_name}' is already declared")
            self._declared.append((section, probe_name))
            self._declared_names.add(probe_name)
            if description:
                self._descriptions[probe_name] = description
            if highlight:
                self._highlights.append(probe_name)
            self._sections.setdefault(section, [])

    def record(self, result: ProbeResult) -> None:
        """
        Store one probe result.

        Raises:
            ValueError: If the probe already has a result
            RuntimeError: If the aggregator is frozen
        """
        with self._lock:
            self._ensure_open()
            if result.probe_name in self._recorded_names:
                raise ValueError(f"Probe '{result.probe_name}' already has a result")
            self._recorded_names.add(result.probe_name)
            self._sections.setdefault(result.section, []).append(result)

    def record_sample(self, sample: Sample) -> None:
        """
        Append one sample to its metric's series.

        Raises:
            ValueError: If the sample is not newer than the metric's last one
            RuntimeError: If the aggregator is frozen
        """
        with self._lock:
            self._ensure_open()
            self._append_sample(sample)

    def record_batch(self, batch: SampleBatch) -> None:
        """
        Append every sample of a collector tick; the batch is kept whole or not at all.

        Raises:
            ValueError: If any sample is not newer than its metric's last one
            RuntimeError: If the aggregator is frozen
        """
        with self._lock:
            self._ensure_open()
            latest: Dict[str, float] = {}
            for sample in batch.samples:
                self._check_order(sample)
                if sample.timestamp <= latest.get(sample.metric, float("-inf")):
                    raise ValueError(
                        f"Batch holds more than one sample for '{sample.metric}' at {sample.timestamp}"
                    )
                latest[sample.metric] = sample.timestamp
            for sample in batch.samples:
                self._series.setdefault(sample.metric, []).append(sample)

    def _append_sample(self, sample: Sample) -> None:
        self._check_order(sample)
        self._series.setdefault(sample.metric, []).append(sample)

    def _check_order(self, sample: Sample) -> None:
        series = self._series.get(sample.metric)
        if series and sample.timestamp <= series[-1].timestamp:
            raise ValueError(
                f"Sample for '{sample.metric}' at {sample.timestamp} is not newer than "
                f"the last one at {series[-1].timestamp}"
            )

    def set_services(self, services: Mapping[str, ServiceStatus]) -> None:
        with self._lock:
            self._ensure_open()
            self._services = dict(services)

    def set_facts(self, facts: HostFacts) -> None:
        with self._lock:
            self._ensure_open()
            self._facts = facts

    def missing_results(self) -> List[Tuple[str, str]]:
        """Declared (section, probe name) pairs that have no result yet."""
        with self._lock:
            return [(s, name) for s, name in self._declared if name not in self._recorded_names]

    @property
    def frozen(self) -> bool:
        return self._frozen

    def snapshot(
        self,
        finished_at: Optional[float] = None,
        duration: float = 0.0,
        cancelled: bool = False,
        output_directory: Optional[Path] = None,
    ) -> ReportModel:
        """
        Freeze the aggregator and return the read-only report model.

        Calling it again returns an equivalent model.
        """
        with self._lock:
            self._frozen = True
            sections = MappingProxyType({
                section: tuple(results) for section, results in self._sections.items()
            })
            series = MappingProxyType({
                metric: tuple(samples) for metric, samples in self._series.items()
            })
            model = ReportModel(
                sections=sections,
                series=series,
                declared=tuple(self._declared),
                descriptions=MappingProxyType(dict(self._descriptions)),
                highlights=tuple(self._highlights),
                services=MappingProxyType(dict(self._services)),
                facts=self._facts,
                started_at=self.started_at,
                finished_at=finished_at if finished_at is not None else time.time(),
                duration=duration,
                cancelled=cancelled,
                output_directory=output_directory,
            )

        sample_count = sum(len(samples) for samples in series.values())
        logger.info(
            f"Report snapshot: {len(self._recorded_names)} probe results, "
            f"{len(series)} metrics, {sample_count} samples"
        )
        return model
