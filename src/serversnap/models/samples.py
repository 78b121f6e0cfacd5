"""
Time-series sample models produced by sampled collectors.
"""

from dataclasses import dataclass
from typing import Tuple


@dataclass(frozen=True)
class Sample:
    """One point of a metric's time series."""

    # Epoch seconds of the tick that produced the value.
    timestamp: float
    metric: str
    value: float


@dataclass(frozen=True)
class SampleBatch:
    """All samples a collector produced during one tick."""

    collector: str
    tick: int
    timestamp: float
    samples: Tuple[Sample, ...]

    def metrics(self) -> Tuple[str, ...]:
        return tuple(sample.metric for sample in self.samples)
