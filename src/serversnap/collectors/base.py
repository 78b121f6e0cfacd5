"""
Defines the abstract interface for metric sources.

A metric source is asked for values once per collector tick. Sources own
whatever state they need between ticks (for example previous counter values
for rates) and share nothing with other sources.
"""

import asyncio
import logging
from abc import ABC, abstractmethod
from typing import List

from ..models.samples import Sample

logger = logging.getLogger(__name__)


class MetricSource(ABC):
    """
    Abstract base class for metric sources.

    Subclasses implement :meth:`sample`. :meth:`prepare` runs once before the
    first tick and raises if the source cannot work on this host, so the
    collector can drop it before sampling begins.
    """

    name: str = "source"

    def prepare(self) -> None:
        """Check that the source can produce values. Raises on failure."""

    @abstractmethod
    async def sample(self, timestamp: float) -> List[Sample]:
        """
        Produce this tick's samples.

        Args:
            timestamp: Epoch seconds of the tick, used for every sample

        Returns:
            Zero or more samples
        """


class BlockingMetricSource(MetricSource):
    """
    A source whose readings are blocking calls (psutil, /proc reads).

    The reading runs in the default executor so the event loop keeps serving
    probes and other collectors.
    """

    @abstractmethod
    def read(self, timestamp: float) -> List[Sample]:
        """Synchronous reading, executed off the event loop."""

    async def sample(self, timestamp: float) -> List[Sample]:
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, self.read, timestamp)
