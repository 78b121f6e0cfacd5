"""
Periodic sampling of metric sources over a fixed duration.
"""

import asyncio
import logging
import math
import time
from typing import AsyncIterator, Callable, List, Optional, Sequence

from ..models.samples import Sample, SampleBatch
from ..validation import CollectorStartError
from .base import MetricSource

logger = logging.getLogger(__name__)


class SampledCollector:
    """
    Samples a set of metric sources every ``interval`` seconds for ``duration``.

    The collector produces ``floor(duration / interval)`` batches: tick 0 runs
    immediately and tick ``k`` at ``start + k * interval`` on the event loop's
    monotonic clock, so slow ticks do not accumulate drift. A collector runs
    once; calling :meth:`run` again raises ``RuntimeError``.
    """

    def __init__(
        self,
        name: str,
        sources: Sequence[MetricSource],
        interval: float,
        duration: float,
        wall_clock: Callable[[], float] = time.time,
    ):
        """
        Initialize the collector.

        Args:
            name: Collector name, recorded in every batch
            sources: Metric sources asked for values each tick
            interval: Seconds between ticks
            duration: Total sampling window in seconds
            wall_clock: Source of sample timestamps
        """
        if interval <= 0:
            raise ValueError(f"interval must be positive, got {interval}")
        if duration < 0:
            raise ValueError(f"duration must not be negative, got {duration}")
        self.name = name
        self.sources: List[MetricSource] = list(sources)
        self.interval = interval
        self.duration = duration
        self._wall_clock = wall_clock
        self._started = False
        self.batches_produced = 0

    @property
    def tick_count(self) -> int:
        # The epsilon absorbs float error, e.g. 0.3 / 0.1 == 2.9999999999999996.
        return int(math.floor(self.duration / self.interval + 1e-9))

    def prepare(self) -> None:
        """
        Drop sources that cannot work on this host.

        Raises:
            CollectorStartError: If no source is usable
        """
        usable = []
        for source in self.sources:
            try:
                source.prepare()
                usable.append(source)
            except Exception as e:
                logger.warning(f"Collector '{self.name}': source '{source.name}' unavailable: {e}")
        if not usable:
            raise CollectorStartError(f"Collector '{self.name}' has no usable metric source")
        self.sources = usable

    def run(self, cancel_event: Optional[asyncio.Event] = None) -> AsyncIterator[SampleBatch]:
        """
        Start sampling.

        Args:
            cancel_event: When set, sampling stops before the next tick;
                batches already produced are kept

        Returns:
            An async iterator of SampleBatch, one per tick

        Raises:
            RuntimeError: If the collector has already been run
        """
        if self._started:
            raise RuntimeError(f"Collector '{self.name}' has already been run")
        self._started = True
        return self._ticks(cancel_event)

    async def _ticks(self, cancel_event: Optional[asyncio.Event]) -> AsyncIterator[SampleBatch]:
        loop = asyncio.get_running_loop()
        start = loop.time()
        total = self.tick_count
        logger.info(
            f"Collector '{self.name}' started: {total} ticks every {self.interval:g}s "
            f"({', '.join(source.name for source in self.sources)})"
        )

        for tick in range(total):
            delay = start + tick * self.interval - loop.time()
            if await self._wait(delay, cancel_event):
                logger.info(f"Collector '{self.name}' cancelled after {tick} ticks")
                return

            timestamp = self._wall_clock()
            samples: List[Sample] = []
            for source in self.sources:
                try:
                    samples.extend(await source.sample(timestamp))
                except Exception as e:
                    logger.warning(f"Collector '{self.name}': source '{source.name}' failed on tick {tick}: {e}")

            self.batches_produced += 1
            yield SampleBatch(collector=self.name, tick=tick, timestamp=timestamp, samples=tuple(samples))

        logger.info(f"Collector '{self.name}' finished after {total} ticks")

    @staticmethod
    async def _wait(delay: float, cancel_event: Optional[asyncio.Event]) -> bool:
        """Sleep until the next tick; True if cancellation arrived first."""
        if cancel_event is None:
            if delay > 0:
                await asyncio.sleep(delay)
            return False
        if cancel_event.is_set():
            return True
        if delay <= 0:
            return False
        try:
            await asyncio.wait_for(cancel_event.wait(), timeout=delay)
            return True
        except asyncio.TimeoutError:
            return False
