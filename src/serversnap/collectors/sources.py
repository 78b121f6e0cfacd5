"""
Built-in metric sources.

- LoadAverageSource: 1, 5 and 15 minute load averages
- MemorySource: percentage of memory in use
- NetworkRateSource: per-interface receive and transmit byte rates
- CommandValueSource: the first number printed by a command
"""

import logging
import re
from typing import Callable, Dict, List, Mapping, Optional, Tuple

import psutil

from ..models.probe import CommandSpec
from ..models.samples import Sample
from ..system.commands import CommandRunner
from .base import BlockingMetricSource, MetricSource

logger = logging.getLogger(__name__)

NUMBER_PATTERN = re.compile(r"[-+]?(?:\d+\.\d*|\.\d+|\d+)(?:[eE][-+]?\d+)?")

LOOPBACK_INTERFACES = ("lo",)


class LoadAverageSource(BlockingMetricSource):
    name = "load"

    def prepare(self) -> None:
        psutil.getloadavg()

    def read(self, timestamp: float) -> List[Sample]:
        one, five, fifteen = psutil.getloadavg()
        return [
            Sample(timestamp, "load.1m", float(one)),
            Sample(timestamp, "load.5m", float(five)),
            Sample(timestamp, "load.15m", float(fifteen)),
        ]


class MemorySource(BlockingMetricSource):
    name = "memory"

    def prepare(self) -> None:
        psutil.virtual_memory()

    def read(self, timestamp: float) -> List[Sample]:
        return [Sample(timestamp, "memory.used_percent", float(psutil.virtual_memory().percent))]


def _pernic_counters() -> Mapping[str, Tuple[int, int]]:
    counters = psutil.net_io_counters(pernic=True)
    return {nic: (stats.bytes_recv, stats.bytes_sent) for nic, stats in counters.items()}


class NetworkRateSource(BlockingMetricSource):
    """
    Per-interface RX/TX byte rates in bytes per second.

    The rate is ``(current - previous) / interval``. The first tick has no
    previous reading and reports 0.0, as does a counter that went backwards
    (interface reset or counter wrap). Loopback interfaces are excluded.
    """

    name = "network"

    def __init__(
        self,
        interval: float,
        counters: Callable[[], Mapping[str, Tuple[int, int]]] = _pernic_counters,
    ):
        """
        Args:
            interval: Seconds between ticks, the divisor of every rate
            counters: Returns interface -> (bytes received, bytes sent)
        """
        if interval <= 0:
            raise ValueError(f"interval must be positive, got {interval}")
        self.interval = interval
        self._counters = counters
        self._previous: Dict[str, Tuple[int, int]] = {}

    def prepare(self) -> None:
        self._counters()

    @staticmethod
    def _rate(current: int, previous: Optional[int], interval: float) -> float:
        if previous is None or current < previous:
            return 0.0
        return (current - previous) / interval

    def read(self, timestamp: float) -> List[Sample]:
        samples = []
        current = self._counters()
        for nic in sorted(current):
            if nic in LOOPBACK_INTERFACES:
                continue
            rx, tx = current[nic]
            prev_rx, prev_tx = self._previous.get(nic, (None, None))
            samples.append(Sample(timestamp, f"net.{nic}.rx_bytes_per_s", self._rate(rx, prev_rx, self.interval)))
            samples.append(Sample(timestamp, f"net.{nic}.tx_bytes_per_s", self._rate(tx, prev_tx, self.interval)))
            self._previous[nic] = (rx, tx)
        return samples


def first_number(text: str) -> Optional[float]:
    match = NUMBER_PATTERN.search(text)
    return float(match.group(0)) if match else None


class CommandValueSource(MetricSource):
    """
    Runs a command each tick and records the first number in its output.

    A failed command or output without a number records nothing for that
    tick; the failure is logged.
    """

    def __init__(self, metric: str, command: CommandSpec, runner: CommandRunner, timeout: float):
        self.name = metric
        self.metric = metric
        self.command = command
        self.runner = runner
        self.timeout = timeout

    def prepare(self) -> None:
        self.command.validate()

    async def sample(self, timestamp: float) -> List[Sample]:
        result = await self.runner.execute(self.command, timeout=self.timeout, probe_name=f"metric:{self.metric}")
        if not result.succeeded:
            logger.warning(f"Metric '{self.metric}' command {result.status.label}: {result.detail}")
            return []
        value = first_number(result.text)
        if value is None:
            logger.warning(f"Metric '{self.metric}' output has no number: {result.first_line!r}")
            return []
        return [Sample(timestamp, self.metric, value)]
