"""
Creates sampled collectors from their configuration.
"""

import logging
from typing import List

from ..models.config import CollectorConfig, RunConfig
from ..models.probe import CommandSpec
from ..system.commands import CommandRunner
from .base import MetricSource
from .sampled import SampledCollector
from .sources import CommandValueSource, LoadAverageSource, MemorySource, NetworkRateSource

logger = logging.getLogger(__name__)


def create_sources(
    config: CollectorConfig, interval: float, runner: CommandRunner, command_timeout: float
) -> List[MetricSource]:
    """
    Build the metric sources a collector configuration names.

    Raises:
        ValueError: If a built-in metric name is unknown
    """
    sources: List[MetricSource] = []
    for metric in config.metrics:
        if metric == "load":
            sources.append(LoadAverageSource())
        elif metric == "memory":
            sources.append(MemorySource())
        elif metric == "network":
            sources.append(NetworkRateSource(interval))
        else:
            raise ValueError(f"Unsupported metric source: {metric}")

    for metric_name, script in config.commands.items():
        sources.append(CommandValueSource(
            metric=metric_name,
            command=CommandSpec.from_shell(script),
            runner=runner,
            # a metric command never outlives its tick
            timeout=min(command_timeout, interval),
        ))
    return sources


def create_collector(config: CollectorConfig, run_config: RunConfig, runner: CommandRunner) -> SampledCollector:
    """
    Factory function to create a sampled collector for one run.

    Args:
        config: The collector's configuration
        run_config: Supplies the duration, interval override and timeouts
        runner: Runs command-valued metrics

    Returns:
        A collector that has not been started
    """
    interval = run_config.interval_for(config)
    sources = create_sources(config, interval, runner, run_config.probe_timeout)
    collector = SampledCollector(
        name=config.name,
        sources=sources,
        interval=interval,
        duration=run_config.duration,
    )
    logger.debug(f"Created collector '{config.name}' with {len(sources)} sources, interval {interval:g}s")
    return collector
