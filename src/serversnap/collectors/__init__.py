"""
Sampled collectors and their metric sources.
"""

from .base import BlockingMetricSource, MetricSource
from .factory import create_collector, create_sources
from .sampled import SampledCollector
from .sources import (
    CommandValueSource,
    LoadAverageSource,
    MemorySource,
    NetworkRateSource,
    first_number,
)

__all__ = [
    "MetricSource",
    "BlockingMetricSource",
    "SampledCollector",
    "create_collector",
    "create_sources",
    "CommandValueSource",
    "LoadAverageSource",
    "MemorySource",
    "NetworkRateSource",
    "first_number",
]
