"""
Storage for the results of a run.

- ReportAggregator: the thread-safe in-memory aggregate of probe results and
  samples, frozen into a ReportModel at the end of a run
- Time-series writers: one CSV or Parquet file per sampled metric, written with
  Polars through interchangeable storage backends
- Per-metric statistics computed with Polars for the reports
"""

from .aggregator import ReportAggregator
from .base import DataStorage
from .csv_storage import CsvStorage
from .factory import create_storage
from .parquet_storage import ParquetStorage
from .timeseries import (
    metric_family,
    metric_statistics,
    model_to_dataframe,
    samples_to_dataframe,
    write_timeseries,
)

__all__ = [
    "ReportAggregator",
    "DataStorage",
    "CsvStorage",
    "ParquetStorage",
    "create_storage",
    "metric_family",
    "metric_statistics",
    "model_to_dataframe",
    "samples_to_dataframe",
    "write_timeseries",
]
