"""
Time-series persistence and statistics for sampled metrics.

Each metric's samples become a Polars DataFrame with the columns
``timestamp``, ``metric`` and ``value`` and are written one file per metric
under the report's ``timeseries/`` directory.
"""

import logging
import re
from pathlib import Path
from typing import Dict, Iterable, Optional

import polars as pl

from ..models.report import ReportModel
from ..models.samples import Sample
from .base import DataStorage
from .factory import create_storage

logger = logging.getLogger(__name__)

SAMPLE_SCHEMA = {"timestamp": pl.Float64, "metric": pl.Utf8, "value": pl.Float64}
STATISTICS_SCHEMA = {
    "metric": pl.Utf8,
    "count": pl.UInt32,
    "mean": pl.Float64,
    "min": pl.Float64,
    "peak": pl.Float64,
    "last": pl.Float64,
}


def samples_to_dataframe(samples: Iterable[Sample]) -> pl.DataFrame:
    """Samples as a DataFrame, in the given order."""
    samples = list(samples)
    return pl.DataFrame(
        {
            "timestamp": [sample.timestamp for sample in samples],
            "metric": [sample.metric for sample in samples],
            "value": [float(sample.value) for sample in samples],
        },
        schema=SAMPLE_SCHEMA,
    )


def model_to_dataframe(model: ReportModel) -> pl.DataFrame:
    """Every sample of the model, metric by metric."""
    frames = [samples_to_dataframe(samples) for samples in model.series.values() if samples]
    if not frames:
        return pl.DataFrame(schema=SAMPLE_SCHEMA)
    return pl.concat(frames)


def metric_file_name(metric: str) -> str:
    return re.sub(r"[^A-Za-z0-9_.-]", "_", metric)


def write_timeseries(
    model: ReportModel,
    directory: Path,
    storage: Optional[DataStorage] = None,
    format_type: str = "csv",
) -> Dict[str, Path]:
    """
    Write one file per metric.

    Args:
        model: The frozen report model
        directory: Target directory, created if needed
        storage: Backend to use; created from ``format_type`` when omitted
        format_type: "csv" or "parquet"

    Returns:
        Mapping of metric name to the written file
    """
    storage = storage or create_storage(format_type)
    written: Dict[str, Path] = {}
    for metric, samples in model.series.items():
        if not samples:
            continue
        path = Path(directory) / f"{metric_file_name(metric)}{storage.extension}"
        storage.save_dataframe(samples_to_dataframe(samples), path)
        written[metric] = path

    logger.info(f"Wrote {len(written)} time series to {directory}")
    return written


def metric_statistics(model: ReportModel) -> pl.DataFrame:
    """
    Per-metric count, mean, min, peak and last value.

    Returns:
        One row per metric with samples, in the model's metric order
    """
    df = model_to_dataframe(model)
    if df.is_empty():
        return pl.DataFrame(schema=STATISTICS_SCHEMA)

    return (
        df.group_by("metric", maintain_order=True)
        .agg(
            pl.col("value").count().cast(pl.UInt32).alias("count"),
            pl.col("value").mean().alias("mean"),
            pl.col("value").min().alias("min"),
            pl.col("value").max().alias("peak"),
            pl.col("value").last().alias("last"),
        )
    )


def metric_family(metric: str) -> str:
    """Charts group metrics by family: ``net.eth0.rx_bytes_per_s`` -> ``net.eth0``."""
    parts = metric.split(".")
    if parts[0] == "net" and len(parts) > 2:
        return ".".join(parts[:2])
    return parts[0]
