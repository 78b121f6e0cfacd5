"""
Abstract base class for time-series storage backends.

A backend writes one Polars DataFrame per file. The time-series
writer uses it to persist each sampled metric next to the reports, so the
format (CSV for spreadsheets, Parquet for analysis) is a configuration choice.
"""

from abc import ABC, abstractmethod
from pathlib import Path
from typing import Union

import polars as pl

PathLike = Union[str, Path]


class DataStorage(ABC):
    """Abstract base class for data storage implementations."""

    # File suffix, including the dot.
    extension: str = ""

    @abstractmethod
    def save_dataframe(self, df: pl.DataFrame, path: PathLike) -> None:
        """
        Save a Polars DataFrame to the specified path.

        Args:
            df: Polars DataFrame to save
            path: File path to save to; parent directories are created
        """
