"""
CSV storage implementation using Polars.
"""

import logging
from pathlib import Path

import polars as pl

from .base import DataStorage, PathLike

logger = logging.getLogger(__name__)


class CsvStorage(DataStorage):
    """
    Plain CSV with a header row, readable by spreadsheets and shell tools.
    """

    extension = ".csv"

    def save_dataframe(self, df: pl.DataFrame, path: PathLike) -> None:
        try:
            Path(path).parent.mkdir(parents=True, exist_ok=True)
            df.write_csv(path)
            logger.debug(f"Saved DataFrame with {len(df)} rows to {path}")
        except Exception as e:
            logger.error(f"Failed to save DataFrame to {path}: {e}")
            raise
