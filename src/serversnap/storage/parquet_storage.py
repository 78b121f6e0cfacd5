"""
Parquet storage implementation using Polars.
"""

import logging
from pathlib import Path
from typing import Literal

import polars as pl

from .base import DataStorage, PathLike

logger = logging.getLogger(__name__)


class ParquetStorage(DataStorage):
    """
    Columnar, compressed storage for sampled series that are analysed later.
    """

    extension = ".parquet"

    def __init__(self, compression: Literal["snappy", "gzip", "brotli", "lz4", "zstd"] = "snappy"):
        """
        Args:
            compression: Compression algorithm to use
        """
        self.compression = compression
        logger.debug(f"Initialized ParquetStorage with compression: {compression}")

    def save_dataframe(self, df: pl.DataFrame, path: PathLike) -> None:
        try:
            Path(path).parent.mkdir(parents=True, exist_ok=True)
            df.write_parquet(path, compression=self.compression)
            logger.debug(f"Saved DataFrame with {len(df)} rows to {path}")
        except Exception as e:
            logger.error(f"Failed to save DataFrame to {path}: {e}")
            raise
