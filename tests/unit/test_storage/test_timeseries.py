"""
Unit tests for the storage backends and the time-series writers.
"""

import polars as pl
import pytest

from serversnap.models import Sample
from serversnap.storage import (
    CsvStorage,
    ParquetStorage,
    ReportAggregator,
    create_storage,
    metric_family,
    metric_statistics,
    write_timeseries,
)


def _model_with_series():
    aggregator = ReportAggregator()
    for i, value in enumerate([0.5, 1.5, 1.0]):
        aggregator.record_sample(Sample(100.0 + i * 60, "load.1m", value))
    for i, value in enumerate([0.0, 2048.0]):
        aggregator.record_sample(Sample(100.0 + i * 5, "net.eth0.rx_bytes_per_s", value))
    return aggregator.snapshot()


@pytest.mark.unit
class TestStorageFactory:
    """Test cases for storage factory."""

    def test_create_csv_storage(self):
        """Test creating CsvStorage."""
        storage = create_storage("csv")

        assert isinstance(storage, CsvStorage)
        assert storage.extension == ".csv"

    def test_create_parquet_storage(self):
        """Test creating ParquetStorage."""
        storage = create_storage("parquet")
        assert isinstance(storage, ParquetStorage)
        assert storage.compression == "snappy"

        storage = create_storage("parquet", "gzip")
        assert storage.compression == "gzip"

    def test_create_storage_unsupported_format(self):
        """Test creating storage with unsupported format."""
        with pytest.raises(ValueError) as excinfo:
            create_storage("unsupported")

        assert "Unsupported storage format" in str(excinfo.value)


@pytest.mark.unit
class TestStorageBackends:
    """Test cases for the CSV and Parquet backends."""

    @pytest.mark.parametrize("format_type", ["csv", "parquet"])
    def test_save_dataframe(self, temp_dir, format_type):
        """Test saving a DataFrame, creating parent directories."""
        storage = create_storage(format_type)
        df = pl.DataFrame({"timestamp": [1.0, 2.0], "metric": ["m", "m"], "value": [3.0, 4.5]})
        path = temp_dir / "nested" / f"m{storage.extension}"

        storage.save_dataframe(df, path)
        reader = pl.read_csv if format_type == "csv" else pl.read_parquet
        loaded = reader(path)

        assert loaded.columns == ["timestamp", "metric", "value"]
        assert loaded["value"].to_list() == [3.0, 4.5]

    def test_parquet_compression(self, temp_dir):
        """Test that the configured compression codec is used for writing."""
        storage = ParquetStorage(compression="zstd")
        path = temp_dir / "m.parquet"

        storage.save_dataframe(pl.DataFrame({"timestamp": [1.0], "metric": ["m"], "value": [3.0]}), path)

        assert pl.read_parquet(path)["value"].to_list() == [3.0]


@pytest.mark.unit
class TestTimeseries:
    """Test cases for time-series writing and statistics."""

    def test_write_csv(self, temp_dir):
        """Test one CSV file per metric with the samples in order."""
        model = _model_with_series()

        written = write_timeseries(model, temp_dir / "timeseries")

        assert set(written) == {"load.1m", "net.eth0.rx_bytes_per_s"}
        assert written["load.1m"].name == "load.1m.csv"
        df = pl.read_csv(written["load.1m"])
        assert df.columns == ["timestamp", "metric", "value"]
        assert df["value"].to_list() == [0.5, 1.5, 1.0]

    def test_write_parquet(self, temp_dir):
        """Test Parquet output."""
        written = write_timeseries(_model_with_series(), temp_dir, format_type="parquet")

        df = pl.read_parquet(written["net.eth0.rx_bytes_per_s"])
        assert df["value"].to_list() == [0.0, 2048.0]

    def test_write_without_samples(self, temp_dir):
        """Test that an empty model writes nothing."""
        model = ReportAggregator().snapshot()

        assert write_timeseries(model, temp_dir) == {}

    def test_statistics(self):
        """Test count, mean, min, peak and last per metric."""
        stats = metric_statistics(_model_with_series())
        rows = {row["metric"]: row for row in stats.iter_rows(named=True)}

        assert list(rows) == ["load.1m", "net.eth0.rx_bytes_per_s"]
        assert rows["load.1m"]["count"] == 3
        assert rows["load.1m"]["mean"] == pytest.approx(1.0)
        assert rows["load.1m"]["min"] == 0.5
        assert rows["load.1m"]["peak"] == 1.5
        assert rows["load.1m"]["last"] == 1.0

    def test_statistics_empty(self):
        """Test that a model without samples gives an empty table."""
        stats = metric_statistics(ReportAggregator().snapshot())

        assert stats.is_empty()
        assert "peak" in stats.columns

    def test_metric_family(self):
        """Test chart grouping of metric names."""
        assert metric_family("load.1m") == "load"
        assert metric_family("memory.used_percent") == "memory"
        assert metric_family("net.eth0.tx_bytes_per_s") == "net.eth0"
        assert metric_family("clock") == "clock"
