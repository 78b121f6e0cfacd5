"""
Unit tests for the run log manager and the signal handler.
"""

import logging
import os
import signal

import pytest

from serversnap.orchestration import LogManager, SignalHandler


@pytest.mark.unit
class TestLogManager:
    """Test cases for LogManager."""

    def test_run_log_receives_package_messages(self, temp_dir):
        """Test that messages from package modules reach run.log."""
        manager = LogManager()
        log_file = temp_dir / "run.log"

        manager.open_run_log(log_file)
        logging.getLogger("serversnap.probes.catalog").debug("debug detail for the run log")
        manager.close_run_log()

        content = log_file.read_text()
        assert "debug detail for the run log" in content
        assert "[DEBUG]" in content

    def test_close_detaches_handler(self, temp_dir):
        """Test that nothing is written after closing."""
        manager = LogManager()
        log_file = temp_dir / "run.log"
        package_logger = logging.getLogger("serversnap")
        level_before = package_logger.level

        manager.open_run_log(log_file)
        assert manager.log_file == log_file
        manager.close_run_log()
        logging.getLogger("serversnap").warning("after close")

        assert manager.log_file is None
        assert "after close" not in log_file.read_text()
        assert package_logger.level == level_before

    def test_close_without_open(self):
        """Test that closing twice is harmless."""
        manager = LogManager()

        manager.close_run_log()
        manager.close_run_log()

    def test_unwritable_location(self, temp_dir):
        """Test that a log in a missing directory raises OSError."""
        with pytest.raises(OSError):
            LogManager().open_run_log(temp_dir / "missing" / "run.log")


@pytest.mark.unit
class TestSignalHandler:
    """Test cases for SignalHandler."""

    def test_signal_triggers_shutdown_once(self):
        """Test that the callback runs on the first signal only."""
        calls = []

        with SignalHandler(lambda: calls.append(1)) as handler:
            os.kill(os.getpid(), signal.SIGTERM)
            os.kill(os.getpid(), signal.SIGTERM)

        assert handler.shutdown_requested
        assert calls == [1]

    def test_handlers_restored(self):
        """Test that the previous handlers come back after the run."""
        original = signal.getsignal(signal.SIGINT)

        with SignalHandler(lambda: None):
            assert signal.getsignal(signal.SIGINT) is not original

        assert signal.getsignal(signal.SIGINT) is original
