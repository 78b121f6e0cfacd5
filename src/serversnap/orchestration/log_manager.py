"""
Log management for the orchestration module.

Attaches a file handler writing ``run.log`` into the report directory for the
lifetime of one run, so the report carries its own engine log.
"""

import logging
from pathlib import Path
from typing import Optional

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s [%(levelname)-5.5s] %(name)s:%(filename)s:%(lineno)d\t %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


class LogManager:
    """
    Handles the run log file.

    The handler is attached to the package logger so every module's messages
    land in the file, independent of how the root logger is configured.
    """

    def __init__(self, logger_name: str = "serversnap", level: int = logging.DEBUG):
        self.logger_name = logger_name
        self.level = level
        self.handler: Optional[logging.FileHandler] = None
        self._previous_level: Optional[int] = None

    @property
    def log_file(self) -> Optional[Path]:
        return Path(self.handler.baseFilename) if self.handler else None

    def open_run_log(self, path: Path) -> None:
        """
        Start writing the run log.

        Raises:
            OSError: If the file cannot be opened
        """
        if self.handler is not None:
            self.close_run_log()

        handler = logging.FileHandler(path, mode="w", encoding="utf-8")
        handler.setLevel(self.level)
        handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=LOG_DATE_FORMAT))

        package_logger = logging.getLogger(self.logger_name)
        self._previous_level = package_logger.level
        if package_logger.getEffectiveLevel() > self.level:
            package_logger.setLevel(self.level)
        package_logger.addHandler(handler)
        self.handler = handler
        logger.info(f"Run log: {path}")

    def close_run_log(self) -> None:
        """Detach and close the run log handler."""
        if self.handler is None:
            logger.debug("No run log to close")
            return

        package_logger = logging.getLogger(self.logger_name)
        package_logger.removeHandler(self.handler)
        if self._previous_level is not None:
            package_logger.setLevel(self._previous_level)
        try:
            self.handler.close()
        except Exception as e:
            logger.warning(f"Error closing run log: {e}")
        finally:
            self.handler = None
            self._previous_level = None
