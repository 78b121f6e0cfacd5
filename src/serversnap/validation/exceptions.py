"""
Exception taxonomy and error handling helpers.

Per-probe problems (failure, timeout, skip) are recorded as probe statuses and
never abort a run; ProbeResult.as_error maps a status to its exception class
so it can be logged through handle_error. Only the run-level errors (directory
creation, collector start, total render failure) escape the orchestrator.
"""

import logging
import sys
from enum import Enum
from typing import Any, Optional, Union

logger = logging.getLogger(__name__)


class ErrorSeverity(Enum):
    """Severity levels for error handling."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class SnapshotError(Exception):
    """Base class for every error raised by the snapshot engine."""


class ValidationError(SnapshotError):
    """
    Exception raised when validation fails.

    Used for configuration files, CLI arguments and command descriptors.
    """

    def __init__(self, message: str, field_name: Optional[str] = None,
                 value: Any = None, severity: ErrorSeverity = ErrorSeverity.ERROR):
        super().__init__(message)
        self.field_name = field_name
        self.value = value
        self.severity = severity


class ProbeError(SnapshotError):
    """Base class for per-probe errors. These are recorded, not propagated."""

    def __init__(self, probe_name: str, message: str = ""):
        super().__init__(message or probe_name)
        self.probe_name = probe_name


class ProbeFailure(ProbeError):
    """The probe's command exited with a nonzero status or could not start."""


class ProbeTimeout(ProbeError):
    """The probe's command exceeded its allotted time and was killed."""


class ProbeSkipped(ProbeError):
    """The probe's precondition was false; nothing was executed."""


class DirectoryCreationError(SnapshotError):
    """The report directory could not be created. Fatal for the run."""

    def __init__(self, path: Any, reason: str):
        super().__init__(f"Cannot create report directory '{path}': {reason}")
        self.path = path
        self.reason = reason


class CollectorStartError(SnapshotError):
    """None of the configured sampled collectors could be started."""


class RenderError(SnapshotError):
    """Rendering one output format failed."""

    def __init__(self, format_name: str, message: str):
        super().__init__(f"{format_name}: {message}")
        self.format_name = format_name


def handle_error(
    error: Exception,
    context: str,
    severity: Union[ErrorSeverity, str] = ErrorSeverity.ERROR,
    reraise: bool = True,
    logger: Optional[logging.Logger] = None
) -> None:
    """
    Handle errors with consistent logging and optional re-raising.

    Args:
        error: The exception that occurred
        context: Context description of where the error occurred
        severity: Severity level for logging
        reraise: Whether to re-raise the exception after logging
        logger: Logger instance to use (defaults to module logger)
    """
    effective_logger = logger or globals()['logger']

    error_msg = f"Error in {context}: {error}"

    if isinstance(severity, str):
        severity_str = severity.lower()
    else:
        severity_str = severity.value

    if severity_str == "debug":
        effective_logger.debug(error_msg, exc_info=True)
    elif severity_str == "info":
        effective_logger.info(error_msg)
    elif severity_str == "warning":
        effective_logger.warning(error_msg)
    elif severity_str == "error":
        effective_logger.error(error_msg)
    elif severity_str == "critical":
        effective_logger.critical(error_msg, exc_info=True)

    if reraise:
        raise error


def handle_config_error(error: Exception, context: str, **kwargs) -> None:
    """Handle configuration-related errors."""
    handle_error(error, f"config {context}", **kwargs)


def handle_cli_error(error: Exception, context: str, **kwargs) -> None:
    """Log a CLI error and exit the process with the given code."""
    exit_code = kwargs.pop('exit_code', 1)
    include_traceback = kwargs.pop('include_traceback', False)

    severity = kwargs.pop('severity', ErrorSeverity.ERROR)
    if include_traceback:
        severity = ErrorSeverity.CRITICAL
    handle_error(error, f"CLI {context}", severity=severity, reraise=False, **kwargs)

    sys.exit(exit_code)
