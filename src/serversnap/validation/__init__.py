"""
Validation and error handling for the serversnap package.

This module provides input validation, the engine's exception taxonomy and
error handling helpers with consistent error reporting across the application.
"""

from .exceptions import (
    CollectorStartError,
    DirectoryCreationError,
    ErrorSeverity,
    ProbeError,
    ProbeFailure,
    ProbeSkipped,
    ProbeTimeout,
    RenderError,
    SnapshotError,
    ValidationError,
    handle_cli_error,
    handle_config_error,
    handle_error,
)

from .validators import (
    validate_enum_choice,
    validate_name_list,
    validate_positive_float,
    validate_positive_integer,
    validate_probe_name,
    validate_regex_pattern,
    validate_sampling_window,
)

__all__ = [
    # Exceptions
    "SnapshotError",
    "ValidationError",
    "ProbeError",
    "ProbeFailure",
    "ProbeTimeout",
    "ProbeSkipped",
    "DirectoryCreationError",
    "CollectorStartError",
    "RenderError",
    # Error handling
    "ErrorSeverity",
    "handle_error",
    "handle_config_error",
    "handle_cli_error",
    # Validators
    "validate_enum_choice",
    "validate_name_list",
    "validate_positive_float",
    "validate_positive_integer",
    "validate_probe_name",
    "validate_regex_pattern",
    "validate_sampling_window",
]
