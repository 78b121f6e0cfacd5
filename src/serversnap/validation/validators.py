"""
Input validation functions.

This module provides the validators shared by the configuration loader and the
command-line interface.
"""

import re
from typing import Any, Iterable, List, Optional, Union

from .exceptions import ValidationError


def validate_positive_integer(
    value: Any,
    min_value: int = 1,
    max_value: Optional[int] = None,
    field_name: str = "value"
) -> int:
    """
    Validate that a value is an integer within bounds.

    Args:
        value: Value to validate
        min_value: Minimum allowed value (inclusive)
        max_value: Maximum allowed value (inclusive), None for no limit
        field_name: Name of the field being validated

    Returns:
        Validated integer value

    Raises:
        ValidationError: If validation fails
    """
    if isinstance(value, bool):
        raise ValidationError(
            f"{field_name} must be a valid integer, got {value}",
            field_name=field_name,
            value=value
        )
    try:
        int_value = int(value)
    except (ValueError, TypeError):
        raise ValidationError(
            f"{field_name} must be a valid integer, got {value}",
            field_name=field_name,
            value=value
        )
    if int_value < min_value:
        raise ValidationError(
            f"{field_name} must be >= {min_value}, got {int_value}",
            field_name=field_name,
            value=value
        )
    if max_value is not None and int_value > max_value:
        raise ValidationError(
            f"{field_name} must be <= {max_value}, got {int_value}",
            field_name=field_name,
            value=value
        )
    return int_value


def validate_positive_float(
    value: Any,
    min_value: float = 0.0,
    max_value: Optional[float] = None,
    field_name: str = "value"
) -> float:
    """
    Validate that a value is a number within bounds.

    Args:
        value: Value to validate
        min_value: Minimum allowed value (inclusive)
        max_value: Maximum allowed value (inclusive), None for no limit
        field_name: Name of the field being validated

    Returns:
        Validated float value

    Raises:
        ValidationError: If validation fails
    """
    if isinstance(value, bool):
        raise ValidationError(
            f"{field_name} must be a valid number, got {value}",
            field_name=field_name,
            value=value
        )
    try:
        float_value = float(value)
    except (ValueError, TypeError):
        raise ValidationError(
            f"{field_name} must be a valid number, got {value}",
            field_name=field_name,
            value=value
        )
    if float_value < min_value:
        raise ValidationError(
            f"{field_name} must be >= {min_value}, got {float_value}",
            field_name=field_name,
            value=value
        )
    if max_value is not None and float_value > max_value:
        raise ValidationError(
            f"{field_name} must be <= {max_value}, got {float_value}",
            field_name=field_name,
            value=value
        )
    return float_value


def validate_enum_choice(
    value: Any,
    choices: Iterable[str],
    field_name: str = "value",
    case_sensitive: bool = True
) -> str:
    """
    Validate that a value is one of the allowed choices.

    Args:
        value: Value to validate
        choices: Allowed choices
        field_name: Name of the field being validated
        case_sensitive: Whether the comparison should be case-sensitive

    Returns:
        The matching choice, in the spelling of ``choices``

    Raises:
        ValidationError: If value is not in choices
    """
    choice_list = list(choices)
    str_value = str(value)

    if case_sensitive:
        if str_value not in choice_list:
            raise ValidationError(
                f"{field_name} must be one of {choice_list}, got {value}",
                field_name=field_name,
                value=value
            )
        return str_value

    lower_choices = [choice.lower() for choice in choice_list]
    lower_value = str_value.lower()
    if lower_value not in lower_choices:
        raise ValidationError(
            f"{field_name} must be one of {choice_list}, got {value}",
            field_name=field_name,
            value=value
        )
    return choice_list[lower_choices.index(lower_value)]


def validate_regex_pattern(pattern: str, field_name: str = "regex_pattern") -> str:
    """
    Validate regex pattern format.

    Raises:
        ValidationError: If pattern is empty or does not compile
    """
    if not pattern or not isinstance(pattern, str):
        raise ValidationError(
            f"{field_name} must be a non-empty string",
            field_name=field_name,
            value=pattern
        )

    try:
        re.compile(pattern)
    except re.error as e:
        raise ValidationError(
            f"{field_name} is not a valid regex pattern: {e}",
            field_name=field_name,
            value=pattern
        )

    return pattern


def validate_probe_name(
    name: str,
    existing_names: Optional[Iterable[str]] = None,
    field_name: str = "probe_name"
) -> str:
    """
    Validate a probe or output sink name.

    Names become file names inside the report directory, so only letters,
    digits, underscores, dots and hyphens are accepted.

    Args:
        name: Name to validate
        existing_names: Names already taken (for uniqueness check)
        field_name: Name of the field being validated

    Returns:
        Validated name

    Raises:
        ValidationError: If name is invalid
    """
    if not name or not isinstance(name, str):
        raise ValidationError(
            f"{field_name} must be a non-empty string",
            field_name=field_name,
            value=name
        )

    if not re.match(r'^[a-zA-Z0-9_][a-zA-Z0-9_.-]*$', name):
        raise ValidationError(
            f"{field_name} must contain only alphanumeric characters, underscores, dots and hyphens: {name}",
            field_name=field_name,
            value=name
        )

    if existing_names is not None and name in set(existing_names):
        raise ValidationError(
            f"{field_name} must be unique, '{name}' already exists",
            field_name=field_name,
            value=name
        )

    return name


def validate_name_list(
    names: Union[str, List[str]],
    valid_choices: Optional[Iterable[str]] = None,
    field_name: str = "names",
) -> List[str]:
    """
    Validate a list of names given as a list or a comma-separated string.

    Args:
        names: ``"system,network"`` or ``["system", "network"]``
        valid_choices: If given, every name must be one of these
        field_name: Name of the field being validated

    Returns:
        List of names with surrounding whitespace removed, order preserved

    Raises:
        ValidationError: If the list is empty or contains unknown names
    """
    if isinstance(names, str):
        names = [part.strip() for part in names.split(",") if part.strip()]

    if not isinstance(names, list) or not names:
        raise ValidationError(
            f"{field_name} must be a non-empty list",
            field_name=field_name,
            value=names
        )

    validated = []
    choices = list(valid_choices) if valid_choices is not None else None
    for i, name in enumerate(names):
        if not isinstance(name, str) or not name.strip():
            raise ValidationError(
                f"{field_name} item {i} must be a non-empty string",
                field_name=field_name,
                value=name
            )
        name = name.strip()
        if choices is not None:
            validate_enum_choice(name, choices, field_name=f"{field_name} item {i}")
        if name not in validated:
            validated.append(name)

    return validated


def validate_sampling_window(
    duration: float,
    interval: float,
    field_name: str = "interval"
) -> float:
    """
    Check that a sampling interval fits at least once into the duration.

    Returns:
        The interval, unchanged

    Raises:
        ValidationError: If ``interval`` is larger than ``duration``
    """
    if interval > duration:
        raise ValidationError(
            f"{field_name} ({interval}s) must not exceed the monitoring duration ({duration}s)",
            field_name=field_name,
            value=interval
        )
    return interval
