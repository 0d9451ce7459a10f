"""
Value validators.

Configuration values arrive as strings from the environment and the command
line, or as loosely typed TOML values, so every validator accepts ``Any`` and
returns the converted value. Failures raise ValidationError naming the field.
"""

import math
from typing import Any, List, Optional, TypeVar

from .exceptions import ParseError, ValidationError

N = TypeVar('N', int, float)

_TRUE_VALUES = ("1", "t", "true", "yes", "on")
_FALSE_VALUES = ("0", "f", "false", "no", "off")


def _invalid(field_name: str, value: Any, problem: str) -> ValidationError:
    return ValidationError(f"{field_name} {problem}, got {value}", field_name=field_name, value=value)


def _check_range(number: N, value: Any, min_value: N, max_value: Optional[N], field_name: str) -> N:
    if number < min_value:
        raise _invalid(field_name, value, f"must be >= {min_value}")
    if max_value is not None and number > max_value:
        raise _invalid(field_name, value, f"must be <= {max_value}")
    return number


def validate_positive_integer(
    value: Any,
    min_value: int = 1,
    max_value: Optional[int] = None,
    field_name: str = "value"
) -> int:
    """
    Convert ``value`` to an int within ``[min_value, max_value]``.

    Booleans are rejected even though Python treats them as integers.

    Raises:
        ValidationError: If the value is not an integer or out of range
    """
    if isinstance(value, bool):
        raise _invalid(field_name, value, "must be a valid integer")
    try:
        number = int(value)
    except (ValueError, TypeError):
        raise _invalid(field_name, value, "must be a valid integer")
    return _check_range(number, value, min_value, max_value, field_name)


def validate_positive_float(
    value: Any,
    min_value: float = 0.0,
    max_value: Optional[float] = None,
    field_name: str = "value"
) -> float:
    """
    Convert ``value`` to a float within ``[min_value, max_value]``.

    Raises:
        ValidationError: If the value is not a number or out of range
    """
    try:
        number = float(value)
    except (ValueError, TypeError):
        raise _invalid(field_name, value, "must be a valid number")
    return _check_range(number, value, min_value, max_value, field_name)


def validate_boolean(value: Any, field_name: str = "value") -> bool:
    """
    Validate a boolean given either as a bool or as one of the usual strings.

    Raises:
        ValidationError: If the value is not recognised
    """
    if isinstance(value, bool):
        return value
    text = str(value).strip().lower()
    if text in _TRUE_VALUES:
        return True
    if text in _FALSE_VALUES:
        return False
    raise _invalid(field_name, value, "must be true or false")


def validate_enum_choice(
    value: Any,
    choices: List[str],
    field_name: str = "value",
    case_sensitive: bool = True
) -> str:
    """
    Match ``value`` against ``choices``.

    Returns:
        The matching choice, spelled as in ``choices``

    Raises:
        ValidationError: If nothing matches
    """
    text = str(value)
    for choice in choices:
        if choice == text or (not case_sensitive and choice.lower() == text.lower()):
            return choice
    raise _invalid(field_name, value, f"must be one of {choices}")


def validate_url_path(value: Any, field_name: str = "path") -> str:
    """
    Validate an HTTP path and make sure it starts with a single slash.

    Raises:
        ValidationError: If the value is empty or not a string
    """
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(
            f"{field_name} must be a non-empty string",
            field_name=field_name,
            value=value
        )
    return "/" + value.strip().lstrip("/")


def parse_float_field(value: Any, field_name: str = "value") -> float:
    """
    Convert a numeric string (or number) delivered by the upstream into a float.

    Args:
        value: Raw value, usually a string such as ``"57.3"``
        field_name: Name of the field, used in the error message

    Returns:
        The parsed float

    Raises:
        ParseError: If the value is not a finite number
    """
    if isinstance(value, bool):
        raise ParseError(f"{field_name} is not a number: {value!r}",
                         field_name=field_name, value=value)
    try:
        float_value = float(value)
    except (ValueError, TypeError):
        raise ParseError(f"{field_name} is not a number: {value!r}",
                         field_name=field_name, value=value)
    if math.isnan(float_value) or math.isinf(float_value):
        raise ParseError(f"{field_name} is not a finite number: {value!r}",
                         field_name=field_name, value=value)
    return float_value
