"""
Field accessors used by the ``from_dict`` constructors of the data models.

Missing keys and JSON ``null`` fall back to the zero value of the field type.
Values of the wrong type raise TypeError or ValueError, and integer fields that
overflow to infinity raise OverflowError. The request client turns all of them
into a DecodeError.
"""

from typing import Any, Dict, List, Mapping


def require_mapping(data: Any, what: str) -> Mapping[str, Any]:
    if not isinstance(data, Mapping):
        raise TypeError(f"{what} must be a JSON object, got {type(data).__name__}")
    return data


def get_str(data: Mapping[str, Any], key: str, default: str = "") -> str:
    value = data.get(key)
    if value is None:
        return default
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (str, int, float)):
        return str(value)
    raise TypeError(f"field '{key}' must be a string, got {type(value).__name__}")


def get_float(data: Mapping[str, Any], key: str, default: float = 0.0) -> float:
    value = data.get(key)
    if value is None:
        return default
    if isinstance(value, bool):
        raise TypeError(f"field '{key}' must be a number, got bool")
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str):
        return float(value)
    raise TypeError(f"field '{key}' must be a number, got {type(value).__name__}")


def get_int(data: Mapping[str, Any], key: str, default: int = 0) -> int:
    return int(get_float(data, key, float(default)))


def get_bool(data: Mapping[str, Any], key: str, default: bool = False) -> bool:
    value = data.get(key)
    if value is None:
        return default
    if isinstance(value, bool):
        return value
    raise TypeError(f"field '{key}' must be a boolean, got {type(value).__name__}")


def get_dict(data: Mapping[str, Any], key: str) -> Dict[str, Any]:
    value = data.get(key)
    if value is None:
        return {}
    return dict(require_mapping(value, f"field '{key}'"))


def get_list(data: Mapping[str, Any], key: str) -> List[Any]:
    value = data.get(key)
    if value is None:
        return []
    if not isinstance(value, list):
        raise TypeError(f"field '{key}' must be an array, got {type(value).__name__}")
    return value
