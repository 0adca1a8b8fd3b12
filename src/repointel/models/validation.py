"""Shape checks for decoded JSON.

Fact files are read back from disk by the diff engine, the document renderer
and the graph renderer. These helpers turn an arbitrary decoded value into the
expected primitive or fail with ``FactShapeError``; the ``from_dict``
constructors catch that error and return ``None`` so that every loader sees
either a well-typed fact or the absent value.
"""

from typing import Any


class FactShapeError(ValueError):
    """Raised when a decoded value does not have the expected shape."""


def require_mapping(value: Any, what: str = "value") -> dict[str, Any]:
    """Return ``value`` if it is a JSON object."""
    if not isinstance(value, dict):
        raise FactShapeError(f"{what} must be an object")
    return value


def require_str(data: dict[str, Any], key: str) -> str:
    """Return a required string field."""
    value = data.get(key)
    if not isinstance(value, str):
        raise FactShapeError(f"{key} must be a string")
    return value


def require_bool(data: dict[str, Any], key: str) -> bool:
    """Return a required boolean field."""
    value = data.get(key)
    if not isinstance(value, bool):
        raise FactShapeError(f"{key} must be a boolean")
    return value


def require_int(data: dict[str, Any], key: str) -> int:
    """Return a required integer field (booleans rejected)."""
    value = data.get(key)
    if isinstance(value, bool) or not isinstance(value, int):
        raise FactShapeError(f"{key} must be an integer")
    return value


def require_str_list(data: dict[str, Any], key: str) -> list[str]:
    """Return a required list of strings."""
    value = data.get(key)
    if not isinstance(value, list) or not all(isinstance(item, str) for item in value):
        raise FactShapeError(f"{key} must be a list of strings")
    return list(value)


def require_str_map(data: dict[str, Any], key: str) -> dict[str, str]:
    """Return a required string-to-string mapping."""
    value = require_mapping(data.get(key), key)
    if not all(isinstance(item, str) for item in value.values()):
        raise FactShapeError(f"{key} values must be strings")
    return dict(value)


def require_list(data: dict[str, Any], key: str) -> list[Any]:
    """Return a required list of arbitrary items."""
    value = data.get(key)
    if not isinstance(value, list):
        raise FactShapeError(f"{key} must be a list")
    return value
