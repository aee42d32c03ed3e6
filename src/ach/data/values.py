"""Lenient accessors for loosely typed JSON values."""

from __future__ import annotations

from typing import Any


def as_str(value: object) -> str:
    return value if isinstance(value, str) else ""


def as_int(value: object) -> int:
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, int):
        return value
    if isinstance(value, float | str):
        try:
            return int(float(value))
        except (OverflowError, ValueError):
            return 0
    return 0


def as_optional_int(value: object) -> int | None:
    return None if value is None else as_int(value)


def as_dict(value: object) -> dict[str, Any]:
    return value if isinstance(value, dict) else {}


def json_type_name(value: object) -> str:
    """Name a JSON value's type the way error messages describe it."""
    match value:
        case None:
            return "null"
        case bool():
            return "boolean"
        case int() | float():
            return "number"
        case str():
            return "string"
        case list():
            return "array"
        case _:
            return "object"
