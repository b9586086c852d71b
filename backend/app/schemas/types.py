"""Permissive field types for upstream payloads.

Both catalogs send numeric fields as numbers, numeric strings, empty strings
or null depending on endpoint and record age. These annotated types never
reject a payload over such a mismatch.
"""
from __future__ import annotations
from typing import Annotated, Any

from pydantic import BeforeValidator


def flexible_int(value: Any) -> int:
    """null -> 0, "" -> 0, "12.7" -> 12, garbage -> 0, int -> int."""
    if value is None or isinstance(value, bool):
        return int(value or 0)
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value)
    if isinstance(value, str):
        text = value.strip()
        if not text:
            return 0
        try:
            return int(text)
        except ValueError:
            pass
        try:
            return int(float(text))
        except (ValueError, OverflowError):
            return 0
    return 0


def flexible_float(value: Any) -> float:
    if value is None or isinstance(value, bool):
        return 0.0
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str):
        try:
            return float(value.strip().rstrip("%") or 0)
        except ValueError:
            return 0.0
    return 0.0


def loose_str(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def loose_list(value: Any) -> list:
    if value is None:
        return []
    if isinstance(value, list):
        return value
    return [value]


FlexibleInt = Annotated[int, BeforeValidator(flexible_int)]
FlexibleFloat = Annotated[float, BeforeValidator(flexible_float)]
LooseStr = Annotated[str, BeforeValidator(loose_str)]
