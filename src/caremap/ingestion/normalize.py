"""Normalization helpers.

Centralizes defensive parsing of the string cells produced by the tabular
ingestor.
"""

from __future__ import annotations

import math
from typing import Any


def parse_float(value: Any) -> float | None:
    """Parse *value* as a float, returning ``None`` when it is not numeric."""
    if value is None:
        return None
    if isinstance(value, str):
        value = value.strip()
        if not value:
            return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def finite_float(value: Any) -> float | None:
    """Like :func:`parse_float` but rejects NaN and infinities."""
    parsed = parse_float(value)
    if parsed is None or not math.isfinite(parsed):
        return None
    return parsed


def float_or_default(value: Any, default: float) -> float:
    """Parse *value*, falling back to *default* when absent or NaN."""
    parsed = parse_float(value)
    if parsed is None or math.isnan(parsed):
        return default
    return parsed


def float_or_nan(value: Any) -> float:
    parsed = parse_float(value)
    return math.nan if parsed is None else parsed


def clean_str(value: Any) -> str:
    if value is None:
        return ""
    return str(value).strip()


def join_non_empty(values: list[Any], *, separator: str = " ") -> str:
    return separator.join(text for text in (clean_str(value) for value in values) if text)


def format_number(value: float) -> str:
    """Render a float the way the map labels show it (``12``, ``12.5``, ``NaN``)."""
    if math.isnan(value):
        return "NaN"
    if math.isinf(value):
        return "Infinity" if value > 0 else "-Infinity"
    if value.is_integer():
        return str(int(value))
    return repr(value)
