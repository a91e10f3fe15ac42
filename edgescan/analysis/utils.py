"""Permissive value coercion for model-generated and API-supplied data."""

from __future__ import annotations

import json
import math
from typing import Any


def safe_json(val: Any) -> list:
    """Parse a JSON-encoded string, or return as-is if already a list."""
    if isinstance(val, list):
        return val
    if isinstance(val, str):
        try:
            parsed = json.loads(val)
        except (json.JSONDecodeError, TypeError):
            return []
        return parsed if isinstance(parsed, list) else []
    return []


def safe_float(val: Any, default: float = 0.0) -> float:
    """
    Coerce to float; unparseable, NaN and infinite values become ``default``.

    Accepts numeric strings with surrounding whitespace or a trailing ``%``
    (``"72%"`` → 72.0, scale is left to the caller).
    """
    if isinstance(val, bool):
        return default
    if isinstance(val, str):
        val = val.strip().rstrip("%").strip()
    try:
        result = float(val)
    except (TypeError, ValueError):
        return default
    return result if math.isfinite(result) else default


def safe_int(val: Any, default: int = 0) -> int:
    """Coerce to int, truncating toward zero (``"72.9"`` → 72)."""
    result = safe_float(val, float("nan"))
    if math.isnan(result):
        return default
    return int(result)


def safe_str(val: Any, default: str = "") -> str:
    if val is None:
        return default
    return val if isinstance(val, str) else str(val)
