from __future__ import annotations

import math


def safe_number(x: object) -> float:
    """Coerce an imported value to a finite float (None/NaN/Inf/garbage -> 0.0)."""

    if x is None:
        return 0.0
    try:
        v = float(x)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        return 0.0
    if not math.isfinite(v):
        return 0.0
    return v


def safe_int(x: object) -> int:
    return int(safe_number(x))


def optional_number(x: object) -> float | None:
    if x is None:
        return None
    return safe_number(x)


def safe_divide(numerator: float, denominator: float, default: float = 0.0) -> float:
    if denominator == 0:
        return float(default)
    q = float(numerator) / float(denominator)
    if not math.isfinite(q):
        return float(default)
    return q
