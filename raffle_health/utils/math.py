# raffle_health/utils/math.py
import math
from typing import Optional

def safe_div(n: Optional[float], d: Optional[float]) -> Optional[float]:
    if n is None or d in (None, 0):
        return None
    try:
        return n / d
    except ZeroDivisionError:
        return None

def div_or_zero(n: float, d: float) -> float:
    """Count-style ratio: 0 when the denominator is not positive."""
    return n / d if d > 0 else 0.0

def is_finite(x: Optional[float]) -> bool:
    return x is not None and math.isfinite(x)

def round_half_up(x: float) -> int:
    """Round to nearest integer with .5 going up (JS Math.round semantics)."""
    return int(math.floor(x + 0.5))

def r2(x):
    return None if x is None else round(float(x), 2)

def money(x: float, symbol: str = "£") -> str:
    """Rounded currency with thousands separators, e.g. £12,345."""
    return f"{symbol}{round_half_up(x):,}"

def pct(x: float) -> str:
    return f"{round_half_up(x * 100)}%"
