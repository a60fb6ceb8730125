import json, math
from typing import Any, Optional

from pos_engine.config import CURRENCY_DECIMALS

def money(n: float, decimals: Optional[int] = None) -> float:
    # round-half-up to the smallest currency unit
    d = CURRENCY_DECIMALS if decimals is None else decimals
    f = 10 ** d
    v = math.floor(abs(n) * f + 0.5 + 1e-9) / f
    return v if n >= 0 else -v

def _maybe_json(value):
    if isinstance(value, (str, bytes)):
        v = value.strip()
        if not v:
            return None
        try:
            return json.loads(v)
        except Exception:
            return value
    return value

def to_number(value: Any) -> Optional[float]:
    """Finite float for numbers and numeric strings, otherwise None."""
    if value is None or value == "" or isinstance(value, bool):
        return None
    try:
        num = float(value)
    except (TypeError, ValueError):
        return None
    return num if math.isfinite(num) else None

def _coerce_list(v):
    v = _maybe_json(v)
    if v is None:
        return []
    if isinstance(v, dict):
        return [v]
    if isinstance(v, (list, tuple)):
        return list(v)
    return []

# chat replies meaning "no add-ons"
SKIP_KEYWORDS = ("skip", "tidak", "ga", "nggak", "gak", "no", "-")
