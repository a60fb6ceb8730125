import math
from typing import Iterable, Optional

from pos_engine import config
from pos_engine.schemas.models import CartLine, Totals
from pos_engine.services.errors import PricingInputError
from pos_engine.utils.common import money


def compute_totals(
    lines: Iterable[CartLine],
    discount_rp: float = 0,
    discount_pct: float = 0,
    fee: float = 0,
) -> Totals:
    """
    Fold cart lines into subtotal/discount/total.

    The discount (percent of subtotal plus flat rupiah) is rounded once and
    capped at the subtotal. `fee` is whatever the server charges on top and
    defaults to 0 for on-screen estimates.
    """
    for name, value in (("discount_rp", discount_rp), ("discount_pct", discount_pct), ("fee", fee)):
        if value is not None and not math.isfinite(value):
            raise PricingInputError(f"{name} must be a finite number, got {value!r}")
    if discount_rp is None or discount_rp < 0:
        raise PricingInputError(f"discount_rp must be >= 0, got {discount_rp!r}")
    if discount_pct is None or not (0 <= discount_pct <= 100):
        raise PricingInputError(f"discount_pct must be within [0, 100], got {discount_pct!r}")
    if fee is None or fee < 0:
        raise PricingInputError(f"fee must be >= 0, got {fee!r}")

    subtotal = sum(l.unit_price * l.quantity for l in lines or [])
    discount_amount = money(discount_pct / 100 * subtotal + discount_rp)
    discount = min(subtotal, discount_amount)
    total = max(0, subtotal - discount + fee)

    return Totals(subtotal=subtotal, discount=discount, fee=fee, total=total)


def service_fee(
    subtotal: float,
    *,
    enabled: Optional[bool] = None,
    fee_type: Optional[str] = None,
    amount: Optional[float] = None,
) -> float:
    """Configured service fee: flat rupiah or a percentage of the subtotal."""
    enabled = config.SERVICE_FEE_ENABLED if enabled is None else enabled
    fee_type = config.SERVICE_FEE_TYPE if fee_type is None else fee_type
    amount = config.SERVICE_FEE_AMOUNT if amount is None else amount
    if not enabled or subtotal <= 0:
        return 0.0
    if fee_type == "rupiah":
        return float(amount)
    if fee_type == "percent":
        return money(subtotal * (amount / 100))
    raise PricingInputError(f"unknown service fee type {fee_type!r}")
