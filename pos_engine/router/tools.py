# tools router: stateless cart totals + draft repair
from fastapi import APIRouter, HTTPException
from pydantic import BaseModel, Field
from typing import Any, Dict, List, Optional

from pos_engine import config
from pos_engine.services.draft import draft_to_payload, normalize_cart_line, normalize_draft
from pos_engine.services.errors import PricingInputError
from pos_engine.services.pricing_engine import to_order_item
from pos_engine.services.totals import compute_totals, service_fee
#tool file contain endpoints
router = APIRouter()

# ---------- Request Schemas ----------
class InterimTotalReq(BaseModel):
    lines: List[Any] = Field(default_factory=list)  # stored/untrusted cart lines
    discount_rp: float = 0
    discount_pct: float = 0

class FinalizeReq(InterimTotalReq):
    fee: Optional[float] = None  # None -> configured service fee
    include_fee: bool = True

class DraftReq(BaseModel):
    draft: Any = None


def _lines(raw_lines):
    lines = [ln for ln in (normalize_cart_line(x) for x in raw_lines) if ln is not None]
    return lines, len(raw_lines) - len(lines)


@router.post("/tool/interim_total")
def interim_total(req: InterimTotalReq):
    """
    Stateless subtotal/discount estimate for the cashier screen (no fee).
    """
    if not req.lines:
        raise HTTPException(status_code=400, detail="lines is required")

    lines, dropped = _lines(req.lines)
    try:
        totals = compute_totals(lines, req.discount_rp, req.discount_pct)
    except PricingInputError as e:
        raise HTTPException(status_code=400, detail=str(e))

    result = totals.model_dump()
    result["dropped_lines"] = dropped
    result["note"] = "Interim: estimate without service fee"
    return result


# ---------- FINALIZE ----------
@router.post("/tool/finalize")
def finalize(req: FinalizeReq):
    """
    Stateless final calculator: totals including service fee + submission items.
    """
    if not req.lines:
        raise HTTPException(status_code=400, detail="lines is required")

    lines, dropped = _lines(req.lines)
    subtotal = sum(l.unit_price * l.quantity for l in lines)
    try:
        if not req.include_fee:
            fee = 0.0
        elif req.fee is not None:
            fee = req.fee
        else:
            fee = service_fee(subtotal)
        totals = compute_totals(lines, req.discount_rp, req.discount_pct, fee)
    except PricingInputError as e:
        raise HTTPException(status_code=400, detail=str(e))

    return {
        "items": [to_order_item(l) for l in lines],
        "pricing": totals.model_dump(),
        "currency": config.CURRENCY,
        "dropped_lines": dropped,
        "note": "Final: fee + total",
    }


@router.post("/tool/draft/normalize")
def draft_normalize(req: DraftReq):
    """Repair a persisted cashier draft; an unreadable draft gives ok=false."""
    draft = normalize_draft(req.draft)
    if draft is None:
        return {"ok": False, "draft": None}
    return {"ok": True, "draft": draft_to_payload(draft)}
