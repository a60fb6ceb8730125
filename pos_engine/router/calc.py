from fastapi import APIRouter, HTTPException
from pydantic import BaseModel, Field
from typing import Any, Dict, List, Optional

from pos_engine.schemas.models import MenuItem
from pos_engine.services.catalog_index import index_addons
from pos_engine.services.catalog_loader import load_addons_for_item
from pos_engine.services.errors import PricingInputError
from pos_engine.services.pricing_engine import (
    build_cart_line, can_skip_addons, parse_addon_selection_input, to_order_item,
)

router = APIRouter(prefix="/calc")


class LineReq(BaseModel):
    item: MenuItem
    addons: List[Dict[str, Any]] = Field(default_factory=list)  # [{id, quantity}]
    text: Optional[str] = None  # chat reply, e.g. "1:2, oat-milk" / "skip"
    catalog: Optional[List[Dict[str, Any]]] = None  # add-on snapshot; db when omitted
    quantity: int = 1
    notes: str = ""
    skip_addons: bool = False


@router.post("/line")
def calc_line(req: LineReq) -> Dict[str, Any]:
    """
    Price one item + add-ons:
    - inactive / unknown add-ons rejected
    - unmentioned add-ons fall back to default, then minimum quantity
    - selection problems come back in `errors` (HTTP 200), never as 4xx
    """
    if req.catalog is not None:
        raw_catalog = req.catalog
    else:
        try:
            raw_catalog = load_addons_for_item(req.item.id)
        except KeyError as e:
            raise HTTPException(status_code=404, detail=str(e))
    catalog = index_addons(raw_catalog)
    can_skip, blocking = can_skip_addons(catalog)

    requested = req.addons
    skip = req.skip_addons
    parse_errors = []
    if req.text is not None:
        requested, parse_errors, skipped = parse_addon_selection_input(req.text, catalog)
        skip = skip or skipped

    try:
        result = build_cart_line(
            req.item, requested, catalog, quantity=req.quantity, notes=req.notes, skip_addons=skip,
        )
    except PricingInputError as e:
        raise HTTPException(status_code=400, detail=str(e))

    errors = parse_errors + result.errors
    line = result.line if not errors else None
    return {
        "ok": line is not None,
        "line": line.model_dump() if line else None,
        "order_item": to_order_item(line) if line else None,
        "errors": [e.model_dump() for e in errors],
        "unmet_required": result.unmet_required,
        "can_skip": can_skip,
        "skip_blocked_by": blocking,
    }
