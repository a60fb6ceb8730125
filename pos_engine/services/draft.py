"""
Rebuild cart lines and drafts from whatever the browser or a chat session
stored. Input is untrusted: fields may be missing, negative, strings instead
of numbers or in an older shape. The functions here never raise; a line that
cannot be recovered comes back as None and the caller drops it.
"""
import logging
from typing import Any, Dict, List, Optional

from pydantic import ValidationError

from pos_engine.schemas.models import AddonSelection, CartLine, OrderDraft
from pos_engine.services.pricing_engine import addon_total, identity_key, to_order_item
from pos_engine.utils.common import _coerce_list, _maybe_json, to_number

log = logging.getLogger(__name__)


def _first(d: Dict[str, Any], *keys):
    for k in keys:
        if d.get(k) is not None:
            return d[k]
    return None


def _normalize_addons(raw_addons) -> List[AddonSelection]:
    out = []
    for a in _coerce_list(raw_addons):
        if not isinstance(a, dict):
            continue
        aid = _first(a, "id", "addonId", "addon_id")
        if aid is None or str(aid).strip() == "":
            continue
        qty = to_number(_first(a, "quantity", "qty"))
        qty = max(0, int(qty)) if qty is not None else 0
        if qty == 0:
            continue
        price = to_number(_first(a, "unitPrice", "unitPriceAtSelection", "unit_price_at_selection", "price"))
        out.append(AddonSelection(
            addon_id=str(aid),
            name=str(a.get("name") or ""),
            quantity=qty,
            unit_price_at_selection=price if (price is not None and price >= 0) else 0.0,
        ))
    return out


def normalize_cart_line(raw: Any) -> Optional[CartLine]:
    raw = _maybe_json(raw)
    if not raw or not isinstance(raw, dict):
        return None
    item_id = _first(raw, "id", "itemId", "item_id")
    if item_id is None or str(item_id).strip() == "":
        return None
    item_id = str(item_id)

    try:
        selections = _normalize_addons(_first(raw, "addons", "addonSelections", "addon_selections"))
        addons_sum = addon_total(selections)

        base = to_number(_first(raw, "basePrice", "base_price"))
        if base is None or base < 0:
            # stored total is trusted less than an explicit base, but more than nothing
            stored = to_number(_first(raw, "price", "unitPrice", "unit_price"))
            base = max(0.0, (stored or 0.0) - addons_sum)

        qty = to_number(_first(raw, "quantity", "qty"))
        qty = 1 if qty is None else max(1, int(qty))

        key = identity_key(item_id, selections)
        stored_key = _first(raw, "identityKey", "cartKey", "identity_key")
        if stored_key and stored_key != key:
            log.debug("Cart key %r does not match selections, using %r", stored_key, key)

        notes = raw.get("notes")
        return CartLine(
            item_id=item_id,
            name=str(raw.get("name") or ""),
            base_price=base,
            unit_price=base + addons_sum,
            addon_selections=tuple(selections),
            quantity=qty,
            notes=notes if isinstance(notes, str) else "",
            identity_key=key,
        )
    except (ValidationError, TypeError, ValueError, OverflowError) as e:
        log.warning("Dropping unrecoverable cart line %r: %s", item_id, e)
        return None


def normalize_draft(raw: Any) -> Optional[OrderDraft]:
    """Whole persisted cashier draft; bad lines are dropped, not fatal."""
    raw = _maybe_json(raw)
    if not raw or not isinstance(raw, dict):
        return None

    lines = [ln for ln in (normalize_cart_line(x) for x in _coerce_list(raw.get("cart"))) if ln is not None]
    discount_rp = to_number(_first(raw, "discountRp", "discount_rp")) or 0.0
    discount_pct = to_number(_first(raw, "discountPct", "discount_pct")) or 0.0
    ts = raw.get("timestamp")

    return OrderDraft(
        cart=lines,
        discount_rp=max(0.0, discount_rp),
        discount_pct=min(100.0, max(0.0, discount_pct)),
        customer_name=str(_first(raw, "customerName", "customer_name") or ""),
        customer_phone=str(_first(raw, "customerPhone", "customer_phone") or ""),
        send_notif=bool(_first(raw, "sendNotif", "send_notif")),
        payment_method=str(_first(raw, "paymentMethod", "payment_method") or "QRIS"),
        timestamp=ts if isinstance(ts, (int, float, str)) and not isinstance(ts, bool) else None,
    )


def line_to_draft(line: CartLine) -> Dict[str, Any]:
    out = to_order_item(line)
    out["notes"] = line.notes
    out["identityKey"] = line.identity_key
    return out


def draft_to_payload(draft: OrderDraft) -> Dict[str, Any]:
    """Storage shape of a draft; `normalize_draft` reads it back."""
    return {
        "cart": [line_to_draft(l) for l in draft.cart],
        "discountRp": draft.discount_rp,
        "discountPct": draft.discount_pct,
        "customerName": draft.customer_name,
        "customerPhone": draft.customer_phone,
        "sendNotif": draft.send_notif,
        "paymentMethod": draft.payment_method,
        "timestamp": draft.timestamp,
    }
