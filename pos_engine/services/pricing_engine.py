import logging
import re
from typing import Any, Dict, Iterable, List, Mapping, Tuple, Union

from pydantic import ValidationError

from pos_engine.schemas.models import (
    AddonDefinition, AddonSelection, CartLine, LineResult, MenuItem,
    RequestedAddon, ValidationIssue, addon_config_issues,
)
from pos_engine.services.catalog_index import AddonIndex, index_addons
from pos_engine.services.errors import (
    INVALID_CONFIGURATION, INVALID_QUANTITY, PricingInputError,
    QUANTITY_EXCEEDS_MAX, REQUIRED_ADDON_UNMET, UNKNOWN_ADDON,
)
from pos_engine.utils.common import SKIP_KEYWORDS, to_number

log = logging.getLogger(__name__)

Catalog = Union[AddonIndex, Iterable[Union[AddonDefinition, Dict[str, Any]]]]

# "2:1", "shot=2", "3x1"
_TOKEN_QTY_RE = re.compile(r"^(.+?)\s*[:=xX]\s*(-?\d+)$")


def _index(catalog: Catalog) -> AddonIndex:
    if isinstance(catalog, AddonIndex):
        return catalog
    if isinstance(catalog, Mapping):
        # hand-built {id: definition}; still active-only and case-insensitive
        catalog = list(catalog.values())
    return index_addons(catalog)


# ---------------------------------------------------------------------
# identity + money helpers
# ---------------------------------------------------------------------

def identity_key(item_id: str, selections: Iterable[AddonSelection]) -> str:
    """
    Canonical cart key: bare item id, or ``item::a:1|b:2`` with add-ons sorted
    by id. Zero-quantity add-ons never take part.
    """
    parts = sorted((s.addon_id, s.quantity) for s in selections if s.quantity > 0)
    if not parts:
        return str(item_id)
    return f"{item_id}::" + "|".join(f"{aid}:{qty}" for aid, qty in parts)


def addon_total(selections: Iterable[AddonSelection]) -> float:
    return sum(s.unit_price_at_selection * s.quantity for s in selections if s.quantity > 0)


def can_skip_addons(catalog: Catalog) -> Tuple[bool, List[str]]:
    """
    (allowed, names blocking it). Skipping needs every active add-on optional
    with min 0; a misconfigured active add-on blocks it as well.
    """
    idx = _index(catalog)
    blocking = [a.name or a.id for a in idx.values() if a.is_required or a.min_quantity > 0]
    blocking += [i.addon_name or i.addon_id for i in idx.invalid.values()]
    return (not blocking), blocking


# ---------------------------------------------------------------------
# catalog maintenance
# ---------------------------------------------------------------------

def check_addon_definition(raw: Dict[str, Any]) -> List[ValidationIssue]:
    """Issues that must block saving this add-on. Empty list means it can be stored."""
    addon_id = str(raw.get("id") or "")
    name = raw.get("name") or addon_id
    issues: List[ValidationIssue] = []

    def _bad(msg):
        issues.append(ValidationIssue(code=INVALID_CONFIGURATION, message=msg, addon_id=addon_id or None, addon_name=name or None))

    if not addon_id:
        _bad("Add-on tanpa id")
    price_raw = next(
        (raw[k] for k in ("unitPrice", "priceOverride", "price", "basePrice") if raw.get(k) is not None), 0
    )
    price = to_number(price_raw)
    if price is None or price < 0:
        _bad(f"{name}: harga tidak valid")

    bounds = {}
    for key, label in (("minQuantity", "minimal"), ("maxQuantity", "maksimal"), ("defaultQuantity", "default")):
        if raw.get(key) is None:
            bounds[key] = None
            continue
        num = to_number(raw[key])
        if num is None or num < 0:
            _bad(f"{name}: jumlah {label} tidak valid")
        bounds[key] = num

    if not issues:
        issues.extend(addon_config_issues(
            addon_id, name, bounds["minQuantity"] or 0, bounds["maxQuantity"], bounds["defaultQuantity"]
        ))
    return issues


# ---------------------------------------------------------------------
# line building
# ---------------------------------------------------------------------

def _coerce_requested(requested, errors: List[ValidationIssue]) -> List[RequestedAddon]:
    out = []
    for req in requested or []:
        if isinstance(req, RequestedAddon):
            out.append(req)
            continue
        if not isinstance(req, dict) or not (req.get("id") or req.get("addonId") or req.get("addon_id")):
            continue
        try:
            out.append(RequestedAddon.model_validate(req))
        except ValidationError:
            rid = str(req.get("id") or req.get("addonId") or req.get("addon_id"))
            errors.append(ValidationIssue(
                code=INVALID_QUANTITY, message=f"Jumlah untuk {rid} tidak valid", addon_id=rid,
            ))
    return out


def build_cart_line(
    item: Union[MenuItem, Dict[str, Any]],
    requested_addons: Iterable[Union[RequestedAddon, Dict[str, Any]]] = (),
    catalog: Catalog = (),
    *,
    quantity: int = 1,
    notes: str = "",
    skip_addons: bool = False,
) -> LineResult:
    """
    Price one sellable item with its add-ons.

    Add-ons the request does not mention fall back to their default quantity,
    else their minimum. Every unmet constraint is collected; the line is only
    built when there are none.
    """
    if isinstance(item, dict):
        item = MenuItem.model_validate(item)
    if quantity is None or quantity < 1:
        raise PricingInputError(f"line quantity must be >= 1, got {quantity!r}")

    idx = _index(catalog)
    # misconfigured active add-ons refuse the whole line
    errors: List[ValidationIssue] = list(idx.invalid.values())
    unmet: List[str] = []
    selections: List[AddonSelection] = []

    if skip_addons:
        allowed, blocking = can_skip_addons(idx)
        if not allowed:
            for a in idx.values():
                if a.is_required or a.min_quantity > 0:
                    errors.append(ValidationIssue(
                        code=REQUIRED_ADDON_UNMET,
                        message=f"{a.name or a.id} wajib dipilih (min {max(a.min_quantity, 1)})",
                        addon_id=a.id, addon_name=a.name,
                    ))
            return LineResult(errors=errors, unmet_required=blocking)
    else:
        requested_qty: Dict[str, int] = {}
        for req in _coerce_requested(requested_addons, errors):
            addon = idx.get(req.addon_id.lower())
            if addon is None and req.addon_id.lower() in idx.invalid:
                continue
            if addon is None:
                log.info("Add-on %s not available for item %s", req.addon_id, item.id)
                errors.append(ValidationIssue(
                    code=UNKNOWN_ADDON,
                    message=f"Add-on {req.addon_id} tidak tersedia untuk menu ini",
                    addon_id=req.addon_id,
                ))
                continue
            if req.quantity < 0:
                errors.append(ValidationIssue(
                    code=INVALID_QUANTITY,
                    message=f"Jumlah untuk {addon.name or addon.id} tidak boleh negatif",
                    addon_id=addon.id, addon_name=addon.name,
                ))
                continue
            requested_qty[addon.id] = req.quantity  # last one wins

        for addon in idx.values():
            if addon.id in requested_qty:
                qty = requested_qty[addon.id]
            elif addon.default_quantity is not None:
                qty = addon.default_quantity
            else:
                qty = addon.min_quantity

            label = addon.name or addon.id
            if addon.is_required and qty < addon.min_quantity:
                errors.append(ValidationIssue(
                    code=REQUIRED_ADDON_UNMET, message=f"{label} minimal {addon.min_quantity}",
                    addon_id=addon.id, addon_name=addon.name,
                ))
                unmet.append(label)
                continue
            if addon.max_quantity is not None and qty > addon.max_quantity:
                errors.append(ValidationIssue(
                    code=QUANTITY_EXCEEDS_MAX, message=f"{label} maksimal {addon.max_quantity}",
                    addon_id=addon.id, addon_name=addon.name,
                ))
                continue
            if qty > 0:
                selections.append(AddonSelection(
                    addon_id=addon.id, name=addon.name, quantity=qty,
                    unit_price_at_selection=addon.unit_price,
                ))

    if errors:
        return LineResult(errors=errors, unmet_required=unmet)

    line = CartLine(
        item_id=item.id,
        name=item.name,
        base_price=item.price,
        unit_price=item.price + addon_total(selections),
        addon_selections=tuple(selections),
        quantity=quantity,
        notes=notes or "",
        identity_key=identity_key(item.id, selections),
    )
    return LineResult(line=line)


def parse_addon_selection_input(
    text: str, catalog: Catalog, *, skip_keywords: Iterable[str] = SKIP_KEYWORDS,
) -> Tuple[List[RequestedAddon], List[ValidationIssue], bool]:
    """
    Read a chat reply such as ``"1:2, oat-milk"`` against the numbered add-on
    list shown to the customer. Returns (requested, errors, skipped).
    """
    idx = _index(catalog)
    if not idx:
        return [], [], True

    raw = (text or "").strip()
    skipped = raw.lower() in tuple(skip_keywords)
    tokens = [] if skipped else [t.strip() for t in re.split(r"[,\n]", raw) if t.strip()]

    by_index = {i: a for i, a in enumerate(idx.values(), start=1)}
    by_name = {(a.name or "").lower(): a for a in idx.values() if a.name}

    requested: List[RequestedAddon] = []
    errors: List[ValidationIssue] = []
    for token in tokens:
        key, qty = token, None
        m = _TOKEN_QTY_RE.match(token)
        if m:
            key, qty = m.group(1).strip(), int(m.group(2))

        if key.isdigit():
            addon = by_index.get(int(key))
        else:
            addon = idx.get(key.lower()) or by_name.get(key.lower())
        if addon is None:
            errors.append(ValidationIssue(code=UNKNOWN_ADDON, message=f"Add-on '{token}' tidak dikenali"))
            continue

        if qty is None:
            qty = addon.min_quantity if addon.min_quantity > 0 else 1
        if qty < 0:
            errors.append(ValidationIssue(
                code=INVALID_QUANTITY, message=f"Jumlah untuk {addon.name or addon.id} tidak boleh negatif",
                addon_id=addon.id, addon_name=addon.name,
            ))
            continue
        requested.append(RequestedAddon(addon_id=addon.id, quantity=qty))

    return requested, errors, skipped


def to_order_item(line: CartLine) -> Dict[str, Any]:
    """Order-submission shape for one cart line."""
    out: Dict[str, Any] = {
        "id": line.item_id,
        "name": line.name,
        "price": line.unit_price,
        "basePrice": line.base_price,
        "quantity": line.quantity,
        "addons": [
            {"id": s.addon_id, "name": s.name, "quantity": s.quantity, "unitPrice": s.unit_price_at_selection}
            for s in line.addon_selections if s.quantity > 0
        ],
    }
    if line.notes:
        out["notes"] = line.notes
    return out
