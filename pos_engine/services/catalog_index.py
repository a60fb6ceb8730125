import logging
from typing import Any, Dict, Iterable, Mapping, Optional, Union

from pydantic import ValidationError

from pos_engine.schemas.models import AddonDefinition, Ingredient, ValidationIssue
from pos_engine.services.errors import INVALID_CONFIGURATION

log = logging.getLogger(__name__)

Registry = Mapping[str, Ingredient]


def _as_ingredient(raw: Union[Ingredient, Dict[str, Any]]) -> Optional[Ingredient]:
    if isinstance(raw, Ingredient):
        return raw
    if not isinstance(raw, dict):
        return None
    try:
        return Ingredient.model_validate(raw)
    except ValidationError as e:
        log.warning("Skipping malformed ingredient %r: %s", raw.get("id"), e.errors()[:1])
        return None


def index_registry(ingredients: Iterable[Union[Ingredient, Dict[str, Any]]]) -> Dict[str, Ingredient]:
    """Arena of ingredients keyed by id. Later duplicates replace earlier ones."""
    idx: Dict[str, Ingredient] = {}
    for raw in ingredients or []:
        ing = _as_ingredient(raw)
        if ing is None or not ing.id:
            continue
        if ing.id in idx:
            log.warning("Duplicate ingredient id in registry snapshot: %s", ing.id)
        idx[ing.id] = ing
    return idx


def _inactive(raw: Dict[str, Any]) -> bool:
    flag = raw.get("isActive", raw.get("is_active", True))
    return flag is False or str(flag).strip().lower() in ("0", "false", "no", "off")


class AddonIndex(Dict[str, AddonDefinition]):
    """
    Active add-ons keyed by lower-cased id, catalog order preserved.

    `invalid` holds active catalog rows that failed validation, keyed the same
    way. They cannot be sold, but they must not vanish either: a line for the
    item is refused until the add-on is fixed.
    """

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.invalid: Dict[str, ValidationIssue] = {}


def index_addons(catalog: Iterable[Union[AddonDefinition, Dict[str, Any]]]) -> AddonIndex:
    idx = AddonIndex()
    for raw in catalog or []:
        if isinstance(raw, AddonDefinition):
            addon = raw
        elif isinstance(raw, dict) and raw.get("id"):
            try:
                addon = AddonDefinition.model_validate(raw)
            except ValidationError as e:
                if _inactive(raw):
                    continue
                addon_id = str(raw["id"])
                name = str(raw.get("name") or "") or None
                log.warning("Invalid add-on %r in catalog: %s", addon_id, e.errors()[:1])
                idx.pop(addon_id.lower(), None)
                idx.invalid[addon_id.lower()] = ValidationIssue(
                    code=INVALID_CONFIGURATION,
                    message=f"Konfigurasi add-on {name or addon_id} tidak valid",
                    addon_id=addon_id, addon_name=name,
                )
                continue
        else:
            continue
        if not addon.is_active:
            continue
        idx.invalid.pop(addon.id.lower(), None)
        idx[addon.id.lower()] = addon
    return idx
