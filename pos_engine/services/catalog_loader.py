import logging
from functools import lru_cache
from typing import Any, Dict, List

from fastapi import HTTPException
from pymongo.errors import PyMongoError

from pos_engine.db import mongo

log = logging.getLogger(__name__)


@lru_cache(maxsize=1)
def load_ingredients() -> List[Dict[str, Any]]:
    """Registry snapshot. Cached; call `refresh_catalogs()` after edits."""
    try:
        return list(mongo.ingredients().find({}, {"_id": 0})) or []
    except PyMongoError as e:
        log.warning("Ingredient registry unavailable: %s", e)
        raise HTTPException(status_code=503, detail=f"Database unavailable: {e}")


@lru_cache(maxsize=256)
def _menu_item_doc(item_id: str) -> Dict[str, Any]:
    try:
        doc = mongo.menu_items().find_one({"id": item_id}, {"_id": 0})
    except PyMongoError as e:
        log.warning("Menu store unavailable: %s", e)
        raise HTTPException(status_code=503, detail=f"Database unavailable: {e}")
    if not doc:
        raise KeyError(f"Menu item not found: '{item_id}'")
    return doc


def load_menu_item(item_id: str) -> Dict[str, Any]:
    return dict(_menu_item_doc(str(item_id)))


@lru_cache(maxsize=256)
def _addons_for_item(item_id: str) -> List[Dict[str, Any]]:
    """
    Add-ons linked to a menu item. Links live on the menu item document
    (`addons: [{id, minQuantity, maxQuantity, defaultQuantity, isRequired,
    priceOverride}]`) and override the catalog entry they point at.
    """
    item = _menu_item_doc(item_id)
    links = item.get("addons") or []
    if not links:
        return []
    ids = [l.get("id") for l in links if isinstance(l, dict) and l.get("id")]
    try:
        catalog = {d["id"]: d for d in mongo.addons().find({"id": {"$in": ids}}, {"_id": 0}) if d.get("id")}
    except PyMongoError as e:
        log.warning("Add-on catalog unavailable: %s", e)
        raise HTTPException(status_code=503, detail=f"Database unavailable: {e}")

    out = []
    for link in links:
        if not isinstance(link, dict):
            continue
        base = catalog.get(link.get("id"))
        if base is None:
            log.info("Menu item %s links missing add-on %s", item_id, link.get("id"))
            continue
        merged = {**base, **{k: v for k, v in link.items() if v is not None}}
        if link.get("priceOverride") is not None:
            merged["unitPrice"] = link["priceOverride"]
        out.append(merged)
    return out


def load_addons_for_item(item_id: str) -> List[Dict[str, Any]]:
    return [dict(a) for a in _addons_for_item(str(item_id))]


def refresh_catalogs() -> None:
    load_ingredients.cache_clear()
    _menu_item_doc.cache_clear()
    _addons_for_item.cache_clear()
