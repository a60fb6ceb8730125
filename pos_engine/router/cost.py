from fastapi import APIRouter, HTTPException
from pydantic import BaseModel
from typing import Any, Dict, List, Optional

from pos_engine.schemas.models import MenuItem
from pos_engine.services.catalog_index import index_registry
from pos_engine.services.catalog_loader import load_ingredients, load_menu_item
from pos_engine.services.cost_resolver import (
    find_composition_cycles, menu_item_costing, resolve_cost, resolve_unit_cost, suggest_selling_price,
)
from pos_engine.services.errors import PricingInputError
from pos_engine.utils.common import money

router = APIRouter(prefix="/cost", tags=["cost"])

# ---------- Request Schemas ----------
class IngredientCostReq(BaseModel):
    ingredient_id: str
    quantity: float = 0
    ingredients: Optional[List[Dict[str, Any]]] = None  # registry snapshot; db when omitted

class RecipeCostReq(BaseModel):
    item: Optional[MenuItem] = None
    item_id: Optional[str] = None  # menu store lookup when `item` is omitted
    ingredients: Optional[List[Dict[str, Any]]] = None

class MarginReq(BaseModel):
    cost: float
    target_margin_pct: float

class RegistryReq(BaseModel):
    ingredients: Optional[List[Dict[str, Any]]] = None


def _registry(snapshot):
    return index_registry(snapshot if snapshot is not None else load_ingredients())


@router.post("/ingredient")
def ingredient_cost(req: IngredientCostReq):
    """
    Cost of `quantity` units of one ingredient, compound recipes expanded.
    quantity 0 charges one unit (packaging).
    """
    registry = _registry(req.ingredients)
    ing = registry.get(req.ingredient_id)
    if ing is None:
        raise HTTPException(status_code=404, detail=f"Ingredient not found: '{req.ingredient_id}'")

    diagnostics: List[Dict[str, Any]] = []
    try:
        cost = resolve_cost(ing, req.quantity, registry, diagnostics)
    except PricingInputError as e:
        raise HTTPException(status_code=400, detail=str(e))

    return {
        "ingredient_id": ing.id,
        "quantity": req.quantity,
        "unit_cost": resolve_unit_cost(ing, registry),
        "cost": cost,
        "cost_rounded": money(cost),
        "diagnostics": diagnostics,
    }


@router.post("/recipe")
def recipe_costing(req: RecipeCostReq):
    """HPP of a menu item from its recipe (or its stored cost reference)."""
    item = req.item
    if item is None:
        if not req.item_id:
            raise HTTPException(status_code=400, detail="item or item_id is required")
        try:
            item = MenuItem.model_validate(load_menu_item(req.item_id))
        except KeyError as e:
            raise HTTPException(status_code=404, detail=str(e))
    try:
        return menu_item_costing(item, _registry(req.ingredients))
    except PricingInputError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.post("/margin")
def margin(req: MarginReq):
    try:
        price = suggest_selling_price(req.cost, req.target_margin_pct)
    except PricingInputError as e:
        raise HTTPException(status_code=400, detail=str(e))
    unbounded = price == float("inf")
    return {
        "cost": req.cost,
        "target_margin_pct": req.target_margin_pct,
        "suggested_price": None if unbounded else price,
        "unbounded": unbounded,
    }


@router.post("/validate")
def validate_registry(req: RegistryReq):
    """Cycles in compound recipes; a recipe in a cycle should not be saved."""
    cycles = find_composition_cycles(_registry(req.ingredients))
    return {"ok": not cycles, "cycles": cycles}
