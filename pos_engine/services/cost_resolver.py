"""
Ingredient cost resolution (HPP).

A leaf ingredient costs ``unit_buy_price / net_quantity`` per unit. A compound
ingredient (e.g. an espresso shot built from beans + water) costs the sum of
its batch recipe divided by the batch yield, resolved recursively through the
registry arena. The walk threads a ``visited`` set so a recipe that references
itself, directly or through other ingredients, stops at the repeated id and
contributes zero on that edge instead of recursing forever.

Nothing here rounds; callers round with ``money()`` when the number becomes a
stored or displayed currency amount.
"""
import logging
import math
from typing import Any, Dict, FrozenSet, Iterable, List, Optional, Set, Tuple

from pos_engine.schemas.models import CompositionEntry, Ingredient, MenuItem
from pos_engine.services.catalog_index import Registry
from pos_engine.services.errors import CYCLIC_COMPOSITION, MISSING_REFERENCE, PricingInputError
from pos_engine.utils.common import money

log = logging.getLogger(__name__)

Diagnostics = Optional[List[Dict[str, Any]]]


def _missing(ingredient_id: str, parent_id: Optional[str], diagnostics: Diagnostics) -> None:
    log.info("Ingredient %s referenced by %s not found; costed as 0", ingredient_id, parent_id or "recipe")
    if diagnostics is not None:
        diagnostics.append({"type": MISSING_REFERENCE, "ingredient_id": ingredient_id, "parent_id": parent_id})


def _unit_cost(
    ingredient: Ingredient,
    registry: Registry,
    visited: FrozenSet[str],
    diagnostics: Diagnostics,
    path: Tuple[str, ...],
    memo: Dict[str, float],
) -> Tuple[float, bool]:
    """(unit cost, clean). A clean subtree never hit the cycle guard, so its cost is the same from any path."""
    if ingredient.id in visited:
        cycle = list(path) + [ingredient.id]
        log.warning("Cyclic composition detected: %s; repeated edge costed as 0", " -> ".join(cycle))
        if diagnostics is not None:
            diagnostics.append({"type": CYCLIC_COMPOSITION, "ingredient_id": ingredient.id, "path": cycle})
        return 0.0, False

    if not ingredient.is_compound:
        return (ingredient.unit_buy_price / ingredient.net_quantity if ingredient.net_quantity > 0 else 0.0), True
    if ingredient.id in memo:
        return memo[ingredient.id], True

    seen = visited | {ingredient.id}
    sub_path = path + (ingredient.id,)
    batch = 0.0
    clean = True
    for entry in ingredient.composition:
        child = registry.get(entry.ingredient_id)
        if child is None:
            _missing(entry.ingredient_id, ingredient.id, diagnostics)
            continue
        cost, child_clean = _unit_cost(child, registry, seen, diagnostics, sub_path, memo)
        batch += cost * entry.quantity
        clean = clean and child_clean

    unit = batch / ingredient.composition_yield
    if clean:
        memo[ingredient.id] = unit
    return unit, clean


def resolve_unit_cost(
    ingredient: Optional[Ingredient],
    registry: Optional[Registry] = None,
    visited: FrozenSet[str] = frozenset(),
    diagnostics: Diagnostics = None,
    _path: Tuple[str, ...] = (),
) -> float:
    """
    Cost of one unit (g, ml, pcs...) of `ingredient`.

    Sub-recipes shared by several parents are expanded once per call.
    """
    if ingredient is None:
        return 0.0
    cost, _ = _unit_cost(ingredient, registry or {}, frozenset(visited), diagnostics, tuple(_path), {})
    return cost


def resolve_cost(
    ingredient: Optional[Ingredient],
    requested_quantity: float,
    registry: Optional[Registry] = None,
    diagnostics: Diagnostics = None,
) -> float:
    """
    Cost of `requested_quantity` units including waste.

    Quantity 0 means "exactly one unit" (cups, lids, stickers that every
    serving carries). Negative or non-finite quantities are refused.
    """
    if requested_quantity is None or not math.isfinite(requested_quantity) or requested_quantity < 0:
        raise PricingInputError(f"quantity must be a finite number >= 0, got {requested_quantity!r}")
    if ingredient is None:
        return 0.0
    qty = 1 if requested_quantity == 0 else requested_quantity
    unit_cost = resolve_unit_cost(ingredient, registry, frozenset(), diagnostics)
    return unit_cost * qty * (1 + ingredient.waste_percent / 100)


def recipe_cost(
    recipe: Iterable[CompositionEntry],
    registry: Registry,
    diagnostics: Diagnostics = None,
) -> float:
    total = 0.0
    for entry in recipe or ():
        ing = registry.get(entry.ingredient_id)
        if ing is None:
            _missing(entry.ingredient_id, None, diagnostics)
            continue
        total += resolve_cost(ing, entry.quantity, registry, diagnostics)
    return total


def menu_item_costing(item: MenuItem, registry: Registry) -> Dict[str, Any]:
    """HPP card for a menu item: recipe cost vs selling price."""
    diagnostics: List[Dict[str, Any]] = []
    if item.recipe:
        cost = money(recipe_cost(item.recipe, registry, diagnostics))
    else:
        cost = money(item.base_price or 0.0)
    price = item.price
    return {
        "item_id": item.id,
        "name": item.name,
        "cost": cost,
        "price": price,
        "margin": money(price - cost),
        "food_cost_pct": round(cost / price * 100, 2) if price > 0 else None,
        "diagnostics": diagnostics,
    }


def suggest_selling_price(cost: float, target_margin_pct: float) -> float:
    # price = cost / (1 - margin)
    if not (math.isfinite(cost) and math.isfinite(target_margin_pct)):
        raise PricingInputError(f"cost and margin must be finite, got {cost!r} / {target_margin_pct!r}")
    if cost <= 0:
        return 0.0
    if target_margin_pct >= 100:
        return math.inf
    return money(cost / (1 - target_margin_pct / 100))


def _children(registry: Registry, node_id: str) -> List[str]:
    ing = registry.get(node_id)
    if ing is None or not ing.is_compound:
        return []
    return [e.ingredient_id for e in ing.composition if e.ingredient_id in registry]


def _cyclic_components(registry: Registry) -> List[Set[str]]:
    """Strongly connected components that contain at least one cycle (Tarjan)."""
    index: Dict[str, int] = {}
    low: Dict[str, int] = {}
    stack: List[str] = []
    on_stack: Set[str] = set()
    out: List[Set[str]] = []

    def _connect(node_id: str) -> None:
        index[node_id] = low[node_id] = len(index)
        stack.append(node_id)
        on_stack.add(node_id)
        for child in _children(registry, node_id):
            if child not in index:
                _connect(child)
                low[node_id] = min(low[node_id], low[child])
            elif child in on_stack:
                low[node_id] = min(low[node_id], index[child])
        if low[node_id] == index[node_id]:
            comp = set()
            while True:
                top = stack.pop()
                on_stack.discard(top)
                comp.add(top)
                if top == node_id:
                    break
            if len(comp) > 1 or node_id in _children(registry, node_id):
                out.append(comp)

    for ing_id in sorted(registry):
        if ing_id not in index:
            _connect(ing_id)
    return out


def find_composition_cycles(registry: Registry) -> List[List[str]]:
    """
    Every elementary cycle in the composition graph, each starting at its
    smallest id. Used to refuse a recipe when it is saved.

    Only strongly connected components are searched, and a cycle is only
    reported from its smallest member, so acyclic parts of the registry cost
    nothing and no cycle is listed twice.
    """
    cycles: List[List[str]] = []
    seen_keys = set()
    component_of: Dict[str, Set[str]] = {}
    for comp in _cyclic_components(registry):
        for node_id in comp:
            component_of[node_id] = comp

    def _walk(start: str, node_id: str, stack: List[str], comp: Set[str]) -> None:
        for child in _children(registry, node_id):
            if child == start:
                key = tuple(stack)
                if key not in seen_keys:
                    seen_keys.add(key)
                    cycles.append(list(stack))
            elif child in comp and child > start and child not in stack:
                _walk(start, child, stack + [child], comp)

    for ing_id in sorted(component_of):
        _walk(ing_id, ing_id, [ing_id], component_of[ing_id])
    return cycles
