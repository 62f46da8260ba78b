from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from ..clients.universalis import get_items_world, parse_sales
from ..clients.xivapi import get_recipe
from ..models.recipe import Recipe
from .robust import median, round_half_up


def ingredient_price(data: Mapping[str, Any]) -> float | None:
    """Median recent sale price, else the cheapest current listing."""
    mid = median(s.price_per_unit for s in parse_sales(data.get("recentHistory", [])))
    if mid is not None:
        return mid
    return min(
        (float(entry["pricePerUnit"]) for entry in data.get("listings", []) if entry.get("pricePerUnit")),
        default=None,
    )


def material_cost(recipe: Recipe, unit_prices: Mapping[int, float | None]) -> int | None:
    """Per-unit material cost of one craft, or None when any ingredient is unpriced."""
    if not recipe.ingredients:
        return None
    total = 0.0
    for ing in recipe.ingredients:
        price = unit_prices.get(ing.item_id)
        if price is None:
            return None
        total += price * ing.quantity
    return round_half_up(total / recipe.amount_result)


async def resolve_material_cost(item_id: int, world: str) -> int | None:
    recipe = await get_recipe(item_id)
    if recipe is None or not recipe.ingredients:
        return None
    ids = [ing.item_id for ing in recipe.ingredients]
    data_list = await get_items_world(ids, world)
    prices = {iid: ingredient_price(data) for iid, data in zip(ids, data_list)}
    return material_cost(recipe, prices)
