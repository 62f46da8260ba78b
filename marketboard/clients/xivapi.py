from __future__ import annotations

from typing import Any, cast

import httpx
from tenacity import AsyncRetrying, retry_if_exception_type, stop_after_attempt, wait_exponential

from ..config import settings
from ..db.cache import get_json, ns, set_json
from ..logging import get_logger
from ..models.market import ItemMeta
from ..models.recipe import Ingredient, Recipe

_log = get_logger()
HTTP_NOT_FOUND = 404
MAX_INGREDIENT_SLOTS = 10


def _retryer() -> AsyncRetrying:
    return AsyncRetrying(
        reraise=True,
        stop=stop_after_attempt(max(1, settings.RETRY_MAX)),
        wait=wait_exponential(multiplier=0.2, min=0.2, max=3),
        retry=retry_if_exception_type(
            (httpx.ReadTimeout, httpx.ConnectTimeout, httpx.HTTPStatusError)
        ),
    )


def _client() -> httpx.AsyncClient:
    return httpx.AsyncClient(
        base_url=str(settings.XIVAPI_BASE),
        timeout=httpx.Timeout(10.0, read=10.0),
        headers={"User-Agent": settings.USER_AGENT},
        http2=True,
    )


async def _get(path: str, params: dict[str, str]) -> dict[str, Any] | None:
    async with _client() as client:
        async for attempt in _retryer():
            with attempt:
                resp = await client.get(path, params=params)
                if resp.status_code == HTTP_NOT_FOUND:
                    return None
                resp.raise_for_status()
                return cast(dict[str, Any], resp.json())
    return None


def meta_from_payload(item_id: int, data: dict[str, Any]) -> ItemMeta:
    category = (data.get("ItemUICategory") or {}).get("Name") or (data.get("ItemKind") or {}).get("Name")
    recipes = data.get("Recipes") or []
    return ItemMeta(
        item_id=item_id,
        name=data.get("Name") or None,
        category=category or None,
        is_craftable=bool(recipes),
    )


def first_recipe_id(data: dict[str, Any]) -> int | None:
    recipes = data.get("Recipes") or []
    if recipes and isinstance(recipes[0], dict) and recipes[0].get("ID"):
        return int(recipes[0]["ID"])
    return None


def recipe_from_payload(item_id: int, data: dict[str, Any]) -> Recipe:
    """Accept both the flat ``ItemIngredient{n}TargetID`` layout and an ``Ingredients`` list."""
    ingredients: list[Ingredient] = []
    for ing in data.get("Ingredients") or []:
        iid = int((ing.get("ItemIngredient") or {}).get("ID") or 0)
        qty = int(ing.get("AmountIngredient") or 0)
        if iid and qty:
            ingredients.append(Ingredient(item_id=iid, quantity=qty))
    if not ingredients:
        for slot in range(MAX_INGREDIENT_SLOTS):
            iid = int(data.get(f"ItemIngredient{slot}TargetID") or 0)
            qty = int(data.get(f"AmountIngredient{slot}") or 0)
            if iid and qty:
                ingredients.append(Ingredient(item_id=iid, quantity=qty))
    return Recipe(
        recipe_id=data.get("ID"),
        result_item_id=item_id,
        amount_result=int(data.get("AmountResult") or 1),
        ingredients=ingredients,
    )


async def get_item_payload(item_id: int) -> dict[str, Any] | None:
    """Raw XIVAPI item row (name, UI category, recipes), cached at ``x:item:{id}``."""
    key = ns("x", "item", item_id)
    cached = await get_json(key)
    if cached is not None:
        return cast(dict[str, Any], cached)
    data = await _get(
        f"/item/{item_id}",
        {"columns": "ID,Name,ItemUICategory.Name,ItemKind.Name,Recipes", "language": "en"},
    )
    if data is not None:
        await set_json(key, data, ttl=settings.CACHE_TTL_LONG)
    _log.info("xivapi_item_fetched", item_id=item_id, found=data is not None)
    return data


async def get_item_meta(item_id: int) -> ItemMeta:
    data = await get_item_payload(item_id)
    if data is None:
        return ItemMeta(item_id=item_id)
    return meta_from_payload(item_id, data)


async def get_recipe(item_id: int) -> Recipe | None:
    """First recipe that produces ``item_id``, or None when the item is not craftable."""
    item = await get_item_payload(item_id)
    recipe_id = first_recipe_id(item) if item else None
    if recipe_id is None:
        return None
    data = await _get(f"/recipe/{recipe_id}", {"language": "en"})
    if not data:
        return None
    recipe = recipe_from_payload(item_id, data)
    _log.info("xivapi_recipe_fetched", item_id=item_id, ingredients=len(recipe.ingredients))
    return recipe
