from __future__ import annotations

from fastapi import APIRouter, HTTPException, Query
from pydantic import ValidationError

from ...config import settings
from ...models.metrics import StatsMode, Timeframe
from ...models.query import CraftableFilter, FilterCriteria, RankingMetric, TopItemsResponse
from ...services.board import fetch_top_items
from ...services.scope import Scope, UnknownScopeError, resolve_scope

router = APIRouter(tags=["top-items"])


def _scope(value: str | None) -> Scope:
    try:
        return resolve_scope(value or settings.DEFAULT_SCOPE)
    except UnknownScopeError as exc:
        raise HTTPException(status_code=400, detail=str(exc))


def _criteria(
    categories: str | None,
    craftable: CraftableFilter,
    min_velocity: float | None,
    min_revenue: int | None,
    max_listings: int | None,
    min_price: int | None,
) -> FilterCriteria:
    cats = {c.strip() for c in (categories or "").split(",") if c.strip()}
    try:
        return FilterCriteria.from_craftable(
            craftable,
            categories=cats,
            min_sales_velocity=min_velocity,
            min_revenue=min_revenue,
            max_listings=max_listings,
            min_price=min_price,
        )
    except ValidationError as exc:
        raise HTTPException(status_code=400, detail=exc.errors()[0].get("msg", "invalid filters"))


@router.get("/top-items")
async def get_top_items(
    scope: str | None = Query(None, description="World name, data center, or all-na"),
    timeframe: Timeframe = Query(Timeframe.SEVEN_DAYS),
    categories: str | None = Query(None, description="Comma-separated item UI categories"),
    craftable: CraftableFilter = Query(CraftableFilter.ANY),
    mode: StatsMode = Query(StatsMode.AUTO, description="auto|robust|raw"),
    min_velocity: float | None = Query(None, ge=0.0, description="Minimum units sold per day"),
    min_revenue: int | None = Query(None, ge=0),
    max_listings: int | None = Query(None, ge=0),
    min_price: int | None = Query(None, ge=0),
    top_n: int = Query(settings.DEFAULT_TOP_N, ge=1, le=500),
    ranking: RankingMetric = Query(RankingMetric.BEST_TO_SELL),
) -> TopItemsResponse:
    """Most profitable items to sell for a world or data center over a timeframe."""
    resolved = _scope(scope)
    criteria = _criteria(categories, craftable, min_velocity, min_revenue, max_listings, min_price)
    return await fetch_top_items(resolved, timeframe, criteria, ranking, top_n, mode)
