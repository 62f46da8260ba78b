from __future__ import annotations

from io import BytesIO

from fastapi import APIRouter, Query
from fastapi.responses import StreamingResponse

from ...exporters.excel import build_workbook
from ...models.metrics import StatsMode, Timeframe
from ...models.query import CraftableFilter, RankingMetric
from .top_items import get_top_items

router = APIRouter(prefix="/export", tags=["export"])


@router.get("/excel/top-items")
async def export_top_items_excel(
    scope: str | None = Query(None),
    timeframe: Timeframe = Query(Timeframe.SEVEN_DAYS),
    categories: str | None = Query(None),
    craftable: CraftableFilter = Query(CraftableFilter.ANY),
    mode: StatsMode = Query(StatsMode.AUTO),
    min_velocity: float | None = Query(None, ge=0.0),
    min_revenue: int | None = Query(None, ge=0),
    max_listings: int | None = Query(None, ge=0),
    min_price: int | None = Query(None, ge=0),
    top_n: int = Query(100, ge=1, le=1000),
    ranking: RankingMetric = Query(RankingMetric.BEST_TO_SELL),
) -> StreamingResponse:
    """Same ranking as ``/top-items``, delivered as an .xlsx workbook."""
    data = await get_top_items(
        scope=scope,
        timeframe=timeframe,
        categories=categories,
        craftable=craftable,
        mode=mode,
        min_velocity=min_velocity,
        min_revenue=min_revenue,
        max_listings=max_listings,
        min_price=min_price,
        top_n=top_n,
        ranking=ranking,
    )
    wb = build_workbook(data.items, data.metrics, scope=data.scope, timeframe=data.timeframe)
    buf = BytesIO()
    wb.save(buf)
    buf.seek(0)
    filename = f"ffxiv_top_items_{data.scope.replace(' ', '_').lower()}_{data.timeframe}.xlsx"
    headers = {"Content-Disposition": f"attachment; filename={filename}"}
    return StreamingResponse(
        buf,
        media_type=(
            "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"
        ),
        headers=headers,
    )
