from __future__ import annotations

from collections import defaultdict
from collections.abc import Iterable, Sequence
from datetime import date, datetime, timezone
from typing import Any

from ..config import settings
from ..logging import get_logger
from ..models.market import DailyStat, ListingSnapshot, Sale
from ..models.thresholds import Thresholds
from .outliers import filter_sales
from .robust import median, round_half_up

_log = get_logger()


def sale_date(sale: Sale) -> date:
    return datetime.fromtimestamp(sale.timestamp, tz=timezone.utc).date()


def sales_on_day(sales: Iterable[Sale], stat_date: date) -> list[Sale]:
    """Sales whose UTC timestamp falls on ``stat_date``."""
    return [s for s in sales if sale_date(s) == stat_date]


def group_sales_by_day(sales: Iterable[Sale]) -> dict[date, list[Sale]]:
    days: dict[date, list[Sale]] = defaultdict(list)
    for s in sales:
        days[sale_date(s)].append(s)
    return dict(days)


def listing_snapshot(listings: Iterable[dict[str, Any]]) -> ListingSnapshot:
    """Summarize Universalis ``listings`` into a count and total quantity."""
    count = 0
    qty = 0
    for entry in listings:
        count += 1
        qty += max(0, int(entry.get("quantity", 0) or 0))
    return ListingSnapshot(count=count, total_quantity=qty)


def aggregate_day(
    item_id: int,
    world_id: int,
    stat_date: date,
    sales: Sequence[Sale],
    listings: ListingSnapshot | None = None,
    typical_price: float | None = None,
    price_p90: float | None = None,
    cfg: Thresholds | None = None,
) -> DailyStat:
    """Build the DailyStat row for one (item, world, date).

    Pure and deterministic: the same sales, listings and anchor always produce
    an identical row, so callers can upsert it as many times as they like.
    """
    cfg = cfg or settings.thresholds()
    listings = listings or ListingSnapshot()

    units = sum(s.quantity for s in sales)
    revenue = sum(s.price_per_unit * s.quantity for s in sales)
    prices = [s.price_per_unit for s in sales if s.quantity > 0]

    result = filter_sales(sales, typical_price=typical_price, cfg=cfg)
    robust_avg: int | None = None
    robust_units = 0
    robust_revenue = 0
    if not result.is_low_confidence:
        robust_units = sum(c.sale.quantity for c in result.kept)
        robust_revenue = sum(c.revenue for c in result.kept)
        mid = median(c.effective_price for c in result.kept)
        robust_avg = round_half_up(mid) if mid is not None else None

    stat = DailyStat(
        item_id=item_id,
        world_id=world_id,
        stat_date=stat_date,
        units_sold=units,
        total_revenue=revenue,
        avg_price=round_half_up(revenue / units) if units > 0 else 0,
        min_price=min(prices) if prices else None,
        max_price=max(prices) if prices else None,
        active_listings=listings.count,
        total_listings_quantity=listings.total_quantity,
        robust_avg_price=robust_avg,
        robust_total_revenue=robust_revenue,
        robust_units_sold=robust_units,
        robust_sample_size=result.sample_size,
        typical_price_30d=typical_price,
        price_p90_30d=price_p90,
        is_low_confidence=result.is_low_confidence,
    )
    _log.debug(
        "daily_stat_aggregated",
        item_id=item_id,
        world_id=world_id,
        stat_date=stat_date.isoformat(),
        units_sold=units,
        robust_sample_size=result.sample_size,
    )
    return stat
