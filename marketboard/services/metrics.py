from __future__ import annotations

from collections.abc import Iterable
from datetime import date

from ..config import settings
from ..models.market import DailyStat
from ..models.metrics import ItemMetrics, StatsMode, Timeframe
from ..models.thresholds import Thresholds
from .robust import round_half_up

SOURCE_ROBUST = "robust"
SOURCE_RAW = "raw"


def has_robust(stat: DailyStat, cfg: Thresholds) -> bool:
    return stat.robust_avg_price is not None and stat.robust_sample_size >= cfg.min_sample


def row_figures(
    stat: DailyStat,
    mode: StatsMode = StatsMode.AUTO,
    cfg: Thresholds | None = None,
) -> tuple[int, int, str]:
    """Return (units, revenue, source) for one row.

    Units and revenue always come from the same source so that robust and raw
    sums are never blended within a single row.
    """
    cfg = cfg or settings.thresholds()
    if mode == StatsMode.RAW:
        return stat.units_sold, stat.total_revenue, SOURCE_RAW
    if has_robust(stat, cfg):
        return stat.robust_units_sold, stat.robust_total_revenue, SOURCE_ROBUST
    if mode == StatsMode.ROBUST:
        return 0, 0, SOURCE_ROBUST
    return stat.units_sold, stat.total_revenue, SOURCE_RAW


def latest_listings(stats: Iterable[DailyStat]) -> int:
    """Active listings from the newest row with a non-zero count, summed per world.

    A zero count usually means the snapshot was missing that day, so the last
    known count is carried forward instead.
    """
    latest: dict[int, tuple[date, int]] = {}
    for s in stats:
        if s.active_listings <= 0:
            continue
        seen = latest.get(s.world_id)
        if seen is None or s.stat_date > seen[0]:
            latest[s.world_id] = (s.stat_date, s.active_listings)
    return sum(count for _, count in latest.values())


def profit_figures(avg_price: int, material_cost: int | None) -> tuple[int | None, float | None]:
    if material_cost is None or material_cost <= 0 or avg_price <= 0:
        return None, None
    profit = avg_price - material_cost
    return profit, profit / avg_price * 100.0


def calculate_metrics(
    stats: Iterable[DailyStat],
    timeframe: Timeframe,
    material_cost: int | None = None,
    mode: StatsMode = StatsMode.AUTO,
    cfg: Thresholds | None = None,
) -> ItemMetrics:
    """Fold DailyStat rows (one world or a whole data center) into ItemMetrics.

    Velocity divides by the full timeframe, so days without a row count as
    zero sales rather than being excluded.
    """
    cfg = cfg or settings.thresholds()
    rows = list(stats)

    units = 0
    revenue = 0
    sources: set[str] = set()
    for row in rows:
        u, r, src = row_figures(row, mode, cfg)
        units += u
        revenue += r
        sources.add(src)

    avg = round_half_up(revenue / units) if units > 0 else 0
    mins = [r.min_price for r in rows if r.min_price is not None]
    maxs = [r.max_price for r in rows if r.max_price is not None]
    profit, margin = profit_figures(avg, material_cost)

    if not sources:
        source = "none"
    elif len(sources) == 1:
        source = sources.pop()
    else:
        source = "mixed"

    return ItemMetrics(
        units_sold=units,
        sales_velocity=units / timeframe.days,
        total_revenue=revenue,
        avg_price=avg,
        min_price=min(mins) if mins else None,
        max_price=max(maxs) if maxs else None,
        profit_per_unit=profit,
        margin_percent=margin,
        active_listings=latest_listings(rows),
        stats_source=source,
    )
