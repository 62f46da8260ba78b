from __future__ import annotations

import math
from collections.abc import Sequence

from ..config import settings
from ..logging import get_logger
from ..models.metrics import ItemMetrics
from ..models.query import FilterCriteria, RankedItem, RankingMetric, TopItemsSummary
from ..models.thresholds import Thresholds

_log = get_logger()

# Score for items without recipe data under profit/roi; sorts them last
MISSING_SCORE = -math.inf


def filter_items(items: Sequence[RankedItem], criteria: FilterCriteria) -> list[RankedItem]:
    out: list[RankedItem] = []
    for item in items:
        m = item.metrics
        if criteria.categories and item.category not in criteria.categories:
            continue
        if criteria.craftable_only and not item.is_craftable:
            continue
        if criteria.non_craftable_only and item.is_craftable:
            continue
        if criteria.min_sales_velocity and m.sales_velocity < criteria.min_sales_velocity:
            continue
        if criteria.min_revenue and m.total_revenue < criteria.min_revenue:
            continue
        if criteria.max_listings is not None and m.active_listings > criteria.max_listings:
            continue
        if criteria.min_price and m.avg_price < criteria.min_price:
            continue
        out.append(item)
    return out


def _selling(m: ItemMetrics) -> bool:
    return m.units_sold > 0 and m.total_revenue > 0


def best_to_sell_candidates(
    items: Sequence[RankedItem],
    cfg: Thresholds | None = None,
) -> list[RankedItem]:
    """Stricter pool for bestToSell, relaxed stage by stage until non-empty."""
    cfg = cfg or settings.thresholds()
    stages = (
        lambda m: _selling(m)
        and m.sales_velocity >= cfg.best_min_velocity
        and m.avg_price >= cfg.best_min_price,
        lambda m: _selling(m) and m.sales_velocity >= cfg.best_relaxed_velocity,
        _selling,
    )
    for stage, keep in enumerate(stages, start=1):
        pool = [it for it in items if keep(it.metrics)]
        if pool:
            _log.debug("best_to_sell_stage", stage=stage, candidates=len(pool))
            return pool
    return list(items)


def reliability_bonus(velocity: float, cfg: Thresholds | None = None) -> float:
    cfg = cfg or settings.thresholds()
    for floor, bonus in cfg.reliability_tiers:
        if velocity >= floor:
            return bonus
    return 1.0


def ranking_value(
    metrics: ItemMetrics,
    metric: RankingMetric,
    cfg: Thresholds | None = None,
) -> float:
    if metric == RankingMetric.BEST_TO_SELL:
        v = metrics.sales_velocity
        return metrics.avg_price * v * reliability_bonus(v, cfg)
    if metric == RankingMetric.VOLUME:
        return float(metrics.units_sold)
    if metric == RankingMetric.AVG_PRICE:
        return float(metrics.avg_price)
    if metric == RankingMetric.PROFIT:
        return float(metrics.profit_per_unit) if metrics.profit_per_unit is not None else MISSING_SCORE
    if metric == RankingMetric.ROI:
        return metrics.margin_percent if metrics.margin_percent is not None else MISSING_SCORE
    return float(metrics.total_revenue)


def rank_items(
    items: Sequence[RankedItem],
    metric: RankingMetric,
    cfg: Thresholds | None = None,
) -> list[RankedItem]:
    """Descending by score; equal scores keep their input order."""
    cfg = cfg or settings.thresholds()
    return sorted(items, key=lambda it: ranking_value(it.metrics, metric, cfg), reverse=True)


def summarize(items: Sequence[RankedItem]) -> TopItemsSummary:
    if not items:
        return TopItemsSummary()
    margins = [it.metrics.margin_percent or 0.0 for it in items if it.metrics.profit_per_unit is not None]
    return TopItemsSummary(
        total_items=len(items),
        total_revenue=sum(it.metrics.total_revenue for it in items),
        avg_profit_margin=sum(margins) / len(margins) if margins else 0.0,
        avg_sales_velocity=sum(it.metrics.sales_velocity for it in items) / len(items),
    )


def top_items(
    items: Sequence[RankedItem],
    criteria: FilterCriteria,
    metric: RankingMetric,
    top_n: int,
    cfg: Thresholds | None = None,
) -> tuple[list[RankedItem], TopItemsSummary]:
    """Filter, rank and truncate; the summary covers every item that passed the filters."""
    if top_n < 1:
        raise ValueError(f"top_n must be >= 1, got {top_n}")
    cfg = cfg or settings.thresholds()
    filtered = filter_items(items, criteria)
    pool = filtered
    if metric == RankingMetric.BEST_TO_SELL:
        pool = best_to_sell_candidates(filtered, cfg)
    ranked = rank_items(pool, metric, cfg)
    _log.info(
        "top_items_ranked",
        metric=metric.value if isinstance(metric, RankingMetric) else str(metric),
        before=len(items),
        after=len(pool),
        returned=min(top_n, len(ranked)),
    )
    return ranked[:top_n], summarize(filtered)
