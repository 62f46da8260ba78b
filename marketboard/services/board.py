from __future__ import annotations

from collections import defaultdict
from collections.abc import Iterable, Mapping
from datetime import date, datetime, timedelta, timezone

from ..config import settings
from ..db.stats import get_items_meta, load_stats
from ..logging import get_logger
from ..models.market import DailyStat, ItemMeta
from ..models.metrics import StatsMode, Timeframe
from ..models.query import (
    FilterCriteria,
    MarketItem,
    RankedItem,
    RankingMetric,
    TopItemsResponse,
)
from ..models.thresholds import Thresholds
from .metrics import calculate_metrics
from .ranking import top_items
from .scope import Scope, world_by_id

_log = get_logger()


def utc_today() -> date:
    return datetime.now(timezone.utc).date()


def window_start(today: date, timeframe: Timeframe) -> date:
    """First date of a window that ends on ``today`` and spans ``timeframe.days`` dates."""
    return today - timedelta(days=timeframe.days - 1)


def group_rows(stats: Iterable[DailyStat], aggregate: bool) -> dict[tuple[int, int | None], list[DailyStat]]:
    """Group by item (data-center view) or by (item, world) (single-world view)."""
    groups: dict[tuple[int, int | None], list[DailyStat]] = defaultdict(list)
    for s in stats:
        groups[(s.item_id, None if aggregate else s.world_id)].append(s)
    return dict(groups)


def build_ranked_items(
    stats: Iterable[DailyStat],
    metas: Mapping[int, ItemMeta],
    scope: Scope,
    timeframe: Timeframe,
    mode: StatsMode = StatsMode.AUTO,
    cfg: Thresholds | None = None,
) -> list[RankedItem]:
    cfg = cfg or settings.thresholds()
    items: list[RankedItem] = []
    for (item_id, world_id), rows in group_rows(stats, scope.aggregate).items():
        meta = metas.get(item_id) or ItemMeta(item_id=item_id)
        label = scope.label
        if world_id is not None:
            world = world_by_id(world_id)
            label = world.name.capitalize() if world else str(world_id)
        items.append(
            RankedItem(
                item_id=item_id,
                item_name=meta.display_name(),
                category=meta.category,
                is_craftable=meta.is_craftable,
                scope_label=label,
                metrics=calculate_metrics(rows, timeframe, meta.material_cost, mode, cfg),
            )
        )
    return items


async def fetch_top_items(
    scope: Scope,
    timeframe: Timeframe,
    criteria: FilterCriteria,
    metric: RankingMetric,
    top_n: int,
    mode: StatsMode = StatsMode.AUTO,
    today: date | None = None,
) -> TopItemsResponse:
    cfg = settings.thresholds()
    since = window_start(today or utc_today(), timeframe)
    stats = await load_stats(scope.world_ids, since=since)
    metas = await get_items_meta({s.item_id for s in stats})
    candidates = build_ranked_items(stats, metas, scope, timeframe, mode, cfg)
    _log.info(
        "top_items_loaded",
        scope=scope.label,
        worlds=len(scope.worlds),
        rows=len(stats),
        candidates=len(candidates),
        since=since.isoformat(),
    )
    ranked, summary = top_items(candidates, criteria, metric, top_n, cfg)
    return TopItemsResponse(
        scope=scope.label,
        timeframe=timeframe.value,
        ranking=metric,
        items=[MarketItem.from_ranked(it) for it in ranked],
        total_items=summary.total_items,
        metrics=summary,
    )
