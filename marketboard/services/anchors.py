from __future__ import annotations

from collections import defaultdict
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import date, timedelta

from ..config import settings
from ..logging import get_logger
from ..models.market import DailyStat
from ..models.thresholds import Thresholds
from .robust import median, percentile

_log = get_logger()


@dataclass(frozen=True)
class Anchor:
    typical_price_30d: float | None = None
    price_p90_30d: float | None = None
    days: int = 0


def representative_price(stat: DailyStat) -> float | None:
    """Price that stands for a whole day: robust median first, raw average second."""
    if stat.robust_avg_price:
        return float(stat.robust_avg_price)
    if stat.avg_price:
        return float(stat.avg_price)
    return None


def compute_anchor(
    history: Iterable[DailyStat],
    current_date: date,
    cfg: Thresholds | None = None,
) -> Anchor:
    """Anchor for ``current_date`` from the rows 1..window days before it.

    Rows dated ``current_date`` or later are ignored, so a day's own data can
    never leak into its anchor.
    """
    cfg = cfg or settings.thresholds()
    prices: list[float] = []
    for stat in history:
        age = (current_date - stat.stat_date).days
        if age < 1 or age > cfg.anchor_window_days:
            continue
        price = representative_price(stat)
        if price is not None:
            prices.append(price)
    if not prices:
        return Anchor()
    return Anchor(
        typical_price_30d=median(prices),
        price_p90_30d=percentile(prices, cfg.anchor_percentile),
        days=len(prices),
    )


def group_by_key(rows: Iterable[DailyStat]) -> dict[tuple[int, int], list[DailyStat]]:
    groups: dict[tuple[int, int], list[DailyStat]] = defaultdict(list)
    for row in rows:
        groups[row.key].append(row)
    return dict(groups)


def backfill_key(rows: list[DailyStat], cfg: Thresholds) -> list[DailyStat]:
    """Recompute anchors for every row of a single (item, world) key."""
    ordered = sorted(rows, key=lambda r: r.stat_date)
    out: list[DailyStat] = []
    for row in ordered:
        anchor = compute_anchor(ordered, row.stat_date, cfg)
        out.append(
            row.model_copy(
                update={
                    "typical_price_30d": anchor.typical_price_30d,
                    "price_p90_30d": anchor.price_p90_30d,
                }
            )
        )
    return out


def backfill_anchors(
    rows: Iterable[DailyStat],
    cfg: Thresholds | None = None,
) -> list[DailyStat]:
    """Batch anchor recomputation; keys share nothing and may be split across workers."""
    cfg = cfg or settings.thresholds()
    out: list[DailyStat] = []
    groups = group_by_key(rows)
    for key_rows in groups.values():
        out.extend(backfill_key(key_rows, cfg))
    _log.info("anchors_backfilled", keys=len(groups), rows=len(out))
    return out


def retention_cutoff(today: date, cfg: Thresholds | None = None) -> date:
    cfg = cfg or settings.thresholds()
    return today - timedelta(days=cfg.retention_days)


def prune_expired(
    rows: Iterable[DailyStat],
    today: date,
    cfg: Thresholds | None = None,
) -> list[DailyStat]:
    """Drop rows older than the retention horizon."""
    cutoff = retention_cutoff(today, cfg)
    return [r for r in rows if r.stat_date >= cutoff]
