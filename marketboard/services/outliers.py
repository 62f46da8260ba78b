"""Reject and clamp manipulated sales (RMT price spikes, fat-fingered listings).

Stages run in order, each on the survivors of the previous one:

1. anchor ceiling: drop sales above ``anchor * anchor_mult``
2. statistical ceiling (only with ``min_sample`` survivors or more): drop sales
   above ``min(Q3 + iqr_mult * IQR, median + mad_mult * MAD)``
3. single-unit guard for cheap items: drop ``quantity == 1`` sales above
   ``Q3 * single_unit_mult``, Q3 taken over the day's other surviving sales
4. clamp the effective price of every survivor to ``anchor * clamp_mult``

The anchor is the trailing 30-day typical price when available, otherwise the
day's own median price.
"""

from __future__ import annotations

import math
from collections.abc import Sequence
from dataclasses import dataclass, field

from ..config import settings
from ..logging import get_logger
from ..models.market import Sale
from ..models.thresholds import Thresholds
from .robust import mad, median, quartiles

_log = get_logger()

ANCHOR_TYPICAL = "typical_30d"
ANCHOR_DAY_MEDIAN = "day_median"

REASON_ANCHOR = "anchor_ceiling"
REASON_STATISTICAL = "statistical_ceiling"
REASON_SINGLE_UNIT = "single_unit_guard"


@dataclass(frozen=True)
class CleanSale:
    sale: Sale
    effective_price: int

    @property
    def revenue(self) -> int:
        return self.effective_price * self.sale.quantity


@dataclass(frozen=True)
class RejectedSale:
    sale: Sale
    reason: str


@dataclass
class OutlierResult:
    kept: list[CleanSale] = field(default_factory=list)
    rejected: list[RejectedSale] = field(default_factory=list)
    anchor: float | None = None
    anchor_source: str | None = None
    min_sample: int = 5

    @property
    def sample_size(self) -> int:
        return len(self.kept)

    @property
    def is_low_confidence(self) -> bool:
        return self.sample_size < self.min_sample


def statistical_ceiling(prices: Sequence[float], cfg: Thresholds) -> float:
    """Upper bound from the IQR fence and the MAD fence, whichever is tighter."""
    q1, q3 = quartiles(prices)
    mid = median(prices)
    if q1 is None or q3 is None or mid is None:
        return math.inf
    iqr_bound = q3 + cfg.iqr_mult * (q3 - q1)
    spread = mad(prices, mid) or 0.0
    mad_bound = mid + cfg.mad_mult * spread if spread > 0 else math.inf
    return min(iqr_bound, mad_bound)


def filter_sales(
    sales: Sequence[Sale],
    typical_price: float | None = None,
    cfg: Thresholds | None = None,
) -> OutlierResult:
    cfg = cfg or settings.thresholds()
    result = OutlierResult(min_sample=cfg.min_sample)
    if not sales:
        return result

    if typical_price is not None and typical_price > 0:
        anchor = float(typical_price)
        result.anchor_source = ANCHOR_TYPICAL
    else:
        anchor = float(median(s.price_per_unit for s in sales) or 0.0)
        result.anchor_source = ANCHOR_DAY_MEDIAN
    result.anchor = anchor

    survivors: list[Sale] = []
    ceiling = anchor * cfg.anchor_mult
    for s in sales:
        if s.price_per_unit > ceiling:
            result.rejected.append(RejectedSale(s, REASON_ANCHOR))
        else:
            survivors.append(s)

    if len(survivors) >= cfg.min_sample:
        stat_ceiling = statistical_ceiling([s.price_per_unit for s in survivors], cfg)
        kept: list[Sale] = []
        for s in survivors:
            if s.price_per_unit > stat_ceiling:
                result.rejected.append(RejectedSale(s, REASON_STATISTICAL))
            else:
                kept.append(s)
        survivors = kept

    if anchor < cfg.low_value_cutoff:
        prices = [s.price_per_unit for s in survivors]
        kept = []
        for i, s in enumerate(survivors):
            if s.quantity == 1:
                # Q3 of the other sales; a set containing the spike always has Q3 >= spike / 2
                _, q3 = quartiles(prices[:i] + prices[i + 1 :])
                if q3 is not None and s.price_per_unit > q3 * cfg.single_unit_mult:
                    result.rejected.append(RejectedSale(s, REASON_SINGLE_UNIT))
                    continue
            kept.append(s)
        survivors = kept

    clamp = anchor * cfg.clamp_mult
    for s in survivors:
        price = s.price_per_unit
        if price > clamp:
            price = int(math.floor(clamp))
        result.kept.append(CleanSale(s, price))

    if result.rejected:
        _log.debug(
            "outliers_filtered",
            anchor=anchor,
            anchor_source=result.anchor_source,
            kept=len(result.kept),
            rejected=len(result.rejected),
        )
    return result
