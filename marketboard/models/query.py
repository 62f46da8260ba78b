from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, Field, model_validator

from .metrics import ItemMetrics


class RankingMetric(str, Enum):
    BEST_TO_SELL = "bestToSell"
    REVENUE = "revenue"
    VOLUME = "volume"
    AVG_PRICE = "avgPrice"
    PROFIT = "profit"
    ROI = "roi"


class CraftableFilter(str, Enum):
    ANY = "any"
    CRAFTABLE = "craftable"
    NON_CRAFTABLE = "non-craftable"


class FilterCriteria(BaseModel):
    """Filters applied before ranking. ``None``/0/empty means "not set"."""

    categories: set[str] = Field(default_factory=set)
    craftable_only: bool = False
    non_craftable_only: bool = False
    min_sales_velocity: float | None = Field(default=None, ge=0.0)
    min_revenue: int | None = Field(default=None, ge=0)
    max_listings: int | None = Field(default=None, ge=0)
    min_price: int | None = Field(default=None, ge=0)

    @model_validator(mode="after")
    def _exclusive_craftable(self) -> "FilterCriteria":
        if self.craftable_only and self.non_craftable_only:
            raise ValueError("craftable_only and non_craftable_only are mutually exclusive")
        return self

    @classmethod
    def from_craftable(cls, craftable: CraftableFilter, **kwargs: object) -> "FilterCriteria":
        return cls(
            craftable_only=craftable == CraftableFilter.CRAFTABLE,
            non_craftable_only=craftable == CraftableFilter.NON_CRAFTABLE,
            **kwargs,  # type: ignore[arg-type]
        )


class RankedItem(BaseModel):
    """An item/scope pair with its folded metrics, the unit the ranking engine sorts."""

    item_id: int
    item_name: str
    category: str | None = None
    is_craftable: bool = False
    scope_label: str
    metrics: ItemMetrics


class MarketItem(BaseModel):
    item_id: int
    item_name: str
    category: str | None
    is_craftable: bool
    scope_label: str
    units_sold: int
    sales_velocity: float
    total_revenue: int
    avg_price: int
    min_price: int | None
    max_price: int | None
    profit_per_unit: int | None
    margin_percent: float | None
    active_listings: int

    @classmethod
    def from_ranked(cls, item: RankedItem) -> "MarketItem":
        m = item.metrics
        return cls(
            item_id=item.item_id,
            item_name=item.item_name,
            category=item.category,
            is_craftable=item.is_craftable,
            scope_label=item.scope_label,
            units_sold=m.units_sold,
            sales_velocity=m.sales_velocity,
            total_revenue=m.total_revenue,
            avg_price=m.avg_price,
            min_price=m.min_price,
            max_price=m.max_price,
            profit_per_unit=m.profit_per_unit,
            margin_percent=m.margin_percent,
            active_listings=m.active_listings,
        )


class TopItemsSummary(BaseModel):
    total_items: int = 0
    total_revenue: int = 0
    avg_profit_margin: float = 0.0
    avg_sales_velocity: float = 0.0


class TopItemsResponse(BaseModel):
    scope: str
    timeframe: str
    ranking: RankingMetric
    items: list[MarketItem]
    total_items: int
    metrics: TopItemsSummary
