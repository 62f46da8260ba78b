from __future__ import annotations

from enum import Enum

from pydantic import BaseModel


class Timeframe(str, Enum):
    ONE_DAY = "1d"
    SEVEN_DAYS = "7d"
    THIRTY_DAYS = "30d"

    @property
    def days(self) -> int:
        return {"1d": 1, "7d": 7, "30d": 30}[self.value]


class StatsMode(str, Enum):
    AUTO = "auto"  # robust when the day is confident, raw otherwise
    ROBUST = "robust"
    RAW = "raw"


class ItemMetrics(BaseModel):
    units_sold: int = 0
    sales_velocity: float = 0.0
    total_revenue: int = 0
    avg_price: int = 0
    min_price: int | None = None
    max_price: int | None = None
    profit_per_unit: int | None = None
    margin_percent: float | None = None
    active_listings: int = 0
    stats_source: str = "none"
