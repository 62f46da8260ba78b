from __future__ import annotations

from datetime import date

from pydantic import BaseModel, ConfigDict, Field, field_validator


class Sale(BaseModel):
    """One market board sale as reported in Universalis ``recentHistory``."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    price_per_unit: int = Field(..., alias="pricePerUnit", ge=1)
    quantity: int = Field(..., ge=1)
    timestamp: int = Field(..., ge=0)  # Unix epoch seconds
    hq: bool = False
    buyer_name: str | None = Field(default=None, alias="buyerName")
    on_mannequin: bool = Field(default=False, alias="onMannequin")


class ListingSnapshot(BaseModel):
    model_config = ConfigDict(frozen=True)

    count: int = Field(default=0, ge=0)
    total_quantity: int = Field(default=0, ge=0)


class DailyStat(BaseModel):
    """Aggregated market activity for one (item, world, date) key."""

    model_config = ConfigDict(frozen=True)

    item_id: int
    world_id: int
    stat_date: date

    units_sold: int = 0
    total_revenue: int = 0
    avg_price: int = 0
    min_price: int | None = None
    max_price: int | None = None
    active_listings: int = 0
    total_listings_quantity: int = 0

    robust_avg_price: int | None = None
    robust_total_revenue: int = 0
    robust_units_sold: int = 0
    robust_sample_size: int = 0

    typical_price_30d: float | None = None
    price_p90_30d: float | None = None
    is_low_confidence: bool = True

    @property
    def key(self) -> tuple[int, int]:
        return (self.item_id, self.world_id)


class ItemMeta(BaseModel):
    item_id: int
    name: str | None = None
    category: str | None = None
    is_craftable: bool = False
    material_cost: int | None = None

    @field_validator("material_cost", mode="before")
    @classmethod
    def _no_recipe_data(cls, v: object) -> int | None:
        # Garbage or negative costs mean "no recipe data", not an error
        if v is None:
            return None
        try:
            cost = int(v)  # type: ignore[call-overload]
        except (TypeError, ValueError):
            return None
        return cost if cost >= 0 else None

    def display_name(self) -> str:
        name = (self.name or "").strip()
        if not name or name.isdigit():
            return f"Item {self.item_id}"
        return name


class World(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: int
    name: str
    data_center: str
    region: str = "NA"
