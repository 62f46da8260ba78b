from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class Thresholds(BaseModel):
    """Tuning knobs shared by the outlier filter, aggregator, anchors and ranking.

    Defaults mirror the production settings; build one from
    ``settings.thresholds()`` or construct it directly in tests.
    """

    model_config = ConfigDict(frozen=True)

    anchor_mult: float = Field(default=20.0, gt=0.0)
    iqr_mult: float = Field(default=3.0, gt=0.0)
    mad_mult: float = Field(default=6.0, gt=0.0)
    low_value_cutoff: int = Field(default=1000, ge=0)
    single_unit_mult: float = Field(default=20.0, gt=0.0)
    clamp_mult: float = Field(default=10.0, gt=0.0)
    min_sample: int = Field(default=5, ge=1)

    anchor_window_days: int = Field(default=30, ge=1)
    anchor_percentile: float = Field(default=0.9, ge=0.0, le=1.0)
    retention_days: int = Field(default=45, ge=1)

    best_min_velocity: float = Field(default=0.2, ge=0.0)
    best_min_price: int = Field(default=200, ge=0)
    best_relaxed_velocity: float = Field(default=0.5, ge=0.0)
    # (min velocity, bonus) tiers, checked top-down
    reliability_tiers: tuple[tuple[float, float], ...] = ((5.0, 1.8), (1.0, 1.5), (0.5, 1.2))
