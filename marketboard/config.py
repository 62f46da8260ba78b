from __future__ import annotations

from typing import cast

from pydantic import AnyHttpUrl, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from .models.thresholds import Thresholds


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=(".env",), env_prefix="", case_sensitive=False)

    REDIS_URL: str = Field(default="redis://localhost:6379/0")
    UNIVERSALIS_BASE: AnyHttpUrl = Field(default=cast(AnyHttpUrl, "https://universalis.app/api"))
    XIVAPI_BASE: AnyHttpUrl = Field(default=cast(AnyHttpUrl, "https://xivapi.com"))

    CACHE_TTL_SHORT: int = Field(default=600, ge=0)
    CACHE_TTL_LONG: int = Field(default=43200, ge=0)
    # Sale history entries requested per item from Universalis
    UNIVERSALIS_ENTRIES: int = Field(default=200, ge=1)

    USER_AGENT: str = Field(default="FFXIV-Marketboard/0.3")
    REQUESTS_RPS: int = Field(default=10, ge=1)
    RETRY_MAX: int = Field(default=3, ge=0)

    LOG_LEVEL: str = Field(default="INFO")

    # Outlier filter (multipliers applied to the price anchor or day quartiles)
    OUTLIER_ANCHOR_MULT: float = Field(default=20.0, gt=0.0)
    OUTLIER_IQR_MULT: float = Field(default=3.0, gt=0.0)
    OUTLIER_MAD_MULT: float = Field(default=6.0, gt=0.0)
    OUTLIER_LOW_VALUE_CUTOFF: int = Field(default=1000, ge=0)  # gil
    OUTLIER_SINGLE_UNIT_MULT: float = Field(default=20.0, gt=0.0)
    OUTLIER_CLAMP_MULT: float = Field(default=10.0, gt=0.0)
    ROBUST_MIN_SAMPLE: int = Field(default=5, ge=1)

    # Anchors and retention
    ANCHOR_WINDOW_DAYS: int = Field(default=30, ge=1)
    ANCHOR_PERCENTILE: float = Field(default=0.9, ge=0.0, le=1.0)
    STATS_RETENTION_DAYS: int = Field(default=45, ge=1)

    # "Best to sell" ranking floors
    BEST_MIN_VELOCITY: float = Field(default=0.2, ge=0.0)
    BEST_MIN_PRICE: int = Field(default=200, ge=0)
    BEST_RELAXED_VELOCITY: float = Field(default=0.5, ge=0.0)

    DEFAULT_SCOPE: str = Field(default="all-na")
    DEFAULT_TOP_N: int = Field(default=25, ge=1)

    # Optional whitelist (comma-separated world names)
    ALLOWED_WORLDS: str | None = None

    def allowed_worlds(self) -> set[str] | None:
        if not self.ALLOWED_WORLDS:
            return None
        return {w.strip().lower() for w in self.ALLOWED_WORLDS.split(",") if w.strip()}

    def thresholds(self) -> Thresholds:
        return Thresholds(
            anchor_mult=self.OUTLIER_ANCHOR_MULT,
            iqr_mult=self.OUTLIER_IQR_MULT,
            mad_mult=self.OUTLIER_MAD_MULT,
            low_value_cutoff=self.OUTLIER_LOW_VALUE_CUTOFF,
            single_unit_mult=self.OUTLIER_SINGLE_UNIT_MULT,
            clamp_mult=self.OUTLIER_CLAMP_MULT,
            min_sample=self.ROBUST_MIN_SAMPLE,
            anchor_window_days=self.ANCHOR_WINDOW_DAYS,
            anchor_percentile=self.ANCHOR_PERCENTILE,
            retention_days=self.STATS_RETENTION_DAYS,
            best_min_velocity=self.BEST_MIN_VELOCITY,
            best_min_price=self.BEST_MIN_PRICE,
            best_relaxed_velocity=self.BEST_RELAXED_VELOCITY,
        )


settings = Settings()
