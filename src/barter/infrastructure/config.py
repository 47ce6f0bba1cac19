"""Runtime settings, read from ``BARTER_*`` environment variables or a ``.env`` file."""

from __future__ import annotations

from datetime import timedelta
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from barter.domain.model.policy import TradePolicy


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="BARTER_", env_file=".env", extra="ignore"
    )

    data_dir: Path = Path("./data")

    receipt_delay_hours: int = Field(24, ge=0)
    trade_timer_minutes: int = Field(60, ge=10, le=1440)
    timer_extension_minutes: int = Field(30, gt=0)
    max_timer_extensions: int = Field(3, ge=0)
    timer_warning_minutes: int = Field(10, ge=0)
    max_pending_offers_per_listing: int = Field(2, gt=0)

    sweep_interval_seconds: int = Field(60, gt=0)
    log_level: str = "INFO"

    def to_policy(self) -> TradePolicy:
        return TradePolicy(
            receipt_delay=timedelta(hours=self.receipt_delay_hours),
            trade_timer=timedelta(minutes=self.trade_timer_minutes),
            timer_extension=timedelta(minutes=self.timer_extension_minutes),
            max_timer_extensions=self.max_timer_extensions,
            timer_warning_window=timedelta(minutes=self.timer_warning_minutes),
            max_pending_offers_per_listing=self.max_pending_offers_per_listing,
        )
