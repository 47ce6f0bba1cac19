"""Business-rule constants for trades.

Collected in one immutable object so the composition root can tune them
from configuration while the domain keeps sensible defaults.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import timedelta


@dataclass(frozen=True)
class TradePolicy:
    receipt_delay: timedelta = timedelta(hours=24)
    trade_timer: timedelta = timedelta(minutes=60)
    timer_extension: timedelta = timedelta(minutes=30)
    max_timer_extensions: int = 3
    timer_warning_window: timedelta = timedelta(minutes=10)
    max_pending_offers_per_listing: int = 2


DEFAULT_POLICY = TradePolicy()
