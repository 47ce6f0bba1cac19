"""Composition root — wires concrete implementations to domain interfaces.

This is the only place in the codebase that knows about *all* layers.
Every other module depends only on abstractions.
"""

from __future__ import annotations

from functools import lru_cache

from barter.application.side_effects import TradeSideEffects
from barter.domain.model.policy import TradePolicy
from barter.infrastructure.config import Settings
from barter.infrastructure.gateways.json_messaging_gateway import JsonMessagingGateway
from barter.infrastructure.gateways.json_notification_outbox import (
    JsonNotificationOutbox,
)
from barter.infrastructure.gateways.system_clock import SystemClock
from barter.infrastructure.persistence.json_listing_repository import (
    JsonListingRepository,
)
from barter.infrastructure.persistence.json_offer_repository import (
    JsonOfferRepository,
)
from barter.infrastructure.persistence.locking import LockingTransactionManager


@lru_cache(maxsize=1)
def settings() -> Settings:
    return Settings()


def policy() -> TradePolicy:
    return settings().to_policy()


def listing_repository() -> JsonListingRepository:
    return JsonListingRepository(settings().data_dir / "listings.json")


def offer_repository() -> JsonOfferRepository:
    return JsonOfferRepository(settings().data_dir / "offers.json")


def transaction_manager() -> LockingTransactionManager:
    return LockingTransactionManager()


def clock() -> SystemClock:
    return SystemClock()


def side_effects() -> TradeSideEffects:
    data_dir = settings().data_dir
    return TradeSideEffects(
        notifications=JsonNotificationOutbox(data_dir / "notifications.json"),
        messaging=JsonMessagingGateway(data_dir / "conversations.json"),
    )
