"""User notifications (external collaborator)."""

from __future__ import annotations

from abc import ABC, abstractmethod
from enum import Enum
from typing import Any


class NotificationKind(Enum):
    NEW_OFFER = "NEW_OFFER"
    OFFER_ACCEPTED = "OFFER_ACCEPTED"
    OFFER_REJECTED = "OFFER_REJECTED"
    COUNTER_OFFER = "COUNTER_OFFER"
    OFFER_CANCELLED = "OFFER_CANCELLED"
    TRADE_CONFIRMED = "TRADE_CONFIRMED"
    TRADE_COMPLETED = "TRADE_COMPLETED"
    DOWNPAYMENT_PAID = "DOWNPAYMENT_PAID"
    DOWNPAYMENT_CONFIRMED = "DOWNPAYMENT_CONFIRMED"
    TIMER_EXTENDED = "TIMER_EXTENDED"
    EXTENSION_REQUESTED = "EXTENSION_REQUESTED"
    TIMER_WARNING = "TIMER_WARNING"
    TRADE_EXPIRED = "TRADE_EXPIRED"


class NotificationGateway(ABC):

    @abstractmethod
    def notify(
        self, user_id: str, kind: NotificationKind, payload: dict[str, Any]
    ) -> None:
        """Deliver a notification.  May raise; callers treat it as best-effort."""
