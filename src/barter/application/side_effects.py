"""Best-effort side effects of offer operations.

Notifications and conversation messages never roll back the offer
mutation that triggered them: failures are logged and dropped.
"""

from __future__ import annotations

import logging
from typing import Any

from barter.domain.gateway.messaging_gateway import MessagingGateway
from barter.domain.gateway.notification_gateway import (
    NotificationGateway,
    NotificationKind,
)

logger = logging.getLogger(__name__)


class TradeSideEffects:

    def __init__(
        self,
        notifications: NotificationGateway,
        messaging: MessagingGateway | None = None,
    ) -> None:
        self._notifications = notifications
        self._messaging = messaging

    def notify(self, user_id: str, kind: NotificationKind, **payload: Any) -> None:
        try:
            self._notifications.notify(user_id, kind, payload)
        except Exception:
            logger.warning(
                "Failed to deliver %s notification to %s", kind.value, user_id,
                exc_info=True,
            )

    def open_conversation(self, party_a: str, party_b: str, listing_id: str) -> str | None:
        if self._messaging is None:
            return None
        try:
            return self._messaging.create_or_reuse_conversation(party_a, party_b, listing_id)
        except Exception:
            logger.warning(
                "Failed to open conversation for listing %s", listing_id, exc_info=True
            )
            return None

    def post_system_message(self, conversation_id: str | None, text: str) -> None:
        if self._messaging is None or conversation_id is None:
            return
        try:
            self._messaging.post_system_message(conversation_id, text)
        except Exception:
            logger.warning(
                "Failed to post system message to conversation %s", conversation_id,
                exc_info=True,
            )
