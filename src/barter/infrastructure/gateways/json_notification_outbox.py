"""Notification gateway that logs and appends to a JSON outbox file.

Delivery (push, email) is handled by another service reading the
outbox; the engine only records what should be sent.
"""

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from barter.domain.gateway.notification_gateway import (
    NotificationGateway,
    NotificationKind,
)
from barter.infrastructure.persistence.locking import STORE_LOCK

logger = logging.getLogger(__name__)


class JsonNotificationOutbox(NotificationGateway):

    def __init__(self, file_path: Path) -> None:
        self._file_path = file_path
        self._ensure_file()

    def notify(
        self, user_id: str, kind: NotificationKind, payload: dict[str, Any]
    ) -> None:
        logger.info("Notify %s: %s %s", user_id, kind.value, payload.get("title", ""))
        with STORE_LOCK:
            records = self._load_raw()
            records.append({
                "user_id": user_id,
                "kind": kind.value,
                "payload": payload,
                "created_at": datetime.now(timezone.utc).isoformat(),
            })
            self._persist_raw(records)

    def for_user(self, user_id: str) -> list[dict]:
        return [r for r in self._load_raw() if r["user_id"] == user_id]

    # --- File helpers ---------------------------------------------------------

    def _load_raw(self) -> list[dict]:
        return json.loads(self._file_path.read_text(encoding="utf-8"))

    def _persist_raw(self, records: list[dict]) -> None:
        self._file_path.write_text(
            json.dumps(records, indent=2, default=str) + "\n", encoding="utf-8"
        )

    def _ensure_file(self) -> None:
        if not self._file_path.exists():
            self._file_path.parent.mkdir(parents=True, exist_ok=True)
            self._file_path.write_text("[]", encoding="utf-8")
