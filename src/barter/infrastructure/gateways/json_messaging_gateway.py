"""JSON-file-backed stand-in for the messaging service.

Keeps one conversation per (unordered) pair of parties and listing, so
accepting several offers between the same people reuses the thread.
"""

from __future__ import annotations

import json
import logging
import uuid
from datetime import datetime, timezone
from pathlib import Path

from barter.domain.exceptions import EntityNotFoundError
from barter.domain.gateway.messaging_gateway import MessagingGateway
from barter.infrastructure.persistence.locking import STORE_LOCK

logger = logging.getLogger(__name__)


class JsonMessagingGateway(MessagingGateway):

    def __init__(self, file_path: Path) -> None:
        self._file_path = file_path
        self._ensure_file()

    def create_or_reuse_conversation(
        self, party_a: str, party_b: str, listing_id: str
    ) -> str:
        participants = sorted([party_a, party_b])
        with STORE_LOCK:
            conversations = self._load_raw()
            for conv in conversations:
                if conv["participants"] == participants and conv["listing_id"] == listing_id:
                    return conv["id"]

            conv_id = uuid.uuid4().hex
            conversations.append({
                "id": conv_id,
                "participants": participants,
                "listing_id": listing_id,
                "messages": [],
            })
            self._persist_raw(conversations)
        logger.debug("Opened conversation %s for listing %s", conv_id, listing_id)
        return conv_id

    def post_system_message(self, conversation_id: str, text: str) -> None:
        with STORE_LOCK:
            conversations = self._load_raw()
            for conv in conversations:
                if conv["id"] == conversation_id:
                    conv["messages"].append({
                        "type": "system",
                        "body": text,
                        "sent_at": datetime.now(timezone.utc).isoformat(),
                    })
                    self._persist_raw(conversations)
                    return
        raise EntityNotFoundError(f"Conversation {conversation_id} not found")

    def messages(self, conversation_id: str) -> list[dict]:
        for conv in self._load_raw():
            if conv["id"] == conversation_id:
                return list(conv["messages"])
        return []

    # --- File helpers ---------------------------------------------------------

    def _load_raw(self) -> list[dict]:
        return json.loads(self._file_path.read_text(encoding="utf-8"))

    def _persist_raw(self, records: list[dict]) -> None:
        self._file_path.write_text(
            json.dumps(records, indent=2) + "\n", encoding="utf-8"
        )

    def _ensure_file(self) -> None:
        if not self._file_path.exists():
            self._file_path.parent.mkdir(parents=True, exist_ok=True)
            self._file_path.write_text("[]", encoding="utf-8")
