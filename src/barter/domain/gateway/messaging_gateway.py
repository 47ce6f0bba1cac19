"""Conversation threads between trade parties (external collaborator)."""

from __future__ import annotations

from abc import ABC, abstractmethod


class MessagingGateway(ABC):

    @abstractmethod
    def create_or_reuse_conversation(
        self, party_a: str, party_b: str, listing_id: str
    ) -> str:
        """Return the conversation for this pair and listing, creating it once."""

    @abstractmethod
    def post_system_message(self, conversation_id: str, text: str) -> None:
        """Append a system-authored message to a conversation."""
