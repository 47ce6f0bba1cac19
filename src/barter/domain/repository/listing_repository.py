"""Abstract repository for the Listing aggregate.

Defined in the domain layer so the domain never depends on
infrastructure. Concrete implementations (JSON, SQL, in-memory)
live in the infrastructure layer.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from barter.domain.model.listing import Listing


class ListingRepository(ABC):

    @abstractmethod
    def get_by_id(self, listing_id: str) -> Listing | None:
        """Return a listing by its ID, or None if not found."""

    @abstractmethod
    def list_all(self) -> list[Listing]:
        """Return every listing."""

    @abstractmethod
    def save(self, listing: Listing) -> None:
        """Persist a new or updated listing."""
