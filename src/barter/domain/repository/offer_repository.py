"""Abstract repository for the BarterOffer aggregate."""

from __future__ import annotations

from abc import ABC, abstractmethod

from barter.domain.model.offer import BarterOffer, OfferStatus


class OfferRepository(ABC):

    @abstractmethod
    def get_by_id(self, offer_id: int) -> BarterOffer | None:
        """Return an offer by its ID, or None if not found."""

    @abstractmethod
    def save(self, offer: BarterOffer) -> None:
        """Persist a new or updated offer.

        Assigns an ID to new offers and bumps ``offer.version``.  Raises
        ConflictError if the stored version differs from ``offer.version``
        (another writer got there first).
        """

    @abstractmethod
    def list_all(self) -> list[BarterOffer]:
        """Return every offer, including terminal ones."""

    # --- Queries with a default implementation --------------------------------
    # Backends with an index can override these.

    def list_for_user(
        self,
        user_id: str,
        role: str | None = None,
        status: OfferStatus | None = None,
        listing_id: str | None = None,
    ) -> list[BarterOffer]:
        """Offers sent (role='sent'), received (role='received') or both."""
        result = []
        for offer in self.list_all():
            if role == "sent" and offer.buyer_id != user_id:
                continue
            if role == "received" and offer.seller_id != user_id:
                continue
            if role is None and not offer.is_party(user_id):
                continue
            if status is not None and offer.status != status:
                continue
            if listing_id is not None and offer.listing_id != listing_id:
                continue
            result.append(offer)
        result.sort(key=lambda o: (o.created_at, o.id or 0), reverse=True)
        return result

    def list_targeting(self, listing_id: str, status: OfferStatus) -> list[BarterOffer]:
        return [
            o for o in self.list_all()
            if o.listing_id == listing_id and o.status == status
        ]

    def list_pledging(self, listing_id: str, status: OfferStatus) -> list[BarterOffer]:
        return [
            o for o in self.list_all()
            if o.status == status and listing_id in o.pledged_listing_ids
        ]

    def list_commitments(self, listing_id: str, buyer_id: str) -> list[BarterOffer]:
        """Offers by *buyer_id* that still hold units of *listing_id*."""
        return [
            o for o in self.list_all()
            if o.buyer_id == buyer_id
            and o.holds_commitment
            and listing_id in o.pledged_listing_ids
        ]

    def count_pending(self, listing_id: str, buyer_id: str) -> int:
        return sum(
            1 for o in self.list_all()
            if o.listing_id == listing_id
            and o.buyer_id == buyer_id
            and o.status == OfferStatus.PENDING
        )

    def list_by_status(self, status: OfferStatus) -> list[BarterOffer]:
        return [o for o in self.list_all() if o.status == status]
