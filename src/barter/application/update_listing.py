"""Application service: Update Listing use case.

Changing a listing's quantity or status can strand pending offers that
target or pledge it, so every effective change is followed by a
commitment revalidation.
"""

from __future__ import annotations

import logging

from barter.application.dto import OfferDTO
from barter.application.revalidate_commitments import RevalidateCommitmentsHandler
from barter.application.side_effects import TradeSideEffects
from barter.domain.exceptions import EntityNotFoundError, ValidationError
from barter.domain.gateway.clock import Clock
from barter.domain.model.listing import Listing, ListingStatus
from barter.domain.repository.listing_repository import ListingRepository
from barter.domain.repository.offer_repository import OfferRepository
from barter.domain.repository.transaction import TransactionManager

logger = logging.getLogger(__name__)


class UpdateListingHandler:

    def __init__(
        self,
        listing_repo: ListingRepository,
        offer_repo: OfferRepository,
        tx: TransactionManager,
        side_effects: TradeSideEffects,
        clock: Clock,
    ) -> None:
        self._listing_repo = listing_repo
        self._offer_repo = offer_repo
        self._tx = tx
        self._side_effects = side_effects
        self._clock = clock

    def handle(
        self,
        listing_id: str,
        quantity: int | None = None,
        status: str | None = None,
    ) -> tuple[Listing, list[OfferDTO]]:
        """Apply the change; return the listing and any offers it cancelled."""
        try:
            new_status = ListingStatus(status) if status else None
        except ValueError as exc:
            raise ValidationError(f"Unknown listing status {status!r}") from exc

        with self._tx.atomic():
            listing = self._listing_repo.get_by_id(listing_id)
            if listing is None:
                raise EntityNotFoundError(f"Listing {listing_id} not found")

            before = (listing.quantity, listing.status)
            if quantity is not None:
                listing.set_quantity(quantity)
            if new_status is not None:
                listing.change_status(new_status)
            changed = before != (listing.quantity, listing.status)
            if changed:
                self._listing_repo.save(listing)

        if not changed:
            return listing, []

        logger.info(
            "Listing %s updated (quantity=%d, status=%s)",
            listing.id, listing.quantity, listing.status.value,
        )
        cancelled = RevalidateCommitmentsHandler(
            self._listing_repo, self._offer_repo, self._tx,
            self._side_effects, self._clock,
        ).handle(listing.id)
        return listing, cancelled
