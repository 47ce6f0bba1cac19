"""Domain service: Inventory Ledger.

Answers "how many units of listing L can user U still pledge" and keeps
pending offers honest when a listing shrinks or leaves the active pool.

A pledge is not a reservation on the listing record: the committed
quantity is derived on demand from the offers that still hold units,
so there is no counter to drift out of sync.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime

from barter.domain.exceptions import (
    ConflictError,
    EntityNotFoundError,
    ForbiddenError,
    InsufficientCapacityError,
)
from barter.domain.model.listing import Listing
from barter.domain.model.offer import BarterOffer, CancelReason, OfferItem, OfferStatus
from barter.domain.repository.listing_repository import ListingRepository
from barter.domain.repository.offer_repository import OfferRepository

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Cancellation:
    """An offer the ledger cancelled, and the party to tell about it."""

    offer: BarterOffer
    reason: CancelReason
    notify_user_id: str
    listing_id: str


class InventoryLedger:

    def __init__(
        self,
        listing_repo: ListingRepository,
        offer_repo: OfferRepository,
    ) -> None:
        self._listing_repo = listing_repo
        self._offer_repo = offer_repo

    # --- Queries --------------------------------------------------------------

    def committed_quantity(
        self,
        listing_id: str,
        user_id: str,
        exclude_offer_id: int | None = None,
    ) -> int:
        return sum(
            offer.pledged_quantity(listing_id)
            for offer in self._offer_repo.list_commitments(listing_id, user_id)
            if exclude_offer_id is None or offer.id != exclude_offer_id
        )

    def available_quantity(
        self,
        listing_id: str,
        user_id: str,
        exclude_offer_id: int | None = None,
    ) -> int:
        """Units of *listing_id* that *user_id* may still pledge.

        May be negative if the system is already oversubscribed; callers
        treat anything below the requested amount as no capacity.
        """
        listing = self._listing_repo.get_by_id(listing_id)
        if listing is None:
            raise EntityNotFoundError(f"Listing {listing_id} not found")
        return listing.quantity - self.committed_quantity(
            listing_id, user_id, exclude_offer_id
        )

    # --- Validation -----------------------------------------------------------

    def ensure_pledges_available(self, pledger_id: str, items: list[OfferItem]) -> None:
        """Validate every pledged item before anything is written.

        Each listing must exist, belong to the pledger, be active, and have
        enough uncommitted units.  Fails on the first offending item.
        """
        for item in items:
            listing = self._listing_repo.get_by_id(item.offered_listing_id)
            if listing is None:
                raise EntityNotFoundError(
                    f"Offered listing {item.offered_listing_id} not found"
                )
            if listing.seller_id != pledger_id:
                raise ForbiddenError("You can only offer your own listings")
            if not listing.is_active:
                raise EntityNotFoundError(
                    f"Offered listing {listing.id} is not available "
                    f"(status={listing.status.value})"
                )
            available = listing.quantity - self.committed_quantity(listing.id, pledger_id)
            if available < item.quantity.value:
                raise InsufficientCapacityError(
                    listing.id, item.quantity.value, available
                )

    # --- Revalidation ---------------------------------------------------------

    def revalidate_commitments(self, listing_id: str, now: datetime) -> list[Cancellation]:
        """Cancel pending offers that the listing can no longer support.

        - pending offers *targeting* an inactive listing are cancelled;
        - pending offers *pledging* the listing are cancelled if their
          pledge no longer fits next to the pledger's other commitments.

        Only pending offers are touched, so re-running is a no-op.
        """
        listing = self._listing_repo.get_by_id(listing_id)
        if listing is None:
            raise EntityNotFoundError(f"Listing {listing_id} not found")

        cancellations: list[Cancellation] = []

        if not listing.is_active:
            for offer in self._offer_repo.list_targeting(listing_id, OfferStatus.PENDING):
                cancelled = self._cancel_if(
                    offer, CancelReason.LISTING_UNAVAILABLE, now,
                    lambda o: o.status == OfferStatus.PENDING,
                )
                if cancelled is not None:
                    cancellations.append(
                        Cancellation(cancelled, CancelReason.LISTING_UNAVAILABLE,
                                     cancelled.buyer_id, listing_id)
                    )

        pledge_reason = (
            CancelReason.INSUFFICIENT_CAPACITY
            if listing.is_active
            else CancelReason.LISTING_UNAVAILABLE
        )
        for offer in self._offer_repo.list_pledging(listing_id, OfferStatus.PENDING):
            cancelled = self._cancel_if(
                offer, pledge_reason, now,
                lambda o: o.status == OfferStatus.PENDING
                and not self._pledge_fits(listing, o),
            )
            if cancelled is not None:
                cancellations.append(
                    Cancellation(cancelled, pledge_reason,
                                 cancelled.seller_id, listing_id)
                )

        if cancellations:
            logger.info(
                "Revalidation of listing %s cancelled %d offer(s)",
                listing_id, len(cancellations),
            )
        return cancellations

    # --- Internal helpers -----------------------------------------------------

    def _pledge_fits(self, listing: Listing, offer: BarterOffer) -> bool:
        if not listing.is_active:
            return False
        available = listing.quantity - self.committed_quantity(
            listing.id, offer.buyer_id, exclude_offer_id=offer.id
        )
        return offer.pledged_quantity(listing.id) <= available

    def _cancel_if(
        self,
        offer: BarterOffer,
        reason: CancelReason,
        now: datetime,
        predicate: Callable[[BarterOffer], bool],
    ) -> BarterOffer | None:
        """Cancel *offer* if *predicate* holds, reloading once on conflict."""
        for attempt in range(2):
            if not predicate(offer):
                return None
            offer.cancel(reason, now)
            try:
                self._offer_repo.save(offer)
                return offer
            except ConflictError:
                if attempt:
                    raise
                logger.debug("Offer #%s changed during revalidation, reloading", offer.id)
                offer = self._offer_repo.get_by_id(offer.id)
                if offer is None:
                    return None
        return None
