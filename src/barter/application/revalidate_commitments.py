"""Application service: Revalidate Commitments use case.

Runs after anything that shrinks a listing or takes it out of the active
pool.  The ledger cancels the pending offers the listing can no longer
support; this handler tells the affected parties.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable

from barter.application.dto import OfferDTO, to_offer_dto
from barter.application.side_effects import TradeSideEffects
from barter.domain.gateway.clock import Clock
from barter.domain.gateway.notification_gateway import NotificationKind
from barter.domain.model.offer import CancelReason
from barter.domain.repository.listing_repository import ListingRepository
from barter.domain.repository.offer_repository import OfferRepository
from barter.domain.repository.transaction import TransactionManager
from barter.domain.service.inventory_ledger import InventoryLedger

logger = logging.getLogger(__name__)

_REASON_TEXT = {
    CancelReason.LISTING_UNAVAILABLE: "the listing is no longer available",
    CancelReason.INSUFFICIENT_CAPACITY: "the pledged items are no longer available in that quantity",
}


class RevalidateCommitmentsHandler:

    def __init__(
        self,
        listing_repo: ListingRepository,
        offer_repo: OfferRepository,
        tx: TransactionManager,
        side_effects: TradeSideEffects,
        clock: Clock,
    ) -> None:
        self._ledger = InventoryLedger(listing_repo, offer_repo)
        self._tx = tx
        self._side_effects = side_effects
        self._clock = clock

    def handle(self, listing_id: str) -> list[OfferDTO]:
        with self._tx.atomic():
            cancellations = self._ledger.revalidate_commitments(
                listing_id, self._clock.now()
            )

        for c in cancellations:
            self._side_effects.notify(
                c.notify_user_id,
                NotificationKind.OFFER_CANCELLED,
                title="Offer Cancelled",
                message=f"Offer #{c.offer.id} was cancelled because "
                        f"{_REASON_TEXT.get(c.reason, c.reason.value)}",
                offerId=c.offer.id,
                listingId=c.listing_id,
                reason=c.reason.value,
            )
        return [to_offer_dto(c.offer) for c in cancellations]

    def handle_many(self, listing_ids: Iterable[str]) -> list[OfferDTO]:
        """Revalidate each listing once, after the triggering change committed.

        A failure on one listing is logged and does not stop the others;
        the triggering operation has already succeeded.
        """
        cancelled: list[OfferDTO] = []
        for listing_id in dict.fromkeys(listing_ids):
            try:
                cancelled.extend(self.handle(listing_id))
            except Exception:
                logger.exception("Revalidation of listing %s failed", listing_id)
        return cancelled
