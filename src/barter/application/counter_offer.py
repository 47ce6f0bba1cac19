"""Application service: Counter Offer use case.

The seller answers a pending offer with new terms.  The original offer
becomes COUNTERED and a sibling offer is created with the roles swapped:
the seller is now the pledging party, the original buyer decides.
"""

from __future__ import annotations

import logging

from barter.application.concurrency import retry_on_conflict
from barter.application.create_offer import to_offer_items
from barter.application.dto import OfferDTO, OfferItemSpec, to_offer_dto
from barter.application.side_effects import TradeSideEffects
from barter.domain.exceptions import EntityNotFoundError
from barter.domain.gateway.clock import Clock
from barter.domain.gateway.notification_gateway import NotificationKind
from barter.domain.model.offer import BarterOffer, OfferItem
from barter.domain.model.value_objects import Money
from barter.domain.repository.listing_repository import ListingRepository
from barter.domain.repository.offer_repository import OfferRepository
from barter.domain.repository.transaction import TransactionManager
from barter.domain.service.inventory_ledger import InventoryLedger

logger = logging.getLogger(__name__)


class CounterOfferHandler:

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
        offer_id: int,
        acting_user_id: str,
        cash_cents: int = 0,
        item_specs: list[OfferItemSpec] | None = None,
        message: str | None = None,
    ) -> OfferDTO:
        """Counter *offer_id* and return the new sibling offer."""
        items = to_offer_items(item_specs or [])
        original, counter = retry_on_conflict(
            lambda: self._counter(offer_id, acting_user_id, cash_cents, items, message)
        )
        logger.info(
            "Offer #%s countered by %s with offer #%s",
            original.id, acting_user_id, counter.id,
        )

        self._side_effects.notify(
            original.buyer_id,
            NotificationKind.COUNTER_OFFER,
            title="Counter Offer Received",
            message=f"You received a counter-offer to your offer #{original.id}",
            offerId=counter.id,
            listingId=original.listing_id,
        )
        return to_offer_dto(counter)

    def _counter(
        self,
        offer_id: int,
        acting_user_id: str,
        cash_cents: int,
        items: list[OfferItem],
        message: str | None,
    ) -> tuple[BarterOffer, BarterOffer]:
        with self._tx.atomic():
            original = self._offer_repo.get_by_id(offer_id)
            if original is None:
                raise EntityNotFoundError(f"Original offer #{offer_id} not found")

            now = self._clock.now()
            original.mark_countered(acting_user_id, now)

            InventoryLedger(self._listing_repo, self._offer_repo).ensure_pledges_available(
                acting_user_id, items
            )

            counter = BarterOffer.create(
                listing_id=original.listing_id,
                buyer_id=acting_user_id,
                seller_id=original.buyer_id,
                offered_cash=Money(cash_cents, original.offered_cash.currency),
                items=items,
                message=message,
                countered_from_id=original.id,
                now=now,
            )

            self._offer_repo.save(original)
            self._offer_repo.save(counter)
            return original, counter
