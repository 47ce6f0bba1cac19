"""Application service: Confirm Trade use case.

Each party independently attests delivery.  The call that completes the
pair finalizes the trade in one atomic section:

1. open the receipt eligibility window on the offer;
2. deduct one unit of the target listing;
3. deduct every pledged quantity from the pledged listings.

Listings that reach zero are marked sold in the same step.  Pending
offers that the smaller listings can no longer support are revalidated
after the section commits.
"""

from __future__ import annotations

import logging
from collections import Counter
from datetime import datetime

from barter.application.concurrency import retry_on_conflict
from barter.application.dto import ConfirmationDTO, to_offer_dto
from barter.application.revalidate_commitments import RevalidateCommitmentsHandler
from barter.application.side_effects import TradeSideEffects
from barter.domain.exceptions import EntityNotFoundError
from barter.domain.gateway.clock import Clock
from barter.domain.gateway.notification_gateway import NotificationKind
from barter.domain.model.listing import Listing
from barter.domain.model.offer import BarterOffer
from barter.domain.model.policy import DEFAULT_POLICY, TradePolicy
from barter.domain.repository.listing_repository import ListingRepository
from barter.domain.repository.offer_repository import OfferRepository
from barter.domain.repository.transaction import TransactionManager

logger = logging.getLogger(__name__)


class ConfirmTradeHandler:

    def __init__(
        self,
        listing_repo: ListingRepository,
        offer_repo: OfferRepository,
        tx: TransactionManager,
        side_effects: TradeSideEffects,
        clock: Clock,
        policy: TradePolicy = DEFAULT_POLICY,
    ) -> None:
        self._listing_repo = listing_repo
        self._offer_repo = offer_repo
        self._tx = tx
        self._side_effects = side_effects
        self._clock = clock
        self._policy = policy

    def handle(self, offer_id: int, acting_user_id: str) -> ConfirmationDTO:
        offer, recorded, finalized, touched = retry_on_conflict(
            lambda: self._confirm(offer_id, acting_user_id)
        )

        if finalized:
            logger.info(
                "Trade #%s finalized; receipt available at %s",
                offer.id, offer.receipt_available_at,
            )
            for user_id in (offer.buyer_id, offer.seller_id):
                self._side_effects.notify(
                    user_id,
                    NotificationKind.TRADE_COMPLETED,
                    title="Trade Complete",
                    message="Both parties confirmed the exchange. "
                            "Your receipt will be available after the cooling-off period.",
                    offerId=offer.id,
                    receiptAvailableAt=offer.receipt_available_at.isoformat(),  # type: ignore[union-attr]
                )
            RevalidateCommitmentsHandler(
                self._listing_repo, self._offer_repo, self._tx,
                self._side_effects, self._clock,
            ).handle_many(touched)
        elif recorded:
            logger.info("Trade #%s confirmed by %s", offer.id, acting_user_id)
            self._side_effects.notify(
                offer.counterparty_of(acting_user_id),
                NotificationKind.TRADE_CONFIRMED,
                title="Trade Confirmed",
                message=f"The other party confirmed trade #{offer.id}. "
                        f"Confirm on your side to complete it.",
                offerId=offer.id,
            )

        return ConfirmationDTO(
            offer=to_offer_dto(offer), recorded=recorded, finalized=finalized
        )

    def _confirm(
        self, offer_id: int, acting_user_id: str
    ) -> tuple[BarterOffer, bool, bool, list[str]]:
        with self._tx.atomic():
            offer = self._offer_repo.get_by_id(offer_id)
            if offer is None:
                raise EntityNotFoundError(f"Offer #{offer_id} not found")

            before = (offer.offer_maker_confirmed_at, offer.listing_owner_confirmed_at)
            now = self._clock.now()
            completed = offer.confirm(acting_user_id, now)
            recorded = before != (
                offer.offer_maker_confirmed_at, offer.listing_owner_confirmed_at
            )
            if not recorded:
                return offer, False, False, []

            listings: list[Listing] = []
            if completed:
                listings = self._finalize(offer, now)

            # A failed or conflicting save rolls back the writes before it.
            self._offer_repo.save(offer)
            for listing in listings:
                self._listing_repo.save(listing)
            return offer, True, completed, [listing.id for listing in listings]

    def _finalize(self, offer: BarterOffer, now: datetime) -> list[Listing]:
        """Apply the trade to the offer and the listings it touches.

        Two phases: load every listing first so a missing one fails the
        whole trade before anything is mutated.
        """
        deductions: Counter[str] = Counter({offer.listing_id: 1})
        for item in offer.items:
            deductions[item.offered_listing_id] += item.quantity.value

        # Phase 1: load and validate
        loaded: list[tuple[Listing, int]] = []
        for listing_id, quantity in deductions.items():
            listing = self._listing_repo.get_by_id(listing_id)
            if listing is None:
                raise EntityNotFoundError(f"Listing {listing_id} not found")
            loaded.append((listing, quantity))

        # Phase 2: mutate
        offer.finalize(now, self._policy.receipt_delay)
        for listing, quantity in loaded:
            listing.deduct(quantity)
        return [listing for listing, _ in loaded]
