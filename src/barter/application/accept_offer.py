"""Application service: Accept Offer use case.

Moves a pending offer to accepted, starts the trade timer, links the
parties' conversation and arms the downpayment track if the listing
requires one.  Accepting firms up the buyer's pledges, so other pending
offers pledging the same inventory are revalidated afterwards.
"""

from __future__ import annotations

import logging

from barter.application.concurrency import retry_on_conflict
from barter.application.dto import OfferDTO, to_offer_dto
from barter.application.revalidate_commitments import RevalidateCommitmentsHandler
from barter.application.side_effects import TradeSideEffects
from barter.domain.exceptions import EntityNotFoundError
from barter.domain.gateway.clock import Clock
from barter.domain.gateway.notification_gateway import NotificationKind
from barter.domain.model.offer import BarterOffer
from barter.domain.model.policy import DEFAULT_POLICY, TradePolicy
from barter.domain.repository.listing_repository import ListingRepository
from barter.domain.repository.offer_repository import OfferRepository
from barter.domain.repository.transaction import TransactionManager

logger = logging.getLogger(__name__)


class AcceptOfferHandler:

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

    def handle(self, offer_id: int, acting_user_id: str) -> OfferDTO:
        offer = retry_on_conflict(lambda: self._accept(offer_id, acting_user_id))
        logger.info("Offer #%s accepted by %s", offer.id, acting_user_id)

        self._side_effects.notify(
            offer.buyer_id,
            NotificationKind.OFFER_ACCEPTED,
            title="Offer Accepted!",
            message=f"Your offer #{offer.id} was accepted",
            offerId=offer.id,
            listingId=offer.listing_id,
        )

        RevalidateCommitmentsHandler(
            self._listing_repo, self._offer_repo, self._tx,
            self._side_effects, self._clock,
        ).handle_many(offer.pledged_listing_ids)
        return to_offer_dto(offer)

    def _accept(self, offer_id: int, acting_user_id: str) -> BarterOffer:
        with self._tx.atomic():
            offer = self._offer_repo.get_by_id(offer_id)
            if offer is None:
                raise EntityNotFoundError(f"Offer #{offer_id} not found")

            listing = self._listing_repo.get_by_id(offer.listing_id)
            if listing is None:
                raise EntityNotFoundError(f"Listing {offer.listing_id} not found")

            offer.accept(
                acting_user_id,
                now=self._clock.now(),
                trade_timer=self._policy.trade_timer,
                requires_downpayment=listing.requires_downpayment,
            )
            # Reuses an existing thread for this pair and listing.
            offer.conversation_id = self._side_effects.open_conversation(
                offer.buyer_id, offer.seller_id, offer.listing_id
            )
            self._offer_repo.save(offer)
            return offer
