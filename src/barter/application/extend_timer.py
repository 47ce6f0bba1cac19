"""Application service: Extend Trade Timer use case.

The seller can add time directly, up to a fixed number of extensions.
The buyer can only ask: the request is forwarded to the seller and the
offer is left unchanged.
"""

from __future__ import annotations

import logging

from barter.application.concurrency import retry_on_conflict
from barter.application.dto import ExtensionDTO, to_offer_dto
from barter.application.side_effects import TradeSideEffects
from barter.domain.exceptions import EntityNotFoundError
from barter.domain.gateway.clock import Clock
from barter.domain.gateway.notification_gateway import NotificationKind
from barter.domain.model.offer import BarterOffer, TradeParty
from barter.domain.model.policy import DEFAULT_POLICY, TradePolicy
from barter.domain.repository.offer_repository import OfferRepository
from barter.domain.repository.transaction import TransactionManager

logger = logging.getLogger(__name__)


class ExtendTimerHandler:

    def __init__(
        self,
        offer_repo: OfferRepository,
        tx: TransactionManager,
        side_effects: TradeSideEffects,
        clock: Clock,
        policy: TradePolicy = DEFAULT_POLICY,
    ) -> None:
        self._offer_repo = offer_repo
        self._tx = tx
        self._side_effects = side_effects
        self._clock = clock
        self._policy = policy

    def handle(self, offer_id: int, acting_user_id: str) -> ExtensionDTO:
        offer = self._offer_repo.get_by_id(offer_id)
        if offer is None:
            raise EntityNotFoundError(f"Offer #{offer_id} not found")

        if offer.party_of(acting_user_id) == TradeParty.OFFER_MAKER:
            offer.check_extension_request(acting_user_id, self._clock.now())
            self._side_effects.notify(
                offer.seller_id,
                NotificationKind.EXTENSION_REQUESTED,
                title="Extension Requested",
                message=f"The buyer asked for more time on trade #{offer.id}.",
                offerId=offer.id,
            )
            return ExtensionDTO(
                offer=to_offer_dto(offer),
                extended=False,
                message="Extension request sent to seller.",
            )

        offer = retry_on_conflict(lambda: self._extend(offer_id, acting_user_id))
        minutes = int(self._policy.timer_extension.total_seconds() // 60)
        logger.info(
            "Trade #%s timer extended by %d minutes (%d/%d)",
            offer.id, minutes, offer.timer_extension_count,
            self._policy.max_timer_extensions,
        )
        self._side_effects.notify(
            offer.buyer_id,
            NotificationKind.TIMER_EXTENDED,
            title="Timer Extended",
            message=f"The seller added {minutes} minutes to trade #{offer.id}.",
            offerId=offer.id,
        )
        return ExtensionDTO(
            offer=to_offer_dto(offer),
            extended=True,
            message=f"Timer extended by {minutes} minutes.",
        )

    def _extend(self, offer_id: int, acting_user_id: str) -> BarterOffer:
        with self._tx.atomic():
            offer = self._offer_repo.get_by_id(offer_id)
            if offer is None:
                raise EntityNotFoundError(f"Offer #{offer_id} not found")
            offer.extend_timer(
                acting_user_id,
                now=self._clock.now(),
                extension=self._policy.timer_extension,
                max_extensions=self._policy.max_timer_extensions,
            )
            self._offer_repo.save(offer)
            return offer
