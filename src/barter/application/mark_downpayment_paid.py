"""Application service: Mark Downpayment Paid use case.

Bookkeeping only: no money moves.  The trade timer pauses while the
seller checks the payment.
"""

from __future__ import annotations

import logging

from barter.application.concurrency import retry_on_conflict
from barter.application.dto import OfferDTO, to_offer_dto
from barter.application.side_effects import TradeSideEffects
from barter.domain.exceptions import EntityNotFoundError
from barter.domain.gateway.clock import Clock
from barter.domain.gateway.notification_gateway import NotificationKind
from barter.domain.model.offer import BarterOffer
from barter.domain.repository.offer_repository import OfferRepository
from barter.domain.repository.transaction import TransactionManager

logger = logging.getLogger(__name__)


class MarkDownpaymentPaidHandler:

    def __init__(
        self,
        offer_repo: OfferRepository,
        tx: TransactionManager,
        side_effects: TradeSideEffects,
        clock: Clock,
    ) -> None:
        self._offer_repo = offer_repo
        self._tx = tx
        self._side_effects = side_effects
        self._clock = clock

    def handle(self, offer_id: int, acting_user_id: str) -> OfferDTO:
        offer = retry_on_conflict(lambda: self._mark_paid(offer_id, acting_user_id))
        logger.info("Downpayment for trade #%s marked paid", offer.id)

        self._side_effects.notify(
            offer.seller_id,
            NotificationKind.DOWNPAYMENT_PAID,
            title="Downpayment Sent",
            message=f"The buyer marked the downpayment for trade #{offer.id} as paid. "
                    f"Please verify and confirm receipt.",
            offerId=offer.id,
        )
        return to_offer_dto(offer)

    def _mark_paid(self, offer_id: int, acting_user_id: str) -> BarterOffer:
        with self._tx.atomic():
            offer = self._offer_repo.get_by_id(offer_id)
            if offer is None:
                raise EntityNotFoundError(f"Offer #{offer_id} not found")
            offer.mark_downpayment_paid(acting_user_id, self._clock.now())
            self._offer_repo.save(offer)
            return offer
