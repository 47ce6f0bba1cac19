"""Application service: Get Receipt use case.

The receipt number is generated lazily on the first successful call and
returned unchanged on every call after that.
"""

from __future__ import annotations

import logging
import uuid
from collections.abc import Callable
from datetime import datetime

from barter.application.concurrency import retry_on_conflict
from barter.application.dto import OfferItemDTO, ReceiptDTO
from barter.domain.exceptions import EntityNotFoundError
from barter.domain.gateway.clock import Clock
from barter.domain.model.offer import BarterOffer
from barter.domain.repository.offer_repository import OfferRepository
from barter.domain.repository.transaction import TransactionManager

logger = logging.getLogger(__name__)


def generate_receipt_number(now: datetime) -> str:
    return f"RCP-{now:%Y%m%d}-{uuid.uuid4().hex[:10].upper()}"


class GetReceiptHandler:

    def __init__(
        self,
        offer_repo: OfferRepository,
        tx: TransactionManager,
        clock: Clock,
        receipt_numbers: Callable[[datetime], str] = generate_receipt_number,
    ) -> None:
        self._offer_repo = offer_repo
        self._tx = tx
        self._clock = clock
        self._receipt_numbers = receipt_numbers

    def handle(self, offer_id: int, acting_user_id: str) -> ReceiptDTO:
        offer = retry_on_conflict(lambda: self._issue(offer_id, acting_user_id))
        return ReceiptDTO(
            receipt_number=offer.receipt_number,  # type: ignore[arg-type]
            generated_at=offer.receipt_generated_at.strftime("%Y-%m-%d %H:%M:%S UTC"),  # type: ignore[union-attr]
            offer_id=offer.id,  # type: ignore[arg-type]
            listing_id=offer.listing_id,
            buyer_id=offer.buyer_id,
            seller_id=offer.seller_id,
            offered_cash=str(offer.offered_cash),
            items=[
                OfferItemDTO(listing_id=i.offered_listing_id, quantity=i.quantity.value)
                for i in offer.items
            ],
        )

    def _issue(self, offer_id: int, acting_user_id: str) -> BarterOffer:
        with self._tx.atomic():
            offer = self._offer_repo.get_by_id(offer_id)
            if offer is None:
                raise EntityNotFoundError(f"Offer #{offer_id} not found")

            now = self._clock.now()
            offer.check_receipt_access(acting_user_id, now)
            if offer.issue_receipt(self._receipt_numbers(now), now):
                self._offer_repo.save(offer)
                logger.info("Receipt %s generated for trade #%s", offer.receipt_number, offer.id)
            return offer
