"""Application service: Create Offer use case.

Orchestrates the flow between repositories, the Inventory Ledger and the
BarterOffer aggregate.  Every rule is checked before anything is written.
"""

from __future__ import annotations

import logging

from barter.application.dto import OfferDTO, OfferItemSpec, to_offer_dto
from barter.application.side_effects import TradeSideEffects
from barter.domain.exceptions import EntityNotFoundError, RateLimitedError, ValidationError
from barter.domain.gateway.clock import Clock
from barter.domain.gateway.notification_gateway import NotificationKind
from barter.domain.model.offer import BarterOffer, OfferItem
from barter.domain.model.policy import DEFAULT_POLICY, TradePolicy
from barter.domain.model.value_objects import Money, Quantity
from barter.domain.repository.listing_repository import ListingRepository
from barter.domain.repository.offer_repository import OfferRepository
from barter.domain.repository.transaction import TransactionManager
from barter.domain.service.inventory_ledger import InventoryLedger

logger = logging.getLogger(__name__)


def to_offer_items(specs: list[OfferItemSpec]) -> list[OfferItem]:
    return [
        OfferItem(offered_listing_id=spec.listing_id, quantity=Quantity(spec.quantity))
        for spec in specs
    ]


class CreateOfferHandler:

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

    def handle(
        self,
        buyer_id: str,
        listing_id: str,
        cash_cents: int = 0,
        item_specs: list[OfferItemSpec] | None = None,
        message: str | None = None,
    ) -> OfferDTO:
        """Submit a new pending offer against *listing_id*.

        Steps:
        1. Check the target listing and the cash terms.
        2. Enforce the per-listing pending offer cap.
        3. Let the ledger validate every pledged item.
        4. Persist and notify the seller.
        """
        items = to_offer_items(item_specs or [])

        with self._tx.atomic():
            listing = self._listing_repo.get_by_id(listing_id)
            if listing is None:
                raise EntityNotFoundError("Target listing not found")
            if listing.seller_id == buyer_id:
                raise ValidationError("Cannot make offer on your own listing")
            if not listing.accepts_offers:
                raise ValidationError("This listing does not accept cash or barter offers")
            if not listing.is_active:
                raise ValidationError(
                    f"Listing {listing.id} is not available (status={listing.status.value})"
                )

            cash = Money(cash_cents, listing.currency_code)
            floor = listing.downpayment_floor
            if floor is not None and cash < floor:
                raise ValidationError(
                    f"Offer cash {cash} is below the required downpayment {floor}"
                )

            limit = self._policy.max_pending_offers_per_listing
            if self._offer_repo.count_pending(listing.id, buyer_id) >= limit:
                raise RateLimitedError(limit)

            InventoryLedger(self._listing_repo, self._offer_repo).ensure_pledges_available(
                buyer_id, items
            )

            offer = BarterOffer.create(
                listing_id=listing.id,
                buyer_id=buyer_id,
                seller_id=listing.seller_id,
                offered_cash=cash,
                items=items,
                message=message,
                now=self._clock.now(),
            )
            self._offer_repo.save(offer)

        logger.info(
            "Offer #%s created by %s on listing %s", offer.id, buyer_id, listing.id
        )
        self._side_effects.notify(
            listing.seller_id,
            NotificationKind.NEW_OFFER,
            title="New Barter Offer",
            message=f"You received an offer for {listing.title}",
            offerId=offer.id,
            listingId=listing.id,
        )
        return to_offer_dto(offer)
