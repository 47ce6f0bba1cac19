"""Data Transfer Objects — plain containers that cross layer boundaries.

DTOs carry data between the CLI and application layers without
exposing domain internals to the outside world.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime

from barter.domain.model.offer import BarterOffer

_TS_FORMAT = "%Y-%m-%d %H:%M UTC"


def _fmt(ts: datetime | None) -> str | None:
    return ts.strftime(_TS_FORMAT) if ts is not None else None


@dataclass(frozen=True)
class OfferItemSpec:
    """Input: a listing the acting user pledges, and how many units."""

    listing_id: str
    quantity: int


@dataclass(frozen=True)
class OfferItemDTO:
    listing_id: str
    quantity: int


@dataclass(frozen=True)
class OfferDTO:
    """Output: an offer as displayed to a trade party."""

    id: int
    listing_id: str
    buyer_id: str
    seller_id: str
    status: str
    offered_cash_cents: int
    offered_cash: str  # formatted, e.g. "USD 30.00"
    currency_code: str
    items: list[OfferItemDTO]
    message: str | None
    downpayment_status: str
    dispute_status: str
    offer_maker_confirmed_at: str | None
    listing_owner_confirmed_at: str | None
    receipt_available_at: str | None
    timer_expires_at: str | None
    timer_paused: bool
    timer_extension_count: int
    conversation_id: str | None
    countered_from_id: int | None
    cancel_reason: str | None
    created_at: str


def to_offer_dto(offer: BarterOffer) -> OfferDTO:
    return OfferDTO(
        id=offer.id,  # type: ignore[arg-type]
        listing_id=offer.listing_id,
        buyer_id=offer.buyer_id,
        seller_id=offer.seller_id,
        status=offer.status.value,
        offered_cash_cents=offer.offered_cash.cents,
        offered_cash=str(offer.offered_cash),
        currency_code=offer.offered_cash.currency,
        items=[
            OfferItemDTO(listing_id=item.offered_listing_id, quantity=item.quantity.value)
            for item in offer.items
        ],
        message=offer.message,
        downpayment_status=offer.downpayment_status.value,
        dispute_status=offer.dispute_status.value,
        offer_maker_confirmed_at=_fmt(offer.offer_maker_confirmed_at),
        listing_owner_confirmed_at=_fmt(offer.listing_owner_confirmed_at),
        receipt_available_at=_fmt(offer.receipt_available_at),
        timer_expires_at=_fmt(offer.timer_expires_at),
        timer_paused=offer.timer_paused_at is not None,
        timer_extension_count=offer.timer_extension_count,
        conversation_id=offer.conversation_id,
        countered_from_id=offer.countered_from_id,
        cancel_reason=offer.cancel_reason.value if offer.cancel_reason else None,
        created_at=offer.created_at.strftime(_TS_FORMAT),
    )


@dataclass(frozen=True)
class ConfirmationDTO:
    """Output of a delivery confirmation.

    ``finalized`` is True only for the call that completed the pair and
    deducted inventory.
    """

    offer: OfferDTO
    recorded: bool
    finalized: bool


@dataclass(frozen=True)
class ReceiptDTO:
    receipt_number: str
    generated_at: str
    offer_id: int
    listing_id: str
    buyer_id: str
    seller_id: str
    offered_cash: str
    items: list[OfferItemDTO]


@dataclass(frozen=True)
class ExtensionDTO:
    """Output of a timer extension: granted by the seller, or requested by the buyer."""

    offer: OfferDTO
    extended: bool
    message: str


@dataclass
class SweepResultDTO:
    cancelled: list[int] = field(default_factory=list)
    failed: list[int] = field(default_factory=list)
    warned: list[int] = field(default_factory=list)
