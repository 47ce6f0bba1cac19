"""BarterOffer aggregate — the core of the domain.

The offer owns its pledged items and every timestamp of the trade
protocol.  All lifecycle rules are enforced here; handlers only load,
call one method, and persist.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from enum import Enum

from barter.domain.exceptions import (
    ForbiddenError,
    InvalidStateError,
    NotYetAvailableError,
    ValidationError,
)
from barter.domain.model.value_objects import Money, Quantity


class OfferStatus(Enum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    REJECTED = "rejected"
    COUNTERED = "countered"
    CANCELLED = "cancelled"


# Legal lifecycle moves.  Anything not listed here is an InvalidStateError.
_TRANSITIONS: dict[OfferStatus, frozenset[OfferStatus]] = {
    OfferStatus.PENDING: frozenset({
        OfferStatus.ACCEPTED,
        OfferStatus.REJECTED,
        OfferStatus.COUNTERED,
        OfferStatus.CANCELLED,
    }),
    OfferStatus.ACCEPTED: frozenset({OfferStatus.CANCELLED}),
    OfferStatus.REJECTED: frozenset(),
    OfferStatus.COUNTERED: frozenset(),
    OfferStatus.CANCELLED: frozenset(),
}

TERMINAL_STATUSES = frozenset(
    status for status, targets in _TRANSITIONS.items() if not targets
)


def can_transition(source: OfferStatus, target: OfferStatus) -> bool:
    return target in _TRANSITIONS[source]


class DownpaymentStatus(Enum):
    NONE = "none"
    AWAITING_PAYMENT = "awaiting_payment"
    PAID = "paid"
    CONFIRMED = "confirmed"


class DisputeStatus(Enum):
    NONE = "none"
    OPENED = "opened"
    RESOLVED = "resolved"


class TradeParty(Enum):
    OFFER_MAKER = "offer_maker"      # the buyer
    LISTING_OWNER = "listing_owner"  # the seller


class CancelReason(Enum):
    LISTING_UNAVAILABLE = "listing_unavailable"
    INSUFFICIENT_CAPACITY = "insufficient_capacity"
    TIMER_EXPIRED = "timer_expired"


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class OfferItem:
    """A listing pledged by the offer's buyer as (part of) the payment."""

    offered_listing_id: str
    quantity: Quantity


@dataclass
class BarterOffer:
    """Aggregate root for barter offers.

    Use ``BarterOffer.create()`` for new offers.  The ``__init__`` stays
    plain so repositories can reconstitute persisted offers without
    re-running creation rules.

    ``version`` is bumped by the repository on every save and is used as
    an optimistic concurrency token.
    """

    id: int | None
    listing_id: str
    buyer_id: str
    seller_id: str
    offered_cash: Money
    items: list[OfferItem] = field(default_factory=list)
    message: str | None = None
    status: OfferStatus = OfferStatus.PENDING

    listing_owner_confirmed_at: datetime | None = None
    offer_maker_confirmed_at: datetime | None = None

    receipt_available_at: datetime | None = None
    receipt_generated_at: datetime | None = None
    receipt_number: str | None = None

    downpayment_status: DownpaymentStatus = DownpaymentStatus.NONE
    downpayment_paid_at: datetime | None = None
    downpayment_confirmed_at: datetime | None = None

    timer_expires_at: datetime | None = None
    timer_paused_at: datetime | None = None
    timer_extension_count: int = 0
    timer_warned: bool = False

    dispute_status: DisputeStatus = DisputeStatus.NONE
    conversation_id: str | None = None
    countered_from_id: int | None = None
    cancel_reason: CancelReason | None = None

    version: int = 0
    created_at: datetime = field(default_factory=utc_now)
    updated_at: datetime | None = None

    # --- Factory (used for NEW offers only) -----------------------------------

    @staticmethod
    def create(
        listing_id: str,
        buyer_id: str,
        seller_id: str,
        offered_cash: Money,
        items: list[OfferItem],
        message: str | None = None,
        countered_from_id: int | None = None,
        now: datetime | None = None,
    ) -> BarterOffer:
        """Create a new pending offer, enforcing shape invariants."""
        if buyer_id == seller_id:
            raise ValidationError("Cannot make offer on your own listing")

        seen: set[str] = set()
        for item in items:
            if item.offered_listing_id == listing_id:
                raise ValidationError("Cannot pledge the listing you are bidding on")
            if item.offered_listing_id in seen:
                raise ValidationError(
                    f"Listing {item.offered_listing_id} is pledged more than once"
                )
            seen.add(item.offered_listing_id)

        message = message.strip() if message else None
        return BarterOffer(
            id=None,
            listing_id=listing_id,
            buyer_id=buyer_id,
            seller_id=seller_id,
            offered_cash=offered_cash,
            items=list(items),
            message=message or None,
            countered_from_id=countered_from_id,
            created_at=now or utc_now(),
        )

    # --- Parties --------------------------------------------------------------

    def is_party(self, user_id: str) -> bool:
        return user_id in (self.buyer_id, self.seller_id)

    def party_of(self, user_id: str) -> TradeParty:
        if user_id == self.buyer_id:
            return TradeParty.OFFER_MAKER
        if user_id == self.seller_id:
            return TradeParty.LISTING_OWNER
        raise ForbiddenError("You do not have access to this offer")

    def counterparty_of(self, user_id: str) -> str:
        return self.seller_id if self.party_of(user_id) == TradeParty.OFFER_MAKER else self.buyer_id

    # --- Negotiation transitions ----------------------------------------------

    def accept(
        self,
        acting_user_id: str,
        now: datetime,
        trade_timer: timedelta,
        requires_downpayment: bool,
    ) -> None:
        """PENDING -> ACCEPTED; starts the trade timer."""
        self._require_seller(acting_user_id, "accept")
        self._require_status(OfferStatus.PENDING, "Only pending offers can be accepted")
        self._transition(OfferStatus.ACCEPTED, now)
        self.timer_expires_at = now + trade_timer
        self.timer_paused_at = None
        self.downpayment_status = (
            DownpaymentStatus.AWAITING_PAYMENT
            if requires_downpayment
            else DownpaymentStatus.NONE
        )

    def reject(self, acting_user_id: str, now: datetime) -> None:
        self._require_seller(acting_user_id, "reject")
        self._require_status(OfferStatus.PENDING, "Only pending offers can be rejected")
        self._transition(OfferStatus.REJECTED, now)

    def mark_countered(self, acting_user_id: str, now: datetime) -> None:
        """PENDING -> COUNTERED.  The counter terms live on a new sibling offer."""
        self._require_seller(acting_user_id, "counter")
        self._require_status(OfferStatus.PENDING, "Can only counter pending offers")
        self._transition(OfferStatus.COUNTERED, now)

    def cancel(self, reason: CancelReason, now: datetime) -> None:
        self._transition(OfferStatus.CANCELLED, now)
        self.cancel_reason = reason

    # --- Confirmation & receipt -----------------------------------------------

    def confirm(self, acting_user_id: str, now: datetime) -> bool:
        """Record the acting party's delivery confirmation.

        Sets the caller's timestamp and checks the counterpart's in one
        step.  Returns True only for the call that completes the pair;
        re-confirming is a no-op that returns False.
        """
        self._require_status(
            OfferStatus.ACCEPTED, "Only accepted offers can be confirmed"
        )
        party = self.party_of(acting_user_id)

        if party == TradeParty.OFFER_MAKER:
            if self.offer_maker_confirmed_at is not None:
                return False
            self.offer_maker_confirmed_at = now
            counterpart_confirmed = self.listing_owner_confirmed_at is not None
        else:
            if self.listing_owner_confirmed_at is not None:
                return False
            self.listing_owner_confirmed_at = now
            counterpart_confirmed = self.offer_maker_confirmed_at is not None

        self.updated_at = now
        return counterpart_confirmed

    @property
    def is_fully_confirmed(self) -> bool:
        return (
            self.listing_owner_confirmed_at is not None
            and self.offer_maker_confirmed_at is not None
        )

    @property
    def is_finalized(self) -> bool:
        return self.receipt_available_at is not None

    def finalize(self, now: datetime, receipt_delay: timedelta) -> None:
        """Open the receipt eligibility window after mutual confirmation.

        Inventory deduction is coordinated by the application handler in
        the same atomic section.
        """
        if not self.is_fully_confirmed:
            raise InvalidStateError("Both parties must confirm first")
        if self.is_finalized:
            raise InvalidStateError(f"Offer #{self.id} is already finalized")
        self.receipt_available_at = now + receipt_delay
        self.updated_at = now

    def check_receipt_access(self, acting_user_id: str, now: datetime) -> None:
        """Raise unless a receipt may be issued to *acting_user_id* now."""
        if not self.is_party(acting_user_id):
            raise ForbiddenError("Only the trade parties can view the receipt")
        if self.receipt_available_at is None:
            raise InvalidStateError("Both parties must confirm first")
        if now < self.receipt_available_at:
            remaining = self.receipt_available_at - now
            raise NotYetAvailableError(math.ceil(remaining.total_seconds() / 3600))
        if self.dispute_status != DisputeStatus.NONE:
            raise InvalidStateError(
                "Receipt is unavailable while the trade has a dispute on record"
            )

    def issue_receipt(self, receipt_number: str, now: datetime) -> bool:
        """Attach a receipt number on first issue.  Returns True if generated."""
        if self.receipt_number is not None:
            return False
        self.receipt_number = receipt_number
        self.receipt_generated_at = now
        self.updated_at = now
        return True

    # --- Downpayment sub-flow -------------------------------------------------

    def mark_downpayment_paid(self, acting_user_id: str, now: datetime) -> None:
        """AWAITING_PAYMENT -> PAID.

        The trade timer is paused while the seller verifies the payment.
        """
        if acting_user_id != self.buyer_id:
            raise ForbiddenError("Only the buyer can mark the downpayment as paid")
        self._require_downpayment(DownpaymentStatus.AWAITING_PAYMENT)
        self.downpayment_status = DownpaymentStatus.PAID
        self.downpayment_paid_at = now
        if self.timer_expires_at is not None and self.timer_paused_at is None:
            self.timer_paused_at = now
        self.updated_at = now

    def confirm_downpayment(self, acting_user_id: str, now: datetime) -> None:
        """PAID -> CONFIRMED."""
        if acting_user_id != self.seller_id:
            raise ForbiddenError("Only the seller can confirm the downpayment")
        self._require_downpayment(DownpaymentStatus.PAID)
        self.downpayment_status = DownpaymentStatus.CONFIRMED
        self.downpayment_confirmed_at = now
        self.updated_at = now

    # --- Trade timer ----------------------------------------------------------

    def extend_timer(
        self,
        acting_user_id: str,
        now: datetime,
        extension: timedelta,
        max_extensions: int,
    ) -> None:
        if acting_user_id != self.seller_id:
            raise ForbiddenError("Only the seller can extend the trade timer")
        self._require_running_timer(now)
        if self.timer_extension_count >= max_extensions:
            raise InvalidStateError(
                "Maximum extensions reached — no additional time can be added"
            )
        self.timer_expires_at = self.timer_expires_at + extension  # type: ignore[operator]
        self.timer_extension_count += 1
        self.timer_warned = False
        self.updated_at = now

    def check_extension_request(self, acting_user_id: str, now: datetime) -> None:
        """Validate a buyer's request for more time (no state change)."""
        if acting_user_id != self.buyer_id:
            raise ForbiddenError("Only the buyer can request a timer extension")
        self._require_running_timer(now)

    def is_expired(self, now: datetime) -> bool:
        """True if the sweep should cancel this offer."""
        return (
            self.status == OfferStatus.ACCEPTED
            and self.timer_expires_at is not None
            and self.timer_expires_at < now
            and self.timer_paused_at is None
            and not self.is_finalized
            and self.downpayment_status != DownpaymentStatus.CONFIRMED
        )

    def needs_timer_warning(self, now: datetime, window: timedelta) -> bool:
        return (
            self.status == OfferStatus.ACCEPTED
            and not self.timer_warned
            and self.timer_paused_at is None
            and not self.is_finalized
            and self.timer_expires_at is not None
            and now < self.timer_expires_at <= now + window
        )

    def mark_timer_warned(self) -> None:
        self.timer_warned = True

    # --- Disputes -------------------------------------------------------------

    def open_dispute(self, acting_user_id: str, now: datetime) -> None:
        self.party_of(acting_user_id)
        if self.dispute_status != DisputeStatus.NONE:
            raise InvalidStateError("A dispute has already been opened for this trade")
        self.dispute_status = DisputeStatus.OPENED
        self.updated_at = now

    def resolve_dispute(self, now: datetime) -> None:
        if self.dispute_status != DisputeStatus.OPENED:
            raise InvalidStateError("No open dispute to resolve")
        self.dispute_status = DisputeStatus.RESOLVED
        self.updated_at = now

    # --- Inventory commitment -------------------------------------------------

    @property
    def holds_commitment(self) -> bool:
        """True while the pledged units are promised but not yet deducted."""
        if self.status == OfferStatus.PENDING:
            return True
        return self.status == OfferStatus.ACCEPTED and not self.is_finalized

    def pledged_quantity(self, listing_id: str) -> int:
        return sum(
            item.quantity.value
            for item in self.items
            if item.offered_listing_id == listing_id
        )

    @property
    def pledged_listing_ids(self) -> list[str]:
        return [item.offered_listing_id for item in self.items]

    # --- Internal helpers -----------------------------------------------------

    def _transition(self, target: OfferStatus, now: datetime) -> None:
        if not can_transition(self.status, target):
            raise InvalidStateError(
                f"Cannot move offer #{self.id} from {self.status.value} "
                f"to {target.value}"
            )
        self.status = target
        self.updated_at = now

    def _require_status(self, expected: OfferStatus, message: str) -> None:
        if self.status != expected:
            raise InvalidStateError(
                f"{message} (offer #{self.id} is {self.status.value})"
            )

    def _require_seller(self, acting_user_id: str, action: str) -> None:
        if acting_user_id != self.seller_id:
            raise ForbiddenError(f"Only the listing owner can {action} offers")

    def _require_downpayment(self, expected: DownpaymentStatus) -> None:
        self._require_status(OfferStatus.ACCEPTED, "Downpayment applies to accepted offers only")
        if self.downpayment_status != expected:
            raise InvalidStateError(
                f"Downpayment is {self.downpayment_status.value}, "
                f"expected {expected.value}"
            )

    def _require_running_timer(self, now: datetime) -> None:
        self._require_status(OfferStatus.ACCEPTED, "Only accepted trades have a timer")
        if self.is_finalized:
            raise InvalidStateError("Trade is already complete")
        if self.timer_expires_at is None:
            raise InvalidStateError("Trade timer is not running")
        if self.timer_paused_at is not None:
            raise InvalidStateError("Trade timer is paused")
        if self.timer_expires_at <= now:
            raise InvalidStateError("Trade timer has already expired")
