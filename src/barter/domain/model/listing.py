"""Listing aggregate.

Listings are owned by the catalog, outside the offer engine.  The engine
only reads and writes the fields that trades depend on: quantity, status,
the accepted payment modes and the optional downpayment floor.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from barter.domain.exceptions import ValidationError
from barter.domain.model.value_objects import DEFAULT_CURRENCY, Money


class ListingStatus(Enum):
    ACTIVE = "active"
    SOLD = "sold"
    REMOVED = "removed"
    SUSPENDED = "suspended"
    EXPIRED = "expired"


@dataclass
class Listing:
    """A listing that can be traded for, or pledged as barter payment.

    Invariants:
    - ``quantity`` is never negative
    - a listing whose quantity reaches 0 through a trade becomes SOLD

    ``version`` is bumped by the repository on every save; a save carrying
    a stale version is rejected.
    """

    id: str
    seller_id: str
    title: str
    quantity: int
    status: ListingStatus = ListingStatus.ACTIVE
    currency_code: str = DEFAULT_CURRENCY
    allow_cash: bool = True
    allow_barter: bool = True
    allow_cash_plus_barter: bool = False
    downpayment_required_cents: int | None = None
    version: int = 0

    def __post_init__(self) -> None:
        if self.quantity < 0:
            raise ValidationError(
                f"Listing quantity cannot be negative, got {self.quantity}"
            )

    @property
    def is_active(self) -> bool:
        return self.status == ListingStatus.ACTIVE

    @property
    def accepts_offers(self) -> bool:
        return self.allow_cash or self.allow_barter or self.allow_cash_plus_barter

    @property
    def downpayment_floor(self) -> Money | None:
        if not self.downpayment_required_cents:
            return None
        return Money(self.downpayment_required_cents, self.currency_code)

    @property
    def requires_downpayment(self) -> bool:
        return self.downpayment_floor is not None

    def deduct(self, quantity: int) -> None:
        """Permanently remove traded units, clamping at zero.

        Reaching zero marks the listing SOLD in the same step so the two
        fields can never be observed out of sync.
        """
        if quantity <= 0:
            raise ValidationError("Deduct quantity must be positive")
        self.quantity = max(self.quantity - quantity, 0)
        if self.quantity == 0:
            self.status = ListingStatus.SOLD

    def set_quantity(self, quantity: int) -> None:
        if quantity < 0:
            raise ValidationError("Listing quantity cannot be negative")
        self.quantity = quantity

    def change_status(self, status: ListingStatus) -> None:
        self.status = status
