"""Application service: Add Listing use case.

Listing management belongs to the catalog; this handler exists so the
engine can be seeded and exercised on its own.
"""

from __future__ import annotations

from barter.domain.exceptions import ValidationError
from barter.domain.model.listing import Listing
from barter.domain.model.value_objects import DEFAULT_CURRENCY
from barter.domain.repository.listing_repository import ListingRepository


class AddListingHandler:

    def __init__(self, listing_repo: ListingRepository) -> None:
        self._listing_repo = listing_repo

    def handle(
        self,
        seller_id: str,
        title: str,
        quantity: int,
        currency_code: str = DEFAULT_CURRENCY,
        allow_cash: bool = True,
        allow_barter: bool = True,
        allow_cash_plus_barter: bool = False,
        downpayment_required_cents: int | None = None,
    ) -> Listing:
        """Add a new active listing owned by *seller_id*."""
        if not seller_id or not seller_id.strip():
            raise ValidationError("Seller is required")
        if not title or not title.strip():
            raise ValidationError("Listing title is required")
        if downpayment_required_cents is not None and downpayment_required_cents < 0:
            raise ValidationError("Downpayment cannot be negative")

        # Auto-assign ID based on existing listings
        numeric_ids = [
            int(existing.id)
            for existing in self._listing_repo.list_all()
            if existing.id.isdigit()
        ]
        next_id = str(max(numeric_ids) + 1) if numeric_ids else "1"

        listing = Listing(
            id=next_id,
            seller_id=seller_id.strip(),
            title=title.strip(),
            quantity=quantity,
            currency_code=currency_code,
            allow_cash=allow_cash,
            allow_barter=allow_barter,
            allow_cash_plus_barter=allow_cash_plus_barter,
            downpayment_required_cents=downpayment_required_cents or None,
        )
        self._listing_repo.save(listing)
        return listing
