"""Application service: List Offers use case (query)."""

from __future__ import annotations

from barter.application.dto import OfferDTO, to_offer_dto
from barter.domain.exceptions import ValidationError
from barter.domain.model.offer import OfferStatus
from barter.domain.repository.offer_repository import OfferRepository

_ROLES = ("sent", "received")


class ListOffersHandler:

    def __init__(self, offer_repo: OfferRepository) -> None:
        self._offer_repo = offer_repo

    def handle(
        self,
        user_id: str,
        role: str | None = None,
        status: str | None = None,
        listing_id: str | None = None,
    ) -> list[OfferDTO]:
        """Offers the user sent, received, or both; newest first."""
        if role is not None and role not in _ROLES:
            raise ValidationError(f"Unknown role {role!r}, expected one of {_ROLES}")
        try:
            status_filter = OfferStatus(status) if status else None
        except ValueError as exc:
            raise ValidationError(f"Unknown offer status {status!r}") from exc

        offers = self._offer_repo.list_for_user(
            user_id, role=role, status=status_filter, listing_id=listing_id
        )
        return [to_offer_dto(o) for o in offers]
