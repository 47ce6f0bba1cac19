"""Application service: Show Offer use case (query)."""

from __future__ import annotations

from barter.application.dto import OfferDTO, to_offer_dto
from barter.domain.exceptions import EntityNotFoundError, ForbiddenError
from barter.domain.repository.offer_repository import OfferRepository


class ShowOfferHandler:

    def __init__(self, offer_repo: OfferRepository) -> None:
        self._offer_repo = offer_repo

    def handle(self, offer_id: int, user_id: str) -> OfferDTO:
        offer = self._offer_repo.get_by_id(offer_id)
        if offer is None:
            raise EntityNotFoundError(f"Offer #{offer_id} not found")
        if not offer.is_party(user_id):
            raise ForbiddenError("You do not have access to this offer")
        return to_offer_dto(offer)
