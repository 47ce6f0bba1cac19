"""Integration tests for AddListing and UpdateListing (with revalidation)."""

import pytest

from barter.application.add_listing import AddListingHandler
from barter.application.create_offer import CreateOfferHandler
from barter.application.dto import OfferItemSpec
from barter.application.update_listing import UpdateListingHandler
from barter.domain.exceptions import EntityNotFoundError, ValidationError
from barter.domain.gateway.notification_gateway import NotificationKind
from barter.domain.model.listing import ListingStatus
from barter.domain.model.offer import CancelReason, OfferStatus
from tests.fakes import TradeWorld, make_world


def _update(world: TradeWorld) -> UpdateListingHandler:
    return UpdateListingHandler(
        world.listings, world.offers, world.tx, world.side_effects, world.clock
    )


def _create(world: TradeWorld, buyer: str, listing_id: str, **kwargs) -> int:
    return CreateOfferHandler(
        world.listings, world.offers, world.tx, world.side_effects, world.clock
    ).handle(buyer, listing_id, **kwargs).id


class TestAddListing:

    def test_first_listing_gets_id_1(self):
        world = make_world(listings=[])
        listing = AddListingHandler(world.listings).handle("sam", "Bike", 1)
        assert listing.id == "1"
        assert world.listing("1").title == "Bike"

    def test_ids_increment(self):
        world = make_world()
        listing = AddListingHandler(world.listings).handle("sam", "Helmet", 2)
        assert listing.id == "31"

    def test_downpayment_floor(self):
        world = make_world(listings=[])
        listing = AddListingHandler(world.listings).handle(
            "sam", "Bike", 1, downpayment_required_cents=2500
        )
        assert listing.requires_downpayment

    def test_blank_title_rejected(self):
        world = make_world(listings=[])
        with pytest.raises(ValidationError, match="title is required"):
            AddListingHandler(world.listings).handle("sam", "  ", 1)

    def test_negative_quantity_rejected(self):
        world = make_world(listings=[])
        with pytest.raises(ValidationError):
            AddListingHandler(world.listings).handle("sam", "Bike", -1)


class TestUpdateListing:

    def test_shrinking_pledged_listing_cancels_overflow(self):
        world = make_world()
        offer_id = _create(world, "bob", "10", item_specs=[OfferItemSpec("20", 3)])

        listing, cancelled = _update(world).handle("20", quantity=2)

        assert listing.quantity == 2
        assert [dto.id for dto in cancelled] == [offer_id]
        offer = world.offer(offer_id)
        assert offer.status == OfferStatus.CANCELLED
        assert offer.cancel_reason == CancelReason.INSUFFICIENT_CAPACITY
        assert NotificationKind.OFFER_CANCELLED in world.notifications.kinds_for("sam")

    def test_removing_target_cancels_offers(self):
        world = make_world()
        offer_id = _create(world, "bob", "10")

        _, cancelled = _update(world).handle("10", status="removed")

        assert [dto.id for dto in cancelled] == [offer_id]
        assert world.offer(offer_id).cancel_reason == CancelReason.LISTING_UNAVAILABLE
        assert NotificationKind.OFFER_CANCELLED in world.notifications.kinds_for("bob")

    def test_growing_listing_cancels_nothing(self):
        world = make_world()
        offer_id = _create(world, "bob", "10", item_specs=[OfferItemSpec("20", 3)])
        _, cancelled = _update(world).handle("20", quantity=5)
        assert cancelled == []
        assert world.offer(offer_id).status == OfferStatus.PENDING

    def test_no_change_is_noop(self):
        world = make_world()
        listing, cancelled = _update(world).handle("20", quantity=3)
        assert listing.status == ListingStatus.ACTIVE
        assert cancelled == []

    def test_unknown_status(self):
        with pytest.raises(ValidationError, match="Unknown listing status"):
            _update(make_world()).handle("20", status="gone")

    def test_unknown_listing(self):
        with pytest.raises(EntityNotFoundError):
            _update(make_world()).handle("99", quantity=1)
