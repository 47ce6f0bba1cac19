"""Integration tests for Accept, Reject and Counter."""

import threading

import pytest

from barter.application.accept_offer import AcceptOfferHandler
from barter.application.counter_offer import CounterOfferHandler
from barter.application.create_offer import CreateOfferHandler
from barter.application.dto import OfferItemSpec
from barter.application.reject_offer import RejectOfferHandler
from barter.domain.exceptions import (
    DomainException,
    EntityNotFoundError,
    ForbiddenError,
    InsufficientCapacityError,
    InvalidStateError,
)
from barter.domain.gateway.notification_gateway import NotificationKind
from barter.domain.model.listing import Listing
from barter.domain.model.offer import BarterOffer, OfferStatus
from tests.fakes import (
    T0,
    FakeOfferRepository,
    TradeWorld,
    default_listings,
    make_world,
)


class _CounterWriteFailsRepository(FakeOfferRepository):
    """Fails to persist any counter-offer."""

    def save(self, offer: BarterOffer) -> None:
        if offer.countered_from_id is not None:
            raise RuntimeError("disk full")
        super().save(offer)


def _create(world: TradeWorld, buyer: str = "bob", listing_id: str = "10", **kwargs) -> int:
    handler = CreateOfferHandler(
        world.listings, world.offers, world.tx, world.side_effects, world.clock
    )
    return handler.handle(buyer, listing_id, **kwargs).id


def _accept(world: TradeWorld) -> AcceptOfferHandler:
    return AcceptOfferHandler(
        world.listings, world.offers, world.tx, world.side_effects, world.clock
    )


def _reject(world: TradeWorld) -> RejectOfferHandler:
    return RejectOfferHandler(world.offers, world.tx, world.side_effects, world.clock)


def _counter(world: TradeWorld) -> CounterOfferHandler:
    return CounterOfferHandler(
        world.listings, world.offers, world.tx, world.side_effects, world.clock
    )


def _world_with_helmet() -> TradeWorld:
    listings = default_listings()
    listings.append(Listing(id="40", seller_id="sam", title="Helmet", quantity=1))
    return make_world(listings)


class TestAcceptOffer:

    def test_accept_starts_timer_and_opens_conversation(self):
        world = make_world()
        offer_id = _create(world)
        dto = _accept(world).handle(offer_id, "sam")
        assert dto.status == "accepted"
        assert dto.timer_expires_at == "2024-03-01 13:00 UTC"
        assert dto.conversation_id == "conv-1"
        assert dto.downpayment_status == "none"

    def test_accept_notifies_buyer(self):
        world = make_world()
        offer_id = _create(world)
        _accept(world).handle(offer_id, "sam")
        assert NotificationKind.OFFER_ACCEPTED in world.notifications.kinds_for("bob")

    def test_conversation_reused_for_same_pair(self):
        world = make_world()
        first = _create(world)
        second = _create(world)
        a = _accept(world).handle(first, "sam")
        b = _accept(world).handle(second, "sam")
        assert a.conversation_id == b.conversation_id

    def test_downpayment_listing_arms_downpayment(self):
        listings = default_listings()
        listings[0].downpayment_required_cents = 2000
        world = make_world(listings)
        offer_id = _create(world, cash_cents=2000)
        dto = _accept(world).handle(offer_id, "sam")
        assert dto.downpayment_status == "awaiting_payment"

    def test_buyer_cannot_accept(self):
        world = make_world()
        offer_id = _create(world)
        with pytest.raises(ForbiddenError):
            _accept(world).handle(offer_id, "bob")
        assert world.offer(offer_id).status == OfferStatus.PENDING

    def test_unknown_offer(self):
        with pytest.raises(EntityNotFoundError):
            _accept(make_world()).handle(42, "sam")

    def test_accept_after_reject_fails(self):
        world = make_world()
        offer_id = _create(world)
        _reject(world).handle(offer_id, "sam")
        with pytest.raises(InvalidStateError, match="Only pending offers can be accepted"):
            _accept(world).handle(offer_id, "sam")

    def test_concurrent_accept_and_reject(self):
        world = make_world()
        offer_id = _create(world)
        errors: list[Exception] = []
        barrier = threading.Barrier(2)

        def run(handler):
            barrier.wait()
            try:
                handler.handle(offer_id, "sam")
            except DomainException as exc:
                errors.append(exc)

        threads = [
            threading.Thread(target=run, args=(_accept(world),)),
            threading.Thread(target=run, args=(_reject(world),)),
        ]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert len(errors) == 1
        assert isinstance(errors[0], InvalidStateError)
        assert world.offer(offer_id).status in (OfferStatus.ACCEPTED, OfferStatus.REJECTED)


class TestRejectOffer:

    def test_reject(self):
        world = make_world()
        offer_id = _create(world)
        dto = _reject(world).handle(offer_id, "sam")
        assert dto.status == "rejected"
        assert NotificationKind.OFFER_REJECTED in world.notifications.kinds_for("bob")

    def test_reject_frees_pledges(self):
        world = make_world()
        offer_id = _create(world, item_specs=[OfferItemSpec("20", 3)])
        _reject(world).handle(offer_id, "sam")
        # All three guitars can be pledged again.
        _create(world, listing_id="30", item_specs=[OfferItemSpec("20", 3)])

    def test_reject_twice_fails(self):
        world = make_world()
        offer_id = _create(world)
        _reject(world).handle(offer_id, "sam")
        with pytest.raises(InvalidStateError):
            _reject(world).handle(offer_id, "sam")


class TestCounterOffer:

    def test_counter_creates_sibling_with_swapped_roles(self):
        world = make_world()
        offer_id = _create(world, cash_cents=1000)
        counter = _counter(world).handle(offer_id, "sam", cash_cents=2500, message="More?")
        assert counter.id != offer_id
        assert counter.buyer_id == "sam"
        assert counter.seller_id == "bob"
        assert counter.listing_id == "10"
        assert counter.countered_from_id == offer_id
        assert counter.offered_cash_cents == 2500
        assert world.offer(offer_id).status == OfferStatus.COUNTERED

    def test_counter_notifies_original_buyer(self):
        world = make_world()
        offer_id = _create(world)
        _counter(world).handle(offer_id, "sam")
        assert NotificationKind.COUNTER_OFFER in world.notifications.kinds_for("bob")

    def test_counter_can_pledge_sellers_listings(self):
        world = _world_with_helmet()
        offer_id = _create(world)
        counter = _counter(world).handle(
            offer_id, "sam", item_specs=[OfferItemSpec("40", 1)]
        )
        assert counter.items[0].listing_id == "40"

    def test_counter_pledge_over_capacity_leaves_original_pending(self):
        world = _world_with_helmet()
        offer_id = _create(world)
        with pytest.raises(InsufficientCapacityError):
            _counter(world).handle(offer_id, "sam", item_specs=[OfferItemSpec("40", 5)])
        assert world.offer(offer_id).status == OfferStatus.PENDING
        assert len(world.offers.list_all()) == 1

    def test_failed_counter_write_leaves_original_pending(self):
        world = make_world(offers=_CounterWriteFailsRepository())
        offer_id = _create(world)
        with pytest.raises(RuntimeError):
            _counter(world).handle(offer_id, "sam", cash_cents=2500)
        assert world.offer(offer_id).status == OfferStatus.PENDING
        assert len(world.offers.list_all()) == 1

    def test_only_seller_counters(self):
        world = make_world()
        offer_id = _create(world)
        with pytest.raises(ForbiddenError):
            _counter(world).handle(offer_id, "bob")

    def test_countered_offer_cannot_be_accepted(self):
        world = make_world()
        offer_id = _create(world)
        _counter(world).handle(offer_id, "sam")
        with pytest.raises(InvalidStateError):
            _accept(world).handle(offer_id, "sam")

    def test_counter_timestamp(self):
        world = make_world()
        offer_id = _create(world)
        _counter(world).handle(offer_id, "sam")
        assert world.offer(offer_id).updated_at == T0
