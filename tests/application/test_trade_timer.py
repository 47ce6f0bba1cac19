"""Integration tests for the trade timer: extensions and the expiration sweep."""

from datetime import timedelta

import pytest

from barter.application.accept_offer import AcceptOfferHandler
from barter.application.confirm_downpayment_receipt import (
    ConfirmDownpaymentReceiptHandler,
)
from barter.application.confirm_trade import ConfirmTradeHandler
from barter.application.create_offer import CreateOfferHandler
from barter.application.dto import OfferItemSpec
from barter.application.extend_timer import ExtendTimerHandler
from barter.application.mark_downpayment_paid import MarkDownpaymentPaidHandler
from barter.application.run_expiration_sweep import (
    EXPIRED_SYSTEM_MESSAGE,
    ExpirationSweepHandler,
)
from barter.domain.exceptions import ForbiddenError, InvalidStateError
from barter.domain.gateway.notification_gateway import NotificationKind
from barter.domain.model.offer import BarterOffer, CancelReason, OfferStatus
from barter.domain.model.policy import TradePolicy
from tests.fakes import T0, FakeOfferRepository, TradeWorld, default_listings, make_world


class _FlakyOfferRepository(FakeOfferRepository):
    """Fails to persist cancellations of the given offers."""

    def __init__(self, fail_ids: set[int]) -> None:
        super().__init__()
        self.fail_ids = fail_ids

    def save(self, offer: BarterOffer) -> None:
        if offer.id in self.fail_ids and offer.status == OfferStatus.CANCELLED:
            raise RuntimeError("disk full")
        super().save(offer)


def _accepted(world: TradeWorld, listing_id: str = "10", **kwargs) -> int:
    args = (world.listings, world.offers, world.tx, world.side_effects, world.clock)
    offer_id = CreateOfferHandler(*args).handle("bob", listing_id, **kwargs).id
    seller = world.listing(listing_id).seller_id
    AcceptOfferHandler(*args).handle(offer_id, seller)
    return offer_id


def _extend(world: TradeWorld, policy: TradePolicy | None = None) -> ExtendTimerHandler:
    return ExtendTimerHandler(
        world.offers, world.tx, world.side_effects, world.clock, policy or TradePolicy()
    )


def _sweep(world: TradeWorld) -> ExpirationSweepHandler:
    return ExpirationSweepHandler(world.offers, world.tx, world.side_effects, world.clock)


class TestExtendTimer:

    def test_seller_extends(self):
        world = make_world()
        offer_id = _accepted(world)
        result = _extend(world).handle(offer_id, "sam")
        assert result.extended
        assert result.offer.timer_expires_at == "2024-03-01 13:30 UTC"
        assert result.offer.timer_extension_count == 1
        assert NotificationKind.TIMER_EXTENDED in world.notifications.kinds_for("bob")

    def test_buyer_requests_extension(self):
        world = make_world()
        offer_id = _accepted(world)
        result = _extend(world).handle(offer_id, "bob")
        assert not result.extended
        assert result.message == "Extension request sent to seller."
        assert world.offer(offer_id).timer_expires_at == T0 + timedelta(minutes=60)
        assert NotificationKind.EXTENSION_REQUESTED in world.notifications.kinds_for("sam")

    def test_extension_cap(self):
        world = make_world()
        offer_id = _accepted(world)
        handler = _extend(world, TradePolicy(max_timer_extensions=2))
        handler.handle(offer_id, "sam")
        handler.handle(offer_id, "sam")
        with pytest.raises(InvalidStateError, match="Maximum extensions reached"):
            handler.handle(offer_id, "sam")

    def test_stranger_forbidden(self):
        world = make_world()
        offer_id = _accepted(world)
        with pytest.raises(ForbiddenError):
            _extend(world).handle(offer_id, "eve")

    def test_paused_timer_cannot_be_extended(self):
        listings = default_listings()
        listings[0].downpayment_required_cents = 1000
        world = make_world(listings)
        offer_id = _accepted(world, cash_cents=1000)
        MarkDownpaymentPaidHandler(
            world.offers, world.tx, world.side_effects, world.clock
        ).handle(offer_id, "bob")
        with pytest.raises(InvalidStateError, match="paused"):
            _extend(world).handle(offer_id, "sam")


class TestExpirationSweep:

    def test_lapsed_trade_is_cancelled(self):
        world = make_world()
        offer_id = _accepted(world, item_specs=[OfferItemSpec("20", 2)])
        world.clock.advance(minutes=61)

        result = _sweep(world).handle()

        assert result.cancelled == [offer_id]
        offer = world.offer(offer_id)
        assert offer.status == OfferStatus.CANCELLED
        assert offer.cancel_reason == CancelReason.TIMER_EXPIRED
        assert NotificationKind.TRADE_EXPIRED in world.notifications.kinds_for("bob")
        assert NotificationKind.TRADE_EXPIRED in world.notifications.kinds_for("sam")
        assert world.messaging.messages[offer.conversation_id] == [EXPIRED_SYSTEM_MESSAGE]
        # Nothing was ever deducted.
        assert world.listing("10").quantity == 1
        assert world.listing("20").quantity == 3

    def test_running_timer_untouched(self):
        world = make_world()
        offer_id = _accepted(world)
        world.clock.advance(minutes=59)
        assert _sweep(world).handle().cancelled == []
        assert world.offer(offer_id).status == OfferStatus.ACCEPTED

    def test_paused_timer_untouched(self):
        listings = default_listings()
        listings[0].downpayment_required_cents = 1000
        world = make_world(listings)
        offer_id = _accepted(world, cash_cents=1000)
        MarkDownpaymentPaidHandler(
            world.offers, world.tx, world.side_effects, world.clock
        ).handle(offer_id, "bob")
        ConfirmDownpaymentReceiptHandler(
            world.offers, world.tx, world.side_effects, world.clock
        ).handle(offer_id, "sam")
        world.clock.advance(hours=3)
        assert _sweep(world).handle().cancelled == []
        assert world.offer(offer_id).status == OfferStatus.ACCEPTED

    def test_finalized_trade_untouched(self):
        world = make_world()
        offer_id = _accepted(world)
        args = (world.listings, world.offers, world.tx, world.side_effects, world.clock)
        ConfirmTradeHandler(*args).handle(offer_id, "bob")
        ConfirmTradeHandler(*args).handle(offer_id, "sam")
        world.clock.advance(hours=3)
        assert _sweep(world).handle().cancelled == []

    def test_failure_on_one_offer_does_not_stop_sweep(self):
        offers = _FlakyOfferRepository(fail_ids={1})
        world = make_world(offers=offers)
        first = _accepted(world, "10")
        second = _accepted(world, "30")
        world.clock.advance(minutes=61)

        result = _sweep(world).handle()

        assert result.failed == [first]
        assert result.cancelled == [second]
        assert world.offer(first).status == OfferStatus.ACCEPTED

    def test_rerun_is_noop(self):
        world = make_world()
        _accepted(world)
        world.clock.advance(minutes=61)
        _sweep(world).handle()
        assert _sweep(world).handle().cancelled == []


class TestTimerWarning:

    def test_warns_buyer_once(self):
        world = make_world()
        offer_id = _accepted(world)
        world.clock.advance(minutes=51)

        first = _sweep(world).handle()
        second = _sweep(world).handle()

        assert first.warned == [offer_id]
        assert second.warned == []
        assert world.notifications.kinds_for("bob").count(NotificationKind.TIMER_WARNING) == 1

    def test_no_warning_outside_window(self):
        world = make_world()
        _accepted(world)
        world.clock.advance(minutes=30)
        assert _sweep(world).handle().warned == []
