"""In-memory fakes for testing.

These implement the same abstract interfaces as the JSON repositories and
gateways but keep everything in dicts and lists. No file I/O.

Repositories hand out copies, like the JSON ones, so an aggregate mutated
by a handler that later fails never leaks into the store.
"""

from __future__ import annotations

import copy
import threading
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any

from barter.application.side_effects import TradeSideEffects
from barter.domain.exceptions import ConflictError
from barter.domain.gateway.clock import Clock
from barter.domain.gateway.messaging_gateway import MessagingGateway
from barter.domain.gateway.notification_gateway import (
    NotificationGateway,
    NotificationKind,
)
from barter.domain.model.listing import Listing
from barter.domain.model.offer import BarterOffer
from barter.domain.repository.listing_repository import ListingRepository
from barter.domain.repository.offer_repository import OfferRepository
from barter.domain.repository.transaction import TransactionManager

T0 = datetime(2024, 3, 1, 12, 0, tzinfo=timezone.utc)


class FakeListingRepository(ListingRepository):

    def __init__(self, listings: list[Listing] | None = None) -> None:
        self._store: dict[str, Listing] = {}
        self._lock = threading.Lock()
        for listing in listings or []:
            self._store[listing.id] = copy.deepcopy(listing)

    def get_by_id(self, listing_id: str) -> Listing | None:
        listing = self._store.get(listing_id)
        return copy.deepcopy(listing) if listing is not None else None

    def list_all(self) -> list[Listing]:
        return [copy.deepcopy(listing) for listing in self._store.values()]

    def save(self, listing: Listing) -> None:
        with self._lock:
            stored = self._store.get(listing.id)
            if stored is not None and stored.version != listing.version:
                raise ConflictError(f"Listing {listing.id} was modified concurrently")
            listing.version += 1
            self._store[listing.id] = copy.deepcopy(listing)

    def snapshot(self) -> Any:
        with self._lock:
            return copy.deepcopy(self._store)

    def restore(self, state: Any) -> None:
        with self._lock:
            self._store = state


class FakeOfferRepository(OfferRepository):

    def __init__(self) -> None:
        self._store: dict[int, BarterOffer] = {}
        self._next_id = 1
        self._lock = threading.Lock()

    def get_by_id(self, offer_id: int) -> BarterOffer | None:
        offer = self._store.get(offer_id)
        return copy.deepcopy(offer) if offer is not None else None

    def list_all(self) -> list[BarterOffer]:
        return [copy.deepcopy(o) for o in self._store.values()]

    def save(self, offer: BarterOffer) -> None:
        with self._lock:
            if offer.id is None:
                offer.id = self._next_id
                self._next_id += 1
                offer.version = 0
            stored = self._store.get(offer.id)
            if stored is not None and stored.version != offer.version:
                raise ConflictError(f"Offer #{offer.id} was modified concurrently")
            offer.version += 1
            self._store[offer.id] = copy.deepcopy(offer)

    def add(self, offer: BarterOffer) -> BarterOffer:
        """Seed an offer directly, bypassing handlers."""
        self.save(offer)
        return offer

    def snapshot(self) -> Any:
        with self._lock:
            return copy.deepcopy(self._store), self._next_id

    def restore(self, state: Any) -> None:
        with self._lock:
            self._store, self._next_id = state


class FakeTransactionManager(TransactionManager):
    """Serializes sections and restores the given repositories when one fails."""

    def __init__(self, *repos: FakeListingRepository | FakeOfferRepository) -> None:
        self._lock = threading.RLock()
        self._repos = repos
        self._depth = 0

    @contextmanager
    def atomic(self) -> Iterator[None]:
        with self._lock:
            outermost = self._depth == 0
            snapshots = [repo.snapshot() for repo in self._repos] if outermost else []
            self._depth += 1
            try:
                yield
            except BaseException:
                if outermost:
                    for repo, state in zip(self._repos, snapshots):
                        repo.restore(state)
                raise
            finally:
                self._depth -= 1


class FakeClock(Clock):

    def __init__(self, start: datetime = T0) -> None:
        self._now = start

    def now(self) -> datetime:
        return self._now

    def advance(self, **kwargs: float) -> None:
        self._now += timedelta(**kwargs)


class RecordingNotificationGateway(NotificationGateway):

    def __init__(self) -> None:
        self.sent: list[tuple[str, NotificationKind, dict[str, Any]]] = []

    def notify(
        self, user_id: str, kind: NotificationKind, payload: dict[str, Any]
    ) -> None:
        self.sent.append((user_id, kind, payload))

    def kinds_for(self, user_id: str) -> list[NotificationKind]:
        return [kind for uid, kind, _ in self.sent if uid == user_id]


class FailingNotificationGateway(NotificationGateway):

    def notify(
        self, user_id: str, kind: NotificationKind, payload: dict[str, Any]
    ) -> None:
        raise RuntimeError("notification service unavailable")


class FakeMessagingGateway(MessagingGateway):

    def __init__(self) -> None:
        self.conversations: dict[tuple[frozenset[str], str], str] = {}
        self.messages: dict[str, list[str]] = {}

    def create_or_reuse_conversation(
        self, party_a: str, party_b: str, listing_id: str
    ) -> str:
        key = (frozenset({party_a, party_b}), listing_id)
        if key not in self.conversations:
            conv_id = f"conv-{len(self.conversations) + 1}"
            self.conversations[key] = conv_id
            self.messages[conv_id] = []
        return self.conversations[key]

    def post_system_message(self, conversation_id: str, text: str) -> None:
        self.messages.setdefault(conversation_id, []).append(text)


@dataclass
class TradeWorld:
    """Everything a handler needs, wired to fakes."""

    listings: FakeListingRepository
    offers: FakeOfferRepository
    tx: FakeTransactionManager
    clock: FakeClock
    notifications: RecordingNotificationGateway
    messaging: FakeMessagingGateway
    side_effects: TradeSideEffects

    def listing(self, listing_id: str) -> Listing:
        listing = self.listings.get_by_id(listing_id)
        assert listing is not None
        return listing

    def offer(self, offer_id: int) -> BarterOffer:
        offer = self.offers.get_by_id(offer_id)
        assert offer is not None
        return offer


def default_listings() -> list[Listing]:
    """Sam sells a bike; Bob owns three guitars; Carol sells a lamp."""
    return [
        Listing(id="10", seller_id="sam", title="Bike", quantity=1),
        Listing(id="20", seller_id="bob", title="Guitar", quantity=3),
        Listing(id="30", seller_id="carol", title="Lamp", quantity=2),
    ]


def make_world(
    listings: list[Listing] | None = None,
    notifications: NotificationGateway | None = None,
    offers: FakeOfferRepository | None = None,
    listing_repo_class: type[FakeListingRepository] = FakeListingRepository,
) -> TradeWorld:
    recorder = RecordingNotificationGateway()
    messaging = FakeMessagingGateway()
    listing_repo = listing_repo_class(
        default_listings() if listings is None else listings
    )
    offer_repo = offers or FakeOfferRepository()
    return TradeWorld(
        listings=listing_repo,
        offers=offer_repo,
        tx=FakeTransactionManager(listing_repo, offer_repo),
        clock=FakeClock(),
        notifications=recorder,
        messaging=messaging,
        side_effects=TradeSideEffects(notifications or recorder, messaging),
    )
