"""Application service: Expiration Sweep use case.

Cancels accepted trades whose timer lapsed before both parties
confirmed, so an unresponsive counterparty cannot hold inventory
hostage.  Also sends the one-time "hurry up" warning shortly before a
timer runs out.

Every offer is processed on its own: a failure is logged and the sweep
moves on to the next one.
"""

from __future__ import annotations

import functools
import logging
from datetime import datetime

from barter.application.concurrency import retry_on_conflict
from barter.application.dto import SweepResultDTO
from barter.application.side_effects import TradeSideEffects
from barter.domain.gateway.clock import Clock
from barter.domain.gateway.notification_gateway import NotificationKind
from barter.domain.model.offer import BarterOffer, CancelReason, OfferStatus
from barter.domain.model.policy import DEFAULT_POLICY, TradePolicy
from barter.domain.repository.offer_repository import OfferRepository
from barter.domain.repository.transaction import TransactionManager

logger = logging.getLogger(__name__)

EXPIRED_SYSTEM_MESSAGE = (
    "This trade has been automatically cancelled because the timer "
    "expired before completion."
)


class ExpirationSweepHandler:

    def __init__(
        self,
        offer_repo: OfferRepository,
        tx: TransactionManager,
        side_effects: TradeSideEffects,
        clock: Clock,
        policy: TradePolicy = DEFAULT_POLICY,
    ) -> None:
        self._offer_repo = offer_repo
        self._tx = tx
        self._side_effects = side_effects
        self._clock = clock
        self._policy = policy

    def handle(self) -> SweepResultDTO:
        now = self._clock.now()
        result = SweepResultDTO()

        accepted = self._offer_repo.list_by_status(OfferStatus.ACCEPTED)
        expired = [o for o in accepted if o.is_expired(now)]
        if expired:
            logger.info("Found %d expired trades, cancelling", len(expired))

        for candidate in expired:
            try:
                offer = retry_on_conflict(
                    functools.partial(self._expire, candidate.id, now)
                )
            except Exception:
                logger.exception("Failed to cancel expired trade #%s", candidate.id)
                result.failed.append(candidate.id)
                continue
            if offer is None:
                continue
            result.cancelled.append(offer.id)
            logger.info("Cancelled expired trade #%s", offer.id)
            self._announce_expiry(offer)

        window = self._policy.timer_warning_window
        for candidate in accepted:
            if not candidate.needs_timer_warning(now, window):
                continue
            try:
                offer = retry_on_conflict(
                    functools.partial(self._mark_warned, candidate.id, now)
                )
            except Exception:
                logger.exception("Failed to send timer warning for trade #%s", candidate.id)
                result.failed.append(candidate.id)
                continue
            if offer is None:
                continue
            result.warned.append(offer.id)
            minutes = int(window.total_seconds() // 60)
            self._side_effects.notify(
                offer.buyer_id,
                NotificationKind.TIMER_WARNING,
                title=f"{minutes} minutes left!",
                message=f"Hurry! Only {minutes} minutes left to secure trade #{offer.id}. "
                        f"Pay or request an extension.",
                offerId=offer.id,
                listingId=offer.listing_id,
            )

        return result

    def _expire(self, offer_id: int, now: datetime) -> BarterOffer | None:
        with self._tx.atomic():
            offer = self._offer_repo.get_by_id(offer_id)
            # Re-checked under the lock: a confirmation or pause may have landed.
            if offer is None or not offer.is_expired(now):
                return None
            offer.cancel(CancelReason.TIMER_EXPIRED, now)
            self._offer_repo.save(offer)
            return offer

    def _mark_warned(self, offer_id: int, now: datetime) -> BarterOffer | None:
        with self._tx.atomic():
            offer = self._offer_repo.get_by_id(offer_id)
            if offer is None or not offer.needs_timer_warning(now, self._policy.timer_warning_window):
                return None
            offer.mark_timer_warned()
            self._offer_repo.save(offer)
            return offer

    def _announce_expiry(self, offer: BarterOffer) -> None:
        self._side_effects.post_system_message(offer.conversation_id, EXPIRED_SYSTEM_MESSAGE)
        self._side_effects.notify(
            offer.buyer_id,
            NotificationKind.TRADE_EXPIRED,
            title="Trade Expired",
            message=f"Trade #{offer.id} has expired and was cancelled.",
            offerId=offer.id,
        )
        self._side_effects.notify(
            offer.seller_id,
            NotificationKind.TRADE_EXPIRED,
            title="Trade Expired",
            message=f"Trade #{offer.id} has expired and items have been released.",
            offerId=offer.id,
        )
