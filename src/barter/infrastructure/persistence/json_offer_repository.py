"""JSON-file-backed implementation of OfferRepository."""

from __future__ import annotations

import json
import logging
from datetime import datetime
from functools import partial
from pathlib import Path

from barter.domain.exceptions import ConflictError
from barter.domain.model.offer import (
    BarterOffer,
    CancelReason,
    DisputeStatus,
    DownpaymentStatus,
    OfferItem,
    OfferStatus,
)
from barter.domain.model.value_objects import Money, Quantity
from barter.domain.repository.offer_repository import OfferRepository
from barter.infrastructure.persistence.locking import JOURNAL, STORE_LOCK

logger = logging.getLogger(__name__)

_TIMESTAMP_FIELDS = (
    "listing_owner_confirmed_at",
    "offer_maker_confirmed_at",
    "receipt_available_at",
    "receipt_generated_at",
    "downpayment_paid_at",
    "downpayment_confirmed_at",
    "timer_expires_at",
    "timer_paused_at",
    "updated_at",
)


def _iso(ts: datetime | None) -> str | None:
    return ts.isoformat() if ts is not None else None


def _parse(raw: str | None) -> datetime | None:
    return datetime.fromisoformat(raw) if raw else None


class JsonOfferRepository(OfferRepository):

    def __init__(self, file_path: Path) -> None:
        self._file_path = file_path
        self._ensure_file()

    # --- OfferRepository interface --------------------------------------------

    def get_by_id(self, offer_id: int) -> BarterOffer | None:
        for raw in self._load_raw():
            if raw["id"] == offer_id:
                return self._to_domain(raw)
        return None

    def list_all(self) -> list[BarterOffer]:
        return [self._to_domain(raw) for raw in self._load_raw()]

    def save(self, offer: BarterOffer) -> None:
        with STORE_LOCK:
            offers = self._load_raw()

            if offer.id is None:
                offer.id = max((o["id"] for o in offers), default=0) + 1
                offer.version = 0

            # Upsert: replace if exists, otherwise append
            previous: dict | None = None
            written = offer.version + 1
            for i, raw in enumerate(offers):
                if raw["id"] == offer.id:
                    if raw.get("version", 0) != offer.version:
                        raise ConflictError(
                            f"Offer #{offer.id} was modified concurrently "
                            f"(expected version {offer.version}, found {raw.get('version', 0)})"
                        )
                    previous = raw
                    offers[i] = self._to_raw(offer, written)
                    break
            else:
                offers.append(self._to_raw(offer, written))

            self._persist_raw(offers)
            offer.version = written
            JOURNAL.record(partial(self._undo_write, offer.id, written, previous))

    # --- Rollback -------------------------------------------------------------

    def _undo_write(self, offer_id: int, written: int, previous: dict | None) -> None:
        """Put back the record as it was before the write stamped *written*."""
        with STORE_LOCK:
            offers = self._load_raw()
            for i, raw in enumerate(offers):
                if raw["id"] == offer_id:
                    if raw.get("version", 0) != written:
                        logger.warning(
                            "Offer #%s changed again since version %s; not rolled back",
                            offer_id, written,
                        )
                        return
                    if previous is None:
                        del offers[i]
                    else:
                        offers[i] = previous
                    self._persist_raw(offers)
                    logger.info("Rolled back offer #%s to version %s", offer_id, written - 1)
                    return

    # --- Serialization --------------------------------------------------------

    @staticmethod
    def _to_raw(offer: BarterOffer, version: int) -> dict:
        raw = {
            "id": offer.id,
            "version": version,
            "listing_id": offer.listing_id,
            "buyer_id": offer.buyer_id,
            "seller_id": offer.seller_id,
            "offered_cash_cents": offer.offered_cash.cents,
            "currency_code": offer.offered_cash.currency,
            "message": offer.message,
            "status": offer.status.value,
            "receipt_number": offer.receipt_number,
            "downpayment_status": offer.downpayment_status.value,
            "timer_extension_count": offer.timer_extension_count,
            "timer_warned": offer.timer_warned,
            "dispute_status": offer.dispute_status.value,
            "conversation_id": offer.conversation_id,
            "countered_from_id": offer.countered_from_id,
            "cancel_reason": offer.cancel_reason.value if offer.cancel_reason else None,
            "created_at": offer.created_at.isoformat(),
            "items": [
                {
                    "offered_listing_id": item.offered_listing_id,
                    "quantity": item.quantity.value,
                }
                for item in offer.items
            ],
        }
        for name in _TIMESTAMP_FIELDS:
            raw[name] = _iso(getattr(offer, name))
        return raw

    @staticmethod
    def _to_domain(raw: dict) -> BarterOffer:
        items = [
            OfferItem(
                offered_listing_id=i["offered_listing_id"],
                quantity=Quantity(i["quantity"]),
            )
            for i in raw.get("items", [])
        ]
        offer = BarterOffer(
            id=raw["id"],
            listing_id=raw["listing_id"],
            buyer_id=raw["buyer_id"],
            seller_id=raw["seller_id"],
            offered_cash=Money(raw["offered_cash_cents"], raw.get("currency_code", "USD")),
            items=items,
            message=raw.get("message"),
            status=OfferStatus(raw["status"]),
            receipt_number=raw.get("receipt_number"),
            downpayment_status=DownpaymentStatus(raw.get("downpayment_status", "none")),
            timer_extension_count=raw.get("timer_extension_count", 0),
            timer_warned=raw.get("timer_warned", False),
            dispute_status=DisputeStatus(raw.get("dispute_status", "none")),
            conversation_id=raw.get("conversation_id"),
            countered_from_id=raw.get("countered_from_id"),
            cancel_reason=CancelReason(raw["cancel_reason"]) if raw.get("cancel_reason") else None,
            version=raw.get("version", 0),
            created_at=datetime.fromisoformat(raw["created_at"]),
        )
        for name in _TIMESTAMP_FIELDS:
            setattr(offer, name, _parse(raw.get(name)))
        return offer

    # --- File helpers ---------------------------------------------------------

    def _load_raw(self) -> list[dict]:
        with STORE_LOCK:
            return json.loads(self._file_path.read_text(encoding="utf-8"))

    def _persist_raw(self, offers: list[dict]) -> None:
        self._file_path.write_text(
            json.dumps(offers, indent=2) + "\n", encoding="utf-8"
        )

    def _ensure_file(self) -> None:
        if not self._file_path.exists():
            self._file_path.parent.mkdir(parents=True, exist_ok=True)
            self._file_path.write_text("[]", encoding="utf-8")
