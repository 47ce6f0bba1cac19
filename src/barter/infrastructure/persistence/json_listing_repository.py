"""JSON-file-backed implementation of ListingRepository."""

from __future__ import annotations

import json
import logging
from functools import partial
from pathlib import Path

from barter.domain.exceptions import ConflictError
from barter.domain.model.listing import Listing, ListingStatus
from barter.domain.repository.listing_repository import ListingRepository
from barter.infrastructure.persistence.locking import JOURNAL, STORE_LOCK

logger = logging.getLogger(__name__)


class JsonListingRepository(ListingRepository):

    def __init__(self, file_path: Path) -> None:
        self._file_path = file_path
        self._ensure_file()

    # --- ListingRepository interface ------------------------------------------

    def get_by_id(self, listing_id: str) -> Listing | None:
        for raw in self._load_raw():
            if raw["id"] == listing_id:
                return self._to_domain(raw)
        return None

    def list_all(self) -> list[Listing]:
        return [self._to_domain(raw) for raw in self._load_raw()]

    def save(self, listing: Listing) -> None:
        with STORE_LOCK:
            records = self._load_raw()
            previous: dict | None = None
            written = listing.version + 1
            for i, raw in enumerate(records):
                if raw["id"] == listing.id:
                    if raw.get("version", 0) != listing.version:
                        raise ConflictError(
                            f"Listing {listing.id} was modified concurrently "
                            f"(expected version {listing.version}, found {raw.get('version', 0)})"
                        )
                    previous = raw
                    records[i] = self._to_raw(listing, written)
                    break
            else:
                records.append(self._to_raw(listing, written))
            self._persist_raw(records)
            listing.version = written
            JOURNAL.record(partial(self._undo_write, listing.id, written, previous))

    # --- Rollback -------------------------------------------------------------

    def _undo_write(self, listing_id: str, written: int, previous: dict | None) -> None:
        with STORE_LOCK:
            records = self._load_raw()
            for i, raw in enumerate(records):
                if raw["id"] == listing_id:
                    if raw.get("version", 0) != written:
                        logger.warning(
                            "Listing %s changed again since version %s; not rolled back",
                            listing_id, written,
                        )
                        return
                    if previous is None:
                        del records[i]
                    else:
                        records[i] = previous
                    self._persist_raw(records)
                    logger.info("Rolled back listing %s to version %s", listing_id, written - 1)
                    return

    # --- Serialization --------------------------------------------------------

    @staticmethod
    def _to_raw(listing: Listing, version: int) -> dict:
        return {
            "id": listing.id,
            "version": version,
            "seller_id": listing.seller_id,
            "title": listing.title,
            "quantity": listing.quantity,
            "status": listing.status.value,
            "currency_code": listing.currency_code,
            "allow_cash": listing.allow_cash,
            "allow_barter": listing.allow_barter,
            "allow_cash_plus_barter": listing.allow_cash_plus_barter,
            "downpayment_required_cents": listing.downpayment_required_cents,
        }

    @staticmethod
    def _to_domain(raw: dict) -> Listing:
        return Listing(
            id=raw["id"],
            seller_id=raw["seller_id"],
            title=raw.get("title", ""),
            quantity=raw["quantity"],
            status=ListingStatus(raw.get("status", "active")),
            currency_code=raw.get("currency_code", "USD"),
            allow_cash=raw.get("allow_cash", True),
            allow_barter=raw.get("allow_barter", True),
            allow_cash_plus_barter=raw.get("allow_cash_plus_barter", False),
            downpayment_required_cents=raw.get("downpayment_required_cents"),
            version=raw.get("version", 0),
        )

    # --- File helpers ---------------------------------------------------------

    def _load_raw(self) -> list[dict]:
        with STORE_LOCK:
            return json.loads(self._file_path.read_text(encoding="utf-8"))

    def _persist_raw(self, records: list[dict]) -> None:
        self._file_path.write_text(
            json.dumps(records, indent=2) + "\n", encoding="utf-8"
        )

    def _ensure_file(self) -> None:
        if not self._file_path.exists():
            self._file_path.parent.mkdir(parents=True, exist_ok=True)
            self._file_path.write_text("[]", encoding="utf-8")
