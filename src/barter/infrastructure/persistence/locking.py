"""Process-wide lock and write journal shared by the JSON repositories.

Each repository takes the lock around its own read-modify-write of a
file; the transaction manager takes the same (re-entrant) lock around
whole use-case sections so several files change as one unit for every
thread of this process.

Inside a section every repository write also records how to undo itself.
If the section raises, the recorded writes are undone newest first, so a
failure halfway through a multi-file update leaves the files as they were.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable, Iterator
from contextlib import contextmanager

from barter.domain.repository.transaction import TransactionManager

logger = logging.getLogger(__name__)

STORE_LOCK = threading.RLock()


class WriteJournal:
    """Undo actions for the writes made in the current thread's section."""

    def __init__(self) -> None:
        self._local = threading.local()

    def begin(self) -> bool:
        """Open a section; returns True when this call opened the outermost one."""
        if getattr(self._local, "entries", None) is not None:
            return False
        self._local.entries = []
        return True

    def record(self, undo: Callable[[], None]) -> None:
        entries = getattr(self._local, "entries", None)
        if entries is not None:
            entries.append(undo)

    def end(self) -> None:
        self._local.entries = None

    def rollback(self) -> None:
        entries = getattr(self._local, "entries", None) or []
        self._local.entries = None
        for undo in reversed(entries):
            try:
                undo()
            except Exception:
                logger.exception("Failed to undo a write during rollback")


JOURNAL = WriteJournal()


class LockingTransactionManager(TransactionManager):

    def __init__(self, lock: threading.RLock | None = None) -> None:
        self._lock = lock or STORE_LOCK
        self._journal = JOURNAL

    @contextmanager
    def atomic(self) -> Iterator[None]:
        with self._lock:
            outermost = self._journal.begin()
            try:
                yield
            except BaseException:
                if outermost:
                    logger.warning("Rolling back an interrupted section")
                    self._journal.rollback()
                raise
            if outermost:
                self._journal.end()
