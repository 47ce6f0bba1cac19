"""Background loop that runs the expiration sweep on a fixed interval.

Each pass is independent: an unexpected failure is logged and the loop
waits for the next tick instead of dying.
"""

from __future__ import annotations

import logging
import threading

from barter.application.dto import SweepResultDTO
from barter.application.run_expiration_sweep import ExpirationSweepHandler

logger = logging.getLogger(__name__)


class ExpirationWorker:

    def __init__(
        self,
        handler: ExpirationSweepHandler,
        interval_seconds: float = 60,
        stop_event: threading.Event | None = None,
    ) -> None:
        self._handler = handler
        self._interval = interval_seconds
        self._stop = stop_event or threading.Event()

    def run_once(self) -> SweepResultDTO:
        result = self._handler.handle()
        if result.cancelled or result.warned or result.failed:
            logger.info(
                "Expiration sweep: %d cancelled, %d warned, %d failed",
                len(result.cancelled), len(result.warned), len(result.failed),
            )
        else:
            logger.debug("Expiration sweep: nothing to do")
        return result

    def run_forever(self) -> None:
        logger.info("Expiration worker started (interval=%ss)", self._interval)
        while not self._stop.is_set():
            try:
                self.run_once()
            except Exception:
                logger.exception("Expiration sweep pass failed")
            self._stop.wait(self._interval)
        logger.info("Expiration worker stopped")

    def stop(self) -> None:
        self._stop.set()
