"""Retry helper for optimistic-concurrency conflicts.

The retried operation reloads and re-validates from scratch, so a caller
that lost a race sees the error the winner's state implies (usually
InvalidStateError) rather than a bare conflict.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import TypeVar

from barter.domain.exceptions import ConflictError

logger = logging.getLogger(__name__)

T = TypeVar("T")


def retry_on_conflict(operation: Callable[[], T], attempts: int = 2) -> T:
    for attempt in range(1, attempts + 1):
        try:
            return operation()
        except ConflictError:
            if attempt == attempts:
                raise
            logger.info("Concurrent update detected, retrying (attempt %d)", attempt)
    raise AssertionError("unreachable")
