"""Domain-level exceptions.

All business rule violations are expressed as subclasses of DomainException
so the CLI layer can catch them uniformly and display user-friendly messages.
"""

from __future__ import annotations


class DomainException(Exception):
    """Base class for all domain errors."""


class ValidationError(DomainException):
    """A business rule or invariant was violated."""


class EntityNotFoundError(DomainException):
    """A requested entity does not exist."""


class ForbiddenError(DomainException):
    """The acting user is not a party to the trade, or has the wrong role."""


class InvalidStateError(DomainException):
    """The operation is not legal for the offer's current lifecycle state."""


class InsufficientCapacityError(DomainException):
    """A pledge would oversubscribe a listing's quantity."""

    def __init__(self, listing_id: str, requested: int, available: int) -> None:
        self.listing_id = listing_id
        self.requested = requested
        self.available = max(available, 0)
        super().__init__(
            f"Insufficient quantity for listing {listing_id} "
            f"(need {requested}, have {self.available} available)"
        )


class RateLimitedError(DomainException):
    """Too many pending offers from the same buyer on one listing."""

    def __init__(self, limit: int) -> None:
        self.limit = limit
        super().__init__(
            f"You already have {limit} pending offers on this listing"
        )


class NotYetAvailableError(DomainException):
    """A time-gated operation was called before its window opened."""

    def __init__(self, hours_remaining: int) -> None:
        self.hours_remaining = hours_remaining
        super().__init__(
            f"Receipt will be available in {hours_remaining} hour(s)"
        )


class ConflictError(DomainException):
    """A concurrent write was detected by the optimistic version check."""
