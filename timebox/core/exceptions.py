"""
Custom exceptions for the application.
"""

from typing import Any, Optional


class TimeboxError(Exception):
    """Base exception for timebox."""

    def __init__(self, message: str, details: Optional[Any] = None):
        self.message = message
        self.details = details
        super().__init__(message)


class NotFoundError(TimeboxError):
    """Resource not found."""

    pass


class ValidationError(TimeboxError):
    """Invariant violation in caller input (bad interval, blank title...)."""

    pass


class InfrastructureError(TimeboxError):
    """Infrastructure-related error (DB, external services, etc.)."""

    pass


class BusinessLogicError(TimeboxError):
    """Business logic constraint violation."""

    pass


class ConflictError(BusinessLogicError):
    """Operation conflicts with current state (second active box, illegal transition)."""

    pass


class OverlapConflictError(ConflictError):
    """Requested interval overlaps other time boxes."""

    def __init__(self, message: str, conflicting_ids: list):
        super().__init__(message, details={"conflicting_ids": [str(i) for i in conflicting_ids]})
        self.conflicting_ids = list(conflicting_ids)


class NoSlotAvailableError(BusinessLogicError):
    """No free slot exists within the search bound."""

    def __init__(self, message: str, duration_minutes: int, days_searched: int = 1):
        super().__init__(
            message,
            details={"duration_minutes": duration_minutes, "days_searched": days_searched},
        )
        self.duration_minutes = duration_minutes
        self.days_searched = days_searched
