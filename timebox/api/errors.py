"""
Translation of domain exceptions into HTTP errors.
"""

from fastapi import HTTPException, status

from timebox.core.exceptions import (
    ConflictError,
    InfrastructureError,
    NoSlotAvailableError,
    NotFoundError,
    OverlapConflictError,
    TimeboxError,
    ValidationError,
)
from timebox.core.logger import setup_logger

logger = setup_logger(__name__)


def to_http_exception(e: TimeboxError) -> HTTPException:
    """Map a domain exception to the HTTPException a router should raise."""
    if isinstance(e, NotFoundError):
        return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=e.message)
    if isinstance(e, ValidationError):
        return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=e.message)
    if isinstance(e, NoSlotAvailableError):
        return HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail={"code": "no_slot", "message": e.message, **e.details},
        )
    if isinstance(e, OverlapConflictError):
        return HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail={"code": "overlap", "message": e.message, **e.details},
        )
    if isinstance(e, ConflictError):
        return HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail={"code": "conflict", "message": e.message, **(e.details or {})},
        )
    if isinstance(e, InfrastructureError):
        logger.error("Storage failure: %s", e.message)
        return HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Storage failure"
        )
    return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=e.message)
