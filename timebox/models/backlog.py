"""
Backlog item model definitions.

Backlog items are unscheduled task candidates. Promoting one copies it into a
time box; the item itself stays in the backlog.
"""

from datetime import date, datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, Field, field_validator

from timebox.models.box import TimeBox
from timebox.utils.datetime_utils import to_naive_local

DEFAULT_ESTIMATE_MINUTES = 30
MIN_ESTIMATE_MINUTES = 5
MAX_ESTIMATE_MINUTES = 480


class BacklogItemBase(BaseModel):
    title: str = Field(..., min_length=1, max_length=500)
    estimate_minutes: int = Field(
        DEFAULT_ESTIMATE_MINUTES,
        ge=MIN_ESTIMATE_MINUTES,
        le=MAX_ESTIMATE_MINUTES,
        description="Estimated minutes",
    )
    tags: list[str] = Field(default_factory=list)
    notes: Optional[str] = Field(None, max_length=5000)


class BacklogItemCreate(BacklogItemBase):
    pass


class BacklogItemUpdate(BaseModel):
    title: Optional[str] = Field(None, min_length=1, max_length=500)
    estimate_minutes: Optional[int] = Field(
        None, ge=MIN_ESTIMATE_MINUTES, le=MAX_ESTIMATE_MINUTES
    )
    tags: Optional[list[str]] = None
    notes: Optional[str] = Field(None, max_length=5000)


class BacklogItem(BacklogItemBase):
    id: UUID
    user_id: str
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class PromoteRequest(BaseModel):
    """Copy a backlog item into a time box on `day`."""

    day: date
    start: Optional[datetime] = Field(
        None, description="Explicit start; next free slot of the day when omitted"
    )

    @field_validator("start")
    @classmethod
    def localize_start(cls, value: Optional[datetime]) -> Optional[datetime]:
        return to_naive_local(value) if value is not None else None


class ArrangeRequest(BaseModel):
    day: date
    item_ids: list[UUID] = Field(..., min_length=1)


class ArrangeResult(BaseModel):
    created: list[TimeBox] = Field(default_factory=list)
    skipped_item_ids: list[UUID] = Field(default_factory=list)
