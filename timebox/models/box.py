"""
Time box model definitions.

Time boxes are the unit of planning: a titled interval with a status.
"""

from datetime import date, datetime
from typing import Any, Optional
from uuid import UUID

from pydantic import BaseModel, Field, field_validator

from timebox.models.enums import BoxStatus, EnergyLevel, LogEvent
from timebox.utils.datetime_utils import to_naive_local


def _dedupe_tags(tags: list[str]) -> list[str]:
    seen: set[str] = set()
    result = []
    for tag in tags:
        tag = tag.strip()
        if tag and tag not in seen:
            seen.add(tag)
            result.append(tag)
    return result


class Interval(BaseModel):
    """Half-open time range [start, end)."""

    start: datetime
    end: datetime

    @property
    def duration_minutes(self) -> int:
        return round((self.end - self.start).total_seconds() / 60)


class TimeBoxBase(BaseModel):
    """Descriptive fields shared across create/read."""

    title: str = Field(..., min_length=1, max_length=500, description="Display title")
    tags: list[str] = Field(default_factory=list, description="Free-text labels, order kept")
    notes: Optional[str] = Field(None, max_length=5000)
    color: Optional[str] = Field(None, max_length=32)
    energy: Optional[EnergyLevel] = None
    location: Optional[str] = Field(None, max_length=500)
    links: Optional[dict[str, Any]] = None
    is_plan_session: bool = Field(False, description="Once-per-day planning box")

    @field_validator("tags")
    @classmethod
    def normalize_tags(cls, value: list[str]) -> list[str]:
        return _dedupe_tags(value)


class TimeBoxCreate(TimeBoxBase):
    """
    Input for creating a time box.

    The start < end invariant is checked by the lifecycle service so that
    callers get a domain ValidationError instead of a schema error.
    """

    start: datetime
    end: datetime
    status: Optional[BoxStatus] = Field(None, description="Initial status (default planned)")

    @field_validator("start", "end")
    @classmethod
    def localize(cls, value: datetime) -> datetime:
        return to_naive_local(value)


class TimeBoxMetaUpdate(BaseModel):
    """Patch for descriptive fields; timing and status have dedicated operations."""

    title: Optional[str] = Field(None, min_length=1, max_length=500)
    tags: Optional[list[str]] = None
    notes: Optional[str] = Field(None, max_length=5000)
    color: Optional[str] = Field(None, max_length=32)
    energy: Optional[EnergyLevel] = None
    location: Optional[str] = Field(None, max_length=500)
    links: Optional[dict[str, Any]] = None

    @field_validator("tags")
    @classmethod
    def normalize_tags(cls, value: Optional[list[str]]) -> Optional[list[str]]:
        return _dedupe_tags(value) if value is not None else None


class TimeBox(TimeBoxBase):
    """Time box as stored."""

    id: UUID
    user_id: str
    start: datetime
    end: datetime
    status: BoxStatus = BoxStatus.PLANNED
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True

    @property
    def interval(self) -> Interval:
        return Interval(start=self.start, end=self.end)

    @property
    def duration_minutes(self) -> int:
        return self.interval.duration_minutes


class ActivityLogEntry(BaseModel):
    """Append-only record of one box mutation."""

    id: UUID
    box_id: UUID
    event: LogEvent
    payload: dict[str, Any] = Field(default_factory=dict)
    created_at: datetime

    class Config:
        from_attributes = True


# ===========================================
# Request bodies for the lifecycle endpoints
# ===========================================


class ExtendRequest(BaseModel):
    delta_minutes: int = Field(..., description="Minutes to move the end by (may be negative)")
    force: bool = Field(False, description="Save even if the new end overlaps another box")


class UpdateTimesRequest(BaseModel):
    start: datetime
    end: datetime
    force: bool = Field(False, description="Save even if the interval overlaps another box")

    @field_validator("start", "end")
    @classmethod
    def localize(cls, value: datetime) -> datetime:
        return to_naive_local(value)


class FreeSlotResponse(BaseModel):
    slot: Optional[Interval] = None


class MarkMissedResponse(BaseModel):
    day: date
    marked: int


class SplitResult(BaseModel):
    """Outcome of splitting an active box."""

    finished: TimeBox
    remainder: Optional[TimeBox] = Field(
        None, description="New planned box for the remaining minutes (None when nothing remained)"
    )


class SnoozeResult(BaseModel):
    shifted: list[UUID] = Field(default_factory=list)
    failed: list[UUID] = Field(default_factory=list)
