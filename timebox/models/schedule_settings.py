"""
Models for per-user schedule settings.
"""

from __future__ import annotations

import re
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field, field_validator, model_validator

DEFAULT_WORKDAY_START = "09:00"
DEFAULT_WORKDAY_END = "18:00"
DEFAULT_PLANNING_MINUTES = 15
DEFAULT_MEETING_PREP_MINUTES = 15

_HHMM = re.compile(r"^([01]\d|2[0-3]):([0-5]\d)$")


def _check_hhmm(value: Optional[str]) -> Optional[str]:
    if value is not None and not _HHMM.match(value):
        raise ValueError(f"expected HH:MM, got {value!r}")
    return value


class ScheduleSettings(BaseModel):
    user_id: str
    workday_start: str = DEFAULT_WORKDAY_START
    workday_end: str = DEFAULT_WORKDAY_END
    planning_default_minutes: int = Field(DEFAULT_PLANNING_MINUTES, ge=1, le=240)
    meeting_prep_minutes: int = Field(DEFAULT_MEETING_PREP_MINUTES, ge=0, le=240)
    focus_shield: bool = True
    colors_by_tag: dict[str, str] = Field(default_factory=dict)
    created_at: datetime
    updated_at: datetime


class ScheduleSettingsUpdate(BaseModel):
    workday_start: Optional[str] = None
    workday_end: Optional[str] = None
    planning_default_minutes: Optional[int] = Field(None, ge=1, le=240)
    meeting_prep_minutes: Optional[int] = Field(None, ge=0, le=240)
    focus_shield: Optional[bool] = None
    colors_by_tag: Optional[dict[str, str]] = None

    @field_validator("workday_start", "workday_end")
    @classmethod
    def validate_hhmm(cls, value: Optional[str]) -> Optional[str]:
        return _check_hhmm(value)

    @model_validator(mode="after")
    def validate_window(self) -> "ScheduleSettingsUpdate":
        if self.workday_start and self.workday_end and self.workday_start >= self.workday_end:
            raise ValueError("workday_start must be earlier than workday_end")
        return self
