"""
Day review models.
"""

from datetime import date

from pydantic import BaseModel, Field

from timebox.models.box import TimeBox


class StatusTotals(BaseModel):
    count: int = 0
    minutes: int = 0


class DayReview(BaseModel):
    """What happened to a day's boxes."""

    day: date
    marked_missed: int = Field(0, description="Boxes flipped to missed by this review")
    planned: StatusTotals = Field(default_factory=StatusTotals)
    active: StatusTotals = Field(default_factory=StatusTotals)
    done: StatusTotals = Field(default_factory=StatusTotals)
    missed: StatusTotals = Field(default_factory=StatusTotals)
    scheduled_minutes: int = 0
    efficiency_percent: int = Field(0, description="Done minutes over scheduled minutes")
    boxes: list[TimeBox] = Field(default_factory=list)
