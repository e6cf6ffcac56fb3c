"""
Free slot search within the workday window.

Finds the earliest gap on a day that can hold a given duration, sweeping once
over the day's boxes in start order.
"""

from __future__ import annotations

from datetime import date, datetime, timedelta
from typing import Iterable, Optional
from uuid import UUID

from timebox.core.config import get_settings
from timebox.core.exceptions import ValidationError
from timebox.core.logger import setup_logger
from timebox.interfaces.box_repository import ITimeBoxRepository
from timebox.interfaces.schedule_settings_repository import IScheduleSettingsRepository
from timebox.models.box import Interval, TimeBox
from timebox.utils.datetime_utils import (
    DayLike,
    add_minutes,
    as_date,
    day_bounds,
    minutes_between,
    same_day,
    to_day_time,
)

logger = setup_logger(__name__)


def sweep_free_slot(
    boxes: Iterable[TimeBox],
    anchor: datetime,
    work_end: datetime,
    duration_minutes: int,
) -> Optional[Interval]:
    """
    Earliest [cursor, cursor + duration) that fits before work_end.

    `boxes` must be sorted by start. Gaps are measured up to the next box
    start or work_end, whichever comes first.
    """
    cursor = anchor
    for box in boxes:
        if cursor >= work_end:
            return None
        if box.end <= cursor:
            continue
        if box.start > cursor:
            gap_end = min(box.start, work_end)
            if minutes_between(cursor, gap_end) >= duration_minutes:
                return Interval(start=cursor, end=add_minutes(cursor, duration_minutes))
        # Box overlaps the cursor or the gap before it was too short
        cursor = box.end

    if cursor < work_end and minutes_between(cursor, work_end) >= duration_minutes:
        return Interval(start=cursor, end=add_minutes(cursor, duration_minutes))
    return None


class SlotFinder:
    """Searches a user's days for free intervals."""

    def __init__(
        self,
        box_repo: ITimeBoxRepository,
        settings_repo: IScheduleSettingsRepository,
        fallback_days: Optional[int] = None,
    ):
        self.box_repo = box_repo
        self.settings_repo = settings_repo
        self.fallback_days = (
            fallback_days if fallback_days is not None else get_settings().SHIFT_FALLBACK_DAYS
        )

    async def workday_window(self, user_id: str, day: DayLike) -> tuple[datetime, datetime]:
        settings = await self.settings_repo.get_or_default(user_id)
        return (
            to_day_time(day, settings.workday_start),
            to_day_time(day, settings.workday_end),
        )

    async def find_next_free_slot(
        self,
        user_id: str,
        day: DayLike,
        duration_minutes: int,
        from_time: Optional[datetime] = None,
        exclude_box_id: Optional[UUID] = None,
    ) -> Optional[Interval]:
        """
        Find the earliest free interval of `duration_minutes` on `day`.

        Args:
            user_id: Owner user ID
            day: Calendar day to search
            duration_minutes: Required length
            from_time: Search anchor; ignored unless it falls on `day`
            exclude_box_id: Box to ignore (typically the one being moved)

        Returns:
            The slot, or None when the rest of the workday has no room

        Raises:
            ValidationError: duration_minutes is not positive
        """
        if duration_minutes <= 0:
            raise ValidationError(
                "duration_minutes must be positive", details={"duration_minutes": duration_minutes}
            )

        work_start, work_end = await self.workday_window(user_id, day)
        if from_time is not None and same_day(from_time, day):
            anchor = max(from_time, work_start)
        else:
            anchor = work_start

        day_start, day_end = day_bounds(day)
        boxes = [
            box
            for box in await self.box_repo.list_by_day_range(user_id, day_start, day_end)
            if box.id != exclude_box_id
        ]
        boxes.sort(key=lambda box: box.start)

        slot = sweep_free_slot(boxes, anchor, work_end, duration_minutes)
        logger.debug(
            "Slot search user=%s day=%s duration=%s anchor=%s -> %s",
            user_id,
            as_date(day),
            duration_minutes,
            anchor,
            slot,
        )
        return slot

    async def find_slot_with_fallback(
        self,
        user_id: str,
        day: DayLike,
        duration_minutes: int,
        from_time: Optional[datetime] = None,
        exclude_box_id: Optional[UUID] = None,
    ) -> Optional[Interval]:
        """
        Try `day`, then each of the following `fallback_days` days from their
        workday start.
        """
        slot = await self.find_next_free_slot(
            user_id, day, duration_minutes, from_time, exclude_box_id
        )
        base_day: date = as_date(day)
        offset = 1
        while slot is None and offset <= self.fallback_days:
            next_day = base_day + timedelta(days=offset)
            work_start, _ = await self.workday_window(user_id, next_day)
            slot = await self.find_next_free_slot(
                user_id, next_day, duration_minutes, work_start, exclude_box_id
            )
            offset += 1
        if slot is None:
            logger.warning(
                "No %s-minute slot for user %s within %s days of %s",
                duration_minutes,
                user_id,
                self.fallback_days,
                base_day,
            )
        return slot
