"""
Box lifecycle service.

Owns the status state machine (planned -> active -> done, planned -> missed,
missed -> planned via shift) and the operations built on it. Every mutation
goes through the repository's atomic apply unit together with its activity
log entry.
"""

from __future__ import annotations

import math
from datetime import datetime, timedelta
from typing import Any, Optional
from uuid import UUID, uuid4

from timebox.core.config import get_settings
from timebox.core.exceptions import (
    ConflictError,
    NoSlotAvailableError,
    NotFoundError,
    OverlapConflictError,
    ValidationError,
)
from timebox.core.logger import setup_logger
from timebox.interfaces.box_repository import BoxMutation, ITimeBoxRepository
from timebox.interfaces.schedule_settings_repository import IScheduleSettingsRepository
from timebox.models.box import (
    ActivityLogEntry,
    Interval,
    SplitResult,
    TimeBox,
    TimeBoxCreate,
    TimeBoxMetaUpdate,
)
from timebox.models.enums import BoxStatus, LogEvent
from timebox.services.slot_finder import SlotFinder
from timebox.utils.datetime_utils import (
    DayLike,
    add_minutes,
    as_date,
    day_bounds,
    minutes_between,
    now_local,
    same_day,
    to_day_time,
)
from timebox.utils.intervals import find_overlapping

logger = setup_logger(__name__)

PLAN_SESSION_TITLE = "Plan the day"
PLAN_SESSION_TAGS = ["#plan"]
PLAN_SESSION_COLOR = "#2563eb"
PLAN_SESSION_NOTES = "Daily 15-30 minute planning session"

# Statuses from which a box may be started
_STARTABLE = {BoxStatus.PLANNED, BoxStatus.ACTIVE}

# Descriptive fields carried over to a split remainder
_CARRIED_FIELDS = ("title", "tags", "notes", "color", "energy", "location", "links")


def _interval_payload(start: datetime, end: datetime) -> dict[str, Any]:
    return {"start": start, "end": end}


class BoxLifecycleService:
    """Lifecycle operations on a user's time boxes."""

    def __init__(
        self,
        box_repo: ITimeBoxRepository,
        settings_repo: IScheduleSettingsRepository,
        slot_finder: Optional[SlotFinder] = None,
        clock=None,
        grace_minutes: Optional[int] = None,
    ):
        """
        Initialize lifecycle service.

        Args:
            box_repo: Time box store
            settings_repo: Schedule settings reader
            slot_finder: Slot finder (built from the repositories when omitted)
            clock: Callable returning the current local time (for testing)
            grace_minutes: Minutes after creation during which a box is never
                marked missed
        """
        self.box_repo = box_repo
        self.settings_repo = settings_repo
        self.slot_finder = slot_finder or SlotFinder(box_repo, settings_repo)
        self._now = clock or now_local
        self.grace_minutes = (
            grace_minutes if grace_minutes is not None else get_settings().MISSED_GRACE_MINUTES
        )

    # ===========================================
    # Queries
    # ===========================================

    async def get_box(self, user_id: str, box_id: UUID) -> TimeBox:
        box = await self.box_repo.get(user_id, box_id)
        if not box:
            raise NotFoundError(f"Time box {box_id} not found")
        return box

    async def get_boxes_for_day(self, user_id: str, day: DayLike) -> list[TimeBox]:
        day_start, day_end = day_bounds(day)
        return await self.box_repo.list_by_day_range(user_id, day_start, day_end)

    async def get_active_box(self, user_id: str) -> Optional[TimeBox]:
        return await self.box_repo.get_active(user_id)

    async def list_boxes_by_status(self, user_id: str, status: BoxStatus) -> list[TimeBox]:
        return await self.box_repo.list_by_status(user_id, status)

    async def list_box_activity(self, user_id: str, box_id: UUID) -> list[ActivityLogEntry]:
        return await self.box_repo.list_activity(user_id, box_id)

    async def find_next_free_slot(
        self,
        user_id: str,
        day: DayLike,
        duration_minutes: int,
        from_time: Optional[datetime] = None,
        exclude_box_id: Optional[UUID] = None,
    ) -> Optional[Interval]:
        return await self.slot_finder.find_next_free_slot(
            user_id, day, duration_minutes, from_time, exclude_box_id
        )

    async def find_conflicts(
        self,
        user_id: str,
        start: datetime,
        end: datetime,
        exclude_id: Optional[UUID] = None,
    ) -> list[TimeBox]:
        """Boxes overlapping [start, end), other than `exclude_id`."""
        range_start, _ = day_bounds(start - timedelta(days=1))
        candidates = await self.box_repo.list_by_day_range(user_id, range_start, end)
        return find_overlapping(start, end, candidates, exclude_id)

    # ===========================================
    # Mutations
    # ===========================================

    @staticmethod
    def _check_interval(start: datetime, end: datetime) -> None:
        if start.tzinfo is not None or end.tzinfo is not None:
            raise ValidationError(
                "start and end must be naive local times",
                details=_interval_payload(start, end),
            )
        if start >= end:
            raise ValidationError(
                "start must be earlier than end",
                details=_interval_payload(start, end),
            )

    @staticmethod
    def _box_values(data: TimeBoxCreate, status: BoxStatus) -> dict[str, Any]:
        return {
            "title": data.title.strip(),
            "start": data.start,
            "end": data.end,
            "status": status,
            "tags": list(data.tags),
            "notes": data.notes,
            "color": data.color,
            "energy": data.energy,
            "location": data.location,
            "links": data.links,
            "is_plan_session": data.is_plan_session,
        }

    async def create_box(
        self, user_id: str, data: TimeBoxCreate, check_overlap: bool = False
    ) -> TimeBox:
        """
        Create a time box.

        Args:
            user_id: Owner user ID
            data: Box fields; status defaults to planned
            check_overlap: Reject the box when it overlaps an existing one

        Raises:
            ValidationError: start >= end or blank title
            OverlapConflictError: check_overlap is set and the interval is taken
            ConflictError: Created as active while another box is active
        """
        if not data.title.strip():
            raise ValidationError("title must not be empty")
        self._check_interval(data.start, data.end)

        if check_overlap:
            conflicts = await self.find_conflicts(user_id, data.start, data.end)
            if conflicts:
                raise OverlapConflictError(
                    "Time box overlaps existing boxes", [box.id for box in conflicts]
                )

        status = data.status or BoxStatus.PLANNED
        values = self._box_values(data, status)
        box = await self.box_repo.create(
            user_id,
            uuid4(),
            values,
            at=self._now(),
            payload={"box": values},
            exclusive_active=status == BoxStatus.ACTIVE,
        )
        logger.info("Created box %s (%s) for user %s", box.id, box.status.value, user_id)
        return box

    async def start_box(self, user_id: str, box_id: UUID) -> TimeBox:
        """
        Make a box the active one.

        Raises:
            NotFoundError: Unknown box
            ConflictError: Another box is active, or the box is done/missed
        """
        box = await self.get_box(user_id, box_id)
        if box.status not in _STARTABLE:
            raise ConflictError(
                f"Cannot start a {box.status.value} box",
                details={"box_id": str(box_id), "status": box.status.value},
            )

        active = await self.box_repo.get_active(user_id)
        if active and active.id != box_id:
            raise ConflictError(
                "Another box is already active; finish it before starting a new one",
                details={"active_box_id": str(active.id)},
            )

        started = await self.box_repo.update(
            user_id,
            box_id,
            {"status": BoxStatus.ACTIVE},
            LogEvent.START,
            at=self._now(),
            payload={"prev_status": box.status},
            exclusive_active=True,
        )
        logger.info("Started box %s for user %s", box_id, user_id)
        return started

    async def finish_box(self, user_id: str, box_id: UUID) -> TimeBox:
        """Mark a box done, whatever its current status."""
        box = await self.get_box(user_id, box_id)
        finished = await self.box_repo.update(
            user_id,
            box_id,
            {"status": BoxStatus.DONE},
            LogEvent.DONE,
            at=self._now(),
            payload={"prev_status": box.status},
        )
        logger.info("Finished box %s for user %s", box_id, user_id)
        return finished

    async def extend_box(
        self, user_id: str, box_id: UUID, delta_minutes: int, check_overlap: bool = False
    ) -> TimeBox:
        """
        Move a box's end by `delta_minutes`.

        Overlap is only enforced when `check_overlap` is set. Saving over
        other boxes records `override` and their ids in the log payload.

        Raises:
            ValidationError: The new end is not after the start
            OverlapConflictError: check_overlap is set and the new range collides
        """
        box = await self.get_box(user_id, box_id)
        next_end = add_minutes(box.end, delta_minutes)
        self._check_interval(box.start, next_end)

        conflicts = await self.find_conflicts(user_id, box.start, next_end, exclude_id=box_id)
        if conflicts and check_overlap:
            logger.warning("Extending box %s conflicts with %d boxes", box_id, len(conflicts))
            raise OverlapConflictError(
                "Extended box overlaps other boxes", [other.id for other in conflicts]
            )

        payload: dict[str, Any] = {
            "delta_minutes": delta_minutes,
            "prev_end": box.end,
            "next_end": next_end,
        }
        if conflicts:
            payload["override"] = True
            payload["conflicting_ids"] = [other.id for other in conflicts]

        extended = await self.box_repo.update(
            user_id,
            box_id,
            {"end": next_end},
            LogEvent.EXTEND,
            at=self._now(),
            payload=payload,
        )
        logger.info("Extended box %s by %s min for user %s", box_id, delta_minutes, user_id)
        return extended

    async def update_box_times(
        self,
        user_id: str,
        box_id: UUID,
        next_start: datetime,
        next_end: datetime,
        force: bool = False,
    ) -> TimeBox:
        """
        Move and/or resize a box.

        Logged as `extend` when the end moves later, otherwise as `shift`.
        A forced save over a conflict records `override` and the conflicting
        box ids in the log payload.

        Raises:
            ValidationError: next_start >= next_end, or either carries a UTC offset
            OverlapConflictError: The interval overlaps other boxes and force is False
        """
        box = await self.get_box(user_id, box_id)
        self._check_interval(next_start, next_end)

        conflicts = await self.find_conflicts(user_id, next_start, next_end, exclude_id=box_id)
        if conflicts and not force:
            logger.warning("Box %s time change conflicts with %d boxes", box_id, len(conflicts))
            raise OverlapConflictError(
                "New interval overlaps other boxes", [other.id for other in conflicts]
            )

        event = LogEvent.EXTEND if next_end > box.end else LogEvent.SHIFT
        payload: dict[str, Any] = {
            "prev": _interval_payload(box.start, box.end),
            "next": _interval_payload(next_start, next_end),
        }
        if conflicts:
            payload["override"] = True
            payload["conflicting_ids"] = [other.id for other in conflicts]

        updated = await self.box_repo.update(
            user_id,
            box_id,
            {"start": next_start, "end": next_end},
            event,
            at=self._now(),
            payload=payload,
        )
        logger.info("Updated times of box %s (%s) for user %s", box_id, event.value, user_id)
        return updated

    async def update_box_meta(
        self, user_id: str, box_id: UUID, patch: TimeBoxMetaUpdate
    ) -> TimeBox:
        await self.get_box(user_id, box_id)
        values = patch.model_dump(exclude_unset=True)
        if "title" in values:
            if not values["title"] or not values["title"].strip():
                raise ValidationError("title must not be empty")
            values["title"] = values["title"].strip()
        return await self.box_repo.update(
            user_id,
            box_id,
            values,
            LogEvent.UPDATE,
            at=self._now(),
            payload={"patch": values},
        )

    async def delete_box(self, user_id: str, box_id: UUID) -> None:
        box = await self.get_box(user_id, box_id)
        await self.box_repo.delete(
            user_id,
            box_id,
            at=self._now(),
            payload={"box": box.model_dump(exclude={"user_id"})},
        )
        logger.info("Deleted box %s for user %s", box_id, user_id)

    async def shift_box(self, user_id: str, box_id: UUID) -> TimeBox:
        """
        Move a box to the next free slot, keeping its duration.

        A box on today's date is searched from max(now, box.end); any other
        box from the workday start of the day after its own (never before
        today). Up to `fallback_days` further days are tried.

        Raises:
            NoSlotAvailableError: Nothing free within the fallback window
        """
        box = await self.get_box(user_id, box_id)
        now = self._now()
        duration = minutes_between(box.start, box.end)

        if same_day(box.start, now):
            base_day = as_date(now)
            from_time: Optional[datetime] = max(now, box.end)
        else:
            base_day = max(as_date(box.start) + timedelta(days=1), as_date(now))
            from_time = now if base_day == as_date(now) else None

        slot = await self.slot_finder.find_slot_with_fallback(
            user_id, base_day, duration, from_time, exclude_box_id=box_id
        )
        if slot is None:
            raise NoSlotAvailableError(
                f"No free {duration}-minute slot in the next {self.slot_finder.fallback_days} days",
                duration_minutes=duration,
                days_searched=self.slot_finder.fallback_days + 1,
            )

        shifted = await self.box_repo.update(
            user_id,
            box_id,
            {"start": slot.start, "end": slot.end, "status": BoxStatus.PLANNED},
            LogEvent.SHIFT,
            at=now,
            payload={
                "prev": _interval_payload(box.start, box.end),
                "next": _interval_payload(slot.start, slot.end),
                "prev_status": box.status,
            },
        )
        logger.info("Shifted box %s to %s for user %s", box_id, slot.start, user_id)
        return shifted

    async def split_active_box(self, user_id: str, box_id: UUID) -> SplitResult:
        """
        End an active box now and reschedule what is left of it.

        The box is closed at the current time and marked done; a new planned
        box carrying its title, tags and notes takes the remaining minutes
        (rounded up) at the next free slot of the same day. Both changes
        commit together.

        Raises:
            ConflictError: The box is not active
            ValidationError: The box has not started yet
            NoSlotAvailableError: No room left today for the remainder
        """
        box = await self.get_box(user_id, box_id)
        if box.status != BoxStatus.ACTIVE:
            raise ConflictError(
                "Only an active box can be split",
                details={"box_id": str(box_id), "status": box.status.value},
            )

        now = self._now()
        if now <= box.start:
            raise ValidationError(
                "Current time is not inside the box",
                details={"now": now.isoformat(), "start": box.start.isoformat()},
            )

        remaining = math.ceil((box.end - now).total_seconds() / 60)
        if remaining <= 0:
            return SplitResult(finished=await self.finish_box(user_id, box_id))

        slot = await self.slot_finder.find_next_free_slot(
            user_id, box.start, remaining, now, exclude_box_id=box_id
        )
        if slot is None:
            logger.warning("No slot today for %s-minute remainder of box %s", remaining, box_id)
            raise NoSlotAvailableError(
                "No free slot left today for the remainder", duration_minutes=remaining
            )

        remainder_id = uuid4()
        carried = {field: getattr(box, field) for field in _CARRIED_FIELDS}
        remainder_values = {
            **carried,
            "start": slot.start,
            "end": slot.end,
            "status": BoxStatus.PLANNED,
            "is_plan_session": False,
        }
        finished, remainder = await self.box_repo.apply(
            user_id,
            [
                BoxMutation(
                    kind="update",
                    box_id=box_id,
                    event=LogEvent.SPLIT,
                    at=now,
                    values={"status": BoxStatus.DONE, "end": now},
                    payload={
                        "finished_at": now,
                        "remainder_minutes": remaining,
                        "remainder_box_id": remainder_id,
                    },
                ),
                BoxMutation(
                    kind="insert",
                    box_id=remainder_id,
                    event=LogEvent.CREATE,
                    at=now,
                    values=remainder_values,
                    payload={"reason": "split remainder", "split_from": box_id},
                ),
            ],
        )
        logger.info(
            "Split box %s at %s; %s min remainder as %s", box_id, now, remaining, remainder_id
        )
        return SplitResult(finished=finished, remainder=remainder)

    async def mark_missed_for_day(self, user_id: str, day: DayLike) -> int:
        """
        Flip overdue planned boxes of `day` to missed.

        The cutoff is now for today and the end of the day for past days;
        future days are left alone. Boxes created within the grace window are
        skipped even when their end has passed.

        Returns:
            Number of boxes flipped
        """
        now = self._now()
        day_start, day_end = day_bounds(day)
        if day_start > now:
            return 0

        cutoff = now if same_day(day, now) else day_end
        grace = timedelta(minutes=self.grace_minutes)

        mutations = []
        for box in await self.box_repo.list_by_day_range(user_id, day_start, day_end):
            if box.status != BoxStatus.PLANNED:
                continue
            if now - box.created_at < grace:
                continue
            if box.end < cutoff:
                mutations.append(
                    BoxMutation(
                        kind="update",
                        box_id=box.id,
                        event=LogEvent.UPDATE,
                        at=now,
                        values={"status": BoxStatus.MISSED},
                        payload={"prev_status": BoxStatus.PLANNED, "next_status": BoxStatus.MISSED},
                    )
                )

        if mutations:
            await self.box_repo.apply(user_id, mutations)
            logger.info("Marked %d boxes missed on %s for user %s", len(mutations), as_date(day), user_id)
        return len(mutations)

    async def ensure_plan_session_for_day(self, user_id: str, day: DayLike) -> TimeBox:
        """Return the day's plan-session box, creating it at workday start if needed."""
        for box in await self.get_boxes_for_day(user_id, day):
            if box.is_plan_session:
                return box

        settings = await self.settings_repo.get_or_default(user_id)
        start = to_day_time(day, settings.workday_start)
        return await self.create_box(
            user_id,
            TimeBoxCreate(
                title=PLAN_SESSION_TITLE,
                start=start,
                end=add_minutes(start, settings.planning_default_minutes),
                status=BoxStatus.PLANNED,
                tags=PLAN_SESSION_TAGS,
                color=PLAN_SESSION_COLOR,
                notes=PLAN_SESSION_NOTES,
                is_plan_session=True,
            ),
        )
