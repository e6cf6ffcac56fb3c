"""
Direct-manipulation mapping for the day calendar.

Converts between vertical pixel offsets and times on a fixed display axis and
runs the move/resize gesture state machine. Gesture state is an immutable
value: every handler takes a GestureState and returns a new one. Nothing is
persisted until the gesture ends.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import date, datetime, timedelta
from typing import Iterable, Optional
from uuid import UUID

from timebox.core.exceptions import (
    ConflictError,
    NoSlotAvailableError,
    OverlapConflictError,
    ValidationError,
)
from timebox.core.logger import setup_logger
from timebox.models.box import TimeBox
from timebox.models.enums import ConflictResolution, DragMode
from timebox.services.box_lifecycle import BoxLifecycleService
from timebox.utils.datetime_utils import (
    DayLike,
    add_minutes,
    as_date,
    minutes_between,
    to_day_time,
)
from timebox.utils.intervals import has_overlap

logger = setup_logger(__name__)

DISPLAY_START = "07:00"
DISPLAY_END = "22:00"
PX_PER_MINUTE = 2
SNAP_MINUTES = 5
MIN_BOX_MINUTES = 15
SCROLL_EDGE_PX = 48
SCROLL_STEP_PX = 24


@dataclass(frozen=True)
class TimeAxis:
    """Vertical time axis of one calendar day."""

    day: date
    display_start: str = DISPLAY_START
    display_end: str = DISPLAY_END
    px_per_minute: int = PX_PER_MINUTE
    snap_minutes: int = SNAP_MINUTES

    @classmethod
    def for_day(cls, day: DayLike) -> "TimeAxis":
        return cls(day=as_date(day))

    @property
    def start(self) -> datetime:
        return to_day_time(self.day, self.display_start)

    @property
    def end(self) -> datetime:
        return to_day_time(self.day, self.display_end)

    @property
    def height(self) -> int:
        return minutes_between(self.start, self.end) * self.px_per_minute

    def clamp(self, t: datetime) -> datetime:
        return min(max(t, self.start), self.end)

    def snap(self, t: datetime) -> datetime:
        """Round to the nearest `snap_minutes` multiple of the clock."""
        t = t.replace(second=0, microsecond=0)
        minute = round(t.minute / self.snap_minutes) * self.snap_minutes
        return t.replace(minute=0) + timedelta(minutes=minute)

    def time_to_y(self, t: datetime) -> float:
        return minutes_between(self.start, self.clamp(t)) * self.px_per_minute

    def y_to_time(self, y: float) -> datetime:
        minutes = round(y / self.px_per_minute)
        return self.snap(self.clamp(add_minutes(self.start, minutes)))


@dataclass(frozen=True)
class GestureState:
    """Snapshot of an in-progress move or resize."""

    mode: DragMode = DragMode.IDLE
    box_id: Optional[UUID] = None
    duration_minutes: int = 0
    origin_start: Optional[datetime] = None
    origin_end: Optional[datetime] = None
    draft_start: Optional[datetime] = None
    draft_end: Optional[datetime] = None
    has_conflict: bool = False

    @property
    def is_idle(self) -> bool:
        return self.mode == DragMode.IDLE


IDLE = GestureState()


@dataclass(frozen=True)
class ConflictDecision:
    """A draft that overlaps other boxes and awaits the user's choice."""

    box_id: UUID
    start: datetime
    end: datetime
    conflicting_ids: tuple[UUID, ...] = ()

    @property
    def duration_minutes(self) -> int:
        return minutes_between(self.start, self.end)


@dataclass(frozen=True)
class GestureOutcome:
    """Result of ending a gesture: a saved box, a pending conflict, or neither."""

    box: Optional[TimeBox] = None
    conflict: Optional[ConflictDecision] = None


def auto_scroll(
    pointer_y: float,
    viewport_top: float,
    viewport_bottom: float,
    scroll_top: float,
    scroll_height: float,
    client_height: float,
    edge: int = SCROLL_EDGE_PX,
    step: int = SCROLL_STEP_PX,
) -> float:
    """
    Next scroll position while dragging near the viewport edge.

    Within `edge` px of the bottom the view scrolls down by `step`, within
    `edge` px of the top it scrolls up, clamped to [0, scroll_height -
    client_height].
    """
    max_scroll = max(scroll_height - client_height, 0)
    if pointer_y > viewport_bottom - edge:
        return min(scroll_top + step, max_scroll)
    if pointer_y < viewport_top + edge:
        return max(scroll_top - step, 0)
    return scroll_top


class DragMapper:
    """Gesture handlers for one day's calendar."""

    def __init__(self, lifecycle: BoxLifecycleService, axis: TimeAxis):
        self.lifecycle = lifecycle
        self.axis = axis

    @staticmethod
    def _require_idle(state: GestureState) -> None:
        if not state.is_idle:
            raise ConflictError(
                "A gesture is already in progress",
                details={"mode": state.mode.value, "box_id": str(state.box_id)},
            )

    def _begin(self, state: GestureState, box: TimeBox, mode: DragMode) -> GestureState:
        self._require_idle(state)
        return GestureState(
            mode=mode,
            box_id=box.id,
            duration_minutes=minutes_between(box.start, box.end),
            origin_start=box.start,
            origin_end=box.end,
            draft_start=box.start,
            draft_end=box.end,
        )

    def begin_move(self, state: GestureState, box: TimeBox) -> GestureState:
        return self._begin(state, box, DragMode.MOVE)

    def begin_resize(self, state: GestureState, box: TimeBox) -> GestureState:
        return self._begin(state, box, DragMode.RESIZE)

    def pointer_move(
        self, state: GestureState, y: float, boxes: Iterable[TimeBox]
    ) -> GestureState:
        """
        Recompute the draft for pointer offset `y` and the live conflict flag.

        Move keeps the box's duration; resize keeps its start and never goes
        below MIN_BOX_MINUTES.
        """
        if state.is_idle:
            return state

        t = self.axis.y_to_time(y)
        if state.mode == DragMode.MOVE:
            draft_start, draft_end = t, add_minutes(t, state.duration_minutes)
        else:
            draft_start = state.draft_start
            if minutes_between(draft_start, t) < MIN_BOX_MINUTES:
                draft_end = add_minutes(draft_start, MIN_BOX_MINUTES)
            else:
                draft_end = t

        return replace(
            state,
            draft_start=draft_start,
            draft_end=draft_end,
            has_conflict=has_overlap(draft_start, draft_end, boxes, exclude_id=state.box_id),
        )

    async def end_gesture(
        self, user_id: str, state: GestureState
    ) -> tuple[GestureState, GestureOutcome]:
        """
        Finish the gesture.

        A draft free of overlaps is saved via update_box_times; an
        overlapping one comes back as a ConflictDecision for the caller to
        resolve. A draft equal to the original interval is not saved.
        The returned state is always idle.
        """
        if state.is_idle:
            return IDLE, GestureOutcome()
        if (state.draft_start, state.draft_end) == (state.origin_start, state.origin_end):
            return IDLE, GestureOutcome()

        try:
            box = await self.lifecycle.update_box_times(
                user_id, state.box_id, state.draft_start, state.draft_end
            )
        except OverlapConflictError as e:
            decision = ConflictDecision(
                box_id=state.box_id,
                start=state.draft_start,
                end=state.draft_end,
                conflicting_ids=tuple(e.conflicting_ids),
            )
            return IDLE, GestureOutcome(conflict=decision)
        return IDLE, GestureOutcome(box=box)

    async def resolve_conflict(
        self,
        user_id: str,
        decision: ConflictDecision,
        resolution: ConflictResolution,
    ) -> Optional[TimeBox]:
        """
        Settle a conflicting draft.

        Returns:
            The saved box, or None when the draft is discarded

        Raises:
            NoSlotAvailableError: relocate found no room on the day
        """
        if resolution == ConflictResolution.DISCARD:
            logger.info("Discarded conflicting draft for box %s", decision.box_id)
            return None

        if resolution == ConflictResolution.FORCE:
            return await self.lifecycle.update_box_times(
                user_id, decision.box_id, decision.start, decision.end, force=True
            )

        if resolution == ConflictResolution.RELOCATE:
            duration = decision.duration_minutes
            slot = await self.lifecycle.find_next_free_slot(
                user_id,
                self.axis.day,
                duration,
                from_time=decision.end,
                exclude_box_id=decision.box_id,
            )
            if slot is None:
                logger.warning("No slot to relocate box %s on %s", decision.box_id, self.axis.day)
                raise NoSlotAvailableError(
                    "No free slot left on this day", duration_minutes=duration
                )
            return await self.lifecycle.update_box_times(
                user_id, decision.box_id, slot.start, slot.end
            )

        raise ValidationError(f"Unknown conflict resolution: {resolution}")
