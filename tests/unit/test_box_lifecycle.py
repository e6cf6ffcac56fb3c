"""
Unit tests for the box lifecycle service.
"""

from datetime import date, datetime, timedelta, timezone
from uuid import uuid4

import pytest

from timebox.core.exceptions import (
    ConflictError,
    NoSlotAvailableError,
    NotFoundError,
    OverlapConflictError,
    ValidationError,
)
from timebox.models.box import TimeBoxCreate, TimeBoxMetaUpdate
from timebox.models.enums import BoxStatus, LogEvent
from timebox.models.schedule_settings import ScheduleSettingsUpdate
from timebox.services.box_lifecycle import BoxLifecycleService
from timebox.services.slot_finder import SlotFinder
from timebox.utils.intervals import ranges_overlap

DAY = date(2025, 3, 10)


def t(hour: int, minute: int = 0, day: int = 10) -> datetime:
    return datetime(2025, 3, day, hour, minute)


async def _create(lifecycle, user_id, start, end, title="Deep work", **extra):
    return await lifecycle.create_box(
        user_id, TimeBoxCreate(title=title, start=start, end=end, **extra)
    )


# ===========================================
# Create
# ===========================================


@pytest.mark.asyncio
async def test_create_box_defaults_to_planned(lifecycle, test_user_id, clock):
    box = await _create(lifecycle, test_user_id, t(9), t(10), tags=["#focus", "#focus"])

    assert box.status == BoxStatus.PLANNED
    assert box.tags == ["#focus"]
    assert box.created_at == clock.now
    activity = await lifecycle.list_box_activity(test_user_id, box.id)
    assert activity[0].event == LogEvent.CREATE


@pytest.mark.asyncio
async def test_create_box_rejects_inverted_interval(lifecycle, test_user_id):
    with pytest.raises(ValidationError):
        await _create(lifecycle, test_user_id, t(10), t(10))


@pytest.mark.asyncio
async def test_create_box_rejects_blank_title(lifecycle, test_user_id):
    with pytest.raises(ValidationError):
        await _create(lifecycle, test_user_id, t(9), t(10), title="   ")


@pytest.mark.asyncio
async def test_create_box_overlap_check_is_opt_in(lifecycle, test_user_id):
    first = await _create(lifecycle, test_user_id, t(9), t(10))

    with pytest.raises(OverlapConflictError) as exc_info:
        await lifecycle.create_box(
            test_user_id,
            TimeBoxCreate(title="Clash", start=t(9, 30), end=t(10, 30)),
            check_overlap=True,
        )
    assert exc_info.value.conflicting_ids == [first.id]

    forced = await _create(lifecycle, test_user_id, t(9, 30), t(10, 30), title="Clash")
    assert forced.start == t(9, 30)


# ===========================================
# Start / finish
# ===========================================


@pytest.mark.asyncio
async def test_only_one_box_can_be_active(lifecycle, test_user_id):
    first = await _create(lifecycle, test_user_id, t(9), t(10))
    second = await _create(lifecycle, test_user_id, t(10), t(11))

    await lifecycle.start_box(test_user_id, first.id)
    with pytest.raises(ConflictError):
        await lifecycle.start_box(test_user_id, second.id)

    active = await lifecycle.get_active_box(test_user_id)
    assert active.id == first.id
    assert (await lifecycle.get_box(test_user_id, second.id)).status == BoxStatus.PLANNED


@pytest.mark.asyncio
async def test_creating_active_box_respects_single_active(lifecycle, test_user_id):
    first = await _create(lifecycle, test_user_id, t(9), t(10))
    await lifecycle.start_box(test_user_id, first.id)

    with pytest.raises(ConflictError):
        await _create(lifecycle, test_user_id, t(10), t(11), status=BoxStatus.ACTIVE)

    assert len(await lifecycle.get_boxes_for_day(test_user_id, DAY)) == 1


@pytest.mark.asyncio
async def test_finish_then_start_next(lifecycle, test_user_id):
    first = await _create(lifecycle, test_user_id, t(9), t(10))
    second = await _create(lifecycle, test_user_id, t(10), t(11))

    await lifecycle.start_box(test_user_id, first.id)
    finished = await lifecycle.finish_box(test_user_id, first.id)
    started = await lifecycle.start_box(test_user_id, second.id)

    assert finished.status == BoxStatus.DONE
    assert started.status == BoxStatus.ACTIVE
    events = [entry.event for entry in await lifecycle.list_box_activity(test_user_id, first.id)]
    assert events == [LogEvent.CREATE, LogEvent.START, LogEvent.DONE]


@pytest.mark.asyncio
async def test_done_box_cannot_be_started(lifecycle, test_user_id):
    box = await _create(lifecycle, test_user_id, t(9), t(10))
    await lifecycle.finish_box(test_user_id, box.id)

    with pytest.raises(ConflictError):
        await lifecycle.start_box(test_user_id, box.id)


@pytest.mark.asyncio
async def test_unknown_box_raises_not_found(lifecycle, test_user_id):
    with pytest.raises(NotFoundError):
        await lifecycle.start_box(test_user_id, uuid4())


# ===========================================
# Extend / update times
# ===========================================


@pytest.mark.asyncio
async def test_extend_box_logs_delta(lifecycle, test_user_id):
    box = await _create(lifecycle, test_user_id, t(9), t(10))

    extended = await lifecycle.extend_box(test_user_id, box.id, 15)

    assert extended.end == t(10, 15)
    log = (await lifecycle.list_box_activity(test_user_id, box.id))[-1]
    assert log.event == LogEvent.EXTEND
    assert log.payload["delta_minutes"] == 15
    assert "override" not in log.payload


@pytest.mark.asyncio
async def test_extend_cannot_end_before_start(lifecycle, test_user_id):
    box = await _create(lifecycle, test_user_id, t(9), t(10))

    with pytest.raises(ValidationError):
        await lifecycle.extend_box(test_user_id, box.id, -60)


@pytest.mark.asyncio
async def test_extend_with_overlap_check(lifecycle, test_user_id):
    box = await _create(lifecycle, test_user_id, t(9), t(10))
    neighbour = await _create(lifecycle, test_user_id, t(10), t(11))

    with pytest.raises(OverlapConflictError):
        await lifecycle.extend_box(test_user_id, box.id, 30, check_overlap=True)

    extended = await lifecycle.extend_box(test_user_id, box.id, 30)
    assert extended.end == t(10, 30)
    log = (await lifecycle.list_box_activity(test_user_id, box.id))[-1]
    assert log.payload["override"] is True
    assert log.payload["conflicting_ids"] == [str(neighbour.id)]


@pytest.mark.asyncio
async def test_update_times_reports_conflict_unless_forced(lifecycle, test_user_id):
    box = await _create(lifecycle, test_user_id, t(10), t(10, 30))
    neighbour = await _create(lifecycle, test_user_id, t(10, 45), t(11, 15))

    with pytest.raises(OverlapConflictError) as exc_info:
        await lifecycle.update_box_times(test_user_id, box.id, t(10), t(11))
    assert exc_info.value.conflicting_ids == [neighbour.id]
    assert (await lifecycle.get_box(test_user_id, box.id)).end == t(10, 30)

    saved = await lifecycle.update_box_times(test_user_id, box.id, t(10), t(11), force=True)

    assert saved.end == t(11)
    log = (await lifecycle.list_box_activity(test_user_id, box.id))[-1]
    assert log.event == LogEvent.EXTEND
    assert log.payload["override"] is True
    assert log.payload["conflicting_ids"] == [str(neighbour.id)]


@pytest.mark.asyncio
async def test_update_times_earlier_end_logs_shift(lifecycle, test_user_id):
    box = await _create(lifecycle, test_user_id, t(10), t(11))

    moved = await lifecycle.update_box_times(test_user_id, box.id, t(9), t(10))

    assert (moved.start, moved.end) == (t(9), t(10))
    log = (await lifecycle.list_box_activity(test_user_id, box.id))[-1]
    assert log.event == LogEvent.SHIFT
    assert log.payload["prev"] == {"start": "2025-03-10T10:00:00", "end": "2025-03-10T11:00:00"}


@pytest.mark.asyncio
async def test_update_times_rejects_offset_datetimes(lifecycle, test_user_id):
    box = await _create(lifecycle, test_user_id, t(10), t(11))

    with pytest.raises(ValidationError):
        await lifecycle.update_box_times(
            test_user_id,
            box.id,
            t(12).replace(tzinfo=timezone.utc),
            t(13).replace(tzinfo=timezone.utc),
        )
    assert (await lifecycle.get_box(test_user_id, box.id)).start == t(10)


def test_create_model_converts_offset_to_local_time():
    aware = t(11).astimezone()

    data = TimeBoxCreate(title="Call", start=aware, end=aware + timedelta(minutes=30))

    assert data.start == t(11)
    assert data.start.tzinfo is None
    assert data.end == t(11, 30)


@pytest.mark.asyncio
async def test_update_meta(lifecycle, test_user_id):
    box = await _create(lifecycle, test_user_id, t(9), t(10))

    updated = await lifecycle.update_box_meta(
        test_user_id, box.id, TimeBoxMetaUpdate(title="Renamed", tags=["#urgent"])
    )

    assert updated.title == "Renamed"
    assert updated.tags == ["#urgent"]
    assert updated.start == t(9)


@pytest.mark.asyncio
async def test_delete_box(lifecycle, test_user_id):
    box = await _create(lifecycle, test_user_id, t(9), t(10))

    await lifecycle.delete_box(test_user_id, box.id)

    with pytest.raises(NotFoundError):
        await lifecycle.get_box(test_user_id, box.id)
    events = [entry.event for entry in await lifecycle.list_box_activity(test_user_id, box.id)]
    assert events[-1] == LogEvent.DELETE


# ===========================================
# Shift
# ===========================================


@pytest.mark.asyncio
async def test_shift_today_starts_at_now(lifecycle, test_user_id, clock):
    box = await _create(lifecycle, test_user_id, t(14), t(14, 30))
    clock.set(t(15))

    shifted = await lifecycle.shift_box(test_user_id, box.id)

    assert (shifted.start, shifted.end) == (t(15), t(15, 30))
    assert shifted.status == BoxStatus.PLANNED


@pytest.mark.asyncio
async def test_shift_upcoming_box_goes_after_its_end(lifecycle, test_user_id, clock):
    box = await _create(lifecycle, test_user_id, t(9), t(9, 30))

    shifted = await lifecycle.shift_box(test_user_id, box.id)

    assert shifted.start == t(9, 30)


@pytest.mark.asyncio
async def test_shift_missed_box_from_past_day_lands_today(lifecycle, test_user_id, clock):
    box = await _create(lifecycle, test_user_id, t(9, day=8), t(10, day=8))
    clock.set(t(12))
    await lifecycle.mark_missed_for_day(test_user_id, date(2025, 3, 8))

    shifted = await lifecycle.shift_box(test_user_id, box.id)

    assert (shifted.start, shifted.end) == (t(12), t(13))
    assert shifted.status == BoxStatus.PLANNED


@pytest.mark.asyncio
async def test_shift_falls_back_to_next_day(lifecycle, settings_repo, test_user_id, clock):
    await settings_repo.upsert(
        test_user_id, ScheduleSettingsUpdate(workday_start="09:00", workday_end="10:00")
    )
    box = await _create(lifecycle, test_user_id, t(9), t(10))
    clock.set(t(9))

    shifted = await lifecycle.shift_box(test_user_id, box.id)

    assert (shifted.start, shifted.end) == (t(9, day=11), t(10, day=11))


@pytest.mark.asyncio
async def test_shift_without_room_raises(box_repo, settings_repo, test_user_id, clock):
    lifecycle = BoxLifecycleService(
        box_repo,
        settings_repo,
        slot_finder=SlotFinder(box_repo, settings_repo, fallback_days=0),
        clock=clock,
        grace_minutes=5,
    )
    await settings_repo.upsert(
        test_user_id, ScheduleSettingsUpdate(workday_start="09:00", workday_end="10:00")
    )
    box = await _create(lifecycle, test_user_id, t(9), t(10))

    with pytest.raises(NoSlotAvailableError) as exc_info:
        await lifecycle.shift_box(test_user_id, box.id)

    assert exc_info.value.days_searched == 1
    assert (await lifecycle.get_box(test_user_id, box.id)).start == t(9)


# ===========================================
# Split
# ===========================================


@pytest.mark.asyncio
async def test_split_active_box_with_twenty_minutes_left(lifecycle, test_user_id, clock):
    box = await _create(lifecycle, test_user_id, t(10), t(11), tags=["#focus"], notes="chapter 3")
    clock.set(t(10))
    await lifecycle.start_box(test_user_id, box.id)
    clock.set(t(10, 40))

    result = await lifecycle.split_active_box(test_user_id, box.id)

    finished, remainder = result.finished, result.remainder
    assert finished.status == BoxStatus.DONE
    assert (finished.start, finished.end) == (t(10), t(10, 40))
    assert remainder.status == BoxStatus.PLANNED
    assert remainder.duration_minutes == 20
    assert remainder.title == box.title
    assert remainder.tags == ["#focus"]
    assert remainder.notes == "chapter 3"
    assert min(finished.start, remainder.start) == box.start
    assert not ranges_overlap(finished.start, finished.end, remainder.start, remainder.end)

    boxes = await lifecycle.get_boxes_for_day(test_user_id, DAY)
    assert len(boxes) == 2
    split_log = (await lifecycle.list_box_activity(test_user_id, box.id))[-1]
    assert split_log.event == LogEvent.SPLIT
    assert split_log.payload["remainder_box_id"] == str(remainder.id)
    remainder_log = await lifecycle.list_box_activity(test_user_id, remainder.id)
    assert [entry.event for entry in remainder_log] == [LogEvent.CREATE]


@pytest.mark.asyncio
async def test_split_remainder_rounds_up(lifecycle, test_user_id, clock):
    box = await _create(lifecycle, test_user_id, t(10), t(11))
    await lifecycle.start_box(test_user_id, box.id)
    clock.set(datetime(2025, 3, 10, 10, 40, 30))

    result = await lifecycle.split_active_box(test_user_id, box.id)

    assert result.remainder.duration_minutes == 20


@pytest.mark.asyncio
async def test_split_after_end_just_finishes(lifecycle, test_user_id, clock):
    box = await _create(lifecycle, test_user_id, t(10), t(11))
    await lifecycle.start_box(test_user_id, box.id)
    clock.set(t(11, 5))

    result = await lifecycle.split_active_box(test_user_id, box.id)

    assert result.remainder is None
    assert result.finished.status == BoxStatus.DONE
    assert result.finished.end == t(11)


@pytest.mark.asyncio
async def test_split_requires_active_box(lifecycle, test_user_id, clock):
    box = await _create(lifecycle, test_user_id, t(10), t(11))
    clock.set(t(10, 30))

    with pytest.raises(ConflictError):
        await lifecycle.split_active_box(test_user_id, box.id)


# ===========================================
# Mark missed
# ===========================================


@pytest.mark.asyncio
async def test_mark_missed_is_idempotent(lifecycle, test_user_id, clock):
    overdue = await _create(lifecycle, test_user_id, t(9), t(9, 30))
    upcoming = await _create(lifecycle, test_user_id, t(11), t(11, 30))
    clock.set(t(10))

    assert await lifecycle.mark_missed_for_day(test_user_id, DAY) == 1
    assert await lifecycle.mark_missed_for_day(test_user_id, DAY) == 0

    assert (await lifecycle.get_box(test_user_id, overdue.id)).status == BoxStatus.MISSED
    assert (await lifecycle.get_box(test_user_id, upcoming.id)).status == BoxStatus.PLANNED
    log = (await lifecycle.list_box_activity(test_user_id, overdue.id))[-1]
    assert log.event == LogEvent.UPDATE
    assert log.payload == {"prev_status": "planned", "next_status": "missed"}


@pytest.mark.asyncio
async def test_mark_missed_grace_buffer(lifecycle, test_user_id, clock):
    clock.set(t(10))
    late_entry = await _create(lifecycle, test_user_id, t(9), t(9, 30))

    clock.set(t(10, 2))
    assert await lifecycle.mark_missed_for_day(test_user_id, DAY) == 0

    clock.set(t(10, 6))
    assert await lifecycle.mark_missed_for_day(test_user_id, DAY) == 1
    assert (await lifecycle.get_box(test_user_id, late_entry.id)).status == BoxStatus.MISSED


@pytest.mark.asyncio
async def test_mark_missed_past_day_uses_end_of_day(lifecycle, test_user_id, clock):
    await _create(lifecycle, test_user_id, t(22, day=9), t(23, day=9))
    clock.advance(10)

    assert await lifecycle.mark_missed_for_day(test_user_id, date(2025, 3, 9)) == 1


@pytest.mark.asyncio
async def test_mark_missed_ignores_future_day(lifecycle, test_user_id):
    await _create(lifecycle, test_user_id, t(9, day=11), t(10, day=11))

    assert await lifecycle.mark_missed_for_day(test_user_id, date(2025, 3, 11)) == 0


@pytest.mark.asyncio
async def test_mark_missed_leaves_active_and_done(lifecycle, test_user_id, clock):
    active = await _create(lifecycle, test_user_id, t(8), t(8, 30))
    done = await _create(lifecycle, test_user_id, t(8, 30), t(9))
    await lifecycle.start_box(test_user_id, active.id)
    await lifecycle.finish_box(test_user_id, done.id)
    clock.set(t(12))

    assert await lifecycle.mark_missed_for_day(test_user_id, DAY) == 0


# ===========================================
# Plan session
# ===========================================


@pytest.mark.asyncio
async def test_plan_session_is_created_once(lifecycle, test_user_id):
    first = await lifecycle.ensure_plan_session_for_day(test_user_id, DAY)
    second = await lifecycle.ensure_plan_session_for_day(test_user_id, DAY)

    assert first.id == second.id
    assert first.is_plan_session is True
    assert (first.start, first.end) == (t(9), t(9, 15))
    assert len(await lifecycle.get_boxes_for_day(test_user_id, DAY)) == 1


@pytest.mark.asyncio
async def test_plan_session_follows_settings(lifecycle, settings_repo, test_user_id):
    await settings_repo.upsert(
        test_user_id,
        ScheduleSettingsUpdate(workday_start="08:30", planning_default_minutes=30),
    )

    box = await lifecycle.ensure_plan_session_for_day(test_user_id, DAY)

    assert (box.start, box.end) == (t(8, 30), t(9))
