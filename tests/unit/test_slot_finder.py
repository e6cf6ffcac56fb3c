"""
Unit tests for free slot search.
"""

from datetime import date, datetime
from uuid import uuid4

import pytest

from timebox.core.exceptions import ValidationError
from timebox.models.box import TimeBox
from timebox.models.schedule_settings import ScheduleSettingsUpdate
from timebox.services.slot_finder import sweep_free_slot
from timebox.utils.intervals import has_overlap

DAY = date(2025, 3, 10)
NOW = datetime(2025, 3, 10, 8, 0)


def t(hour: int, minute: int = 0, day: int = 10) -> datetime:
    return datetime(2025, 3, day, hour, minute)


def _box(start: datetime, end: datetime) -> TimeBox:
    return TimeBox(
        id=uuid4(),
        user_id="test_user",
        title="Busy",
        start=start,
        end=end,
        created_at=NOW,
        updated_at=NOW,
    )


async def _store(box_repo, user_id: str, start: datetime, end: datetime):
    return await box_repo.create(
        user_id, uuid4(), {"title": "Busy", "start": start, "end": end}, at=NOW
    )


def test_sweep_on_empty_day_starts_at_anchor():
    slot = sweep_free_slot([], t(9), t(18), 30)

    assert (slot.start, slot.end) == (t(9), t(9, 30))


def test_sweep_skips_short_gaps():
    boxes = [_box(t(9, 20), t(10)), _box(t(10, 10), t(11))]

    slot = sweep_free_slot(boxes, t(9), t(18), 30)

    assert (slot.start, slot.end) == (t(11), t(11, 30))


def test_sweep_adjacent_slot_is_allowed():
    boxes = [_box(t(9), t(10))]

    slot = sweep_free_slot(boxes, t(9), t(18), 60)

    assert slot.start == t(10)
    assert not has_overlap(slot.start, slot.end, boxes)


def test_sweep_caps_gaps_at_workday_end():
    boxes = [_box(t(9), t(17)), _box(t(19), t(20))]

    assert sweep_free_slot(boxes, t(9), t(18), 60).start == t(17)
    assert sweep_free_slot(boxes, t(9), t(18), 90) is None


@pytest.mark.asyncio
async def test_scenario_anchor_at_workday_start(slot_finder, box_repo, test_user_id):
    await _store(box_repo, test_user_id, t(10), t(10, 30))

    slot = await slot_finder.find_next_free_slot(test_user_id, DAY, 30, t(9))

    assert (slot.start, slot.end) == (t(9), t(9, 30))


@pytest.mark.asyncio
async def test_scenario_anchor_inside_gap(slot_finder, box_repo, test_user_id):
    await _store(box_repo, test_user_id, t(10), t(10, 30))

    slot = await slot_finder.find_next_free_slot(test_user_id, DAY, 30, t(10, 15))

    assert (slot.start, slot.end) == (t(10, 30), t(11))


@pytest.mark.asyncio
async def test_repeated_search_returns_same_slot(slot_finder, box_repo, test_user_id):
    await _store(box_repo, test_user_id, t(9), t(9, 45))

    first = await slot_finder.find_next_free_slot(test_user_id, DAY, 30, t(9))
    second = await slot_finder.find_next_free_slot(test_user_id, DAY, 30, t(9))

    assert first == second
    assert (first.start, first.end) == (t(9, 45), t(10, 15))


@pytest.mark.asyncio
async def test_anchor_before_workday_is_raised_to_start(slot_finder, test_user_id):
    slot = await slot_finder.find_next_free_slot(test_user_id, DAY, 30, t(6))

    assert slot.start == t(9)


@pytest.mark.asyncio
async def test_anchor_on_other_day_is_ignored(slot_finder, test_user_id):
    slot = await slot_finder.find_next_free_slot(test_user_id, DAY, 30, t(15, day=9))

    assert slot.start == t(9)


@pytest.mark.asyncio
async def test_slot_never_leaves_workday(slot_finder, test_user_id):
    slot = await slot_finder.find_next_free_slot(test_user_id, DAY, 60, t(17, 30))

    assert slot is None


@pytest.mark.asyncio
async def test_respects_custom_workday(slot_finder, settings_repo, test_user_id):
    await settings_repo.upsert(
        test_user_id, ScheduleSettingsUpdate(workday_start="07:30", workday_end="12:00")
    )

    slot = await slot_finder.find_next_free_slot(test_user_id, DAY, 45)

    assert slot.start == t(7, 30)
    assert await slot_finder.find_next_free_slot(test_user_id, DAY, 300) is None


@pytest.mark.asyncio
async def test_excluded_box_does_not_block(slot_finder, box_repo, test_user_id):
    box = await _store(box_repo, test_user_id, t(9), t(10))

    slot = await slot_finder.find_next_free_slot(test_user_id, DAY, 60, exclude_box_id=box.id)

    assert slot.start == t(9)


@pytest.mark.asyncio
async def test_non_positive_duration_is_rejected(slot_finder, test_user_id):
    with pytest.raises(ValidationError):
        await slot_finder.find_next_free_slot(test_user_id, DAY, 0)


@pytest.mark.asyncio
async def test_fallback_moves_to_next_day(slot_finder, box_repo, test_user_id):
    await _store(box_repo, test_user_id, t(9), t(18))

    slot = await slot_finder.find_slot_with_fallback(test_user_id, DAY, 30)

    assert (slot.start, slot.end) == (t(9, day=11), t(9, 30, day=11))
