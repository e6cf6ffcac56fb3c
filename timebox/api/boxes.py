"""
Time box API endpoints.

Thin adapter over the lifecycle service: calendar queries, CRUD and the
status transitions.
"""

from datetime import date, datetime
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, HTTPException, Query, status

from timebox.api.deps import CurrentUserId, Lifecycle, Review
from timebox.api.errors import to_http_exception
from timebox.core.exceptions import TimeboxError
from timebox.models.box import (
    ActivityLogEntry,
    ExtendRequest,
    FreeSlotResponse,
    MarkMissedResponse,
    SnoozeResult,
    SplitResult,
    TimeBox,
    TimeBoxCreate,
    TimeBoxMetaUpdate,
    UpdateTimesRequest,
)
from timebox.models.enums import BoxStatus
from timebox.utils.datetime_utils import to_naive_local

router = APIRouter()


@router.get("", response_model=list[TimeBox])
async def list_boxes(
    user_id: CurrentUserId,
    lifecycle: Lifecycle,
    day: Optional[date] = Query(None, description="Calendar day"),
    box_status: Optional[BoxStatus] = Query(None, alias="status"),
):
    """List the boxes of a day, or all boxes in a status."""
    if day is None and box_status is None:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Either day or status is required",
        )
    if day is not None:
        boxes = await lifecycle.get_boxes_for_day(user_id, day)
        if box_status is not None:
            boxes = [box for box in boxes if box.status == box_status]
        return boxes
    return await lifecycle.list_boxes_by_status(user_id, box_status)


@router.get("/active", response_model=Optional[TimeBox])
async def get_active_box(user_id: CurrentUserId, lifecycle: Lifecycle):
    return await lifecycle.get_active_box(user_id)


@router.get("/free-slot", response_model=FreeSlotResponse)
async def find_free_slot(
    user_id: CurrentUserId,
    lifecycle: Lifecycle,
    day: date,
    duration_minutes: int = Query(..., ge=1),
    from_time: Optional[datetime] = None,
    exclude_box_id: Optional[UUID] = None,
):
    if from_time is not None:
        from_time = to_naive_local(from_time)
    try:
        slot = await lifecycle.find_next_free_slot(
            user_id, day, duration_minutes, from_time, exclude_box_id
        )
    except TimeboxError as e:
        raise to_http_exception(e)
    return FreeSlotResponse(slot=slot)


@router.post("/mark-missed", response_model=MarkMissedResponse)
async def mark_missed(user_id: CurrentUserId, lifecycle: Lifecycle, day: date):
    try:
        marked = await lifecycle.mark_missed_for_day(user_id, day)
    except TimeboxError as e:
        raise to_http_exception(e)
    return MarkMissedResponse(day=day, marked=marked)


@router.post("/plan-session", response_model=TimeBox)
async def ensure_plan_session(user_id: CurrentUserId, lifecycle: Lifecycle, day: date):
    try:
        return await lifecycle.ensure_plan_session_for_day(user_id, day)
    except TimeboxError as e:
        raise to_http_exception(e)


@router.post("/snooze-missed", response_model=SnoozeResult)
async def snooze_missed(user_id: CurrentUserId, review: Review, day: date):
    """Shift every missed box of the day to its next free slot."""
    try:
        return await review.snooze_missed(user_id, day)
    except TimeboxError as e:
        raise to_http_exception(e)


@router.post("", response_model=TimeBox, status_code=status.HTTP_201_CREATED)
async def create_box(
    data: TimeBoxCreate,
    user_id: CurrentUserId,
    lifecycle: Lifecycle,
    force: bool = Query(False, description="Create even if the box overlaps others"),
):
    try:
        return await lifecycle.create_box(user_id, data, check_overlap=not force)
    except TimeboxError as e:
        raise to_http_exception(e)


@router.get("/{box_id}", response_model=TimeBox)
async def get_box(box_id: UUID, user_id: CurrentUserId, lifecycle: Lifecycle):
    try:
        return await lifecycle.get_box(user_id, box_id)
    except TimeboxError as e:
        raise to_http_exception(e)


@router.get("/{box_id}/activity", response_model=list[ActivityLogEntry])
async def list_box_activity(box_id: UUID, user_id: CurrentUserId, lifecycle: Lifecycle):
    try:
        await lifecycle.get_box(user_id, box_id)
    except TimeboxError as e:
        raise to_http_exception(e)
    return await lifecycle.list_box_activity(user_id, box_id)


@router.patch("/{box_id}", response_model=TimeBox)
async def update_box_meta(
    box_id: UUID,
    patch: TimeBoxMetaUpdate,
    user_id: CurrentUserId,
    lifecycle: Lifecycle,
):
    try:
        return await lifecycle.update_box_meta(user_id, box_id, patch)
    except TimeboxError as e:
        raise to_http_exception(e)


@router.delete("/{box_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_box(box_id: UUID, user_id: CurrentUserId, lifecycle: Lifecycle):
    try:
        await lifecycle.delete_box(user_id, box_id)
    except TimeboxError as e:
        raise to_http_exception(e)


@router.post("/{box_id}/start", response_model=TimeBox)
async def start_box(box_id: UUID, user_id: CurrentUserId, lifecycle: Lifecycle):
    try:
        return await lifecycle.start_box(user_id, box_id)
    except TimeboxError as e:
        raise to_http_exception(e)


@router.post("/{box_id}/finish", response_model=TimeBox)
async def finish_box(box_id: UUID, user_id: CurrentUserId, lifecycle: Lifecycle):
    try:
        return await lifecycle.finish_box(user_id, box_id)
    except TimeboxError as e:
        raise to_http_exception(e)


@router.post("/{box_id}/extend", response_model=TimeBox)
async def extend_box(
    box_id: UUID,
    request: ExtendRequest,
    user_id: CurrentUserId,
    lifecycle: Lifecycle,
):
    """Move the end; overlapping extensions are rejected unless forced."""
    try:
        return await lifecycle.extend_box(
            user_id, box_id, request.delta_minutes, check_overlap=not request.force
        )
    except TimeboxError as e:
        raise to_http_exception(e)


@router.put("/{box_id}/times", response_model=TimeBox)
async def update_box_times(
    box_id: UUID,
    request: UpdateTimesRequest,
    user_id: CurrentUserId,
    lifecycle: Lifecycle,
):
    try:
        return await lifecycle.update_box_times(
            user_id, box_id, request.start, request.end, force=request.force
        )
    except TimeboxError as e:
        raise to_http_exception(e)


@router.post("/{box_id}/shift", response_model=TimeBox)
async def shift_box(box_id: UUID, user_id: CurrentUserId, lifecycle: Lifecycle):
    try:
        return await lifecycle.shift_box(user_id, box_id)
    except TimeboxError as e:
        raise to_http_exception(e)


@router.post("/{box_id}/split", response_model=SplitResult)
async def split_box(box_id: UUID, user_id: CurrentUserId, lifecycle: Lifecycle):
    try:
        return await lifecycle.split_active_box(user_id, box_id)
    except TimeboxError as e:
        raise to_http_exception(e)
