"""
Backlog API endpoints.
"""

from uuid import UUID

from fastapi import APIRouter, Query, status

from timebox.api.deps import Backlog, CurrentUserId
from timebox.api.errors import to_http_exception
from timebox.core.exceptions import TimeboxError
from timebox.models.backlog import (
    ArrangeRequest,
    ArrangeResult,
    BacklogItem,
    BacklogItemCreate,
    BacklogItemUpdate,
    PromoteRequest,
)
from timebox.models.box import TimeBox

router = APIRouter()


@router.get("", response_model=list[BacklogItem])
async def list_backlog(
    user_id: CurrentUserId,
    backlog: Backlog,
    limit: int = Query(200, ge=1, le=1000),
    offset: int = Query(0, ge=0),
):
    return await backlog.list_items(user_id, limit=limit, offset=offset)


@router.post("", response_model=BacklogItem, status_code=status.HTTP_201_CREATED)
async def create_backlog_item(data: BacklogItemCreate, user_id: CurrentUserId, backlog: Backlog):
    return await backlog.create_item(user_id, data)


@router.post("/arrange", response_model=ArrangeResult)
async def arrange_backlog(request: ArrangeRequest, user_id: CurrentUserId, backlog: Backlog):
    """Place the selected items into a day, most urgent first."""
    try:
        return await backlog.arrange_for_day(user_id, request.item_ids, request.day)
    except TimeboxError as e:
        raise to_http_exception(e)


@router.get("/{item_id}", response_model=BacklogItem)
async def get_backlog_item(item_id: UUID, user_id: CurrentUserId, backlog: Backlog):
    try:
        return await backlog.get_item(user_id, item_id)
    except TimeboxError as e:
        raise to_http_exception(e)


@router.patch("/{item_id}", response_model=BacklogItem)
async def update_backlog_item(
    item_id: UUID,
    update: BacklogItemUpdate,
    user_id: CurrentUserId,
    backlog: Backlog,
):
    try:
        return await backlog.update_item(user_id, item_id, update)
    except TimeboxError as e:
        raise to_http_exception(e)


@router.delete("/{item_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_backlog_item(item_id: UUID, user_id: CurrentUserId, backlog: Backlog):
    try:
        await backlog.delete_item(user_id, item_id)
    except TimeboxError as e:
        raise to_http_exception(e)


@router.post("/{item_id}/promote", response_model=TimeBox, status_code=status.HTTP_201_CREATED)
async def promote_backlog_item(
    item_id: UUID,
    request: PromoteRequest,
    user_id: CurrentUserId,
    backlog: Backlog,
):
    try:
        return await backlog.promote_to_box(user_id, item_id, request.day, request.start)
    except TimeboxError as e:
        raise to_http_exception(e)
