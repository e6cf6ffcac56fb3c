"""
Schedule settings API endpoints.
"""

from __future__ import annotations

from fastapi import APIRouter

from timebox.api.deps import CurrentUserId, ScheduleSettingsRepo
from timebox.api.errors import to_http_exception
from timebox.core.exceptions import TimeboxError
from timebox.models.schedule_settings import ScheduleSettings, ScheduleSettingsUpdate

router = APIRouter()


@router.get("/schedule-settings", response_model=ScheduleSettings)
async def get_schedule_settings(
    user_id: CurrentUserId,
    repo: ScheduleSettingsRepo,
):
    return await repo.get_or_default(user_id)


@router.put("/schedule-settings", response_model=ScheduleSettings)
async def update_schedule_settings(
    payload: ScheduleSettingsUpdate,
    user_id: CurrentUserId,
    repo: ScheduleSettingsRepo,
):
    try:
        return await repo.upsert(user_id, payload)
    except TimeboxError as e:
        raise to_http_exception(e)
