"""
SQLite implementation of schedule settings repository.
"""

from __future__ import annotations

from typing import Optional

from sqlalchemy import select

from timebox.core.exceptions import ValidationError
from timebox.infrastructure.local.database import ScheduleSettingsORM, get_session_factory
from timebox.interfaces.schedule_settings_repository import IScheduleSettingsRepository
from timebox.models.schedule_settings import (
    DEFAULT_MEETING_PREP_MINUTES,
    DEFAULT_PLANNING_MINUTES,
    DEFAULT_WORKDAY_END,
    DEFAULT_WORKDAY_START,
    ScheduleSettings,
    ScheduleSettingsUpdate,
)
from timebox.utils.datetime_utils import now_local


class SqliteScheduleSettingsRepository(IScheduleSettingsRepository):
    def __init__(self, session_factory=None, clock=None):
        self._session_factory = session_factory or get_session_factory()
        self._now = clock or now_local

    def _orm_to_model(self, orm: ScheduleSettingsORM) -> ScheduleSettings:
        return ScheduleSettings(
            user_id=orm.user_id,
            workday_start=orm.workday_start,
            workday_end=orm.workday_end,
            planning_default_minutes=orm.planning_default_minutes,
            meeting_prep_minutes=orm.meeting_prep_minutes,
            focus_shield=bool(orm.focus_shield),
            colors_by_tag=orm.colors_by_tag or {},
            created_at=orm.created_at,
            updated_at=orm.updated_at,
        )

    async def get(self, user_id: str) -> Optional[ScheduleSettings]:
        async with self._session_factory() as session:
            result = await session.execute(
                select(ScheduleSettingsORM).where(ScheduleSettingsORM.user_id == user_id)
            )
            orm = result.scalar_one_or_none()
            return self._orm_to_model(orm) if orm else None

    async def upsert(self, user_id: str, update: ScheduleSettingsUpdate) -> ScheduleSettings:
        async with self._session_factory() as session:
            result = await session.execute(
                select(ScheduleSettingsORM).where(ScheduleSettingsORM.user_id == user_id)
            )
            orm = result.scalar_one_or_none()
            now = self._now()
            if orm:
                for field, value in update.model_dump(exclude_unset=True).items():
                    if value is not None:
                        setattr(orm, field, value)
                orm.updated_at = now
            else:
                orm = ScheduleSettingsORM(
                    user_id=user_id,
                    workday_start=update.workday_start or DEFAULT_WORKDAY_START,
                    workday_end=update.workday_end or DEFAULT_WORKDAY_END,
                    planning_default_minutes=(
                        update.planning_default_minutes
                        if update.planning_default_minutes is not None
                        else DEFAULT_PLANNING_MINUTES
                    ),
                    meeting_prep_minutes=(
                        update.meeting_prep_minutes
                        if update.meeting_prep_minutes is not None
                        else DEFAULT_MEETING_PREP_MINUTES
                    ),
                    focus_shield=update.focus_shield if update.focus_shield is not None else True,
                    colors_by_tag=update.colors_by_tag or {},
                    created_at=now,
                    updated_at=now,
                )
                session.add(orm)

            # A partial update can still invert the window against stored values
            if orm.workday_start >= orm.workday_end:
                await session.rollback()
                raise ValidationError(
                    "workday_start must be earlier than workday_end",
                    details={"workday_start": orm.workday_start, "workday_end": orm.workday_end},
                )

            await session.commit()
            await session.refresh(orm)
            return self._orm_to_model(orm)
