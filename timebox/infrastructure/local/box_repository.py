"""
SQLite implementation of the time box repository.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic_core import to_jsonable_python
from sqlalchemy import and_, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from timebox.core.exceptions import ConflictError, InfrastructureError, NotFoundError
from timebox.core.logger import setup_logger
from timebox.infrastructure.local.database import ActivityLogORM, TimeBoxORM, get_session_factory
from timebox.interfaces.box_repository import BoxMutation, ITimeBoxRepository
from timebox.models.box import ActivityLogEntry, TimeBox
from timebox.models.enums import BoxStatus, LogEvent

logger = setup_logger(__name__)


class SqliteTimeBoxRepository(ITimeBoxRepository):
    """SQLite implementation of time box repository."""

    def __init__(self, session_factory=None):
        """
        Initialize repository.

        Args:
            session_factory: Optional session factory (for testing)
        """
        self._session_factory = session_factory or get_session_factory()

    def _orm_to_model(self, orm: TimeBoxORM) -> TimeBox:
        """Convert ORM object to Pydantic model."""
        return TimeBox(
            id=UUID(orm.id),
            user_id=orm.user_id,
            title=orm.title,
            start=orm.start,
            end=orm.end,
            status=BoxStatus(orm.status),
            tags=orm.tags or [],
            notes=orm.notes,
            color=orm.color,
            energy=orm.energy,
            location=orm.location,
            links=orm.links,
            is_plan_session=bool(orm.is_plan_session),
            created_at=orm.created_at,
            updated_at=orm.updated_at,
        )

    def _log_to_model(self, orm: ActivityLogORM) -> ActivityLogEntry:
        return ActivityLogEntry(
            id=UUID(orm.id),
            box_id=UUID(orm.box_id),
            event=LogEvent(orm.event),
            payload=orm.payload or {},
            created_at=orm.created_at,
        )

    @staticmethod
    def _to_columns(values: dict[str, Any]) -> dict[str, Any]:
        columns = {}
        for field, value in values.items():
            if hasattr(value, "value"):  # Enum
                value = value.value
            columns[field] = value
        return columns

    def _build_log(self, user_id: str, mutation: BoxMutation) -> ActivityLogORM:
        return ActivityLogORM(
            id=str(uuid4()),
            user_id=user_id,
            box_id=str(mutation.box_id),
            event=mutation.event.value,
            payload=to_jsonable_python(mutation.payload),
            created_at=mutation.at,
        )

    async def _load(self, session: AsyncSession, user_id: str, box_id: UUID) -> Optional[TimeBoxORM]:
        result = await session.execute(
            select(TimeBoxORM).where(
                and_(TimeBoxORM.id == str(box_id), TimeBoxORM.user_id == user_id)
            )
        )
        return result.scalar_one_or_none()

    async def _ensure_no_other_active(
        self, session: AsyncSession, user_id: str, box_id: UUID
    ) -> None:
        result = await session.execute(
            select(TimeBoxORM.id).where(
                and_(
                    TimeBoxORM.user_id == user_id,
                    TimeBoxORM.status == BoxStatus.ACTIVE.value,
                    TimeBoxORM.id != str(box_id),
                )
            )
        )
        other = result.scalars().first()
        if other is not None:
            raise ConflictError(
                "Another box is already active; finish it before starting a new one",
                details={"active_box_id": other},
            )

    async def _apply_one(
        self, session: AsyncSession, user_id: str, mutation: BoxMutation
    ) -> Optional[TimeBoxORM]:
        if mutation.kind == "insert":
            columns = self._to_columns(mutation.values)
            columns.pop("id", None)
            columns.setdefault("created_at", mutation.at)
            columns.setdefault("updated_at", mutation.at)
            orm = TimeBoxORM(id=str(mutation.box_id), user_id=user_id, **columns)
            session.add(orm)
        else:
            orm = await self._load(session, user_id, mutation.box_id)
            if not orm:
                raise NotFoundError(f"Time box {mutation.box_id} not found")
            if mutation.kind == "delete":
                await session.delete(orm)
                orm = None
            else:
                for field, value in self._to_columns(mutation.values).items():
                    setattr(orm, field, value)
                orm.updated_at = mutation.at

        session.add(self._build_log(user_id, mutation))
        await session.flush()

        if mutation.exclusive_active:
            await self._ensure_no_other_active(session, user_id, mutation.box_id)
        return orm

    async def apply(self, user_id: str, mutations: list[BoxMutation]) -> list[TimeBox]:
        """Apply mutations and their log entries in one transaction."""
        touched: list[TimeBoxORM] = []
        try:
            async with self._session_factory() as session:
                async with session.begin():
                    for mutation in mutations:
                        orm = await self._apply_one(session, user_id, mutation)
                        if orm is not None:
                            touched.append(orm)
        except SQLAlchemyError as exc:
            logger.exception("Box transaction rolled back for user %s", user_id)
            raise InfrastructureError("Failed to persist time box changes") from exc
        return [self._orm_to_model(orm) for orm in touched]

    async def get(self, user_id: str, box_id: UUID) -> Optional[TimeBox]:
        """Get a box by ID."""
        async with self._session_factory() as session:
            orm = await self._load(session, user_id, box_id)
            return self._orm_to_model(orm) if orm else None

    async def list_by_day_range(
        self, user_id: str, start: datetime, end: datetime
    ) -> list[TimeBox]:
        """List boxes whose start lies within [start, end]."""
        async with self._session_factory() as session:
            result = await session.execute(
                select(TimeBoxORM)
                .where(
                    and_(
                        TimeBoxORM.user_id == user_id,
                        TimeBoxORM.start >= start,
                        TimeBoxORM.start <= end,
                    )
                )
                .order_by(TimeBoxORM.start.asc())
            )
            return [self._orm_to_model(orm) for orm in result.scalars().all()]

    async def list_by_status(self, user_id: str, status: BoxStatus) -> list[TimeBox]:
        async with self._session_factory() as session:
            result = await session.execute(
                select(TimeBoxORM)
                .where(
                    and_(TimeBoxORM.user_id == user_id, TimeBoxORM.status == status.value)
                )
                .order_by(TimeBoxORM.start.asc())
            )
            return [self._orm_to_model(orm) for orm in result.scalars().all()]

    async def get_active(self, user_id: str) -> Optional[TimeBox]:
        boxes = await self.list_by_status(user_id, BoxStatus.ACTIVE)
        return boxes[0] if boxes else None

    async def list_activity(
        self, user_id: str, box_id: Optional[UUID] = None, limit: int = 200
    ) -> list[ActivityLogEntry]:
        async with self._session_factory() as session:
            query = select(ActivityLogORM).where(ActivityLogORM.user_id == user_id)
            if box_id is not None:
                query = query.where(ActivityLogORM.box_id == str(box_id))
            result = await session.execute(query.order_by(ActivityLogORM.seq.asc()).limit(limit))
            return [self._log_to_model(orm) for orm in result.scalars().all()]
