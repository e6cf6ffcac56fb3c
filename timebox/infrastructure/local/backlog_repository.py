"""
SQLite implementation of backlog repository.
"""

from __future__ import annotations

from typing import Optional
from uuid import UUID, uuid4

from sqlalchemy import and_, select

from timebox.core.exceptions import NotFoundError
from timebox.infrastructure.local.database import BacklogItemORM, get_session_factory
from timebox.interfaces.backlog_repository import IBacklogRepository
from timebox.models.backlog import BacklogItem, BacklogItemCreate, BacklogItemUpdate
from timebox.utils.datetime_utils import now_local


class SqliteBacklogRepository(IBacklogRepository):
    """SQLite implementation of backlog repository."""

    def __init__(self, session_factory=None, clock=None):
        self._session_factory = session_factory or get_session_factory()
        self._now = clock or now_local

    def _orm_to_model(self, orm: BacklogItemORM) -> BacklogItem:
        return BacklogItem(
            id=UUID(orm.id),
            user_id=orm.user_id,
            title=orm.title,
            estimate_minutes=orm.estimate_minutes,
            tags=orm.tags or [],
            notes=orm.notes,
            created_at=orm.created_at,
            updated_at=orm.updated_at,
        )

    async def _load(self, session, user_id: str, item_id: UUID) -> Optional[BacklogItemORM]:
        result = await session.execute(
            select(BacklogItemORM).where(
                and_(BacklogItemORM.id == str(item_id), BacklogItemORM.user_id == user_id)
            )
        )
        return result.scalar_one_or_none()

    async def create(self, user_id: str, item: BacklogItemCreate) -> BacklogItem:
        async with self._session_factory() as session:
            now = self._now()
            orm = BacklogItemORM(
                id=str(uuid4()),
                user_id=user_id,
                title=item.title,
                estimate_minutes=item.estimate_minutes,
                tags=item.tags,
                notes=item.notes,
                created_at=now,
                updated_at=now,
            )
            session.add(orm)
            await session.commit()
            await session.refresh(orm)
            return self._orm_to_model(orm)

    async def get(self, user_id: str, item_id: UUID) -> Optional[BacklogItem]:
        async with self._session_factory() as session:
            orm = await self._load(session, user_id, item_id)
            return self._orm_to_model(orm) if orm else None

    async def list(self, user_id: str, limit: int = 200, offset: int = 0) -> list[BacklogItem]:
        async with self._session_factory() as session:
            result = await session.execute(
                select(BacklogItemORM)
                .where(BacklogItemORM.user_id == user_id)
                .order_by(BacklogItemORM.created_at.asc())
                .limit(limit)
                .offset(offset)
            )
            return [self._orm_to_model(orm) for orm in result.scalars().all()]

    async def update(
        self, user_id: str, item_id: UUID, update: BacklogItemUpdate
    ) -> BacklogItem:
        async with self._session_factory() as session:
            orm = await self._load(session, user_id, item_id)
            if not orm:
                raise NotFoundError(f"Backlog item {item_id} not found")

            for field, value in update.model_dump(exclude_unset=True).items():
                if value is not None or field == "notes":
                    setattr(orm, field, value)
            orm.updated_at = self._now()

            await session.commit()
            await session.refresh(orm)
            return self._orm_to_model(orm)

    async def delete(self, user_id: str, item_id: UUID) -> bool:
        async with self._session_factory() as session:
            orm = await self._load(session, user_id, item_id)
            if not orm:
                return False
            await session.delete(orm)
            await session.commit()
            return True
