"""
Shared fixtures: in-memory database, repositories, services and a clock
that tests can move.
"""

from datetime import datetime, timedelta

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from timebox.infrastructure.local.backlog_repository import SqliteBacklogRepository
from timebox.infrastructure.local.box_repository import SqliteTimeBoxRepository
from timebox.infrastructure.local.database import Base
from timebox.infrastructure.local.schedule_settings_repository import (
    SqliteScheduleSettingsRepository,
)
from timebox.services.backlog_service import BacklogService
from timebox.services.box_lifecycle import BoxLifecycleService
from timebox.services.review_service import ReviewService
from timebox.services.slot_finder import SlotFinder


class FakeClock:
    """Callable clock pinned to a settable time."""

    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def set(self, now: datetime) -> None:
        self.now = now

    def advance(self, minutes: int) -> None:
        self.now = self.now + timedelta(minutes=minutes)


@pytest.fixture
def test_user_id():
    return "test_user"


@pytest.fixture
def clock():
    """Monday 2025-03-10 08:00 unless a test moves it."""
    return FakeClock(datetime(2025, 3, 10, 8, 0))


@pytest.fixture
async def engine():
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
def box_repo(session_factory):
    return SqliteTimeBoxRepository(session_factory=session_factory)


@pytest.fixture
def settings_repo(session_factory, clock):
    return SqliteScheduleSettingsRepository(session_factory=session_factory, clock=clock)


@pytest.fixture
def backlog_repo(session_factory, clock):
    return SqliteBacklogRepository(session_factory=session_factory, clock=clock)


@pytest.fixture
def slot_finder(box_repo, settings_repo):
    return SlotFinder(box_repo, settings_repo, fallback_days=7)


@pytest.fixture
def lifecycle(box_repo, settings_repo, slot_finder, clock):
    return BoxLifecycleService(
        box_repo, settings_repo, slot_finder=slot_finder, clock=clock, grace_minutes=5
    )


@pytest.fixture
def backlog_service(backlog_repo, lifecycle):
    return BacklogService(backlog_repo, lifecycle)


@pytest.fixture
def review_service(lifecycle):
    return ReviewService(lifecycle)
