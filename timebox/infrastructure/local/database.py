"""
SQLite database configuration and ORM models.

This module defines the SQLAlchemy ORM models and database initialization.
Timestamps are naive local wall-clock datetimes.
"""

from datetime import datetime
from uuid import uuid4

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    DateTime,
    Integer,
    String,
    Text,
)
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine
from sqlalchemy.orm import DeclarativeBase, sessionmaker

from timebox.core.config import get_settings


class Base(DeclarativeBase):
    """SQLAlchemy declarative base."""

    pass


# ===========================================
# ORM Models
# ===========================================


class TimeBoxORM(Base):
    """Time box ORM model."""

    __tablename__ = "time_boxes"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid4()))
    user_id = Column(String(255), nullable=False, index=True)
    title = Column(String(500), nullable=False)
    start = Column(DateTime, nullable=False, index=True)
    end = Column(DateTime, nullable=False)
    status = Column(String(20), default="planned", index=True)
    tags = Column(JSON, nullable=True, default=list)
    notes = Column(Text, nullable=True)
    color = Column(String(32), nullable=True)
    energy = Column(String(10), nullable=True)
    location = Column(String(500), nullable=True)
    links = Column(JSON, nullable=True)
    is_plan_session = Column(Boolean, default=False, index=True)
    created_at = Column(DateTime, default=datetime.now)
    updated_at = Column(DateTime, default=datetime.now)


class ActivityLogORM(Base):
    """Append-only activity log ORM model. Rows outlive their box."""

    __tablename__ = "activity_logs"

    seq = Column(Integer, primary_key=True, autoincrement=True)
    id = Column(String(36), unique=True, nullable=False, default=lambda: str(uuid4()))
    user_id = Column(String(255), nullable=False, index=True)
    box_id = Column(String(36), nullable=False, index=True)
    event = Column(String(20), nullable=False, index=True)
    payload = Column(JSON, nullable=True)
    created_at = Column(DateTime, default=datetime.now, index=True)


class BacklogItemORM(Base):
    """Backlog item ORM model."""

    __tablename__ = "backlog_items"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid4()))
    user_id = Column(String(255), nullable=False, index=True)
    title = Column(String(500), nullable=False)
    estimate_minutes = Column(Integer, default=30)
    tags = Column(JSON, nullable=True, default=list)
    notes = Column(Text, nullable=True)
    created_at = Column(DateTime, default=datetime.now)
    updated_at = Column(DateTime, default=datetime.now)


class ScheduleSettingsORM(Base):
    """Per-user schedule settings ORM model."""

    __tablename__ = "schedule_settings"

    user_id = Column(String(255), primary_key=True)
    workday_start = Column(String(5), nullable=False, default="09:00")
    workday_end = Column(String(5), nullable=False, default="18:00")
    planning_default_minutes = Column(Integer, nullable=False, default=15)
    meeting_prep_minutes = Column(Integer, nullable=False, default=15)
    focus_shield = Column(Boolean, nullable=False, default=True)
    colors_by_tag = Column(JSON, nullable=True, default=dict)
    created_at = Column(DateTime, default=datetime.now)
    updated_at = Column(DateTime, default=datetime.now)


# ===========================================
# Database Session Management
# ===========================================


def get_engine():
    """Get async engine instance."""
    settings = get_settings()
    return create_async_engine(settings.DATABASE_URL, echo=settings.DATABASE_ECHO)


def get_session_factory(engine=None):
    """Get async session factory."""
    engine = engine or get_engine()
    return sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


async def init_db(engine=None):
    """Initialize database tables."""
    engine = engine or get_engine()
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

