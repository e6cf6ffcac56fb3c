"""
Dependency injection for API endpoints.

Repositories are process-wide singletons; services are cheap wrappers built
per request on top of them.
"""

from functools import lru_cache
from typing import Annotated, Optional

from fastapi import Depends, Header

from timebox.core.config import get_settings
from timebox.interfaces.backlog_repository import IBacklogRepository
from timebox.interfaces.box_repository import ITimeBoxRepository
from timebox.interfaces.schedule_settings_repository import IScheduleSettingsRepository
from timebox.services.backlog_service import BacklogService
from timebox.services.box_lifecycle import BoxLifecycleService
from timebox.services.review_service import ReviewService
from timebox.services.slot_finder import SlotFinder


# ===========================================
# Repository Dependencies
# ===========================================


@lru_cache()
def get_box_repository() -> ITimeBoxRepository:
    """Get time box repository instance."""
    from timebox.infrastructure.local.box_repository import SqliteTimeBoxRepository
    return SqliteTimeBoxRepository()


@lru_cache()
def get_backlog_repository() -> IBacklogRepository:
    """Get backlog repository instance."""
    from timebox.infrastructure.local.backlog_repository import SqliteBacklogRepository
    return SqliteBacklogRepository()


@lru_cache()
def get_schedule_settings_repository() -> IScheduleSettingsRepository:
    """Get schedule settings repository instance."""
    from timebox.infrastructure.local.schedule_settings_repository import (
        SqliteScheduleSettingsRepository,
    )
    return SqliteScheduleSettingsRepository()


BoxRepo = Annotated[ITimeBoxRepository, Depends(get_box_repository)]
BacklogRepo = Annotated[IBacklogRepository, Depends(get_backlog_repository)]
ScheduleSettingsRepo = Annotated[
    IScheduleSettingsRepository, Depends(get_schedule_settings_repository)
]


# ===========================================
# Service Dependencies
# ===========================================


def get_lifecycle_service(
    box_repo: BoxRepo,
    settings_repo: ScheduleSettingsRepo,
) -> BoxLifecycleService:
    return BoxLifecycleService(box_repo, settings_repo, SlotFinder(box_repo, settings_repo))


Lifecycle = Annotated[BoxLifecycleService, Depends(get_lifecycle_service)]


def get_backlog_service(backlog_repo: BacklogRepo, lifecycle: Lifecycle) -> BacklogService:
    return BacklogService(backlog_repo, lifecycle)


def get_review_service(lifecycle: Lifecycle) -> ReviewService:
    return ReviewService(lifecycle)


Backlog = Annotated[BacklogService, Depends(get_backlog_service)]
Review = Annotated[ReviewService, Depends(get_review_service)]


# ===========================================
# Current User
# ===========================================


async def get_current_user_id(
    x_user_id: Annotated[Optional[str], Header()] = None,
) -> str:
    """
    Resolve the acting user.

    The app is single-user; the X-User-Id header only separates data sets
    (tests, multiple local profiles).
    """
    if x_user_id and x_user_id.strip():
        return x_user_id.strip()
    return get_settings().DEFAULT_USER_ID


CurrentUserId = Annotated[str, Depends(get_current_user_id)]
