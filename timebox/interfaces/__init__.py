"""Abstract interfaces for infrastructure abstraction."""

from timebox.interfaces.backlog_repository import IBacklogRepository
from timebox.interfaces.box_repository import BoxMutation, ITimeBoxRepository
from timebox.interfaces.schedule_settings_repository import IScheduleSettingsRepository

__all__ = [
    "BoxMutation",
    "IBacklogRepository",
    "IScheduleSettingsRepository",
    "ITimeBoxRepository",
]
