"""
Schedule settings repository interface.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Optional

from timebox.models.schedule_settings import ScheduleSettings, ScheduleSettingsUpdate


class IScheduleSettingsRepository(ABC):
    @abstractmethod
    async def get(self, user_id: str) -> Optional[ScheduleSettings]:
        pass

    @abstractmethod
    async def upsert(self, user_id: str, update: ScheduleSettingsUpdate) -> ScheduleSettings:
        pass

    async def get_or_default(self, user_id: str) -> ScheduleSettings:
        """Read settings, persisting the defaults on first access."""
        settings = await self.get(user_id)
        if settings:
            return settings
        return await self.upsert(user_id, ScheduleSettingsUpdate())
