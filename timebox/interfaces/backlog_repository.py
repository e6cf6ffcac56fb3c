"""
Backlog repository interface.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Optional
from uuid import UUID

from timebox.models.backlog import BacklogItem, BacklogItemCreate, BacklogItemUpdate


class IBacklogRepository(ABC):
    """Abstract interface for backlog item persistence."""

    @abstractmethod
    async def create(self, user_id: str, item: BacklogItemCreate) -> BacklogItem:
        """Create a backlog item."""
        pass

    @abstractmethod
    async def get(self, user_id: str, item_id: UUID) -> Optional[BacklogItem]:
        """Get a backlog item by ID, or None."""
        pass

    @abstractmethod
    async def list(self, user_id: str, limit: int = 200, offset: int = 0) -> list[BacklogItem]:
        """List backlog items, oldest first."""
        pass

    @abstractmethod
    async def update(
        self, user_id: str, item_id: UUID, update: BacklogItemUpdate
    ) -> BacklogItem:
        """
        Update a backlog item.

        Raises:
            NotFoundError: Unknown item
        """
        pass

    @abstractmethod
    async def delete(self, user_id: str, item_id: UUID) -> bool:
        """Delete a backlog item. Returns False when it did not exist."""
        pass
