"""
Time box repository interface.

Defines the contract for time box persistence. Every mutation is written
together with its activity log entry in a single transaction.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Literal, Optional
from uuid import UUID

from timebox.models.box import ActivityLogEntry, TimeBox
from timebox.models.enums import BoxStatus, LogEvent

MutationKind = Literal["insert", "update", "delete"]


@dataclass
class BoxMutation:
    """
    One box change plus the log entry documenting it.

    - insert: `values` holds every column of the new box (including `id`).
    - update: `values` holds the changed columns only.
    - delete: `values` is ignored.

    When `exclusive_active` is set, the repository fails the whole unit with a
    ConflictError if, at commit time, some other box of the user is active.
    """

    kind: MutationKind
    box_id: UUID
    event: LogEvent
    at: datetime
    values: dict[str, Any] = field(default_factory=dict)
    payload: dict[str, Any] = field(default_factory=dict)
    exclusive_active: bool = False


class ITimeBoxRepository(ABC):
    """Abstract interface for time box persistence."""

    @abstractmethod
    async def apply(self, user_id: str, mutations: list[BoxMutation]) -> list[TimeBox]:
        """
        Apply mutations and their log entries atomically.

        Args:
            user_id: Owner user ID
            mutations: Changes in application order

        Returns:
            The resulting boxes for insert/update mutations, in order

        Raises:
            NotFoundError: An update/delete targets an unknown box
            ConflictError: An exclusive_active guard failed
            InfrastructureError: The transaction could not be committed
        """
        pass

    @abstractmethod
    async def get(self, user_id: str, box_id: UUID) -> Optional[TimeBox]:
        """Get a box by ID, or None."""
        pass

    @abstractmethod
    async def list_by_day_range(
        self, user_id: str, start: datetime, end: datetime
    ) -> list[TimeBox]:
        """List boxes whose start falls in [start, end], ordered by start."""
        pass

    @abstractmethod
    async def list_by_status(self, user_id: str, status: BoxStatus) -> list[TimeBox]:
        """List boxes in a status, ordered by start."""
        pass

    @abstractmethod
    async def get_active(self, user_id: str) -> Optional[TimeBox]:
        """Get the active box, if any."""
        pass

    @abstractmethod
    async def list_activity(
        self, user_id: str, box_id: Optional[UUID] = None, limit: int = 200
    ) -> list[ActivityLogEntry]:
        """List log entries, oldest first, optionally for one box."""
        pass

    # Convenience wrappers around apply() for single-box changes.

    async def create(
        self,
        user_id: str,
        box_id: UUID,
        values: dict[str, Any],
        at: datetime,
        payload: Optional[dict[str, Any]] = None,
        exclusive_active: bool = False,
    ) -> TimeBox:
        result = await self.apply(
            user_id,
            [
                BoxMutation(
                    kind="insert",
                    box_id=box_id,
                    event=LogEvent.CREATE,
                    at=at,
                    values=values,
                    payload=payload or {},
                    exclusive_active=exclusive_active,
                )
            ],
        )
        return result[0]

    async def update(
        self,
        user_id: str,
        box_id: UUID,
        values: dict[str, Any],
        event: LogEvent,
        at: datetime,
        payload: Optional[dict[str, Any]] = None,
        exclusive_active: bool = False,
    ) -> TimeBox:
        result = await self.apply(
            user_id,
            [
                BoxMutation(
                    kind="update",
                    box_id=box_id,
                    event=event,
                    at=at,
                    values=values,
                    payload=payload or {},
                    exclusive_active=exclusive_active,
                )
            ],
        )
        return result[0]

    async def delete(
        self,
        user_id: str,
        box_id: UUID,
        at: datetime,
        payload: Optional[dict[str, Any]] = None,
    ) -> None:
        await self.apply(
            user_id,
            [
                BoxMutation(
                    kind="delete",
                    box_id=box_id,
                    event=LogEvent.DELETE,
                    at=at,
                    payload=payload or {},
                )
            ],
        )
