"""
Backlog service.

Manages unscheduled items and turns them into time boxes, one at a time or as
an urgency-ordered batch packed into a day.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional
from uuid import UUID

from timebox.core.exceptions import NoSlotAvailableError, NotFoundError
from timebox.core.logger import setup_logger
from timebox.interfaces.backlog_repository import IBacklogRepository
from timebox.models.backlog import (
    ArrangeResult,
    BacklogItem,
    BacklogItemCreate,
    BacklogItemUpdate,
)
from timebox.models.box import TimeBox, TimeBoxCreate
from timebox.models.enums import BoxStatus
from timebox.services.box_lifecycle import BoxLifecycleService
from timebox.services.urgency import urgency_rank, with_default_urgency_tag
from timebox.utils.datetime_utils import DayLike, add_minutes, as_date

logger = setup_logger(__name__)


class BacklogService:
    """Backlog CRUD plus promotion into the calendar."""

    def __init__(self, backlog_repo: IBacklogRepository, lifecycle: BoxLifecycleService):
        self.backlog_repo = backlog_repo
        self.lifecycle = lifecycle

    async def create_item(self, user_id: str, data: BacklogItemCreate) -> BacklogItem:
        return await self.backlog_repo.create(user_id, data)

    async def list_items(self, user_id: str, limit: int = 200, offset: int = 0) -> list[BacklogItem]:
        return await self.backlog_repo.list(user_id, limit=limit, offset=offset)

    async def get_item(self, user_id: str, item_id: UUID) -> BacklogItem:
        item = await self.backlog_repo.get(user_id, item_id)
        if not item:
            raise NotFoundError(f"Backlog item {item_id} not found")
        return item

    async def update_item(
        self, user_id: str, item_id: UUID, update: BacklogItemUpdate
    ) -> BacklogItem:
        return await self.backlog_repo.update(user_id, item_id, update)

    async def delete_item(self, user_id: str, item_id: UUID) -> None:
        if not await self.backlog_repo.delete(user_id, item_id):
            raise NotFoundError(f"Backlog item {item_id} not found")

    @staticmethod
    def _box_data(item: BacklogItem, start: datetime, tags: list[str]) -> TimeBoxCreate:
        return TimeBoxCreate(
            title=item.title,
            start=start,
            end=add_minutes(start, item.estimate_minutes),
            status=BoxStatus.PLANNED,
            tags=tags,
            notes=item.notes,
            is_plan_session=False,
        )

    async def promote_to_box(
        self,
        user_id: str,
        item_id: UUID,
        day: DayLike,
        start: Optional[datetime] = None,
    ) -> TimeBox:
        """
        Copy a backlog item into a planned box.

        With an explicit `start` the box is placed there and rejected if it
        overlaps another box; otherwise it goes to the first free slot of
        `day`. The backlog item is kept.

        Raises:
            NotFoundError: Unknown item
            OverlapConflictError: The explicit start collides with a box
            NoSlotAvailableError: No room left on the day
        """
        item = await self.get_item(user_id, item_id)

        if start is None:
            slot = await self.lifecycle.find_next_free_slot(user_id, day, item.estimate_minutes)
            if slot is None:
                logger.warning("No slot on %s for backlog item %s", as_date(day), item_id)
                raise NoSlotAvailableError(
                    f"No free {item.estimate_minutes}-minute slot on {as_date(day)}",
                    duration_minutes=item.estimate_minutes,
                )
            start = slot.start
            check_overlap = False
        else:
            check_overlap = True

        box = await self.lifecycle.create_box(
            user_id, self._box_data(item, start, list(item.tags)), check_overlap=check_overlap
        )
        logger.info("Promoted backlog item %s to box %s", item_id, box.id)
        return box

    async def arrange_for_day(
        self, user_id: str, item_ids: list[UUID], day: DayLike
    ) -> ArrangeResult:
        """
        Pack the selected items into `day`, most urgent first.

        Each item goes to the first free slot at or after the end of the
        previously placed one, starting at the workday start. Items without
        an urgency tag get `#important`. Items that no longer fit are skipped.

        Raises:
            NotFoundError: Any id is unknown (nothing is created)
        """
        items = [await self.get_item(user_id, item_id) for item_id in item_ids]
        # sorted() is stable: equal urgency keeps the selection order
        items = sorted(items, key=lambda item: urgency_rank(item.tags), reverse=True)

        anchor, _ = await self.lifecycle.slot_finder.workday_window(user_id, day)
        result = ArrangeResult()
        for item in items:
            slot = await self.lifecycle.find_next_free_slot(
                user_id, day, item.estimate_minutes, from_time=anchor
            )
            if slot is None:
                result.skipped_item_ids.append(item.id)
                continue
            box = await self.lifecycle.create_box(
                user_id, self._box_data(item, slot.start, with_default_urgency_tag(item.tags))
            )
            result.created.append(box)
            anchor = slot.end

        logger.info(
            "Arranged %d backlog items on %s for user %s (%d skipped)",
            len(result.created),
            as_date(day),
            user_id,
            len(result.skipped_item_ids),
        )
        return result
