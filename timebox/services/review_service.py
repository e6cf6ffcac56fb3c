"""
Day review service.

Summarizes how a day went, bulk-reschedules its missed boxes and renders the
day as CSV or Markdown.
"""

from __future__ import annotations

import csv
import io
from typing import Iterable

from timebox.core.exceptions import BusinessLogicError
from timebox.core.logger import setup_logger
from timebox.models.box import SnoozeResult, TimeBox
from timebox.models.enums import BoxStatus
from timebox.models.review import DayReview, StatusTotals
from timebox.services.box_lifecycle import BoxLifecycleService
from timebox.utils.datetime_utils import DayLike, as_date

logger = setup_logger(__name__)

CSV_HEADER = ["title", "status", "start", "end", "minutes", "date"]

# Markdown sections in display order
MARKDOWN_SECTIONS = [
    ("Done", BoxStatus.DONE),
    ("Missed", BoxStatus.MISSED),
    ("Planned", BoxStatus.PLANNED),
]


def _hhmm(box_time) -> str:
    return box_time.strftime("%H:%M")


def _totals(boxes: Iterable[TimeBox]) -> StatusTotals:
    boxes = list(boxes)
    return StatusTotals(count=len(boxes), minutes=sum(box.duration_minutes for box in boxes))


class ReviewService:
    """End-of-day review built on the lifecycle service."""

    def __init__(self, lifecycle: BoxLifecycleService):
        self.lifecycle = lifecycle

    async def summarize_day(self, user_id: str, day: DayLike) -> DayReview:
        """
        Mark overdue boxes missed, then total the day per status.

        Efficiency is done minutes over all scheduled minutes, as a rounded
        percentage (0 for an empty day).
        """
        marked = await self.lifecycle.mark_missed_for_day(user_id, day)
        boxes = await self.lifecycle.get_boxes_for_day(user_id, day)

        by_status = {
            status: _totals(box for box in boxes if box.status == status)
            for status in BoxStatus
        }
        scheduled = sum(totals.minutes for totals in by_status.values())
        done_minutes = by_status[BoxStatus.DONE].minutes
        efficiency = round(done_minutes * 100 / scheduled) if scheduled > 0 else 0

        return DayReview(
            day=as_date(day),
            marked_missed=marked,
            planned=by_status[BoxStatus.PLANNED],
            active=by_status[BoxStatus.ACTIVE],
            done=by_status[BoxStatus.DONE],
            missed=by_status[BoxStatus.MISSED],
            scheduled_minutes=scheduled,
            efficiency_percent=efficiency,
            boxes=boxes,
        )

    async def snooze_missed(self, user_id: str, day: DayLike) -> SnoozeResult:
        """
        Shift every missed box of `day` to its next free slot.

        A box that cannot be moved is reported as failed; the rest still move.
        """
        result = SnoozeResult()
        for box in await self.lifecycle.get_boxes_for_day(user_id, day):
            if box.status != BoxStatus.MISSED:
                continue
            try:
                await self.lifecycle.shift_box(user_id, box.id)
            except BusinessLogicError as e:
                logger.warning("Could not snooze missed box %s: %s", box.id, e.message)
                result.failed.append(box.id)
            else:
                result.shifted.append(box.id)

        logger.info(
            "Snoozed %d missed boxes on %s (%d failed)",
            len(result.shifted),
            as_date(day),
            len(result.failed),
        )
        return result

    async def export_csv(self, user_id: str, day: DayLike) -> str:
        boxes = await self.lifecycle.get_boxes_for_day(user_id, day)
        day_str = as_date(day).isoformat()

        buffer = io.StringIO()
        writer = csv.writer(buffer, lineterminator="\n")
        writer.writerow(CSV_HEADER)
        for box in boxes:
            writer.writerow(
                [
                    box.title,
                    box.status.value,
                    _hhmm(box.start),
                    _hhmm(box.end),
                    box.duration_minutes,
                    day_str,
                ]
            )
        return buffer.getvalue()

    async def export_markdown(self, user_id: str, day: DayLike) -> str:
        boxes = await self.lifecycle.get_boxes_for_day(user_id, day)

        lines = [f"# Review ({as_date(day).isoformat()})", ""]
        for heading, status in MARKDOWN_SECTIONS:
            lines.append(f"## {heading}")
            section = [box for box in boxes if box.status == status]
            if not section:
                lines.append("- (none)")
            for box in section:
                lines.append(
                    f"- {box.title} ({_hhmm(box.start)} - {_hhmm(box.end)}, "
                    f"{box.duration_minutes} min)"
                )
            lines.append("")
        return "\n".join(lines)
