"""
Interval overlap predicates.

Intervals are half-open: [start, end). Boxes that only touch at an endpoint
do not overlap.
"""

from datetime import datetime
from typing import Iterable, Optional
from uuid import UUID

from timebox.models.box import TimeBox


def ranges_overlap(
    a_start: datetime, a_end: datetime, b_start: datetime, b_end: datetime
) -> bool:
    return a_start < b_end and a_end > b_start


def find_overlapping(
    candidate_start: datetime,
    candidate_end: datetime,
    boxes: Iterable[TimeBox],
    exclude_id: Optional[UUID] = None,
) -> list[TimeBox]:
    """Boxes (other than `exclude_id`) overlapping the candidate range."""
    return [
        box
        for box in boxes
        if box.id != exclude_id
        and ranges_overlap(candidate_start, candidate_end, box.start, box.end)
    ]


def has_overlap(
    candidate_start: datetime,
    candidate_end: datetime,
    boxes: Iterable[TimeBox],
    exclude_id: Optional[UUID] = None,
) -> bool:
    return any(
        box.id != exclude_id and ranges_overlap(candidate_start, candidate_end, box.start, box.end)
        for box in boxes
    )
