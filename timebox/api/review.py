"""
Day review API endpoints.
"""

from datetime import date

from fastapi import APIRouter
from fastapi.responses import PlainTextResponse

from timebox.api.deps import CurrentUserId, Review
from timebox.api.errors import to_http_exception
from timebox.core.exceptions import TimeboxError
from timebox.models.review import DayReview

router = APIRouter()


@router.get("/{day}", response_model=DayReview)
async def summarize_day(day: date, user_id: CurrentUserId, review: Review):
    """Mark overdue boxes missed and summarize the day."""
    try:
        return await review.summarize_day(user_id, day)
    except TimeboxError as e:
        raise to_http_exception(e)


@router.get("/{day}/csv", response_class=PlainTextResponse)
async def export_csv(day: date, user_id: CurrentUserId, review: Review):
    content = await review.export_csv(user_id, day)
    return PlainTextResponse(
        content,
        media_type="text/csv; charset=utf-8",
        headers={"Content-Disposition": f'attachment; filename="review-{day.isoformat()}.csv"'},
    )


@router.get("/{day}/markdown", response_class=PlainTextResponse)
async def export_markdown(day: date, user_id: CurrentUserId, review: Review):
    content = await review.export_markdown(user_id, day)
    return PlainTextResponse(content, media_type="text/markdown; charset=utf-8")
