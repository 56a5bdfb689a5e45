"""
Export router.

GET /export/weekly   — Markdown summary of a week
"""
from __future__ import annotations

from datetime import datetime

from fastapi import APIRouter, Depends, Query
from fastapi.responses import PlainTextResponse
from sqlalchemy.orm import Session

from timebudget.db.base import get_db
from timebudget.routers.deps import current_user_id, get_now
from timebudget.services.weekly_report import export_weekly_markdown

router = APIRouter(prefix="/export", tags=["export"])


@router.get(
    "/weekly",
    response_class=PlainTextResponse,
    summary="Weekly report as Markdown",
)
def weekly(
    week_offset: int = Query(default=0, ge=-520, le=52),
    user_id: int = Depends(current_user_id),
    db: Session = Depends(get_db),
    now: datetime = Depends(get_now),
):
    """Returns "No data for this period." in the body when the week is empty."""
    text = export_weekly_markdown(db, user_id, week_offset, now)
    return PlainTextResponse(text, media_type="text/markdown; charset=utf-8")
