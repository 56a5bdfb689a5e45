"""
Cron router — weekly snapshot batch.

POST /cron/weekly-snapshots   — materialize last week for every user
GET  /cron/weekly-snapshots   — service description / health
"""
from __future__ import annotations

import hmac
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, Header
from loguru import logger
from sqlalchemy.orm import Session

from timebudget.core.config import settings
from timebudget.core.errors import CronNotConfiguredError, CronUnauthorizedError
from timebudget.db.base import get_db
from timebudget.routers.deps import get_now
from timebudget.schemas.cron import (
    BatchErrorOut,
    BatchResultsOut,
    CronBatchResponse,
    CronStatusResponse,
)
from timebudget.services.snapshots import run_weekly_cron

router = APIRouter(prefix="/cron", tags=["cron"])


def _verify_cron_secret(authorization: Optional[str]) -> None:
    if not settings.CRON_SECRET:
        raise CronNotConfiguredError()
    provided = (authorization or "").removeprefix("Bearer ").strip()
    if not hmac.compare_digest(provided.encode(), settings.CRON_SECRET.encode()):
        logger.warning("[CRON] Rejected weekly-snapshots call: bad bearer token")
        raise CronUnauthorizedError()


@router.post(
    "/weekly-snapshots",
    response_model=CronBatchResponse,
    summary="Create last week's snapshot for every user",
    responses={
        401: {"description": "Missing or wrong bearer token."},
        500: {"description": "CRON_SECRET not configured."},
    },
)
def weekly_snapshots(
    authorization: Optional[str] = Header(default=None),
    db: Session = Depends(get_db),
    now: datetime = Depends(get_now),
):
    """
    Intended to run every Monday shortly after midnight.

    Each user is processed independently: an existing snapshot or an empty
    goal list is a skip, a storage failure is recorded in `errors`, and the
    batch always finishes with a tally.
    """
    _verify_cron_secret(authorization)
    report = run_weekly_cron(db, now=now)
    return CronBatchResponse(
        success=True,
        week_start=report.week_start.isoformat(),
        week_end=report.week_end.isoformat(),
        results=BatchResultsOut(
            total=report.total,
            created=report.created,
            skipped=report.skipped,
            failed=report.failed,
            pending=report.pending,
            errors=[BatchErrorOut(**e) for e in report.errors],
        ),
    )


@router.get(
    "/weekly-snapshots",
    response_model=CronStatusResponse,
    summary="Weekly snapshot cron description",
)
def weekly_snapshots_status():
    return CronStatusResponse(
        service="Weekly Snapshots Cron",
        status="operational",
        schedule="Every Monday at 00:01",
        endpoint="POST /cron/weekly-snapshots",
        auth="Bearer token required (CRON_SECRET)",
    )
