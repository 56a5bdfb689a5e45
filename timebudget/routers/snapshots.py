"""
Snapshots router.

POST /snapshots                 — create a snapshot for a week (409 if one exists)
GET  /snapshots                 — fetch a week's snapshot with its children
GET  /snapshots/check-changes   — has live data drifted from the snapshot?
POST /snapshots/recalculate     — rebuild a past, non-frozen snapshot
POST /snapshots/freeze          — pin a snapshot
"""
from __future__ import annotations

import json
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from timebudget.db.base import get_db
from timebudget.models.weekly_snapshot import (
    WeeklyRecurringEventSnapshot,
    WeeklySnapshot,
)
from timebudget.routers.deps import current_user_id, get_now
from timebudget.schemas.snapshots import (
    ChangeStatusResponse,
    CreateSnapshotRequest,
    GoalSnapshotOut,
    RecurringEventSnapshotOut,
    SnapshotResponse,
    WeekOffsetRequest,
    WeeklySnapshotOut,
)
from timebudget.services.snapshots import (
    SnapshotBundle,
    check_changes,
    create_snapshot,
    freeze_snapshot,
    get_snapshot,
    recalculate_snapshot,
)

router = APIRouter(prefix="/snapshots", tags=["snapshots"])


# ---------------------------------------------------------------------------
# Serialization helpers
# ---------------------------------------------------------------------------

def _iso(value: Optional[datetime]) -> str:
    return value.isoformat() if value else ""


def _parse_days(raw: Optional[str]) -> Optional[list[str]]:
    if not raw:
        return None
    try:
        return json.loads(raw)
    except (ValueError, TypeError):
        return None


def _snapshot_to_out(s: WeeklySnapshot) -> WeeklySnapshotOut:
    return WeeklySnapshotOut(
        id=s.id,
        user_id=s.user_id,
        week_start=_iso(s.week_start),
        week_end=_iso(s.week_end),
        total_available_hours=s.total_available_hours,
        total_allocated_hours=s.total_allocated_hours,
        total_completed_hours=s.total_completed_hours,
        total_scheduled_hours=s.total_scheduled_hours,
        free_time_hours=s.free_time_hours,
        is_frozen=s.is_frozen,
        snapshot_hash=s.snapshot_hash,
        created_at=_iso(s.created_at),
        updated_at=_iso(s.updated_at),
    )


def _event_to_out(e: WeeklyRecurringEventSnapshot) -> RecurringEventSnapshotOut:
    return RecurringEventSnapshotOut(
        id=e.id,
        recurring_event_id=e.recurring_event_id,
        goal_snapshot_id=e.goal_snapshot_id,
        title=e.title,
        description=e.description,
        start_time=e.start_time,
        duration=e.duration,
        frequency=e.frequency,
        interval=e.interval,
        days_of_week=_parse_days(e.days_of_week),
        color=e.color,
        is_active=e.is_active,
    )


def _bundle_to_response(b: SnapshotBundle) -> SnapshotResponse:
    return SnapshotResponse(
        snapshot=_snapshot_to_out(b.snapshot),
        goal_snapshots=[GoalSnapshotOut.model_validate(g) for g in b.goal_snapshots],
        recurring_event_snapshots=[_event_to_out(e) for e in b.recurring_event_snapshots],
    )


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------

@router.post(
    "",
    response_model=SnapshotResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create a weekly snapshot",
    responses={409: {"description": "A snapshot for that week already exists."}},
)
def create(
    body: CreateSnapshotRequest,
    user_id: int = Depends(current_user_id),
    db: Session = Depends(get_db),
    now: datetime = Depends(get_now),
):
    bundle = create_snapshot(db, user_id, body.week_offset, now, is_frozen=body.is_frozen)
    return _bundle_to_response(bundle)


@router.get(
    "",
    response_model=SnapshotResponse,
    summary="Get a week's snapshot",
    responses={404: {"description": "No snapshot for that week."}},
)
def read(
    week_offset: int = Query(default=-1, ge=-520, le=52),
    user_id: int = Depends(current_user_id),
    db: Session = Depends(get_db),
    now: datetime = Depends(get_now),
):
    return _bundle_to_response(get_snapshot(db, user_id, week_offset, now))


@router.get(
    "/check-changes",
    response_model=ChangeStatusResponse,
    summary="Compare a snapshot's fingerprint with the live data",
)
def changes(
    week_offset: int = Query(default=-1, ge=-520, le=52),
    user_id: int = Depends(current_user_id),
    db: Session = Depends(get_db),
    now: datetime = Depends(get_now),
):
    result = check_changes(db, user_id, week_offset, now)
    return ChangeStatusResponse(
        has_snapshot=result.has_snapshot,
        has_changes=result.has_changes,
        can_recalculate=result.can_recalculate,
        last_updated=_iso(result.last_updated) or None,
    )


@router.post(
    "/recalculate",
    response_model=SnapshotResponse,
    summary="Rebuild a past snapshot from the current data",
    responses={
        403: {"description": "Snapshot is frozen."},
        404: {"description": "No snapshot for that week."},
        422: {"description": "Week is not in the past."},
    },
)
def recalculate(
    body: WeekOffsetRequest,
    user_id: int = Depends(current_user_id),
    db: Session = Depends(get_db),
    now: datetime = Depends(get_now),
):
    return _bundle_to_response(recalculate_snapshot(db, user_id, body.week_offset, now))


@router.post(
    "/freeze",
    response_model=SnapshotResponse,
    summary="Pin a snapshot so it is never recalculated",
    responses={404: {"description": "No snapshot for that week."}},
)
def freeze(
    body: WeekOffsetRequest,
    user_id: int = Depends(current_user_id),
    db: Session = Depends(get_db),
    now: datetime = Depends(get_now),
):
    return _bundle_to_response(freeze_snapshot(db, user_id, body.week_offset, now))
