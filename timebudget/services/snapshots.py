"""
Snapshot service: the per-user operations behind /snapshots and the
all-users batch behind /cron/weekly-snapshots.

Public API
----------
run_weekly_cron(db, now, week_offset)                  -> BatchReport
create_snapshot(db, user_id, week_offset, now, is_frozen) -> SnapshotBundle
get_snapshot(db, user_id, week_offset, now)            -> SnapshotBundle
check_changes(db, user_id, week_offset, now)           -> ChangeStatus
recalculate_snapshot(db, user_id, week_offset, now)    -> SnapshotBundle
freeze_snapshot(db, user_id, week_offset, now)         -> SnapshotBundle
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from loguru import logger
from sqlalchemy.orm import Session

from timebudget.core.config import settings
from timebudget.core.errors import (
    SnapshotAlreadyExistsError,
    SnapshotFrozenError,
    SnapshotNotFoundError,
    SnapshotNotRecalculableError,
)
from timebudget.models.user import User
from timebudget.models.weekly_snapshot import (
    WeeklyGoalSnapshot,
    WeeklyRecurringEventSnapshot,
    WeeklySnapshot,
)
from timebudget.services.fingerprint import fingerprint
from timebudget.services.snapshot_materializer import (
    BatchReport,
    SnapshotPlan,
    UserRef,
    build_snapshot_plan,
    materialize_week,
    write_children,
    write_snapshot,
)
from timebudget.services.snapshot_store import SqlSnapshotStore, find_snapshot, require_user
from timebudget.services.week_window import week_bounds


# ---------------------------------------------------------------------------
# Result types
# ---------------------------------------------------------------------------

@dataclass
class SnapshotBundle:
    snapshot: WeeklySnapshot
    goal_snapshots: list[WeeklyGoalSnapshot]
    recurring_event_snapshots: list[WeeklyRecurringEventSnapshot]


@dataclass
class ChangeStatus:
    has_snapshot: bool
    has_changes: bool
    can_recalculate: bool
    last_updated: Optional[datetime] = None


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _require_snapshot(db: Session, user_id: int, week_offset: int, now: datetime) -> WeeklySnapshot:
    week = week_bounds(now, week_offset)
    snapshot = find_snapshot(db, user_id, week.start)
    if snapshot is None:
        raise SnapshotNotFoundError(week.start)
    return snapshot


def _bundle(db: Session, snapshot: WeeklySnapshot) -> SnapshotBundle:
    goals = (
        db.query(WeeklyGoalSnapshot)
        .filter(WeeklyGoalSnapshot.snapshot_id == snapshot.id)
        .order_by(WeeklyGoalSnapshot.id)
        .all()
    )
    events = (
        db.query(WeeklyRecurringEventSnapshot)
        .filter(WeeklyRecurringEventSnapshot.snapshot_id == snapshot.id)
        .order_by(WeeklyRecurringEventSnapshot.id)
        .all()
    )
    return SnapshotBundle(snapshot=snapshot, goal_snapshots=goals, recurring_event_snapshots=events)


def _plan_for_user(
    store: SqlSnapshotStore,
    user_id: int,
    week_offset: int,
    now: datetime,
    is_frozen: bool = False,
) -> SnapshotPlan:
    return build_snapshot_plan(
        user_id=user_id,
        goals=store.load_goals(user_id),
        definitions=store.load_recurring_definitions(user_id),
        one_off_events=store.load_one_off_events(user_id),
        total_available_hours=store.load_available_hours(user_id),
        week_offset=week_offset,
        now=now,
        is_frozen=is_frozen,
    )


# ---------------------------------------------------------------------------
# Public — batch
# ---------------------------------------------------------------------------

def run_weekly_cron(db: Session, now: datetime, week_offset: int = -1) -> BatchReport:
    """Materialize the previous week (by default) for every user."""
    users = [UserRef(id=u.id, email=u.email) for u in db.query(User).order_by(User.id).all()]
    return materialize_week(
        SqlSnapshotStore(db),
        week_offset=week_offset,
        users=users,
        now=now,
        max_workers=settings.SNAPSHOT_WRITE_WORKERS,
        budget_seconds=settings.SNAPSHOT_BATCH_BUDGET_SECONDS or None,
    )


# ---------------------------------------------------------------------------
# Public — single user
# ---------------------------------------------------------------------------

def create_snapshot(
    db: Session,
    user_id: int,
    week_offset: int,
    now: datetime,
    is_frozen: bool = False,
) -> SnapshotBundle:
    """Manual snapshot. Unlike the cron path, a user without goals still gets one."""
    require_user(db, user_id)
    week = week_bounds(now, week_offset)
    existing = find_snapshot(db, user_id, week.start)
    if existing is not None:
        raise SnapshotAlreadyExistsError(week.start, existing.id)

    store = SqlSnapshotStore(db)
    with store.transaction():
        plan = _plan_for_user(store, user_id, week_offset, now, is_frozen=is_frozen)
        snapshot_id = write_snapshot(store, plan, settings.SNAPSHOT_WRITE_WORKERS)

    logger.info(f"[SNAPSHOT] user_id={user_id}: manual snapshot {snapshot_id} for {week.start_date}")
    return _bundle(db, db.get(WeeklySnapshot, snapshot_id))


def get_snapshot(db: Session, user_id: int, week_offset: int, now: datetime) -> SnapshotBundle:
    require_user(db, user_id)
    return _bundle(db, _require_snapshot(db, user_id, week_offset, now))


def check_changes(db: Session, user_id: int, week_offset: int, now: datetime) -> ChangeStatus:
    """Compare the stored fingerprint against the current goal / event state."""
    require_user(db, user_id)
    week = week_bounds(now, week_offset)
    snapshot = find_snapshot(db, user_id, week.start)
    if snapshot is None:
        return ChangeStatus(has_snapshot=False, has_changes=False, can_recalculate=False)

    store = SqlSnapshotStore(db)
    current = fingerprint(store.load_goals(user_id), store.load_recurring_definitions(user_id))
    return ChangeStatus(
        has_snapshot=True,
        has_changes=snapshot.snapshot_hash != current,
        can_recalculate=week_offset < 0 and not snapshot.is_frozen,
        last_updated=snapshot.updated_at,
    )


def recalculate_snapshot(
    db: Session, user_id: int, week_offset: int, now: datetime
) -> SnapshotBundle:
    """Rebuild a past, non-frozen snapshot in place from the current data."""
    require_user(db, user_id)
    if week_offset >= 0:
        raise SnapshotNotRecalculableError(week_offset)
    snapshot = _require_snapshot(db, user_id, week_offset, now)
    if snapshot.is_frozen:
        raise SnapshotFrozenError(snapshot.id)

    store = SqlSnapshotStore(db)
    with store.transaction():
        plan = _plan_for_user(store, user_id, week_offset, now)
        snapshot.total_available_hours = plan.parent.total_available_hours
        snapshot.total_allocated_hours = plan.parent.total_allocated_hours
        snapshot.total_completed_hours = plan.parent.total_completed_hours
        snapshot.total_scheduled_hours = plan.parent.total_scheduled_hours
        snapshot.free_time_hours = plan.parent.free_time_hours
        snapshot.snapshot_hash = plan.parent.fingerprint

        # Events reference goal snapshots, so they go first.
        db.query(WeeklyRecurringEventSnapshot).filter(
            WeeklyRecurringEventSnapshot.snapshot_id == snapshot.id
        ).delete(synchronize_session=False)
        db.query(WeeklyGoalSnapshot).filter(
            WeeklyGoalSnapshot.snapshot_id == snapshot.id
        ).delete(synchronize_session=False)
        db.flush()

        write_children(store, snapshot.id, plan, settings.SNAPSHOT_WRITE_WORKERS)

    logger.info(f"[SNAPSHOT] user_id={user_id}: snapshot {snapshot.id} recalculated")
    db.refresh(snapshot)
    return _bundle(db, snapshot)


def freeze_snapshot(db: Session, user_id: int, week_offset: int, now: datetime) -> SnapshotBundle:
    """Pin a snapshot so it is never recalculated."""
    require_user(db, user_id)
    snapshot = _require_snapshot(db, user_id, week_offset, now)
    if not snapshot.is_frozen:
        snapshot.is_frozen = True
        db.commit()
        logger.info(f"[SNAPSHOT] user_id={user_id}: snapshot {snapshot.id} frozen")
        db.refresh(snapshot)
    return _bundle(db, snapshot)
