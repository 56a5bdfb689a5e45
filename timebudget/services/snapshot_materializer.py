"""
Weekly snapshot materializer.

Freezes a week's allocation accounting for every user, once per
(user_id, week_start). Users are processed one after another; each user
runs inside its own try block and its own storage transaction, so one
user's failure is recorded and the batch moves on (bulkhead).

Per-user state machine
----------------------
  Pending -> Skipped (snapshot exists)
          -> Skipped (no goals)
          -> Created
          -> Failed

Write order per user
--------------------
  1. weekly snapshot row           (id needed by every child)
  2. goal snapshots                fan-out on a bounded pool, joined
  3. recurring-event snapshots     fan-out, each linked to the goal
                                   snapshot id from phase 2 (never to the
                                   live goal id)

Row existence is the only idempotency key; the fingerprint is stored as
metadata and compared by the check-changes endpoint, not here.

Public API
----------
build_snapshot_plan(...)                             -> SnapshotPlan   (pure)
write_snapshot(store, plan, max_workers)             -> snapshot id
write_children(store, snapshot_id, plan, max_workers)
materialize_user(store, user, week, week_offset, now, ...) -> UserOutcome
materialize_week(store, week_offset, users, now, ...)      -> BatchReport
"""
from __future__ import annotations

import enum
import time as _time
from concurrent.futures import ThreadPoolExecutor
from contextlib import AbstractContextManager
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, Optional, Protocol, Sequence, Union

from loguru import logger

from timebudget.services.allocation import AggregateStats, GoalInput, aggregate_week
from timebudget.services.fingerprint import fingerprint
from timebudget.services.recurrence import OneOffEvent, RecurringEventDefinition
from timebudget.services.week_window import WeekWindow, week_bounds


# ---------------------------------------------------------------------------
# Records handed to the storage port
# ---------------------------------------------------------------------------

@dataclass
class WeeklySnapshotRecord:
    user_id: Any
    week_start: datetime
    week_end: datetime
    total_available_hours: float
    total_allocated_hours: float
    total_completed_hours: float
    total_scheduled_hours: float
    free_time_hours: float
    fingerprint: str
    is_frozen: bool = False


@dataclass
class GoalSnapshotRecord:
    goal_id: Any
    goal_name: str
    goal_description: Optional[str]
    goal_category: str
    goal_priority: Optional[str]
    goal_status: str
    goal_color: Optional[str]
    time_allocated: float
    time_completed: float
    time_scheduled: float
    time_unscheduled: float


@dataclass
class RecurringEventSnapshotRecord:
    recurring_event_id: Any
    goal_snapshot_id: Any
    title: str
    description: Optional[str]
    start_time: str
    duration: int
    frequency: str
    interval: int
    days_of_week: Optional[list[str]]
    color: Optional[str]
    is_active: bool


@dataclass
class SnapshotPlan:
    """Everything needed to persist one user's week, computed up front."""
    parent: WeeklySnapshotRecord
    goals: list[GoalSnapshotRecord]
    definitions: list[RecurringEventDefinition]
    stats: AggregateStats


# ---------------------------------------------------------------------------
# Storage port
# ---------------------------------------------------------------------------

class SnapshotStore(Protocol):
    """Reads and writes the materializer needs; implemented by the caller."""

    def snapshot_exists(self, user_id: Any, week_start: datetime) -> bool: ...

    def load_goals(self, user_id: Any) -> list[GoalInput]: ...

    def load_recurring_definitions(self, user_id: Any) -> list[RecurringEventDefinition]: ...

    def load_one_off_events(self, user_id: Any) -> list[OneOffEvent]: ...

    def load_available_hours(self, user_id: Any) -> float: ...

    def transaction(self) -> AbstractContextManager: ...

    def insert_weekly_snapshot(self, record: WeeklySnapshotRecord) -> Any: ...

    def insert_goal_snapshot(self, snapshot_id: Any, record: GoalSnapshotRecord) -> Any: ...

    def insert_recurring_event_snapshot(
        self, snapshot_id: Any, record: RecurringEventSnapshotRecord
    ) -> Any: ...


# ---------------------------------------------------------------------------
# Outcomes
# ---------------------------------------------------------------------------

class SkipReason(str, enum.Enum):
    snapshot_exists = "snapshot_exists"
    no_goals = "no_goals"


@dataclass(frozen=True)
class UserRef:
    id: Any
    email: Optional[str] = None


@dataclass(frozen=True)
class Created:
    user_id: Any
    snapshot_id: Any
    goal_snapshots: int
    recurring_event_snapshots: int


@dataclass(frozen=True)
class Skipped:
    user_id: Any
    reason: SkipReason


@dataclass(frozen=True)
class Failed:
    user_id: Any
    error: str
    email: Optional[str] = None


UserOutcome = Union[Created, Skipped, Failed]


@dataclass
class BatchReport:
    week_start: datetime
    week_end: datetime
    total: int = 0
    created: int = 0
    skipped: int = 0
    failed: int = 0
    pending: int = 0            # not started before the time budget ran out
    errors: list[dict[str, Any]] = field(default_factory=list)
    outcomes: list[UserOutcome] = field(default_factory=list)

    def record(self, outcome: UserOutcome) -> None:
        self.outcomes.append(outcome)
        if isinstance(outcome, Created):
            self.created += 1
        elif isinstance(outcome, Skipped):
            self.skipped += 1
        else:
            self.failed += 1
            self.errors.append({
                "user_id": outcome.user_id,
                "email": outcome.email,
                "error": outcome.error,
            })


# ---------------------------------------------------------------------------
# Plan construction (pure)
# ---------------------------------------------------------------------------

def goal_snapshot_record(goal: GoalInput, stats: AggregateStats) -> GoalSnapshotRecord:
    allocation = stats.goals[goal.id]
    return GoalSnapshotRecord(
        goal_id=goal.id,
        goal_name=goal.name,
        goal_description=goal.description,
        goal_category=goal.category,
        goal_priority=goal.priority,
        goal_status=goal.status,
        goal_color=goal.color,
        time_allocated=float(goal.time_allocated_hours),
        time_completed=allocation.completed_hours,
        time_scheduled=allocation.scheduled_hours,
        time_unscheduled=allocation.unscheduled_hours,
    )


def recurring_event_snapshot_record(
    definition: RecurringEventDefinition,
    goal_snapshot_id: Any,
) -> RecurringEventSnapshotRecord:
    rule = definition.recurrence
    days = (
        [d.value for d in sorted(rule.days_of_week, key=lambda d: d.index)]
        if rule.days_of_week else None
    )
    return RecurringEventSnapshotRecord(
        recurring_event_id=definition.id,
        goal_snapshot_id=goal_snapshot_id,
        title=definition.title,
        description=definition.description,
        start_time=definition.anchor_time.strftime("%H:%M"),
        duration=definition.duration_minutes,
        frequency=rule.frequency.value,
        interval=rule.interval,
        days_of_week=days,
        color=definition.color,
        is_active=definition.is_active,
    )


def build_snapshot_plan(
    user_id: Any,
    goals: Sequence[GoalInput],
    definitions: Sequence[RecurringEventDefinition],
    one_off_events: Sequence[OneOffEvent],
    total_available_hours: float,
    week_offset: int,
    now: datetime,
    is_frozen: bool = False,
) -> SnapshotPlan:
    stats = aggregate_week(
        goals, definitions, one_off_events, week_offset, now, total_available_hours
    )
    parent = WeeklySnapshotRecord(
        user_id=user_id,
        week_start=stats.week.start,
        week_end=stats.week.end,
        total_available_hours=stats.total_available_hours,
        total_allocated_hours=stats.total_allocated_hours,
        total_completed_hours=stats.total_completed_hours,
        total_scheduled_hours=stats.total_scheduled_hours,
        free_time_hours=stats.free_time_hours,
        fingerprint=fingerprint(goals, definitions),
        is_frozen=is_frozen,
    )
    week_start = stats.week.start_date
    return SnapshotPlan(
        parent=parent,
        goals=[goal_snapshot_record(g, stats) for g in goals],
        definitions=[d for d in definitions if d.is_active_during(week_start)],
        stats=stats,
    )


# ---------------------------------------------------------------------------
# Writes
# ---------------------------------------------------------------------------

def write_children(
    store: SnapshotStore,
    snapshot_id: Any,
    plan: SnapshotPlan,
    max_workers: int = 8,
) -> dict[Any, Any]:
    """
    Two-phase fan-out: all goal snapshots, then all recurring-event snapshots.
    Returns the live-goal-id -> goal-snapshot-id map.
    """
    goal_snapshot_ids: dict[Any, Any] = {}

    if plan.goals:
        with ThreadPoolExecutor(max_workers=max(1, min(len(plan.goals), max_workers))) as pool:
            futures = [
                (record.goal_id, pool.submit(store.insert_goal_snapshot, snapshot_id, record))
                for record in plan.goals
            ]
            for goal_id, future in futures:
                goal_snapshot_ids[goal_id] = future.result()

    if plan.definitions:
        workers = max(1, min(len(plan.definitions), max_workers))
        with ThreadPoolExecutor(max_workers=workers) as pool:
            futures = [
                pool.submit(
                    store.insert_recurring_event_snapshot,
                    snapshot_id,
                    recurring_event_snapshot_record(d, goal_snapshot_ids.get(d.goal_id)),
                )
                for d in plan.definitions
            ]
            for future in futures:
                future.result()

    return goal_snapshot_ids


def write_snapshot(store: SnapshotStore, plan: SnapshotPlan, max_workers: int = 8) -> Any:
    """Insert the parent row, then its children. Returns the parent id."""
    snapshot_id = store.insert_weekly_snapshot(plan.parent)
    write_children(store, snapshot_id, plan, max_workers)
    return snapshot_id


# ---------------------------------------------------------------------------
# Public — one user
# ---------------------------------------------------------------------------

def materialize_user(
    store: SnapshotStore,
    user: UserRef,
    week: WeekWindow,
    week_offset: int,
    now: datetime,
    max_workers: int = 8,
) -> UserOutcome:
    """Run the per-user state machine. Never raises."""
    try:
        if store.snapshot_exists(user.id, week.start):
            logger.info(f"[SNAPSHOT] user_id={user.id}: snapshot for {week.start_date} exists, skipping")
            return Skipped(user.id, SkipReason.snapshot_exists)

        with store.transaction():
            goals = store.load_goals(user.id)
            if not goals:
                logger.info(f"[SNAPSHOT] user_id={user.id}: no goals, skipping")
                return Skipped(user.id, SkipReason.no_goals)

            plan = build_snapshot_plan(
                user_id=user.id,
                goals=goals,
                definitions=store.load_recurring_definitions(user.id),
                one_off_events=store.load_one_off_events(user.id),
                total_available_hours=store.load_available_hours(user.id),
                week_offset=week_offset,
                now=now,
            )
            snapshot_id = write_snapshot(store, plan, max_workers)

        logger.info(
            f"[SNAPSHOT] user_id={user.id}: snapshot {snapshot_id} created "
            f"({len(plan.goals)} goals, {len(plan.definitions)} recurring events)"
        )
        return Created(user.id, snapshot_id, len(plan.goals), len(plan.definitions))
    except Exception as exc:
        logger.exception(f"[SNAPSHOT] user_id={user.id}: snapshot failed")
        return Failed(user.id, str(exc) or exc.__class__.__name__, user.email)


# ---------------------------------------------------------------------------
# Public — batch
# ---------------------------------------------------------------------------

def materialize_week(
    store: SnapshotStore,
    week_offset: int,
    users: Sequence[UserRef],
    now: datetime,
    max_workers: int = 8,
    budget_seconds: Optional[float] = None,
    clock: Callable[[], float] = _time.monotonic,
) -> BatchReport:
    """
    Materialize the week at `week_offset` (relative to `now`) for every user.
    Always returns a tally; per-user failures are collected, not raised.
    Once `budget_seconds` has elapsed no further user is started; those
    users are counted as pending and picked up by the next run.
    """
    week = week_bounds(now, week_offset)
    report = BatchReport(week_start=week.start, week_end=week.end, total=len(users))
    logger.info(f"[SNAPSHOT] Materializing week {week.start_date} for {len(users)} users")

    started = clock()
    for position, user in enumerate(users):
        if budget_seconds and clock() - started >= budget_seconds:
            report.pending = len(users) - position
            logger.warning(
                f"[SNAPSHOT] Time budget of {budget_seconds}s exhausted, "
                f"{report.pending} users left pending"
            )
            break
        report.record(materialize_user(store, user, week, week_offset, now, max_workers))

    logger.info(
        f"[SNAPSHOT] Week {week.start_date} done: created={report.created} "
        f"skipped={report.skipped} failed={report.failed} pending={report.pending}"
    )
    return report
