"""
SQLAlchemy implementation of the materializer's SnapshotStore port,
plus the row -> engine-type converters shared by every service that feeds
database rows into the temporal engine.

Rules:
- Engine types never hold ORM objects; every load converts rows to plain
  dataclasses so the computation works on an immutable snapshot.
- Instants are stored in UTC. Naive datetimes coming back from the driver
  (SQLite) are read as UTC.
- Child-snapshot inserts may be called from worker threads; a lock
  serialises access to the session, which is not thread-safe.
"""
from __future__ import annotations

import json
import threading
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Any, Iterator, Optional

from sqlalchemy.orm import Session

from timebudget.core.config import settings
from timebudget.core.errors import UserNotFoundError
from timebudget.models.calendar_event import CalendarEvent
from timebudget.models.goal import Goal
from timebudget.models.recurring_event import RecurringEvent
from timebudget.models.user import User, UserSettings
from timebudget.models.weekly_snapshot import (
    WeeklyGoalSnapshot,
    WeeklyRecurringEventSnapshot,
    WeeklySnapshot,
)
from timebudget.services.allocation import GoalInput
from timebudget.services.recurrence import (
    OneOffEvent,
    RecurrenceRule,
    RecurringEventDefinition,
    Weekday,
    parse_anchor_time,
)
from timebudget.services.snapshot_materializer import (
    GoalSnapshotRecord,
    RecurringEventSnapshotRecord,
    WeeklySnapshotRecord,
)


# ---------------------------------------------------------------------------
# Converters
# ---------------------------------------------------------------------------

def _ev(v) -> str:
    """Return bare string value from a str-enum or plain str."""
    return v.value if hasattr(v, "value") else str(v)


def to_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def _jload_days(text: Optional[str]) -> Optional[list[int]]:
    if not text:
        return None
    try:
        result = json.loads(text)
    except (ValueError, TypeError):
        return None
    return result if isinstance(result, list) and result else None


def goal_input_from_row(row: Goal) -> GoalInput:
    return GoalInput(
        id=row.id,
        time_allocated_hours=float(row.time_allocated or 0),
        category=_ev(row.category),
        status=_ev(row.status),
        name=row.name,
        priority=_ev(row.priority) if row.priority is not None else None,
        description=row.description,
        color=row.color,
    )


def definition_from_row(row: RecurringEvent) -> RecurringEventDefinition:
    days = _jload_days(row.days_of_week)
    rule = RecurrenceRule(
        frequency=row.frequency,
        interval=row.interval,
        days_of_week=frozenset(Weekday.from_sunday_index(n) for n in days) if days else None,
        end_date=row.end_date,
        occurrence_limit=row.recurrence_count or None,
        starts_on=row.starts_on,
    )
    return RecurringEventDefinition(
        id=row.id,
        title=row.title,
        anchor_time=parse_anchor_time(row.start_time),
        duration_minutes=row.duration,
        recurrence=rule,
        goal_id=row.goal_id,
        is_active=bool(row.is_active),
        description=row.description,
        color=row.color,
    )


def one_off_from_row(row: CalendarEvent) -> OneOffEvent:
    return OneOffEvent(
        start=to_utc(row.start_time),
        end=to_utc(row.end_time),
        goal_id=row.goal_id,
        id=row.id,
        title=row.title,
    )


# ---------------------------------------------------------------------------
# Loaders (also used by the stats / export / snapshot services)
# ---------------------------------------------------------------------------

def load_goals(db: Session, user_id: int) -> list[GoalInput]:
    rows = db.query(Goal).filter(Goal.user_id == user_id).order_by(Goal.id).all()
    return [goal_input_from_row(r) for r in rows]


def load_definitions(db: Session, user_id: int) -> list[RecurringEventDefinition]:
    rows = (
        db.query(RecurringEvent)
        .filter(RecurringEvent.user_id == user_id)
        .order_by(RecurringEvent.id)
        .all()
    )
    return [definition_from_row(r) for r in rows]


def load_one_off_events(db: Session, user_id: int) -> list[OneOffEvent]:
    rows = (
        db.query(CalendarEvent)
        .filter(CalendarEvent.user_id == user_id)
        .order_by(CalendarEvent.start_time)
        .all()
    )
    return [one_off_from_row(r) for r in rows]


def load_available_hours(db: Session, user_id: int) -> float:
    row = db.query(UserSettings).filter(UserSettings.user_id == user_id).first()
    if row is None or not row.weekly_available_hours:
        return settings.DEFAULT_WEEKLY_AVAILABLE_HOURS
    return float(row.weekly_available_hours)


def require_user(db: Session, user_id: int) -> User:
    user = db.get(User, user_id)
    if user is None:
        raise UserNotFoundError(user_id)
    return user


def find_snapshot(db: Session, user_id: int, week_start: datetime) -> Optional[WeeklySnapshot]:
    return (
        db.query(WeeklySnapshot)
        .filter(
            WeeklySnapshot.user_id == user_id,
            WeeklySnapshot.week_start == to_utc(week_start),
        )
        .first()
    )


# ---------------------------------------------------------------------------
# Store
# ---------------------------------------------------------------------------

class SqlSnapshotStore:
    """SnapshotStore backed by one SQLAlchemy session."""

    def __init__(self, db: Session):
        self.db = db
        self._lock = threading.Lock()

    # -- reads --------------------------------------------------------------

    def snapshot_exists(self, user_id: Any, week_start: datetime) -> bool:
        return find_snapshot(self.db, user_id, week_start) is not None

    def load_goals(self, user_id: Any) -> list[GoalInput]:
        return load_goals(self.db, user_id)

    def load_recurring_definitions(self, user_id: Any) -> list[RecurringEventDefinition]:
        return load_definitions(self.db, user_id)

    def load_one_off_events(self, user_id: Any) -> list[OneOffEvent]:
        return load_one_off_events(self.db, user_id)

    def load_available_hours(self, user_id: Any) -> float:
        return load_available_hours(self.db, user_id)

    # -- unit of work -------------------------------------------------------

    @contextmanager
    def transaction(self) -> Iterator[None]:
        """Commit on success, roll back everything on failure."""
        try:
            yield
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

    # -- writes -------------------------------------------------------------

    def _insert(self, row) -> int:
        with self._lock:
            self.db.add(row)
            self.db.flush()  # get row.id
            return row.id

    def insert_weekly_snapshot(self, record: WeeklySnapshotRecord) -> int:
        return self._insert(WeeklySnapshot(
            user_id=record.user_id,
            week_start=to_utc(record.week_start),
            week_end=to_utc(record.week_end),
            total_available_hours=record.total_available_hours,
            total_allocated_hours=record.total_allocated_hours,
            total_completed_hours=record.total_completed_hours,
            total_scheduled_hours=record.total_scheduled_hours,
            free_time_hours=record.free_time_hours,
            is_frozen=record.is_frozen,
            snapshot_hash=record.fingerprint,
        ))

    def insert_goal_snapshot(self, snapshot_id: int, record: GoalSnapshotRecord) -> int:
        return self._insert(WeeklyGoalSnapshot(
            snapshot_id=snapshot_id,
            goal_id=record.goal_id,
            goal_name=record.goal_name,
            goal_description=record.goal_description,
            goal_category=record.goal_category,
            goal_priority=record.goal_priority,
            goal_status=record.goal_status,
            goal_color=record.goal_color,
            time_allocated=record.time_allocated,
            time_completed=record.time_completed,
            time_scheduled=record.time_scheduled,
            time_unscheduled=record.time_unscheduled,
        ))

    def insert_recurring_event_snapshot(
        self, snapshot_id: int, record: RecurringEventSnapshotRecord
    ) -> int:
        return self._insert(WeeklyRecurringEventSnapshot(
            snapshot_id=snapshot_id,
            recurring_event_id=record.recurring_event_id,
            goal_snapshot_id=record.goal_snapshot_id,
            title=record.title,
            description=record.description,
            start_time=record.start_time,
            duration=record.duration,
            frequency=record.frequency,
            interval=record.interval,
            days_of_week=json.dumps(record.days_of_week) if record.days_of_week else None,
            color=record.color,
            is_active=record.is_active,
        ))
