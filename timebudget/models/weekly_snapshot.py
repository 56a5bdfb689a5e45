"""
Weekly snapshots — frozen allocation accounting for one user and one week.

Created at most once per (user_id, week_start) by the cron materializer or
by an explicit POST /snapshots. Children copy the goal and recurring-event
settings as they were at creation time, so history survives later edits or
deletions of the live rows.

  weekly_snapshots
    └─ weekly_goal_snapshots              goal_id is informational only
         └─ weekly_recurring_event_snapshots   linked via goal_snapshot_id

is_frozen: true for manually pinned snapshots (never recalculated),
false for cron-generated ones.
"""
from datetime import datetime
from sqlalchemy import (
    Integer, String, Text, Float, Boolean, DateTime, ForeignKey, func, UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column

from timebudget.db.base import Base


class WeeklySnapshot(Base):
    __tablename__ = "weekly_snapshots"
    __table_args__ = (
        UniqueConstraint("user_id", "week_start", name="uq_weekly_snapshot_user_week"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    user_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    week_start: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, index=True)
    week_end: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    total_available_hours: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    total_allocated_hours: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    total_completed_hours: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    total_scheduled_hours: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    free_time_hours: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)

    is_frozen: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    snapshot_hash: Mapped[str | None] = mapped_column(
        String(64), nullable=True,
        comment="SHA-256 fingerprint of goal + recurring-event state at creation",
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )


class WeeklyGoalSnapshot(Base):
    __tablename__ = "weekly_goal_snapshots"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    snapshot_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("weekly_snapshots.id", ondelete="CASCADE"), nullable=False, index=True
    )
    # Plain reference: the live goal may be deleted later.
    goal_id: Mapped[int | None] = mapped_column(Integer, nullable=True)

    goal_name: Mapped[str] = mapped_column(String(256), nullable=False)
    goal_description: Mapped[str | None] = mapped_column(Text, nullable=True)
    goal_category: Mapped[str] = mapped_column(String(64), nullable=False)
    goal_priority: Mapped[str | None] = mapped_column(String(32), nullable=True)
    goal_status: Mapped[str] = mapped_column(String(32), nullable=False)
    goal_color: Mapped[str | None] = mapped_column(String(32), nullable=True)

    time_allocated: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    time_completed: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    time_scheduled: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    time_unscheduled: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )


class WeeklyRecurringEventSnapshot(Base):
    __tablename__ = "weekly_recurring_event_snapshots"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    snapshot_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("weekly_snapshots.id", ondelete="CASCADE"), nullable=False, index=True
    )
    recurring_event_id: Mapped[int | None] = mapped_column(Integer, nullable=True)
    goal_snapshot_id: Mapped[int | None] = mapped_column(
        Integer, ForeignKey("weekly_goal_snapshots.id", ondelete="SET NULL"), nullable=True
    )

    title: Mapped[str] = mapped_column(String(256), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    start_time: Mapped[str] = mapped_column(String(5), nullable=False)
    duration: Mapped[int] = mapped_column(Integer, nullable=False)
    frequency: Mapped[str] = mapped_column(String(16), nullable=False)
    interval: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    days_of_week: Mapped[str | None] = mapped_column(
        Text, nullable=True, comment='JSON array of weekday tokens, e.g. ["mon","wed"]'
    )
    color: Mapped[str | None] = mapped_column(String(32), nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
