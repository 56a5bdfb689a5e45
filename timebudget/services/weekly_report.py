"""
Weekly report service — live (non-snapshot) views of a user's week.

Calls the accountant and the aggregate directly, never the materializer.

Public API
----------
weekly_stats(db, user_id, week_offset, now)           -> AggregateStats
goal_progress(db, user_id, goal_id, week_offset, now) -> WeeklyAllocation
export_weekly_markdown(db, user_id, week_offset, now) -> str
render_markdown(email, goals, stats, generated_at)    -> str   (pure)
"""
from __future__ import annotations

from datetime import datetime
from typing import Sequence

from sqlalchemy.orm import Session

from timebudget.core.errors import GoalNotFoundError
from timebudget.services.allocation import (
    AggregateStats,
    ClassifiedInterval,
    GoalInput,
    WeeklyAllocation,
    account_for_goal,
    aggregate_week,
)
from timebudget.services.snapshot_store import (
    load_available_hours,
    load_definitions,
    load_goals,
    load_one_off_events,
    require_user,
)

NO_DATA_MESSAGE = "No data for this period."

_CATEGORY_LABELS = {
    "work_startups": "Work & startups",
    "learning": "Learning",
    "health_sports": "Health & sports",
    "hobbies": "Hobbies",
}

_STATUS_LABELS = {
    "not_started": "Not started",
    "in_progress": "In progress",
    "on_hold": "On hold",
    "completed": "Completed",
    "abandoned": "Abandoned",
    "ongoing": "Ongoing",
}


# ---------------------------------------------------------------------------
# Public — numbers
# ---------------------------------------------------------------------------

def weekly_stats(db: Session, user_id: int, week_offset: int, now: datetime) -> AggregateStats:
    require_user(db, user_id)
    return aggregate_week(
        load_goals(db, user_id),
        load_definitions(db, user_id),
        load_one_off_events(db, user_id),
        week_offset,
        now,
        load_available_hours(db, user_id),
    )


def goal_progress(
    db: Session, user_id: int, goal_id: int, week_offset: int, now: datetime
) -> WeeklyAllocation:
    require_user(db, user_id)
    goal = next((g for g in load_goals(db, user_id) if g.id == goal_id), None)
    if goal is None:
        raise GoalNotFoundError(goal_id)
    return account_for_goal(
        goal.id,
        goal.time_allocated_hours,
        load_definitions(db, user_id),
        load_one_off_events(db, user_id),
        week_offset,
        now,
    )


# ---------------------------------------------------------------------------
# Markdown export
# ---------------------------------------------------------------------------

def _fmt_day(d: datetime) -> str:
    return d.strftime("%A, %d %B %Y")


def _fmt_hours(h: float) -> str:
    return f"{h:g}h"


def _interval_line(item: ClassifiedInterval, tz) -> str:
    occ = item.occurrence
    start, end = occ.start, occ.end
    if tz is not None and start.tzinfo is not None:
        start, end = start.astimezone(tz), end.astimezone(tz)
    mark = "x" if item.is_completed else " "
    title = occ.title or "Untitled"
    return (
        f"- [{mark}] {start.strftime('%a %d %b %H:%M')}–{end.strftime('%H:%M')} "
        f"{title} ({occ.duration_minutes:g} min)"
    )


def render_markdown(
    email: str,
    goals: Sequence[GoalInput],
    stats: AggregateStats,
    generated_at: datetime,
) -> str:
    """Human-readable weekly summary. Degrades to a one-line notice when empty."""
    tz = stats.week.start.tzinfo
    lines = [
        "# Weekly report",
        "",
        f"- **Period**: {_fmt_day(stats.week.start)} – {_fmt_day(stats.week.end)}",
        f"- **User**: {email}",
        f"- **Generated**: {generated_at.strftime('%Y-%m-%d %H:%M')}",
        "",
    ]

    has_intervals = stats.unassociated or any(a.intervals for a in stats.goals.values())
    if not goals and not has_intervals:
        lines.append(NO_DATA_MESSAGE)
        return "\n".join(lines) + "\n"

    lines += [
        "## Time summary",
        "",
        f"- Available: {_fmt_hours(stats.total_available_hours)}",
        f"- Allocated to goals: {_fmt_hours(stats.total_allocated_hours)}",
        f"- Completed: {_fmt_hours(stats.total_completed_hours)}",
        f"- Scheduled: {_fmt_hours(stats.total_scheduled_hours)}",
        f"- Unscheduled: {_fmt_hours(stats.total_unscheduled_hours)}",
        f"- Other plans: {_fmt_hours(stats.unassociated_completed_hours)} completed, "
        f"{_fmt_hours(stats.unassociated_scheduled_hours)} scheduled",
        f"- Free time: {_fmt_hours(stats.free_time_hours)}",
        f"- Completion rate: {stats.completion_rate}%",
        "",
    ]

    if goals:
        lines += ["## Goals", ""]
        for goal in goals:
            allocation = stats.goals[goal.id]
            category = _CATEGORY_LABELS.get(goal.category, goal.category)
            status = _STATUS_LABELS.get(goal.status, goal.status)
            lines += [
                f"### {goal.name or goal.id}",
                "",
                f"{category} · {status} · "
                f"{_fmt_hours(allocation.completed_hours)} completed, "
                f"{_fmt_hours(allocation.scheduled_hours)} scheduled, "
                f"{_fmt_hours(allocation.unscheduled_hours)} unscheduled "
                f"of {_fmt_hours(allocation.total_allocated_hours)}",
                "",
            ]
            lines += [_interval_line(i, tz) for i in allocation.intervals]
            if allocation.intervals:
                lines.append("")

    if stats.unassociated:
        lines += ["## Other plans", ""]
        lines += [_interval_line(i, tz) for i in stats.unassociated]
        lines.append("")

    return "\n".join(lines)


def export_weekly_markdown(db: Session, user_id: int, week_offset: int, now: datetime) -> str:
    user = require_user(db, user_id)
    goals = load_goals(db, user_id)
    stats = aggregate_week(
        goals,
        load_definitions(db, user_id),
        load_one_off_events(db, user_id),
        week_offset,
        now,
        load_available_hours(db, user_id),
    )
    return render_markdown(user.email, goals, stats, generated_at=now)
