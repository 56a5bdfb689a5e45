"""
Stats router — live weekly accounting (not snapshotted).

GET /stats/weekly                     — all goals + other plans for a week
GET /stats/goals/{goal_id}/progress   — one goal's completed / scheduled split
"""
from __future__ import annotations

from datetime import datetime

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from timebudget.db.base import get_db
from timebudget.routers.deps import current_user_id, get_now
from timebudget.schemas.stats import GoalProgressResponse, IntervalOut, WeeklyStatsResponse
from timebudget.services.allocation import WeeklyAllocation
from timebudget.services.weekly_report import goal_progress, weekly_stats

router = APIRouter(prefix="/stats", tags=["stats"])


def _allocation_to_response(a: WeeklyAllocation, with_intervals: bool = True) -> GoalProgressResponse:
    intervals = [
        IntervalOut(
            start=i.occurrence.start.isoformat(),
            end=i.occurrence.end.isoformat(),
            title=i.occurrence.title,
            duration_minutes=i.occurrence.duration_minutes,
            is_completed=i.is_completed,
            recurring_event_id=i.occurrence.source_definition_id,
        )
        for i in a.intervals
    ] if with_intervals else []
    return GoalProgressResponse(
        goal_id=a.goal_id,
        total_allocated_hours=a.total_allocated_hours,
        completed_hours=a.completed_hours,
        scheduled_hours=a.scheduled_hours,
        unscheduled_hours=a.unscheduled_hours,
        completed_percent=a.completed_percent,
        scheduled_percent=a.scheduled_percent,
        unscheduled_percent=a.unscheduled_percent,
        intervals=intervals,
    )


@router.get(
    "/weekly",
    response_model=WeeklyStatsResponse,
    summary="Weekly time allocation across all goals",
)
def weekly(
    week_offset: int = Query(default=0, ge=-520, le=52, description="0 = this week."),
    user_id: int = Depends(current_user_id),
    db: Session = Depends(get_db),
    now: datetime = Depends(get_now),
):
    """
    Completed / scheduled / unscheduled hours per goal, plus time in events
    not linked to any goal and the free capacity left in the week.
    """
    stats = weekly_stats(db, user_id, week_offset, now)
    return WeeklyStatsResponse(
        week_start=stats.week.start.isoformat(),
        week_end=stats.week.end.isoformat(),
        total_available_hours=stats.total_available_hours,
        total_allocated_hours=stats.total_allocated_hours,
        total_completed_hours=stats.total_completed_hours,
        total_scheduled_hours=stats.total_scheduled_hours,
        total_unscheduled_hours=stats.total_unscheduled_hours,
        unassociated_completed_hours=stats.unassociated_completed_hours,
        unassociated_scheduled_hours=stats.unassociated_scheduled_hours,
        free_time_hours=stats.free_time_hours,
        completion_rate=stats.completion_rate,
        goals=[_allocation_to_response(a, with_intervals=False) for a in stats.goals.values()],
    )


@router.get(
    "/goals/{goal_id}/progress",
    response_model=GoalProgressResponse,
    summary="One goal's weekly progress",
    responses={404: {"description": "Goal not found for this user."}},
)
def goal(
    goal_id: int,
    week_offset: int = Query(default=0, ge=-520, le=52),
    user_id: int = Depends(current_user_id),
    db: Session = Depends(get_db),
    now: datetime = Depends(get_now),
):
    return _allocation_to_response(goal_progress(db, user_id, goal_id, week_offset, now))
