"""
Live weekly statistics schemas.

GET /stats/weekly                      → WeeklyStatsResponse
GET /stats/goals/{goal_id}/progress    → GoalProgressResponse
"""
from typing import Optional
from pydantic import BaseModel, Field


class IntervalOut(BaseModel):
    start: str
    end: str
    title: Optional[str] = None
    duration_minutes: float
    is_completed: bool
    recurring_event_id: Optional[int] = None


class GoalProgressResponse(BaseModel):
    goal_id: int
    total_allocated_hours: float
    completed_hours: float
    scheduled_hours: float
    unscheduled_hours: float
    completed_percent: float = Field(description="0–100, relative to the weekly allocation.")
    scheduled_percent: float
    unscheduled_percent: float
    intervals: list[IntervalOut] = Field(default_factory=list)


class WeeklyStatsResponse(BaseModel):
    week_start: str
    week_end: str
    total_available_hours: float
    total_allocated_hours: float
    total_completed_hours: float
    total_scheduled_hours: float
    total_unscheduled_hours: float
    unassociated_completed_hours: float = Field(
        description="Time in events not linked to any goal, already past."
    )
    unassociated_scheduled_hours: float
    free_time_hours: float
    completion_rate: int = Field(description="Completed / allocated, rounded percent.")
    goals: list[GoalProgressResponse]
