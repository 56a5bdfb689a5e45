"""
Weekly snapshot schemas.

POST /snapshots                → CreateSnapshotRequest → SnapshotResponse
GET  /snapshots                → SnapshotResponse
GET  /snapshots/check-changes  → ChangeStatusResponse
POST /snapshots/recalculate    → WeekOffsetRequest → SnapshotResponse
POST /snapshots/freeze         → WeekOffsetRequest → SnapshotResponse
"""
from typing import Optional
from pydantic import BaseModel, ConfigDict, Field


class WeekOffsetRequest(BaseModel):
    week_offset: int = Field(
        default=-1,
        ge=-520,
        le=52,
        description="Weeks relative to the current one: 0 = this week, -1 = last week.",
        examples=[-1],
    )


class CreateSnapshotRequest(WeekOffsetRequest):
    week_offset: int = Field(default=0, ge=-520, le=52, examples=[0, -1])
    is_frozen: bool = Field(
        default=False,
        description="Pin the snapshot so it can never be recalculated.",
    )


class GoalSnapshotOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    goal_id: Optional[int] = Field(default=None, description="Live goal id; may no longer exist.")
    goal_name: str
    goal_description: Optional[str] = None
    goal_category: str
    goal_priority: Optional[str] = None
    goal_status: str
    goal_color: Optional[str] = None
    time_allocated: float
    time_completed: float
    time_scheduled: float
    time_unscheduled: float


class RecurringEventSnapshotOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    recurring_event_id: Optional[int] = None
    goal_snapshot_id: Optional[int] = Field(
        default=None, description="Parent goal snapshot within the same weekly snapshot."
    )
    title: str
    description: Optional[str] = None
    start_time: str = Field(description='"HH:MM"')
    duration: int = Field(description="Minutes.")
    frequency: str
    interval: int
    days_of_week: Optional[list[str]] = None
    color: Optional[str] = None
    is_active: bool


class WeeklySnapshotOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    user_id: int
    week_start: str
    week_end: str
    total_available_hours: float
    total_allocated_hours: float
    total_completed_hours: float
    total_scheduled_hours: float
    free_time_hours: float
    is_frozen: bool
    snapshot_hash: Optional[str] = None
    created_at: str
    updated_at: str


class SnapshotResponse(BaseModel):
    snapshot: WeeklySnapshotOut
    goal_snapshots: list[GoalSnapshotOut]
    recurring_event_snapshots: list[RecurringEventSnapshotOut]


class ChangeStatusResponse(BaseModel):
    has_snapshot: bool
    has_changes: bool = Field(
        description="True when goals or recurring events changed since the snapshot was taken."
    )
    can_recalculate: bool
    last_updated: Optional[str] = None
