"""
Time-allocation accountant and aggregate weekly statistics.

Definitions
-----------
For one goal and one week, every occurrence of the goal's active recurring
definitions plus every one-off calendar event linked to the goal is
classified as:

  completed  — the week is strictly in the past (week_offset < 0), or the
               interval ended strictly before `now`
  scheduled  — anything else

  unscheduled = max(0, allocated - completed - scheduled)

Percentages are relative to the goal's weekly allocation (0–100, not
rounded) and are all zero when the allocation is zero.

The aggregate sums the per-goal figures and keeps a second, parallel tally
for occurrences not linked to any known goal ("other plans"). That bucket
is reported, never subtracted from a goal's allocation.

Pure: `now` is always passed in.

Public API
----------
account_for_goal(goal_id, allocated_hours, definitions, one_off_events, week_offset, now)
    -> WeeklyAllocation
aggregate_week(goals, definitions, one_off_events, week_offset, now, total_available_hours)
    -> AggregateStats
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Iterable, Optional, Sequence

from timebudget.services.recurrence import (
    OneOffEvent,
    Occurrence,
    RecurringEventDefinition,
    generate_occurrences,
)
from timebudget.services.week_window import WeekWindow, week_bounds


# ---------------------------------------------------------------------------
# Types
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class GoalInput:
    """Read-only view of a goal, as far as the accountant cares."""
    id: Any
    time_allocated_hours: float
    category: str
    status: str
    name: str = ""
    priority: Optional[str] = None
    description: Optional[str] = None
    color: Optional[str] = None


@dataclass(frozen=True)
class ClassifiedInterval:
    occurrence: Occurrence
    is_completed: bool


@dataclass
class WeeklyAllocation:
    goal_id: Any
    total_allocated_hours: float
    completed_hours: float
    scheduled_hours: float
    unscheduled_hours: float
    completed_percent: float
    scheduled_percent: float
    unscheduled_percent: float
    intervals: list[ClassifiedInterval] = field(default_factory=list)


@dataclass
class AggregateStats:
    week: WeekWindow
    total_available_hours: float
    total_allocated_hours: float
    total_completed_hours: float
    total_scheduled_hours: float
    total_unscheduled_hours: float
    unassociated_completed_hours: float
    unassociated_scheduled_hours: float
    free_time_hours: float
    completion_rate: int
    goals: dict[Any, WeeklyAllocation]
    unassociated: list[ClassifiedInterval] = field(default_factory=list)

    @property
    def unassociated_hours(self) -> float:
        return self.unassociated_completed_hours + self.unassociated_scheduled_hours


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _round(value: float, places: int = 1) -> float:
    """Half-up rounding (2.25 -> 2.3), unlike the built-in banker's round."""
    quantum = Decimal(1).scaleb(-places)
    return float(Decimal(str(value)).quantize(quantum, rounding=ROUND_HALF_UP))


def _percent(hours: float, allocated: float) -> float:
    return hours / allocated * 100 if allocated > 0 else 0.0


def classify(interval_end: datetime, now: datetime, week_offset: int) -> bool:
    """True when the interval counts as completed."""
    if week_offset < 0:
        return True
    return interval_end < now


def _overlaps(event: OneOffEvent, week: WeekWindow) -> bool:
    if event.start == event.end:
        return week.start <= event.start <= week.end
    return event.start <= week.end and event.end > week.start


def _week_intervals(
    definitions: Iterable[RecurringEventDefinition],
    one_off_events: Iterable[OneOffEvent],
    week: WeekWindow,
) -> list[Occurrence]:
    """All recurring occurrences plus overlapping one-offs for the week."""
    intervals: list[Occurrence] = []
    for definition in definitions:
        if definition.is_active:
            intervals.extend(generate_occurrences(definition, week.start, week.end))
    for event in one_off_events:
        if _overlaps(event, week):
            intervals.append(Occurrence(
                start=event.start,
                end=event.end,
                source_definition_id=None,
                goal_id=event.goal_id,
                title=event.title,
            ))
    intervals.sort(key=lambda o: o.start)
    return intervals


def _split_minutes(
    intervals: Iterable[Occurrence],
    now: datetime,
    week_offset: int,
) -> tuple[float, float, list[ClassifiedInterval]]:
    completed = scheduled = 0.0
    classified: list[ClassifiedInterval] = []
    for interval in intervals:
        done = classify(interval.end, now, week_offset)
        if done:
            completed += interval.duration_minutes
        else:
            scheduled += interval.duration_minutes
        classified.append(ClassifiedInterval(occurrence=interval, is_completed=done))
    return completed, scheduled, classified


def _allocation_from_minutes(
    goal_id: Any,
    allocated_hours: float,
    completed_minutes: float,
    scheduled_minutes: float,
    classified: list[ClassifiedInterval],
) -> WeeklyAllocation:
    completed = completed_minutes / 60
    scheduled = scheduled_minutes / 60
    unscheduled = max(0.0, allocated_hours - completed - scheduled)
    return WeeklyAllocation(
        goal_id=goal_id,
        total_allocated_hours=allocated_hours,
        completed_hours=_round(completed),
        scheduled_hours=_round(scheduled),
        unscheduled_hours=_round(unscheduled),
        completed_percent=_percent(completed, allocated_hours),
        scheduled_percent=_percent(scheduled, allocated_hours),
        unscheduled_percent=_percent(unscheduled, allocated_hours),
        intervals=classified,
    )


# ---------------------------------------------------------------------------
# Public — single goal
# ---------------------------------------------------------------------------

def account_for_goal(
    goal_id: Any,
    allocated_hours: float,
    definitions: Sequence[RecurringEventDefinition],
    one_off_events: Sequence[OneOffEvent],
    week_offset: int,
    now: datetime,
) -> WeeklyAllocation:
    """Split one goal's week into completed / scheduled / unscheduled hours."""
    week = week_bounds(now, week_offset)
    intervals = _week_intervals(
        (d for d in definitions if d.goal_id == goal_id),
        (e for e in one_off_events if e.goal_id == goal_id),
        week,
    )
    completed, scheduled, classified = _split_minutes(intervals, now, week_offset)
    return _allocation_from_minutes(
        goal_id, float(allocated_hours), completed, scheduled, classified
    )


# ---------------------------------------------------------------------------
# Public — all goals
# ---------------------------------------------------------------------------

def aggregate_week(
    goals: Sequence[GoalInput],
    definitions: Sequence[RecurringEventDefinition],
    one_off_events: Sequence[OneOffEvent],
    week_offset: int,
    now: datetime,
    total_available_hours: float,
) -> AggregateStats:
    """
    Sum every goal's allocation for the week and tally unlinked time.

    free_time_hours is the capacity left for new commitments:
    available - allocated - unassociated, floored at zero.
    """
    week = week_bounds(now, week_offset)
    allocations: dict[Any, WeeklyAllocation] = {}
    allocated = completed = scheduled = unscheduled = 0.0

    for goal in goals:
        allocation = account_for_goal(
            goal.id, goal.time_allocated_hours, definitions, one_off_events, week_offset, now
        )
        allocations[goal.id] = allocation
        allocated += allocation.total_allocated_hours
        completed += allocation.completed_hours
        scheduled += allocation.scheduled_hours
        unscheduled += allocation.unscheduled_hours

    known = set(allocations)
    unlinked = _week_intervals(
        (d for d in definitions if d.goal_id is None or d.goal_id not in known),
        (e for e in one_off_events if e.goal_id is None or e.goal_id not in known),
        week,
    )
    other_completed, other_scheduled, other_classified = _split_minutes(
        unlinked, now, week_offset
    )
    other_completed_hours = _round(other_completed / 60)
    other_scheduled_hours = _round(other_scheduled / 60)

    free_time = max(
        0.0,
        total_available_hours - allocated - other_completed_hours - other_scheduled_hours,
    )
    completion_rate = (
        int(Decimal(str(completed / allocated * 100)).quantize(Decimal("1"), rounding=ROUND_HALF_UP))
        if allocated > 0 else 0
    )

    return AggregateStats(
        week=week,
        total_available_hours=float(total_available_hours),
        total_allocated_hours=_round(allocated, 2),
        total_completed_hours=_round(completed, 2),
        total_scheduled_hours=_round(scheduled, 2),
        total_unscheduled_hours=_round(unscheduled, 2),
        unassociated_completed_hours=other_completed_hours,
        unassociated_scheduled_hours=other_scheduled_hours,
        free_time_hours=_round(free_time, 2),
        completion_rate=completion_rate,
        goals=allocations,
        unassociated=other_classified,
    )
