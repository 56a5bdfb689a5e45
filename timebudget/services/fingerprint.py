"""
Snapshot fingerprint: a SHA-256 digest over the goal and recurring-event
state that shapes a week's numbers.

Inputs are sorted by id and projected to a minimal field set before
serialization, so the digest is independent of input order and of fields
that do not affect historical accounting (titles, colors, descriptions).
"""
from __future__ import annotations

import hashlib
import json
from typing import Any, Sequence

from timebudget.services.allocation import GoalInput
from timebudget.services.recurrence import RecurringEventDefinition


def _id_key(item: Any) -> tuple[str, str]:
    # Mixed int/str ids still get a total order.
    return (type(item.id).__name__, str(item.id))


def _goal_fields(goal: GoalInput) -> dict[str, Any]:
    return {
        "id": goal.id,
        "timeAllocated": float(goal.time_allocated_hours),
        "status": goal.status,
        "category": goal.category,
    }


def _definition_fields(definition: RecurringEventDefinition) -> dict[str, Any]:
    rule = definition.recurrence
    days = rule.days_of_week
    return {
        "id": definition.id,
        "goalId": definition.goal_id,
        "startTime": definition.anchor_time.strftime("%H:%M"),
        "duration": definition.duration_minutes,
        "frequency": rule.frequency.value,
        "daysOfWeek": sorted(d.index for d in days) if days else None,
        "isActive": definition.is_active,
    }


def fingerprint(
    goals: Sequence[GoalInput],
    definitions: Sequence[RecurringEventDefinition],
) -> str:
    """Deterministic hex digest of the snapshot-relevant state."""
    payload = {
        "goals": [_goal_fields(g) for g in sorted(goals, key=_id_key)],
        "events": [_definition_fields(d) for d in sorted(definitions, key=_id_key)],
    }
    canonical = json.dumps(payload, sort_keys=True, separators=(",", ":"), default=str)
    return hashlib.sha256(canonical.encode("utf-8")).hexdigest()
