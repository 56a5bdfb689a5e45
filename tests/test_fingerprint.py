"""
Tests for the snapshot fingerprint: order independence and sensitivity to
exactly the fields that shape a week's accounting.
"""
from dataclasses import replace
from datetime import time

from timebudget.services.allocation import GoalInput
from timebudget.services.fingerprint import fingerprint
from timebudget.services.recurrence import (
    Frequency,
    RecurrenceRule,
    RecurringEventDefinition,
    Weekday,
)


def _goal(goal_id, hours=10.0, **kw):
    return GoalInput(
        id=goal_id,
        time_allocated_hours=hours,
        category=kw.pop("category", "learning"),
        status=kw.pop("status", "in_progress"),
        **kw,
    )


def _definition(def_id, goal_id=1, **kw):
    return RecurringEventDefinition(
        id=def_id,
        title=kw.pop("title", "Reading"),
        anchor_time=kw.pop("anchor_time", time(7, 0)),
        duration_minutes=kw.pop("duration_minutes", 30),
        recurrence=kw.pop(
            "recurrence", RecurrenceRule(Frequency.weekly, days_of_week={Weekday.tue, Weekday.thu})
        ),
        goal_id=goal_id,
        **kw,
    )


GOALS = [_goal(1), _goal(2, 4.0, category="hobbies")]
DEFS = [_definition(10), _definition(11, goal_id=2)]


class TestFingerprint:
    def test_is_sha256_hex(self):
        fp = fingerprint(GOALS, DEFS)
        assert len(fp) == 64
        int(fp, 16)

    def test_order_independent(self):
        assert fingerprint(GOALS, DEFS) == fingerprint(GOALS[::-1], DEFS[::-1])

    def test_empty_input_is_stable(self):
        assert fingerprint([], []) == fingerprint([], [])

    def test_allocation_change_is_detected(self):
        changed = [replace(GOALS[0], time_allocated_hours=12.0), GOALS[1]]
        assert fingerprint(GOALS, DEFS) != fingerprint(changed, DEFS)

    def test_status_change_is_detected(self):
        changed = [replace(GOALS[0], status="on_hold"), GOALS[1]]
        assert fingerprint(GOALS, DEFS) != fingerprint(changed, DEFS)

    def test_schedule_change_is_detected(self):
        changed = [_definition(10, anchor_time=time(8, 0)), DEFS[1]]
        assert fingerprint(GOALS, DEFS) != fingerprint(GOALS, changed)

    def test_weekday_change_is_detected(self):
        rule = RecurrenceRule(Frequency.weekly, days_of_week={Weekday.tue})
        changed = [_definition(10, recurrence=rule), DEFS[1]]
        assert fingerprint(GOALS, DEFS) != fingerprint(GOALS, changed)

    def test_deactivation_is_detected(self):
        changed = [_definition(10, is_active=False), DEFS[1]]
        assert fingerprint(GOALS, DEFS) != fingerprint(GOALS, changed)

    def test_cosmetic_fields_are_ignored(self):
        renamed_goals = [replace(GOALS[0], name="Renamed", color="#fff"), GOALS[1]]
        renamed_defs = [_definition(10, title="Other title", color="#000"), DEFS[1]]
        assert fingerprint(GOALS, DEFS) == fingerprint(renamed_goals, renamed_defs)

    def test_integer_and_float_allocation_agree(self):
        assert fingerprint([_goal(1, 10)], []) == fingerprint([_goal(1, 10.0)], [])
