"""
Tests for the occurrence generator.

Covers:
- Weekly with weekdays, weekly without weekdays, daily and monthly stepping
- Week-skip interval for weekly rules with weekdays
- end_date (inclusive) and occurrence_limit termination
- Window containment and idempotence
- Zero-duration and midnight-crossing occurrences
- Inactive short-circuit and rule / window validation
"""
from datetime import date, datetime, time, timedelta, timezone
from zoneinfo import ZoneInfo

import pytest

from timebudget.core.errors import InvalidRecurrenceRuleError, InvalidWindowError
from timebudget.services.recurrence import (
    Frequency,
    OneOffEvent,
    RecurrenceRule,
    RecurringEventDefinition,
    Weekday,
    generate_for_definitions,
    generate_occurrences,
    parse_anchor_time,
)
from timebudget.core.errors import InvalidEventError

UTC = timezone.utc
MON_12_OCT = datetime(2026, 10, 12, tzinfo=UTC)


def _week(start: datetime, weeks: int = 1) -> tuple[datetime, datetime]:
    return start, start + timedelta(weeks=weeks) - timedelta(milliseconds=1)


def _definition(rule: RecurrenceRule, **kw) -> RecurringEventDefinition:
    return RecurringEventDefinition(
        id=kw.pop("id", 1),
        title=kw.pop("title", "Deep work"),
        anchor_time=kw.pop("anchor_time", time(13, 0)),
        duration_minutes=kw.pop("duration_minutes", 60),
        recurrence=rule,
        **kw,
    )


MWF = frozenset({Weekday.mon, Weekday.wed, Weekday.fri})


# ---------------------------------------------------------------------------
# Stepping
# ---------------------------------------------------------------------------

class TestWeekly:
    def test_mon_wed_fri_over_two_weeks(self):
        d = _definition(RecurrenceRule(Frequency.weekly, days_of_week=MWF))
        occ = generate_occurrences(d, *_week(MON_12_OCT, weeks=2))
        assert len(occ) == 6
        assert {o.start.weekday() for o in occ} == {0, 2, 4}
        assert all(o.start.time() == time(13, 0) for o in occ)
        assert all(o.end - o.start == timedelta(minutes=60) for o in occ)

    def test_occurrences_carry_source_and_goal(self):
        d = _definition(RecurrenceRule(Frequency.weekly, days_of_week=MWF), id=7, goal_id=3)
        occ = generate_occurrences(d, *_week(MON_12_OCT))
        assert all(o.source_definition_id == 7 and o.goal_id == 3 for o in occ)
        assert occ[0].title == "Deep work"

    def test_interval_skips_weeks_when_weekdays_given(self):
        rule = RecurrenceRule(
            Frequency.weekly, interval=2, days_of_week={Weekday.mon}, starts_on=date(2026, 10, 12)
        )
        occ = generate_occurrences(_definition(rule), *_week(MON_12_OCT, weeks=4))
        assert [o.start.date() for o in occ] == [date(2026, 10, 12), date(2026, 10, 26)]

    def test_interval_phase_survives_later_window(self):
        # Series anchored on 12 Oct; the week of 19 Oct is an off week.
        rule = RecurrenceRule(
            Frequency.weekly, interval=2, days_of_week={Weekday.mon}, starts_on=date(2026, 10, 12)
        )
        off_week = generate_occurrences(_definition(rule), *_week(datetime(2026, 10, 19, tzinfo=UTC)))
        on_week = generate_occurrences(_definition(rule), *_week(datetime(2026, 10, 26, tzinfo=UTC)))
        assert off_week == []
        assert len(on_week) == 1

    def test_unanchored_interval_phases_from_each_window(self):
        rule = RecurrenceRule(Frequency.weekly, interval=2, days_of_week={Weekday.mon})
        for monday in (MON_12_OCT, datetime(2026, 10, 19, tzinfo=UTC)):
            occ = generate_occurrences(_definition(rule), *_week(monday))
            assert [o.start.date() for o in occ] == [monday.date()]

    def test_without_weekdays_steps_by_interval_weeks(self):
        rule = RecurrenceRule(Frequency.weekly, interval=2, starts_on=date(2026, 10, 14))
        occ = generate_occurrences(_definition(rule), *_week(MON_12_OCT, weeks=4))
        assert [o.start.date() for o in occ] == [date(2026, 10, 14), date(2026, 10, 28)]


class TestDaily:
    def test_every_day_of_the_week(self):
        occ = generate_occurrences(_definition(RecurrenceRule(Frequency.daily)), *_week(MON_12_OCT))
        assert len(occ) == 7

    def test_interval_fast_forwards_from_anchor(self):
        rule = RecurrenceRule(Frequency.daily, interval=3, starts_on=date(2026, 10, 1))
        occ = generate_occurrences(_definition(rule), *_week(MON_12_OCT))
        assert [o.start.date() for o in occ] == [date(2026, 10, 13), date(2026, 10, 16)]


class TestMonthly:
    def test_fifteenth_over_three_months(self):
        rule = RecurrenceRule(Frequency.monthly, starts_on=date(2026, 1, 15))
        window = (datetime(2026, 1, 1, tzinfo=UTC), datetime(2026, 3, 31, 23, 59, tzinfo=UTC))
        occ = generate_occurrences(_definition(rule), *window)
        assert [o.start.date() for o in occ] == [
            date(2026, 1, 15), date(2026, 2, 15), date(2026, 3, 15),
        ]

    def test_month_end_clamps_without_drift(self):
        rule = RecurrenceRule(Frequency.monthly, starts_on=date(2026, 1, 31))
        window = (datetime(2026, 1, 1, tzinfo=UTC), datetime(2026, 4, 30, 23, 59, tzinfo=UTC))
        occ = generate_occurrences(_definition(rule), *window)
        assert [o.start.day for o in occ] == [31, 28, 31, 30]


# ---------------------------------------------------------------------------
# Termination
# ---------------------------------------------------------------------------

class TestTermination:
    def test_end_date_is_inclusive(self):
        rule = RecurrenceRule(Frequency.daily, end_date=date(2026, 10, 14))
        occ = generate_occurrences(_definition(rule), *_week(MON_12_OCT))
        assert [o.start.day for o in occ] == [12, 13, 14]

    def test_occurrence_limit(self):
        rule = RecurrenceRule(Frequency.daily, occurrence_limit=2)
        occ = generate_occurrences(_definition(rule), *_week(MON_12_OCT))
        assert len(occ) == 2

    def test_anchored_limit_spent_before_window(self):
        rule = RecurrenceRule(Frequency.daily, occurrence_limit=3, starts_on=date(2026, 1, 1))
        assert generate_occurrences(_definition(rule), *_week(MON_12_OCT)) == []

    def test_anchored_limit_partly_spent(self):
        # Oct 9, 10, 11 are before the window; two of five remain.
        rule = RecurrenceRule(Frequency.daily, occurrence_limit=5, starts_on=date(2026, 10, 9))
        occ = generate_occurrences(_definition(rule), *_week(MON_12_OCT))
        assert [o.start.day for o in occ] == [12, 13]

    def test_anchored_limit_counts_eligible_weekdays(self):
        # Mon/Wed/Fri from Mon Oct 5: 5, 7, 9 used up, 12 is the fourth and last.
        rule = RecurrenceRule(
            Frequency.weekly, days_of_week=MWF, occurrence_limit=4, starts_on=date(2026, 10, 5)
        )
        occ = generate_occurrences(_definition(rule), *_week(MON_12_OCT))
        assert [o.start.day for o in occ] == [12]

    def test_anchored_limit_skipped_weeks_do_not_count(self):
        # Every other Monday from Sep 28: only Sep 28 precedes Oct 12.
        rule = RecurrenceRule(
            Frequency.weekly, interval=2, days_of_week={Weekday.mon},
            occurrence_limit=2, starts_on=date(2026, 9, 28),
        )
        occ = generate_occurrences(_definition(rule), *_week(MON_12_OCT))
        assert [o.start.day for o in occ] == [12]

    def test_anchored_monthly_limit(self):
        rule = RecurrenceRule(Frequency.monthly, occurrence_limit=2, starts_on=date(2026, 1, 15))
        window = _week(datetime(2026, 3, 9, tzinfo=UTC))
        assert generate_occurrences(_definition(rule), *window) == []

    def test_end_date_before_window_yields_nothing(self):
        rule = RecurrenceRule(Frequency.daily, end_date=date(2026, 10, 1))
        assert generate_occurrences(_definition(rule), *_week(MON_12_OCT)) == []


# ---------------------------------------------------------------------------
# Window behaviour
# ---------------------------------------------------------------------------

class TestWindow:
    def test_occurrences_lie_inside_window(self):
        start = datetime(2026, 10, 14, 14, 0, tzinfo=UTC)
        end = datetime(2026, 10, 16, 12, 0, tzinfo=UTC)
        occ = generate_occurrences(_definition(RecurrenceRule(Frequency.daily)), start, end)
        # Wed 13:00 is before the window, Fri 13:00 after it.
        assert [o.start.day for o in occ] == [15]
        assert all(start <= o.start <= end for o in occ)

    def test_same_input_same_output(self):
        d = _definition(RecurrenceRule(Frequency.weekly, days_of_week=MWF))
        window = _week(MON_12_OCT, weeks=3)
        assert generate_occurrences(d, *window) == generate_occurrences(d, *window)

    def test_window_timezone_is_carried(self):
        madrid = ZoneInfo("Europe/Madrid")
        start = datetime(2026, 10, 12, tzinfo=madrid)
        occ = generate_occurrences(_definition(RecurrenceRule(Frequency.daily)), *_week(start))
        assert all(o.start.tzinfo is madrid for o in occ)

    def test_end_before_start_raises(self):
        d = _definition(RecurrenceRule(Frequency.daily))
        with pytest.raises(InvalidWindowError) as exc:
            generate_occurrences(d, MON_12_OCT, MON_12_OCT - timedelta(days=1))
        assert exc.value.http_status == 422


# ---------------------------------------------------------------------------
# Edge cases
# ---------------------------------------------------------------------------

class TestEdgeCases:
    def test_zero_duration_is_legal(self):
        d = _definition(RecurrenceRule(Frequency.daily), duration_minutes=0)
        occ = generate_occurrences(d, *_week(MON_12_OCT))
        assert len(occ) == 7
        assert all(o.start == o.end for o in occ)

    def test_midnight_crossing(self):
        d = _definition(RecurrenceRule(Frequency.daily), anchor_time=time(23, 30))
        occ = generate_occurrences(d, *_week(MON_12_OCT))
        assert occ[0].end == datetime(2026, 10, 13, 0, 30, tzinfo=UTC)

    def test_inactive_short_circuits(self):
        d = _definition(RecurrenceRule(Frequency.daily), is_active=False)
        assert generate_occurrences(d, *_week(MON_12_OCT)) == []

    def test_merged_output_is_sorted(self):
        a = _definition(RecurrenceRule(Frequency.daily), id=1, anchor_time=time(18, 0))
        b = _definition(RecurrenceRule(Frequency.daily), id=2, anchor_time=time(8, 0))
        occ = generate_for_definitions([a, b], *_week(MON_12_OCT))
        assert len(occ) == 14
        assert [o.start for o in occ] == sorted(o.start for o in occ)
        assert occ[0].source_definition_id == 2


class TestValidation:
    def test_zero_interval_rejected(self):
        with pytest.raises(InvalidRecurrenceRuleError) as exc:
            RecurrenceRule(Frequency.daily, interval=0)
        assert exc.value.details["field"] == "interval"

    def test_empty_weekdays_rejected(self):
        with pytest.raises(InvalidRecurrenceRuleError):
            RecurrenceRule(Frequency.weekly, days_of_week=frozenset())

    def test_zero_limit_rejected(self):
        with pytest.raises(InvalidRecurrenceRuleError):
            RecurrenceRule(Frequency.daily, occurrence_limit=0)

    def test_negative_duration_rejected(self):
        with pytest.raises(InvalidRecurrenceRuleError):
            _definition(RecurrenceRule(Frequency.daily), duration_minutes=-5)

    def test_unknown_frequency_rejected(self):
        with pytest.raises(ValueError):
            RecurrenceRule("yearly")

    def test_one_off_end_before_start_rejected(self):
        with pytest.raises(InvalidEventError):
            OneOffEvent(start=MON_12_OCT, end=MON_12_OCT - timedelta(hours=1), id=9)


class TestHelpers:
    def test_sunday_index_encoding(self):
        assert Weekday.from_sunday_index(0) is Weekday.sun
        assert Weekday.from_sunday_index(1) is Weekday.mon
        assert Weekday.sat.to_sunday_index() == 6

    def test_parse_anchor_time(self):
        assert parse_anchor_time("07:05") == time(7, 5)
        assert parse_anchor_time("13:00:00") == time(13, 0)
