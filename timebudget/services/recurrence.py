"""
Recurrence rules and the occurrence generator.

A RecurringEventDefinition says "every weekday at 13:00 for 60 minutes";
generate_occurrences() turns it into concrete, time-bounded Occurrences
inside an arbitrary [window_start, window_end] instant range.

Cursor model
------------
A cursor date walks forward from the window start. At each position the
frequency decides whether the date is included; included dates become one
Occurrence at the definition's anchor time. After the check the cursor
advances:

  daily                      +interval days
  weekly with days_of_week   +1 day   (every day tested against the set)
  weekly without weekdays    +interval weeks
  monthly                    +interval months (clamped to month end)

Generation stops when the occurrence limit is reached, when the cursor
passes the rule's end_date (inclusive), or when it passes the window end.
For a rule anchored by `starts_on` the limit counts from the anchor, so a
series that ran out before the window yields nothing. Unanchored rules
count from the window start.

Weekly rules with explicit weekdays apply `interval` as a week-skip
multiplier: only weeks whose distance from the phase week is a multiple of
`interval` are eligible. The phase week is the Monday of `starts_on`, or
of the window start for unanchored rules. A one-week window of an
unanchored rule is therefore always an eligible week: without `starts_on`
the week-skip has no effect on single-week accounting.

Pure: no clock, no I/O, no shared state.

Public API
----------
generate_occurrences(definition, window_start, window_end) -> list[Occurrence]
generate_for_definitions(definitions, window_start, window_end) -> list[Occurrence]
"""
from __future__ import annotations

import calendar
import enum
from dataclasses import dataclass, field
from datetime import date, datetime, time, timedelta
from typing import Any, Iterable, Optional

from timebudget.core.errors import (
    InvalidEventError,
    InvalidRecurrenceRuleError,
    InvalidWindowError,
)


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------

class Frequency(str, enum.Enum):
    daily = "daily"
    weekly = "weekly"
    monthly = "monthly"


class Weekday(str, enum.Enum):
    mon = "mon"
    tue = "tue"
    wed = "wed"
    thu = "thu"
    fri = "fri"
    sat = "sat"
    sun = "sun"

    @property
    def index(self) -> int:
        """Python `date.weekday()` index (Monday == 0)."""
        return _WEEKDAY_ORDER.index(self)

    @classmethod
    def from_date(cls, d: date) -> "Weekday":
        return _WEEKDAY_ORDER[d.weekday()]

    @classmethod
    def from_sunday_index(cls, n: int) -> "Weekday":
        """Decode the calendar-UI encoding: 0 = Sunday ... 6 = Saturday."""
        return _WEEKDAY_ORDER[(n - 1) % 7]

    def to_sunday_index(self) -> int:
        return (self.index + 1) % 7


_WEEKDAY_ORDER = [
    Weekday.mon, Weekday.tue, Weekday.wed, Weekday.thu,
    Weekday.fri, Weekday.sat, Weekday.sun,
]


# ---------------------------------------------------------------------------
# Input types
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class RecurrenceRule:
    frequency: Frequency
    interval: int = 1
    days_of_week: Optional[frozenset[Weekday]] = None
    end_date: Optional[date] = None           # inclusive
    occurrence_limit: Optional[int] = None
    starts_on: Optional[date] = None          # series anchor; None = window start, no week-skip phase

    def __post_init__(self) -> None:
        object.__setattr__(self, "frequency", Frequency(self.frequency))
        if not isinstance(self.interval, int) or self.interval < 1:
            raise InvalidRecurrenceRuleError(
                f"interval must be a positive integer, got {self.interval!r}",
                field="interval",
            )
        if self.days_of_week is not None:
            days = [Weekday(d) for d in self.days_of_week]
            if not days:
                raise InvalidRecurrenceRuleError(
                    "days_of_week must not be empty when given", field="days_of_week"
                )
            if len(set(days)) != len(days):
                raise InvalidRecurrenceRuleError(
                    "days_of_week must not repeat a weekday", field="days_of_week"
                )
            object.__setattr__(self, "days_of_week", frozenset(days))
        if self.occurrence_limit is not None and self.occurrence_limit < 1:
            raise InvalidRecurrenceRuleError(
                f"occurrence_limit must be >= 1, got {self.occurrence_limit!r}",
                field="occurrence_limit",
            )

    @property
    def has_weekdays(self) -> bool:
        return self.frequency == Frequency.weekly and bool(self.days_of_week)


@dataclass(frozen=True)
class RecurringEventDefinition:
    id: Any
    title: str
    anchor_time: time
    duration_minutes: int
    recurrence: RecurrenceRule
    goal_id: Any = None
    is_active: bool = True
    description: Optional[str] = None
    color: Optional[str] = None          # display hint, carried verbatim

    def __post_init__(self) -> None:
        if self.duration_minutes < 0:
            raise InvalidRecurrenceRuleError(
                f"duration_minutes must be >= 0, got {self.duration_minutes}",
                field="duration_minutes",
            )

    def is_active_during(self, week_start: date) -> bool:
        """Active flag set and the series has not ended before week_start."""
        end = self.recurrence.end_date
        return self.is_active and (end is None or end >= week_start)


@dataclass(frozen=True)
class OneOffEvent:
    start: datetime
    end: datetime
    goal_id: Any = None
    id: Any = None
    title: Optional[str] = None

    def __post_init__(self) -> None:
        if self.end < self.start:
            raise InvalidEventError(
                f"Event ends ({self.end.isoformat()}) before it starts "
                f"({self.start.isoformat()}).",
                event_id=self.id,
            )


@dataclass(frozen=True)
class Occurrence:
    start: datetime
    end: datetime
    source_definition_id: Any = None
    goal_id: Any = None
    title: Optional[str] = field(default=None, compare=False)

    @property
    def duration_minutes(self) -> float:
        return (self.end - self.start).total_seconds() / 60


# ---------------------------------------------------------------------------
# Date arithmetic helpers
# ---------------------------------------------------------------------------

def parse_anchor_time(value: str) -> time:
    """Parse the stored "HH:MM" anchor time."""
    hours, minutes = value.split(":")[:2]
    return time(int(hours), int(minutes))


def _add_months(origin: date, months: int) -> date:
    """origin + N months, clamping the day to the target month's length."""
    index = origin.month - 1 + months
    year, month = origin.year + index // 12, index % 12 + 1
    day = min(origin.day, calendar.monthrange(year, month)[1])
    return date(year, month, day)


def _months_between(a: date, b: date) -> int:
    return (b.year - a.year) * 12 + (b.month - a.month)


def _monday(d: date) -> date:
    return d - timedelta(days=d.weekday())


def _first_cursor(rule: RecurrenceRule, window_first_day: date) -> tuple[date, int]:
    """
    Return (cursor, step_index) for the first cursor position on or after
    the window's first day. step_index counts steps taken from the series
    origin and is used to recompute monthly positions without drift.
    """
    origin = rule.starts_on
    if origin is None or origin >= window_first_day:
        return (origin or window_first_day), 0

    if rule.frequency == Frequency.daily:
        step = rule.interval
        n = -(-(window_first_day - origin).days // step)
        return origin + timedelta(days=n * step), n

    if rule.frequency == Frequency.weekly and not rule.has_weekdays:
        step = 7 * rule.interval
        n = -(-(window_first_day - origin).days // step)
        return origin + timedelta(days=n * step), n

    if rule.frequency == Frequency.weekly:
        # Day-by-day walk: jump straight to the window, phase stays anchored.
        return window_first_day, 0

    n = -(-_months_between(origin, window_first_day) // rule.interval)
    cursor = _add_months(origin, n * rule.interval)
    while cursor < window_first_day:
        n += 1
        cursor = _add_months(origin, n * rule.interval)
    return cursor, n


def _weekday_hits_before(rule: RecurrenceRule, origin: date, stop: date) -> int:
    """Eligible weekday positions in [origin, stop) for a weekly-with-weekdays rule."""
    phase_monday = _monday(origin)
    offsets = sorted(d.index for d in rule.days_of_week)
    hits = 0
    monday = phase_monday
    while monday < stop:
        for offset in offsets:
            day = monday + timedelta(days=offset)
            if origin <= day < stop:
                hits += 1
        monday += timedelta(weeks=rule.interval)
    return hits


def _prior_occurrences(rule: RecurrenceRule, window_first_day: date, step_index: int) -> int:
    """Occurrences an anchored series produced before the window's first day."""
    if rule.starts_on is None or rule.starts_on >= window_first_day:
        return 0
    if rule.has_weekdays:
        return _weekday_hits_before(rule, rule.starts_on, window_first_day)
    return step_index


def _is_included(rule: RecurrenceRule, cursor: date, phase_monday: date) -> bool:
    if rule.frequency != Frequency.weekly or not rule.has_weekdays:
        return True
    if Weekday.from_date(cursor) not in rule.days_of_week:
        return False
    if rule.interval == 1:
        return True
    weeks = (_monday(cursor) - phase_monday).days // 7
    return weeks % rule.interval == 0


def _advance(rule: RecurrenceRule, cursor: date, month_origin: date, step_index: int) -> date:
    if rule.frequency == Frequency.daily:
        return cursor + timedelta(days=rule.interval)
    if rule.frequency == Frequency.weekly:
        if rule.has_weekdays:
            return cursor + timedelta(days=1)
        return cursor + timedelta(weeks=rule.interval)
    return _add_months(month_origin, step_index * rule.interval)


# ---------------------------------------------------------------------------
# Public — generator
# ---------------------------------------------------------------------------

def generate_occurrences(
    definition: RecurringEventDefinition,
    window_start: datetime,
    window_end: datetime,
) -> list[Occurrence]:
    """
    Expand one definition into the Occurrences whose start lies in
    [window_start, window_end]. Occurrences carry the window's tzinfo.
    Inactive definitions short-circuit to an empty list.
    """
    if not definition.is_active:
        return []
    if window_end < window_start:
        raise InvalidWindowError(window_start, window_end)

    rule = definition.recurrence
    tz = window_start.tzinfo
    duration = timedelta(minutes=definition.duration_minutes)
    last_day = window_end.date()

    cursor, step_index = _first_cursor(rule, window_start.date())
    month_origin = rule.starts_on or cursor
    if rule.starts_on is None:
        step_index = 0
    phase_monday = _monday(rule.starts_on or window_start.date())
    # The limit bounds the whole series: anchored rules start counting at
    # the positions they already produced before this window.
    produced = _prior_occurrences(rule, window_start.date(), step_index)

    occurrences: list[Occurrence] = []
    while cursor <= last_day:
        if rule.occurrence_limit is not None and produced >= rule.occurrence_limit:
            break
        if rule.end_date is not None and cursor > rule.end_date:
            break

        if _is_included(rule, cursor, phase_monday):
            produced += 1
            start = datetime.combine(cursor, definition.anchor_time, tzinfo=tz)
            if window_start <= start <= window_end:
                occurrences.append(Occurrence(
                    start=start,
                    end=start + duration,
                    source_definition_id=definition.id,
                    goal_id=definition.goal_id,
                    title=definition.title,
                ))

        step_index += 1
        cursor = _advance(rule, cursor, month_origin, step_index)

    return occurrences


def generate_for_definitions(
    definitions: Iterable[RecurringEventDefinition],
    window_start: datetime,
    window_end: datetime,
) -> list[Occurrence]:
    """Occurrences of every definition in the window, ordered by start."""
    merged: list[Occurrence] = []
    for definition in definitions:
        merged.extend(generate_occurrences(definition, window_start, window_end))
    merged.sort(key=lambda o: o.start)
    return merged
