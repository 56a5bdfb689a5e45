"""
Week window resolver.

A week runs Monday 00:00:00.000 through Sunday 23:59:59.999 in the
reference instant's time zone. week_offset 0 is the week containing the
reference instant; negative offsets are past weeks.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, time, timedelta
from zoneinfo import ZoneInfo


@dataclass(frozen=True)
class WeekWindow:
    start: datetime
    end: datetime

    @property
    def start_date(self):
        return self.start.date()

    @property
    def end_date(self):
        return self.end.date()


_END_OF_DAY = time(23, 59, 59, 999_000)


def week_bounds(reference: datetime, week_offset: int = 0) -> WeekWindow:
    """Return the Monday–Sunday window containing reference + week_offset weeks."""
    target = (reference + timedelta(weeks=week_offset)).date()
    monday = target - timedelta(days=target.weekday())
    sunday = monday + timedelta(days=6)
    tz = reference.tzinfo
    return WeekWindow(
        start=datetime.combine(monday, time.min, tzinfo=tz),
        end=datetime.combine(sunday, _END_OF_DAY, tzinfo=tz),
    )


def resolve_now(tz_name: str) -> datetime:
    """Current instant in the configured reference time zone."""
    return datetime.now(tz=ZoneInfo(tz_name))
