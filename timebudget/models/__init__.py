from .user import User, UserSettings
from .goal import Goal, GoalCategory, GoalPriority, GoalStatus
from .recurring_event import RecurringEvent
from .calendar_event import CalendarEvent
from .weekly_snapshot import WeeklySnapshot, WeeklyGoalSnapshot, WeeklyRecurringEventSnapshot

__all__ = [
    "User",
    "UserSettings",
    "Goal",
    "GoalCategory",
    "GoalPriority",
    "GoalStatus",
    "RecurringEvent",
    "CalendarEvent",
    "WeeklySnapshot",
    "WeeklyGoalSnapshot",
    "WeeklyRecurringEventSnapshot",
]
