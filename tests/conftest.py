"""
Shared pytest fixtures.

Uses a SQLite file database so no Postgres is required for tests. The
request clock is pinned to FIXED_NOW: Wednesday 14 October 2026, 14:30 UTC
(week of Monday 12 October).
"""
import os
from datetime import datetime, timezone

os.environ.setdefault("DATABASE_URL", "sqlite:///./test_timebudget.db")
os.environ.setdefault("CRON_SECRET", "test-cron-secret")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from timebudget.db.base import Base, get_db
from timebudget.main import app
from timebudget.routers.deps import get_now
from timebudget.models import (
    CalendarEvent,
    Goal,
    RecurringEvent,
    User,
    UserSettings,
    WeeklyGoalSnapshot,
    WeeklyRecurringEventSnapshot,
    WeeklySnapshot,
)

SQLITE_URL = "sqlite:///./test_timebudget.db"

FIXED_NOW = datetime(2026, 10, 14, 14, 30, tzinfo=timezone.utc)

engine = create_engine(SQLITE_URL, connect_args={"check_same_thread": False})
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def override_get_db():
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()


def override_get_now():
    return FIXED_NOW


@pytest.fixture(scope="session", autouse=True)
def create_tables():
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture(autouse=True)
def clean_tables():
    yield
    db = TestingSessionLocal()
    try:
        for model in (
            WeeklyRecurringEventSnapshot,
            WeeklyGoalSnapshot,
            WeeklySnapshot,
            CalendarEvent,
            RecurringEvent,
            Goal,
            UserSettings,
            User,
        ):
            db.query(model).delete()
        db.commit()
    finally:
        db.close()


@pytest.fixture()
def db():
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture()
def client(db):
    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_now] = override_get_now
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


# ---------------------------------------------------------------------------
# Row factories
# ---------------------------------------------------------------------------

@pytest.fixture()
def make_user(db):
    def _make(email: str = "ana@example.com", available_hours: float | None = None) -> User:
        user = User(email=email)
        db.add(user)
        db.flush()
        if available_hours is not None:
            db.add(UserSettings(user_id=user.id, weekly_available_hours=available_hours))
        db.commit()
        db.refresh(user)
        return user
    return _make


@pytest.fixture()
def make_goal(db):
    def _make(user_id: int, name: str = "Side project", hours: float = 10.0, **kw) -> Goal:
        goal = Goal(
            user_id=user_id,
            name=name,
            category=kw.pop("category", "work_startups"),
            status=kw.pop("status", "in_progress"),
            time_allocated=hours,
            **kw,
        )
        db.add(goal)
        db.commit()
        db.refresh(goal)
        return goal
    return _make


@pytest.fixture()
def make_recurring(db):
    def _make(user_id: int, goal_id: int | None = None, **kw) -> RecurringEvent:
        event = RecurringEvent(
            user_id=user_id,
            goal_id=goal_id,
            title=kw.pop("title", "Deep work"),
            start_time=kw.pop("start_time", "13:00"),
            duration=kw.pop("duration", 60),
            frequency=kw.pop("frequency", "weekly"),
            interval=kw.pop("interval", 1),
            # Mon / Wed / Fri in the 0 = Sunday encoding
            days_of_week=kw.pop("days_of_week", "[1, 3, 5]"),
            is_active=kw.pop("is_active", True),
            **kw,
        )
        db.add(event)
        db.commit()
        db.refresh(event)
        return event
    return _make
