"""
Integration tests for the live weekly stats and the Markdown export.

FIXED_NOW is Wednesday 14 October 2026, 14:30 UTC.
"""
from datetime import datetime, timezone

from timebudget.models.calendar_event import CalendarEvent

UTC = timezone.utc


def _h(user_id: int) -> dict:
    return {"X-User-Id": str(user_id)}


class TestWeeklyStats:
    def test_mid_week_accounting(self, client, make_user, make_goal, make_recurring):
        user = make_user(available_hours=60)
        goal = make_goal(user.id, hours=10)
        make_recurring(user.id, goal.id)

        r = client.get("/stats/weekly", headers=_h(user.id))
        assert r.status_code == 200
        body = r.json()
        assert body["week_start"].startswith("2026-10-12")
        assert body["total_available_hours"] == 60.0
        assert body["total_completed_hours"] == 2.0
        assert body["total_scheduled_hours"] == 1.0
        assert body["total_unscheduled_hours"] == 7.0
        assert body["completion_rate"] == 20
        assert body["free_time_hours"] == 50.0
        (g,) = body["goals"]
        assert g["completed_percent"] == 20.0
        assert g["scheduled_percent"] == 10.0

    def test_unlinked_events_are_other_plans(self, client, db, make_user, make_goal):
        user = make_user()
        make_goal(user.id, hours=10)
        db.add(CalendarEvent(
            user_id=user.id,
            title="Dentist",
            start_time=datetime(2026, 10, 13, 9, tzinfo=UTC),
            end_time=datetime(2026, 10, 13, 10, tzinfo=UTC),
        ))
        db.commit()
        body = client.get("/stats/weekly", headers=_h(user.id)).json()
        assert body["unassociated_completed_hours"] == 1.0
        assert body["free_time_hours"] == 112 - 10 - 1

    def test_default_available_hours(self, client, make_user):
        user = make_user()
        body = client.get("/stats/weekly", headers=_h(user.id)).json()
        assert body["total_available_hours"] == 112.0
        assert body["goals"] == []

    def test_past_week(self, client, make_user, make_goal, make_recurring):
        user = make_user()
        goal = make_goal(user.id, hours=10)
        make_recurring(user.id, goal.id)
        body = client.get("/stats/weekly", params={"week_offset": -1}, headers=_h(user.id)).json()
        assert body["total_completed_hours"] == 3.0
        assert body["total_scheduled_hours"] == 0.0

    def test_unknown_user(self, client):
        r = client.get("/stats/weekly", headers=_h(424242))
        assert r.status_code == 404
        assert r.json()["code"] == "USER_NOT_FOUND"


class TestGoalProgress:
    def test_progress_with_intervals(self, client, make_user, make_goal, make_recurring):
        user = make_user()
        goal = make_goal(user.id, hours=10)
        make_recurring(user.id, goal.id)
        r = client.get(f"/stats/goals/{goal.id}/progress", headers=_h(user.id))
        assert r.status_code == 200
        body = r.json()
        assert body["unscheduled_hours"] == 7.0
        assert [i["is_completed"] for i in body["intervals"]] == [True, True, False]
        assert body["intervals"][0]["duration_minutes"] == 60

    def test_unknown_goal(self, client, make_user):
        user = make_user()
        r = client.get("/stats/goals/12345/progress", headers=_h(user.id))
        assert r.status_code == 404
        assert r.json()["code"] == "GOAL_NOT_FOUND"

    def test_other_users_goal_is_hidden(self, client, make_user, make_goal):
        owner = make_user("owner@example.com")
        other = make_user("other@example.com")
        goal = make_goal(owner.id)
        r = client.get(f"/stats/goals/{goal.id}/progress", headers=_h(other.id))
        assert r.status_code == 404


class TestExport:
    def test_markdown_report(self, client, db, make_user, make_goal, make_recurring):
        user = make_user("ana@example.com")
        goal = make_goal(user.id, name="Write the book", hours=10, category="learning")
        make_recurring(user.id, goal.id, title="Writing")
        db.add(CalendarEvent(
            user_id=user.id,
            title="Dentist",
            start_time=datetime(2026, 10, 16, 9, tzinfo=UTC),
            end_time=datetime(2026, 10, 16, 10, tzinfo=UTC),
        ))
        db.commit()

        r = client.get("/export/weekly", headers=_h(user.id))
        assert r.status_code == 200
        assert r.headers["content-type"].startswith("text/markdown")
        text = r.text
        assert text.startswith("# Weekly report")
        assert "ana@example.com" in text
        assert "### Write the book" in text
        assert "Learning · In progress" in text
        assert "- [x] Mon 12 Oct 13:00" in text
        assert "- [ ] Fri 16 Oct 13:00" in text
        assert "## Other plans" in text
        assert "Dentist" in text
        assert "Completion rate: 20%" in text

    def test_empty_week(self, client, make_user):
        user = make_user()
        r = client.get("/export/weekly", headers=_h(user.id))
        assert r.status_code == 200
        assert "No data for this period." in r.text

    def test_unknown_user(self, client):
        r = client.get("/export/weekly", headers=_h(424242))
        assert r.status_code == 404
