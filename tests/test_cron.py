"""
Integration tests for the weekly snapshot cron endpoint.
"""
import pytest

from timebudget.core.config import settings
from timebudget.models.weekly_snapshot import WeeklySnapshot

SECRET = "test-cron-secret"


@pytest.fixture(autouse=True)
def cron_secret(monkeypatch):
    monkeypatch.setattr(settings, "CRON_SECRET", SECRET)


def _auth(token: str = SECRET) -> dict:
    return {"Authorization": f"Bearer {token}"}


class TestCronAuth:
    def test_missing_token(self, client):
        r = client.post("/cron/weekly-snapshots")
        assert r.status_code == 401
        assert r.json()["code"] == "CRON_UNAUTHORIZED"

    def test_wrong_token(self, client):
        r = client.post("/cron/weekly-snapshots", headers=_auth("nope"))
        assert r.status_code == 401

    def test_non_ascii_token(self, client):
        headers = {"Authorization": "Bearer café".encode("utf-8")}
        r = client.post("/cron/weekly-snapshots", headers=headers)
        assert r.status_code == 401
        assert r.json()["code"] == "CRON_UNAUTHORIZED"

    def test_secret_not_configured(self, client, monkeypatch):
        monkeypatch.setattr(settings, "CRON_SECRET", "")
        r = client.post("/cron/weekly-snapshots", headers=_auth())
        assert r.status_code == 500
        assert r.json()["code"] == "CRON_NOT_CONFIGURED"


class TestCronBatch:
    def test_tally(self, client, db, make_user, make_goal, make_recurring):
        a = make_user("a@example.com")
        b = make_user("b@example.com")
        make_user("c@example.com")  # no goals
        goal = make_goal(a.id)
        make_recurring(a.id, goal.id)
        make_goal(b.id, hours=3)

        r = client.post("/cron/weekly-snapshots", headers=_auth())
        assert r.status_code == 200
        body = r.json()
        assert body["success"] is True
        assert body["week_start"].startswith("2026-10-05")
        assert body["results"] == {
            "total": 3,
            "created": 2,
            "skipped": 1,
            "failed": 0,
            "pending": 0,
            "errors": [],
        }
        snapshots = db.query(WeeklySnapshot).all()
        assert {s.user_id for s in snapshots} == {a.id, b.id}
        assert all(s.is_frozen is False for s in snapshots)

    def test_second_run_skips_everyone(self, client, make_user, make_goal):
        user = make_user()
        make_goal(user.id)
        client.post("/cron/weekly-snapshots", headers=_auth())
        r = client.post("/cron/weekly-snapshots", headers=_auth())
        results = r.json()["results"]
        assert results["created"] == 0
        assert results["skipped"] == 1

    def test_no_users(self, client):
        r = client.post("/cron/weekly-snapshots", headers=_auth())
        assert r.status_code == 200
        assert r.json()["results"]["total"] == 0


class TestCronStatus:
    def test_describes_the_service(self, client):
        r = client.get("/cron/weekly-snapshots")
        assert r.status_code == 200
        body = r.json()
        assert body["status"] == "operational"
        assert body["endpoint"] == "POST /cron/weekly-snapshots"
