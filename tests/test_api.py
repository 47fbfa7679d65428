"""HTTP API tests through FastAPI's TestClient, backed by a temporary SQLite store."""

from datetime import date, timedelta

import pytest
from fastapi.testclient import TestClient

from focusdesk.api import build_services, create_app
from focusdesk.config import Settings


@pytest.fixture
def services(store, db_path):
    settings = Settings(db_path=db_path, notifications=False)
    return build_services(settings, store=store)


@pytest.fixture
def client(services, db_path):
    app = create_app(Settings(db_path=db_path, notifications=False), services=services)
    with TestClient(app) as client:
        yield client


@pytest.fixture
def signed_in(client):
    response = client.post("/api/session", json={"owner_id": "alice"})
    assert response.status_code == 200
    return client


def test_health(client):
    response = client.get("/health")
    assert response.json() == {"status": "ok", "backend": "sqlite"}


class TestSession:
    def test_anonymous_reads_are_empty(self, client):
        assert client.get("/api/session").json() == {"owner_id": None, "signed_in": False}
        assert client.get("/api/tasks").json() == []

    def test_anonymous_writes_refused(self, client, store):
        response = client.post("/api/tasks", json={"text": "a"})
        assert response.status_code == 401
        assert "insert" not in store.calls

    def test_blank_owner_rejected(self, client):
        assert client.post("/api/session", json={"owner_id": "  "}).status_code == 400

    def test_switching_owner_during_outage_shows_nothing(self, signed_in, store):
        signed_in.post("/api/tasks", json={"text": "alice secret"})
        signed_in.post("/api/notes", json={"title": "alice note"})
        signed_in.post("/api/habits", json={"name": "alice habit"})
        store.fail.add("select")
        assert signed_in.post("/api/session", json={"owner_id": "bob"}).status_code == 200
        assert signed_in.get("/api/tasks").json() == []
        assert signed_in.get("/api/notes").json() == []
        assert signed_in.get("/api/habits").json() == []

    def test_sign_out_hides_collections(self, signed_in):
        signed_in.post("/api/tasks", json={"text": "a"})
        assert signed_in.delete("/api/session").json()["signed_in"] is False
        assert signed_in.get("/api/tasks").json() == []


class TestTasksApi:
    def test_crud(self, signed_in):
        response = signed_in.post("/api/tasks", json={"text": "Buy milk", "priority": "high"})
        assert response.status_code == 201
        [task] = response.json()
        assert task["priority"] == "high"
        assert task["completed"] is False

        [task] = signed_in.post(f"/api/tasks/{task['id']}/toggle").json()
        assert task["completed"] is True

        [task] = signed_in.patch(f"/api/tasks/{task['id']}", json={"text": "Buy oat milk"}).json()
        assert task["text"] == "Buy oat milk"
        assert task["completed"] is True

        assert signed_in.delete(f"/api/tasks/{task['id']}").json() == []

    def test_filter_and_summary(self, signed_in):
        yesterday = (date.today() - timedelta(days=1)).isoformat()
        signed_in.post("/api/tasks", json={"text": "late", "due_date": yesterday})
        tasks = signed_in.post("/api/tasks", json={"text": "done"}).json()
        done = next(t for t in tasks if t["text"] == "done")
        signed_in.post(f"/api/tasks/{done['id']}/toggle")

        active = signed_in.get("/api/tasks", params={"filter": "active"}).json()
        assert [t["text"] for t in active] == ["late"]
        assert active[0]["overdue"] is True

        summary = signed_in.get("/api/tasks/summary").json()
        assert summary["counts"] == {"all": 2, "active": 1, "completed": 1}
        assert summary["overdue"] == [active[0]["id"]]

    def test_clear_due_date(self, signed_in):
        [task] = signed_in.post("/api/tasks", json={"text": "a", "due_date": "2026-03-01"}).json()
        [task] = signed_in.patch(f"/api/tasks/{task['id']}", json={"due_date": None}).json()
        assert task["dueDate"] is None

    def test_unknown_task_is_404(self, signed_in):
        assert signed_in.post("/api/tasks/missing/toggle").status_code == 404
        assert signed_in.delete("/api/tasks/missing").status_code == 404

    def test_blank_text_is_400(self, signed_in):
        assert signed_in.post("/api/tasks", json={"text": "  "}).status_code == 400

    def test_bad_priority_is_422(self, signed_in):
        assert signed_in.post("/api/tasks", json={"text": "a", "priority": "urgent"}).status_code == 422

    def test_store_failure_is_502_and_reverted(self, signed_in, store):
        [task] = signed_in.post("/api/tasks", json={"text": "a"}).json()
        store.fail.add("update")
        response = signed_in.post(f"/api/tasks/{task['id']}/toggle")
        assert response.status_code == 502
        assert "did not take effect" in response.json()["detail"]
        store.fail.clear()
        [task] = signed_in.get("/api/tasks").json()
        assert task["completed"] is False

    def test_failed_delete_reappears(self, signed_in, store):
        [task] = signed_in.post("/api/tasks", json={"text": "a"}).json()
        store.fail.add("delete")
        assert signed_in.delete(f"/api/tasks/{task['id']}").status_code == 502
        assert [t["id"] for t in signed_in.get("/api/tasks").json()] == [task["id"]]


class TestNotesApi:
    def test_crud(self, signed_in):
        [note] = signed_in.post("/api/notes", json={"title": "Ideas", "content": "x"}).json()
        assert note["title"] == "Ideas"
        [note] = signed_in.patch(f"/api/notes/{note['id']}", json={"content": "y"}).json()
        assert note["content"] == "y"
        assert note["updatedAt"] >= note["createdAt"]
        assert signed_in.delete(f"/api/notes/{note['id']}").json() == []

    def test_deferred_edit_failure(self, signed_in, store):
        [note] = signed_in.post("/api/notes", json={"title": "Ideas"}).json()
        store.fail.add("update")
        assert signed_in.patch(f"/api/notes/{note['id']}", json={"title": "New"}).status_code == 502
        assert signed_in.get("/api/notes").json()[0]["title"] == "Ideas"


class TestHabitsApi:
    def test_toggle_and_week(self, signed_in):
        [habit] = signed_in.post("/api/habits", json={"name": "Read"}).json()
        today = date.today().isoformat()
        [habit] = signed_in.post(f"/api/habits/{habit['id']}/toggle", json={"day": today}).json()
        assert habit["completedDates"] == [today]
        assert habit["streak"] == 1

        week = signed_in.get("/api/habits/week").json()
        assert week["days"][-1]["date"] == today
        assert week["habits"][0]["done"] == [False] * 6 + [True]

    def test_bad_day_is_422(self, signed_in):
        [habit] = signed_in.post("/api/habits", json={"name": "Read"}).json()
        response = signed_in.post(f"/api/habits/{habit['id']}/toggle", json={"day": "someday"})
        assert response.status_code == 422


class TestTimerApi:
    def test_initial_state(self, client):
        state = client.get("/api/timer").json()
        assert state["mode"] == "work"
        assert state["isRunning"] is False
        assert state["display"] == "25:00"

    def test_start_and_pause(self, client, services):
        assert client.post("/api/timer/start").json()["isRunning"] is True
        assert services.timer.ticking
        assert client.post("/api/timer/pause").json()["isRunning"] is False
        assert not services.timer.ticking

    def test_switch_mode(self, client):
        state = client.post("/api/timer/mode", json={"mode": "break"}).json()
        assert state["mode"] == "break"
        assert state["remainingSeconds"] == 300

    def test_durations(self, client):
        state = client.patch("/api/timer/durations", json={"work_minutes": 50}).json()
        assert state["remainingSeconds"] == 3000
        assert client.patch("/api/timer/durations", json={"break_minutes": 45}).status_code == 400

    def test_reset(self, client):
        client.post("/api/timer/mode", json={"mode": "break"})
        assert client.post("/api/timer/reset").json()["display"] == "05:00"


def test_recent_logs(signed_in):
    response = signed_in.get("/api/logs/recent", params={"limit": 5})
    body = response.json()
    assert response.status_code == 200
    assert body["count"] == len(body["logs"]) <= 5
