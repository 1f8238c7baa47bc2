import pytest
from fastapi.testclient import TestClient

from recoverylab.core.config import Settings
from recoverylab.main import create_app


@pytest.fixture
def client(tmp_path, providers):
    settings = Settings(
        ENV="local",
        DATABASE_URL="sqlite+aiosqlite://",
        CALENDAR_EVENT_LOG_PATH=str(tmp_path / "calendar_events.jsonl"),
    )
    with TestClient(create_app(settings, providers=providers)) as c:
        yield c


def test_health(client):
    assert client.get("/api/v1/health").json() == {"status": "ok"}


def test_contact_crud(client):
    resp = client.post(
        "/api/v1/contacts",
        json={"user_id": "patient-1", "name": "Ana", "relationship": "daughter", "role": "family", "phone": "+15551230000"},
    )
    assert resp.status_code == 201
    contact = resp.json()
    assert contact["channels"] == {"sms": True, "email": False}

    listed = client.get("/api/v1/contacts", params={"user_id": "patient-1"}).json()
    assert [c["id"] for c in listed] == [contact["id"]]

    patched = client.patch(f"/api/v1/contacts/{contact['id']}", json={"relationship": "son", "user_id": "x"}).json()
    assert patched["relationship"] == "son"
    assert patched["user_id"] == "patient-1"

    assert client.delete(f"/api/v1/contacts/{contact['id']}").status_code == 204
    missing = client.get(f"/api/v1/contacts/{contact['id']}")
    assert missing.status_code == 404
    assert missing.json()["error"] == "NOT_FOUND"


def test_register_without_address_is_422(client):
    resp = client.post("/api/v1/contacts", json={"user_id": "patient-1", "name": "Ana", "relationship": "daughter", "role": "family"})
    assert resp.status_code == 422
    assert resp.json()["error"] == "VALIDATION_ERROR"


def test_send_and_history(client, providers):
    client.post(
        "/api/v1/contacts",
        json={"user_id": "patient-1", "name": "Ana", "relationship": "daughter", "role": "family", "phone": "+15551230000"},
    )
    providers.sms.send_sms.side_effect = [RuntimeError("unreachable")]

    resp = client.post("/api/v1/notifications/send", json={"user_id": "patient-1", "type": "doctor_flag", "message": "Please call"})
    assert resp.status_code == 200
    body = resp.json()
    assert (body["sent"], body["failed"]) == (0, 1)
    assert body["results"][0]["error"] == "unreachable"
    providers.sms.send_sms.assert_awaited_once_with("+15551230000", "RecoveryLab: doctor flag: Please call")

    history = client.get("/api/v1/notifications/history", params={"user_id": "patient-1"}).json()
    assert [h["status"] for h in history] == ["failed"]
    assert client.get("/api/v1/notifications/history", params={"user_id": "patient-1", "limit": 0}).status_code == 422


def test_calendar_flow(client):
    assert client.get("/api/v1/calendar/token", params={"user_id": "patient-1"}).json()["connected"] is False

    payload = {
        "user_id": "patient-1",
        "session_id": "session-9",
        "analysis_date": "2025-01-15",
        "weeks": 2,
        "exercises": [{"name": "Heel raises", "instructions": ["Rise", "Lower"], "sets_reps": "3 x 10", "frequency": "twice a week"}],
    }
    unauth = client.post("/api/v1/calendar/exercises", json=payload)
    assert unauth.status_code == 401
    assert unauth.json()["needs_reauth"] is True

    assert client.post("/api/v1/calendar/token", json={"user_id": "patient-1", "access_token": "ya29.x"}).status_code == 201
    created = client.post("/api/v1/calendar/exercises", json=payload)
    assert created.status_code == 201
    assert created.json()["count"] == 4

    dup = client.post("/api/v1/calendar/exercises", json=payload)
    assert dup.status_code == 409

    listed = client.get("/api/v1/calendar/exercises", params={"user_id": "patient-1", "session_id": "session-9"})
    assert listed.status_code == 200
    assert [e["event_id"] for e in listed.json()] == [e["event_id"] for e in created.json()["events"]]

    removed = client.delete("/api/v1/calendar/exercises", params={"user_id": "patient-1", "session_id": "session-9"})
    assert removed.json() == {"deleted": 4, "failed": 0}
    assert client.get("/api/v1/calendar/exercises", params={"user_id": "patient-1"}).json() == []

    assert client.delete("/api/v1/calendar/token", params={"user_id": "patient-1"}).status_code == 204
    assert client.delete("/api/v1/calendar/token", params={"user_id": "patient-1"}).status_code == 404


def test_unparseable_frequency_is_422(client):
    client.post("/api/v1/calendar/token", json={"user_id": "patient-1", "access_token": "ya29.x"})
    resp = client.post(
        "/api/v1/calendar/exercises",
        json={
            "user_id": "patient-1",
            "session_id": "s",
            "analysis_date": "2025-01-15",
            "exercises": [{"name": "Lunges", "frequency": "now and then"}],
        },
    )
    assert resp.status_code == 422
    assert resp.json() == {
        "error": "PARSE_ERROR",
        "message": "Unrecognized frequency 'now and then' for exercise 'Lunges'",
        "exercise": "Lunges",
        "frequency": "now and then",
    }


def test_completions(client):
    resp = client.post(
        "/api/v1/calendar/completions",
        json={"user_id": "patient-1", "event_id": "evt-1", "event_title": "Walk", "date": "2025-01-15", "completed": True},
    )
    assert resp.json()["completed"] is True
    listed = client.get("/api/v1/calendar/completions", params={"user_id": "patient-1", "date": "2025-01-15"}).json()
    assert listed["evt-1"]["event_title"] == "Walk"


def test_unschedule_all_sessions_for_user(client):
    client.post("/api/v1/calendar/token", json={"user_id": "patient-1", "access_token": "ya29.x"})
    for session_id in ("session-1", "session-2"):
        resp = client.post(
            "/api/v1/calendar/exercises",
            json={
                "user_id": "patient-1",
                "session_id": session_id,
                "analysis_date": "2025-01-15",
                "weeks": 1,
                "exercises": [{"name": "Bridges", "frequency": "3x per week"}],
            },
        )
        assert resp.status_code == 201

    listed = client.get("/api/v1/calendar/exercises", params={"user_id": "patient-1"}).json()
    assert len(listed) == 6
    assert {e["session_id"] for e in listed} == {"session-1", "session-2"}

    removed = client.delete("/api/v1/calendar/exercises", params={"user_id": "patient-1"})
    assert removed.json() == {"deleted": 6, "failed": 0}
    assert client.get("/api/v1/calendar/exercises", params={"user_id": "patient-1"}).json() == []
    # both sessions can be scheduled again
    again = client.post(
        "/api/v1/calendar/exercises",
        json={
            "user_id": "patient-1",
            "session_id": "session-2",
            "analysis_date": "2025-01-15",
            "weeks": 1,
            "exercises": [{"name": "Bridges", "frequency": "3x per week"}],
        },
    )
    assert again.status_code == 201
