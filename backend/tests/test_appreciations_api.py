from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from config import settings
from models.db import set_db_path, init_db, create_event, create_team, get_team
from services.event_status import now_ms

DAY = 24 * 60 * 60 * 1000


@pytest.fixture
def client(tmp_path) -> TestClient:
    """Provide a TestClient backed by a temporary DB."""
    set_db_path(tmp_path / "test.db")
    init_db()
    import main
    return TestClient(main.app)


@pytest.fixture
def live_event(client):
    now = now_ms()
    event_id = create_event("Demo Day", now - DAY, now + DAY)
    team_id = create_team(event_id, "Alpha", course_code="DS519")
    return event_id, team_id


def _body(event_id, team_id, attendee="att-1"):
    return {"eventId": event_id, "teamId": team_id, "attendeeId": attendee, "fingerprintKey": "f" * 64}


def test_post_appreciation_success(client: TestClient, live_event):
    event_id, team_id = live_event
    r = client.post("/api/demo-day/appreciations", json=_body(event_id, team_id))
    assert r.status_code == 200, r.text
    assert r.json() == {"success": True, "remainingForTeam": 2, "remainingTotal": 99}


def test_post_appreciation_rejection_is_400_with_reason(client: TestClient, live_event):
    event_id, team_id = live_event
    for _ in range(3):
        assert client.post("/api/demo-day/appreciations", json=_body(event_id, team_id)).status_code == 200
    r = client.post("/api/demo-day/appreciations", json=_body(event_id, team_id))
    assert r.status_code == 400
    data = r.json()
    assert data["success"] is False
    assert data["error"] == "You've already given 3 appreciations to this team"
    assert data["remainingForTeam"] == 0 and data["remainingTotal"] == 97


@pytest.mark.parametrize("missing", ["eventId", "teamId", "attendeeId", "fingerprintKey"])
def test_post_appreciation_missing_fields(client: TestClient, live_event, missing):
    body = _body(*live_event)
    body.pop(missing)
    r = client.post("/api/demo-day/appreciations", json=body)
    assert r.status_code == 400
    assert r.json()["error"].startswith("Missing required fields")


def test_post_appreciation_malformed_bodies_keep_result_shape(client: TestClient, live_event):
    r = client.post("/api/demo-day/appreciations", content=b"not json", headers={"content-type": "application/json"})
    assert r.status_code == 500
    assert r.json()["success"] is False and r.json()["error"]

    r = client.post("/api/demo-day/appreciations", json=["eventId", "teamId"])
    assert r.status_code == 400
    assert r.json() == {"success": False, "error": "Request body must be a JSON object"}

    body = _body(*live_event)
    body["eventId"] = 5
    r = client.post("/api/demo-day/appreciations", json=body)
    assert r.status_code == 400
    assert r.json()["success"] is False
    assert r.json()["error"].startswith("Invalid fields")


def test_client_ip_from_proxy_headers(client: TestClient, live_event, monkeypatch):
    event_id, team_id = live_event
    monkeypatch.setattr(settings, "IP_RATE_LIMIT_MAX", 1)
    headers = {"x-forwarded-for": "203.0.113.7, 10.0.0.1"}
    assert client.post("/api/demo-day/appreciations", json=_body(event_id, team_id, "a"), headers=headers).status_code == 200
    blocked = client.post("/api/demo-day/appreciations", json=_body(event_id, team_id, "b"), headers={"x-real-ip": "203.0.113.7"})
    assert blocked.status_code == 400
    assert "Too many requests" in blocked.json()["error"]
    # cf-connecting-ip takes precedence over x-forwarded-for
    other = client.post(
        "/api/demo-day/appreciations",
        json=_body(event_id, team_id, "c"),
        headers={"cf-connecting-ip": "198.51.100.1", "x-forwarded-for": "203.0.113.7"},
    )
    assert other.status_code == 200


def test_read_endpoints(client: TestClient, live_event):
    event_id, team_id = live_event
    client.post("/api/demo-day/appreciations", json=_body(event_id, team_id))

    r = client.get(f"/api/demo-day/events/{event_id}/appreciations", params={"attendee_id": "att-1"})
    assert r.status_code == 200
    data = r.json()
    assert data["attendeeTotalCount"] == 1
    assert data["attendeeRemainingBudget"] == 99
    assert data["teams"] == [{"teamId": team_id, "totalCount": 1, "attendeeCount": 1}]

    r = client.get(f"/api/demo-day/events/{event_id}/teams/{team_id}/appreciations", params={"attendee_id": "att-1"})
    assert r.status_code == 200
    assert r.json()["attendeeCount"] == 1 and r.json()["maxPerTeam"] == 3

    r = client.get(f"/api/demo-day/events/{event_id}/appreciation-summary")
    assert r.status_code == 200
    summary = r.json()
    assert summary["totalAppreciations"] == 1 and summary["uniqueAttendees"] == 1
    assert summary["teams"][0] == {
        "teamId": team_id,
        "teamName": "Alpha",
        "courseCode": "DS519",
        "rawScore": 1,
        "cleanScore": 1,
        "flagged": False,
    }


def test_unknown_event_is_404(client: TestClient):
    assert client.get("/api/demo-day/events/nope/appreciations").status_code == 404
    assert client.get("/api/demo-day/events/nope/appreciation-summary").json() == {"error": "Event not found"}


def test_clear_routes_require_admin_token(client: TestClient, live_event, monkeypatch):
    event_id, team_id = live_event
    client.post("/api/demo-day/appreciations", json=_body(event_id, team_id))

    monkeypatch.setattr(settings, "ADMIN_TOKEN", "")
    assert client.delete(f"/api/demo-day/teams/{team_id}/appreciations", headers={"X-Admin-Token": "x"}).status_code == 403

    monkeypatch.setattr(settings, "ADMIN_TOKEN", "s3cret")
    assert client.delete(f"/api/demo-day/teams/{team_id}/appreciations", headers={"X-Admin-Token": "wrong"}).status_code == 403
    r = client.delete(f"/api/demo-day/teams/{team_id}/appreciations", headers={"X-Admin-Token": "s3cret"})
    assert r.status_code == 200 and r.json() == {"deletedCount": 1}
    assert get_team(team_id)["raw_score"] == 0

    r = client.delete(f"/api/demo-day/events/{event_id}/appreciations", headers={"X-Admin-Token": "s3cret"})
    assert r.json() == {"deletedCount": 0, "teamUpdates": 1}


def test_client_round_trip_against_app(client: TestClient, live_event, tmp_path):
    from client import AppreciationClient, AttemptStatus
    from identity import DeviceProfile, IdentityResolver, JsonFileStore

    event_id, team_id = live_event
    resolver = IdentityResolver([JsonFileStore(tmp_path / "identity.json")], profile_provider=DeviceProfile)
    api = AppreciationClient("http://testserver", resolver, session=client)

    control = api.control_for(event_id, team_id, event_is_live=True)
    for _ in range(3):
        assert api.appreciate(control, event_id, team_id).success
        assert control.status == AttemptStatus.SETTLED
    assert control.state.attendee_count_for_team == 3
    assert control.can_trigger() is False

    # A stale control (another tab) is rejected by the server and rolls back
    stale = api.control_for(event_id, team_id, event_is_live=True)
    stale.refresh(stale.state.model_copy(update={"attendee_count_for_team": 2, "attendee_total_count": 2}))
    result = api.appreciate(stale, event_id, team_id)
    assert result.success is False
    assert stale.status == AttemptStatus.ROLLED_BACK
    assert stale.state.attendee_count_for_team == 2
    assert stale.error == "You've already given 3 appreciations to this team"
