"""
API route tests.

Most tests mock the service layer and authentication, checking role guards,
error translation and the response envelope. The workflow tests at the
bottom run against the test database end to end.
"""

import pytest
from fastapi.testclient import TestClient

from recruiting.api.main import app
from recruiting.services import (
    application_service,
    auth_service,
    notification_service,
    scouting_service,
    user_service,
)
from recruiting.services.errors import IllegalTransitionError, NotFoundError, PreconditionFailedError
from recruiting.tests.factories import make_organization, make_player, make_scouting


def make_client_with_auth(monkeypatch, user_id=1, role="player"):
    """Create a test client with mocked authentication."""
    def fake_verify_token(token):
        return {"user_id": user_id, "role": role}

    async def fake_get_user_by_id(session, uid):
        return {"id": user_id, "email": "test@example.com", "role": role, "created_at": None}

    monkeypatch.setattr(auth_service, "verify_token", fake_verify_token, raising=True)
    monkeypatch.setattr(user_service, "get_user_by_id", fake_get_user_by_id, raising=True)

    return TestClient(app), {"Authorization": "Bearer dummy"}


def test_health():
    response = TestClient(app).get("/api/health")
    assert response.status_code == 200
    assert response.json()["status"] == "ok"


def test_missing_token_is_unauthorized():
    response = TestClient(app).get("/api/notifications")
    assert response.status_code == 401
    assert response.json() == {"success": False, "message": "Authentication required"}


def test_invalid_token_is_unauthorized(monkeypatch):
    monkeypatch.setattr(auth_service, "verify_token", lambda token: None, raising=True)
    response = TestClient(app).get("/api/notifications", headers={"Authorization": "Bearer bad"})
    assert response.status_code == 401


def test_wrong_role_is_forbidden(monkeypatch):
    client, headers = make_client_with_auth(monkeypatch, role="organization")
    response = client.post("/api/applications/apply/1", headers=headers)
    assert response.status_code == 403
    assert response.json()["message"] == "Access denied"


def test_apply_new_application_returns_201(monkeypatch):
    client, headers = make_client_with_auth(monkeypatch)

    async def fake_apply(session, user_id, scouting_id):
        return {"id": 3, "scouting_id": scouting_id, "status": "PENDING"}, True

    monkeypatch.setattr(application_service, "apply_to_scouting", fake_apply, raising=True)

    response = client.post("/api/applications/apply/9", headers=headers)
    assert response.status_code == 201
    body = response.json()
    assert body["success"] is True
    assert body["data"]["scouting_id"] == 9


def test_reapply_returns_200(monkeypatch):
    client, headers = make_client_with_auth(monkeypatch)

    async def fake_apply(session, user_id, scouting_id):
        return {"id": 3, "scouting_id": scouting_id, "status": "PENDING"}, False

    monkeypatch.setattr(application_service, "apply_to_scouting", fake_apply, raising=True)

    response = client.post("/api/applications/apply/9", headers=headers)
    assert response.status_code == 200


@pytest.mark.parametrize(
    "error,status",
    [
        (NotFoundError("Scouting not found"), 404),
        (PreconditionFailedError("This scouting is not active"), 400),
        (IllegalTransitionError("You have already applied to this scouting", "PENDING", "PENDING"), 400),
    ],
)
def test_domain_errors_are_surfaced_verbatim(monkeypatch, error, status):
    client, headers = make_client_with_auth(monkeypatch)

    async def fake_apply(session, user_id, scouting_id):
        raise error

    monkeypatch.setattr(application_service, "apply_to_scouting", fake_apply, raising=True)

    response = client.post("/api/applications/apply/9", headers=headers)
    assert response.status_code == status
    assert response.json() == {"success": False, "message": str(error)}


def test_unexpected_errors_do_not_leak(monkeypatch):
    client, headers = make_client_with_auth(monkeypatch, role="organization")

    async def fake_select(session, user_id, application_id):
        raise RuntimeError("connection to 10.0.0.5 refused")

    monkeypatch.setattr(application_service, "select_application", fake_select, raising=True)

    response = client.post("/api/applications/4/select", headers=headers)
    assert response.status_code == 500
    assert "10.0.0.5" not in response.json()["message"]


def test_create_scouting_validates_players_required(monkeypatch):
    client, headers = make_client_with_auth(monkeypatch, role="organization")

    response = client.post(
        "/api/scouting",
        headers=headers,
        json={
            "country": "India",
            "salary_type": "fixed_salary",
            "contract_duration": "6_months",
            "device_provided": False,
            "bootcamp_required": False,
            "required_roles": ["duelist"],
            "allowed_devices": ["mobile"],
            "allowed_genders": ["male"],
            "ban_history_allowed": False,
            "players_required": 0,
        },
    )
    assert response.status_code == 422
    assert response.json()["success"] is False


def test_create_scouting_passes_json_values(monkeypatch):
    client, headers = make_client_with_auth(monkeypatch, role="organization")
    captured = {}

    async def fake_create(session, user_id, fields):
        captured.update(fields)
        return {"id": 1, **fields}

    monkeypatch.setattr(scouting_service, "create_scouting", fake_create, raising=True)

    response = client.post(
        "/api/scouting",
        headers=headers,
        json={
            "country": "India",
            "salary_type": "fixed_salary",
            "contract_duration": "6_months",
            "device_provided": False,
            "bootcamp_required": False,
            "required_roles": ["duelist"],
            "allowed_devices": ["mobile", "tablet"],
            "allowed_genders": ["male"],
            "ban_history_allowed": False,
            "players_required": 2,
        },
    )
    assert response.status_code == 201
    assert captured["allowed_devices"] == ["mobile", "tablet"]
    assert "min_age" not in captured


def test_update_scouting_rejects_null_players_required(monkeypatch):
    client, headers = make_client_with_auth(monkeypatch, role="organization")

    async def fake_update(session, user_id, scouting_id, fields):
        raise AssertionError("service must not be called")

    monkeypatch.setattr(scouting_service, "update_scouting", fake_update, raising=True)

    response = client.put("/api/scouting/1", headers=headers, json={"players_required": None})
    assert response.status_code == 422
    assert response.json()["success"] is False


def test_update_scouting_passes_only_sent_fields(monkeypatch):
    client, headers = make_client_with_auth(monkeypatch, role="organization")
    captured = {}

    async def fake_update(session, user_id, scouting_id, fields):
        captured.update(fields)
        return {"id": scouting_id, **fields}

    monkeypatch.setattr(scouting_service, "update_scouting", fake_update, raising=True)

    response = client.put(
        "/api/scouting/1", headers=headers, json={"organization_description": None, "players_required": 3}
    )
    assert response.status_code == 200
    assert captured == {"organization_description": None, "players_required": 3}


def test_mark_unknown_notification_read_succeeds(monkeypatch):
    client, headers = make_client_with_auth(monkeypatch)

    async def fake_mark_as_read(session, notification_id, user_id):
        return None

    monkeypatch.setattr(notification_service, "mark_as_read", fake_mark_as_read, raising=True)

    response = client.put("/api/notifications/999/read", headers=headers)
    assert response.status_code == 200
    assert response.json() == {"success": True, "message": "Notification not found"}


def test_websocket_rejects_bad_token(monkeypatch):
    from starlette.websockets import WebSocketDisconnect

    monkeypatch.setattr(auth_service, "verify_token", lambda token: None, raising=True)
    client = TestClient(app)

    with pytest.raises(WebSocketDisconnect) as exc_info:
        with client.websocket_connect("/api/ws?token=bad") as websocket:
            websocket.receive_text()
    assert exc_info.value.code == 1008


def test_websocket_ping_pong(monkeypatch):
    monkeypatch.setattr(
        auth_service, "verify_token", lambda token: {"user_id": 1, "role": "player"}, raising=True
    )
    client = TestClient(app)

    with client.websocket_connect("/api/ws?token=good") as websocket:
        websocket.send_text("ping")
        assert websocket.receive_text() == "pong"


# ---------------------------------------------------------------------------
# Workflows against the test database
# ---------------------------------------------------------------------------


def _auth_by_user_id(monkeypatch):
    """Tokens are just the user id; the role comes from the users table."""
    monkeypatch.setattr(
        auth_service, "verify_token", lambda token: {"user_id": int(token)}, raising=True
    )


def _headers(user):
    return {"Authorization": f"Bearer {user.id}"}


@pytest.mark.asyncio
async def test_apply_select_workflow(db_session, monkeypatch):
    _auth_by_user_id(monkeypatch)
    org_user, organization = await make_organization(db_session)
    player_user, profile = await make_player(db_session)
    scouting = await make_scouting(db_session, organization, players_required=1)
    client = TestClient(app)

    applied = client.post(f"/api/applications/apply/{scouting.id}", headers=_headers(player_user))
    assert applied.status_code == 201
    application_id = applied.json()["data"]["id"]

    applicants = client.get(f"/api/applications/scouting/{scouting.id}", headers=_headers(org_user))
    assert [a["id"] for a in applicants.json()["data"]] == [application_id]

    selected = client.post(f"/api/applications/{application_id}/select", headers=_headers(org_user))
    assert selected.status_code == 200
    assert selected.json()["data"]["scouting"]["scouting_status"] == "COMPLETED"

    roster = client.get("/api/organization/roster", headers=_headers(org_user))
    assert [p["id"] for p in roster.json()["data"]] == [profile.id]

    notifications = client.get("/api/notifications", headers=_headers(player_user)).json()["data"]
    assert notifications[0]["type"] == "APPLICATION_SELECTED"
    count = client.get("/api/notifications/unread-count", headers=_headers(player_user)).json()
    assert count["data"]["count"] == 1

    marked = client.put("/api/notifications/read-all", headers=_headers(player_user)).json()
    assert marked["data"]["count"] == 1

    again = client.post(f"/api/applications/{application_id}/select", headers=_headers(org_user))
    assert again.status_code == 400


@pytest.mark.asyncio
async def test_withdraw_and_reapply_workflow(db_session, monkeypatch):
    _auth_by_user_id(monkeypatch)
    _, organization = await make_organization(db_session)
    player_user, _ = await make_player(db_session)
    scouting = await make_scouting(db_session, organization)
    client = TestClient(app)

    application_id = client.post(
        f"/api/applications/apply/{scouting.id}", headers=_headers(player_user)
    ).json()["data"]["id"]

    withdrawn = client.delete(f"/api/applications/{application_id}/withdraw", headers=_headers(player_user))
    assert withdrawn.json()["data"]["status"] == "WITHDRAWN"

    reapplied = client.post(f"/api/applications/apply/{scouting.id}", headers=_headers(player_user))
    assert reapplied.status_code == 200
    assert reapplied.json()["data"]["id"] == application_id

    mine = client.get("/api/applications/my", headers=_headers(player_user)).json()["data"]
    assert len(mine) == 1
    assert mine[0]["status"] == "PENDING"
