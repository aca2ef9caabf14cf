import os
from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import pytest
from fastapi.testclient import TestClient

import app.main as main
from app.bot.realtime_avatar_bridge import RealtimeAvatarBridge
from app.main import app, session_manager
from app.models.session import SessionRecord
from app.services.errors import ConfigurationError, ProviderAPIError
from app.services.heygen_client import HeyGenClient

client = TestClient(app)


@pytest.fixture(autouse=True)
def clear_sessions():
    """Start and finish every test with an empty registry"""
    session_manager.active_sessions.clear()
    yield
    session_manager.active_sessions.clear()


def test_health_check():
    """Test the health check endpoint returns correct response"""
    session_manager.add_session(SessionRecord(session_id="session_1"))

    with patch.dict(os.environ, {"HEYGEN_API_KEY": "key", "OPENAI_API_KEY": ""}):
        response = client.get("/health")
    assert response.status_code == 200

    response_json = response.json()
    assert response_json["status"] == "healthy"
    assert response_json["heygen_api_key_configured"] is True
    assert response_json["openai_api_key_configured"] is False
    assert response_json["active_sessions"] == 1
    assert response_json["active_bridges"] == 0


def test_root_endpoint():
    """Test the root endpoint returns the correct API information"""
    response = client.get("/")
    assert response.status_code == 200

    response_json = response.json()
    assert response_json["name"] == "Avatar Realtime Relay"
    assert "description" in response_json
    assert response_json["version"] == "1.0.0"
    assert "/api/realtime/events" in response_json["endpoints"]
    assert "/health" in response_json["endpoints"]


def test_token():
    token = {"value": "ek_123", "expires_at": 1700000000}
    with patch("app.main.generate_realtime_token", new=AsyncMock(return_value=token)):
        response = client.get("/token")

    assert response.status_code == 200
    assert response.json() == token


def test_token_without_api_key():
    error = ConfigurationError("OPENAI_API_KEY is not set")
    with patch("app.main.generate_realtime_token", new=AsyncMock(side_effect=error)):
        response = client.get("/token")

    assert response.status_code == 500
    assert response.json() == {"error": "OPENAI_API_KEY is not set"}


def test_provider_error_is_reported():
    error = ProviderAPIError("heygen", 401, {"message": "Unauthorized"})
    with patch.object(main.heygen_client, "list_avatars", new=AsyncMock(side_effect=error)):
        response = client.get("/api/heygen/avatars")

    assert response.status_code == 500
    assert response.json() == {"error": {"message": "Unauthorized"}}


def test_session_lifecycle_without_avatar():
    response = client.post("/api/session/create", json={})
    assert response.status_code == 200
    session_id = response.json()["sessionId"]
    assert response.json()["heygenData"] is None

    response = client.get(f"/session/{session_id}/info")
    assert response.status_code == 200
    assert response.json()["sessionId"] == session_id
    assert response.json()["heygenSessionId"] is None

    response = client.get(f"/api/heygen/state/{session_id}")
    assert response.json()["hasWebSocket"] is False
    assert response.json()["isConnected"] is False

    response = client.delete(f"/session/{session_id}")
    assert response.status_code == 200
    assert response.json() == {"success": True}

    response = client.get(f"/session/{session_id}/info")
    assert response.status_code == 404
    assert response.json()["detail"] == "Session not found"


def test_session_create_with_avatar_without_channel():
    created = {"code": 100, "data": {"session_id": "heygen-session-1", "url": "wss://media"}}
    with patch.object(main.heygen_client, "create_session", new=AsyncMock(return_value=created)), \
            patch.object(main.heygen_client, "start_session", new=AsyncMock(return_value={})) as start:
        response = client.post("/api/session/create", json={"character": "Wayne_20240711"})

    assert response.status_code == 200
    assert response.json()["heygenData"] == created["data"]
    start.assert_awaited_once_with("heygen-session-1")
    record = session_manager.get_session(response.json()["sessionId"])
    assert record.heygen_session_id == "heygen-session-1"


def test_relay_event_unknown_session():
    response = client.post(
        "/api/realtime/events",
        json={"sessionId": "missing", "event": {"type": "response.done"}},
    )
    assert response.status_code == 404


def test_relay_event_requires_event():
    response = client.post("/api/realtime/events", json={"sessionId": "session_1"})
    assert response.status_code == 422


def test_relay_event_forwards_to_bridge():
    bridge = MagicMock(spec=RealtimeAvatarBridge)
    bridge.process_event = AsyncMock()
    session_manager.add_session(SessionRecord(session_id="session_1", bridge=bridge))

    response = client.post(
        "/api/realtime/events",
        json={"sessionId": "session_1", "event": {"type": "input_audio"}},
    )

    assert response.status_code == 200
    assert response.json() == {"success": True}
    bridge.process_event.assert_awaited_once_with({"type": "input_audio"})


def test_control_without_bridge():
    session_manager.add_session(SessionRecord(session_id="session_1"))

    response = client.post("/api/heygen/control/session_1", json={"action": "interrupt"})

    assert response.status_code == 404
    assert response.json()["detail"] == "Avatar realtime bridge not available for this session"


def test_provider_passthrough_routes():
    with patch.object(main.heygen_client, "start_session", new=AsyncMock(return_value={"code": 100})) as start, \
            patch.object(main.heygen_client, "stop_session", new=AsyncMock(return_value={"code": 100})) as stop, \
            patch.object(main.heygen_client, "send_task", new=AsyncMock(return_value={"code": 100})) as task:
        assert client.post("/api/heygen/start", json={"sessionId": "hg-1"}).json() == {"code": 100}
        assert client.post("/api/heygen/close", json={"sessionId": "hg-1"}).json() == {"code": 100}
        assert client.post("/api/heygen/task", json={"sessionId": "hg-1", "text": "Hi"}).json() == {"code": 100}

    start.assert_awaited_once_with("hg-1")
    stop.assert_awaited_once_with("hg-1")
    task.assert_awaited_once_with("hg-1", "Hi")


def test_task_requires_text():
    response = client.post("/api/heygen/task", json={"sessionId": "hg-1", "text": ""})
    assert response.status_code == 422


def test_stream_stop_keeps_session():
    session_manager.add_session(SessionRecord(session_id="session_1"))

    response = client.post("/api/heygen/stop", json={"sessionId": "session_1"})

    assert response.status_code == 200
    assert "session_1" in session_manager


def test_unreachable_provider_is_reported_as_json():
    def refuse_connection(request):
        raise httpx.ConnectError("Connection refused", request=request)

    unreachable = HeyGenClient(api_key="key", transport=httpx.MockTransport(refuse_connection))
    with patch.object(main, "heygen_client", unreachable):
        response = TestClient(app, raise_server_exceptions=False).get("/api/heygen/avatars")

    assert response.status_code == 500
    assert response.headers["content-type"].startswith("application/json")
    assert "Connection refused" in response.json()["error"]
