"""
Unit tests for the avatar provider REST client and the token minting service.

Requests are served by httpx.MockTransport, so nothing leaves the process.
"""

import json
import os
from unittest.mock import patch

import httpx
import pytest

from app.models.api_schemas import HeyGenSessionRequest, VoiceSettings
from app.services.errors import ConfigurationError, ProviderAPIError
from app.services.heygen_client import HeyGenClient
from app.services.openai_token import generate_realtime_token


class RecordingHandler:
    """Mock transport handler that records requests and replies with a fixed response."""

    def __init__(self, status_code=200, payload=None, text=None):
        self.requests = []
        self.status_code = status_code
        self.payload = {"code": 100, "data": {}} if payload is None else payload
        self.text = text

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.text is not None:
            return httpx.Response(self.status_code, text=self.text)
        return httpx.Response(self.status_code, json=self.payload)

    @property
    def last_body(self):
        return json.loads(self.requests[-1].content)


@pytest.fixture
def handler():
    return RecordingHandler()


@pytest.fixture
def heygen(handler):
    return HeyGenClient(
        api_key="heygen-key",
        base_url="https://heygen.example.com/v1/",
        transport=httpx.MockTransport(handler),
    )


@pytest.mark.asyncio
async def test_create_session_defaults(heygen, handler):
    await heygen.create_session(HeyGenSessionRequest(character="Wayne_20240711"))

    request = handler.requests[0]
    assert request.method == "POST"
    assert str(request.url) == "https://heygen.example.com/v1/streaming.new"
    assert request.headers["x-api-key"] == "heygen-key"
    assert request.headers["accept"] == "application/json"
    assert request.headers["content-type"] == "application/json"
    assert handler.last_body == {
        "quality": "medium",
        "voice": {"rate": 1},
        "video_encoding": "VP8",
        "disable_idle_timeout": False,
        "version": "v2",
        "stt_settings": {"provider": "deepgram", "confidence": 0.55},
        "activity_idle_timeout": 120,
        "avatar_id": "Wayne_20240711",
    }


@pytest.mark.asyncio
async def test_create_session_overrides(heygen, handler):
    await heygen.create_session(
        HeyGenSessionRequest(quality="high", voice=VoiceSettings(rate=1.5), activity_idle_timeout=300)
    )

    body = handler.last_body
    assert body["quality"] == "high"
    assert body["voice"] == {"rate": 1.5}
    assert body["activity_idle_timeout"] == 300
    assert body["avatar_id"] == ""


@pytest.mark.asyncio
async def test_session_lifecycle_calls(heygen, handler):
    await heygen.start_session("hg-1")
    await heygen.send_task("hg-1", "Hello")
    await heygen.stop_session("hg-1")

    assert [r.url.path for r in handler.requests] == [
        "/v1/streaming.start",
        "/v1/streaming.task",
        "/v1/streaming.stop",
    ]
    assert json.loads(handler.requests[0].content) == {"session_id": "hg-1"}
    assert json.loads(handler.requests[1].content) == {"session_id": "hg-1", "text": "Hello"}


@pytest.mark.asyncio
async def test_list_avatars(heygen, handler):
    handler.payload = {"data": [{"avatar_id": "Wayne_20240711"}]}

    result = await heygen.list_avatars()

    assert result == {"data": [{"avatar_id": "Wayne_20240711"}]}
    assert handler.requests[0].method == "GET"
    assert handler.requests[0].url.path == "/v1/streaming/avatar.list"
    assert "content-type" not in handler.requests[0].headers


@pytest.mark.asyncio
async def test_provider_error(heygen, handler):
    handler.status_code = 401
    handler.payload = {"message": "Unauthorized"}

    with pytest.raises(ProviderAPIError) as exc_info:
        await heygen.start_session("hg-1")

    assert exc_info.value.provider == "heygen"
    assert exc_info.value.status_code == 401
    assert exc_info.value.detail == {"message": "Unauthorized"}


@pytest.mark.asyncio
async def test_provider_error_with_text_body(heygen, handler):
    handler.status_code = 502
    handler.text = "Bad Gateway"

    with pytest.raises(ProviderAPIError) as exc_info:
        await heygen.list_avatars()

    assert exc_info.value.detail == "Bad Gateway"


@pytest.mark.asyncio
async def test_missing_api_key(handler):
    client = HeyGenClient(transport=httpx.MockTransport(handler))

    with patch.dict(os.environ, {"HEYGEN_API_KEY": ""}):
        with pytest.raises(ConfigurationError, match="HEYGEN_API_KEY"):
            await client.list_avatars()

    assert handler.requests == []


def test_api_key_read_from_environment():
    with patch.dict(os.environ, {"HEYGEN_API_KEY": "env-key"}):
        assert HeyGenClient().api_key == "env-key"


@pytest.mark.asyncio
async def test_generate_realtime_token(handler):
    handler.payload = {"value": "ek_123", "expires_at": 1700000000}

    result = await generate_realtime_token(
        api_key="openai-key", transport=httpx.MockTransport(handler)
    )

    assert result["value"] == "ek_123"
    request = handler.requests[0]
    assert str(request.url) == "https://api.openai.com/v1/realtime/client_secrets"
    assert request.headers["authorization"] == "Bearer openai-key"
    assert handler.last_body == {
        "session": {
            "type": "realtime",
            "model": "gpt-realtime",
            "audio": {"output": {"voice": "marin"}},
        }
    }


@pytest.mark.asyncio
async def test_generate_realtime_token_uses_environment(handler):
    env = {
        "OPENAI_API_KEY": "env-openai-key",
        "OPENAI_REALTIME_MODEL": "gpt-realtime-mini",
        "OPENAI_REALTIME_VOICE": "cedar",
    }
    with patch.dict(os.environ, env):
        await generate_realtime_token(transport=httpx.MockTransport(handler))

    assert handler.requests[0].headers["authorization"] == "Bearer env-openai-key"
    assert handler.last_body["session"]["model"] == "gpt-realtime-mini"
    assert handler.last_body["session"]["audio"]["output"]["voice"] == "cedar"


@pytest.mark.asyncio
async def test_generate_realtime_token_missing_key(handler):
    with patch.dict(os.environ, {"OPENAI_API_KEY": ""}):
        with pytest.raises(ConfigurationError, match="OPENAI_API_KEY"):
            await generate_realtime_token(transport=httpx.MockTransport(handler))

    assert handler.requests == []


@pytest.mark.asyncio
async def test_generate_realtime_token_error(handler):
    handler.status_code = 400
    handler.payload = {"error": {"message": "Invalid model"}}

    with pytest.raises(ProviderAPIError) as exc_info:
        await generate_realtime_token(api_key="openai-key", transport=httpx.MockTransport(handler))

    assert exc_info.value.status_code == 400
    assert exc_info.value.detail == {"error": {"message": "Invalid model"}}


def refuse_connection(request: httpx.Request) -> httpx.Response:
    raise httpx.ConnectError("Connection refused", request=request)


def time_out(request: httpx.Request) -> httpx.Response:
    raise httpx.ReadTimeout("Read timed out", request=request)


@pytest.mark.asyncio
async def test_connection_failure_is_provider_error():
    client = HeyGenClient(api_key="heygen-key", transport=httpx.MockTransport(refuse_connection))

    with pytest.raises(ProviderAPIError) as exc_info:
        await client.list_avatars()

    assert exc_info.value.provider == "heygen"
    assert exc_info.value.status_code == 502
    assert "Connection refused" in exc_info.value.detail


@pytest.mark.asyncio
async def test_timeout_is_provider_error():
    client = HeyGenClient(api_key="heygen-key", transport=httpx.MockTransport(time_out))

    with pytest.raises(ProviderAPIError) as exc_info:
        await client.start_session("hg-1")

    assert exc_info.value.status_code == 504


@pytest.mark.asyncio
async def test_generate_realtime_token_connection_failure():
    with pytest.raises(ProviderAPIError) as exc_info:
        await generate_realtime_token(
            api_key="openai-key", transport=httpx.MockTransport(refuse_connection)
        )

    assert exc_info.value.provider == "openai"
    assert exc_info.value.status_code == 502
