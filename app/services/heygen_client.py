"""
REST client for the avatar provider's streaming API.

Each method is a single request/response call: create, start and stop a
streaming session, send a text task, and list the available avatars. The
realtime control channel itself is handled by app.bot.avatar_realtime.
"""

import logging
import os
from typing import Any, Dict, Optional

import httpx

from app.config.constants import HEYGEN_API_BASE, LOGGER_NAME
from app.models.api_schemas import HeyGenSessionRequest, STTSettings, VoiceSettings
from app.services.errors import BAD_GATEWAY, GATEWAY_TIMEOUT, ConfigurationError, ProviderAPIError

logger = logging.getLogger(LOGGER_NAME)

REQUEST_TIMEOUT = 30.0  # seconds


def _error_detail(response: httpx.Response) -> Any:
    try:
        return response.json()
    except ValueError:
        return response.text


class HeyGenClient:
    """
    Async client for the avatar provider's streaming REST endpoints.

    The API key is read from HEYGEN_API_KEY when not passed explicitly, at
    request time, so the server can start before the key is configured.
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        timeout: float = REQUEST_TIMEOUT,
    ):
        self._api_key = api_key
        self.base_url = (base_url or os.getenv("HEYGEN_API_BASE", HEYGEN_API_BASE)).rstrip("/")
        self._transport = transport
        self.timeout = timeout

    @property
    def api_key(self) -> str:
        """
        The provider API key.

        Raises:
            ConfigurationError: If no key was passed and HEYGEN_API_KEY is unset
        """
        key = self._api_key or os.getenv("HEYGEN_API_KEY")
        if not key:
            raise ConfigurationError(
                "HEYGEN_API_KEY is not set. Please add it to your environment or .env file"
            )
        return key

    async def _request(
        self, method: str, path: str, json: Optional[Dict[str, Any]] = None
    ) -> Dict[str, Any]:
        headers = {
            "accept": "application/json",
            "x-api-key": self.api_key,
        }
        if json is not None:
            headers["content-type"] = "application/json"

        try:
            async with httpx.AsyncClient(
                base_url=self.base_url, timeout=self.timeout, transport=self._transport
            ) as client:
                response = await client.request(method, path, json=json, headers=headers)
        except httpx.TimeoutException as e:
            logger.error(f"HeyGen {method} {path} timed out after {self.timeout}s")
            raise ProviderAPIError("heygen", GATEWAY_TIMEOUT, f"Request timed out: {e}") from e
        except httpx.RequestError as e:
            logger.error(f"HeyGen {method} {path} failed to connect: {e}")
            raise ProviderAPIError("heygen", BAD_GATEWAY, f"Failed to reach HeyGen API: {e}") from e

        if response.is_error:
            detail = _error_detail(response)
            logger.error(f"HeyGen {method} {path} failed: {response.status_code} {detail}")
            raise ProviderAPIError("heygen", response.status_code, detail)
        return response.json()

    async def list_avatars(self) -> Dict[str, Any]:
        return await self._request("GET", "/streaming/avatar.list")

    async def create_session(
        self, request: Optional[HeyGenSessionRequest] = None
    ) -> Dict[str, Any]:
        """
        Create a streaming session.

        Returns:
            The provider response ``{code, data, message}``; ``data`` holds the
            session id, media transport credentials and ``realtime_endpoint``
        """
        request = request or HeyGenSessionRequest()
        body = {
            "quality": request.quality or "medium",
            "voice": (request.voice or VoiceSettings()).model_dump(),
            "video_encoding": request.video_encoding or "VP8",
            "disable_idle_timeout": request.disable_idle_timeout or False,
            "version": request.version or "v2",
            "stt_settings": (request.stt_settings or STTSettings()).model_dump(),
            "activity_idle_timeout": request.activity_idle_timeout or 120,
            "avatar_id": request.character or "",
        }
        response = await self._request("POST", "/streaming.new", json=body)
        logger.info(f"Created HeyGen streaming session for avatar: {body['avatar_id']}")
        return response

    async def start_session(self, session_id: str) -> Dict[str, Any]:
        return await self._request("POST", "/streaming.start", json={"session_id": session_id})

    async def stop_session(self, session_id: str) -> Dict[str, Any]:
        return await self._request("POST", "/streaming.stop", json={"session_id": session_id})

    async def send_task(self, session_id: str, text: str) -> Dict[str, Any]:
        """Ask the provider to speak text through its own voice pipeline."""
        return await self._request(
            "POST", "/streaming.task", json={"session_id": session_id, "text": text}
        )
