"""
Pass-through handlers for the avatar provider's REST API.

These routes let the browser manage provider sessions directly; each is a
single provider call whose response is returned unchanged.
"""

import logging
from typing import Any, Dict

from app.config.constants import LOGGER_NAME
from app.models.api_schemas import HeyGenSessionRequest, SessionIdRequest, TaskRequest
from app.services.heygen_client import HeyGenClient

logger = logging.getLogger(LOGGER_NAME)


async def handle_list_avatars(heygen_client: HeyGenClient) -> Dict[str, Any]:
    return await heygen_client.list_avatars()


async def handle_provider_session_create(
    request: HeyGenSessionRequest, heygen_client: HeyGenClient
) -> Dict[str, Any]:
    return await heygen_client.create_session(request)


async def handle_provider_session_start(
    request: SessionIdRequest, heygen_client: HeyGenClient
) -> Dict[str, Any]:
    logger.info(f"Starting avatar session: {request.sessionId}")
    return await heygen_client.start_session(request.sessionId)


async def handle_provider_session_close(
    request: SessionIdRequest, heygen_client: HeyGenClient
) -> Dict[str, Any]:
    logger.info(f"Closing avatar session: {request.sessionId}")
    return await heygen_client.stop_session(request.sessionId)


async def handle_provider_task(
    request: TaskRequest, heygen_client: HeyGenClient
) -> Dict[str, Any]:
    return await heygen_client.send_task(request.sessionId, request.text)
