"""
Relay handlers connecting the browser's conversational AI leg to the bridge.

The browser posts every data channel event it sees; these handlers forward
them to the session's bridge, expose the bridge state and accept direct
avatar controls.
"""

import logging
from typing import Any, Dict

from fastapi import HTTPException

from app.config.constants import LOGGER_NAME, REALTIME_INPUT_TEXT, REALTIME_USER_SPEECH
from app.handlers.session_handlers import get_session_or_404
from app.models.api_schemas import BridgeState, ControlRequest, RelayEventRequest
from app.models.session import SessionManager
from app.services.heygen_client import HeyGenClient

logger = logging.getLogger(LOGGER_NAME)

CONTROL_ACTIONS = ("speak", "interrupt", "start_listening", "stop_listening")
TASK_FORWARD_TYPES = (REALTIME_INPUT_TEXT, REALTIME_USER_SPEECH)


async def handle_relay_event(
    request: RelayEventRequest,
    session_manager: SessionManager,
    heygen_client: HeyGenClient,
) -> Dict[str, Any]:
    """
    Forward one conversational AI event to the session's bridge.

    Bridge failures are logged and never fail the request. User text is also
    sent to the provider's task endpoint so the avatar answers even without a
    realtime channel.
    """
    record = get_session_or_404(session_manager, request.sessionId)
    event = request.event
    event_type = event.get("type")

    if record.bridge is not None:
        try:
            logger.debug(f"Forwarding event to bridge: {event_type}")
            await record.bridge.process_event(event)
        except Exception as e:
            logger.error(f"Bridge processing error: {e}", exc_info=True)
    else:
        logger.debug(f"No bridge for session {request.sessionId}, event not bridged")

    if record.heygen_session_id and event_type in TASK_FORWARD_TYPES:
        text = event.get("content") or event.get("text") or ""
        if isinstance(text, str) and text.strip():
            await heygen_client.send_task(record.heygen_session_id, text)

    return {"success": True}


async def handle_bridge_state(
    session_id: str, session_manager: SessionManager
) -> Dict[str, Any]:
    record = get_session_or_404(session_manager, session_id)
    if record.bridge is None:
        return {"hasWebSocket": False, **BridgeState().model_dump()}
    return {"hasWebSocket": True, **record.bridge.get_state().model_dump()}


async def handle_bridge_control(
    session_id: str,
    request: ControlRequest,
    session_manager: SessionManager,
) -> Dict[str, Any]:
    """Run a direct avatar control: speak, interrupt, start or stop listening."""
    record = session_manager.get_session(session_id)
    if record is None or record.bridge is None:
        raise HTTPException(
            status_code=404,
            detail="Avatar realtime bridge not available for this session",
        )

    bridge = record.bridge
    if request.action == "speak":
        if not request.text:
            raise HTTPException(status_code=400, detail="text required for speak action")
        await bridge.speak_text(request.text)
    elif request.action == "interrupt":
        await bridge.interrupt()
    elif request.action == "start_listening":
        await bridge.start_listening()
    elif request.action == "stop_listening":
        await bridge.stop_listening()
    else:
        raise HTTPException(
            status_code=400,
            detail=f"Invalid action. Use: {', '.join(CONTROL_ACTIONS)}",
        )

    return {"success": True, "state": bridge.get_state().model_dump()}
