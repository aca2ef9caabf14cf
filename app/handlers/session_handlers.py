"""
Manages relay session lifecycle.

This module handles session creation (optionally provisioning an avatar
provider session together with its realtime client and bridge), session info,
teardown, detaching the avatar channel, and reaping sessions that outlive the
configured TTL.
"""

import asyncio
import logging
from typing import Any, Callable, Dict, List, Optional

from fastapi import HTTPException

from app.bot.avatar_realtime import AvatarConnectionError, AvatarRealtimeClient
from app.bot.realtime_avatar_bridge import RealtimeAvatarBridge
from app.config.constants import LOGGER_NAME
from app.models.api_schemas import CreateSessionRequest, HeyGenSessionRequest, VoiceSettings
from app.models.session import SessionManager, SessionRecord, generate_session_id
from app.services.heygen_client import HeyGenClient

logger = logging.getLogger(LOGGER_NAME)

ClientFactory = Callable[[str, str, str], AvatarRealtimeClient]


def get_session_or_404(session_manager: SessionManager, session_id: str) -> SessionRecord:
    record = session_manager.get_session(session_id)
    if record is None:
        raise HTTPException(status_code=404, detail="Session not found")
    return record


async def release_avatar_channel(record: SessionRecord) -> None:
    """Destroy the session's bridge and disconnect its client, if any."""
    if record.bridge is not None:
        await record.bridge.destroy()
        record.bridge = None
    if record.realtime_client is not None:
        await record.realtime_client.disconnect()
        record.realtime_client = None


async def handle_session_create(
    request: CreateSessionRequest,
    session_manager: SessionManager,
    heygen_client: HeyGenClient,
    client_factory: ClientFactory = AvatarRealtimeClient,
) -> Dict[str, Any]:
    """
    Create a relay session.

    Without a character the session only exists in the registry. With one, an
    avatar provider session is created and started; when the provider offers a
    realtime endpoint, a client and bridge are attached and the client is
    connected. A failed connect leaves the session video-only.

    Args:
        request: The create request from the browser
        session_manager: Registry that will own the session
        heygen_client: Avatar provider REST client
        client_factory: Builds the realtime client (session id, endpoint, key)

    Returns:
        ``{sessionId, heygenData, success}``
    """
    session_id = generate_session_id()

    if not request.character:
        session_manager.add_session(SessionRecord(session_id=session_id))
        logger.info(f"Created session without avatar: {session_id}")
        return {"sessionId": session_id, "heygenData": None, "success": True}

    heygen_response = await heygen_client.create_session(
        HeyGenSessionRequest(
            character=request.character,
            voice=VoiceSettings(rate=1) if request.voice else None,
        )
    )
    heygen_session = heygen_response["data"]
    heygen_session_id = heygen_session["session_id"]
    try:
        await heygen_client.start_session(heygen_session_id)
    except Exception:
        # A created but never started session still holds a provider slot
        try:
            await heygen_client.stop_session(heygen_session_id)
        except Exception as e:
            logger.warning(f"Error stopping unstarted avatar session {heygen_session_id}: {e}")
        raise

    realtime_client: Optional[AvatarRealtimeClient] = None
    bridge: Optional[RealtimeAvatarBridge] = None
    endpoint = heygen_session.get("realtime_endpoint")
    if endpoint:
        realtime_client = client_factory(heygen_session_id, endpoint, heygen_client.api_key)
        bridge = RealtimeAvatarBridge(realtime_client)
        try:
            await realtime_client.connect()
            logger.info(f"Avatar realtime channel connected for session {session_id}")
        except AvatarConnectionError as e:
            logger.error(f"Failed to connect avatar realtime channel: {e}")
            logger.warning("Continuing without realtime channel, video continues over the media transport")
            await bridge.destroy()
            realtime_client = None
            bridge = None

    session_manager.add_session(
        SessionRecord(
            session_id=session_id,
            heygen_session_id=heygen_session_id,
            heygen_data=heygen_session,
            realtime_client=realtime_client,
            bridge=bridge,
        )
    )
    logger.info(f"Created session {session_id} for avatar session {heygen_session_id}")
    return {"sessionId": session_id, "heygenData": heygen_session, "success": True}


async def handle_session_info(
    session_id: str, session_manager: SessionManager
) -> Dict[str, Any]:
    record = get_session_or_404(session_manager, session_id)
    return {
        "sessionId": record.session_id,
        "heygenSessionId": record.heygen_session_id,
        "heygenData": record.heygen_data,
        "createdAt": record.created_at.isoformat(),
    }


async def handle_session_end(
    session_id: str,
    session_manager: SessionManager,
    heygen_client: HeyGenClient,
) -> Dict[str, Any]:
    """
    Tear down a session: release the avatar channel, drop the registry entry
    and stop the provider session.

    The registry entry is removed before the provider call so a provider
    failure cannot leave a half torn down session behind.
    """
    record = get_session_or_404(session_manager, session_id)
    await release_avatar_channel(record)
    session_manager.remove_session(session_id)
    logger.info(f"Session removed: {session_id}")

    if record.heygen_session_id:
        await heygen_client.stop_session(record.heygen_session_id)
    return {"success": True}


async def handle_stream_stop(
    session_id: str, session_manager: SessionManager
) -> Dict[str, Any]:
    """Detach the avatar channel from a session while keeping the session."""
    record = session_manager.get_session(session_id)
    if record is not None:
        await release_avatar_channel(record)
        logger.info(f"Avatar channel released for session: {session_id}")
    return {"success": True}


async def reap_expired_sessions(
    session_manager: SessionManager,
    heygen_client: HeyGenClient,
    max_age_seconds: float,
) -> List[str]:
    """
    Tear down every session older than max_age_seconds.

    Returns:
        The ids of the reaped sessions
    """
    reaped = []
    for record in session_manager.expired_sessions(max_age_seconds):
        session_manager.remove_session(record.session_id)
        await release_avatar_channel(record)
        if record.heygen_session_id:
            try:
                await heygen_client.stop_session(record.heygen_session_id)
            except Exception as e:
                logger.warning(f"Could not stop avatar session {record.heygen_session_id}: {e}")
        reaped.append(record.session_id)

    if reaped:
        logger.info(f"Reaped {len(reaped)} expired session(s): {reaped}")
    return reaped


async def run_session_reaper(
    session_manager: SessionManager,
    heygen_client: HeyGenClient,
    max_age_seconds: float,
    interval_seconds: float,
) -> None:
    """Periodically reap expired sessions until cancelled."""
    logger.info(f"Session reaper started (ttl {max_age_seconds}s, every {interval_seconds}s)")
    while True:
        await asyncio.sleep(interval_seconds)
        try:
            await reap_expired_sessions(session_manager, heygen_client, max_age_seconds)
        except Exception as e:
            logger.error(f"Error reaping sessions: {e}", exc_info=True)


async def close_all_sessions(session_manager: SessionManager) -> None:
    """Release every session's avatar channel and clear the registry."""
    for session_id in list(session_manager.get_all_sessions()):
        record = session_manager.remove_session(session_id)
        if record is not None:
            await release_avatar_channel(record)
