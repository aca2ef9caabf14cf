import asyncio
import inspect
import logging
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Set

import websockets
from pydantic import ValidationError
from websockets.exceptions import ConnectionClosed
from websockets.protocol import State

from app.config.constants import (
    CLIENT_USER_AGENT,
    CLOSE_CODE_ABNORMAL,
    CLOSE_CODE_NORMAL,
    CONNECTION_TIMEOUT,
    HEARTBEAT_INTERVAL,
    LOGGER_NAME,
    MAX_RECONNECT_ATTEMPTS,
    NOTIFY_CONNECTED,
    NOTIFY_DISCONNECTED,
    NOTIFY_ERROR,
    RECONNECT_DELAY,
)
from app.models.avatar_schemas import (
    AgentAudioBufferClearCommand,
    AgentInterruptCommand,
    AgentSpeakCommand,
    AgentSpeakEndCommand,
    AgentStartListeningCommand,
    AgentStopListeningCommand,
    AvatarCommand,
    AvatarEvent,
    SessionKeepAliveCommand,
)
from app.services.errors import ConfigurationError

logger = logging.getLogger(LOGGER_NAME)

Listener = Callable[[Any], Any]


class ConnectionState(str, Enum):
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"
    CLOSING = "closing"


class AvatarConnectionError(Exception):
    """Raised when the avatar realtime channel cannot be opened."""


class AvatarRealtimeClient:
    """
    Client for the avatar provider's realtime control channel.

    Owns one outbound WebSocket per session: connect, reconnect with linear
    backoff, keep-alive heartbeat and deliberate close. Inbound provider events
    are fanned out to listeners registered by event type, then to catch-all
    listeners.
    """

    def __init__(
        self,
        session_id: str,
        url: str,
        api_key: str,
        max_reconnect_attempts: int = MAX_RECONNECT_ATTEMPTS,
        reconnect_delay: float = RECONNECT_DELAY,
        heartbeat_interval: float = HEARTBEAT_INTERVAL,
        connect_timeout: float = CONNECTION_TIMEOUT,
    ):
        if not api_key:
            raise ConfigurationError("HEYGEN_API_KEY is not set")

        self.session_id = session_id
        self.url = url
        self.api_key = api_key
        self.max_reconnect_attempts = max_reconnect_attempts
        self.reconnect_delay = reconnect_delay
        self.heartbeat_interval = heartbeat_interval
        self.connect_timeout = connect_timeout

        self.ws = None
        self.state = ConnectionState.DISCONNECTED
        self.reconnect_attempts = 0

        # Incremented by every connect attempt and every disconnect; callbacks
        # carrying an older epoch belong to a superseded connection
        self._epoch = 0
        self._deliberate_close = False
        self._recv_task: Optional[asyncio.Task] = None
        self._heartbeat_task: Optional[asyncio.Task] = None
        self._reconnect_task: Optional[asyncio.Task] = None

        # Channel notifications never share a registry with provider event types
        self._listeners: Dict[str, List[Listener]] = {}
        self._catch_all_listeners: List[Listener] = []
        self._channel_listeners: Dict[str, List[Listener]] = {}
        self._listener_tasks: Set[asyncio.Task] = set()
        logger.info(f"AvatarRealtimeClient initialized for session: {session_id}")

    # Listener registration

    def on(self, event_type: str, listener: Listener) -> None:
        """Register a listener for one provider event type."""
        self._listeners.setdefault(event_type, []).append(listener)

    def off(self, event_type: str, listener: Listener) -> None:
        listeners = self._listeners.get(event_type, [])
        if listener in listeners:
            listeners.remove(listener)

    def on_any(self, listener: Listener) -> None:
        """Register a listener for every inbound provider event."""
        self._catch_all_listeners.append(listener)

    def off_any(self, listener: Listener) -> None:
        if listener in self._catch_all_listeners:
            self._catch_all_listeners.remove(listener)

    def on_channel(self, topic: str, listener: Listener) -> None:
        """Register a listener for a channel notification: connected, disconnected or error."""
        self._channel_listeners.setdefault(topic, []).append(listener)

    def off_channel(self, topic: str, listener: Listener) -> None:
        listeners = self._channel_listeners.get(topic, [])
        if listener in listeners:
            listeners.remove(listener)

    def _emit(self, topic: str, payload: Any) -> None:
        for listener in list(self._listeners.get(topic, [])):
            self._invoke(listener, topic, payload)

    def _emit_any(self, event: AvatarEvent) -> None:
        for listener in list(self._catch_all_listeners):
            self._invoke(listener, event.type, event)

    def _notify(self, topic: str, payload: Any) -> None:
        for listener in list(self._channel_listeners.get(topic, [])):
            self._invoke(listener, topic, payload)

    def _invoke(self, listener: Listener, topic: str, payload: Any) -> None:
        try:
            result = listener(payload)
            if inspect.isawaitable(result):
                task = asyncio.ensure_future(result)
                self._listener_tasks.add(task)
                task.add_done_callback(lambda t: self._listener_done(t, topic))
        except Exception as e:
            logger.error(f"Listener for {topic} failed: {e}", exc_info=True)

    def _listener_done(self, task: asyncio.Task, topic: str) -> None:
        self._listener_tasks.discard(task)
        if task.cancelled():
            return
        error = task.exception()
        if error is not None:
            logger.error(f"Async listener for {topic} failed: {error}", exc_info=error)

    # Connection lifecycle

    async def connect(self) -> None:
        """
        Open the realtime channel.

        Raises:
            AvatarConnectionError: If the socket could not be opened
        """
        if self.state in (ConnectionState.CONNECTING, ConnectionState.CONNECTED):
            logger.warning(f"Connect ignored, channel already {self.state.value}")
            return

        self._deliberate_close = False
        self._epoch += 1
        epoch = self._epoch
        self.state = ConnectionState.CONNECTING

        headers = {"Authorization": f"Bearer {self.api_key}"}
        try:
            logger.info(f"Connecting to avatar realtime channel: {self.url}")
            ws = await asyncio.wait_for(
                websockets.connect(
                    self.url,
                    additional_headers=headers,
                    user_agent_header=CLIENT_USER_AGENT,
                ),
                timeout=self.connect_timeout,
            )
        except Exception as e:
            logger.error(f"Failed to connect avatar realtime channel: {e}")
            if epoch == self._epoch:
                self.state = ConnectionState.DISCONNECTED
            self._notify(NOTIFY_ERROR, e)
            raise AvatarConnectionError(str(e)) from e

        if epoch != self._epoch:
            # disconnect() ran while this attempt was in flight
            logger.info("Connection attempt superseded, closing late socket")
            try:
                await ws.close(code=CLOSE_CODE_NORMAL, reason="Client disconnect")
            except Exception as e:
                logger.warning(f"Error closing superseded socket: {e}")
            return

        self.ws = ws
        self.state = ConnectionState.CONNECTED
        self.reconnect_attempts = 0
        self._start_heartbeat(epoch)
        self._recv_task = asyncio.create_task(self._recv_loop(ws, epoch))
        logger.info(f"Avatar realtime channel connected for session: {self.session_id}")
        self._notify(NOTIFY_CONNECTED, {"session_id": self.session_id})

    async def _recv_loop(self, ws, epoch: int) -> None:
        try:
            async for message in ws:
                self._handle_message(message)
        except ConnectionClosed as e:
            logger.warning(f"Avatar realtime channel closed during receive: {e}")
        except Exception as e:
            logger.error(f"Error in avatar receive loop: {e}", exc_info=True)

        code = ws.close_code if ws.close_code is not None else CLOSE_CODE_ABNORMAL
        self._handle_close(epoch, code, ws.close_reason or "")

    def _handle_message(self, message) -> None:
        if isinstance(message, bytes):
            message = message.decode("utf-8", errors="replace")
        try:
            event = AvatarEvent.model_validate_json(message)
        except ValidationError as e:
            logger.warning(f"Dropping malformed avatar event: {message[:100]!r} ({e.error_count()} errors)")
            return

        logger.debug(f"Avatar event received: {event.type} {event.event_id}")
        self._emit(event.type, event)
        self._emit_any(event)

    def _handle_close(self, epoch: int, code: int, reason: str) -> Optional[float]:
        """
        React to the socket closing.

        Returns:
            The delay of the scheduled reconnect, or None if none was scheduled
        """
        if epoch != self._epoch:
            logger.debug(f"Ignoring close from superseded connection (code {code})")
            return None

        logger.info(f"Avatar realtime channel closed: {code} - {reason}")
        self.ws = None
        self.state = ConnectionState.DISCONNECTED
        self._stop_heartbeat()
        self._notify(NOTIFY_DISCONNECTED, {"code": code, "reason": reason})

        if self._deliberate_close or code == CLOSE_CODE_NORMAL:
            return None
        return self._schedule_reconnect()

    def _schedule_reconnect(self) -> Optional[float]:
        if self.reconnect_attempts >= self.max_reconnect_attempts:
            logger.error(
                f"Max reconnection attempts ({self.max_reconnect_attempts}) reached "
                f"for session: {self.session_id}"
            )
            return None

        self.reconnect_attempts += 1
        delay = self.reconnect_delay * self.reconnect_attempts
        logger.info(
            f"Reconnecting avatar channel (attempt {self.reconnect_attempts}/"
            f"{self.max_reconnect_attempts}) in {delay} seconds"
        )
        self._reconnect_task = asyncio.create_task(
            self._reconnect_after(delay, self._epoch)
        )
        return delay

    async def _reconnect_after(self, delay: float, epoch: int) -> None:
        await asyncio.sleep(delay)
        if self._deliberate_close or epoch != self._epoch:
            return

        try:
            await self.connect()
        except AvatarConnectionError as e:
            logger.error(f"Reconnection attempt {self.reconnect_attempts} failed: {e}")
            if not self._deliberate_close:
                self._notify(NOTIFY_DISCONNECTED, {"code": CLOSE_CODE_ABNORMAL, "reason": str(e)})
                self._schedule_reconnect()

    def _start_heartbeat(self, epoch: int) -> None:
        self._stop_heartbeat()
        self._heartbeat_task = asyncio.create_task(self._heartbeat(epoch))

    def _stop_heartbeat(self) -> None:
        if self._heartbeat_task and not self._heartbeat_task.done():
            if self._heartbeat_task is not asyncio.current_task():
                self._heartbeat_task.cancel()
        self._heartbeat_task = None

    async def _heartbeat(self, epoch: int) -> None:
        """Send keep-alive commands so the provider does not time the session out."""
        while True:
            await asyncio.sleep(self.heartbeat_interval)
            if epoch != self._epoch or self.state != ConnectionState.CONNECTED:
                return
            await self.send_keep_alive()

    async def disconnect(self) -> None:
        """Close the channel deliberately; no reconnect will follow."""
        self._deliberate_close = True
        self._epoch += 1
        self._stop_heartbeat()

        current = asyncio.current_task()
        for task in (self._reconnect_task, self._recv_task):
            if task and not task.done() and task is not current:
                task.cancel()
        self._reconnect_task = None
        self._recv_task = None

        ws, self.ws = self.ws, None
        if ws is not None:
            self.state = ConnectionState.CLOSING
            try:
                await ws.close(code=CLOSE_CODE_NORMAL, reason="Client disconnect")
            except Exception as e:
                logger.warning(f"Error closing avatar realtime channel: {e}")
            self.state = ConnectionState.DISCONNECTED
            logger.info(f"Avatar realtime channel disconnected for session: {self.session_id}")
            self._notify(NOTIFY_DISCONNECTED, {"code": CLOSE_CODE_NORMAL, "reason": "Client disconnect"})
        self.state = ConnectionState.DISCONNECTED

    def is_open(self) -> bool:
        return (
            self.state == ConnectionState.CONNECTED
            and self.ws is not None
            and self.ws.state is State.OPEN
        )

    # Outbound commands

    async def send(self, command: AvatarCommand) -> bool:
        """
        Transmit a command if the channel is connected.

        Returns:
            True if the command was written to the socket, False if it was dropped
        """
        if self.ws is None or self.state != ConnectionState.CONNECTED:
            logger.warning(
                f"Avatar channel not connected, cannot send {command.type} "
                f"(state: {self.state.value})"
            )
            return False

        try:
            await self.ws.send(command.to_wire())
        except ConnectionClosed as e:
            logger.warning(f"Avatar channel closed while sending {command.type}: {e}")
            return False
        except Exception as e:
            logger.error(f"Error sending {command.type}: {e}")
            return False

        logger.debug(f"Sent avatar command: {command.type} {command.event_id}")
        return True

    async def _send_for_id(self, command: AvatarCommand) -> str:
        # The id is returned even when the command was dropped
        await self.send(command)
        return command.event_id

    async def send_speak(self, audio: str) -> str:
        """Send base64 PCM16 24kHz audio for the avatar to speak."""
        return await self._send_for_id(AgentSpeakCommand(audio=audio))

    async def send_speak_end(self, audio: Optional[str] = None) -> str:
        return await self._send_for_id(AgentSpeakEndCommand(audio=audio))

    async def send_interrupt(self) -> str:
        return await self._send_for_id(AgentInterruptCommand())

    async def send_start_listening(self) -> str:
        return await self._send_for_id(AgentStartListeningCommand())

    async def send_stop_listening(self) -> str:
        return await self._send_for_id(AgentStopListeningCommand())

    async def send_audio_buffer_clear(self) -> str:
        return await self._send_for_id(AgentAudioBufferClearCommand())

    async def send_keep_alive(self) -> str:
        return await self._send_for_id(SessionKeepAliveCommand())
