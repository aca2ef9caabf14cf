"""
Bridge module for driving the streaming avatar from conversational AI events.

The browser relays the conversational AI data channel events to the server;
this module translates them into avatar control commands and tracks whether
the avatar is currently speaking or listening.
"""

import asyncio
import logging
from typing import Any, Awaitable, Callable, Dict, Optional, Union

from pydantic import ValidationError

from app.bot.avatar_realtime import AvatarRealtimeClient
from app.config.constants import (
    AVATAR_EVENT_IDLE_ENDED,
    AVATAR_EVENT_IDLE_STARTED,
    AVATAR_EVENT_SPEAK_ENDED,
    AVATAR_EVENT_SPEAK_INTERRUPTED,
    AVATAR_EVENT_SPEAK_STARTED,
    LOGGER_NAME,
    NOTIFY_CONNECTED,
    NOTIFY_DISCONNECTED,
    REALTIME_ERROR,
    REALTIME_INPUT_AUDIO,
    REALTIME_INPUT_AUDIO_STOP,
    REALTIME_INPUT_TEXT,
    REALTIME_RESPONSE_AUDIO,
    REALTIME_RESPONSE_AUDIO_DELTA,
    REALTIME_RESPONSE_DONE,
    REALTIME_RESPONSE_TEXT,
    REALTIME_RESPONSE_TEXT_DELTA,
    REALTIME_RESPONSE_TEXT_DONE,
    REALTIME_RESPONSE_TRANSCRIPT_DONE,
    SIMULATED_SPEECH_SECONDS,
)
from app.models.api_schemas import BridgeState
from app.models.avatar_schemas import (
    AgentAudioBufferClearCommand,
    AgentInterruptCommand,
    AgentSpeakCommand,
    AgentSpeakEndCommand,
    AgentStartListeningCommand,
    AgentStopListeningCommand,
)
from app.models.realtime_schemas import RealtimeEvent

logger = logging.getLogger(LOGGER_NAME)

EventHandler = Callable[[RealtimeEvent], Awaitable[None]]


class RealtimeAvatarBridge:
    """
    Bridge between conversational AI events and the avatar control channel.

    This class handles:
    - Forwarding response audio to the avatar as speech
    - Starting and stopping the avatar's listening animation around user input
    - Interrupting the avatar when the user starts talking over it
    - Tracking the in-flight speech id and listening flag

    State only changes when the corresponding command was actually written to
    the channel, so get_state() never reports a transition the avatar did not
    receive.
    """

    def __init__(self, client: Optional[AvatarRealtimeClient] = None):
        self.client: Optional[AvatarRealtimeClient] = None
        self.current_speech_id: Optional[str] = None
        self.is_listening = False
        self._simulated_speech_task: Optional[asyncio.Task] = None

        self.handlers: Dict[str, EventHandler] = {
            REALTIME_RESPONSE_AUDIO: self._handle_response_audio,
            REALTIME_RESPONSE_AUDIO_DELTA: self._handle_response_audio,
            REALTIME_RESPONSE_TEXT: self._handle_response_text,
            REALTIME_RESPONSE_TEXT_DELTA: self._handle_response_text,
            REALTIME_RESPONSE_TRANSCRIPT_DONE: self._handle_final_text,
            REALTIME_RESPONSE_TEXT_DONE: self._handle_final_text,
            REALTIME_RESPONSE_DONE: self._handle_response_done,
            REALTIME_INPUT_TEXT: self._handle_user_text_input,
            REALTIME_INPUT_AUDIO: self._handle_user_audio_start,
            REALTIME_INPUT_AUDIO_STOP: self._handle_user_audio_stop,
            REALTIME_ERROR: self._handle_error,
        }
        self._avatar_listeners = {
            AVATAR_EVENT_SPEAK_STARTED: self._on_speak_started,
            AVATAR_EVENT_SPEAK_ENDED: self._on_speak_ended,
            AVATAR_EVENT_SPEAK_INTERRUPTED: self._on_speak_interrupted,
            AVATAR_EVENT_IDLE_STARTED: self._on_idle_started,
            AVATAR_EVENT_IDLE_ENDED: self._on_idle_ended,
        }
        self._channel_listeners = {
            NOTIFY_CONNECTED: self._on_connected,
            NOTIFY_DISCONNECTED: self._on_disconnected,
        }

        if client is not None:
            self.set_client(client)

    @property
    def is_speaking(self) -> bool:
        return self.current_speech_id is not None

    def set_client(self, client: AvatarRealtimeClient) -> None:
        """Attach a channel client, detaching listeners from any previous one."""
        if self.client is not None:
            self._remove_listeners(self.client)
        self.client = client
        for event_type, listener in self._avatar_listeners.items():
            client.on(event_type, listener)
        for topic, listener in self._channel_listeners.items():
            client.on_channel(topic, listener)

    def _remove_listeners(self, client: AvatarRealtimeClient) -> None:
        for event_type, listener in self._avatar_listeners.items():
            client.off(event_type, listener)
        for topic, listener in self._channel_listeners.items():
            client.off_channel(topic, listener)

    # Avatar provider events

    def _on_speak_started(self, event) -> None:
        logger.info("Avatar started speaking")

    def _on_speak_ended(self, event) -> None:
        logger.info("Avatar stopped speaking")
        self.current_speech_id = None

    def _on_speak_interrupted(self, event) -> None:
        logger.info("Avatar speech interrupted")
        self.current_speech_id = None

    def _on_idle_started(self, event) -> None:
        logger.debug("Avatar entered idle state")

    def _on_idle_ended(self, event) -> None:
        logger.debug("Avatar left idle state")

    def _on_connected(self, payload: Dict[str, Any]) -> None:
        logger.info(f"Avatar channel connected for session: {payload.get('session_id')}")

    def _on_disconnected(self, payload: Dict[str, Any]) -> None:
        logger.warning(
            f"Avatar channel disconnected: {payload.get('code')} - {payload.get('reason')}"
        )

    # Conversational AI events

    async def process_event(self, event: Union[Dict[str, Any], RealtimeEvent]) -> None:
        """
        Translate one conversational AI event into avatar commands.

        Never raises for bad input or a missing channel; such events are logged
        and skipped.

        Args:
            event: The relayed event, as a dict or a parsed RealtimeEvent
        """
        if not isinstance(event, RealtimeEvent):
            try:
                event = RealtimeEvent.model_validate(event)
            except ValidationError as e:
                logger.warning(f"Ignoring invalid conversational AI event: {e}")
                return

        logger.debug(f"Received conversational AI event: {event.type}")

        if self.client is None or not self.client.is_open():
            logger.warning(
                f"Avatar channel not available, skipping event: {event.type} "
                f"(client: {self.client is not None})"
            )
            return

        handler = self.handlers.get(event.type)
        if handler is None:
            logger.info(f"Unhandled conversational AI event type: {event.type}")
            return
        await handler(event)

    async def _handle_response_audio(self, event: RealtimeEvent) -> None:
        audio = event.audio_payload
        if not audio:
            logger.warning(f"No audio data found in {event.type} event")
            return

        command = AgentSpeakCommand(audio=audio)
        if not await self.client.send(command):
            return
        if self.current_speech_id is None:
            # Track the first chunk of the utterance only
            self.current_speech_id = command.event_id
            logger.info(f"Started avatar speech, event_id: {command.event_id}")
        else:
            logger.debug(f"Continued avatar speech, chunk length: {len(audio)}")

    async def _handle_response_text(self, event: RealtimeEvent) -> None:
        # Text would need a TTS step before the avatar can speak it
        text = event.text_payload
        if text:
            logger.info(f"Conversational AI text response: {text[:100]}")

    async def _handle_final_text(self, event: RealtimeEvent) -> None:
        logger.info(f"Final transcript/text: {event.text or event.transcript}")

    async def _handle_response_done(self, event: RealtimeEvent) -> None:
        logger.info("Conversational AI response completed")
        if self.current_speech_id is None:
            return
        if await self.client.send(AgentSpeakEndCommand()):
            self.current_speech_id = None
            logger.info("Ended avatar speech")

    async def _handle_user_text_input(self, event: RealtimeEvent) -> None:
        logger.info(f"User input text: {event.text or event.content or ''}")
        await self._start_listening()
        # Drop any buffered audio before the next response
        await self.client.send(AgentAudioBufferClearCommand())

    async def _handle_user_audio_start(self, event: RealtimeEvent) -> None:
        logger.info("User started speaking")
        await self._interrupt()
        await self._start_listening()

    async def _handle_user_audio_stop(self, event: RealtimeEvent) -> None:
        logger.info("User stopped speaking")
        await self._stop_listening()

    async def _handle_error(self, event: RealtimeEvent) -> None:
        logger.error(f"Conversational AI error event: {event.model_dump(exclude_none=True)}")

    # State transitions shared by events and direct controls

    async def _interrupt(self) -> None:
        if self.current_speech_id is None:
            return
        if await self.client.send(AgentInterruptCommand()):
            self.current_speech_id = None
            logger.info("Interrupted avatar speech")

    async def _start_listening(self) -> None:
        if self.is_listening:
            return
        if await self.client.send(AgentStartListeningCommand()):
            self.is_listening = True
            logger.info("Started avatar listening animation")

    async def _stop_listening(self) -> None:
        if not self.is_listening:
            return
        if await self.client.send(AgentStopListeningCommand()):
            self.is_listening = False
            logger.info("Stopped avatar listening animation")

    # Direct controls

    async def speak_text(self, text: str) -> None:
        """
        Make the avatar appear to speak for a fixed interval.

        Placeholder for a text-to-speech integration: no audio is synthesized.
        An empty agent.speak establishes the speech id and an agent.speak_end
        follows after SIMULATED_SPEECH_SECONDS unless the speech was ended or
        interrupted first. A real implementation would send synthesized audio
        chunks through the same path as response audio.
        """
        if self.client is None:
            logger.warning("Avatar channel not available, cannot speak text")
            return

        logger.info(f"Would speak text if TTS was integrated: {text[:100]}")
        command = AgentSpeakCommand(audio="")
        if not await self.client.send(command):
            return

        self.current_speech_id = command.event_id
        self._cancel_simulated_speech()
        self._simulated_speech_task = asyncio.create_task(
            self._end_simulated_speech(command.event_id)
        )

    async def _end_simulated_speech(self, speech_id: str) -> None:
        await asyncio.sleep(SIMULATED_SPEECH_SECONDS)
        if self.client is None or self.current_speech_id != speech_id:
            return
        if await self.client.send(AgentSpeakEndCommand()):
            self.current_speech_id = None

    def _cancel_simulated_speech(self) -> None:
        task = self._simulated_speech_task
        if task and not task.done() and task is not asyncio.current_task():
            task.cancel()
        self._simulated_speech_task = None

    async def interrupt(self) -> None:
        if self.client is None:
            return
        await self._interrupt()

    async def start_listening(self) -> None:
        if self.client is None:
            return
        await self._start_listening()

    async def stop_listening(self) -> None:
        if self.client is None:
            return
        await self._stop_listening()

    def get_state(self) -> BridgeState:
        return BridgeState(
            isConnected=self.client.is_open() if self.client is not None else False,
            isSpeaking=self.is_speaking,
            isListening=self.is_listening,
            currentSpeakEventId=self.current_speech_id,
        )

    async def destroy(self) -> None:
        """Clear state and release the channel. Safe to call more than once."""
        self._cancel_simulated_speech()
        self.current_speech_id = None
        self.is_listening = False

        client, self.client = self.client, None
        if client is not None:
            self._remove_listeners(client)
            await client.disconnect()
            logger.info(f"Bridge destroyed for session: {client.session_id}")
