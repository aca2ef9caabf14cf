"""
Pydantic models for the avatar provider's realtime control channel.

Every outbound command is an envelope of the form ``{type, event_id, ...payload}``.
Inbound provider events carry at least a ``type``; any other fields are kept
as-is so listeners can read provider specific data.
"""

import random
import string
import time
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from app.config.constants import (
    COMMAND_AGENT_AUDIO_BUFFER_CLEAR,
    COMMAND_AGENT_INTERRUPT,
    COMMAND_AGENT_SPEAK,
    COMMAND_AGENT_SPEAK_END,
    COMMAND_AGENT_START_LISTENING,
    COMMAND_AGENT_STOP_LISTENING,
    COMMAND_SESSION_KEEP_ALIVE,
)

EVENT_ID_ALPHABET = string.ascii_lowercase + string.digits
EVENT_ID_SUFFIX_LENGTH = 7


def generate_event_id(suffix_length: int = EVENT_ID_SUFFIX_LENGTH) -> str:
    """
    Build a best-effort unique identifier: ``{ms timestamp}_{random suffix}``.

    Not cryptographically unique; collisions are negligible at command volumes.
    """
    suffix = "".join(random.choices(EVENT_ID_ALPHABET, k=suffix_length))
    return f"{int(time.time() * 1000)}_{suffix}"


# Outbound commands
class AvatarCommand(BaseModel):
    """Base envelope for every command sent to the avatar provider."""

    type: str = Field(..., description="Command type identifier")
    event_id: str = Field(
        default_factory=generate_event_id, description="Client generated event id"
    )

    def to_wire(self) -> str:
        """Serialize the command, omitting unset optional payload fields."""
        return self.model_dump_json(exclude_none=True)


class AgentSpeakCommand(AvatarCommand):
    """Model for agent.speak: base64 PCM16 24kHz audio for the avatar to lip-sync."""

    type: Literal["agent.speak"] = COMMAND_AGENT_SPEAK
    audio: str = Field(..., description="Base64-encoded audio data, may be empty")


class AgentSpeakEndCommand(AvatarCommand):
    """Model for agent.speak_end with an optional final audio chunk."""

    type: Literal["agent.speak_end"] = COMMAND_AGENT_SPEAK_END
    audio: Optional[str] = Field(None, description="Optional final audio chunk")


class AgentInterruptCommand(AvatarCommand):
    type: Literal["agent.interrupt"] = COMMAND_AGENT_INTERRUPT


class AgentStartListeningCommand(AvatarCommand):
    type: Literal["agent.start_listening"] = COMMAND_AGENT_START_LISTENING


class AgentStopListeningCommand(AvatarCommand):
    type: Literal["agent.stop_listening"] = COMMAND_AGENT_STOP_LISTENING


class AgentAudioBufferClearCommand(AvatarCommand):
    type: Literal["agent.audio_buffer_clear"] = COMMAND_AGENT_AUDIO_BUFFER_CLEAR


class SessionKeepAliveCommand(AvatarCommand):
    type: Literal["session.keep_alive"] = COMMAND_SESSION_KEEP_ALIVE


# Inbound events
class AvatarEvent(BaseModel):
    """Model for an event received from the avatar provider."""

    model_config = ConfigDict(extra="allow")

    type: str = Field(..., description="Event type identifier")
    event_id: Optional[str] = Field(None, description="Provider event id")

    @field_validator("type")
    def validate_type(cls, v):
        """Validate that the event type is not empty."""
        if not v.strip():
            raise ValueError("Event type cannot be empty")
        return v
