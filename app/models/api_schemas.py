"""
Pydantic models for the relay's HTTP request and response bodies.

Field names follow the JSON the browser client sends and expects, which is
why some of them are camelCase.
"""

from typing import Any, Dict, Optional

from pydantic import BaseModel, Field, field_validator


class VoiceSettings(BaseModel):
    rate: float = 1


class STTSettings(BaseModel):
    provider: str = "deepgram"
    confidence: float = 0.55


class HeyGenSessionRequest(BaseModel):
    """Options for creating an avatar provider streaming session."""

    quality: Optional[str] = None
    voice: Optional[VoiceSettings] = None
    video_encoding: Optional[str] = None
    disable_idle_timeout: Optional[bool] = None
    version: Optional[str] = None
    stt_settings: Optional[STTSettings] = None
    activity_idle_timeout: Optional[int] = None
    character: Optional[str] = Field(None, description="Avatar id to render")
    voice_id: Optional[str] = None


class CreateSessionRequest(BaseModel):
    """Body of POST /api/session/create."""

    character: Optional[str] = Field(
        None, description="Avatar id; omit for a session without an avatar"
    )
    voice: Optional[Any] = None


class SessionIdRequest(BaseModel):
    sessionId: str = Field(..., description="Session identifier")

    @field_validator("sessionId")
    def validate_session_id(cls, v):
        """Validate that the session id is not blank."""
        if not v.strip():
            raise ValueError("sessionId cannot be empty")
        return v


class TaskRequest(SessionIdRequest):
    text: str = Field(..., description="Text for the avatar to speak")

    @field_validator("text")
    def validate_text(cls, v):
        """Validate that the task text is not blank."""
        if not v.strip():
            raise ValueError("text cannot be empty")
        return v


class RelayEventRequest(SessionIdRequest):
    """Body of POST /api/realtime/events."""

    event: Dict[str, Any] = Field(..., description="Conversational AI event")


class ControlRequest(BaseModel):
    """Body of POST /api/heygen/control/{session_id}."""

    action: str = Field(
        ..., description="One of speak, interrupt, start_listening, stop_listening"
    )
    text: Optional[str] = None


class BridgeState(BaseModel):
    """Snapshot of a bridge's speaking and listening state."""

    isConnected: bool = False
    isSpeaking: bool = False
    isListening: bool = False
    currentSpeakEventId: Optional[str] = None
