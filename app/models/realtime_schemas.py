"""
Pydantic models for conversational AI events relayed by the browser.

The browser owns the WebRTC leg to the conversational AI service and posts
the data channel events it sees to the relay endpoint. Only ``type`` is
required; provider specific fields are optional and extras are preserved.
"""

from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field


class RealtimeEvent(BaseModel):
    """Event envelope from the conversational AI leg."""

    model_config = ConfigDict(extra="allow")

    type: str = Field(..., description="Event type identifier")
    text: Optional[str] = None
    delta: Optional[str] = None
    audio: Optional[str] = Field(None, description="Base64-encoded audio data")
    content: Optional[str] = None
    item: Optional[Dict[str, Any]] = None
    transcript: Optional[str] = None

    @property
    def audio_payload(self) -> Optional[str]:
        """Audio carried by a full or delta audio event."""
        return self.audio or self.delta

    @property
    def text_payload(self) -> Optional[str]:
        """Text carried by a full or delta text event."""
        return self.text or self.delta
