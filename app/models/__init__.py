"""
Models module for data structures and state management in the avatar realtime relay.

Key components:
- avatar_schemas: Pydantic models for the avatar provider's realtime control
  channel: outbound command envelopes and inbound provider events.
- realtime_schemas: The conversational AI event envelope relayed by the browser.
- api_schemas: HTTP request bodies and the bridge state snapshot.
- session: The session registry that owns each session's avatar client and bridge.

Usage examples:
```python
from app.models.avatar_schemas import AgentSpeakCommand
from app.models.session import SessionManager, SessionRecord, generate_session_id

command = AgentSpeakCommand(audio=audio_b64)
await websocket.send(command.to_wire())

session_manager = SessionManager()
record = session_manager.add_session(SessionRecord(session_id=generate_session_id()))
session_manager.remove_session(record.session_id)
```
"""

from app.models.api_schemas import (
    BridgeState,
    ControlRequest,
    CreateSessionRequest,
    HeyGenSessionRequest,
    RelayEventRequest,
    SessionIdRequest,
    STTSettings,
    TaskRequest,
    VoiceSettings,
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
    generate_event_id,
)
from app.models.realtime_schemas import RealtimeEvent
from app.models.session import SessionManager, SessionRecord, generate_session_id
