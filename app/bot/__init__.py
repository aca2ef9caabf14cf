"""
Bot module for driving a streaming avatar from a conversational AI session.

Key components:
- AvatarRealtimeClient: Client for the avatar provider's realtime control
  channel over WebSockets, with linear-backoff reconnection, a keep-alive
  heartbeat and type-keyed event listeners.
- RealtimeAvatarBridge: Translates conversational AI events (relayed by the
  browser) into avatar commands and tracks speaking/listening state.

Usage examples:
```python
from app.bot import AvatarRealtimeClient, RealtimeAvatarBridge

async def drive_avatar(session_id, realtime_endpoint, api_key):
    client = AvatarRealtimeClient(session_id, realtime_endpoint, api_key)
    bridge = RealtimeAvatarBridge(client)
    await client.connect()

    await bridge.process_event({"type": "input_audio"})
    await bridge.process_event({"type": "response.audio.delta", "delta": audio_b64})
    await bridge.process_event({"type": "response.done"})
    print(bridge.get_state())

    # Clears state and disconnects the client
    await bridge.destroy()
```
"""

from app.bot.avatar_realtime import (
    AvatarConnectionError,
    AvatarRealtimeClient,
    ConnectionState,
)
from app.bot.realtime_avatar_bridge import RealtimeAvatarBridge

__all__ = [
    "AvatarConnectionError",
    "AvatarRealtimeClient",
    "ConnectionState",
    "RealtimeAvatarBridge",
]
