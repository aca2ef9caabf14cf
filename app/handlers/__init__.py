"""
Handlers module for the relay's HTTP routes.

Key components:
- session_handlers: Relay session lifecycle (create with optional avatar
  channel, info, teardown, channel detach, TTL reaping).
- relay_handlers: Forwarding conversational AI events to a session's bridge,
  bridge state queries and direct avatar controls.
- avatar_handlers: Thin pass-throughs to the avatar provider's REST API.

Handlers take validated request models plus the collaborators they need and
return plain dicts; app.main wires them to routes.
"""
