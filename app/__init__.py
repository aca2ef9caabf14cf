"""
Avatar Realtime Relay - conversational AI to streaming avatar bridge

This application relays a browser-side conversational AI session to a
streaming avatar service. The browser owns the WebRTC leg to the conversational
AI and renders the avatar's video; the server creates and tears down avatar
sessions, hands out ephemeral tokens, and keeps one realtime control channel
per session through which it makes the avatar speak, listen and stop.

Architecture Overview:
- FastAPI server exposing session, relay and control routes
- One avatar realtime WebSocket client per session, with reconnection and heartbeat
- A bridge per session translating conversational AI events into avatar commands
- An in-process session registry with TTL reaping

Key Components:
- bot: The avatar realtime client and the event bridge
- config: Constants and logging setup
- handlers: Route handlers for sessions, relayed events and provider pass-throughs
- models: Wire schemas and the session registry
- services: Provider REST clients (avatar sessions, conversational AI tokens)

Getting Started:
1. Set up environment variables (or a .env file):
   - HEYGEN_API_KEY: Avatar provider API key
   - OPENAI_API_KEY: Conversational AI API key
   - PORT: Port to run the server on (default 5000)
   - HOST: Host to bind the server to (default 0.0.0.0)
   - LOG_LEVEL: Logging level (default INFO)
   - SESSION_TTL_SECONDS: Reap sessions older than this (default 3600, 0 disables)

2. Start the server:
   ```bash
   python run.py
   ```
"""
