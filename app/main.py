"""
FastAPI server for the avatar realtime relay.

This module initializes the FastAPI application that mediates between a
browser-side conversational AI session and a streaming avatar. It exposes
session lifecycle routes, relays conversational AI events to each session's
avatar bridge, and proxies the avatar provider's REST API.
"""

import asyncio
import os
from contextlib import asynccontextmanager
from pathlib import Path

import dotenv
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from app.config.logging_config import configure_logging
from app.handlers.avatar_handlers import (
    handle_list_avatars,
    handle_provider_session_close,
    handle_provider_session_create,
    handle_provider_session_start,
    handle_provider_task,
)
from app.handlers.relay_handlers import (
    handle_bridge_control,
    handle_bridge_state,
    handle_relay_event,
)
from app.handlers.session_handlers import (
    close_all_sessions,
    handle_session_create,
    handle_session_end,
    handle_session_info,
    handle_stream_stop,
    run_session_reaper,
)
from app.models.api_schemas import (
    ControlRequest,
    CreateSessionRequest,
    HeyGenSessionRequest,
    RelayEventRequest,
    SessionIdRequest,
    TaskRequest,
)
from app.models.session import SessionManager
from app.services.errors import ConfigurationError, ProviderAPIError
from app.services.heygen_client import HeyGenClient
from app.services.openai_token import generate_realtime_token

# Load environment variables from .env file if it exists
env_path = Path(".") / ".env"
if env_path.exists():
    dotenv.load_dotenv(env_path)

logger = configure_logging()

PORT = int(os.getenv("PORT", "5000"))
HOST = os.getenv("HOST", "0.0.0.0")
SESSION_TTL_SECONDS = float(os.getenv("SESSION_TTL_SECONDS", "3600"))
SESSION_REAP_INTERVAL_SECONDS = float(os.getenv("SESSION_REAP_INTERVAL_SECONDS", "60"))

session_manager = SessionManager()
heygen_client = HeyGenClient()


@asynccontextmanager
async def lifespan(app: FastAPI):
    reaper = None
    if SESSION_TTL_SECONDS > 0:
        reaper = asyncio.create_task(
            run_session_reaper(
                session_manager,
                heygen_client,
                SESSION_TTL_SECONDS,
                SESSION_REAP_INTERVAL_SECONDS,
            )
        )
    try:
        yield
    finally:
        if reaper is not None:
            reaper.cancel()
        await close_all_sessions(session_manager)
        logger.info("All sessions closed")


app = FastAPI(
    title="Avatar Realtime Relay",
    description="Relay between a conversational AI realtime session and a streaming avatar",
    version="1.0.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(ProviderAPIError)
async def provider_error_handler(request: Request, exc: ProviderAPIError):
    logger.error(f"{request.url.path} provider error: {exc}")
    return JSONResponse(status_code=500, content={"error": exc.detail})


@app.exception_handler(ConfigurationError)
async def configuration_error_handler(request: Request, exc: ConfigurationError):
    logger.error(f"{request.url.path} configuration error: {exc}")
    return JSONResponse(status_code=500, content={"error": str(exc)})


@app.get("/health")
async def health_check():
    """Health check endpoint for monitoring system status.

    Returns:
        dict: Status, whether provider keys are configured and session counts.
    """
    return {
        "status": "healthy",
        "heygen_api_key_configured": bool(os.getenv("HEYGEN_API_KEY")),
        "openai_api_key_configured": bool(os.getenv("OPENAI_API_KEY")),
        "active_sessions": len(session_manager),
        "active_bridges": session_manager.count_bridges(),
    }


@app.get("/")
async def root():
    """Root endpoint to display basic information about the API."""
    return {
        "name": "Avatar Realtime Relay",
        "description": "Relay between a conversational AI realtime session and a streaming avatar",
        "version": "1.0.0",
        "endpoints": {
            "/token": "Ephemeral conversational AI token",
            "/api/session/create": "Create a relay session",
            "/api/realtime/events": "Relay a conversational AI event to the avatar bridge",
            "/api/heygen/state/{session_id}": "Avatar bridge state",
            "/api/heygen/control/{session_id}": "Direct avatar control",
            "/session/{session_id}": "Session info (GET /info) and teardown (DELETE)",
            "/health": "Health check endpoint",
        },
    }


@app.get("/token")
async def token():
    """Mint an ephemeral token the browser uses to open its WebRTC leg."""
    return await generate_realtime_token()


@app.get("/api/heygen/avatars")
async def list_avatars():
    return await handle_list_avatars(heygen_client)


@app.post("/api/heygen/session")
async def create_provider_session(request: HeyGenSessionRequest):
    return await handle_provider_session_create(request, heygen_client)


@app.post("/api/session/create")
async def create_session(request: CreateSessionRequest):
    """Create a relay session, with an avatar channel when a character is given."""
    return await handle_session_create(request, session_manager, heygen_client)


@app.get("/session/{session_id}/info")
async def session_info(session_id: str):
    return await handle_session_info(session_id, session_manager)


@app.post("/api/realtime/events")
async def relay_event(request: RelayEventRequest):
    """Receive a conversational AI data channel event from the browser."""
    return await handle_relay_event(request, session_manager, heygen_client)


@app.delete("/session/{session_id}")
async def end_session(session_id: str):
    return await handle_session_end(session_id, session_manager, heygen_client)


@app.post("/api/heygen/start")
async def start_provider_session(request: SessionIdRequest):
    return await handle_provider_session_start(request, heygen_client)


@app.post("/api/heygen/close")
async def close_provider_session(request: SessionIdRequest):
    return await handle_provider_session_close(request, heygen_client)


@app.post("/api/heygen/task")
async def provider_task(request: TaskRequest):
    return await handle_provider_task(request, heygen_client)


@app.post("/api/heygen/stop")
async def stop_stream(request: SessionIdRequest):
    """Release a session's avatar channel without ending the session."""
    return await handle_stream_stop(request.sessionId, session_manager)


@app.get("/api/heygen/state/{session_id}")
async def bridge_state(session_id: str):
    return await handle_bridge_state(session_id, session_manager)


@app.post("/api/heygen/control/{session_id}")
async def bridge_control(session_id: str, request: ControlRequest):
    return await handle_bridge_control(session_id, request, session_manager)


if __name__ == "__main__":
    import uvicorn

    logger.info(f"Starting server on http://{HOST}:{PORT}")
    uvicorn.run(app, host=HOST, port=PORT)
