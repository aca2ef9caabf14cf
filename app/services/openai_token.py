"""
Ephemeral token minting for the conversational AI service.

The browser connects to the conversational AI service directly over WebRTC;
the server only hands out a short-lived client secret so the long-lived API
key never reaches the browser.
"""

import logging
import os
from typing import Any, Dict, Optional

import httpx

from app.config.constants import (
    DEFAULT_REALTIME_MODEL,
    DEFAULT_REALTIME_VOICE,
    LOGGER_NAME,
    OPENAI_CLIENT_SECRETS_URL,
)
from app.services.errors import BAD_GATEWAY, GATEWAY_TIMEOUT, ConfigurationError, ProviderAPIError

logger = logging.getLogger(LOGGER_NAME)


async def generate_realtime_token(
    api_key: Optional[str] = None,
    model: Optional[str] = None,
    voice: Optional[str] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> Dict[str, Any]:
    """
    Request an ephemeral client secret for a realtime session.

    Args:
        api_key: API key (defaults to OPENAI_API_KEY)
        model: Realtime model (defaults to OPENAI_REALTIME_MODEL or gpt-realtime)
        voice: Output voice (defaults to OPENAI_REALTIME_VOICE or marin)
        transport: Optional httpx transport, used by tests

    Returns:
        The provider response, including the secret ``value``

    Raises:
        ConfigurationError: If no API key is available
        ProviderAPIError: If the provider rejects the request
    """
    api_key = api_key or os.getenv("OPENAI_API_KEY")
    if not api_key:
        raise ConfigurationError(
            "OPENAI_API_KEY is not set. Please add it to your environment or .env file"
        )

    session_config = {
        "session": {
            "type": "realtime",
            "model": model or os.getenv("OPENAI_REALTIME_MODEL", DEFAULT_REALTIME_MODEL),
            "audio": {
                "output": {
                    "voice": voice or os.getenv("OPENAI_REALTIME_VOICE", DEFAULT_REALTIME_VOICE),
                },
            },
        },
    }

    try:
        async with httpx.AsyncClient(timeout=30.0, transport=transport) as client:
            response = await client.post(
                OPENAI_CLIENT_SECRETS_URL,
                json=session_config,
                headers={"Authorization": f"Bearer {api_key}"},
            )
    except httpx.TimeoutException as e:
        logger.error("OpenAI token request timed out")
        raise ProviderAPIError("openai", GATEWAY_TIMEOUT, f"Request timed out: {e}") from e
    except httpx.RequestError as e:
        logger.error(f"OpenAI token request failed to connect: {e}")
        raise ProviderAPIError("openai", BAD_GATEWAY, f"Failed to reach OpenAI API: {e}") from e

    if response.is_error:
        logger.error(
            f"OpenAI token generation error: {response.status_code} {response.reason_phrase}"
        )
        try:
            detail = response.json()
        except ValueError:
            detail = response.text
        raise ProviderAPIError("openai", response.status_code, detail)

    logger.info("Generated ephemeral realtime token")
    return response.json()
