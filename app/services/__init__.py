"""
Services module for external API integrations in the avatar realtime relay.

Key components:
- heygen_client: Async REST client for the avatar provider's streaming API
  (session create/start/stop, text tasks, avatar list).
- openai_token: Ephemeral client secret minting for the conversational AI
  service, so the browser can open its WebRTC leg without the API key.
- errors: ConfigurationError for missing credentials and ProviderAPIError for
  non-success provider responses.

Usage examples:
```python
from app.services.heygen_client import HeyGenClient
from app.services.openai_token import generate_realtime_token

async def bootstrap():
    heygen = HeyGenClient()
    response = await heygen.create_session()
    await heygen.start_session(response["data"]["session_id"])

    token = await generate_realtime_token()
    return response["data"], token["value"]
```
"""
