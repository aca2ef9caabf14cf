"""
Configuration module for the avatar realtime relay.

This module provides centralized configuration for the application: protocol
constants shared by the avatar channel and the bridge, and the logging setup.

Key components:
- constants: Wire type names for avatar commands, avatar events and relayed
  conversational AI events, plus reconnect, heartbeat and timeout values.
- logging_config: Console and rotating file logging under one named logger.

Runtime settings (API keys, host, port, session TTL) come from environment
variables, optionally loaded from a .env file by app.main.

Usage examples:
```python
from app.config.constants import LOGGER_NAME, COMMAND_AGENT_SPEAK
from app.config.logging_config import configure_logging

logger = configure_logging()
logger.info("Application started")
```
"""
