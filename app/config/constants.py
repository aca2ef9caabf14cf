"""
Constants and configuration values used throughout the application.

This module defines constants that are used across different parts of the application,
providing a centralized location for protocol names and timing values so that the
avatar channel, the bridge and the HTTP layer agree on them.
"""

# Logger name used throughout the application
LOGGER_NAME = "avatar_relay"

# Client identifier sent when opening the avatar realtime channel
CLIENT_USER_AGENT = "AvatarRealtimeRelay/1.0"

# Default conversational AI settings for ephemeral tokens
DEFAULT_REALTIME_MODEL = "gpt-realtime"
DEFAULT_REALTIME_VOICE = "marin"

# Provider REST endpoints
HEYGEN_API_BASE = "https://api.heygen.com/v1"
OPENAI_CLIENT_SECRETS_URL = "https://api.openai.com/v1/realtime/client_secrets"

# Avatar channel connection management
MAX_RECONNECT_ATTEMPTS = 5
RECONNECT_DELAY = 1.0  # seconds, multiplied by the attempt number
HEARTBEAT_INTERVAL = 30.0  # seconds
CONNECTION_TIMEOUT = 30.0  # seconds
CLOSE_CODE_NORMAL = 1000
CLOSE_CODE_ABNORMAL = 1006

# Placeholder utterance length for text speech without TTS
SIMULATED_SPEECH_SECONDS = 1.0

# Channel lifecycle notifications
NOTIFY_CONNECTED = "connected"
NOTIFY_DISCONNECTED = "disconnected"
NOTIFY_ERROR = "error"

# Outbound avatar command types
COMMAND_AGENT_SPEAK = "agent.speak"
COMMAND_AGENT_SPEAK_END = "agent.speak_end"
COMMAND_AGENT_INTERRUPT = "agent.interrupt"
COMMAND_AGENT_START_LISTENING = "agent.start_listening"
COMMAND_AGENT_STOP_LISTENING = "agent.stop_listening"
COMMAND_AGENT_AUDIO_BUFFER_CLEAR = "agent.audio_buffer_clear"
COMMAND_SESSION_KEEP_ALIVE = "session.keep_alive"

# Inbound avatar event types
AVATAR_EVENT_SPEAK_STARTED = "agent.speak_started"
AVATAR_EVENT_SPEAK_ENDED = "agent.speak_ended"
AVATAR_EVENT_SPEAK_INTERRUPTED = "agent.speak_interrupted"
AVATAR_EVENT_IDLE_STARTED = "agent.idle_started"
AVATAR_EVENT_IDLE_ENDED = "agent.idle_ended"

# Conversational AI event types relayed by the browser
REALTIME_RESPONSE_AUDIO = "response.audio"
REALTIME_RESPONSE_AUDIO_DELTA = "response.audio.delta"
REALTIME_RESPONSE_TEXT = "response.text"
REALTIME_RESPONSE_TEXT_DELTA = "response.text.delta"
REALTIME_RESPONSE_TRANSCRIPT_DONE = "response.audio_transcript.done"
REALTIME_RESPONSE_TEXT_DONE = "response.text.done"
REALTIME_RESPONSE_DONE = "response.done"
REALTIME_INPUT_TEXT = "input_text"
REALTIME_INPUT_AUDIO = "input_audio"
REALTIME_INPUT_AUDIO_STOP = "input_audio.stop"
REALTIME_ERROR = "error"
REALTIME_USER_SPEECH = "user_speech"
