"""
Constants and configuration values used throughout the application.

This module defines constants that are used across different parts of the application,
providing a centralized location for protocol names and defaults so both peers'
event vocabularies are spelled the same way everywhere.
"""

# Logger name used throughout the application
LOGGER_NAME = "voice_relay"

# Default OpenAI model and endpoint for the Realtime API
DEFAULT_REALTIME_MODEL = "gpt-4o-realtime-preview"
DEFAULT_REALTIME_URL = "wss://api.openai.com/v1/realtime"
DEFAULT_VOICE = "alloy"

DEFAULT_SYSTEM_MESSAGE = (
    "You are a friendly British maintenance assistant for a property management company. "
    "Collect the caller's maintenance issue, flat/unit number, and urgency; confirm back "
    "succinctly. Keep it polite, natural, and brief."
)

# Turn-taking defaults (milliseconds of media clock / timer delay)
DEFAULT_SILENCE_MS = 800
DEFAULT_MIN_TURN_MS = 250
DEFAULT_FLUSH_DELAY_MS = 100

# Audio codec modes
AUDIO_CODEC_PCM16 = "pcm16"
AUDIO_CODEC_PASSTHROUGH = "passthrough"

# Realtime API audio format names
REALTIME_FORMAT_PCM16 = "pcm16"
REALTIME_FORMAT_G711_ULAW = "g711_ulaw"

# Turn detection modes
TURN_DETECTION_SILENCE = "silence"
TURN_DETECTION_VAD = "vad"

# Prefix for outbound delivery markers
MARK_NAME_PREFIX = "responsePart"

# Realtime API outbound audio event, too frequent to log per send
EVENT_INPUT_AUDIO_BUFFER_APPEND = "input_audio_buffer.append"

# Realtime API inbound event types
EVENT_RESPONSE_OUTPUT_AUDIO_DELTA = "response.output_audio.delta"
EVENT_RESPONSE_AUDIO_DELTA = "response.audio.delta"
EVENT_RESPONSE_DONE = "response.done"
EVENT_SPEECH_STARTED = "input_audio_buffer.speech_started"
EVENT_SPEECH_STOPPED = "input_audio_buffer.speech_stopped"
EVENT_ERROR = "error"

# Error code the Realtime API sends when a commit finds nothing to commit
ERROR_COMMIT_EMPTY = "input_audio_buffer_commit_empty"
