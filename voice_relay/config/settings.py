"""
Runtime configuration for the relay.

Settings are read once from the environment (optionally populated from a .env
file) into an immutable ``RelayConfig`` that is handed to every call session,
so nothing in the relay reads process-wide globals once a call is running.
"""

import logging
import os
from typing import Literal, Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from voice_relay.config.constants import (
    AUDIO_CODEC_PCM16,
    DEFAULT_FLUSH_DELAY_MS,
    DEFAULT_MIN_TURN_MS,
    DEFAULT_REALTIME_MODEL,
    DEFAULT_REALTIME_URL,
    DEFAULT_SILENCE_MS,
    DEFAULT_SYSTEM_MESSAGE,
    DEFAULT_VOICE,
    LOGGER_NAME,
    TURN_DETECTION_SILENCE,
    TURN_DETECTION_VAD,
)

logger = logging.getLogger(LOGGER_NAME)


class RelayConfig(BaseModel):
    """Configuration injected into each call session."""

    model_config = ConfigDict(frozen=True)

    openai_api_key: Optional[str] = Field(None, description="OpenAI API key")
    realtime_model: str = Field(DEFAULT_REALTIME_MODEL, description="Realtime model name")
    realtime_url: str = Field(DEFAULT_REALTIME_URL, description="Realtime websocket endpoint")
    voice: str = Field(DEFAULT_VOICE, description="Voice used for replies")
    instructions: str = Field(DEFAULT_SYSTEM_MESSAGE, description="Behavioral instructions")
    audio_codec: Literal["pcm16", "passthrough"] = Field(
        AUDIO_CODEC_PCM16, description="Caller audio handling before it is appended"
    )
    turn_detection: Literal["silence", "vad"] = Field(
        TURN_DETECTION_SILENCE, description="What ends a caller turn"
    )
    silence_ms: int = Field(DEFAULT_SILENCE_MS, gt=0, description="Quiet interval that ends a turn")
    min_turn_ms: int = Field(DEFAULT_MIN_TURN_MS, ge=0, description="Shortest audio span treated as a turn")
    flush_delay_ms: int = Field(DEFAULT_FLUSH_DELAY_MS, ge=0, description="Wait before drawing the buffer boundary")
    host: str = "0.0.0.0"
    port: int = Field(5050, gt=0, lt=65536)

    @property
    def decodes_audio(self) -> bool:
        return self.audio_codec == AUDIO_CODEC_PCM16

    @property
    def uses_silence_timer(self) -> bool:
        return self.turn_detection == TURN_DETECTION_SILENCE

    @property
    def uses_peer_vad(self) -> bool:
        return self.turn_detection == TURN_DETECTION_VAD

    def require_api_key(self) -> str:
        """Return the API key or raise if it is not configured."""
        if not self.openai_api_key:
            logger.error("OPENAI_API_KEY environment variable not set")
            raise ValueError("OPENAI_API_KEY environment variable not set")
        return self.openai_api_key


# Environment variable name for each RelayConfig field
ENV_FIELDS = {
    "openai_api_key": "OPENAI_API_KEY",
    "realtime_model": "OPENAI_REALTIME_MODEL",
    "realtime_url": "OPENAI_REALTIME_URL",
    "voice": "VOICE",
    "instructions": "SYSTEM_MESSAGE",
    "audio_codec": "AUDIO_CODEC",
    "turn_detection": "TURN_DETECTION",
    "silence_ms": "SILENCE_MS",
    "min_turn_ms": "MIN_TURN_MS",
    "flush_delay_ms": "FLUSH_DELAY_MS",
    "host": "HOST",
    "port": "PORT",
}


def load_settings(env: Optional[Mapping[str, str]] = None) -> RelayConfig:
    """
    Build a RelayConfig from environment variables.

    Unset variables fall back to the model defaults. A missing API key is not
    an error here; callers enforce it with ``require_api_key``.

    Args:
        env: Mapping to read from, defaults to ``os.environ``

    Returns:
        RelayConfig: The validated configuration

    Raises:
        ValueError: If a variable holds a value the model rejects
    """
    env = os.environ if env is None else env
    values = {
        field: env[name] for field, name in ENV_FIELDS.items() if env.get(name)
    }
    if "audio_codec" in values:
        values["audio_codec"] = values["audio_codec"].lower()
    if "turn_detection" in values:
        values["turn_detection"] = values["turn_detection"].lower()

    try:
        return RelayConfig(**values)
    except ValidationError as e:
        logger.error(f"Invalid relay configuration: {e}")
        raise ValueError(f"Invalid relay configuration: {e}") from e
