"""
Audio format conversion between the telephony peer and the Realtime API.

Twilio delivers 8-bit G.711 mu-law frames. When the Realtime session is
configured for linear PCM input, each frame is decoded to 16-bit little-endian
samples before it is appended; otherwise frames pass through untouched. Reply
audio is requested in mu-law and never needs converting.
"""

import base64
import logging

import numpy as np

from voice_relay.config.constants import (
    AUDIO_CODEC_PASSTHROUGH,
    AUDIO_CODEC_PCM16,
    LOGGER_NAME,
    REALTIME_FORMAT_G711_ULAW,
    REALTIME_FORMAT_PCM16,
)

logger = logging.getLogger(LOGGER_NAME)

MULAW_BIAS = 0x84
PCM16_MIN = -32768
PCM16_MAX = 32767


def _build_mulaw_table() -> np.ndarray:
    """Decode every mu-law code point once."""
    table = np.zeros(256, dtype=np.int32)
    for code in range(256):
        inverted = ~code & 0xFF
        sign = inverted & 0x80
        exponent = (inverted >> 4) & 0x07
        mantissa = inverted & 0x0F
        magnitude = (((mantissa << 3) + MULAW_BIAS) << exponent) - MULAW_BIAS
        table[code] = -magnitude if sign else magnitude
    return np.clip(table, PCM16_MIN, PCM16_MAX).astype("<i2")


MULAW_DECODE_TABLE = _build_mulaw_table()


def decode_mulaw(frame: bytes) -> bytes:
    """
    Decode mu-law bytes to 16-bit little-endian linear PCM.

    Args:
        frame: Raw mu-law samples, one byte each

    Returns:
        bytes: Two bytes per input sample
    """
    samples = np.frombuffer(frame, dtype=np.uint8)
    return MULAW_DECODE_TABLE[samples].tobytes()


class AudioFormatAdapter:
    """Stateless converter selected by the session's codec mode."""

    def __init__(self, codec: str = AUDIO_CODEC_PCM16):
        if codec not in (AUDIO_CODEC_PCM16, AUDIO_CODEC_PASSTHROUGH):
            raise ValueError(f"Unsupported audio codec mode: {codec}")
        self.codec = codec

    @property
    def input_audio_format(self) -> str:
        """Realtime API input format matching this adapter's output."""
        if self.codec == AUDIO_CODEC_PCM16:
            return REALTIME_FORMAT_PCM16
        return REALTIME_FORMAT_G711_ULAW

    @property
    def output_audio_format(self) -> str:
        return REALTIME_FORMAT_G711_ULAW

    def decode(self, frame: bytes) -> bytes:
        if self.codec == AUDIO_CODEC_PASSTHROUGH:
            return frame
        return decode_mulaw(frame)

    def convert_payload(self, payload: str) -> str:
        """Convert a base64 telephony payload to a base64 Realtime payload."""
        if self.codec == AUDIO_CODEC_PASSTHROUGH:
            return payload
        return base64.b64encode(self.decode(base64.b64decode(payload))).decode("utf-8")
