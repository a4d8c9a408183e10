"""
Pydantic models for the Twilio Media Streams websocket protocol.

This module defines structured data models for the incoming and outgoing messages
exchanged with the telephony peer, providing type validation and documentation.
"""

import base64
from typing import Annotated, List, Literal, Optional, Union

from pydantic import BaseModel, Field, TypeAdapter, field_validator, model_validator


class BaseTwilioMessage(BaseModel):
    """Base model for all Media Streams messages."""

    event: str = Field(..., description="Message event identifier")
    streamSid: Optional[str] = Field(None, description="Stream identifier")


# Incoming Messages
class ConnectedMessage(BaseTwilioMessage):
    """Model for the connected message sent first on every stream."""

    event: Literal["connected"]
    protocol: Optional[str] = None
    version: Optional[str] = None


class StartMetadata(BaseModel):
    """Stream metadata carried by the start message."""

    streamSid: Optional[str] = Field(None, description="Stream identifier")
    callSid: Optional[str] = Field(None, description="Call identifier")
    tracks: List[str] = Field(default_factory=list)
    mediaFormat: Optional[dict] = Field(None, description="Encoding, sample rate, channels")


class StartMessage(BaseTwilioMessage):
    """Model for the start message that opens a session."""

    event: Literal["start"]
    start: StartMetadata = Field(default_factory=StartMetadata)

    @model_validator(mode="after")
    def require_stream_sid(self):
        """Resolve the stream id from the start block or the top level."""
        if self.start.streamSid is None:
            self.start.streamSid = self.streamSid
        if not self.start.streamSid:
            raise ValueError("start message carries no streamSid")
        return self

    @property
    def stream_sid(self) -> str:
        return self.start.streamSid


class MediaPayload(BaseModel):
    """Audio frame carried by a media message."""

    timestamp: int = Field(..., ge=0, description="Milliseconds since stream start")
    payload: str = Field(..., description="Base64-encoded audio data")
    track: Optional[str] = None
    chunk: Optional[str] = None

    @field_validator("payload")
    def validate_payload(cls, v):
        """Validate that the payload is valid base64."""
        try:
            base64.b64decode(v, validate=True)
        except Exception:
            raise ValueError("Invalid base64 encoded audio data")
        return v


class MediaMessage(BaseTwilioMessage):
    """Model for an inbound audio frame."""

    event: Literal["media"]
    media: MediaPayload


class MarkName(BaseModel):
    name: str = Field(..., description="Name of the delivery marker")


class MarkMessage(BaseTwilioMessage):
    """Model for a delivery acknowledgment."""

    event: Literal["mark"]
    mark: Optional[MarkName] = None


class StopMessage(BaseTwilioMessage):
    """Model for the stop message that ends the stream."""

    event: Literal["stop"]
    stop: Optional[dict] = None


IncomingMessage = Annotated[
    Union[ConnectedMessage, StartMessage, MediaMessage, MarkMessage, StopMessage],
    Field(discriminator="event"),
]

incoming_message_adapter = TypeAdapter(IncomingMessage)


def parse_incoming_message(raw: str) -> IncomingMessage:
    """
    Parse one text frame from the telephony peer.

    Raises:
        pydantic.ValidationError: If the frame is not valid JSON or not a known message
    """
    return incoming_message_adapter.validate_json(raw)


# Outgoing Messages
class OutboundMediaPayload(BaseModel):
    payload: str = Field(..., description="Base64-encoded audio in the caller's format")


class OutboundMediaMessage(BaseTwilioMessage):
    """Model for reply audio sent to the caller."""

    event: Literal["media"] = "media"
    streamSid: str
    media: OutboundMediaPayload


class OutboundMarkMessage(BaseTwilioMessage):
    """Model for a delivery marker sent after a reply fragment."""

    event: Literal["mark"] = "mark"
    streamSid: str
    mark: MarkName


class ClearMessage(BaseTwilioMessage):
    """Model for the clear message that drops buffered playback."""

    event: Literal["clear"] = "clear"
    streamSid: str
