"""
Pydantic models for OpenAI Realtime API message structures.

This module provides type-safe models for the events exchanged with the Realtime API:
the outbound events the relay emits and the inbound events it consumes.
"""

from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, Field


class RealtimeBaseMessage(BaseModel):
    """Base model for Realtime API messages."""
    type: str
    event_id: Optional[str] = None

    def to_wire(self) -> Dict[str, Any]:
        """Return the event as a dict, omitting unset optional fields."""
        return self.model_dump(exclude_none=True)


# Outbound events
class TurnDetection(BaseModel):
    """Server-side voice activity settings."""
    type: str = "server_vad"
    create_response: bool = False
    interrupt_response: bool = True


class SessionConfig(BaseModel):
    """Session parameters pinned down once per connection."""
    voice: str
    instructions: str
    modalities: List[str] = Field(default_factory=lambda: ["audio", "text"])
    input_audio_format: str
    output_audio_format: str
    turn_detection: TurnDetection = Field(default_factory=TurnDetection)


class SessionUpdateEvent(RealtimeBaseMessage):
    type: Literal["session.update"] = "session.update"
    session: SessionConfig


class InputAudioBufferAppendEvent(RealtimeBaseMessage):
    type: Literal["input_audio_buffer.append"] = "input_audio_buffer.append"
    audio: str = Field(..., description="Base64-encoded audio in the negotiated input format")


class InputAudioBufferCommitEvent(RealtimeBaseMessage):
    type: Literal["input_audio_buffer.commit"] = "input_audio_buffer.commit"


class ResponseCreateEvent(RealtimeBaseMessage):
    type: Literal["response.create"] = "response.create"


class ConversationItemTruncateEvent(RealtimeBaseMessage):
    """Cut an assistant item at the point the caller actually heard."""
    type: Literal["conversation.item.truncate"] = "conversation.item.truncate"
    item_id: str
    content_index: int = 0
    audio_end_ms: int = Field(..., ge=0)


# Inbound events
class ResponseAudioDeltaEvent(RealtimeBaseMessage):
    """Reply audio fragment, already in the caller's telephony format."""
    delta: str
    item_id: str
    response_id: Optional[str] = None
    output_index: Optional[int] = None
    content_index: Optional[int] = None


class ResponseDoneEvent(RealtimeBaseMessage):
    response: Optional[Dict[str, Any]] = None

    @property
    def status(self) -> Optional[str]:
        return (self.response or {}).get("status")

    @property
    def item_ids(self) -> List[str]:
        """Ids of the output items the finished response produced."""
        output = (self.response or {}).get("output") or []
        return [item["id"] for item in output if isinstance(item, dict) and item.get("id")]


class SpeechStartedEvent(RealtimeBaseMessage):
    audio_start_ms: Optional[int] = None
    item_id: Optional[str] = None


class SpeechStoppedEvent(RealtimeBaseMessage):
    audio_end_ms: Optional[int] = None
    item_id: Optional[str] = None


class RealtimeError(BaseModel):
    type: Optional[str] = None
    code: Optional[str] = None
    message: Optional[str] = None
    param: Optional[str] = None


class ErrorEvent(RealtimeBaseMessage):
    """Error message from OpenAI Realtime API."""
    error: RealtimeError = Field(default_factory=RealtimeError)
