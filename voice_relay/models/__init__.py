"""
Models module for data structures and state management in the voice relay.

This module provides structured data models and state management classes for the
application, defining the schemas for both the Twilio Media Streams protocol and the
OpenAI Realtime API.

Key components:
- message_schemas: Pydantic models for validating and serializing Media Streams
  messages (connected, start, media, mark, stop, clear).
- openai_schemas: Type-safe models for the Realtime API events the relay sends
  and consumes.
- call_session: Per-call state: media clock, turn window, reply request guard,
  playback progress and the timers bound to the session.

Usage examples:
```python
from voice_relay.models.call_session import CallSession
from voice_relay.models.message_schemas import parse_incoming_message

session = CallSession()
message = parse_incoming_message(raw_text)
if message.event == "start":
    session.start(message.stream_sid)
```
"""

from voice_relay.models.call_session import CallSession, PlaybackState, TurnPhase, TurnWindow
from voice_relay.models.message_schemas import (
    ClearMessage,
    IncomingMessage,
    MediaMessage,
    OutboundMarkMessage,
    OutboundMediaMessage,
    StartMessage,
    parse_incoming_message,
)
from voice_relay.models.openai_schemas import (
    ConversationItemTruncateEvent,
    InputAudioBufferAppendEvent,
    InputAudioBufferCommitEvent,
    ResponseCreateEvent,
    SessionUpdateEvent,
)
