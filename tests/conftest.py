import asyncio
import logging

import pytest
from pydantic import BaseModel

from voice_relay.config.settings import RelayConfig
from voice_relay.models.call_session import CallSession


@pytest.fixture(autouse=True)
def reset_logging():
    """Reset logging configuration before each test"""
    root_logger = logging.getLogger()
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)
    logging.basicConfig(level=logging.NOTSET)
    yield


class RecordingRealtime:
    """Stands in for RealtimeClient and records every event sent while open."""

    def __init__(self, is_open=True, frames=None, connect_ok=True, block=False):
        self.is_open = is_open
        self.sent = []
        self.frames = list(frames or [])
        self.connect_ok = connect_ok
        self.block = block
        self.closed = False

    async def connect(self):
        self.is_open = self.connect_ok
        return self.connect_ok

    async def send_event(self, event):
        if isinstance(event, BaseModel):
            event = event.model_dump(exclude_none=True)
        if not self.is_open:
            return False
        self.sent.append(event)
        return True

    async def events(self):
        for frame in self.frames:
            yield frame
        if self.block:
            await asyncio.Event().wait()

    def events_of(self, event_type):
        return [event for event in self.sent if event["type"] == event_type]

    @property
    def types(self):
        return [event["type"] for event in self.sent]

    async def close(self):
        self.closed = True
        self.is_open = False


class RecordingTelephony:
    """Stands in for TelephonyPeer and records outbound Twilio messages."""

    def __init__(self, frames=None, block=False, mark_ok=True):
        self.sent = []
        self.frames = list(frames or [])
        self.block = block
        self.mark_ok = mark_ok
        self.is_open = True
        self.closed = False

    async def messages(self):
        for frame in self.frames:
            yield frame
        if self.block:
            await asyncio.Event().wait()

    async def send_media(self, stream_sid, payload):
        self.sent.append({"event": "media", "streamSid": stream_sid, "media": {"payload": payload}})
        return True

    async def send_mark(self, stream_sid, name):
        if not self.mark_ok:
            return False
        self.sent.append({"event": "mark", "streamSid": stream_sid, "mark": {"name": name}})
        return True

    async def send_clear(self, stream_sid):
        self.sent.append({"event": "clear", "streamSid": stream_sid})
        return True

    def events_of(self, event):
        return [message for message in self.sent if message["event"] == event]

    async def close(self):
        self.closed = True
        self.is_open = False


@pytest.fixture
def relay_config():
    return RelayConfig(
        openai_api_key="test-api-key",
        silence_ms=30,
        min_turn_ms=50,
        flush_delay_ms=0,
    )


@pytest.fixture
def session():
    session = CallSession()
    session.start("MZ-test-stream")
    return session


@pytest.fixture
def realtime():
    return RecordingRealtime()


@pytest.fixture
def telephony():
    return RecordingTelephony()
