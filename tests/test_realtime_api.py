"""
Unit tests for the OpenAI Realtime API client.

These tests verify the functionality of the RealtimeClient class, which
connects to the Realtime API and carries JSON events in both directions.
"""

import asyncio
import json
from unittest.mock import AsyncMock, patch

import pytest
from websockets.exceptions import ConnectionClosedError, ConnectionClosedOK

from voice_relay.bot.realtime_api import RealtimeClient
from voice_relay.models.openai_schemas import InputAudioBufferCommitEvent


class FakeSocket:
    """Websocket stand-in yielding scripted frames, then an optional error."""

    def __init__(self, frames=(), error=None):
        self.frames = list(frames)
        self.error = error
        self.send = AsyncMock()
        self.close = AsyncMock()

    def __aiter__(self):
        return self

    async def __anext__(self):
        if self.frames:
            return self.frames.pop(0)
        if self.error is not None:
            raise self.error
        raise StopAsyncIteration


@pytest.fixture
def mock_api_key():
    """Provide a mock API key for testing."""
    return "test-api-key"


@pytest.fixture
def realtime_client(mock_api_key):
    """Create a RealtimeClient instance for testing."""
    return RealtimeClient(mock_api_key, "gpt-4o-realtime-preview-test", "wss://realtime.test/v1/realtime")


def open_client(client, socket):
    client.ws = socket
    client._connection_active = True
    return client


@pytest.mark.asyncio
async def test_connect_success(realtime_client):
    """Test successful connection to the OpenAI Realtime API."""
    socket = FakeSocket()

    with patch("voice_relay.bot.realtime_api.websockets.connect", AsyncMock(return_value=socket)) as mock_connect:
        result = await realtime_client.connect()

    assert result is True
    assert realtime_client.ws is socket
    assert realtime_client.is_open is True

    args, kwargs = mock_connect.call_args
    assert args[0] == "wss://realtime.test/v1/realtime?model=gpt-4o-realtime-preview-test"
    assert kwargs["additional_headers"] == {
        "Authorization": "Bearer test-api-key",
        "OpenAI-Beta": "realtime=v1",
    }


@pytest.mark.asyncio
async def test_connect_failure(realtime_client):
    """Test connection failure to the OpenAI Realtime API."""
    with patch("voice_relay.bot.realtime_api.websockets.connect", AsyncMock(side_effect=OSError("refused"))):
        result = await realtime_client.connect()

    assert result is False
    assert realtime_client.is_open is False


@pytest.mark.asyncio
async def test_connect_timeout(realtime_client):
    """Test that a connection that never completes reports failure."""
    with patch("voice_relay.bot.realtime_api.websockets.connect", AsyncMock(side_effect=asyncio.TimeoutError())):
        result = await realtime_client.connect()

    assert result is False
    assert realtime_client._connection_active is False


@pytest.mark.asyncio
async def test_connect_after_close_refused(realtime_client):
    await realtime_client.close()

    with patch("voice_relay.bot.realtime_api.websockets.connect") as mock_connect:
        assert await realtime_client.connect() is False
    mock_connect.assert_not_called()


@pytest.mark.asyncio
async def test_send_event_model_and_dict(realtime_client):
    """Test that models and plain dicts are serialized to JSON text."""
    socket = FakeSocket()
    open_client(realtime_client, socket)

    assert await realtime_client.send_event(InputAudioBufferCommitEvent()) is True
    assert await realtime_client.send_event({"type": "response.create"}) is True

    sent = [json.loads(call.args[0]) for call in socket.send.call_args_list]
    assert sent == [{"type": "input_audio_buffer.commit"}, {"type": "response.create"}]


@pytest.mark.asyncio
async def test_send_event_when_not_connected(realtime_client):
    """Test that sending without a connection is a no-op."""
    assert await realtime_client.send_event({"type": "response.create"}) is False


@pytest.mark.asyncio
async def test_send_event_connection_closed(realtime_client):
    """Test that a send racing a close reports failure and marks the client closed."""
    socket = FakeSocket()
    socket.send.side_effect = ConnectionClosedError(None, None)
    open_client(realtime_client, socket)

    assert await realtime_client.send_event({"type": "response.create"}) is False
    assert realtime_client.is_open is False
    assert await realtime_client.send_event({"type": "response.create"}) is False
    assert socket.send.call_count == 1


@pytest.mark.asyncio
async def test_events_yields_text_frames(realtime_client):
    socket = FakeSocket(frames=['{"type": "session.created"}', b"\x00\x01", '{"type": "response.done"}'])
    open_client(realtime_client, socket)

    frames = [frame async for frame in realtime_client.events()]

    assert frames == ['{"type": "session.created"}', '{"type": "response.done"}']
    assert realtime_client.is_open is False


@pytest.mark.asyncio
@pytest.mark.parametrize("error", [ConnectionClosedOK(None, None), ConnectionClosedError(None, None)])
async def test_events_ends_on_close(realtime_client, error):
    socket = FakeSocket(frames=['{"type": "session.created"}'], error=error)
    open_client(realtime_client, socket)

    frames = [frame async for frame in realtime_client.events()]

    assert frames == ['{"type": "session.created"}']
    assert realtime_client.is_open is False


@pytest.mark.asyncio
async def test_events_without_connection(realtime_client):
    assert [frame async for frame in realtime_client.events()] == []


@pytest.mark.asyncio
async def test_close_is_idempotent(realtime_client):
    socket = FakeSocket()
    open_client(realtime_client, socket)

    await realtime_client.close()
    await realtime_client.close()

    socket.close.assert_awaited_once()
    assert realtime_client.is_open is False


@pytest.mark.asyncio
async def test_repeated_append_drops_warn_once(realtime_client):
    """Test that audio dropped before the connection opens warns only once."""
    with patch("voice_relay.bot.realtime_api.logger") as mock_logger:
        for _ in range(3):
            assert await realtime_client.send_event({"type": "input_audio_buffer.append", "audio": "AAAA"}) is False
        assert await realtime_client.send_event({"type": "response.create"}) is False

    assert mock_logger.warning.call_count == 2
    assert mock_logger.debug.call_count == 2
