import pytest

from voice_relay.handlers.interruption_handlers import InterruptionHandler
from voice_relay.handlers.playback_handlers import PlaybackRelay


@pytest.fixture
def playback(session, telephony):
    return PlaybackRelay(session, telephony)


@pytest.fixture
def interruptions(session, realtime, telephony):
    return InterruptionHandler(session, realtime, telephony)


@pytest.mark.asyncio
async def test_barge_in_truncates_and_clears(session, realtime, telephony, playback, interruptions):
    """Scenario B: speech during playback truncates at the heard position and clears."""
    session.advance_clock(1000)
    await playback.on_reply_fragment("AAAA", "item_42")
    session.advance_clock(1100)
    await playback.on_reply_fragment("BBBB", "item_42")
    session.advance_clock(1640)

    assert await interruptions.on_peer_speech_started() is True

    truncates = realtime.events_of("conversation.item.truncate")
    assert truncates == [{
        "type": "conversation.item.truncate",
        "item_id": "item_42",
        "content_index": 0,
        "audio_end_ms": 640,
    }]
    assert telephony.events_of("clear") == [{"event": "clear", "streamSid": "MZ-test-stream"}]

    assert session.playback.current_reply_id is None
    assert session.playback.reply_start_ms is None
    assert not session.playback.delivery_markers


@pytest.mark.asyncio
async def test_speech_without_playback_is_ignored(session, realtime, telephony, interruptions):
    """Test that nothing is sent when no reply is playing."""
    assert await interruptions.on_peer_speech_started() is False
    assert realtime.sent == []
    assert telephony.sent == []


@pytest.mark.asyncio
async def test_speech_after_reply_fully_played_is_ignored(session, realtime, telephony, playback, interruptions):
    """Test that a reply whose markers were all acknowledged is not truncated."""
    await playback.on_reply_fragment("AAAA", "item_1")
    await playback.on_delivery_ack("responsePart-1")

    assert await interruptions.on_peer_speech_started() is False
    assert realtime.events_of("conversation.item.truncate") == []


@pytest.mark.asyncio
async def test_elapsed_is_never_negative(session, realtime, telephony, playback, interruptions):
    """Test that a start time ahead of the media clock truncates at zero."""
    await playback.on_reply_fragment("AAAA", "item_1")
    session.playback.reply_start_ms = session.media_clock + 500

    await interruptions.on_peer_speech_started()

    assert realtime.events_of("conversation.item.truncate")[0]["audio_end_ms"] == 0


@pytest.mark.asyncio
async def test_second_speech_start_after_reset_is_ignored(session, realtime, telephony, playback, interruptions):
    """Test that exactly one truncate and one clear are sent per interruption."""
    await playback.on_reply_fragment("AAAA", "item_1")

    await interruptions.on_peer_speech_started()
    await interruptions.on_peer_speech_started()

    assert len(realtime.events_of("conversation.item.truncate")) == 1
    assert len(telephony.events_of("clear")) == 1


@pytest.mark.asyncio
async def test_late_fragments_of_interrupted_reply_dropped(session, realtime, telephony, playback, interruptions):
    """Test that audio still arriving for a truncated item is not played."""
    await playback.on_reply_fragment("AAAA", "item_1")
    await interruptions.on_peer_speech_started()
    sent_before = len(telephony.sent)

    await playback.on_reply_fragment("BBBB", "item_1")

    assert len(telephony.sent) == sent_before
    assert session.playback.current_reply_id is None
    assert session.playback.reply_start_ms is None


@pytest.mark.asyncio
async def test_completion_of_interrupted_reply_keeps_new_request(session, realtime, telephony, playback, interruptions):
    """Test that response.done for a truncated item does not release the next request."""
    await playback.on_reply_fragment("AAAA", "item_1")
    await interruptions.on_peer_speech_started()
    session.awaiting_reply = True

    await playback.on_reply_complete("cancelled", ["item_1"])
    assert session.awaiting_reply is True

    await playback.on_reply_fragment("CCCC", "item_2")
    assert session.awaiting_reply is False
    assert session.playback.current_reply_id == "item_2"
