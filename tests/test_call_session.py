import asyncio

import pytest

from voice_relay.models.call_session import CallSession, DelayedCallback, TurnPhase


def test_new_session_is_idle():
    session = CallSession()

    assert session.started is False
    assert session.phase == TurnPhase.IDLE
    assert session.buffered_ms == 0
    assert session.media_clock == 0


def test_start_resets_clock():
    session = CallSession()
    session.media_clock = 500
    session.start("MZ1")

    assert session.started is True
    assert session.session_id == "MZ1"
    assert session.media_clock == 0


def test_media_clock_never_goes_backwards(session):
    assert session.advance_clock(100) == 100
    assert session.advance_clock(80) == 100
    assert session.advance_clock(160) == 160


def test_window_opens_at_current_clock(session):
    session.advance_clock(300)
    window = session.open_or_extend_window()
    assert window.capture_start_ms == 300
    assert session.phase == TurnPhase.CAPTURING

    session.advance_clock(420)
    session.open_or_extend_window()
    assert session.buffered_ms == 120

    session.close_window()
    assert session.turn_window is None
    assert session.buffered_ms == 0


def test_phase_precedence(session):
    session.open_or_extend_window()
    session.awaiting_reply = True
    assert session.phase == TurnPhase.REQUESTED

    session.awaiting_reply = False
    session.playback.begin("item_1", 0)
    assert session.phase == TurnPhase.PLAYING

    session.playback.reset()
    assert session.phase == TurnPhase.CAPTURING


def test_mark_names_are_unique_and_sequential(session):
    names = [session.next_mark_name() for _ in range(3)]
    assert names == ["responsePart-1", "responsePart-2", "responsePart-3"]


def test_playback_reset_clears_everything(session):
    session.playback.begin("item_1", 100)
    session.playback.delivery_markers.extend(["responsePart-1", "responsePart-2"])
    session.playback.reply_done = True

    session.playback.reset()

    assert session.playback.current_reply_id is None
    assert session.playback.reply_start_ms is None
    assert not session.playback.delivery_markers
    assert session.playback.reply_done is False
    assert session.playback.active is False


@pytest.mark.asyncio
async def test_delayed_callback_fires_with_generation():
    fired = []
    timer = DelayedCallback(10, fired.append)

    generation = timer.arm()
    assert timer.pending is True
    await asyncio.sleep(0.05)

    assert fired == [generation]
    assert timer.is_current(generation)
    assert timer.pending is False


@pytest.mark.asyncio
async def test_rearming_replaces_pending_firing():
    fired = []
    timer = DelayedCallback(20, fired.append)

    first = timer.arm()
    second = timer.arm()
    await asyncio.sleep(0.06)

    assert fired == [second]
    assert not timer.is_current(first)


@pytest.mark.asyncio
async def test_cancelled_callback_never_fires():
    fired = []
    timer = DelayedCallback(10, fired.append)

    generation = timer.arm()
    timer.cancel()
    await asyncio.sleep(0.04)

    assert fired == []
    assert not timer.is_current(generation)


@pytest.mark.asyncio
async def test_close_cancels_session_timers(session):
    fired = []
    session.silence_timer = DelayedCallback(10, fired.append)
    session.flush_timer = DelayedCallback(10, fired.append)
    session.silence_timer.arm()
    session.flush_timer.arm()

    session.close()
    await asyncio.sleep(0.04)

    assert session.closed is True
    assert fired == []
