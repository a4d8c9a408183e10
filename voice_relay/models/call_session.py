"""
Per-call state for the Twilio to OpenAI Realtime relay.

This module provides the CallSession class which owns everything a single call
needs to track: the media clock reported by the telephony peer, the capture
window of the caller's current turn, the outstanding reply request, playback
progress of the current reply, and the timers bound to the session lifetime.

The session owns no transport. The turn-taking, interruption and playback
handlers operate on it by reference; no state is shared across sessions.
"""

import asyncio
import logging
from collections import deque
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Deque, Optional

from voice_relay.config.constants import LOGGER_NAME, MARK_NAME_PREFIX

logger = logging.getLogger(LOGGER_NAME)


class TurnPhase(str, Enum):
    """Named phases of a call's turn-taking cycle."""
    IDLE = "idle"
    CAPTURING = "capturing"
    REQUESTED = "requested"
    PLAYING = "playing"


class DelayedCallback:
    """
    Cancellable one-shot timer bound to the event loop.

    Each arm or cancel bumps ``generation``; the callback receives the
    generation it was armed with so a late firing can be recognised as stale.
    """

    def __init__(self, delay_ms: int, callback: Callable[[int], None]):
        self.delay_ms = delay_ms
        self.generation = 0
        self._callback = callback
        self._task: Optional[asyncio.Task] = None

    @property
    def pending(self) -> bool:
        return self._task is not None and not self._task.done()

    def arm(self) -> int:
        """Cancel any pending firing and schedule a new one."""
        self.cancel()
        generation = self.generation
        self._task = asyncio.get_running_loop().create_task(self._fire(generation))
        return generation

    def cancel(self) -> None:
        if self._task is not None and not self._task.done():
            self._task.cancel()
        self._task = None
        self.generation += 1

    def is_current(self, generation: int) -> bool:
        return generation == self.generation

    async def _fire(self, generation: int) -> None:
        await asyncio.sleep(self.delay_ms / 1000)
        self._callback(generation)


@dataclass
class TurnWindow:
    """Open capture window of the caller's current turn."""
    capture_start_ms: int
    buffered_ms: int = 0

    def extend(self, media_clock: int) -> int:
        self.buffered_ms = max(0, media_clock - self.capture_start_ms)
        return self.buffered_ms


class PlaybackState:
    """Progress of the reply currently being played to the caller."""

    def __init__(self):
        self.current_reply_id: Optional[str] = None
        self.reply_start_ms: Optional[int] = None
        self.delivery_markers: Deque[str] = deque()
        self.reply_done = False

    @property
    def active(self) -> bool:
        return self.reply_start_ms is not None

    def begin(self, reply_id: str, start_ms: int) -> None:
        self.current_reply_id = reply_id
        self.reply_start_ms = start_ms
        self.reply_done = False

    def reset(self) -> None:
        """Clear reply id, start and markers together."""
        self.current_reply_id = None
        self.reply_start_ms = None
        self.delivery_markers.clear()
        self.reply_done = False


class CallSession:
    """
    State container for one call.

    Created when the telephony websocket is accepted and discarded when either
    peer disconnects.
    """

    def __init__(self):
        self.session_id: Optional[str] = None
        self.media_clock = 0
        self.turn_window: Optional[TurnWindow] = None
        self.awaiting_reply = False
        self.playback = PlaybackState()
        self.interrupted_reply_id: Optional[str] = None
        self.silence_timer: Optional[DelayedCallback] = None
        self.flush_timer: Optional[DelayedCallback] = None
        self.closed = False
        self.turns_committed = 0
        self._mark_counter = 0

    @property
    def started(self) -> bool:
        return self.session_id is not None

    @property
    def buffered_ms(self) -> int:
        if self.turn_window is None:
            return 0
        return self.turn_window.buffered_ms

    @property
    def phase(self) -> TurnPhase:
        if self.awaiting_reply:
            return TurnPhase.REQUESTED
        if self.playback.active:
            return TurnPhase.PLAYING
        if self.turn_window is not None:
            return TurnPhase.CAPTURING
        return TurnPhase.IDLE

    def start(self, session_id: str) -> None:
        self.session_id = session_id
        self.media_clock = 0
        logger.info(f"Session started: {session_id}")

    def advance_clock(self, timestamp: int) -> int:
        """Move the media clock forward; it never goes backwards."""
        if timestamp < self.media_clock:
            logger.debug(f"Ignoring out-of-order media timestamp {timestamp} < {self.media_clock}")
        self.media_clock = max(self.media_clock, timestamp)
        return self.media_clock

    def open_or_extend_window(self) -> TurnWindow:
        if self.turn_window is None:
            self.turn_window = TurnWindow(capture_start_ms=self.media_clock)
        self.turn_window.extend(self.media_clock)
        return self.turn_window

    def close_window(self) -> None:
        self.turn_window = None

    def next_mark_name(self) -> str:
        self._mark_counter += 1
        return f"{MARK_NAME_PREFIX}-{self._mark_counter}"

    def close(self) -> None:
        """Mark the session closed and cancel every timer it owns."""
        self.closed = True
        for timer in (self.silence_timer, self.flush_timer):
            if timer is not None:
                timer.cancel()
