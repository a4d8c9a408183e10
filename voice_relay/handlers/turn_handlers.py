"""
Turn-taking for the caller's side of the conversation.

The controller forwards inbound audio to the Realtime input buffer, tracks the
capture window of the caller's current turn, and decides when that turn has
ended: either after a quiet interval measured by a local timer, or when the
Realtime API reports that speech stopped. Ending a turn sends the ordered pair
``input_audio_buffer.commit`` then ``response.create``, with at most one such
pair outstanding per call.
"""

import logging
from typing import Callable

from voice_relay.bot.audio_format import AudioFormatAdapter
from voice_relay.config.constants import LOGGER_NAME
from voice_relay.config.settings import RelayConfig
from voice_relay.models.call_session import CallSession, DelayedCallback
from voice_relay.models.openai_schemas import (
    InputAudioBufferAppendEvent,
    InputAudioBufferCommitEvent,
    ResponseCreateEvent,
)
from voice_relay.models.relay_messages import FlushElapsed, SilenceElapsed

logger = logging.getLogger(LOGGER_NAME)

TRIGGER_SILENCE = "silence"
TRIGGER_PEER_VAD = "speech_stopped"
TRIGGER_STOP = "stop"


class TurnTakingController:
    """
    Decides when the caller's turn ends and requests a reply.

    Args:
        session: The call's state container
        realtime: Anything with an async ``send_event`` (the Realtime client)
        adapter: Converts caller audio to the negotiated input format
        config: Relay configuration for thresholds and detection mode
        post: Enqueues a message on the relay's inbox; timers fire through it
    """

    def __init__(
        self,
        session: CallSession,
        realtime,
        adapter: AudioFormatAdapter,
        config: RelayConfig,
        post: Callable[[object], None],
    ):
        self.session = session
        self.realtime = realtime
        self.adapter = adapter
        self.config = config

        if config.uses_silence_timer:
            session.silence_timer = DelayedCallback(
                config.silence_ms, lambda generation: post(SilenceElapsed(generation))
            )
        session.flush_timer = DelayedCallback(
            config.flush_delay_ms, lambda generation: post(FlushElapsed(generation))
        )

    async def on_audio_frame(self, timestamp: int, payload: str) -> None:
        """Append one caller frame and extend the open turn."""
        session = self.session
        session.advance_clock(timestamp)
        window = session.open_or_extend_window()

        await self.realtime.send_event(
            InputAudioBufferAppendEvent(audio=self.adapter.convert_payload(payload))
        )
        logger.debug(f"Appended audio at {timestamp}ms, turn buffered {window.buffered_ms}ms")

        if session.silence_timer is not None:
            session.silence_timer.arm()

    async def on_silence_elapsed(self, generation: int) -> bool:
        timer = self.session.silence_timer
        if timer is None or not timer.is_current(generation):
            logger.debug(f"Ignoring stale silence timer (generation {generation})")
            return False
        return await self.try_close_turn(TRIGGER_SILENCE)

    async def on_peer_speech_stopped(self) -> bool:
        if not self.config.uses_peer_vad:
            logger.debug("Speech stopped reported; turn end is timed locally")
            return False
        return await self.try_close_turn(TRIGGER_PEER_VAD)

    async def on_explicit_stop(self) -> bool:
        return await self.try_close_turn(TRIGGER_STOP)

    async def try_close_turn(self, trigger: str) -> bool:
        """
        Attempt to end the caller's turn.

        Returns:
            bool: True if a reply request was started
        """
        session = self.session
        if session.closed:
            return False

        if session.awaiting_reply:
            logger.info(f"Turn close by {trigger} ignored - reply already requested")
            return False

        window = session.turn_window
        if window is None:
            logger.debug(f"Turn close by {trigger} ignored - no turn in progress")
            return False

        buffered_ms = window.extend(session.media_clock)
        if buffered_ms < self.config.min_turn_ms:
            logger.info(
                f"Turn close by {trigger} abandoned - {buffered_ms}ms buffered, "
                f"minimum is {self.config.min_turn_ms}ms"
            )
            return False

        session.awaiting_reply = True
        if session.silence_timer is not None:
            session.silence_timer.cancel()
        logger.info(f"Turn ended by {trigger} after {buffered_ms}ms of caller audio")

        if self.config.flush_delay_ms > 0:
            session.flush_timer.arm()
        else:
            await self._commit_turn()
        return True

    async def on_flush_elapsed(self, generation: int) -> bool:
        session = self.session
        if session.closed or not session.flush_timer.is_current(generation):
            logger.debug(f"Ignoring stale flush delay (generation {generation})")
            return False
        await self._commit_turn()
        return True

    async def _commit_turn(self) -> None:
        session = self.session
        buffered_ms = session.buffered_ms

        committed = await self.realtime.send_event(InputAudioBufferCommitEvent())
        requested = await self.realtime.send_event(ResponseCreateEvent())
        session.close_window()

        if committed and requested:
            session.turns_committed += 1
            logger.info(f"Committed {buffered_ms}ms turn and requested a reply for session {session.session_id}")
        else:
            # A dropped pair is not outstanding; the next turn may request again
            session.awaiting_reply = False
            logger.warning(f"Commit for session {session.session_id} was dropped - Realtime connection not open")

    def cancel(self) -> None:
        for timer in (self.session.silence_timer, self.session.flush_timer):
            if timer is not None:
                timer.cancel()
