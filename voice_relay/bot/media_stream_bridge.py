"""
Bridge module for connecting a Twilio media stream with the OpenAI Realtime API.

One CallRelay runs per call. Frames from both peers and the firing of the
session's timers are posted into a single inbox and handled one at a time, so
the CallSession is only ever touched from one logical sequence and needs no
locking.
"""

import asyncio
import json
import logging
from typing import Awaitable, Callable, Dict, List, Optional

from pydantic import ValidationError

from voice_relay.bot.audio_format import AudioFormatAdapter
from voice_relay.bot.realtime_api import RealtimeClient
from voice_relay.bot.telephony import TelephonyPeer
from voice_relay.config.constants import (
    ERROR_COMMIT_EMPTY,
    EVENT_ERROR,
    EVENT_RESPONSE_AUDIO_DELTA,
    EVENT_RESPONSE_DONE,
    EVENT_RESPONSE_OUTPUT_AUDIO_DELTA,
    EVENT_SPEECH_STARTED,
    EVENT_SPEECH_STOPPED,
    LOGGER_NAME,
)
from voice_relay.config.settings import RelayConfig
from voice_relay.handlers.interruption_handlers import InterruptionHandler
from voice_relay.handlers.playback_handlers import PlaybackRelay
from voice_relay.handlers.turn_handlers import TurnTakingController
from voice_relay.models.call_session import CallSession
from voice_relay.models.message_schemas import (
    ConnectedMessage,
    MarkMessage,
    MediaMessage,
    StartMessage,
    StopMessage,
    parse_incoming_message,
)
from voice_relay.models.openai_schemas import (
    ErrorEvent,
    ResponseAudioDeltaEvent,
    ResponseDoneEvent,
    SessionConfig,
    SessionUpdateEvent,
    SpeechStartedEvent,
    SpeechStoppedEvent,
)
from voice_relay.models.relay_messages import (
    FlushElapsed,
    PeerClosed,
    RealtimeFrame,
    RelayMessage,
    SilenceElapsed,
    TelephonyFrame,
)

logger = logging.getLogger(LOGGER_NAME)

PEER_TELEPHONY = "telephony"
PEER_REALTIME = "realtime"


class CallRelay:
    """
    Relay and turn-taking engine for a single call.

    Args:
        telephony: The caller's websocket capability
        realtime: An unconnected Realtime client for this call
        config: Relay configuration
    """

    def __init__(self, telephony: TelephonyPeer, realtime: RealtimeClient, config: RelayConfig):
        self.telephony = telephony
        self.realtime = realtime
        self.config = config
        self.session = CallSession()
        self.adapter = AudioFormatAdapter(config.audio_codec)
        self.inbox: asyncio.Queue = asyncio.Queue()
        self.closed_by: Optional[str] = None

        self.turns = TurnTakingController(self.session, realtime, self.adapter, config, self.post)
        self.interruptions = InterruptionHandler(self.session, realtime, telephony)
        self.playback = PlaybackRelay(self.session, telephony)

        self._tasks: List[asyncio.Task] = []
        self._realtime_handlers: Dict[str, Callable[[dict], Awaitable[None]]] = {
            EVENT_RESPONSE_OUTPUT_AUDIO_DELTA: self._on_audio_delta,
            EVENT_RESPONSE_AUDIO_DELTA: self._on_audio_delta,
            EVENT_RESPONSE_DONE: self._on_response_done,
            EVENT_SPEECH_STARTED: self._on_speech_started,
            EVENT_SPEECH_STOPPED: self._on_speech_stopped,
            EVENT_ERROR: self._on_error,
        }

    def post(self, message: RelayMessage) -> None:
        """Enqueue a message for the relay's serialized handling."""
        self.inbox.put_nowait(message)

    def session_update(self) -> SessionUpdateEvent:
        return SessionUpdateEvent(
            session=SessionConfig(
                voice=self.config.voice,
                instructions=self.config.instructions,
                input_audio_format=self.adapter.input_audio_format,
                output_audio_format=self.adapter.output_audio_format,
            )
        )

    async def run(self) -> None:
        """Relay the call until either peer goes away, then tear down."""
        self._tasks = [
            asyncio.create_task(self._pump_telephony()),
            asyncio.create_task(self._pump_realtime()),
        ]
        try:
            while True:
                message = await self.inbox.get()
                if isinstance(message, PeerClosed):
                    self.closed_by = message.peer
                    logger.info(f"{message.peer} peer closed for session {self.session.session_id} {message.reason}".rstrip())
                    break
                await self.handle(message)
        finally:
            await self.shutdown()

    async def handle(self, message: RelayMessage) -> None:
        if isinstance(message, TelephonyFrame):
            await self.handle_telephony_frame(message.raw)
        elif isinstance(message, RealtimeFrame):
            await self.handle_realtime_frame(message.raw)
        elif isinstance(message, SilenceElapsed):
            await self.turns.on_silence_elapsed(message.generation)
        elif isinstance(message, FlushElapsed):
            await self.turns.on_flush_elapsed(message.generation)
        else:
            logger.warning(f"Unknown relay message: {message!r}")

    async def handle_telephony_frame(self, raw: str) -> None:
        try:
            message = parse_incoming_message(raw)
        except ValidationError as e:
            logger.warning(f"Discarding malformed Twilio frame: {e.errors()[0].get('msg')}")
            return

        if isinstance(message, MediaMessage):
            if not self.session.started:
                logger.debug("Dropping media received before start")
                return
            await self.turns.on_audio_frame(message.media.timestamp, message.media.payload)
        elif isinstance(message, StartMessage):
            self.session.start(message.stream_sid)
        elif isinstance(message, MarkMessage):
            await self.playback.on_delivery_ack(message.mark.name if message.mark else None)
        elif isinstance(message, StopMessage):
            logger.info(f"Stream stopped for session {self.session.session_id}")
            await self.turns.on_explicit_stop()
        elif isinstance(message, ConnectedMessage):
            logger.debug("Twilio media stream connected")

    async def handle_realtime_frame(self, raw: str) -> None:
        try:
            event = json.loads(raw)
        except json.JSONDecodeError:
            logger.warning(f"Received invalid JSON from Realtime API: {raw[:100]}...")
            return
        if not isinstance(event, dict):
            logger.warning("Discarding Realtime frame that is not a JSON object")
            return

        event_type = event.get("type")
        handler = self._realtime_handlers.get(event_type)
        if handler is None:
            logger.debug(f"Received Realtime event: {event_type}")
            return
        try:
            await handler(event)
        except ValidationError as e:
            logger.warning(f"Discarding malformed {event_type} event: {e.errors()[0].get('msg')}")

    async def _on_audio_delta(self, event: dict) -> None:
        delta = ResponseAudioDeltaEvent(**event)
        await self.playback.on_reply_fragment(delta.delta, delta.item_id)

    async def _on_response_done(self, event: dict) -> None:
        done = ResponseDoneEvent(**event)
        await self.playback.on_reply_complete(done.status, done.item_ids)

    async def _on_speech_started(self, event: dict) -> None:
        started = SpeechStartedEvent(**event)
        logger.debug(f"Caller speech started at {started.audio_start_ms}ms")
        await self.interruptions.on_peer_speech_started()

    async def _on_speech_stopped(self, event: dict) -> None:
        stopped = SpeechStoppedEvent(**event)
        logger.debug(f"Caller speech stopped at {stopped.audio_end_ms}ms")
        await self.turns.on_peer_speech_stopped()

    async def _on_error(self, event: dict) -> None:
        error = ErrorEvent(**event).error
        if error.code == ERROR_COMMIT_EMPTY:
            logger.debug(f"Realtime API reported an empty commit: {error.message}")
            return
        logger.error(f"Received error from OpenAI: {error.code} {error.message}")

    async def _pump_telephony(self) -> None:
        reason = ""
        try:
            async for raw in self.telephony.messages():
                self.post(TelephonyFrame(raw))
        except Exception as e:
            reason = f"({e})"
            logger.error(f"Error reading from Twilio: {e}", exc_info=True)
        finally:
            self.post(PeerClosed(PEER_TELEPHONY, reason))

    async def _pump_realtime(self) -> None:
        reason = ""
        try:
            if not await self.realtime.connect():
                reason = "(connect failed)"
                return
            await self.realtime.send_event(self.session_update())
            logger.info(
                f"Realtime session configured: voice={self.config.voice}, "
                f"input={self.adapter.input_audio_format}, turn detection={self.config.turn_detection}"
            )
            async for raw in self.realtime.events():
                self.post(RealtimeFrame(raw))
        except Exception as e:
            reason = f"({e})"
            logger.error(f"Error reading from OpenAI: {e}", exc_info=True)
        finally:
            self.post(PeerClosed(PEER_REALTIME, reason))

    async def shutdown(self) -> None:
        """Cancel timers and pumps, close both peers, discard the session."""
        self.session.close()
        self.turns.cancel()

        current = asyncio.current_task()
        pending = [task for task in self._tasks if task is not current and not task.done()]
        for task in pending:
            task.cancel()
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)

        await self.realtime.close()
        await self.telephony.close()
        logger.info(
            f"Session {self.session.session_id} torn down after {self.session.turns_committed} turns"
        )
