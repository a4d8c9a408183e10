"""
Forwards reply audio to the caller and tracks how much of it has been played.

Every forwarded fragment is followed by a named mark; Twilio echoes each mark
back once the audio before it has been played, in the order the marks were sent.
"""

import logging
from typing import Optional, Sequence

from voice_relay.config.constants import LOGGER_NAME
from voice_relay.models.call_session import CallSession

logger = logging.getLogger(LOGGER_NAME)


class PlaybackRelay:
    """Playback side of the relay: Realtime reply audio to the telephony peer."""

    def __init__(self, session: CallSession, telephony):
        self.session = session
        self.telephony = telephony

    async def on_reply_fragment(self, fragment: str, reply_id: str) -> None:
        """
        Forward one reply fragment verbatim and queue a delivery marker for it.

        Args:
            fragment: Base64 audio already in the caller's format
            reply_id: Realtime item the fragment belongs to
        """
        session = self.session
        playback = session.playback

        if reply_id == session.interrupted_reply_id:
            logger.debug(f"Dropping late fragment of interrupted reply {reply_id}")
            return

        if session.awaiting_reply:
            session.awaiting_reply = False
            logger.info(f"Reply {reply_id} started for session {session.session_id}")

        if playback.reply_start_ms is None:
            playback.begin(reply_id, session.media_clock)
        elif reply_id != playback.current_reply_id:
            logger.debug(f"Reply item changed from {playback.current_reply_id} to {reply_id}")
            playback.current_reply_id = reply_id

        await self.telephony.send_media(session.session_id, fragment)

        mark_name = session.next_mark_name()
        if await self.telephony.send_mark(session.session_id, mark_name):
            playback.delivery_markers.append(mark_name)

    async def on_delivery_ack(self, mark_name: Optional[str] = None) -> None:
        markers = self.session.playback.delivery_markers
        if not markers:
            logger.debug(f"Mark {mark_name} acknowledged with no outstanding markers")
            return

        if mark_name is None or mark_name == markers[0]:
            markers.popleft()
        elif mark_name in markers:
            logger.warning(f"Mark {mark_name} acknowledged out of order, expected {markers[0]}")
            markers.remove(mark_name)
        else:
            logger.warning(f"Unknown mark acknowledged: {mark_name}")
            return

        self._finish_if_played()

    async def on_reply_complete(self, status: Optional[str] = None, item_ids: Sequence[str] = ()) -> None:
        session = self.session
        if session.interrupted_reply_id is not None and session.interrupted_reply_id in item_ids:
            logger.debug(f"Ignoring completion of interrupted reply {session.interrupted_reply_id} (status: {status})")
            return

        if session.awaiting_reply:
            session.awaiting_reply = False
            logger.info(f"Reply completed without audio (status: {status})")

        if session.playback.active:
            session.playback.reply_done = True
            self._finish_if_played()

    def _finish_if_played(self) -> None:
        playback = self.session.playback
        if playback.reply_done and not playback.delivery_markers:
            logger.info(f"Reply {playback.current_reply_id} finished playing")
            playback.reset()
