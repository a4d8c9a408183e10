"""
Barge-in handling: the caller starts talking while a reply is still playing.
"""

import logging

from voice_relay.config.constants import LOGGER_NAME
from voice_relay.models.call_session import CallSession
from voice_relay.models.openai_schemas import ConversationItemTruncateEvent

logger = logging.getLogger(LOGGER_NAME)


class InterruptionHandler:
    """
    Cuts the current reply at the point the caller actually heard.

    The truncate point is measured on the media clock, from the first fragment
    of the reply to the moment the Realtime API reported new caller speech.
    """

    def __init__(self, session: CallSession, realtime, telephony):
        self.session = session
        self.realtime = realtime
        self.telephony = telephony

    async def on_peer_speech_started(self) -> bool:
        """
        Returns:
            bool: True if an in-progress reply was interrupted
        """
        session = self.session
        playback = session.playback
        if not playback.delivery_markers or playback.reply_start_ms is None:
            logger.debug("Speech started with no reply playing")
            return False

        elapsed_ms = max(0, session.media_clock - playback.reply_start_ms)
        reply_id = playback.current_reply_id
        session.interrupted_reply_id = reply_id
        playback.reset()

        logger.info(f"Caller interrupted reply {reply_id} after {elapsed_ms}ms")
        if reply_id:
            await self.realtime.send_event(
                ConversationItemTruncateEvent(item_id=reply_id, content_index=0, audio_end_ms=elapsed_ms)
            )
        await self.telephony.send_clear(session.session_id)
        return True
