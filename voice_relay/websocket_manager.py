"""
WebSocket connection manager for Twilio media streams.

This module accepts each media stream websocket opened by Twilio, builds the
Realtime client and CallRelay that serve that call, and keeps a registry of the
calls currently in progress for health reporting.
"""

import logging
import uuid
from typing import Callable, Dict, Optional

from fastapi import WebSocket

from voice_relay.bot.media_stream_bridge import CallRelay
from voice_relay.bot.realtime_api import RealtimeClient
from voice_relay.bot.telephony import TelephonyPeer
from voice_relay.config.constants import LOGGER_NAME
from voice_relay.config.settings import RelayConfig

logger = logging.getLogger(LOGGER_NAME)

RealtimeFactory = Callable[[RelayConfig], RealtimeClient]


def create_realtime_client(config: RelayConfig) -> RealtimeClient:
    return RealtimeClient(config.require_api_key(), config.realtime_model, config.realtime_url)


class MediaStreamManager:
    """Creates one CallRelay per media stream websocket and tracks it while the call lasts."""

    def __init__(self, config: RelayConfig, realtime_factory: Optional[RealtimeFactory] = None):
        self.config = config
        self.realtime_factory = realtime_factory or create_realtime_client
        self.active_sessions: Dict[str, CallRelay] = {}

    async def handle_websocket(self, websocket: WebSocket) -> None:
        """Handle a media stream websocket throughout its lifecycle.

        Args:
            websocket (WebSocket): The FastAPI WebSocket connection object

        This method:
        1. Accepts the WebSocket connection
        2. Opens the Realtime connection and relays the call until either side closes
        3. Removes the call from the registry and closes the socket
        """
        await websocket.accept()
        connection_id = str(uuid.uuid4())
        logger.info(f"Twilio connected to media stream ({connection_id})")

        relay = None
        try:
            relay = CallRelay(TelephonyPeer(websocket), self.realtime_factory(self.config), self.config)
            self.active_sessions[connection_id] = relay
            await relay.run()
        except Exception as e:
            logger.error(f"Error in media stream connection: {e}", exc_info=True)
        finally:
            self.active_sessions.pop(connection_id, None)
            if relay is None:
                try:
                    await websocket.close()
                except RuntimeError as e:
                    logger.debug(f"WebSocket already closed: {e}")
            logger.info(f"Media stream connection closed ({connection_id})")

    @property
    def active_count(self) -> int:
        return len(self.active_sessions)
