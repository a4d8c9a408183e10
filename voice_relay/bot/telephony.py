"""
Send/receive capability over the Twilio Media Streams websocket.

Wraps the FastAPI websocket so the relay can send outbound messages without
caring whether the caller already hung up: sending on a closed socket is a
logged no-op and never raises past the caller.
"""

import logging
from typing import AsyncIterator, Optional

from fastapi import WebSocket
from fastapi.websockets import WebSocketDisconnect, WebSocketState

from voice_relay.config.constants import LOGGER_NAME
from voice_relay.models.message_schemas import (
    BaseTwilioMessage,
    ClearMessage,
    MarkName,
    OutboundMarkMessage,
    OutboundMediaMessage,
    OutboundMediaPayload,
)

logger = logging.getLogger(LOGGER_NAME)


class TelephonyPeer:
    """The caller's side of the relay."""

    def __init__(self, websocket: WebSocket):
        self.websocket = websocket
        self._closed = False

    @property
    def is_open(self) -> bool:
        return (
            not self._closed
            and self.websocket.client_state == WebSocketState.CONNECTED
            and self.websocket.application_state == WebSocketState.CONNECTED
        )

    async def messages(self) -> AsyncIterator[str]:
        """Yield text frames until the caller disconnects."""
        try:
            async for text in self.websocket.iter_text():
                yield text
        except WebSocketDisconnect as e:
            logger.info(f"Twilio WebSocket disconnected (code {e.code})")
        finally:
            self._closed = True

    async def send_message(self, message: BaseTwilioMessage) -> bool:
        if not self.is_open:
            logger.warning(f"Dropping outbound {message.event} - Twilio connection not open")
            return False
        try:
            await self.websocket.send_json(message.model_dump(exclude_none=True))
            return True
        except (WebSocketDisconnect, RuntimeError) as e:
            logger.warning(f"Failed to send {message.event} to Twilio: {e}")
            self._closed = True
            return False

    async def send_media(self, stream_sid: Optional[str], payload: str) -> bool:
        if not stream_sid:
            logger.warning("Cannot send media before the stream has started")
            return False
        return await self.send_message(
            OutboundMediaMessage(streamSid=stream_sid, media=OutboundMediaPayload(payload=payload))
        )

    async def send_mark(self, stream_sid: Optional[str], name: str) -> bool:
        if not stream_sid:
            logger.warning("Cannot send mark before the stream has started")
            return False
        return await self.send_message(
            OutboundMarkMessage(streamSid=stream_sid, mark=MarkName(name=name))
        )

    async def send_clear(self, stream_sid: Optional[str]) -> bool:
        if not stream_sid:
            logger.warning("Cannot send clear before the stream has started")
            return False
        return await self.send_message(ClearMessage(streamSid=stream_sid))

    async def close(self) -> None:
        if not self.is_open:
            self._closed = True
            return
        self._closed = True
        try:
            await self.websocket.close()
            logger.info("Twilio WebSocket closed")
        except RuntimeError as e:
            logger.debug(f"Twilio WebSocket already closed: {e}")
