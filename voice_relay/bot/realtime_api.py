import asyncio
import json
import logging
import time
import traceback
from typing import Any, AsyncIterator, Dict, Union

import websockets
from pydantic import BaseModel
from websockets.exceptions import ConnectionClosed, ConnectionClosedError, ConnectionClosedOK

from voice_relay.config.constants import (
    DEFAULT_REALTIME_MODEL,
    DEFAULT_REALTIME_URL,
    EVENT_INPUT_AUDIO_BUFFER_APPEND,
    LOGGER_NAME,
)

logger = logging.getLogger(LOGGER_NAME)

CONNECTION_TIMEOUT = 30  # seconds
SEND_TIMEOUT = 5.0  # seconds

# WebSocket configuration for low latency
WS_MAX_SIZE = 16 * 1024 * 1024  # 16MB - large enough for audio chunks
WS_MAX_QUEUE = 32
WS_PING_INTERVAL = 5  # 5 seconds between pings
WS_PING_TIMEOUT = 10

RealtimeEvent = Union[Dict[str, Any], BaseModel]


class RealtimeClient:
    """
    Client for one OpenAI Realtime API websocket, carrying JSON events in both
    directions. One client is opened per call and is never reconnected.
    """
    def __init__(self, api_key: str, model: str = DEFAULT_REALTIME_MODEL,
                 url: str = DEFAULT_REALTIME_URL):
        self.api_key = api_key
        self.model = model
        self.url = url
        self.ws = None
        self._connection_active = False
        self._is_closing = False
        self._dropped_appends = 0
        logger.info(f"RealtimeClient initialized with model: {model}")

    @property
    def is_open(self) -> bool:
        return self.ws is not None and self._connection_active and not self._is_closing

    async def connect(self) -> bool:
        """
        Connect to the OpenAI Realtime WebSocket endpoint.

        Returns:
            bool: True if connection was successful, False otherwise
        """
        if self._is_closing:
            logger.warning("Cannot connect - client is closing")
            return False

        url = f"{self.url}?model={self.model}"
        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "OpenAI-Beta": "realtime=v1",
        }

        try:
            logger.info(f"Connecting to OpenAI Realtime API with model: {self.model}")
            logger.debug(f"WebSocket URL: {url}")
            connection_start = time.time()
            self.ws = await asyncio.wait_for(
                websockets.connect(
                    url,
                    max_size=WS_MAX_SIZE,
                    max_queue=WS_MAX_QUEUE,
                    ping_interval=WS_PING_INTERVAL,
                    ping_timeout=WS_PING_TIMEOUT,
                    compression=None,  # Disable compression for lower latency
                    additional_headers=headers
                ),
                timeout=CONNECTION_TIMEOUT
            )
            logger.debug(f"WebSocket connection established in {time.time() - connection_start:.2f} seconds")

            self._connection_active = True
            logger.info("Successfully connected to OpenAI Realtime API")
            return True
        except asyncio.TimeoutError:
            logger.error(f"Timeout while connecting to OpenAI Realtime API (after {CONNECTION_TIMEOUT}s)")
            self._connection_active = False
            return False
        except Exception as e:
            logger.error(f"Failed to connect to OpenAI Realtime API: {e}")
            logger.debug(f"Connection error details: {traceback.format_exc()}")
            self._connection_active = False
            return False

    async def send_event(self, event: RealtimeEvent) -> bool:
        """
        Send one JSON event to the Realtime API.

        Sending on a closed connection is a logged no-op.

        Args:
            event: A pydantic event model or a plain dict

        Returns:
            bool: True if the event was written to the socket
        """
        if isinstance(event, BaseModel):
            payload = event.model_dump(exclude_none=True)
        else:
            payload = event
        event_type = payload.get("type", "unknown")

        if not self.is_open:
            if event_type == EVENT_INPUT_AUDIO_BUFFER_APPEND:
                self._dropped_appends += 1
                if self._dropped_appends > 1:
                    logger.debug(f"Dropping {event_type} ({self._dropped_appends} so far) - Realtime connection not open")
                    return False
            logger.warning(f"Dropping {event_type} - Realtime connection not open")
            return False

        try:
            await asyncio.wait_for(self.ws.send(json.dumps(payload)), timeout=SEND_TIMEOUT)
            if event_type != EVENT_INPUT_AUDIO_BUFFER_APPEND:
                logger.debug(f"Sent {event_type}")
            return True
        except asyncio.TimeoutError:
            logger.warning(f"Timeout while sending {event_type}")
            return False
        except ConnectionClosed as e:
            logger.warning(f"Connection closed while sending {event_type}: {e}")
            self._connection_active = False
            return False
        except Exception as e:
            logger.error(f"Error sending {event_type}: {e}")
            logger.debug(f"Send error details: {traceback.format_exc()}")
            return False

    async def events(self) -> AsyncIterator[str]:
        """
        Yield text frames from the Realtime API until the connection closes.
        """
        if self.ws is None:
            logger.error("WebSocket not initialized for receive loop")
            return

        try:
            async for message in self.ws:
                if isinstance(message, bytes):
                    logger.debug(f"Ignoring binary frame of size {len(message)} bytes")
                    continue
                yield message
            logger.info("WebSocket connection closed normally")
        except ConnectionClosedOK:
            logger.info("WebSocket connection closed normally")
        except ConnectionClosedError as e:
            logger.warning(f"WebSocket connection closed unexpectedly: {e}")
        finally:
            self._connection_active = False
            logger.info("Receive loop exited, connection marked as inactive")

    async def close(self) -> None:
        """
        Close the WebSocket connection.
        """
        if self._is_closing:
            return
        logger.info("Closing OpenAI Realtime client")
        self._is_closing = True
        self._connection_active = False

        if self.ws is not None:
            try:
                await self.ws.close()
            except Exception as e:
                logger.warning(f"Error closing Realtime WebSocket: {e}")

        logger.info("OpenAI Realtime client closed")
