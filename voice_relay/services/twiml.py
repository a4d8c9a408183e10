"""
TwiML returned to Twilio when a call comes in.

The markup greets the caller and then connects the call's audio to this
server's media stream websocket.
"""

import logging

from twilio.twiml.voice_response import Connect, VoiceResponse

from voice_relay.config.constants import LOGGER_NAME

logger = logging.getLogger(LOGGER_NAME)

MEDIA_STREAM_PATH = "/media-stream"
GREETING_VOICE = "Polly.Amy"
GREETING = "Please wait while I connect you to the assistant."
READY_PROMPT = "Okay, you can start talking now."


def media_stream_url(host: str) -> str:
    return f"wss://{host}{MEDIA_STREAM_PATH}"


def build_incoming_call_twiml(host: str) -> str:
    """
    Build the TwiML document for an incoming call.

    Args:
        host: Public host name Twilio should open the media stream against

    Returns:
        str: The XML document
    """
    response = VoiceResponse()
    response.say(GREETING, voice=GREETING_VOICE)
    response.pause(length=1)
    response.say(READY_PROMPT, voice=GREETING_VOICE)
    connect = Connect()
    connect.stream(url=media_stream_url(host))
    response.append(connect)
    logger.info(f"Using WebSocket URL: {media_stream_url(host)}")
    return str(response)
