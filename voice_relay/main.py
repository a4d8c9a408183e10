"""
FastAPI server relaying Twilio phone calls through the OpenAI Realtime API.

This module initializes and configures the FastAPI application: the webhook
Twilio calls when a phone call arrives, the media stream websocket Twilio then
opens for the call's audio, and status endpoints.
"""

from contextlib import asynccontextmanager
from pathlib import Path

import dotenv
from fastapi import FastAPI, Request, WebSocket
from fastapi.responses import HTMLResponse

from voice_relay.config.logging_config import configure_logging
from voice_relay.config.settings import load_settings
from voice_relay.services.twiml import MEDIA_STREAM_PATH, build_incoming_call_twiml
from voice_relay.websocket_manager import MediaStreamManager

# Load environment variables from .env file if it exists
env_path = Path(".") / ".env"
if env_path.exists():
    dotenv.load_dotenv(env_path)

logger = configure_logging()

settings = load_settings()

APP_NAME = "Twilio Realtime Voice Relay"
APP_VERSION = "1.0.0"


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Missing credentials are fatal before any call can be accepted
    settings.require_api_key()
    logger.info(
        f"Relay ready: model={settings.realtime_model}, codec={settings.audio_codec}, "
        f"turn detection={settings.turn_detection}"
    )
    yield
    logger.info("Relay shutting down")


app = FastAPI(
    title=APP_NAME,
    description="Bridges Twilio Media Streams with the OpenAI Realtime API",
    version=APP_VERSION,
    lifespan=lifespan,
)

media_stream_manager = MediaStreamManager(settings)


@app.get("/")
async def root():
    """Root endpoint to display basic information about the API.

    Returns:
        dict: Basic information about the API and its purpose.
    """
    return {
        "message": "Twilio Media Stream Server is running!",
        "name": APP_NAME,
        "version": APP_VERSION,
        "endpoints": {
            "/incoming-call": "Twilio voice webhook returning TwiML",
            MEDIA_STREAM_PATH: "WebSocket endpoint for Twilio Media Streams",
            "/health": "Health check endpoint",
        },
    }


@app.api_route("/incoming-call", methods=["GET", "POST"])
async def handle_incoming_call(request: Request):
    """Answer Twilio's voice webhook with TwiML that opens the media stream."""
    host = request.headers.get("x-forwarded-host") or request.headers.get("host") or request.url.hostname
    return HTMLResponse(content=build_incoming_call_twiml(host), media_type="application/xml")


@app.websocket(MEDIA_STREAM_PATH)
async def media_stream(websocket: WebSocket):
    """WebSocket endpoint for one call's Twilio media stream."""
    await media_stream_manager.handle_websocket(websocket)


@app.get("/health")
async def health_check():
    """Health check endpoint for monitoring system status.

    Returns:
        dict: Status information indicating the server is operational.
    """
    return {
        "status": "healthy",
        "openai_api_key_configured": bool(settings.openai_api_key),
        "active_sessions": media_stream_manager.active_count,
    }


if __name__ == "__main__":
    import uvicorn

    logger.info(f"Starting server on http://{settings.host}:{settings.port}")
    uvicorn.run(
        app,
        host=settings.host,
        port=settings.port,
        ws_ping_interval=5,  # More frequent pings to keep connections alive
        ws_max_size=16777216,  # 16MB - large enough for audio chunks
        ws_ping_timeout=20,
        http="h11"
    )
