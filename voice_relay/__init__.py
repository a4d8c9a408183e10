"""
Twilio Realtime Voice Relay - Twilio Media Streams to OpenAI Realtime API Bridge

This application answers phone calls through Twilio and holds a natural voice
conversation with the caller by relaying the call's audio to OpenAI's Realtime API
and streaming the spoken replies back.

Architecture Overview:
- FastAPI server exposing the Twilio voice webhook and the media stream WebSocket
- One CallRelay per call, serializing both peers' events and its timers into one inbox
- Turn-taking: decides when the caller finished speaking and requests exactly one reply
- Barge-in: truncates the playing reply when the caller talks over it
- Playback: forwards reply audio in order and tracks progress with delivery marks

Key Components:
- bot: Realtime client, telephony peer, audio format adapter and the per-call relay
- config: Constants, logging setup and the RelayConfig loaded from the environment
- handlers: Turn-taking, interruption and playback handlers operating on a CallSession
- models: Pydantic schemas for both protocols and the per-call state container
- services: TwiML generation for call setup
- websocket_manager: Accepts media stream WebSockets and tracks active calls

Getting Started:
1. Set up environment variables:
   - OPENAI_API_KEY: Your OpenAI API key (required)
   - PORT: Port to run the server on (default 5050)
   - AUDIO_CODEC: pcm16 or passthrough (default pcm16)
   - TURN_DETECTION: silence or vad (default silence)
   - LOG_LEVEL: Logging level (default INFO)

2. Start the server:
   ```bash
   python run.py
   ```

3. Point the Twilio phone number's voice webhook at
   https://your-server/incoming-call
"""
