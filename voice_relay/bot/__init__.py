"""
Bot module for relaying Twilio phone calls through the OpenAI Realtime API.

Key components:
- RealtimeClient: Client for one OpenAI Realtime API websocket, sending and
  receiving JSON events; opened once per call and never reconnected.
- TelephonyPeer: Send/receive capability over the Twilio Media Streams
  websocket; sends on a closed socket are logged no-ops.
- AudioFormatAdapter: Decodes caller mu-law to 16-bit PCM when the Realtime
  session takes linear PCM input, or passes frames through untouched.
- CallRelay: The per-call engine serializing both peers and the session
  timers into one inbox and dispatching to the turn-taking, interruption and
  playback handlers.

Usage examples:
```python
from voice_relay.bot import CallRelay, RealtimeClient, TelephonyPeer

async def relay_call(websocket, config):
    realtime = RealtimeClient(config.require_api_key(), config.realtime_model, config.realtime_url)
    relay = CallRelay(TelephonyPeer(websocket), realtime, config)
    await relay.run()
```
"""

from voice_relay.bot.audio_format import AudioFormatAdapter, decode_mulaw
from voice_relay.bot.media_stream_bridge import CallRelay
from voice_relay.bot.realtime_api import RealtimeClient
from voice_relay.bot.telephony import TelephonyPeer

__all__ = ["AudioFormatAdapter", "CallRelay", "RealtimeClient", "TelephonyPeer", "decode_mulaw"]
