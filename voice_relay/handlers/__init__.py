"""
Handlers module for the per-call relay engine.

Key components:
- turn_handlers: Forwards caller audio, detects the end of the caller's turn
  (local silence timer or Realtime voice-activity signal) and requests a reply,
  with at most one request outstanding.
- interruption_handlers: Handles barge-in by truncating the playing reply at the
  heard position and clearing the caller's playback buffer.
- playback_handlers: Forwards reply audio to the caller in order and tracks
  playback progress through a FIFO of delivery markers.

All three operate on the same CallSession by reference; the CallRelay in
``voice_relay.bot.media_stream_bridge`` serializes every call into them.
"""

# Handlers module initialization
