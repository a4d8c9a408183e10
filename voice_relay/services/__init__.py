"""
Services module for call setup with the telephony provider.

Key components:
- twiml: Builds the TwiML document Twilio fetches when a call arrives, which
  greets the caller and opens the bidirectional media stream to this server.
"""

# Services module initialization
