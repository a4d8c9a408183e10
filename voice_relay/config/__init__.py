"""
Configuration module for the voice relay.

This module provides centralized configuration management for the entire application,
including constants, logging setup, and environment-based configuration.

Key components:
- constants: Realtime API event names, audio format names and the
  turn-taking defaults.
- logging_config: Provides a consistent logging infrastructure with support for
  console and file-based logging with rotation capabilities.
- settings: The immutable RelayConfig injected into every call session, loaded
  from environment variables.

Usage examples:
```python
from voice_relay.config.logging_config import configure_logging
from voice_relay.config.settings import load_settings

logger = configure_logging()
config = load_settings()
config.require_api_key()
```
"""

# Config module initialization
