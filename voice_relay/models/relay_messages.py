"""
Closed set of messages funneled into a call relay's serialized inbox.

Both peer sockets and the session's timers post into one queue so that every
state change of a call happens on a single logical sequence.
"""

from dataclasses import dataclass
from typing import Union


@dataclass(frozen=True)
class TelephonyFrame:
    """Raw text frame received from the telephony peer."""
    raw: str


@dataclass(frozen=True)
class RealtimeFrame:
    """Raw text frame received from the Realtime API."""
    raw: str


@dataclass(frozen=True)
class SilenceElapsed:
    """The silence timer fired for the given arming generation."""
    generation: int


@dataclass(frozen=True)
class FlushElapsed:
    """The flush delay before a commit elapsed for the given arming generation."""
    generation: int


@dataclass(frozen=True)
class PeerClosed:
    """One of the peers went away; ``peer`` is "telephony" or "realtime"."""
    peer: str
    reason: str = ""


RelayMessage = Union[TelephonyFrame, RealtimeFrame, SilenceElapsed, FlushElapsed, PeerClosed]
