"""Concierge - talk to your calendar, mail and contacts."""

from concierge.runtime import AppRuntime
from concierge.session import SessionStore
from concierge.turn import TurnDriver

__version__ = "0.1.0"

__all__ = ["AppRuntime", "SessionStore", "TurnDriver"]
