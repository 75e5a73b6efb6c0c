"""External Google operations used by the tool dispatcher."""

from concierge.services.base import GoogleServices
from concierge.services.http import HttpGoogleServices
from concierge.services.memory import InMemoryGoogleServices

__all__ = ["GoogleServices", "HttpGoogleServices", "InMemoryGoogleServices"]
