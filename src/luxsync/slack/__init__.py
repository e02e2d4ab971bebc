"""Slack integration: OAuth session and Do Not Disturb sync."""

from .client import SlackClient
from .controller import DndState, SlackController, SlackControllerObserver
from .oauth import OAuthHandler, OAuthState
from .session import Session

__all__ = [
    "DndState",
    "OAuthHandler",
    "OAuthState",
    "Session",
    "SlackClient",
    "SlackController",
    "SlackControllerObserver",
]
