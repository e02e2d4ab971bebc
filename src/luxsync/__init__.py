"""
luxsync - a Luxafor USB status light that mirrors availability into Slack.

Two cooperating controllers:
- LightController: device link lifecycle, desired color/brightness, replay on reconnect
- SlackController: OAuth session and Do Not Disturb snooze sync
"""

from .app import Availability, LuxsyncApp
from .config import LuxsyncConfig, ConfigManager, get_config
from .light import LightColor, LightColors, LightController
from .slack import DndState, SlackClient, SlackController

__version__ = "0.3.0"

__all__ = [
    "Availability",
    "ConfigManager",
    "DndState",
    "LightColor",
    "LightColors",
    "LightController",
    "LuxsyncApp",
    "LuxsyncConfig",
    "SlackClient",
    "SlackController",
    "get_config",
]
