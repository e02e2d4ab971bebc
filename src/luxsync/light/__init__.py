"""
USB status light.

Submodules:
- types: LightColor, LightColors, LightBrightness, ConnectionState, DesiredLightState
- device: LightDevice, LuxaforDevice, get_device
- monitor: LinkMonitor, HidLinkMonitor
- mock: MockLightDevice, MockLinkMonitor
- controller: LightController
"""

from .types import (
    ConnectionState,
    DesiredLightState,
    LightBrightness,
    LightColor,
    LightColors,
)
from .device import LightDevice, LuxaforDevice, get_device
from .monitor import HidLinkMonitor, LinkMonitor
from .mock import MockLightDevice, MockLinkMonitor
from .controller import LightController, LightControllerObserver

__all__ = [
    "ConnectionState",
    "DesiredLightState",
    "HidLinkMonitor",
    "LightBrightness",
    "LightColor",
    "LightColors",
    "LightController",
    "LightControllerObserver",
    "LightDevice",
    "LinkMonitor",
    "LuxaforDevice",
    "MockLightDevice",
    "MockLinkMonitor",
    "get_device",
]
