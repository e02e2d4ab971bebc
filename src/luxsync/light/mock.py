"""
Mock light for development without a Luxafor plugged in.

MockLinkMonitor.simulate() plays the role of the USB bus; MockLightDevice
records every write so callers can see what would have been shown.
"""

import logging
from typing import List, Optional, Tuple

from ..errors import DeviceUnavailableError
from .device import LightDevice, validate_speed
from .monitor import LinkCallback, LinkMonitor

logger = logging.getLogger(__name__)


class MockLightDevice(LightDevice):
    """Records writes; connected is set by MockLinkMonitor or tests."""

    def __init__(self, connected: bool = False):
        self._connected = connected
        self.colors: List[Tuple[int, int, int]] = []
        self.speeds: List[int] = []
        self.transition_speed = 0
        self.resets = 0
        self.fail_writes = False

    @property
    def connected(self) -> bool:
        return self._connected

    @connected.setter
    def connected(self, value: bool) -> None:
        self._connected = value

    def write_color(self, rgb: Tuple[int, int, int]) -> None:
        if self.fail_writes or not self._connected:
            raise DeviceUnavailableError("mock device unavailable")
        self.colors.append(tuple(rgb))
        logger.debug("MockLight: color=%s speed=%d", rgb, self.transition_speed)

    def write_transition_speed(self, speed: int) -> None:
        self.transition_speed = validate_speed(speed)
        self.speeds.append(speed)

    def reset(self) -> None:
        self.transition_speed = 0
        self.resets += 1

    @property
    def last_color(self) -> Optional[Tuple[int, int, int]]:
        return self.colors[-1] if self.colors else None


class MockLinkMonitor(LinkMonitor):
    """Attach/detach driven by simulate()."""

    def __init__(self, device: Optional[MockLightDevice] = None, fail_start: bool = False):
        self._device = device
        self._callback: Optional[LinkCallback] = None
        self._connected = device.connected if device is not None else False
        self.fail_start = fail_start
        self.start_count = 0
        self.stop_count = 0

    @property
    def is_running(self) -> bool:
        return self._callback is not None

    def start(self, callback: LinkCallback) -> bool:
        if self.fail_start:
            return False
        if self.is_running:
            return True
        self._callback = callback
        self.start_count += 1
        if self._connected:
            callback(True)
        return True

    def stop(self) -> None:
        if not self.is_running:
            return
        self._callback = None
        self.stop_count += 1

    def simulate(self, connected: bool) -> bool:
        """Plug (True) or unplug (False). Returns whether an event fired."""
        if connected == self._connected:
            return False
        self._connected = connected
        if self._device is not None:
            self._device.connected = connected
        if self._callback is not None:
            self._callback(connected)
            return True
        return False
