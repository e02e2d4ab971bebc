"""
Light device - the USB hardware behind the status light.

LuxaforDevice talks to a Luxafor Flag over HID via hidapi. Reports are
9 bytes: report id 0, then the 8-byte command.

    static color  [0x01, led, r, g, b, 0, 0, 0]
    fade to color [0x02, led, r, g, b, speed, 0, 0]

led 0xFF addresses every LED on the flag.
"""

import logging
import threading
from abc import ABC, abstractmethod
from typing import Optional, Tuple

from ..config import LUXAFOR_PRODUCT_ID, LUXAFOR_VENDOR_ID
from ..errors import DeviceUnavailableError

logger = logging.getLogger(__name__)

CMD_STATIC = 0x01
CMD_FADE = 0x02
LED_ALL = 0xFF
SPEED_MIN = -128
SPEED_MAX = 127


class LightDevice(ABC):
    """Abstract light device - implemented by Luxafor and mock."""

    @property
    @abstractmethod
    def connected(self) -> bool:
        """Is the device attached right now?"""

    @abstractmethod
    def write_color(self, rgb: Tuple[int, int, int]) -> None:
        """Show rgb (brightness already applied). Raises DeviceUnavailableError."""

    @abstractmethod
    def write_transition_speed(self, speed: int) -> None:
        """Set fade speed for subsequent color writes (8-bit signed)."""

    def reset(self) -> None:
        """Forget per-connection state after the device went away."""


def validate_speed(speed: int) -> int:
    if not SPEED_MIN <= speed <= SPEED_MAX:
        raise ValueError(f"Transition speed {speed} outside {SPEED_MIN}..{SPEED_MAX}")
    return speed


class LuxaforDevice(LightDevice):
    """Luxafor Flag over hidapi."""

    def __init__(self, vendor_id: int = LUXAFOR_VENDOR_ID, product_id: int = LUXAFOR_PRODUCT_ID):
        self._vendor_id = vendor_id
        self._product_id = product_id
        self._handle = None
        self._transition_speed = 0
        self._lock = threading.Lock()

    @property
    def connected(self) -> bool:
        try:
            import hid
            return bool(hid.enumerate(self._vendor_id, self._product_id))
        except (ImportError, OSError) as e:
            logger.debug("Light: enumerate failed: %s", e)
            return False

    def _open(self):
        if self._handle is not None:
            return self._handle
        try:
            import hid
            handle = hid.device()
            handle.open(self._vendor_id, self._product_id)
        except ImportError as e:
            raise DeviceUnavailableError(f"hidapi not installed: {e}") from e
        except (OSError, IOError) as e:
            raise DeviceUnavailableError(f"cannot open {self._vendor_id:04x}:{self._product_id:04x}: {e}") from e
        self._handle = handle
        return handle

    def _close(self) -> None:
        if self._handle is not None:
            try:
                self._handle.close()
            except (OSError, IOError):
                pass
            self._handle = None

    def _report(self, rgb: Tuple[int, int, int]) -> list:
        r, g, b = rgb
        if self._transition_speed > 0:
            return [0x00, CMD_FADE, LED_ALL, r, g, b, self._transition_speed, 0, 0]
        return [0x00, CMD_STATIC, LED_ALL, r, g, b, 0, 0, 0]

    def write_color(self, rgb: Tuple[int, int, int]) -> None:
        with self._lock:
            report = self._report(rgb)
            handle = self._open()
            try:
                written = handle.write(report)
            except (OSError, IOError, ValueError) as e:
                self._close()
                raise DeviceUnavailableError(f"write failed: {e}") from e
            if written is not None and written < 0:
                self._close()
                raise DeviceUnavailableError("write failed: device returned -1")

    def write_transition_speed(self, speed: int) -> None:
        # Negative speeds have no meaning on the wire; treat them as instant.
        self._transition_speed = max(0, validate_speed(speed))

    def reset(self) -> None:
        with self._lock:
            self._close()
            self._transition_speed = 0

    @property
    def transition_speed(self) -> int:
        return self._transition_speed


def get_device(backend: str = "luxafor", vendor_id: Optional[int] = None,
               product_id: Optional[int] = None) -> LightDevice:
    """Get light device backend ('luxafor' or 'mock')."""
    if backend == "mock":
        from .mock import MockLightDevice
        return MockLightDevice()
    return LuxaforDevice(
        vendor_id if vendor_id is not None else LUXAFOR_VENDOR_ID,
        product_id if product_id is not None else LUXAFOR_PRODUCT_ID,
    )
