"""Light types and constants."""

from dataclasses import dataclass
from enum import Enum
from typing import Optional, Tuple


def _clamp_unit(value: float) -> float:
    return max(0.0, min(1.0, float(value)))


@dataclass(frozen=True)
class LightColor:
    """RGB color (0-255 per channel). Brightness is applied separately at output."""
    red: int
    green: int
    blue: int

    def __post_init__(self):
        for channel in (self.red, self.green, self.blue):
            if not 0 <= channel <= 255:
                raise ValueError(f"Color channel {channel} out of range 0-255")

    @classmethod
    def from_hex(cls, value: str) -> "LightColor":
        """Parse '#rrggbb' or 'rrggbb'."""
        value = value.lstrip("#")
        if len(value) != 6:
            raise ValueError(f"Expected 6 hex digits, got {value!r}")
        return cls(int(value[0:2], 16), int(value[2:4], 16), int(value[4:6], 16))

    def scaled(self, brightness: float) -> Tuple[int, int, int]:
        """Channels multiplied by brightness - what actually goes to the device."""
        b = _clamp_unit(brightness)
        return (round(self.red * b), round(self.green * b), round(self.blue * b))

    def __str__(self) -> str:
        return f"#{self.red:02x}{self.green:02x}{self.blue:02x}"


class LightColors:
    """Color states for the light."""
    AVAILABLE = LightColor(0, 255, 0)
    BUSY = LightColor(255, 0, 0)
    LOCKED = LightColor(0, 0, 0)


class LightBrightness:
    """Brightness states for the light."""
    NORMAL = 1.0
    DIMMED = 0.1


class ConnectionState(Enum):
    DISCONNECTED = "disconnected"
    CONNECTED = "connected"

    @classmethod
    def from_bool(cls, connected: bool) -> "ConnectionState":
        return cls.CONNECTED if connected else cls.DISCONNECTED


@dataclass
class DesiredLightState:
    """Last requested color and brightness; replayed after reconnection."""
    color: Optional[LightColor] = None
    brightness: float = LightBrightness.NORMAL

    def output(self) -> Optional[Tuple[int, int, int]]:
        """Device channels for this state, or None before the first color."""
        if self.color is None:
            return None
        return self.color.scaled(self.brightness)
