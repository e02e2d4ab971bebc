"""
Light controller - keeps the physical light showing the desired color.

Desired color and brightness survive unplugging; when the device comes
back, the last desired state is replayed once its own startup flashing has
finished (the settle delay). Transition speed is not replayed.
"""

import logging
import threading
from typing import Callable, Optional, Protocol

from ..errors import DeviceUnavailableError
from .device import LightDevice
from .monitor import LinkMonitor
from .types import ConnectionState, DesiredLightState, LightBrightness, LightColor

logger = logging.getLogger(__name__)

DEFAULT_SETTLE_DELAY = 2.0


class LightControllerObserver(Protocol):
    def on_connectivity_changed(self, connected: bool) -> None:
        """Light connection state changed."""


class Cancellable(Protocol):
    def start(self) -> None: ...

    def cancel(self) -> None: ...


TimerFactory = Callable[[float, Callable[[], None]], Cancellable]


def _daemon_timer(interval: float, function: Callable[[], None]) -> threading.Timer:
    timer = threading.Timer(interval, function)
    timer.daemon = True
    return timer


class LightController:
    """Owns the light's desired state and its connection lifecycle."""

    def __init__(
        self,
        device: LightDevice,
        monitor: LinkMonitor,
        settle_delay: float = DEFAULT_SETTLE_DELAY,
        timer_factory: TimerFactory = _daemon_timer,
        normal_brightness: float = LightBrightness.NORMAL,
        dimmed_brightness: float = LightBrightness.DIMMED,
    ):
        self._device = device
        self._monitor = monitor
        self._settle_delay = settle_delay
        self._timer_factory = timer_factory
        self._normal_brightness = normal_brightness
        self._dimmed_brightness = dimmed_brightness

        self._lock = threading.RLock()
        self._observer: Optional[LightControllerObserver] = None
        self._desired = DesiredLightState(brightness=normal_brightness)
        self._connection = ConnectionState.DISCONNECTED
        self._generation = 0  # Bumped on every link transition
        self._replay_timer: Optional[Cancellable] = None

    # -- lifecycle ---------------------------------------------------------

    @property
    def is_attached(self) -> bool:
        return self._observer is not None

    def attach(self, observer: LightControllerObserver) -> bool:
        """Attach observer and start the link monitor.

        Returns:
            True if the monitor is watching, False if already attached or the
            monitor could not start.
        """
        with self._lock:
            if self._observer is not None:
                logger.warning("Light: observer already attached")
                return False
            self._observer = observer

        if not self._monitor.start(self._on_link_changed):
            logger.error("Light: failed to start USB detector")
            return False
        return True

    def detach(self) -> None:
        """Stop the link monitor and drop the observer."""
        with self._lock:
            if self._observer is None:
                return
            self._generation += 1
            self._cancel_replay()
        self._monitor.stop()
        with self._lock:
            self._observer = None

    # -- desired state -----------------------------------------------------

    @property
    def desired(self) -> DesiredLightState:
        """Copy of the desired state."""
        with self._lock:
            return DesiredLightState(self._desired.color, self._desired.brightness)

    @property
    def connection_state(self) -> ConnectionState:
        return self._connection

    def set_color(self, color: LightColor) -> None:
        """Update current color of the light (brightness applied at output)."""
        logger.info("Light: color=%s", color)
        with self._lock:
            self._desired.color = color
            if self._device.connected:
                self._write(self._desired)

    def set_brightness(self, brightness: float) -> None:
        """Update brightness, re-issuing the current color if there is one."""
        with self._lock:
            self._desired.brightness = max(0.0, min(1.0, brightness))
            color = self._desired.color
            if color is not None:
                self.set_color(color)

    def set_dimmed(self, dimmed: bool) -> None:
        """Shortcut for set_brightness with the dimmed/normal levels."""
        self.set_brightness(self._dimmed_brightness if dimmed else self._normal_brightness)

    def set_transition_speed(self, speed: int) -> None:
        """Forward transition speed to a connected device. Not replayed."""
        logger.info("Light: transition_speed=%d", speed)
        with self._lock:
            if not self._device.connected:
                logger.debug("Light: not connected, transition speed dropped")
                return
            try:
                self._device.write_transition_speed(speed)
            except ValueError as e:
                logger.warning("Light: transition speed rejected: %s", e)
            except DeviceUnavailableError as e:
                logger.debug("Light: transition speed write failed: %s", e)

    def _write(self, state: DesiredLightState) -> bool:
        rgb = state.output()
        if rgb is None:
            return False
        try:
            self._device.write_color(rgb)
        except DeviceUnavailableError as e:
            # Next reconnect replays the desired state
            logger.debug("Light: write failed, waiting for reconnect: %s", e)
            return False
        return True

    # -- link events -------------------------------------------------------

    def _on_link_changed(self, connected: bool) -> None:
        """Called on the monitor thread. Must not block."""
        with self._lock:
            self._connection = ConnectionState.from_bool(connected)
            self._generation += 1
            self._cancel_replay()
            observer = self._observer

            if connected:
                self._schedule_replay(self._generation)
            else:
                self._device.reset()

        logger.info("Light: connected=%s", connected)
        if observer is not None:
            observer.on_connectivity_changed(connected)

    def _schedule_replay(self, generation: int) -> None:
        timer = self._timer_factory(self._settle_delay, lambda: self._replay(generation))
        self._replay_timer = timer
        timer.start()

    def _cancel_replay(self) -> None:
        if self._replay_timer is not None:
            self._replay_timer.cancel()
            self._replay_timer = None

    def _replay(self, generation: int) -> None:
        """Timer thread: reapply the desired state once the device has settled."""
        with self._lock:
            if generation != self._generation:
                return
            self._replay_timer = None
            if self._desired.color is None:
                return
            if self._write(self._desired):
                logger.info("Light: replayed color=%s brightness=%.2f",
                            self._desired.color, self._desired.brightness)
