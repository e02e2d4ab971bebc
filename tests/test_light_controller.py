"""
Tests for LightController - desired state, reconnect replay, settle delay.

Hardware is MockLightDevice/MockLinkMonitor; the settle delay runs on fake
timers so every replay happens exactly when the test fires it.
"""

import threading
import time

import pytest

from luxsync.light import (
    ConnectionState,
    LightColor,
    LightColors,
    LightController,
    MockLightDevice,
    MockLinkMonitor,
)

RED = LightColor(255, 0, 0)
BLUE = LightColor(0, 0, 255)
PURPLE = LightColor(200, 0, 200)


class TestAttachDetach:

    def test_attach_starts_monitor(self, light, monitor, observer):
        assert light.attach(observer) is True
        assert light.is_attached
        assert monitor.is_running
        assert monitor.start_count == 1

    def test_second_attach_is_rejected(self, light, monitor, observer):
        light.attach(observer)
        other = type(observer)()
        assert light.attach(other) is False
        assert monitor.start_count == 1
        monitor.simulate(True)
        assert observer.connectivity == [True]
        assert other.connectivity == []

    def test_monitor_start_failure_is_reported(self, device, timers, observer):
        monitor = MockLinkMonitor(device, fail_start=True)
        light = LightController(device, monitor, timer_factory=timers)
        assert light.attach(observer) is False
        # Observer stays registered; the failure is non-fatal
        assert light.is_attached

    def test_detach_when_not_attached_is_noop(self, light, monitor):
        light.detach()
        assert monitor.stop_count == 0

    def test_detach_stops_monitor_and_clears_observer(self, light, monitor, observer):
        light.attach(observer)
        light.detach()
        assert not light.is_attached
        assert monitor.stop_count == 1
        assert not monitor.is_running

    def test_detach_cancels_pending_replay(self, light, monitor, observer, timers, device):
        light.attach(observer)
        light.set_color(RED)
        monitor.simulate(True)
        light.detach()
        assert timers.last.cancelled
        timers.last.function()  # A timer thread that raced the cancel
        assert device.colors == []

    def test_reattach_after_detach(self, light, monitor, observer):
        light.attach(observer)
        light.detach()
        assert light.attach(observer) is True
        assert monitor.start_count == 2


class TestSetColor:

    def test_connected_writes_immediately(self, light, device):
        device.connected = True
        light.set_color(RED)
        assert device.colors == [(255, 0, 0)]

    def test_disconnected_write_is_deferred(self, light, device):
        light.set_color(RED)
        assert device.colors == []
        assert light.desired.color == RED

    def test_brightness_applied_at_output_not_stored(self, light, device):
        device.connected = True
        light.set_brightness(0.5)
        light.set_color(LightColor(200, 100, 50))
        assert device.last_color == (100, 50, 25)
        assert light.desired.color == LightColor(200, 100, 50)

    def test_write_failure_is_swallowed(self, light, device):
        device.connected = True
        device.fail_writes = True
        light.set_color(RED)  # Must not raise
        assert device.colors == []
        assert light.desired.color == RED


class TestBrightness:

    def test_brightness_reissues_current_color(self, light, device):
        device.connected = True
        light.set_color(RED)
        light.set_brightness(0.5)
        assert device.colors == [(255, 0, 0), (128, 0, 0)]

    def test_brightness_without_color_has_no_device_effect(self, light, device):
        device.connected = True
        light.set_brightness(0.3)
        assert device.colors == []
        assert light.desired.brightness == pytest.approx(0.3)

    def test_brightness_is_clamped(self, light):
        light.set_brightness(3.0)
        assert light.desired.brightness == 1.0
        light.set_brightness(-1.0)
        assert light.desired.brightness == 0.0

    def test_dimmed_uses_dimmed_level(self, light, device):
        device.connected = True
        light.set_color(RED)
        light.set_dimmed(True)
        assert device.last_color == (26, 0, 0)
        light.set_dimmed(False)
        assert device.last_color == (255, 0, 0)

    def test_custom_dimmed_level(self, device, monitor, timers):
        light = LightController(device, monitor, timer_factory=timers, dimmed_brightness=0.5)
        device.connected = True
        light.set_color(LightColors.AVAILABLE)
        light.set_dimmed(True)
        assert device.last_color == (0, 128, 0)


class TestTransitionSpeed:

    def test_forwarded_when_connected(self, light, device):
        device.connected = True
        light.set_transition_speed(40)
        assert device.transition_speed == 40

    def test_out_of_range_speed_is_rejected_without_raising(self, light, device):
        device.connected = True
        light.set_transition_speed(300)
        assert device.speeds == []
        assert device.transition_speed == 0

    def test_dropped_when_disconnected(self, light, device):
        light.set_transition_speed(40)
        assert device.speeds == []

    def test_not_replayed_after_reconnect(self, light, monitor, device, observer, timers):
        """Color and brightness replay; transition speed does not."""
        light.attach(observer)
        light.set_color(RED)
        light.set_transition_speed(40)
        monitor.simulate(True)
        timers.last.fire()
        assert device.last_color == (255, 0, 0)
        assert device.speeds == []
        assert device.transition_speed == 0

    def test_speed_forgotten_on_disconnect(self, light, monitor, device, observer):
        light.attach(observer)
        monitor.simulate(True)
        light.set_transition_speed(40)
        monitor.simulate(False)
        assert device.transition_speed == 0
        assert device.resets == 1


class TestReconnectReplay:

    def test_replay_waits_for_settle_delay(self, light, monitor, device, observer, timers):
        light.attach(observer)
        light.set_color(RED)
        light.set_brightness(0.5)
        monitor.simulate(True)

        assert device.colors == []
        assert timers.last.interval == 2.0
        timers.last.fire()
        assert device.colors == [(128, 0, 0)]

    def test_observer_notified_without_color(self, light, monitor, device, observer, timers):
        light.attach(observer)
        monitor.simulate(True)
        monitor.simulate(False)
        assert observer.connectivity == [True, False]
        for timer in timers.timers:
            timer.fire()
        assert device.colors == []

    def test_disconnect_writes_nothing_and_keeps_desired(self, light, monitor, device, observer, timers):
        light.attach(observer)
        monitor.simulate(True)
        timers.last.fire()
        light.set_color(RED)
        writes = len(device.colors)
        monitor.simulate(False)
        assert len(device.colors) == writes
        assert light.desired.color == RED
        assert light.connection_state is ConnectionState.DISCONNECTED

    def test_color_set_while_unplugged_shows_on_reconnect(self, light, monitor, device, observer, timers):
        light.attach(observer)
        monitor.simulate(True)
        timers.last.fire()
        monitor.simulate(False)
        light.set_color(BLUE)
        light.set_dimmed(True)
        monitor.simulate(True)
        timers.last.fire()
        assert device.last_color == BLUE.scaled(0.1)

    def test_flap_inside_settle_window_replays_once(self, light, monitor, device, observer, timers):
        """connected -> disconnected -> connected before the delay expires."""
        light.attach(observer)
        light.set_color(RED)
        monitor.simulate(True)
        first = timers.last
        monitor.simulate(False)
        monitor.simulate(True)
        second = timers.last

        assert first.cancelled
        assert timers.active == [second]

        light.set_color(PURPLE)  # Changed mid-delay
        writes_before = len(device.colors)
        first.function()  # Stale generation: ignored even if it slipped through
        second.fire()

        replays = device.colors[writes_before:]
        assert replays == [PURPLE.scaled(1.0)]

    def test_replay_uses_state_at_fire_time(self, light, monitor, device, observer, timers):
        light.attach(observer)
        light.set_color(RED)
        monitor.simulate(True)
        light.set_brightness(0.5)
        light.set_color(BLUE)
        device.colors.clear()
        timers.last.fire()
        assert device.colors == [BLUE.scaled(0.5)]

    def test_replay_failure_is_swallowed(self, light, monitor, device, observer, timers):
        light.attach(observer)
        light.set_color(RED)
        monitor.simulate(True)
        device.fail_writes = True
        timers.last.fire()  # Must not raise
        assert device.colors == []

    @pytest.mark.parametrize("sequence", [
        [True, False, True],
        [True, False, True, False, True],
        [True],
    ])
    def test_reconnect_always_ends_on_last_desired(self, light, monitor, device, observer, timers, sequence):
        light.attach(observer)
        light.set_color(RED)
        light.set_brightness(0.25)
        for connected in sequence:
            monitor.simulate(connected)
        for timer in timers.timers:
            timer.fire()
        assert device.colors == [RED.scaled(0.25)]


class TestRealTimer:
    """One pass with threading.Timer to check the replay runs off the event thread."""

    def test_replay_runs_on_timer_thread(self):
        device = MockLightDevice()
        monitor = MockLinkMonitor(device)
        light = LightController(device, monitor, settle_delay=0.05)
        seen = []

        class Obs:
            def on_connectivity_changed(self, connected):
                seen.append(threading.current_thread().name)

        light.attach(Obs())
        light.set_color(RED)
        started = time.monotonic()
        monitor.simulate(True)
        # Event delivery returned without waiting for the settle delay
        assert time.monotonic() - started < 0.05
        assert device.colors == []

        deadline = time.monotonic() + 2.0
        while not device.colors and time.monotonic() < deadline:
            time.sleep(0.01)
        assert device.colors == [(255, 0, 0)]
        light.detach()
