"""
App wiring - one availability signal drives both the light and Slack.

    AVAILABLE -> green, Slack snooze ended
    BUSY      -> red, Slack snoozed
    LOCKED    -> light off, Slack untouched
"""

import logging
from enum import Enum
from typing import Callable, Optional

from .config import LuxsyncConfig
from .light import (
    HidLinkMonitor,
    LightColors,
    LightController,
    LuxaforDevice,
    MockLightDevice,
    MockLinkMonitor,
)
from .slack import SlackClient, SlackController
from .store import JsonTokenStore, MemoryTokenStore

logger = logging.getLogger(__name__)


class Availability(Enum):
    AVAILABLE = "available"
    BUSY = "busy"
    LOCKED = "locked"


AVAILABILITY_COLORS = {
    Availability.AVAILABLE: LightColors.AVAILABLE,
    Availability.BUSY: LightColors.BUSY,
    Availability.LOCKED: LightColors.LOCKED,
}


class LuxsyncApp:
    """Observer for both controllers; maps availability onto them."""

    def __init__(self, light: LightController, slack: SlackController):
        self.light = light
        self.slack = slack
        self.connected = False
        self.logged_in = False
        self.availability: Optional[Availability] = None
        self.last_auth_message: Optional[str] = None

    @classmethod
    def from_config(
        cls,
        config: LuxsyncConfig,
        mock: bool = False,
        open_url: Optional[Callable[[str], object]] = None,
    ) -> "LuxsyncApp":
        """Build hardware (or mock) light, token store and Slack client from config."""
        light_cfg = config.light
        if mock:
            device = MockLightDevice()
            monitor = MockLinkMonitor(device)
            store = MemoryTokenStore()
        else:
            device = LuxaforDevice(light_cfg.vendor_id, light_cfg.product_id)
            monitor = HidLinkMonitor(light_cfg.vendor_id, light_cfg.product_id, light_cfg.poll_interval)
            store = JsonTokenStore(config.resolved_token_path)

        light = LightController(
            device,
            monitor,
            settle_delay=light_cfg.settle_delay,
            normal_brightness=light_cfg.normal_brightness,
            dimmed_brightness=light_cfg.dimmed_brightness,
        )
        client = SlackClient(config.slack.base_url, timeout=config.slack.timeout)
        kwargs = {"open_url": open_url} if open_url is not None else {}
        slack = SlackController(store, client, config.slack, **kwargs)
        return cls(light, slack)

    def start(self) -> bool:
        """Attach both controllers. Returns whether the light monitor started."""
        self.slack.attach(self)
        return self.light.attach(self)

    def stop(self) -> None:
        self.light.detach()
        self.slack.detach()

    def set_availability(self, availability: Availability) -> None:
        """Show availability on the light and mirror it into Slack DND.

        Must be called from the event loop thread (Slack requests are tasks).
        """
        self.availability = availability
        self.light.set_color(AVAILABILITY_COLORS[availability])
        if availability is Availability.LOCKED:
            return
        self.slack.set_snoozed(availability is Availability.BUSY)

    def set_dimmed(self, dimmed: bool) -> None:
        self.light.set_dimmed(dimmed)

    # -- LightControllerObserver ------------------------------------------

    def on_connectivity_changed(self, connected: bool) -> None:
        self.connected = connected
        logger.info("Light %s", "connected" if connected else "disconnected")

    # -- SlackControllerObserver ------------------------------------------

    def on_session_state_changed(self, logged_in: bool) -> None:
        self.logged_in = logged_in
        logger.info("Slack %s", "logged in" if logged_in else "logged out")

    def on_authorization_succeeded(self, team_name: str) -> None:
        self.last_auth_message = (
            f"Your Do Not Disturb status will now be published to your '{team_name}' account."
        )
        logger.info("Slack integration successfully added for team %s", team_name)

    def on_authorization_failed(self, message: str) -> None:
        self.last_auth_message = message
        logger.warning("Slack authentication failed: %s", message)
