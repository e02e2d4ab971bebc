"""
Device link monitor - watches for the light being plugged in and pulled out.

HidLinkMonitor polls the HID bus on a daemon thread and reports each
attach/detach exactly once. Callbacks run on that thread, so consumers must
not block in them.
"""

import logging
import threading
from abc import ABC, abstractmethod
from typing import Callable, List, Optional

from ..config import LUXAFOR_PRODUCT_ID, LUXAFOR_VENDOR_ID
from ..errors import safe_call

logger = logging.getLogger(__name__)

LinkCallback = Callable[[bool], None]
EnumerateFunc = Callable[[int, int], List[dict]]


class LinkMonitor(ABC):
    """Abstract attach/detach watcher - implemented by HID polling and mock."""

    @abstractmethod
    def start(self, callback: LinkCallback) -> bool:
        """Begin watching. Returns False if watching cannot be installed."""

    @abstractmethod
    def stop(self) -> None:
        """Stop watching. No-op when not started."""

    @property
    @abstractmethod
    def is_running(self) -> bool:
        pass


class HidLinkMonitor(LinkMonitor):
    """Polls hid.enumerate for a vendor/product pair."""

    def __init__(
        self,
        vendor_id: int = LUXAFOR_VENDOR_ID,
        product_id: int = LUXAFOR_PRODUCT_ID,
        poll_interval: float = 1.0,
        enumerate_devices: Optional[EnumerateFunc] = None,
    ):
        self._vendor_id = vendor_id
        self._product_id = product_id
        self._poll_interval = poll_interval
        self._enumerate = enumerate_devices
        self._callback: Optional[LinkCallback] = None
        self._connected = False
        self._stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None

    @property
    def is_running(self) -> bool:
        return self._thread is not None

    @property
    def connected(self) -> bool:
        """Last observed presence."""
        return self._connected

    def _resolve_enumerate(self) -> Optional[EnumerateFunc]:
        if self._enumerate is not None:
            return self._enumerate
        try:
            import hid
        except ImportError:
            logger.error("Light: hidapi not installed. Run: pip install hidapi")
            return None
        return hid.enumerate

    def start(self, callback: LinkCallback) -> bool:
        if self.is_running:
            return True

        enumerate_devices = self._resolve_enumerate()
        if enumerate_devices is None:
            return False
        self._enumerate = enumerate_devices

        # Fail early if the bus cannot be queried at all
        try:
            enumerate_devices(self._vendor_id, self._product_id)
        except OSError as e:
            logger.error("Light: cannot enumerate USB devices: %s", e)
            return False

        self._callback = callback
        self._connected = False
        self._stop_event.clear()
        self._thread = threading.Thread(
            target=self._poll_loop, daemon=True, name="luxsync-link-monitor"
        )
        self._thread.start()
        logger.info(
            "Light: watching for %04x:%04x every %.1fs",
            self._vendor_id, self._product_id, self._poll_interval,
        )
        return True

    def stop(self) -> None:
        if not self.is_running:
            return
        self._stop_event.set()
        if self._thread is not threading.current_thread():
            self._thread.join(timeout=max(2.0, self._poll_interval * 2))
        self._thread = None
        self._callback = None
        logger.info("Light: stopped watching")

    def _poll_loop(self) -> None:
        """Main poll loop - runs in background thread."""
        while not self._stop_event.is_set():
            self.poll_once()
            self._stop_event.wait(self._poll_interval)

    def poll_once(self) -> Optional[bool]:
        """Check presence once. Returns the new state on a transition, else None."""
        try:
            present = bool(self._enumerate(self._vendor_id, self._product_id))
        except OSError as e:
            logger.warning("Light: USB enumeration failed: %s", e)
            return None

        if present == self._connected:
            return None

        self._connected = present
        logger.info("Light: device %s", "attached" if present else "detached")
        callback = self._callback
        if callback is not None:
            safe_call(lambda: callback(present))
        return present
