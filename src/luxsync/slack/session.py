"""Session - cached access token mirrored from the token store."""

import logging
import threading
from typing import Callable, Optional

from ..store import TokenStore

logger = logging.getLogger(__name__)

SessionCallback = Callable[[bool], None]


class Session:
    """Single writer for the access token.

    The store is the source of truth across restarts; this object holds the
    copy used by in-flight requests and reports every logged-in change.

    A new token is cached only once the store accepted it. Removing a token
    always takes effect in memory, even if the store cannot be rewritten.
    """

    def __init__(self, store: TokenStore, on_change: Optional[SessionCallback] = None):
        self._store = store
        self._on_change = on_change
        self._token: Optional[str] = None
        self._lock = threading.Lock()

    @property
    def token(self) -> Optional[str]:
        with self._lock:
            return self._token

    @property
    def is_logged_in(self) -> bool:
        return self.token is not None

    def load(self) -> bool:
        """Refresh the cached token from the store. Returns logged-in status."""
        token = self._store.fetch_token()
        with self._lock:
            self._token = token or None
        self._notify()
        return self.is_logged_in

    def save(self, token: Optional[str]) -> None:
        """Persist token (None logs out) and notify.

        Raises:
            OSError: the store rejected a new token; the session is unchanged
        """
        token = token or None
        if token is None:
            self.clear()
            return
        with self._lock:
            self._store.save_token(token)
            self._token = token
        logger.info("Slack: session saved")
        self._notify()

    def clear(self) -> None:
        """Log out. Idempotent."""
        with self._lock:
            self._remove_stored()
            self._token = None
        logger.info("Slack: session cleared")
        self._notify()

    def invalidate(self, token_used: Optional[str]) -> bool:
        """Clear the token after the server rejected token_used.

        Returns False when the session has moved on (a newer token or already
        cleared), in which case nothing changes.
        """
        with self._lock:
            if token_used is None or self._token != token_used:
                return False
            self._remove_stored()
            self._token = None
        logger.warning("Slack: token rejected, removing token")
        self._notify()
        return True

    def _remove_stored(self) -> None:
        try:
            self._store.save_token(None)
        except OSError as e:
            logger.error("Slack: could not remove stored token: %s", e)

    def _notify(self) -> None:
        if self._on_change is not None:
            self._on_change(self.is_logged_in)
