"""
Slack controller - mirrors the desired snooze state into Slack Do Not Disturb.

set_snoozed() returns immediately; the request runs as a background task and
the outcome lands in dnd_state. The controller never claims to know the
remote state unless Slack confirmed it: any failure leaves it UNKNOWN.

Repeated toggles are suppressed against the last *requested* value, not the
last confirmed one, so a failed request is only retried once the desired
value actually changes.
"""

import asyncio
import logging
import threading
import webbrowser
from enum import Enum
from typing import Callable, Optional, Protocol

from ..config import SlackConfig
from ..errors import SlackApiError, SlackTransportError
from ..store import TokenStore
from ..tasks import BackgroundTasks
from .client import METHOD_END_SNOOZE, METHOD_SET_SNOOZE, SlackClient
from .oauth import OAuthHandler, OAuthState
from .session import Session

logger = logging.getLogger(__name__)


class DndState(Enum):
    UNKNOWN = "unknown"
    SNOOZED = "snoozed"
    NOT_SNOOZED = "not_snoozed"


class SlackControllerObserver(Protocol):
    def on_session_state_changed(self, logged_in: bool) -> None:
        """Logged in status changed."""

    def on_authorization_succeeded(self, team_name: str) -> None:
        """OAuth exchange stored a token for team_name."""

    def on_authorization_failed(self, message: str) -> None:
        """OAuth flow failed; message is user-facing."""


class SlackController:
    """Owns the Slack session and DND snooze toggling."""

    def __init__(
        self,
        store: TokenStore,
        client: SlackClient,
        config: Optional[SlackConfig] = None,
        open_url: Callable[[str], object] = webbrowser.open,
    ):
        self._config = config or SlackConfig()
        self._client = client
        self._tasks = BackgroundTasks()
        self._session = Session(store, on_change=self._on_session_changed)
        self._oauth = OAuthHandler(
            self._session, client, self._config, self, open_url=open_url, tasks=self._tasks
        )

        self._lock = threading.Lock()
        self._observer: Optional[SlackControllerObserver] = None
        self._requested: Optional[bool] = None
        self._dnd_state = DndState.UNKNOWN
        self._sequence = 0
        self._last_token: Optional[str] = None

    # -- lifecycle ---------------------------------------------------------

    def attach(self, observer: SlackControllerObserver) -> None:
        """Attach observer and report the stored session.

        Called on the event loop thread, this also binds the loop that
        requests from other threads are scheduled on.
        """
        self._tasks.bind()
        self._observer = observer
        self._session.load()

    def detach(self) -> None:
        if self._observer is None:
            return
        self._observer = None

    @property
    def is_logged_in(self) -> bool:
        return self._session.is_logged_in

    @property
    def session(self) -> Session:
        return self._session

    @property
    def oauth(self) -> OAuthHandler:
        return self._oauth

    @property
    def oauth_state(self) -> OAuthState:
        return self._oauth.state

    @property
    def dnd_state(self) -> DndState:
        with self._lock:
            return self._dnd_state

    @property
    def requested(self) -> Optional[bool]:
        """Last snooze value sent (None before the first request)."""
        with self._lock:
            return self._requested

    # -- integration -------------------------------------------------------

    def add_integration(self) -> str:
        """Start Slack authentication. Returns the authorize URL opened."""
        return self._oauth.begin_authorization()

    def handle_redirect(self, url: str) -> bool:
        """Pass an opened URL to the OAuth handler. False if it is not ours."""
        return self._oauth.handle_redirect(url)

    def remove_integration(self, confirm: Optional[Callable[[], bool]] = None) -> bool:
        """Remove the Slack integration after optional confirmation.

        Returns:
            True if the token was cleared
        """
        if confirm is not None and not confirm():
            return False
        self._session.clear()
        return True

    # -- snooze ------------------------------------------------------------

    def set_snoozed(self, snoozed: bool) -> Optional["asyncio.Task[None]"]:
        """Update snoozed state by sending a DND request.

        Safe to call from any thread once the controller has been attached
        on the event loop; off-loop calls are handed over to that loop.

        Returns:
            The request task when called on the loop thread, otherwise None
        """
        with self._lock:
            if self._requested == snoozed:
                logger.debug("Slack: snoozed=%s already requested", snoozed)
                return None
            token = self._session.token
            if token is None:
                logger.info("Slack: not logged in, snoozed=%s not sent", snoozed)
                return None
            sequence = self._sequence + 1
            try:
                task = self._tasks.spawn(self._send_snooze(snoozed, token, sequence))
            except RuntimeError as e:
                logger.error("Slack: snoozed=%s not sent: %s", snoozed, e)
                return None
            self._requested = snoozed
            self._sequence = sequence
        return task

    async def _send_snooze(self, snoozed: bool, token: str, sequence: int) -> None:
        if snoozed:
            method = METHOD_SET_SNOOZE
            params = {"num_minutes": self._config.snooze_minutes}
        else:
            method = METHOD_END_SNOOZE
            params = {}

        state = DndState.UNKNOWN
        try:
            await self._client.call(method, token=token, **params)
            state = DndState.SNOOZED if snoozed else DndState.NOT_SNOOZED
        except SlackApiError as e:
            if e.is_auth_error:
                self._session.invalidate(token)
        except SlackTransportError:
            pass
        finally:
            self._settle(sequence, state, method)

    def _settle(self, sequence: int, state: DndState, method: str) -> None:
        with self._lock:
            if sequence != self._sequence:
                logger.debug("Slack: stale %s response #%d ignored (latest #%d)",
                             method, sequence, self._sequence)
                return
            self._dnd_state = state
        logger.info("Slack: dnd state=%s", state.value)

    async def wait_idle(self) -> None:
        """Wait for in-flight requests (snooze and OAuth) to finish."""
        await self._tasks.wait()

    # -- session + authorization callbacks --------------------------------

    def _on_session_changed(self, logged_in: bool) -> None:
        token = self._session.token
        with self._lock:
            new_token = token is not None and token != self._last_token
            self._last_token = token
            if new_token:
                # New session: nothing has been sent with this token yet
                self._requested = None
                self._dnd_state = DndState.UNKNOWN
        if self._observer is not None:
            self._observer.on_session_state_changed(logged_in)

    def on_authorization_succeeded(self, team_name: str) -> None:
        if self._observer is not None:
            self._observer.on_authorization_succeeded(team_name)

    def on_authorization_failed(self, message: str) -> None:
        logger.warning("Slack: authentication failed: %s", message)
        if self._observer is not None:
            self._observer.on_authorization_failed(message)
