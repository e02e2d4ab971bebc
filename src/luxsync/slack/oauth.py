"""
OAuth handshake - turns a browser authorization into a stored access token.

Flow:
1. begin_authorization() opens Slack's authorize page in the browser
2. Slack redirects to the configured redirect target, which ends up as a
   `<scheme>://slack/activate?code=...` URL handed to handle_redirect()
3. exchange_code() trades the one-time code for a token via oauth.access

Codes are single-use on Slack's side, so each one is sent exactly once and
never retried.
"""

import logging
import webbrowser
from enum import Enum
from typing import Callable, Optional, Protocol, Set
from urllib.parse import parse_qs, urlencode, urlsplit

from ..config import SlackConfig
from ..errors import AuthorizationError, ErrorType, SlackError
from ..tasks import BackgroundTasks
from .client import METHOD_OAUTH_ACCESS, SlackClient
from .session import Session

logger = logging.getLogger(__name__)

CALLBACK_HOST = "slack"
CALLBACK_PATH = "/activate"

MESSAGE_CODE_NOT_FOUND = "Activation code not found."
MESSAGE_EXCHANGE_FAILED = "OAuth access request failed. Try again later."
UNKNOWN_TEAM = "Unknown"


class OAuthState(Enum):
    IDLE = "idle"
    AWAITING_CALLBACK = "awaiting_callback"
    EXCHANGING = "exchanging"


class AuthorizationReporter(Protocol):
    def on_authorization_succeeded(self, team_name: str) -> None: ...

    def on_authorization_failed(self, message: str) -> None: ...


class OAuthHandler:
    """Idle -> AwaitingCallback -> Exchanging -> Idle."""

    def __init__(
        self,
        session: Session,
        client: SlackClient,
        config: SlackConfig,
        reporter: AuthorizationReporter,
        open_url: Callable[[str], object] = webbrowser.open,
        tasks: Optional[BackgroundTasks] = None,
    ):
        self._session = session
        self._client = client
        self._config = config
        self._reporter = reporter
        self._open_url = open_url
        self._tasks = tasks or BackgroundTasks()
        self._state = OAuthState.IDLE
        self._used_codes: Set[str] = set()

    @property
    def state(self) -> OAuthState:
        return self._state

    def authorize_url(self) -> str:
        """Slack authorize page for this app."""
        if not self._config.client_id:
            raise AuthorizationError("Slack client id is not configured")
        query = urlencode({
            "client_id": self._config.client_id,
            "scope": self._config.scope,
            "redirect_uri": self._config.redirect_uri,
        })
        return f"{self._client.base_url}/oauth/authorize?{query}"

    def begin_authorization(self) -> str:
        """Open the authorize link in the browser. Returns the URL opened.

        Raises:
            AuthorizationError: client id not configured
        """
        url = self.authorize_url()
        self._state = OAuthState.AWAITING_CALLBACK
        logger.info("Slack: opening authorize page")
        self._open_url(url)
        return url

    @staticmethod
    def matches_callback(url: str) -> bool:
        parts = urlsplit(url)
        host = (parts.hostname or "").lower()
        return host == CALLBACK_HOST and parts.path.lower() == CALLBACK_PATH

    def handle_redirect(self, url: str) -> bool:
        """Consume a redirect URL.

        Returns:
            False if the URL is not ours (other consumers may want it),
            True if it was handled (successfully or not).
        """
        if not self.matches_callback(url):
            return False

        if self._state is OAuthState.EXCHANGING:
            logger.warning("Slack: callback ignored, exchange already in progress")
            return True

        codes = parse_qs(urlsplit(url).query).get("code")
        code = codes[0] if codes else None
        if not code:
            logger.warning("Slack: callback without activation code")
            self._state = OAuthState.IDLE
            self._reporter.on_authorization_failed(MESSAGE_CODE_NOT_FOUND)
            return True

        previous, self._state = self._state, OAuthState.EXCHANGING
        try:
            self._tasks.spawn(self.exchange_code(code))
        except RuntimeError as e:
            logger.error("Slack: oauth.access not sent: %s", e)
            self._state = previous
            self._reporter.on_authorization_failed(MESSAGE_EXCHANGE_FAILED)
        return True

    async def exchange_code(self, code: str) -> bool:
        """Request oauth.access for code. Returns True if a token was stored."""
        if code in self._used_codes:
            logger.warning("Slack: activation code already used, ignoring")
            self._state = OAuthState.IDLE
            return False
        self._used_codes.add(code)
        self._state = OAuthState.EXCHANGING

        try:
            try:
                payload = await self._client.call(
                    METHOD_OAUTH_ACCESS,
                    client_id=self._config.client_id,
                    client_secret=self._config.client_secret,
                    code=code,
                    redirect_uri=self._config.redirect_uri,
                )
            except SlackError as e:
                logger.warning("Slack: oauth.access failure: %s", e)
                return self._fail()

            token = payload.get("access_token")
            if not isinstance(token, str) or not token:
                logger.warning("Slack: oauth.access returned no access token")
                return self._fail()

            try:
                self._session.save(token)
            except OSError as e:
                logger.error("Slack: could not store access token: %s", e)
                return self._fail()

            team_name = payload.get("team_name") or UNKNOWN_TEAM
            logger.info("Slack: oauth.access success, team=%s", team_name)
            self._reporter.on_authorization_succeeded(team_name)
            return True
        finally:
            self._state = OAuthState.IDLE

    def _fail(self) -> bool:
        self._session.clear()
        self._reporter.on_authorization_failed(MESSAGE_EXCHANGE_FAILED)
        return False


def require_credentials(config: SlackConfig) -> None:
    """Raise AuthorizationError unless both client credentials are present."""
    if not config.is_configured:
        raise AuthorizationError(
            "Slack client id/secret are not configured", error_type=ErrorType.CONFIG
        )
