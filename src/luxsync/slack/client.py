"""
Slack Web API client - the three calls luxsync needs.

    oauth.access    client_id, client_secret, code, redirect_uri -> access_token, team_name
    dnd.setSnooze   token, num_minutes
    dnd.endSnooze   token

Every response is a JSON object; an `error` field means the call failed at
the application level even when HTTP says 200.
"""

import logging
from typing import Any, Dict, Optional

import httpx

from ..errors import SlackApiError, SlackTransportError

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://slack.com"
DEFAULT_TIMEOUT = 10.0

METHOD_OAUTH_ACCESS = "oauth.access"
METHOD_SET_SNOOZE = "dnd.setSnooze"
METHOD_END_SNOOZE = "dnd.endSnooze"


class SlackClient:
    """Posts form-encoded requests to the Slack Web API."""

    def __init__(
        self,
        base_url: str = DEFAULT_BASE_URL,
        timeout: float = DEFAULT_TIMEOUT,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Args:
            base_url: Slack root, e.g. "https://slack.com"
            timeout: Per-request timeout in seconds; expiry is a transport failure
            transport: Optional httpx transport (tests pass httpx.MockTransport)
        """
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout
        self._transport = transport

    @property
    def base_url(self) -> str:
        return self._base_url

    def method_url(self, method: str) -> str:
        return f"{self._base_url}/api/{method}"

    async def call(self, method: str, **params: Any) -> Dict[str, Any]:
        """
        Call an API method.

        Returns:
            Parsed response object

        Raises:
            SlackTransportError: network error, timeout, non-2xx, bad JSON
            SlackApiError: response carried an error code
        """
        data = {k: str(v) for k, v in params.items() if v is not None}
        try:
            async with httpx.AsyncClient(timeout=self._timeout, transport=self._transport) as client:
                response = await client.post(self.method_url(method), data=data)
                response.raise_for_status()
                payload = response.json()
        except httpx.HTTPError as e:
            logger.warning("Slack: %s request error=%s", method, e)
            raise SlackTransportError(method, str(e) or type(e).__name__) from e
        except ValueError as e:
            logger.warning("Slack: %s returned invalid JSON: %s", method, e)
            raise SlackTransportError(method, "invalid JSON response") from e

        if not isinstance(payload, dict):
            logger.warning("Slack: %s returned unexpected payload type %s", method, type(payload).__name__)
            raise SlackTransportError(method, "unexpected response payload")

        error = payload.get("error")
        if error or payload.get("ok") is False:
            error = str(error or "unknown_error")
            logger.warning("Slack: %s API error=%s", method, error)
            raise SlackApiError(method, error)

        logger.info("Slack: %s success", method)
        return payload
