"""
Shared test fixtures for the luxsync test suite.

Nothing here touches real hardware or the network: the light is a
MockLightDevice driven by MockLinkMonitor, the settle delay runs on fake
timers fired by hand, and Slack is an httpx.MockTransport that replays
scripted responses.
"""

import asyncio
import threading
from typing import Any, Dict, List, Optional, Tuple
from urllib.parse import parse_qs

import httpx
import pytest

from luxsync.config import SlackConfig
from luxsync.light import LightController, MockLightDevice, MockLinkMonitor
from luxsync.slack import SlackClient, SlackController
from luxsync.store import MemoryTokenStore


# ---------------------------------------------------------------------------
# Timers
# ---------------------------------------------------------------------------

class FakeTimer:
    """Stands in for threading.Timer; fire() runs the callback synchronously."""

    def __init__(self, interval, function):
        self.interval = interval
        self.function = function
        self.started = False
        self.cancelled = False

    def start(self):
        self.started = True

    def cancel(self):
        self.cancelled = True

    def fire(self):
        if self.started and not self.cancelled:
            self.function()


class FakeTimerFactory:
    def __init__(self):
        self.timers: List[FakeTimer] = []

    def __call__(self, interval, function):
        timer = FakeTimer(interval, function)
        self.timers.append(timer)
        return timer

    @property
    def last(self) -> FakeTimer:
        return self.timers[-1]

    @property
    def active(self) -> List[FakeTimer]:
        return [t for t in self.timers if t.started and not t.cancelled]


@pytest.fixture
def timers():
    return FakeTimerFactory()


# ---------------------------------------------------------------------------
# Observers
# ---------------------------------------------------------------------------

class RecordingObserver:
    """Implements both controller observer protocols and records every call."""

    def __init__(self):
        self.connectivity: List[bool] = []
        self.sessions: List[bool] = []
        self.successes: List[str] = []
        self.failures: List[str] = []

    def on_connectivity_changed(self, connected):
        self.connectivity.append(connected)

    def on_session_state_changed(self, logged_in):
        self.sessions.append(logged_in)

    def on_authorization_succeeded(self, team_name):
        self.successes.append(team_name)

    def on_authorization_failed(self, message):
        self.failures.append(message)


@pytest.fixture
def observer():
    return RecordingObserver()


# ---------------------------------------------------------------------------
# Light
# ---------------------------------------------------------------------------

@pytest.fixture
def device():
    return MockLightDevice()


@pytest.fixture
def monitor(device):
    return MockLinkMonitor(device)


@pytest.fixture
def light(device, monitor, timers):
    """LightController on mock hardware with hand-fired settle timers."""
    return LightController(device, monitor, settle_delay=2.0, timer_factory=timers)


# ---------------------------------------------------------------------------
# Slack
# ---------------------------------------------------------------------------

class FakeSlack:
    """Scripted Slack Web API behind httpx.MockTransport.

    Queue responses per method with respond(); each entry is a JSON payload,
    an httpx.Response, an exception to raise, or an async callable taking the
    request. Unscripted calls answer {"ok": true}.
    """

    def __init__(self):
        self.requests: List[Tuple[str, Dict[str, str]]] = []
        self._scripts: Dict[str, List[Any]] = {}
        self.transport = httpx.MockTransport(self._handle)

    def respond(self, method: str, *entries: Any) -> None:
        self._scripts.setdefault(method, []).extend(entries)

    def calls(self, method: Optional[str] = None) -> List[Dict[str, str]]:
        return [params for m, params in self.requests if method is None or m == method]

    async def _handle(self, request: httpx.Request) -> httpx.Response:
        method = request.url.path.rsplit("/", 1)[-1]
        params = {k: v[0] for k, v in parse_qs(request.content.decode()).items()}
        self.requests.append((method, params))

        script = self._scripts.get(method)
        entry = script.pop(0) if script else {"ok": True}

        if callable(entry):
            entry = await entry(request)
        if isinstance(entry, Exception):
            raise entry
        if isinstance(entry, httpx.Response):
            return entry
        return httpx.Response(200, json=entry)


@pytest.fixture
def fake_slack():
    return FakeSlack()


@pytest.fixture
def slack_client(fake_slack):
    return SlackClient("https://slack.test", timeout=1.0, transport=fake_slack.transport)


@pytest.fixture
def slack_config():
    return SlackConfig(
        client_id="client-123",
        client_secret="secret-456",
        redirect_uri="luxsync://slack/activate",
    )


class FailingTokenStore(MemoryTokenStore):
    """MemoryTokenStore whose writes raise OSError while fail_saves is set."""

    def __init__(self, token=None):
        super().__init__(token)
        self.fail_saves = False

    def save_token(self, token):
        if self.fail_saves:
            raise OSError("disk full")
        super().save_token(token)


@pytest.fixture
def token_store():
    return FailingTokenStore()


@pytest.fixture
def opened_urls():
    return []


@pytest.fixture
def slack(token_store, slack_client, slack_config, opened_urls):
    """SlackController wired to FakeSlack; opened browser URLs are recorded."""
    return SlackController(token_store, slack_client, slack_config, open_url=opened_urls.append)


@pytest.fixture
def logged_in_slack(slack, token_store, observer):
    """Attached controller with a stored token."""
    token_store.save_token("xoxp-token")
    slack.attach(observer)
    return slack


def gate():
    """Async response entry that waits for the returned event before answering."""
    event = asyncio.Event()

    def make(payload):
        async def entry(request):
            await event.wait()
            return payload
        return entry

    return event, make


def call_in_thread(func, *args):
    """Run func on a plain thread with no event loop. Returns (result, errors)."""
    result, errors = [], []

    def target():
        try:
            result.append(func(*args))
        except Exception as e:
            errors.append(e)

    thread = threading.Thread(target=target)
    thread.start()
    thread.join(5.0)
    return (result[0] if result else None), errors
