"""
Error taxonomy - what can go wrong, and how each failure degrades.

Provides:
- Error classification (device, transport, application, callback, config)
- Specific exception types for each failure mode
- safe_call for containing failures in long-lived threads

Nothing here is fatal: every failure maps to an observable state
(Unknown DND state, logged-out session, deferred light write).
"""

import logging
from enum import Enum
from typing import Callable, Optional, TypeVar

logger = logging.getLogger(__name__)


class ErrorType(Enum):
    """Classification of error types."""
    DEVICE_UNAVAILABLE = "device_unavailable"  # Light unplugged, recovered by replay
    TRANSPORT = "transport"                    # Network/HTTP layer, DND goes Unknown
    APPLICATION = "application"                # Well-formed API response with an error code
    MALFORMED_CALLBACK = "malformed_callback"  # Redirect without a code
    CONFIG = "config"                          # Missing client credentials, bad config


AUTH_ERROR_CODES = frozenset({"invalid_auth", "not_authed"})

T = TypeVar('T')


class LuxsyncError(Exception):
    """Base class for all luxsync errors."""
    error_type: ErrorType = ErrorType.CONFIG


class DeviceUnavailableError(LuxsyncError):
    """Write attempted while the light is unplugged or gone."""
    error_type = ErrorType.DEVICE_UNAVAILABLE


class SlackError(LuxsyncError):
    """Base class for Slack request failures."""

    def __init__(self, method: str, message: str):
        super().__init__(f"{method}: {message}")
        self.method = method


class SlackTransportError(SlackError):
    """Request never produced a usable response (network, HTTP status, bad JSON)."""
    error_type = ErrorType.TRANSPORT


class SlackApiError(SlackError):
    """Slack answered with an `error` field."""
    error_type = ErrorType.APPLICATION

    def __init__(self, method: str, error: str):
        super().__init__(method, f"API error={error}")
        self.error = error

    @property
    def is_auth_error(self) -> bool:
        """True when the token is no longer valid."""
        return self.error in AUTH_ERROR_CODES


class AuthorizationError(LuxsyncError):
    """OAuth flow cannot proceed."""

    def __init__(self, message: str, error_type: ErrorType = ErrorType.CONFIG):
        super().__init__(message)
        self.error_type = error_type


class ConfigError(LuxsyncError):
    """Configuration is invalid."""
    error_type = ErrorType.CONFIG


def classify_error(error: Exception) -> ErrorType:
    """
    Classify an exception into an error type.

    luxsync errors carry their own type. Anything else raised from the
    device or network boundary is bucketed by its exception family.
    """
    if isinstance(error, LuxsyncError):
        return error.error_type
    if isinstance(error, (ConnectionError, TimeoutError)):
        return ErrorType.TRANSPORT
    if isinstance(error, OSError):
        return ErrorType.DEVICE_UNAVAILABLE
    if isinstance(error, (KeyError, ValueError)):
        return ErrorType.CONFIG
    # Default to transport for unknown errors
    return ErrorType.TRANSPORT


def safe_call(
    func: Callable[[], T],
    default: Optional[T] = None,
    log_error: bool = True
) -> Optional[T]:
    """
    Safely call a function, returning default on error.

    Args:
        func: Function to call
        default: Value to return on error
        log_error: If True, log the error with its classification

    Returns:
        Function result or default
    """
    try:
        return func()
    except Exception as e:
        if log_error:
            logger.exception("safe_call: %s error: %s", classify_error(e).value, e)
        return default
