"""Token persistence - the only state that survives a restart.

JsonTokenStore uses the write-to-temp-then-rename pattern:
1. Write to a .tmp file in the same directory
2. Flush + fsync the file descriptor
3. Replace the target path (atomic on POSIX)

so a crash mid-write never leaves a half-written token behind.
"""

import json
import logging
import os
import threading
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Optional, Union

logger = logging.getLogger(__name__)

TOKEN_KEY = "slack_token"


class TokenStore(ABC):
    """Load/save a single access-token value."""

    @abstractmethod
    def fetch_token(self) -> Optional[str]:
        """Stored token, or None when logged out."""

    @abstractmethod
    def save_token(self, token: Optional[str]) -> None:
        """Persist token; None removes it."""


class MemoryTokenStore(TokenStore):
    """In-process store for tests and mock runs."""

    def __init__(self, token: Optional[str] = None):
        self._token = token
        self.save_count = 0

    def fetch_token(self) -> Optional[str]:
        return self._token

    def save_token(self, token: Optional[str]) -> None:
        self._token = token
        self.save_count += 1


class JsonTokenStore(TokenStore):
    """Token kept in a small JSON document, readable only by the owner."""

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path).expanduser()
        self._lock = threading.Lock()

    def fetch_token(self) -> Optional[str]:
        with self._lock:
            try:
                with open(self.path, "r") as f:
                    data = json.load(f)
            except FileNotFoundError:
                return None
            except (OSError, ValueError) as e:
                logger.warning("Token store %s unreadable, treating as logged out: %s", self.path, e)
                return None

        token = data.get(TOKEN_KEY) if isinstance(data, dict) else None
        return token if isinstance(token, str) and token else None

    def save_token(self, token: Optional[str]) -> None:
        with self._lock:
            self._atomic_write({TOKEN_KEY: token})
        logger.debug("Token store %s updated (token=%s)", self.path, "set" if token else "cleared")

    def _atomic_write(self, data: dict) -> None:
        tmp_path = self.path.with_suffix(".tmp")
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd = os.open(tmp_path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
            with os.fdopen(fd, "w") as f:
                json.dump(data, f)
                f.flush()
                os.fsync(f.fileno())
            tmp_path.replace(self.path)
        except BaseException:
            try:
                tmp_path.unlink(missing_ok=True)
            except OSError:
                pass
            raise
