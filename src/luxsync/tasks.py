"""Fire-and-forget asyncio tasks with strong references."""

import asyncio
import logging
import threading
from typing import Any, Coroutine, Optional, Set

logger = logging.getLogger(__name__)


class BackgroundTasks:
    """Tracks tasks spawned on behalf of synchronous callers.

    asyncio only keeps weak references to tasks, so anything scheduled and
    not awaited has to be held here until it finishes.

    Callers on other threads (USB monitor, replay timers) are handed over to
    the bound loop with call_soon_threadsafe.
    """

    def __init__(self) -> None:
        self._tasks: Set["asyncio.Task[Any]"] = set()
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._queued = 0
        self._lock = threading.Lock()

    def bind(self, loop: Optional[asyncio.AbstractEventLoop] = None) -> bool:
        """Remember the loop to schedule on. Defaults to the running loop.

        Returns:
            True if a loop is bound
        """
        if loop is None:
            try:
                loop = asyncio.get_running_loop()
            except RuntimeError:
                return self._loop is not None
        self._loop = loop
        return True

    def spawn(self, coro: Coroutine[Any, Any, Any]) -> Optional["asyncio.Task[Any]"]:
        """Schedule coro on the event loop.

        Returns:
            The task when called on the loop thread, None when handed over
            from another thread

        Raises:
            RuntimeError: no running loop here and none bound (coro is closed)
        """
        try:
            running = asyncio.get_running_loop()
        except RuntimeError:
            running = None

        if running is not None:
            if self._loop is None or self._loop.is_closed():
                self._loop = running
            if running is self._loop:
                return self._start(coro)

        loop = self._loop
        if loop is None or loop.is_closed():
            coro.close()
            raise RuntimeError("no event loop bound for background tasks")

        with self._lock:
            self._queued += 1
        try:
            loop.call_soon_threadsafe(self._start_queued, coro)
        except RuntimeError:
            with self._lock:
                self._queued -= 1
            coro.close()
            raise
        return None

    def _start(self, coro: Coroutine[Any, Any, Any]) -> "asyncio.Task[Any]":
        task = asyncio.get_running_loop().create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._done)
        return task

    def _start_queued(self, coro: Coroutine[Any, Any, Any]) -> None:
        with self._lock:
            self._queued -= 1
        self._start(coro)

    def _done(self, task: "asyncio.Task[Any]") -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        error = task.exception()
        if error is not None:
            logger.error("Background task failed: %s", error, exc_info=error)

    @property
    def pending(self) -> int:
        with self._lock:
            return len(self._tasks) + self._queued

    async def wait(self) -> None:
        """Wait until every tracked task (including ones spawned meanwhile) is done."""
        while self.pending:
            if self._tasks:
                await asyncio.gather(*list(self._tasks), return_exceptions=True)
            else:
                await asyncio.sleep(0)
