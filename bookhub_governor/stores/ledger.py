"""
In-flight request ledger.

Maps a request key to the task performing it so concurrent identical calls
share one network round trip. Entries are removed by the task's own
settlement, never by a timer.
"""

import asyncio
import logging
import threading
from typing import Any, Awaitable, Callable, Dict, Optional, Tuple

logger = logging.getLogger(__name__)


class PendingLedger:
    """Key -> in-flight asyncio.Future map."""

    def __init__(self) -> None:
        self._pending: Dict[str, "asyncio.Future[Any]"] = {}
        self._lock = threading.Lock()

    def is_pending(self, key: str) -> bool:
        return self.get_pending(key) is not None

    def get_pending(self, key: str) -> Optional["asyncio.Future[Any]"]:
        """The unsettled future for key, or None."""
        with self._lock:
            future = self._pending.get(key)
        if future is None or future.done():
            return None
        return future

    def add_pending(self, key: str, future: "asyncio.Future[Any]") -> "asyncio.Future[Any]":
        """
        Register an in-flight future and return it.

        The entry is released when the future settles (result, exception or
        cancellation).
        """
        with self._lock:
            self._pending[key] = future
        future.add_done_callback(lambda f: self._release(key, f))
        return future

    def remove_pending(self, key: str) -> None:
        with self._lock:
            self._pending.pop(key, None)

    def claim(
        self,
        key: str,
        factory: Callable[[], Awaitable[Any]],
    ) -> Tuple["asyncio.Future[Any]", bool]:
        """
        Get the in-flight task for key, or start one.

        Lookup and insert happen without yielding to the event loop, so two
        callers on the same tick can never both start a task.

        Returns:
            (task, created) where created is True if this call started it
        """
        with self._lock:
            existing = self._pending.get(key)
            # A settled task awaits its release callback; never hand it out
            if existing is not None and not existing.done():
                return existing, False
            task = asyncio.ensure_future(factory())
            self._pending[key] = task
        task.add_done_callback(lambda f: self._release(key, f))
        return task, True

    def clear(self) -> None:
        """Forget every entry. In-flight tasks keep running."""
        with self._lock:
            self._pending.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._pending)

    def _release(self, key: str, future: "asyncio.Future[Any]") -> None:
        with self._lock:
            # A newer call may already own the key after clear()
            if self._pending.get(key) is future:
                del self._pending[key]
        if not future.cancelled() and future.exception() is not None:
            logger.debug(f"Released failed request {key}")
