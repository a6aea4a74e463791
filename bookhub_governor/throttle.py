"""
Caller-keyed throttling and deduplication.

For call sites that do not go through the governor facade, e.g. a presence
heartbeat. Keys are chosen by the caller ("user-ping") instead of being
derived from a URL.
"""

import asyncio
import logging
import threading
import time
from typing import Any, Awaitable, Callable, Dict, Optional, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


class ThrottledRequest:
    """
    Drop calls that repeat a key within the interval.

    Usage:
        throttled = ThrottledRequest(interval=30.0)
        result = await throttled(ping_presence, "user-ping")
        if result is None:
            ...  # skipped, pinged less than 30s ago
    """

    def __init__(self, interval: float = 2.0, clock: Callable[[], float] = time.monotonic):
        if interval <= 0:
            raise ValueError("interval must be greater than 0")
        self._interval = interval
        self._clock = clock
        self._last_attempt: Dict[str, float] = {}
        self._lock = threading.Lock()

    @property
    def interval(self) -> float:
        return self._interval

    async def __call__(
        self,
        request_fn: Callable[[], Awaitable[T]],
        request_key: str = "default",
        interval: Optional[float] = None,
    ) -> Optional[T]:
        """
        Run request_fn unless request_key was attempted less than interval ago.

        Returns:
            request_fn's result, or None when the call was skipped

        Raises:
            Whatever request_fn raises; the key's record is cleared first so
            the next call is not penalized.
        """
        window = self._interval if interval is None else interval
        now = self._clock()
        with self._lock:
            last = self._last_attempt.get(request_key)
            if last is not None and (now - last) < window:
                logger.debug(
                    f"Throttling request: {request_key}, waiting {window - (now - last):.3f}s"
                )
                return None
            self._last_attempt[request_key] = now

        try:
            return await request_fn()
        except BaseException:
            with self._lock:
                if self._last_attempt.get(request_key) == now:
                    del self._last_attempt[request_key]
            raise

    def time_until_allowed(self, request_key: str = "default") -> float:
        with self._lock:
            last = self._last_attempt.get(request_key)
        if last is None:
            return 0.0
        return max(0.0, self._interval - (self._clock() - last))

    def clear(self, request_key: str) -> None:
        with self._lock:
            self._last_attempt.pop(request_key, None)

    def clear_all(self) -> None:
        with self._lock:
            self._last_attempt.clear()


class RequestDeduplicator:
    """
    Share one in-flight call among concurrent callers using the same key.

    The entry is dropped when the call settles, so a later call always runs.
    """

    def __init__(self) -> None:
        self._pending: Dict[str, "asyncio.Future[Any]"] = {}

    async def __call__(self, request_fn: Callable[[], Awaitable[T]], request_key: str) -> T:
        task = self._pending.get(request_key)
        if task is not None:
            logger.debug(f"Deduplicating request: {request_key}")
        else:
            task = asyncio.ensure_future(request_fn())
            self._pending[request_key] = task
            task.add_done_callback(lambda f: self._release(request_key, f))
        return await asyncio.shield(task)

    def is_pending(self, request_key: str) -> bool:
        return request_key in self._pending

    def __len__(self) -> int:
        return len(self._pending)

    def _release(self, request_key: str, task: "asyncio.Future[Any]") -> None:
        if self._pending.get(request_key) is task:
            del self._pending[request_key]
        # Mark the exception retrieved; callers already received it
        if not task.cancelled():
            task.exception()
