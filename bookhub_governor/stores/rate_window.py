"""
Per-endpoint rate tracking.

Two tiers:
- soft throttle: minimum interval between calls, answered with a wait time
- hard block: at most N calls per rolling window, answered with a refusal
"""

import logging
import threading
import time
from collections import deque
from typing import Callable, Deque, Dict, Iterable, List, Optional, Tuple

logger = logging.getLogger(__name__)


class RateWindowTracker:
    """
    Tracks call timestamps per endpoint.

    Usage:
        tracker = RateWindowTracker(min_interval=1.0, max_requests_per_window=60)
        if tracker.should_block("/api/books"):
            ...  # refuse
        if tracker.should_throttle("/api/books"):
            wait = tracker.get_time_until_next_request("/api/books")
    """

    def __init__(
        self,
        min_interval: float = 1.0,
        endpoint_intervals: Optional[Iterable[Tuple[str, float]]] = None,
        max_requests_per_window: int = 60,
        window: float = 60.0,
        clock: Callable[[], float] = time.monotonic,
    ):
        """
        Initialize tracker.

        Args:
            min_interval: Default soft-throttle interval in seconds
            endpoint_intervals: Ordered (prefix, seconds) overrides, first match wins
            max_requests_per_window: Hard limit per endpoint per window
            window: Hard-limit window length in seconds
            clock: Monotonic time source
        """
        if min_interval <= 0:
            raise ValueError("min_interval must be greater than 0")
        if max_requests_per_window <= 0:
            raise ValueError("max_requests_per_window must be greater than 0")
        if window <= 0:
            raise ValueError("window must be greater than 0")
        self._min_interval = min_interval
        self._intervals: List[Tuple[str, float]] = list(endpoint_intervals or ())
        self._max_requests = max_requests_per_window
        self._window = window
        self._clock = clock

        self._last_request: Dict[str, float] = {}
        self._history: Dict[str, Deque[float]] = {}
        self._lock = threading.Lock()

    @property
    def max_requests_per_window(self) -> int:
        return self._max_requests

    @property
    def window(self) -> float:
        return self._window

    def interval(self, endpoint: str) -> float:
        """Soft-throttle interval for endpoint."""
        for prefix, seconds in self._intervals:
            if endpoint.startswith(prefix):
                return seconds
        return self._min_interval

    # === Soft throttle ===

    def should_throttle(self, endpoint: str) -> bool:
        """
        True if the endpoint was called less than interval(endpoint) ago.

        Only a permitted check records the current time.
        """
        now = self._clock()
        with self._lock:
            last = self._last_request.get(endpoint)
            if last is not None and (now - last) < self.interval(endpoint):
                return True
            self._last_request[endpoint] = now
            return False

    def get_time_until_next_request(self, endpoint: str) -> float:
        now = self._clock()
        with self._lock:
            last = self._last_request.get(endpoint)
        if last is None:
            return 0.0
        return max(0.0, self.interval(endpoint) - (now - last))

    def clear_throttle(self, endpoint: str) -> None:
        with self._lock:
            self._last_request.pop(endpoint, None)

    # === Hard block ===

    def should_block(self, endpoint: str) -> bool:
        """
        True if the endpoint already used its budget for the current window.

        A permitted check appends the current time to the history.
        """
        now = self._clock()
        with self._lock:
            history = self._history.setdefault(endpoint, deque())
            self._prune_locked(history, now)
            if len(history) >= self._max_requests:
                logger.warning(
                    f"Blocking request to {endpoint} - too many requests ({len(history)})"
                )
                return True
            history.append(now)
            return False

    def count(self, endpoint: str) -> int:
        """Calls recorded for endpoint within the current window."""
        now = self._clock()
        with self._lock:
            history = self._history.get(endpoint)
            if not history:
                return 0
            self._prune_locked(history, now)
            return len(history)

    def prune(self) -> int:
        """Drop endpoints with no calls left in the window. Returns count dropped."""
        now = self._clock()
        with self._lock:
            for history in self._history.values():
                self._prune_locked(history, now)
            idle = [ep for ep, h in self._history.items() if not h]
            for ep in idle:
                del self._history[ep]
        return len(idle)

    def get_stats(self) -> Dict[str, int]:
        """Per-endpoint call counts within the current window."""
        now = self._clock()
        with self._lock:
            stats = {}
            for endpoint, history in self._history.items():
                self._prune_locked(history, now)
                stats[endpoint] = len(history)
            return stats

    def clear_all(self) -> None:
        with self._lock:
            self._last_request.clear()
            self._history.clear()

    def _prune_locked(self, history: Deque[float], now: float) -> None:
        cutoff = now - self._window
        while history and history[0] <= cutoff:
            history.popleft()
