"""Administrative endpoint deny-list."""

import logging
import threading
from typing import Iterable, Iterator, Optional, Set

logger = logging.getLogger(__name__)


class EndpointBlocklist:
    """Set of endpoints that are refused outright. No expiry."""

    def __init__(self, endpoints: Optional[Iterable[str]] = None) -> None:
        self._blocked: Set[str] = set()
        self._lock = threading.Lock()
        for endpoint in endpoints or ():
            self.block_endpoint(endpoint)

    def block_endpoint(self, endpoint: str) -> None:
        with self._lock:
            self._blocked.add(endpoint)
        logger.info(f"Blocked endpoint: {endpoint}")

    def unblock_endpoint(self, endpoint: str) -> None:
        with self._lock:
            self._blocked.discard(endpoint)
        logger.info(f"Unblocked endpoint: {endpoint}")

    def is_blocked(self, endpoint: str) -> bool:
        with self._lock:
            return endpoint in self._blocked

    def clear_all(self) -> None:
        with self._lock:
            self._blocked.clear()

    def __iter__(self) -> Iterator[str]:
        with self._lock:
            return iter(sorted(self._blocked))

    def __len__(self) -> int:
        with self._lock:
            return len(self._blocked)
