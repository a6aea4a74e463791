"""
Governor event system.

Every governance decision is published as an event so UI code can react
without wrapping each call site:
- Request dispatch and completion (loading indicators)
- Cache hits and coalesced calls (debug overlays)
- Blocked / rate limited / throttled refusals ("please wait" toasts)
- Sweeps of expired state
"""

import logging
import threading
import time
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Type, TypeVar

logger = logging.getLogger(__name__)


@dataclass
class GovernorEvent:
    """Base event class for all governor events."""
    timestamp: float = field(default_factory=time.time)
    endpoint: str = ""


@dataclass
class RequestEvent(GovernorEvent):
    """
    A call reached the transport.

    Emitted twice per call: status "started", then "completed" or "failed".
    """
    method: str = ""
    key: str = ""
    status: str = "started"  # started, completed, failed
    duration_ms: int = 0
    error: Optional[str] = None
    status_code: Optional[int] = None


@dataclass
class CacheHitEvent(GovernorEvent):
    """Served from cache without touching the network."""
    key: str = ""
    age_s: float = 0.0


@dataclass
class CoalescedEvent(GovernorEvent):
    """Joined an identical in-flight call."""
    key: str = ""


@dataclass
class BlockedEvent(GovernorEvent):
    """Refused: endpoint is on the blocklist."""


@dataclass
class RateLimitedEvent(GovernorEvent):
    """Refused: hard window exhausted."""
    limit: int = 0
    window: float = 0.0


@dataclass
class ThrottledEvent(GovernorEvent):
    """Soft throttle tripped; deferred means the call waited instead of failing."""
    retry_after: float = 0.0
    deferred: bool = False


@dataclass
class SweepEvent(GovernorEvent):
    """Background sweep removed expired state."""
    cache_removed: int = 0
    endpoints_pruned: int = 0


E = TypeVar("E", bound=GovernorEvent)


class EventEmitter:
    """
    Event emitter for the request governor.

    Usage:
        emitter = EventEmitter()

        @emitter.on(RateLimitedEvent)
        def on_limited(event: RateLimitedEvent):
            toast(f"Slow down: {event.endpoint}")

        emitter.emit(RateLimitedEvent(endpoint="/api/books"))
    """

    def __init__(self) -> None:
        self._handlers: Dict[Type[GovernorEvent], List[Callable[..., None]]] = {}
        self._global_handlers: List[Callable[[GovernorEvent], None]] = []
        self._lock = threading.Lock()

    def on(self, event_type: Type[E]) -> Callable[[Callable[[E], None]], Callable[[E], None]]:
        """
        Decorator to register an event handler.

        Args:
            event_type: The event class to handle

        Returns:
            Decorator function
        """
        def decorator(func: Callable[[E], None]) -> Callable[[E], None]:
            self.add_handler(event_type, func)
            return func
        return decorator

    def on_any(self, func: Callable[[GovernorEvent], None]) -> Callable[[GovernorEvent], None]:
        """Register a handler for all events."""
        with self._lock:
            self._global_handlers.append(func)
        return func

    def add_handler(self, event_type: Type[E], handler: Callable[[E], None]) -> None:
        with self._lock:
            self._handlers.setdefault(event_type, []).append(handler)

    def remove_handler(self, event_type: Type[E], handler: Callable[[E], None]) -> None:
        with self._lock:
            if event_type in self._handlers:
                self._handlers[event_type] = [
                    h for h in self._handlers[event_type] if h != handler
                ]

    def emit(self, event: GovernorEvent) -> None:
        """
        Emit an event to all registered handlers.

        Handler lists are snapshotted under the lock and called without it,
        so handlers may register or remove handlers. Handler errors are
        logged and never reach the governed call.
        """
        with self._lock:
            global_snapshot = list(self._global_handlers)
            specific_snapshot = list(self._handlers.get(type(event), []))

        for handler in global_snapshot:
            try:
                handler(event)
            except Exception as e:
                logger.error(f"Event handler error (global): {e}")

        for handler in specific_snapshot:
            try:
                handler(event)
            except Exception as e:
                logger.error(f"Event handler error ({type(event).__name__}): {e}")

    def clear_handlers(self, event_type: Optional[Type[E]] = None) -> None:
        """Clear handlers for one event type, or all of them."""
        with self._lock:
            if event_type is not None:
                self._handlers[event_type] = []
            else:
                self._handlers.clear()
                self._global_handlers.clear()

    def handler_count(self, event_type: Optional[Type[E]] = None) -> int:
        with self._lock:
            if event_type is not None:
                return len(self._handlers.get(event_type, []))
            return sum(len(h) for h in self._handlers.values()) + len(self._global_handlers)
