"""
BookHub request governor.

Client-side layer between application code and the BookHub REST API that
deduplicates concurrent identical requests, caches successful reads for a
bounded time, throttles per endpoint and refuses blocked or over-budget
endpoints.

Basic Usage:
    import asyncio
    from bookhub_governor import GovernorConfig, RequestGovernor

    async def main():
        async with RequestGovernor(GovernorConfig()) as governor:
            books = await governor.get("/api/books", params={"page": 1})

    asyncio.run(main())

Event-Driven Usage:
    from bookhub_governor import RateLimitedEvent, RequestGovernor

    governor = RequestGovernor.from_config("governor.yaml")

    @governor.on(RateLimitedEvent)
    def on_limited(event):
        print(f"Slow down on {event.endpoint}")

Component Throttle:
    from bookhub_governor import ThrottledRequest

    heartbeat = ThrottledRequest(interval=30.0)
    await heartbeat(ping, "user-ping")   # None when skipped
"""

__version__ = "1.0.0"

from .client import BookHubClient
from .config import GovernorConfig, find_config
from .errors import (
    BlockedEndpointError,
    GovernorError,
    RateLimitExceededError,
    ThrottledError,
    TransportError,
)
from .events import (
    BlockedEvent,
    CacheHitEvent,
    CoalescedEvent,
    EventEmitter,
    GovernorEvent,
    RateLimitedEvent,
    RequestEvent,
    SweepEvent,
    ThrottledEvent,
)
from .governor import RequestGovernor
from .stores import CacheStore, EndpointBlocklist, PendingLedger, RateWindowTracker
from .throttle import RequestDeduplicator, ThrottledRequest
from .transport import HttpxTransport, Transport
from .types import (
    CacheEntry,
    GovernorStats,
    Outcome,
    RequestDescription,
    ThrottleMode,
    endpoint_of,
    request_key,
)

__all__ = [
    "__version__",
    # Core
    "RequestGovernor",
    "GovernorConfig",
    "find_config",
    "BookHubClient",
    # Stores
    "CacheStore",
    "PendingLedger",
    "RateWindowTracker",
    "EndpointBlocklist",
    # Caller-keyed helpers
    "ThrottledRequest",
    "RequestDeduplicator",
    # Transport
    "Transport",
    "HttpxTransport",
    # Types
    "RequestDescription",
    "CacheEntry",
    "GovernorStats",
    "Outcome",
    "ThrottleMode",
    "endpoint_of",
    "request_key",
    # Errors
    "GovernorError",
    "BlockedEndpointError",
    "RateLimitExceededError",
    "ThrottledError",
    "TransportError",
    # Events
    "EventEmitter",
    "GovernorEvent",
    "RequestEvent",
    "CacheHitEvent",
    "CoalescedEvent",
    "BlockedEvent",
    "RateLimitedEvent",
    "ThrottledEvent",
    "SweepEvent",
]
