"""In-memory stores owned by a RequestGovernor."""

from .blocklist import EndpointBlocklist
from .cache import CacheStore
from .ledger import PendingLedger
from .rate_window import RateWindowTracker

__all__ = [
    "CacheStore",
    "EndpointBlocklist",
    "PendingLedger",
    "RateWindowTracker",
]
