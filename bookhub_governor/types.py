"""
BookHub request governor type definitions.

Request descriptions plus the endpoint/key derivation every store relies on.
Two logically identical requests must always derive the same key, otherwise
caching and deduplication silently treat every call as unique.
"""

import json
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional
from urllib.parse import urlsplit, urlunsplit


class ThrottleMode(Enum):
    """What the facade does when the soft throttle trips."""
    REJECT = "reject"  # raise ThrottledError with a retry hint
    DEFER = "defer"    # sleep for the remaining interval, then dispatch
    OFF = "off"


class Outcome(Enum):
    """How a governed call was resolved."""
    NETWORK = "network"
    CACHE_HIT = "cache_hit"
    COALESCED = "coalesced"
    BLOCKED = "blocked"
    RATE_LIMITED = "rate_limited"
    THROTTLED = "throttled"
    ERROR = "error"


def endpoint_of(url: str) -> str:
    """Strip the query string (and fragment) from a URL."""
    parts = urlsplit(url)
    return urlunsplit((parts.scheme, parts.netloc, parts.path, "", ""))


def _dumps(value: Any) -> str:
    return json.dumps(value, sort_keys=True, separators=(",", ":"), default=str)


def _body_token(body: Any) -> List[str]:
    # Tagged so a text body never equals the JSON body it happens to spell
    if isinstance(body, bytes):
        return ["bytes", body.decode("latin-1")]
    if isinstance(body, str):
        return ["text", body]
    return ["json", _dumps(body)]


def _param_pairs(params: Optional[Mapping[str, Any]]) -> List[List[str]]:
    if not params:
        return []
    return sorted([str(k), str(v)] for k, v in params.items() if v is not None)


def request_key(
    method: str,
    url: str,
    body: Any = None,
    params: Optional[Mapping[str, Any]] = None,
) -> str:
    """
    Build ``METHOD:endpoint:payload`` used by the cache and the ledger.

    payload is empty for a bodiless request without params, otherwise a JSON
    object holding the tagged body and the sorted params in separate fields.
    A query string inside ``url`` is not part of the key.
    """
    payload: Dict[str, Any] = {}
    if body is not None:
        payload["body"] = _body_token(body)
    pairs = _param_pairs(params)
    if pairs:
        payload["params"] = pairs
    suffix = _dumps(payload) if payload else ""
    return f"{method.upper()}:{endpoint_of(url)}:{suffix}"


@dataclass(frozen=True)
class RequestDescription:
    """An outbound request as supplied by caller code."""
    method: str
    url: str
    body: Any = None
    params: Optional[Mapping[str, Any]] = None

    @property
    def endpoint(self) -> str:
        return endpoint_of(self.url)

    @property
    def key(self) -> str:
        return request_key(self.method, self.url, self.body, self.params)

    @property
    def verb(self) -> str:
        return self.method.upper()


@dataclass
class CacheEntry:
    """A cached response. Replaced on refresh, never mutated in place."""
    key: str
    data: Any
    timestamp: float
    ttl: float

    def is_valid(self, now: float) -> bool:
        return (now - self.timestamp) < self.ttl


@dataclass
class GovernorStats:
    """Point-in-time snapshot of governor state."""
    pending_requests: int = 0
    cached_entries: int = 0
    endpoint_counts: Dict[str, int] = field(default_factory=dict)
    blocked_endpoints: List[str] = field(default_factory=list)
    metrics: Dict[str, Any] = field(default_factory=dict)
    sweeper_running: bool = False
    last_sweep: Optional[float] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "pending_requests": self.pending_requests,
            "cached_entries": self.cached_entries,
            "endpoint_counts": dict(self.endpoint_counts),
            "blocked_endpoints": list(self.blocked_endpoints),
            "metrics": self.metrics,
            "sweeper_running": self.sweeper_running,
            "last_sweep": self.last_sweep,
        }
