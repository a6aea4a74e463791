"""
Error taxonomy for the BookHub request governor.

Callers can tell a refused request (blocked, rate limited, throttled) apart
from a request that was attempted and failed on the wire.
"""

from typing import Optional


class GovernorError(Exception):
    """Base class for every error raised by the governor."""


class BlockedEndpointError(GovernorError):
    """Endpoint is on the administrative blocklist. Never retry automatically."""

    def __init__(self, endpoint: str):
        self.endpoint = endpoint
        super().__init__(f"Endpoint {endpoint} is blocked")


class RateLimitExceededError(GovernorError):
    """Hard request window for the endpoint is exhausted."""

    def __init__(self, endpoint: str, limit: int, window: float):
        self.endpoint = endpoint
        self.limit = limit
        self.window = window
        super().__init__(
            f"Rate limit exceeded for {endpoint} ({limit} requests per {window:g}s)"
        )


class ThrottledError(GovernorError):
    """
    Soft throttle refused the call.

    Attributes:
        endpoint: Throttled endpoint
        retry_after: Seconds until the endpoint accepts the next call
    """

    def __init__(self, endpoint: str, retry_after: float):
        self.endpoint = endpoint
        self.retry_after = retry_after
        super().__init__(f"Throttling request to {endpoint}, retry in {retry_after:.3f}s")


# HTTP statuses worth another attempt by the caller
RETRYABLE_STATUS_CODES = frozenset({408, 425, 429, 500, 502, 503, 504})


class TransportError(GovernorError):
    """
    The underlying network call failed or returned a non-success status.

    Attributes:
        status_code: HTTP status, or None for network-level failures
        retry_after: Server supplied back-off in seconds (429/503), if any
    """

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        retry_after: Optional[float] = None,
    ):
        self.status_code = status_code
        self.retry_after = retry_after
        super().__init__(message)

    @property
    def is_retryable(self) -> bool:
        """True for network failures and transient HTTP statuses."""
        if self.status_code is None:
            return True
        return self.status_code in RETRYABLE_STATUS_CODES

    @property
    def is_rate_limited(self) -> bool:
        """True when the server answered 429."""
        return self.status_code == 429
