"""
HTTP transport used by the governor for the actual network call.

The governor only needs "send this request, give me decoded data or raise".
``HttpxTransport`` is the default; tests and alternate stacks can pass any
object implementing ``Transport``.
"""

import logging
from email.utils import parsedate_to_datetime
from datetime import datetime, timezone
from typing import Any, Dict, Optional, Protocol

import httpx

from .errors import TransportError
from .types import RequestDescription

logger = logging.getLogger(__name__)

USER_AGENT = "BookHubGovernor/1.0"


class Transport(Protocol):
    """Performs one HTTP call."""

    async def send(self, request: RequestDescription, timeout: Optional[float] = None) -> Any:
        ...

    async def aclose(self) -> None:
        ...


def parse_retry_after(value: Optional[str]) -> Optional[float]:
    """Parse a Retry-After header (delta-seconds or HTTP date) into seconds."""
    if not value:
        return None
    value = value.strip()
    try:
        return max(0.0, float(value))
    except ValueError:
        pass
    try:
        when = parsedate_to_datetime(value)
    except (TypeError, ValueError):
        return None
    if when.tzinfo is None:
        when = when.replace(tzinfo=timezone.utc)
    return max(0.0, (when - datetime.now(timezone.utc)).total_seconds())


def decode_response(response: httpx.Response) -> Any:
    """JSON body when the server says so, text otherwise, None when empty."""
    if not response.content:
        return None
    content_type = response.headers.get("content-type", "")
    if "json" in content_type:
        return response.json()
    return response.text


class HttpxTransport:
    """
    Transport backed by ``httpx.AsyncClient``.

    Usage:
        transport = HttpxTransport("https://bookhub.example.com")
        data = await transport.send(RequestDescription("GET", "/api/books"))
        await transport.aclose()
    """

    def __init__(
        self,
        base_url: str = "http://localhost:5001",
        timeout: float = 60.0,
        headers: Optional[Dict[str, str]] = None,
        client: Optional[httpx.AsyncClient] = None,
    ):
        """
        Args:
            base_url: Scheme and host of the BookHub API
            timeout: Default per-call timeout in seconds
            headers: Extra default headers (auth, etc.)
            client: Pre-built client; the transport will not close it
        """
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(
            base_url=base_url,
            timeout=timeout,
            headers={"User-Agent": USER_AGENT, **(headers or {})},
        )
        self._timeout = timeout

    @property
    def client(self) -> httpx.AsyncClient:
        return self._client

    async def send(self, request: RequestDescription, timeout: Optional[float] = None) -> Any:
        """
        Perform the call and decode the body.

        Raises:
            TransportError: on network failure, timeout or non-2xx status
        """
        kwargs: Dict[str, Any] = {"timeout": timeout if timeout is not None else self._timeout}
        if request.params:
            kwargs["params"] = {k: v for k, v in request.params.items() if v is not None}
        if request.body is not None:
            if isinstance(request.body, (bytes, str)):
                kwargs["content"] = request.body
            else:
                kwargs["json"] = request.body

        try:
            response = await self._client.request(request.verb, request.url, **kwargs)
        except httpx.TimeoutException as e:
            raise TransportError(f"Timeout calling {request.verb} {request.url}: {e}") from e
        except httpx.HTTPError as e:
            raise TransportError(f"Network error calling {request.verb} {request.url}: {e}") from e

        if response.status_code == 429:
            retry_after = parse_retry_after(response.headers.get("retry-after"))
            logger.warning(f"Rate limited by server on {request.endpoint}, backing off...")
            raise TransportError(
                f"HTTP error! status: {response.status_code}",
                status_code=response.status_code,
                retry_after=retry_after,
            )

        if response.is_error:
            raise TransportError(
                f"HTTP error! status: {response.status_code}",
                status_code=response.status_code,
                retry_after=parse_retry_after(response.headers.get("retry-after")),
            )

        try:
            return decode_response(response)
        except ValueError as e:
            raise TransportError(
                f"Invalid JSON from {request.endpoint}: {e}",
                status_code=response.status_code,
            ) from e

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()
