"""
Request governor: the single entry point for outbound BookHub API calls.

Every call goes through, in order:
1. Endpoint blocklist          -> BlockedEndpointError
2. Hard request window         -> RateLimitExceededError
3. Response cache              -> cached data, no network
4. In-flight ledger            -> join the identical pending call
5. Soft throttle               -> ThrottledError (reject) or sleep (defer)
6. Transport                   -> data, cached on success; TransportError

The governor never retries. Its only resilience behavior is refusing to pile
redundant calls onto the network.
"""

import asyncio
import logging
import time
from typing import Any, Callable, Mapping, Optional, Union

from .config import GovernorConfig
from .errors import BlockedEndpointError, RateLimitExceededError, ThrottledError, TransportError
from .events import (
    BlockedEvent,
    CacheHitEvent,
    CoalescedEvent,
    EventEmitter,
    RateLimitedEvent,
    RequestEvent,
    SweepEvent,
    ThrottledEvent,
)
from .stores import CacheStore, EndpointBlocklist, PendingLedger, RateWindowTracker
from .transport import HttpxTransport, Transport
from .types import GovernorStats, Outcome, RequestDescription, ThrottleMode, endpoint_of
from .utils.logging import setup_logging
from .utils.metrics import GovernorMetrics, MetricsConfig

logger = logging.getLogger(__name__)


class RequestGovernor(EventEmitter):
    """
    Deduplicating, caching, throttling gateway in front of a transport.

    Construct one per application and hand it to every call site.

    Usage (async):
        async with RequestGovernor(GovernorConfig()) as governor:
            books = await governor.get("/api/books", params={"page": 1})

    Usage (events):
        @governor.on(RateLimitedEvent)
        def on_limited(event):
            toast("Please wait a moment")
    """

    def __init__(
        self,
        config: Optional[GovernorConfig] = None,
        transport: Optional[Transport] = None,
        metrics: Optional[GovernorMetrics] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        """
        Args:
            config: Governor configuration (defaults if omitted); when given,
                its logging settings are applied to the root logger
            transport: Object performing the HTTP call; an HttpxTransport
                for ``config.base_url`` is created when omitted
            metrics: Metrics collector; built from config when omitted
            clock: Monotonic time source shared by every store
        """
        super().__init__()
        self._config = config or GovernorConfig()
        self._clock = clock

        self.cache = CacheStore(
            default_ttl=self._config.default_ttl,
            max_entries=self._config.max_cache_entries,
            clock=clock,
        )
        self.ledger = PendingLedger()
        self.rate = RateWindowTracker(
            min_interval=self._config.min_interval,
            endpoint_intervals=self._config.endpoint_intervals,
            max_requests_per_window=self._config.max_requests_per_window,
            window=self._config.window,
            clock=clock,
        )
        self.blocklist = EndpointBlocklist(self._config.blocked_endpoints)

        self._owns_transport = transport is None
        self._transport: Transport = transport or HttpxTransport(
            base_url=self._config.base_url,
            timeout=self._config.request_timeout,
        )
        self.metrics = metrics or GovernorMetrics(MetricsConfig(
            enabled=self._config.metrics_enabled,
            type=self._config.metrics_type,
            port=self._config.metrics_port,
        ))

        self._sweeper_task: Optional[asyncio.Task] = None
        self._last_sweep: Optional[float] = None

        # Only an explicit config reconfigures root logging
        if config:
            setup_logging(config)

    @classmethod
    def from_config(cls, config_path: str, **kwargs: Any) -> "RequestGovernor":
        """Create a governor from a YAML config file."""
        return cls(config=GovernorConfig.load(config_path), **kwargs)

    @property
    def config(self) -> GovernorConfig:
        return self._config

    @property
    def transport(self) -> Transport:
        return self._transport

    # === Lifecycle ===

    async def start(self) -> None:
        """Start the background sweeper. Idempotent."""
        if self._sweeper_task is not None and not self._sweeper_task.done():
            return
        self._sweeper_task = asyncio.create_task(self._sweep_loop(self._config.sweep_interval))
        logger.debug(f"Started sweeper task (interval: {self._config.sweep_interval}s)")

    async def stop(self) -> None:
        """Stop the background sweeper."""
        if self._sweeper_task and not self._sweeper_task.done():
            self._sweeper_task.cancel()
            try:
                await self._sweeper_task
            except asyncio.CancelledError:
                pass
        self._sweeper_task = None

    async def aclose(self) -> None:
        """Stop the sweeper and close the transport if the governor created it."""
        await self.stop()
        if self._owns_transport:
            await self._transport.aclose()

    async def __aenter__(self) -> "RequestGovernor":
        await self.start()
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    @property
    def is_sweeping(self) -> bool:
        return self._sweeper_task is not None and not self._sweeper_task.done()

    def sweep(self) -> SweepEvent:
        """Drop expired cache entries and idle rate history."""
        event = SweepEvent(
            cache_removed=self.cache.clear_expired(),
            endpoints_pruned=self.rate.prune(),
        )
        self._last_sweep = self._clock()
        if event.cache_removed or event.endpoints_pruned:
            self.emit(event)
        return event

    async def _sweep_loop(self, interval: float) -> None:
        while True:
            try:
                await asyncio.sleep(interval)
                self.sweep()
            except asyncio.CancelledError:
                break
            except Exception as e:
                logger.error(f"Sweep error: {e}")

    # === Governed calls ===

    async def fetch(
        self,
        method: str,
        url: str,
        body: Any = None,
        *,
        params: Optional[Mapping[str, Any]] = None,
        use_cache: bool = True,
        ttl: Optional[float] = None,
        throttle: Optional[Union[ThrottleMode, str]] = None,
        timeout: Optional[float] = None,
    ) -> Any:
        """
        Perform a governed request.

        Args:
            method: HTTP method
            url: Path (optionally with query string) relative to the API base
            body: JSON-serializable body, raw str/bytes, or None
            params: Query parameters; unlike an inline query string these
                take part in cache and dedup identity
            use_cache: False to bypass cache lookup and cache write
            ttl: Cache TTL for this response (config default if None)
            throttle: Soft-throttle mode override for this call
            timeout: Transport timeout override in seconds

        Returns:
            Decoded response data

        Raises:
            BlockedEndpointError: endpoint is on the blocklist
            RateLimitExceededError: hard window exhausted
            ThrottledError: soft throttle tripped in reject mode
            TransportError: network failure, timeout or non-2xx status
        """
        request = RequestDescription(method=method, url=url, body=body, params=params)
        endpoint = request.endpoint
        key = request.key

        if self.blocklist.is_blocked(endpoint):
            logger.info(f"Blocking request to blocked endpoint: {endpoint}")
            self._record(Outcome.BLOCKED)
            self.emit(BlockedEvent(endpoint=endpoint))
            raise BlockedEndpointError(endpoint)

        if self.rate.should_block(endpoint):
            self._record(Outcome.RATE_LIMITED)
            self.emit(RateLimitedEvent(
                endpoint=endpoint,
                limit=self.rate.max_requests_per_window,
                window=self.rate.window,
            ))
            raise RateLimitExceededError(
                endpoint, self.rate.max_requests_per_window, self.rate.window
            )

        cacheable = use_cache and request.verb in self._config.cache_methods
        if cacheable:
            entry = self.cache.lookup(key)
            if entry is not None:
                logger.debug(f"Cache hit for {key}")
                self._record(Outcome.CACHE_HIT)
                self.emit(CacheHitEvent(
                    endpoint=endpoint, key=key, age_s=self._clock() - entry.timestamp,
                ))
                return entry.data

        mode = self._resolve_mode(throttle)
        call_timeout = timeout if timeout is not None else self._timeout_for(request)

        if self._skips_deduplication(endpoint):
            return await self._dispatch(request, cacheable, ttl, mode, call_timeout)

        # No await between the ledger lookup and the insert
        task, created = self.ledger.claim(
            key, lambda: self._dispatch(request, cacheable, ttl, mode, call_timeout)
        )
        if created:
            self.metrics.set_pending(len(self.ledger))
            # Runs after the ledger released the key
            task.add_done_callback(lambda _: self.metrics.set_pending(len(self.ledger)))
        else:
            logger.debug(f"Reusing pending request for {url}")
            self._record(Outcome.COALESCED)
            self.emit(CoalescedEvent(endpoint=endpoint, key=key))

        # Shielded so one cancelled caller does not cancel the shared call
        return await asyncio.shield(task)

    async def get(self, url: str, **kwargs: Any) -> Any:
        return await self.fetch("GET", url, **kwargs)

    async def post(self, url: str, body: Any = None, **kwargs: Any) -> Any:
        return await self.fetch("POST", url, body, **kwargs)

    async def put(self, url: str, body: Any = None, **kwargs: Any) -> Any:
        return await self.fetch("PUT", url, body, **kwargs)

    async def patch(self, url: str, body: Any = None, **kwargs: Any) -> Any:
        return await self.fetch("PATCH", url, body, **kwargs)

    async def delete(self, url: str, body: Any = None, **kwargs: Any) -> Any:
        return await self.fetch("DELETE", url, body, **kwargs)

    async def _dispatch(
        self,
        request: RequestDescription,
        cacheable: bool,
        ttl: Optional[float],
        mode: ThrottleMode,
        timeout: float,
    ) -> Any:
        endpoint = request.endpoint

        if mode is not ThrottleMode.OFF:
            await self._apply_throttle(endpoint, mode)

        self.emit(RequestEvent(endpoint=endpoint, method=request.verb, key=request.key))
        start = self._clock()
        try:
            data = await asyncio.wait_for(
                self._transport.send(request, timeout=timeout), timeout=timeout
            )
        except asyncio.TimeoutError as e:
            error = TransportError(f"Timeout after {timeout:g}s calling {request.verb} {request.url}")
            self._finish(request, start, error)
            raise error from e
        except Exception as e:
            self._finish(request, start, e)
            raise

        if cacheable:
            self.cache.set(request.key, data, ttl)
        self._finish(request, start, None)
        return data

    async def _apply_throttle(self, endpoint: str, mode: ThrottleMode) -> None:
        while self.rate.should_throttle(endpoint):
            wait = self.rate.get_time_until_next_request(endpoint)
            if mode is ThrottleMode.REJECT:
                self._record(Outcome.THROTTLED)
                self.emit(ThrottledEvent(endpoint=endpoint, retry_after=wait))
                raise ThrottledError(endpoint, wait)
            logger.info(f"Throttling request to {endpoint}, waiting {wait:.3f}s")
            self.emit(ThrottledEvent(endpoint=endpoint, retry_after=wait, deferred=True))
            await asyncio.sleep(wait)

    def _finish(self, request: RequestDescription, start: float, error: Optional[BaseException]) -> None:
        duration_ms = int((self._clock() - start) * 1000)
        self.metrics.record_request(error is None, duration_ms)
        self._record(Outcome.NETWORK if error is None else Outcome.ERROR)
        self.emit(RequestEvent(
            endpoint=request.endpoint,
            method=request.verb,
            key=request.key,
            status="completed" if error is None else "failed",
            duration_ms=duration_ms,
            error=str(error) if error is not None else None,
            status_code=getattr(error, "status_code", None),
        ))

    def _record(self, outcome: Outcome) -> None:
        self.metrics.record_outcome(outcome)

    def _resolve_mode(self, throttle: Optional[Union[ThrottleMode, str]]) -> ThrottleMode:
        if throttle is None:
            return self._config.throttle_mode
        if isinstance(throttle, ThrottleMode):
            return throttle
        return ThrottleMode(throttle.lower())

    def _skips_deduplication(self, endpoint: str) -> bool:
        return any(endpoint.startswith(prefix) for prefix in self._config.skip_deduplication_for)

    def _timeout_for(self, request: RequestDescription) -> float:
        if request.verb == "POST" and request.endpoint.startswith("/api/books"):
            return self._config.upload_timeout
        return self._config.request_timeout

    # === Administration ===

    def block_endpoint(self, endpoint: str) -> None:
        self.blocklist.block_endpoint(endpoint_of(endpoint))

    def unblock_endpoint(self, endpoint: str) -> None:
        self.blocklist.unblock_endpoint(endpoint_of(endpoint))

    def invalidate(self, url: str, method: str = "GET") -> int:
        """
        Drop cached responses for an endpoint (all bodies). Returns count removed.

        Call after a mutation so the next read refetches.
        """
        return self.cache.invalidate_prefix(f"{method.upper()}:{endpoint_of(url)}:")

    def clear(self) -> None:
        """Forget cached data, pending entries and rate history (e.g. on logout)."""
        self.cache.clear()
        self.ledger.clear()
        self.rate.clear_all()
        self.metrics.set_pending(0)

    def get_stats(self) -> GovernorStats:
        return GovernorStats(
            pending_requests=len(self.ledger),
            cached_entries=len(self.cache),
            endpoint_counts=self.rate.get_stats(),
            blocked_endpoints=list(self.blocklist),
            metrics=self.metrics.get_all(),
            sweeper_running=self.is_sweeping,
            last_sweep=self._last_sweep,
        )
