"""Shared fixtures: fake clock, scripted transport, governor factory."""

import asyncio
import logging
from typing import Any, List, Optional

import pytest

from bookhub_governor.config import GovernorConfig
from bookhub_governor.governor import RequestGovernor
from bookhub_governor.types import RequestDescription, ThrottleMode


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeTransport:
    """
    Scripted transport.

    - ``response``: value returned (or exception raised) for every call
    - ``side_effects``: consumed first, one per call
    - ``gate``: when set to an asyncio.Event, calls wait on it before answering
    - ``gate_prefix``: only endpoints starting with it wait on ``gate``
    """

    def __init__(self, response: Any = None):
        self.response = {"ok": True} if response is None else response
        self.side_effects: List[Any] = []
        self.calls: List[RequestDescription] = []
        self.timeouts: List[Optional[float]] = []
        self.gate: Optional[asyncio.Event] = None
        self.gate_prefix = ""
        self.closed = False

    async def send(self, request: RequestDescription, timeout: Optional[float] = None) -> Any:
        self.calls.append(request)
        self.timeouts.append(timeout)
        if self.gate is not None and request.endpoint.startswith(self.gate_prefix):
            await self.gate.wait()
        result = self.side_effects.pop(0) if self.side_effects else self.response
        if isinstance(result, BaseException):
            raise result
        if callable(result):
            return result(request)
        return result

    async def aclose(self) -> None:
        self.closed = True


@pytest.fixture(autouse=True)
def restore_root_logger():
    """Governors built with a config reconfigure root logging; undo it."""
    root = logging.getLogger()
    handlers = list(root.handlers)
    level = root.level
    watched = ("bookhub_governor", "httpx", "httpcore")
    levels = {name: logging.getLogger(name).level for name in watched}
    yield
    for name, saved in levels.items():
        logging.getLogger(name).setLevel(saved)
    for handler in root.handlers:
        if handler not in handlers:
            handler.close()
    root.handlers[:] = handlers
    root.setLevel(level)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def transport():
    return FakeTransport()


@pytest.fixture
def make_governor(clock, transport):
    """
    Build a governor on the fake clock and transport.

    Defaults switch off the soft throttle and the shipped blocklist so each
    test opts into the policy it exercises.
    """
    def _make(**overrides: Any) -> RequestGovernor:
        settings = {
            "blocked_endpoints": [],
            "skip_deduplication_for": [],
            "throttle_mode": ThrottleMode.OFF,
            "endpoint_intervals": [],
        }
        settings.update(overrides)
        return RequestGovernor(GovernorConfig(**settings), transport=transport, clock=clock)
    return _make


@pytest.fixture
def governor(make_governor):
    return make_governor()
