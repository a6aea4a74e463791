"""
Metrics collection and export for the request governor.

Two backends: a simple in-memory collector (always available, used for
``get_stats``) and Prometheus via prometheus_client.
"""

import time
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from prometheus_client import CollectorRegistry, Counter, Gauge, Histogram, start_http_server

from ..types import Outcome


@dataclass
class MetricsConfig:
    """
    Metrics configuration.

    Attributes:
        enabled: Whether metrics collection is active
        type: Metrics backend type ("prometheus", "simple")
        port: HTTP port for metrics endpoint (Prometheus)
    """
    enabled: bool = False
    type: str = "simple"
    port: int = 9090


class SimpleMetrics:
    """In-memory counters, histograms and gauges."""

    def __init__(self) -> None:
        self._counters: Dict[str, int] = {}
        self._histograms: Dict[str, List[float]] = {}
        self._gauges: Dict[str, float] = {}
        self._start_time = time.time()

    def inc_counter(self, name: str, value: int = 1, labels: Optional[Dict[str, str]] = None) -> None:
        key = self._make_key(name, labels)
        self._counters[key] = self._counters.get(key, 0) + value

    def observe_histogram(self, name: str, value: float, labels: Optional[Dict[str, str]] = None) -> None:
        key = self._make_key(name, labels)
        self._histograms.setdefault(key, []).append(value)

    def set_gauge(self, name: str, value: float, labels: Optional[Dict[str, str]] = None) -> None:
        self._gauges[self._make_key(name, labels)] = value

    def get_counter(self, name: str, labels: Optional[Dict[str, str]] = None) -> int:
        return self._counters.get(self._make_key(name, labels), 0)

    def get_gauge(self, name: str, labels: Optional[Dict[str, str]] = None) -> float:
        return self._gauges.get(self._make_key(name, labels), 0.0)

    def get_histogram_stats(self, name: str, labels: Optional[Dict[str, str]] = None) -> Dict[str, float]:
        values = self._histograms.get(self._make_key(name, labels), [])
        if not values:
            return {"count": 0, "sum": 0, "min": 0, "max": 0, "avg": 0}
        return {
            "count": len(values),
            "sum": sum(values),
            "min": min(values),
            "max": max(values),
            "avg": sum(values) / len(values),
        }

    def get_all(self) -> Dict[str, Any]:
        return {
            "counters": dict(self._counters),
            "histograms": {k: self.get_histogram_stats(k) for k in self._histograms},
            "gauges": dict(self._gauges),
            "uptime_seconds": time.time() - self._start_time,
        }

    def reset(self) -> None:
        self._counters.clear()
        self._histograms.clear()
        self._gauges.clear()
        self._start_time = time.time()

    @staticmethod
    def _make_key(name: str, labels: Optional[Dict[str, str]] = None) -> str:
        if not labels:
            return name
        label_str = ",".join(f"{k}={v}" for k, v in sorted(labels.items()))
        return f"{name}{{{label_str}}}"


class PrometheusMetrics:
    """
    Prometheus metrics collector.

    Each instance owns its registry so several governors (or test cases) can
    coexist in one process.
    """

    def __init__(self, port: int = 9090, registry: Optional[CollectorRegistry] = None) -> None:
        self._port = port
        self._server_started = False
        self.registry = registry or CollectorRegistry()

        self._outcomes_total = Counter(
            "bookhub_governor_outcomes_total",
            "Governed calls by outcome",
            ["outcome"],
            registry=self.registry,
        )
        self._request_duration = Histogram(
            "bookhub_governor_request_duration_seconds",
            "Transport call duration in seconds",
            ["status"],
            registry=self.registry,
        )
        self._pending = Gauge(
            "bookhub_governor_pending_requests",
            "In-flight deduplicated requests",
            registry=self.registry,
        )

    def start_server(self) -> None:
        if not self._server_started:
            start_http_server(self._port, registry=self.registry)
            self._server_started = True

    def record_outcome(self, outcome: Outcome) -> None:
        self._outcomes_total.labels(outcome=outcome.value).inc()

    def record_request(self, success: bool, duration_ms: int) -> None:
        status = "success" if success else "error"
        self._request_duration.labels(status=status).observe(duration_ms / 1000)

    def set_pending(self, count: int) -> None:
        self._pending.set(count)


class GovernorMetrics:
    """
    Governor metrics collector.

    The simple backend always runs so ``get_all`` works for stats; Prometheus
    is added on top when configured.
    """

    def __init__(self, config: Optional[MetricsConfig] = None) -> None:
        self._config = config or MetricsConfig()
        self._simple = SimpleMetrics()
        self._prometheus: Optional[PrometheusMetrics] = None
        if self._config.enabled and self._config.type == "prometheus":
            self._prometheus = PrometheusMetrics(port=self._config.port)

    @property
    def is_enabled(self) -> bool:
        return self._config.enabled

    @property
    def backend_type(self) -> str:
        return "prometheus" if self._prometheus is not None else "simple"

    @property
    def prometheus(self) -> Optional[PrometheusMetrics]:
        return self._prometheus

    def start_server(self) -> None:
        """Start metrics HTTP server (Prometheus only)."""
        if self._prometheus is not None:
            self._prometheus.start_server()

    def record_outcome(self, outcome: Outcome) -> None:
        self._simple.inc_counter("outcomes", labels={"outcome": outcome.value})
        if self._prometheus is not None:
            self._prometheus.record_outcome(outcome)

    def record_request(self, success: bool, duration_ms: int) -> None:
        status = "success" if success else "error"
        self._simple.observe_histogram("request_duration_ms", duration_ms, labels={"status": status})
        if self._prometheus is not None:
            self._prometheus.record_request(success, duration_ms)

    def set_pending(self, count: int) -> None:
        self._simple.set_gauge("pending_requests", count)
        if self._prometheus is not None:
            self._prometheus.set_pending(count)

    def outcome_count(self, outcome: Outcome) -> int:
        return self._simple.get_counter("outcomes", labels={"outcome": outcome.value})

    def get_all(self) -> Dict[str, Any]:
        return self._simple.get_all()

    def reset(self) -> None:
        self._simple.reset()
