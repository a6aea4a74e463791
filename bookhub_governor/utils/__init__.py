"""Request governor utilities."""

from .logging import get_logger, setup_logging, setup_logging_from_dict
from .metrics import GovernorMetrics, MetricsConfig, PrometheusMetrics, SimpleMetrics
from .retry import RetryConfig, retry_async

__all__ = [
    "get_logger",
    "setup_logging",
    "setup_logging_from_dict",
    "GovernorMetrics",
    "MetricsConfig",
    "PrometheusMetrics",
    "SimpleMetrics",
    "RetryConfig",
    "retry_async",
]
