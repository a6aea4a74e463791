"""
BookHub governor configuration handling.

Provides YAML configuration loading and validation.
"""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

import yaml

from .types import ThrottleMode

ENV_CONFIG = "BOOKHUB_GOVERNOR_CONFIG"

# Prefix -> minimum seconds between calls. First match wins, so order matters.
DEFAULT_ENDPOINT_INTERVALS: Tuple[Tuple[str, float], ...] = (
    ("/api/users/", 5.0),
    ("/api/chats", 2.0),
    ("/api/notifications", 3.0),
    ("/api/books", 1.0),
)

DEFAULT_SKIP_DEDUPLICATION: Tuple[str, ...] = (
    "/api/users/me/ping",
    "/api/auth/me",
    "/api/chats/typing",
)

# Returns 404 on every backend build we ship against
DEFAULT_BLOCKED_ENDPOINTS: Tuple[str, ...] = ("/api/users/suggestions",)


def _positive(name: str, value: float) -> None:
    if value <= 0:
        raise ValueError(f"{name} must be greater than 0")


@dataclass
class GovernorConfig:
    """
    Request governor configuration.

    Can be loaded from a YAML file or created programmatically.
    All durations are in seconds.
    """

    # Cache
    default_ttl: float = 30.0
    max_cache_entries: int = 0  # 0 = unbounded
    sweep_interval: float = 60.0

    # Soft throttle
    min_interval: float = 1.0
    endpoint_intervals: List[Tuple[str, float]] = field(
        default_factory=lambda: list(DEFAULT_ENDPOINT_INTERVALS)
    )
    throttle_mode: ThrottleMode = ThrottleMode.REJECT

    # Hard window
    max_requests_per_window: int = 60
    window: float = 60.0

    # Dedup / blocklist
    skip_deduplication_for: List[str] = field(
        default_factory=lambda: list(DEFAULT_SKIP_DEDUPLICATION)
    )
    blocked_endpoints: List[str] = field(
        default_factory=lambda: list(DEFAULT_BLOCKED_ENDPOINTS)
    )
    cache_methods: List[str] = field(default_factory=lambda: ["GET"])

    # Transport
    base_url: str = "http://localhost:5001"
    request_timeout: float = 60.0
    upload_timeout: float = 120.0

    # Logging
    log_level: str = "INFO"
    log_file: str = ""
    log_format: str = "%(asctime)s %(name)s %(levelname)s %(message)s"
    log_max_bytes: int = 10485760  # 10MB
    log_backup_count: int = 3

    # Metrics
    metrics_enabled: bool = False
    metrics_type: str = "simple"  # prometheus, simple
    metrics_port: int = 9090

    def __post_init__(self) -> None:
        if isinstance(self.throttle_mode, str):
            self.throttle_mode = ThrottleMode(self.throttle_mode.lower())
        self.endpoint_intervals = [(str(p), float(s)) for p, s in self.endpoint_intervals]
        self.cache_methods = [m.upper() for m in self.cache_methods]
        self.validate()

    def validate(self) -> None:
        """Raise ValueError on out-of-range settings."""
        _positive("default_ttl", self.default_ttl)
        _positive("sweep_interval", self.sweep_interval)
        _positive("min_interval", self.min_interval)
        _positive("max_requests_per_window", self.max_requests_per_window)
        _positive("window", self.window)
        _positive("request_timeout", self.request_timeout)
        _positive("upload_timeout", self.upload_timeout)
        if self.max_cache_entries < 0:
            raise ValueError("max_cache_entries must be 0 (unbounded) or positive")
        for prefix, seconds in self.endpoint_intervals:
            _positive(f"interval for {prefix}", seconds)

    @classmethod
    def load(cls, path: str) -> "GovernorConfig":
        """
        Load configuration from a YAML file.

        Args:
            path: Path to the YAML configuration file

        Returns:
            GovernorConfig instance

        Raises:
            FileNotFoundError: If config file doesn't exist
            yaml.YAMLError: If config file is invalid YAML
        """
        with open(path, encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}

        return cls.from_dict(data)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "GovernorConfig":
        """
        Create configuration from a dictionary.

        Args:
            data: Configuration dictionary (YAML layout, see ``to_dict``)

        Returns:
            GovernorConfig instance
        """
        cache_cfg = data.get("cache", {})
        throttle_cfg = data.get("throttle", {})
        rate_limit_cfg = data.get("rate_limit", {})
        dedup_cfg = data.get("dedup", {})
        transport_cfg = data.get("transport", {})
        logging_cfg = data.get("logging", {})
        metrics_cfg = data.get("metrics", {})

        # YAML mappings keep insertion order, which is the match order
        endpoints = throttle_cfg.get("endpoints")
        if endpoints is None:
            endpoint_intervals = list(DEFAULT_ENDPOINT_INTERVALS)
        else:
            endpoint_intervals = [(prefix, seconds) for prefix, seconds in endpoints.items()]

        mode = throttle_cfg.get("mode", "reject")
        if mode is False:
            # YAML reads a bare `off` as a boolean
            mode = "off"

        return cls(
            default_ttl=cache_cfg.get("ttl", 30.0),
            max_cache_entries=cache_cfg.get("max_entries", 0),
            sweep_interval=cache_cfg.get("sweep_interval", 60.0),
            cache_methods=cache_cfg.get("methods", ["GET"]),
            min_interval=throttle_cfg.get("min_interval", 1.0),
            endpoint_intervals=endpoint_intervals,
            throttle_mode=mode,
            max_requests_per_window=rate_limit_cfg.get("max_requests_per_window", 60),
            window=rate_limit_cfg.get("window", 60.0),
            skip_deduplication_for=dedup_cfg.get("skip", list(DEFAULT_SKIP_DEDUPLICATION)),
            blocked_endpoints=data.get("blocklist", list(DEFAULT_BLOCKED_ENDPOINTS)),
            base_url=transport_cfg.get("base_url", "http://localhost:5001"),
            request_timeout=transport_cfg.get("timeout", 60.0),
            upload_timeout=transport_cfg.get("upload_timeout", 120.0),
            log_level=logging_cfg.get("level", "INFO"),
            log_file=logging_cfg.get("file", ""),
            log_format=logging_cfg.get("format", "%(asctime)s %(name)s %(levelname)s %(message)s"),
            log_max_bytes=logging_cfg.get("max_bytes", 10485760),
            log_backup_count=logging_cfg.get("backup_count", 3),
            metrics_enabled=metrics_cfg.get("enabled", False),
            metrics_type=metrics_cfg.get("type", "simple"),
            metrics_port=metrics_cfg.get("port", 9090),
        )

    def to_dict(self) -> Dict[str, Any]:
        """
        Convert configuration to dictionary.

        Returns:
            Configuration as dictionary (round-trips through ``from_dict``)
        """
        return {
            "cache": {
                "ttl": self.default_ttl,
                "max_entries": self.max_cache_entries,
                "sweep_interval": self.sweep_interval,
                "methods": list(self.cache_methods),
            },
            "throttle": {
                "min_interval": self.min_interval,
                "mode": self.throttle_mode.value,
                "endpoints": dict(self.endpoint_intervals),
            },
            "rate_limit": {
                "max_requests_per_window": self.max_requests_per_window,
                "window": self.window,
            },
            "dedup": {"skip": list(self.skip_deduplication_for)},
            "blocklist": list(self.blocked_endpoints),
            "transport": {
                "base_url": self.base_url,
                "timeout": self.request_timeout,
                "upload_timeout": self.upload_timeout,
            },
            "logging": {
                "level": self.log_level,
                "file": self.log_file,
                "format": self.log_format,
                "max_bytes": self.log_max_bytes,
                "backup_count": self.log_backup_count,
            },
            "metrics": {
                "enabled": self.metrics_enabled,
                "type": self.metrics_type,
                "port": self.metrics_port,
            },
        }

    def save(self, path: str) -> None:
        """Write the configuration as YAML."""
        with open(path, "w", encoding="utf-8") as f:
            yaml.safe_dump(self.to_dict(), f, sort_keys=False)


def find_config() -> Optional[str]:
    """
    Find config file using standard priority order:

    1. BOOKHUB_GOVERNOR_CONFIG environment variable
    2. .bookhub.yaml in current directory (project config)
    3. ~/.config/bookhub/governor.yaml (user config)

    Returns None if no config found.
    """
    env_config = os.environ.get(ENV_CONFIG)
    if env_config:
        path = Path(env_config)
        if path.exists():
            return str(path)

    project_config = Path.cwd() / ".bookhub.yaml"
    if project_config.exists():
        return str(project_config)

    user_config = Path.home() / ".config" / "bookhub" / "governor.yaml"
    if user_config.exists():
        return str(user_config)

    return None
