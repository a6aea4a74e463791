"""Tests for bookhub_governor.config."""

import pytest
import yaml

from bookhub_governor.config import (
    DEFAULT_BLOCKED_ENDPOINTS,
    DEFAULT_ENDPOINT_INTERVALS,
    GovernorConfig,
    find_config,
)
from bookhub_governor.types import ThrottleMode


class TestDefaults:
    """Shipped defaults."""

    def test_values(self):
        config = GovernorConfig()
        assert config.default_ttl == 30.0
        assert config.min_interval == 1.0
        assert config.max_requests_per_window == 60
        assert config.window == 60.0
        assert config.throttle_mode is ThrottleMode.REJECT
        assert config.request_timeout == 60.0
        assert config.upload_timeout == 120.0
        assert config.cache_methods == ["GET"]
        assert config.blocked_endpoints == list(DEFAULT_BLOCKED_ENDPOINTS)
        assert config.endpoint_intervals == list(DEFAULT_ENDPOINT_INTERVALS)

    def test_defaults_not_shared(self):
        a = GovernorConfig()
        b = GovernorConfig()
        a.blocked_endpoints.append("/api/x")
        assert "/api/x" not in b.blocked_endpoints


class TestValidation:
    """Construction-time validation."""

    @pytest.mark.parametrize("field_name", [
        "default_ttl", "min_interval", "max_requests_per_window", "window",
        "request_timeout", "upload_timeout", "sweep_interval",
    ])
    def test_non_positive_rejected(self, field_name):
        with pytest.raises(ValueError, match=field_name):
            GovernorConfig(**{field_name: 0})

    def test_negative_cache_cap_rejected(self):
        with pytest.raises(ValueError):
            GovernorConfig(max_cache_entries=-1)

    def test_bad_endpoint_interval_rejected(self):
        with pytest.raises(ValueError, match="/api/chats"):
            GovernorConfig(endpoint_intervals=[("/api/chats", 0)])

    def test_throttle_mode_from_string(self):
        assert GovernorConfig(throttle_mode="DEFER").throttle_mode is ThrottleMode.DEFER

    def test_unknown_throttle_mode(self):
        with pytest.raises(ValueError):
            GovernorConfig(throttle_mode="sometimes")

    def test_cache_methods_uppercased(self):
        assert GovernorConfig(cache_methods=["get", "head"]).cache_methods == ["GET", "HEAD"]


class TestFromDict:
    """YAML layout mapping."""

    def test_empty_dict_gives_defaults(self):
        assert GovernorConfig.from_dict({}) == GovernorConfig()

    def test_sections(self):
        config = GovernorConfig.from_dict({
            "cache": {"ttl": 10, "max_entries": 100},
            "throttle": {
                "mode": "defer",
                "min_interval": 0.5,
                "endpoints": {"/api/chats": 2, "/api/books": 1},
            },
            "rate_limit": {"max_requests_per_window": 5, "window": 10},
            "dedup": {"skip": ["/api/auth/me"]},
            "blocklist": [],
            "transport": {"base_url": "https://bookhub.example", "timeout": 15},
            "logging": {"level": "DEBUG"},
            "metrics": {"enabled": True, "type": "prometheus", "port": 9100},
        })
        assert config.default_ttl == 10
        assert config.max_cache_entries == 100
        assert config.throttle_mode is ThrottleMode.DEFER
        assert config.endpoint_intervals == [("/api/chats", 2.0), ("/api/books", 1.0)]
        assert config.max_requests_per_window == 5
        assert config.skip_deduplication_for == ["/api/auth/me"]
        assert config.blocked_endpoints == []
        assert config.base_url == "https://bookhub.example"
        assert config.request_timeout == 15
        assert config.log_level == "DEBUG"
        assert config.metrics_type == "prometheus"

    def test_round_trip(self):
        config = GovernorConfig(default_ttl=12, throttle_mode=ThrottleMode.OFF)
        assert GovernorConfig.from_dict(config.to_dict()) == config


class TestFiles:
    """Loading, saving and discovery."""

    def test_load(self, tmp_path):
        path = tmp_path / "governor.yaml"
        path.write_text("cache:\n  ttl: 5\nthrottle:\n  mode: off\n")
        config = GovernorConfig.load(str(path))
        assert config.default_ttl == 5
        assert config.throttle_mode is ThrottleMode.OFF

    def test_load_empty_file(self, tmp_path):
        path = tmp_path / "governor.yaml"
        path.write_text("")
        assert GovernorConfig.load(str(path)) == GovernorConfig()

    def test_load_missing(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            GovernorConfig.load(str(tmp_path / "missing.yaml"))

    def test_save_then_load(self, tmp_path):
        path = tmp_path / "governor.yaml"
        GovernorConfig(window=30).save(str(path))
        assert yaml.safe_load(path.read_text())["rate_limit"]["window"] == 30
        assert GovernorConfig.load(str(path)).window == 30

    def test_find_config_env(self, tmp_path, monkeypatch):
        path = tmp_path / "custom.yaml"
        path.write_text("{}")
        monkeypatch.setenv("BOOKHUB_GOVERNOR_CONFIG", str(path))
        assert find_config() == str(path)

    def test_find_config_project(self, tmp_path, monkeypatch):
        monkeypatch.delenv("BOOKHUB_GOVERNOR_CONFIG", raising=False)
        monkeypatch.chdir(tmp_path)
        (tmp_path / ".bookhub.yaml").write_text("{}")
        assert find_config() == str(tmp_path / ".bookhub.yaml")

    def test_find_config_none(self, tmp_path, monkeypatch):
        monkeypatch.delenv("BOOKHUB_GOVERNOR_CONFIG", raising=False)
        monkeypatch.chdir(tmp_path)
        monkeypatch.setenv("HOME", str(tmp_path))
        assert find_config() is None
