"""Tests for bookhub_governor.stores.rate_window."""

import pytest

from bookhub_governor.stores.rate_window import RateWindowTracker


@pytest.fixture
def tracker(clock):
    return RateWindowTracker(
        min_interval=1.0,
        endpoint_intervals=[("/api/users/", 5.0), ("/api/users/me", 0.5), ("/api/chats", 2.0)],
        max_requests_per_window=3,
        window=60.0,
        clock=clock,
    )


class TestSoftThrottle:
    """Tests for should_throttle / get_time_until_next_request."""

    def test_first_call_allowed(self, tracker):
        assert tracker.should_throttle("/api/books") is False

    def test_repeat_within_interval_throttled(self, tracker, clock):
        tracker.should_throttle("/api/books")
        clock.advance(0.5)
        assert tracker.should_throttle("/api/books") is True

    def test_repeat_after_interval_allowed(self, tracker, clock):
        tracker.should_throttle("/api/books")
        clock.advance(1.0)
        assert tracker.should_throttle("/api/books") is False

    def test_throttled_check_does_not_update(self, tracker, clock):
        """Only permitted checks move the last-request mark."""
        tracker.should_throttle("/api/books")
        clock.advance(0.5)
        assert tracker.should_throttle("/api/books") is True
        clock.advance(0.5)
        assert tracker.should_throttle("/api/books") is False

    def test_time_until_next(self, tracker, clock):
        assert tracker.get_time_until_next_request("/api/books") == 0.0
        tracker.should_throttle("/api/books")
        clock.advance(0.25)
        assert tracker.get_time_until_next_request("/api/books") == pytest.approx(0.75)
        clock.advance(5)
        assert tracker.get_time_until_next_request("/api/books") == 0.0

    def test_prefix_first_match_wins(self, tracker):
        # "/api/users/me" also matches the later, shorter-interval prefix
        assert tracker.interval("/api/users/me") == 5.0
        assert tracker.interval("/api/chats/abc/messages") == 2.0
        assert tracker.interval("/api/books") == 1.0

    def test_override_interval_applied(self, tracker, clock):
        tracker.should_throttle("/api/chats")
        clock.advance(1.5)
        assert tracker.should_throttle("/api/chats") is True
        clock.advance(0.5)
        assert tracker.should_throttle("/api/chats") is False

    def test_endpoints_independent(self, tracker):
        tracker.should_throttle("/api/books")
        assert tracker.should_throttle("/api/chats") is False

    def test_clear_throttle(self, tracker):
        tracker.should_throttle("/api/books")
        tracker.clear_throttle("/api/books")
        assert tracker.should_throttle("/api/books") is False


class TestHardBlock:
    """Tests for should_block."""

    def test_blocks_after_limit(self, tracker):
        assert [tracker.should_block("/api/books") for _ in range(3)] == [False, False, False]
        assert tracker.should_block("/api/books") is True

    def test_blocked_checks_not_recorded(self, tracker):
        for _ in range(5):
            tracker.should_block("/api/books")
        assert tracker.count("/api/books") == 3

    def test_window_expiry_restores(self, tracker, clock):
        for _ in range(3):
            tracker.should_block("/api/books")
        clock.advance(59.5)
        assert tracker.should_block("/api/books") is True
        clock.advance(0.5)
        assert tracker.should_block("/api/books") is False

    def test_sliding_window(self, tracker, clock):
        tracker.should_block("/api/books")
        clock.advance(30)
        tracker.should_block("/api/books")
        tracker.should_block("/api/books")
        clock.advance(30)
        # Oldest call aged out, the two from t=30 remain
        assert tracker.count("/api/books") == 2
        assert tracker.should_block("/api/books") is False
        assert tracker.should_block("/api/books") is True

    def test_endpoints_independent(self, tracker):
        for _ in range(3):
            tracker.should_block("/api/books")
        assert tracker.should_block("/api/chats") is False

    def test_stats_and_prune(self, tracker, clock):
        tracker.should_block("/api/books")
        tracker.should_block("/api/books")
        clock.advance(30)
        tracker.should_block("/api/chats")
        assert tracker.get_stats() == {"/api/books": 2, "/api/chats": 1}
        clock.advance(31)
        assert tracker.prune() == 1
        assert tracker.get_stats() == {"/api/chats": 1}

    def test_clear_all(self, tracker):
        for _ in range(3):
            tracker.should_block("/api/books")
        tracker.should_throttle("/api/books")
        tracker.clear_all()
        assert tracker.should_block("/api/books") is False
        assert tracker.should_throttle("/api/books") is False


class TestValidation:
    """Constructor validation."""

    @pytest.mark.parametrize("kwargs", [
        {"min_interval": 0},
        {"max_requests_per_window": 0},
        {"window": -1},
    ])
    def test_rejects_non_positive(self, kwargs):
        with pytest.raises(ValueError):
            RateWindowTracker(**kwargs)
