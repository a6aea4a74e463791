"""Tests for bookhub_governor.types key and endpoint derivation."""

import pytest

from bookhub_governor.types import (
    CacheEntry,
    RequestDescription,
    endpoint_of,
    request_key,
)


class TestEndpointOf:
    """Tests for endpoint_of()."""

    def test_strips_query(self):
        assert endpoint_of("/api/books?page=2&limit=10") == "/api/books"

    def test_strips_fragment(self):
        assert endpoint_of("/api/books#top") == "/api/books"

    def test_keeps_absolute_url_host(self):
        assert endpoint_of("https://bookhub.example/api/books?x=1") == "https://bookhub.example/api/books"

    def test_plain_path_unchanged(self):
        assert endpoint_of("/api/chats") == "/api/chats"


class TestRequestKey:
    """Key derivation must be stable for identical requests and distinct otherwise."""

    def test_format(self):
        assert request_key("GET", "/api/books") == "GET:/api/books:"

    def test_bodiless_requests_equal(self):
        assert request_key("GET", "/api/books") == request_key("GET", "/api/books", None)

    def test_query_string_ignored(self):
        """Inline query strings are not part of the key."""
        assert request_key("GET", "/api/books?page=1") == request_key("GET", "/api/books?page=2")

    def test_method_case_insensitive(self):
        assert request_key("get", "/api/books") == request_key("GET", "/api/books")

    def test_body_field_order_irrelevant(self):
        a = request_key("POST", "/api/chats/open", {"userId": "u1", "note": "hi"})
        b = request_key("POST", "/api/chats/open", {"note": "hi", "userId": "u1"})
        assert a == b

    def test_differs_by_method(self):
        assert request_key("GET", "/api/books") != request_key("POST", "/api/books")

    def test_differs_by_endpoint(self):
        assert request_key("GET", "/api/books") != request_key("GET", "/api/chats")

    def test_differs_by_body(self):
        a = request_key("POST", "/api/likes/1", {"v": 1})
        b = request_key("POST", "/api/likes/1", {"v": 2})
        assert a != b

    def test_empty_body_differs_from_no_body(self):
        assert request_key("POST", "/api/x", {}) != request_key("POST", "/api/x")

    def test_params_take_part(self):
        """Separately passed params distinguish pages."""
        a = request_key("GET", "/api/books", params={"page": 1})
        b = request_key("GET", "/api/books", params={"page": 2})
        assert a != b
        assert a == request_key("GET", "/api/books", params={"page": 1})

    def test_params_order_irrelevant(self):
        a = request_key("GET", "/api/books", params={"page": 1, "limit": 12})
        b = request_key("GET", "/api/books", params={"limit": 12, "page": 1})
        assert a == b

    def test_empty_params_same_as_none(self):
        assert request_key("GET", "/api/books", params={}) == request_key("GET", "/api/books")

    def test_text_body_differs_from_json_body(self):
        """A string that spells a JSON object is not that object."""
        assert request_key("POST", "/api/x", '{"a":1}') != request_key("POST", "/api/x", {"a": 1})

    def test_empty_string_body_differs_from_no_body(self):
        assert request_key("POST", "/api/x", "") != request_key("POST", "/api/x")

    def test_bytes_body_differs_from_text_body(self):
        assert request_key("POST", "/api/x", b"raw") != request_key("POST", "/api/x", "raw")

    def test_body_cannot_imitate_params(self):
        a = request_key("POST", "/api/x", "b?page=1")
        b = request_key("POST", "/api/x", "b", params={"page": 1})
        assert a != b

    def test_none_params_dropped(self):
        a = request_key("GET", "/api/books", params={"page": 1, "genre": None})
        assert a == request_key("GET", "/api/books", params={"page": 1})

    def test_key_keeps_endpoint_prefix(self):
        """Invalidation matches on METHOD:endpoint: regardless of body or params."""
        key = request_key("GET", "/api/books/1", params={"page": 2})
        assert key.startswith("GET:/api/books/1:")


class TestRequestDescription:
    """Tests for RequestDescription."""

    def test_derived_fields(self):
        req = RequestDescription("post", "/api/books?draft=1", {"title": "Dune"})
        assert req.endpoint == "/api/books"
        assert req.verb == "POST"
        assert req.key == request_key("POST", "/api/books", {"title": "Dune"})


class TestCacheEntry:
    """Tests for CacheEntry validity."""

    @pytest.mark.parametrize("elapsed, valid", [(0.0, True), (29.9, True), (30.0, False), (45.0, False)])
    def test_is_valid(self, elapsed, valid):
        entry = CacheEntry(key="k", data=1, timestamp=100.0, ttl=30.0)
        assert entry.is_valid(100.0 + elapsed) is valid
