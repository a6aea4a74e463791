"""
BookHub API client.

Thin service layer over a RequestGovernor mirroring the app's service
modules. Reads are cached and deduplicated, mutations invalidate the reads
they affect, and the presence heartbeat goes through a caller-keyed
throttle instead of the facade's URL-based one.
"""

import logging
from typing import Any, Dict, Optional

from .governor import RequestGovernor
from .throttle import ThrottledRequest
from .types import ThrottleMode
from .utils.retry import RetryConfig, retry_async

logger = logging.getLogger(__name__)

PRESENCE_INTERVAL = 30.0


class BookHubClient:
    """
    Usage:
        async with RequestGovernor(config) as governor:
            client = BookHubClient(governor)
            page = await client.list_books(page=2)
            await client.ping_presence()
    """

    def __init__(
        self,
        governor: RequestGovernor,
        retry: Optional[RetryConfig] = None,
        presence_interval: float = PRESENCE_INTERVAL,
    ):
        """
        Args:
            governor: Shared request governor
            retry: Retry transient transport failures on reads; None disables
            presence_interval: Minimum seconds between presence pings
        """
        self._governor = governor
        self._retry = retry
        self._presence = ThrottledRequest(interval=presence_interval)

    @property
    def governor(self) -> RequestGovernor:
        return self._governor

    async def _read(self, url: str, params: Optional[Dict[str, Any]] = None, **kwargs: Any) -> Any:
        # Reads from one screen often land in the same interval; wait rather than fail
        kwargs.setdefault("throttle", ThrottleMode.DEFER)
        if self._retry is None:
            return await self._governor.get(url, params=params, **kwargs)
        return await retry_async(
            self._governor.get, url, params=params, config=self._retry, **kwargs
        )

    async def _write(self, method: str, url: str, body: Any = None, *invalidates: str) -> Any:
        result = await self._governor.fetch(method, url, body, throttle=ThrottleMode.OFF)
        for path in invalidates:
            self._governor.invalidate(path)
        return result

    # === Books ===

    async def list_books(self, page: int = 1, limit: int = 12, **filters: Any) -> Any:
        return await self._read("/api/books", {"page": page, "limit": limit, **filters})

    async def get_feed(self, page: int = 1, limit: int = 12) -> Any:
        return await self._read("/api/books/feed", {"page": page, "limit": limit})

    async def get_book(self, book_id: str) -> Any:
        return await self._read(f"/api/books/{book_id}")

    async def search_books(self, query: str, page: int = 1) -> Any:
        return await self._read("/api/books/search", {"q": query, "page": page})

    async def get_categories(self) -> Any:
        # Category list changes only with backend deploys
        return await self._read("/api/books/categories", ttl=300.0)

    # === Likes / bookmarks ===

    async def like_book(self, book_id: str) -> Any:
        return await self._write(
            "POST", f"/api/likes/{book_id}", None,
            f"/api/likes/book/{book_id}", f"/api/books/{book_id}",
        )

    async def bookmark_book(self, book_id: str, folder: Optional[str] = None) -> Any:
        body = {"folder": folder} if folder else {}
        return await self._write(
            "POST", f"/api/bookmarks/{book_id}", body, f"/api/bookmarks/book/{book_id}",
        )

    # === Users ===

    async def get_me(self) -> Any:
        return await self._read("/api/users/me", use_cache=False)

    async def get_user(self, username: str) -> Any:
        return await self._read(f"/api/users/{username}")

    async def follow_user(self, user_id: str) -> Any:
        return await self._write("POST", f"/api/users/follow/{user_id}")

    async def ping_presence(self) -> Optional[Any]:
        """
        Heartbeat. Returns None when skipped because the last ping was recent.
        """
        return await self._presence(
            lambda: self._governor.post("/api/users/me/ping", throttle=ThrottleMode.OFF),
            "user-ping",
        )

    # === Notifications ===

    async def get_notifications(self, page: int = 1, limit: int = 20) -> Any:
        return await self._read("/api/notifications", {"page": page, "limit": limit}, ttl=10.0)

    async def mark_notification_read(self, notification_id: str) -> Any:
        return await self._write(
            "PUT", f"/api/notifications/{notification_id}/read", None, "/api/notifications",
        )

    # === Chats ===

    async def list_conversations(self) -> Any:
        return await self._read("/api/chats", ttl=5.0)

    async def get_messages(self, conversation_id: str, page: int = 1, limit: int = 30) -> Any:
        return await self._read(
            f"/api/chats/{conversation_id}/messages",
            {"page": page, "limit": limit},
            use_cache=False,
        )

    async def send_message(self, conversation_id: str, text: str, **attachments: Any) -> Any:
        body = {"text": text, **attachments}
        return await self._write(
            "POST", f"/api/chats/{conversation_id}/messages", body, "/api/chats",
        )

    def invalidate(self, path: str) -> int:
        """Drop cached reads for path."""
        return self._governor.invalidate(path)
