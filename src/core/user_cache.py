"""
FriendSocial Session Sync — User Cache.

Keeps fetched User records for a fixed TTL. Concurrent lookups for the same
id share one in-flight request instead of racing each other to the service.
"""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Awaitable, Callable

from src.data.models import User

logger = logging.getLogger(__name__)

DEFAULT_TTL_SECONDS = 600.0


class UserCache:
    """Per-user-id TTL cache with single-flight fetches."""

    def __init__(
        self,
        ttl_seconds: float = DEFAULT_TTL_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._ttl = ttl_seconds
        self._clock = clock
        self._entries: dict[int, tuple[User, float]] = {}
        self._in_flight: dict[int, asyncio.Task[User]] = {}

    def get(self, user_id: int) -> User | None:
        """Return the cached user if present and younger than the TTL."""
        entry = self._entries.get(user_id)
        if entry is None:
            return None
        user, stored_at = entry
        if self._clock() - stored_at >= self._ttl:
            return None
        return user

    def put(self, user: User) -> None:
        self._entries[user.id] = (user, self._clock())

    async def get_or_fetch(
        self, user_id: int, fetch: Callable[[int], Awaitable[User]]
    ) -> User:
        """Return a fresh cached user, or fetch it once for all waiters."""
        cached = self.get(user_id)
        if cached is not None:
            logger.debug("User cache hit: %d", user_id)
            return cached

        task = self._in_flight.get(user_id)
        if task is None:
            logger.debug("User cache miss: %d", user_id)
            task = asyncio.ensure_future(self._fetch_and_store(user_id, fetch))
            self._in_flight[user_id] = task
            task.add_done_callback(lambda done: self._forget(user_id, done))
        return await asyncio.shield(task)

    async def _fetch_and_store(
        self, user_id: int, fetch: Callable[[int], Awaitable[User]]
    ) -> User:
        user = await fetch(user_id)
        self.put(user)
        return user

    def _forget(self, user_id: int, task: asyncio.Task[User]) -> None:
        if self._in_flight.get(user_id) is task:
            del self._in_flight[user_id]
