"""Tests for src.core.user_cache — TTL expiry and single-flight lookups."""

import asyncio

import pytest
from unittest.mock import AsyncMock

from src.core.user_cache import UserCache
from src.data.models import User


class FakeClock:
    def __init__(self, now: float = 1000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


def _user(user_id: int) -> User:
    return User(id=user_id, name=f"User {user_id}", email=f"u{user_id}@example.com")


class TestUserCacheTtl:
    @pytest.mark.asyncio
    async def test_second_lookup_within_ttl_hits_cache(self):
        """A lookup just before the TTL is served from cache."""
        clock = FakeClock()
        cache = UserCache(ttl_seconds=600, clock=clock)
        fetch = AsyncMock(return_value=_user(1))

        first = await cache.get_or_fetch(1, fetch)
        clock.advance(599)
        second = await cache.get_or_fetch(1, fetch)

        assert first == second
        fetch.assert_awaited_once_with(1)

    @pytest.mark.asyncio
    async def test_lookup_after_ttl_refetches(self):
        """A lookup at the TTL boundary refetches."""
        clock = FakeClock()
        cache = UserCache(ttl_seconds=600, clock=clock)
        fetch = AsyncMock(return_value=_user(1))

        await cache.get_or_fetch(1, fetch)
        clock.advance(600)
        await cache.get_or_fetch(1, fetch)

        assert fetch.await_count == 2

    @pytest.mark.asyncio
    async def test_refetch_refreshes_timestamp(self):
        """A refetch restarts the TTL window."""
        clock = FakeClock()
        cache = UserCache(ttl_seconds=600, clock=clock)
        fetch = AsyncMock(return_value=_user(1))

        await cache.get_or_fetch(1, fetch)
        clock.advance(700)
        await cache.get_or_fetch(1, fetch)
        clock.advance(300)
        await cache.get_or_fetch(1, fetch)

        assert fetch.await_count == 2

    def test_put_and_get(self):
        """put() stores a user until the TTL lapses."""
        clock = FakeClock()
        cache = UserCache(ttl_seconds=10, clock=clock)
        cache.put(_user(5))
        assert cache.get(5).name == "User 5"
        clock.advance(10)
        assert cache.get(5) is None


class TestUserCacheSingleFlight:
    @pytest.mark.asyncio
    async def test_concurrent_lookups_share_one_request(self):
        """Concurrent lookups for one id share a single fetch."""
        cache = UserCache()
        release = asyncio.Event()
        calls = []

        async def fetch(user_id):
            calls.append(user_id)
            await release.wait()
            return _user(user_id)

        waiters = [asyncio.ensure_future(cache.get_or_fetch(3, fetch)) for _ in range(5)]
        await asyncio.sleep(0)
        release.set()
        results = await asyncio.gather(*waiters)

        assert calls == [3]
        assert all(user.id == 3 for user in results)

    @pytest.mark.asyncio
    async def test_failure_reaches_every_waiter_and_is_not_cached(self):
        """A failed fetch reaches all waiters and is retried next time."""
        cache = UserCache()
        fetch = AsyncMock(side_effect=RuntimeError("boom"))

        results = await asyncio.gather(
            cache.get_or_fetch(3, fetch),
            cache.get_or_fetch(3, fetch),
            return_exceptions=True,
        )

        assert all(isinstance(r, RuntimeError) for r in results)
        assert fetch.await_count == 1
        assert cache.get(3) is None

        fetch.side_effect = None
        fetch.return_value = _user(3)
        assert (await cache.get_or_fetch(3, fetch)).id == 3
        assert fetch.await_count == 2
