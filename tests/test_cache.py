"""Tests for plandata.services.cache module."""

from datetime import datetime, timedelta
from pathlib import Path

import pytest

from plandata.services.cache import CacheStore, generate_cache_key


class FakeClock:
    def __init__(self):
        self.now = datetime(2024, 6, 1, 12, 0, 0)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture()
async def clocked_cache(tmp_path: Path, clock: FakeClock):
    store = CacheStore(
        f"sqlite+aiosqlite:///{tmp_path / 'clocked.db'}",
        default_ttl=timedelta(hours=1),
        clock=clock,
    )
    yield store
    await store.close()


class TestGenerateCacheKey:
    def test_format(self):
        assert generate_cache_key(51.5074, -0.1278, 500) == "51.5074,-0.1278,500"

    def test_nearby_points_share_a_key(self):
        assert generate_cache_key(51.50741, -0.12779, 500) == generate_cache_key(
            51.50738, -0.12782, 500
        )

    def test_different_radius_different_key(self):
        assert generate_cache_key(51.5074, -0.1278, 500) != generate_cache_key(
            51.5074, -0.1278, 1000
        )

    def test_integral_float_radius_matches_int(self):
        assert generate_cache_key(51.5, -0.1, 500.0) == generate_cache_key(
            51.5, -0.1, 500
        )

    def test_negative_zero_folds(self):
        assert generate_cache_key(-0.00001, 0.0, 100) == generate_cache_key(
            0.0, 0.0, 100
        )


class TestGetSet:
    async def test_miss(self, cache: CacheStore):
        assert await cache.get("nothing-here") is None

    async def test_round_trip(self, cache: CacheStore):
        payload = {"applications": [{"id": "A1"}], "constraints": []}
        await cache.set("k1", payload)
        assert await cache.get("k1") == payload

    async def test_set_replaces(self, cache: CacheStore):
        await cache.set("k1", {"v": 1})
        await cache.set("k1", {"v": 2})
        assert await cache.get("k1") == {"v": 2}
        assert (await cache.stats()).count == 1

    async def test_delete(self, cache: CacheStore):
        await cache.set("k1", {"v": 1})
        assert await cache.delete("k1") is True
        assert await cache.get("k1") is None
        assert await cache.delete("k1") is False

    async def test_clear(self, cache: CacheStore):
        await cache.set("a", {})
        await cache.set("b", {})
        assert await cache.clear() == 2
        assert (await cache.stats()).count == 0


class TestExpiry:
    async def test_valid_until_ttl_elapses(
        self, clocked_cache: CacheStore, clock: FakeClock
    ):
        await clocked_cache.set("k", {"v": 1})
        clock.advance(hours=1)
        assert await clocked_cache.get("k") == {"v": 1}

    async def test_expired_entry_is_a_miss_and_purged(
        self, clocked_cache: CacheStore, clock: FakeClock
    ):
        await clocked_cache.set("k", {"v": 1})
        clock.advance(hours=1, seconds=1)

        assert await clocked_cache.get("k") is None
        assert (await clocked_cache.stats()).count == 0
        assert await clocked_cache.get("k") is None

    async def test_per_entry_ttl(self, clocked_cache: CacheStore, clock: FakeClock):
        await clocked_cache.set("short", {"v": 1}, ttl=timedelta(minutes=5))
        await clocked_cache.set("long", {"v": 2}, ttl=timedelta(days=1))
        clock.advance(minutes=10)

        assert await clocked_cache.get("short") is None
        assert await clocked_cache.get("long") == {"v": 2}

    async def test_sweep_expired(self, clocked_cache: CacheStore, clock: FakeClock):
        await clocked_cache.set("old-1", {})
        await clocked_cache.set("old-2", {})
        clock.advance(minutes=59)
        await clocked_cache.set("fresh", {})
        clock.advance(minutes=2)

        assert await clocked_cache.sweep_expired() == 2
        assert (await clocked_cache.stats()).count == 1
        assert await clocked_cache.sweep_expired() == 0


class TestStats:
    async def test_empty(self, cache: CacheStore):
        stats = await cache.stats()
        assert stats.count == 0
        assert stats.oldest_timestamp is None

    async def test_oldest_timestamp(self, clocked_cache: CacheStore, clock: FakeClock):
        first = clock.now
        await clocked_cache.set("a", {})
        clock.advance(minutes=5)
        await clocked_cache.set("b", {})

        stats = await clocked_cache.stats()
        assert stats.count == 2
        assert stats.oldest_timestamp == first
        assert stats.to_dict()["oldest_timestamp"] == first.isoformat()


class TestStorageFailure:
    @pytest.fixture()
    async def broken_cache(self, tmp_path: Path):
        missing_dir = tmp_path / "does" / "not" / "exist"
        store = CacheStore(f"sqlite+aiosqlite:///{missing_dir / 'cache.db'}")
        yield store
        await store.close()

    async def test_every_operation_degrades(self, broken_cache: CacheStore):
        await broken_cache.set("k", {"v": 1})
        assert await broken_cache.get("k") is None
        assert await broken_cache.delete("k") is False
        assert await broken_cache.sweep_expired() == 0
        assert await broken_cache.clear() == 0
        assert (await broken_cache.stats()).count == 0
