"""
CacheStore - Persistent TTL cache for planning query results.

Features:
- SQLite persistence through SQLAlchemy async (aiosqlite)
- Per-entry TTL with lazy purge of expired entries on read
- Expiry sweep and summary statistics
- Every storage failure degrades to a cache miss; nothing is raised
"""

import asyncio
import json
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, Callable

from loguru import logger
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from plandata.datastore.engine import create_engine, create_session_factory, init_db
from plandata.datastore.models import PlanningCacheDB
from plandata.datastore.repositories import PlanningCacheRepository

DEFAULT_TTL = timedelta(hours=24)

# 4 decimal places is roughly 11m of latitude
KEY_PRECISION = 4


def generate_cache_key(lat: float, lng: float, radius_m: float) -> str:
    """Build the cache fingerprint for a location + radius query."""
    # + 0.0 folds -0.0 into 0.0
    rounded_lat = round(lat, KEY_PRECISION) + 0.0
    rounded_lng = round(lng, KEY_PRECISION) + 0.0
    radius = int(radius_m) if float(radius_m).is_integer() else radius_m
    return f"{rounded_lat:.{KEY_PRECISION}f},{rounded_lng:.{KEY_PRECISION}f},{radius}"


@dataclass
class CacheStats:
    """Cache statistics."""

    count: int = 0
    oldest_timestamp: datetime | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "count": self.count,
            "oldest_timestamp": (
                self.oldest_timestamp.isoformat() if self.oldest_timestamp else None
            ),
        }


class CacheStore:
    """
    Persistent key-value cache with TTL.

    Usage:
        cache = CacheStore("sqlite+aiosqlite:///./cache.db")

        payload = await cache.get(key)
        if payload is None:
            payload = await fetch()
            await cache.set(key, payload, ttl=timedelta(hours=1))
    """

    def __init__(
        self,
        database_url: str,
        default_ttl: timedelta = DEFAULT_TTL,
        clock: Callable[[], datetime] = datetime.now,
        debug: bool = False,
    ):
        self._database_url = database_url
        self._default_ttl = default_ttl
        self._clock = clock
        self._debug = debug

        self._engine: AsyncEngine | None = None
        self._session_factory: async_sessionmaker[AsyncSession] | None = None
        self._init_lock = asyncio.Lock()

    async def _get_session_factory(self) -> async_sessionmaker[AsyncSession]:
        """Create the engine and tables on first use."""
        async with self._init_lock:
            if self._session_factory is None:
                engine = create_engine(self._database_url)
                try:
                    await init_db(engine)
                except Exception:
                    await engine.dispose()
                    raise
                self._engine = engine
                self._session_factory = create_session_factory(engine)
            return self._session_factory

    def _is_expired(self, entry: PlanningCacheDB, now: datetime) -> bool:
        return (now - entry.created_at).total_seconds() > entry.ttl_seconds

    async def get(self, key: str) -> dict[str, Any] | None:
        """
        Get a payload from the cache.

        Returns None if the key is missing, expired, or the store fails.
        """
        try:
            session_factory = await self._get_session_factory()
            async with session_factory() as session:
                repo = PlanningCacheRepository(session)
                entry = await repo.get(key)
                if entry is None:
                    self._log(f"MISS: {key}")
                    return None

                if self._is_expired(entry, self._clock()):
                    await repo.delete(key)
                    await session.commit()
                    self._log(f"EXPIRED: {key}")
                    return None

                self._log(f"HIT: {key}")
                return json.loads(entry.payload_json)
        except Exception as e:
            logger.warning(f"[CacheStore] Cache read failed for {key}: {e}")
            return None

    async def set(
        self,
        key: str,
        payload: dict[str, Any],
        ttl: timedelta | None = None,
    ) -> None:
        """Store *payload* under *key*, replacing any existing entry."""
        ttl = ttl or self._default_ttl
        try:
            session_factory = await self._get_session_factory()
            async with session_factory() as session:
                repo = PlanningCacheRepository(session)
                await repo.set(key, payload, self._clock(), ttl.total_seconds())
                await session.commit()
            self._log(f"SET: {key} (TTL: {ttl.total_seconds()}s)")
        except Exception as e:
            logger.warning(f"[CacheStore] Cache write failed for {key}: {e}")

    async def delete(self, key: str) -> bool:
        """Delete a specific key from the cache."""
        try:
            session_factory = await self._get_session_factory()
            async with session_factory() as session:
                deleted = await PlanningCacheRepository(session).delete(key)
                await session.commit()
            if deleted:
                self._log(f"DELETE: {key}")
            return deleted
        except Exception as e:
            logger.warning(f"[CacheStore] Cache delete failed for {key}: {e}")
            return False

    async def sweep_expired(self) -> int:
        """Remove all expired entries. Returns count of removed entries."""
        try:
            session_factory = await self._get_session_factory()
            async with session_factory() as session:
                repo = PlanningCacheRepository(session)
                now = self._clock()
                expired_keys = [
                    entry.key
                    for entry in await repo.list_by_age()
                    if self._is_expired(entry, now)
                ]
                removed = await repo.delete_keys(expired_keys)
                await session.commit()

            if removed:
                self._log(f"CLEANUP: {removed} expired entries removed")
            return removed
        except Exception as e:
            logger.warning(f"[CacheStore] Cache cleanup failed: {e}")
            return 0

    async def clear(self) -> int:
        """Clear all cache entries."""
        try:
            session_factory = await self._get_session_factory()
            async with session_factory() as session:
                count = await PlanningCacheRepository(session).clear()
                await session.commit()
            self._log(f"CLEAR: {count} entries removed")
            return count
        except Exception as e:
            logger.warning(f"[CacheStore] Cache clear failed: {e}")
            return 0

    async def stats(self) -> CacheStats:
        """Entry count and the oldest write timestamp."""
        try:
            session_factory = await self._get_session_factory()
            async with session_factory() as session:
                count, oldest = await PlanningCacheRepository(
                    session
                ).get_cache_stats()
            return CacheStats(count=count, oldest_timestamp=oldest)
        except Exception as e:
            logger.warning(f"[CacheStore] Cache stats failed: {e}")
            return CacheStats()

    async def close(self) -> None:
        """Dispose of the database engine."""
        if self._engine is not None:
            await self._engine.dispose()
            self._engine = None
            self._session_factory = None

    def _log(self, message: str) -> None:
        """Log debug message if debug mode is enabled."""
        if self._debug:
            logger.debug(f"[CacheStore] {message}")
