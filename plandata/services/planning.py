"""
PlanningDataService - public entry point for planning data queries.

Policy:
- Cache first (unless disabled, skipped, or date-filtered)
- Offline: serve from cache or fail with OFFLINE
- Otherwise fetch PlanIt (primary) and constraints (supplementary) concurrently
- Write results back to the cache without blocking the caller
"""

import asyncio
from datetime import timedelta
from typing import Callable

from loguru import logger
from pydantic import ValidationError

from plandata.analysis.authority import calculate_local_authority_stats
from plandata.datasource.constraints import ConstraintAggregator
from plandata.datasource.planit import PlanItSource
from plandata.models import PlanningResult
from plandata.services.cache import CacheStats, CacheStore, generate_cache_key
from plandata.services.client import RequestExecutor, always_online
from plandata.services.errors import ErrorKind, make_error
from plandata.settings import Settings


class PlanningDataService:
    """
    Retrieves planning applications, constraints and authority statistics.

    Usage:
        async with PlanningDataService(Settings.from_env()) as service:
            result = await service.query(51.5074, -0.1278, 500)
    """

    def __init__(
        self,
        settings: Settings | None = None,
        *,
        cache: CacheStore | None = None,
        executor: RequestExecutor | None = None,
        is_online: Callable[[], bool] = always_online,
    ):
        self._settings = settings or Settings()
        self._caching_enabled = self._settings.use_cache
        self._is_online = is_online

        self._cache = cache or CacheStore(
            self._settings.cache_database_url,
            default_ttl=timedelta(hours=self._settings.cache_ttl_hours),
        )
        self._executor = executor or RequestExecutor(
            self._settings, is_online=is_online
        )
        self._planit = PlanItSource(self._executor, self._settings)
        self._constraints = ConstraintAggregator(self._executor, self._settings)

        self._pending_writes: dict[str, asyncio.Task[None]] = {}

    @property
    def cache(self) -> CacheStore:
        return self._cache

    def set_caching_enabled(self, enabled: bool) -> None:
        """Toggle cache reads for subsequent queries."""
        self._caching_enabled = enabled
        logger.info(f"Caching {'enabled' if enabled else 'disabled'}")

    def is_caching_enabled(self) -> bool:
        return self._caching_enabled

    async def query(
        self,
        lat: float,
        lng: float,
        radius_m: float = 500,
        *,
        from_date: str | None = None,
        to_date: str | None = None,
        skip_cache: bool = False,
    ) -> PlanningResult:
        """
        Fetch planning data near a location.

        Args:
            lat: Latitude of the search point
            lng: Longitude of the search point
            radius_m: Search radius in metres
            from_date: Only applications started on/after this date (YYYY-MM-DD)
            to_date: Only applications started on/before this date (YYYY-MM-DD)
            skip_cache: Bypass the cache read (results are still written)

        Returns:
            PlanningResult with applications sorted by distance

        Raises:
            PlanningDataError: when the primary source fails or the device is
                offline with nothing cached
        """
        cache_key = generate_cache_key(lat, lng, radius_m)
        date_filtered = bool(from_date or to_date)

        if self._caching_enabled and not date_filtered and not skip_cache:
            cached = await self._read_cache(cache_key)
            if cached is not None:
                logger.info(f"Using cached planning data for {cache_key}")
                return cached

        if not self._is_online():
            cached = await self._read_cache(cache_key)
            if cached is not None:
                logger.info(f"Offline - using cached planning data for {cache_key}")
                return cached
            raise make_error(
                ErrorKind.OFFLINE, "Device is offline and nothing is cached"
            )

        constraints_task = asyncio.create_task(
            self._constraints.fetch_constraints(lat, lng)
        )
        try:
            applications = await self._planit.fetch_applications(
                lat,
                lng,
                radius_m / 1000,
                from_date=from_date,
                to_date=to_date,
            )
        except BaseException as e:
            constraints_task.cancel()
            logger.error(f"Failed to fetch from PlanIt API: {e}")
            raise
        constraints = await constraints_task

        authority_name = applications[0].authority if applications else None
        result = PlanningResult(
            applications=applications,
            local_authority=calculate_local_authority_stats(
                applications, authority_name
            ),
            constraints=constraints,
        )

        if not date_filtered:
            self._schedule_cache_write(cache_key, result)

        return result

    async def _read_cache(self, key: str) -> PlanningResult | None:
        pending = self._pending_writes.get(key)
        if pending is not None:
            # Let an in-flight write for this key land first
            await asyncio.wait([pending])

        payload = await self._cache.get(key)
        if payload is None:
            return None
        try:
            return PlanningResult.model_validate(payload)
        except ValidationError as e:
            logger.warning(f"Discarding unreadable cache entry {key}: {e}")
            await self._cache.delete(key)
            return None

    def _schedule_cache_write(self, key: str, result: PlanningResult) -> None:
        """Write to the cache in a detached task, tracked per key."""
        task = asyncio.create_task(
            self._cache.set(key, result.model_dump(mode="json"))
        )
        self._pending_writes[key] = task
        task.add_done_callback(lambda t: self._on_cache_write_done(key, t))

    def _on_cache_write_done(self, key: str, task: asyncio.Task[None]) -> None:
        if self._pending_writes.get(key) is task:
            del self._pending_writes[key]
        if task.cancelled():
            return
        error = task.exception()
        if error is not None:
            logger.warning(f"Cache write failed: {error}")

    async def flush(self) -> None:
        """Wait for outstanding cache writes."""
        if self._pending_writes:
            await asyncio.gather(
                *list(self._pending_writes.values()), return_exceptions=True
            )

    async def check_health(self) -> bool:
        """Lightweight, no-retry probe of the PlanIt API."""
        return await self._planit.check_health()

    async def clear_cache(self) -> int:
        return await self._cache.clear()

    async def sweep_cache(self) -> int:
        return await self._cache.sweep_expired()

    async def cache_stats(self) -> CacheStats:
        return await self._cache.stats()

    async def close(self) -> None:
        """Flush pending writes and release HTTP and database resources."""
        await self.flush()
        await self._executor.close()
        await self._cache.close()
        logger.debug("PlanningDataService closed")

    async def __aenter__(self) -> "PlanningDataService":
        """Async context manager entry."""
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        """Async context manager exit."""
        await self.close()
