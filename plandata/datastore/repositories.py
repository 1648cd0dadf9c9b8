"""
Repository layer - wraps data access for the planning cache
"""

import json
from datetime import datetime
from typing import Any

from loguru import logger
from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from plandata.datastore.models import PlanningCacheDB


class PlanningCacheRepository:
    """Planning result cache repository"""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get(self, key: str) -> PlanningCacheDB | None:
        """Return the raw cache row for *key*, expired or not."""
        result = await self.session.execute(
            select(PlanningCacheDB).where(PlanningCacheDB.key == key)
        )
        return result.scalar_one_or_none()

    async def set(
        self,
        key: str,
        payload: dict[str, Any],
        created_at: datetime,
        ttl_seconds: float,
    ) -> None:
        """Insert or replace the entry for *key*."""
        payload_json = json.dumps(payload, ensure_ascii=False)

        cached = await self.get(key)
        if cached:
            cached.payload_json = payload_json
            cached.created_at = created_at
            cached.ttl_seconds = ttl_seconds
            logger.debug(f"Updated cache entry: {key}")
        else:
            self.session.add(
                PlanningCacheDB(
                    key=key,
                    payload_json=payload_json,
                    created_at=created_at,
                    ttl_seconds=ttl_seconds,
                )
            )
            logger.debug(f"Created cache entry: {key}")

    async def delete(self, key: str) -> bool:
        result = await self.session.execute(
            delete(PlanningCacheDB).where(PlanningCacheDB.key == key)
        )
        return result.rowcount > 0

    async def list_by_age(self) -> list[PlanningCacheDB]:
        """All entries, oldest write first."""
        result = await self.session.execute(
            select(PlanningCacheDB).order_by(PlanningCacheDB.created_at)
        )
        return list(result.scalars().all())

    async def delete_keys(self, keys: list[str]) -> int:
        if not keys:
            return 0
        result = await self.session.execute(
            delete(PlanningCacheDB).where(PlanningCacheDB.key.in_(keys))
        )
        return result.rowcount

    async def clear(self) -> int:
        result = await self.session.execute(delete(PlanningCacheDB))
        return result.rowcount

    async def get_cache_stats(self) -> tuple[int, datetime | None]:
        """Return (entry count, oldest created_at)."""
        result = await self.session.execute(
            select(func.count(PlanningCacheDB.key), func.min(PlanningCacheDB.created_at))
        )
        count, oldest = result.one()
        return count or 0, oldest
