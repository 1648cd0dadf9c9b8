"""
Database model definitions
Uses SQLAlchemy 2.0+ declarative mapping
"""

from datetime import datetime

from sqlalchemy import DateTime, Float, String, Text
from sqlalchemy.ext.asyncio import AsyncAttrs
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(AsyncAttrs, DeclarativeBase):
    """Base class for all models"""

    pass


class PlanningCacheDB(Base):
    """Cached planning query results, keyed by location fingerprint"""

    __tablename__ = "planning_cache"

    key: Mapped[str] = mapped_column(String(255), primary_key=True)
    payload_json: Mapped[str] = mapped_column(Text, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.now, nullable=False, index=True
    )
    ttl_seconds: Mapped[float] = mapped_column(Float, nullable=False)

    def __repr__(self) -> str:
        return f"<PlanningCache(key={self.key}, created_at={self.created_at})>"
