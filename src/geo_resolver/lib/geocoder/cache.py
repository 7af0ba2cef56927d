"""Location cache store — contract and SQLAlchemy implementation.

The service only talks to the ``LocationCacheStore`` protocol.  Entries cross
that boundary as detached ``CacheEntry`` dataclasses, never as ORM rows.
"""

import uuid
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any, Protocol

from sqlalchemy import delete, func, select, update
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from geo_resolver.lib.geocoder.base import AddressComponents, GeocodeResult, ProviderName
from geo_resolver.models.location_cache import LocationCache

# Drivers surface unreachable servers as raw OSError (e.g. ConnectionRefusedError).
_BACKEND_ERRORS = (SQLAlchemyError, OSError)

_UPSERT_INSERTS = {"postgresql": pg_insert, "sqlite": sqlite_insert}


class CacheStoreError(Exception):
    """Raised when the cache store cannot be read or written."""


@dataclass
class CacheEntry:
    """Persisted geocode result plus usage counters."""

    address: str
    normalized_address: str
    latitude: float
    longitude: float
    confidence: float
    provider: str
    components: dict[str, Any] = field(default_factory=dict)
    metadata: dict[str, Any] = field(default_factory=dict)
    hit_count: int = 1
    last_used: datetime = field(default_factory=lambda: datetime.now(UTC))
    id: uuid.UUID | None = None
    created_at: datetime | None = None

    @classmethod
    def from_result(cls, address: str, result: GeocodeResult, *, now: datetime | None = None) -> "CacheEntry":
        """Build a fresh entry (hit_count 1) for a newly resolved address."""
        return cls(
            address=address,
            normalized_address=result.normalized_address,
            latitude=result.latitude,
            longitude=result.longitude,
            confidence=result.confidence,
            provider=result.provider.value,
            components=result.components.to_dict(),
            metadata=dict(result.metadata),
            hit_count=1,
            last_used=now or datetime.now(UTC),
        )

    def to_result(self) -> GeocodeResult:
        """Map the stored entry back to a cache-hit GeocodeResult."""
        return GeocodeResult(
            latitude=self.latitude,
            longitude=self.longitude,
            normalized_address=self.normalized_address,
            confidence=self.confidence,
            provider=ProviderName(self.provider),
            components=AddressComponents.from_dict(self.components),
            metadata=dict(self.metadata),
            from_cache=True,
        )


@dataclass
class CacheProviderStats:
    """Aggregate cache usage for one provider."""

    provider: str
    cached_count: int
    total_hits: int
    oldest_entry: datetime | None
    newest_entry: datetime | None


class LocationCacheStore(Protocol):
    """Operations the geocoding service needs from a cache backend.

    Implementations raise ``CacheStoreError`` for any backend failure.
    """

    async def find_by_normalized_address(self, normalized_address: str) -> CacheEntry | None: ...

    async def create(self, entry: CacheEntry) -> CacheEntry: ...

    async def touch(self, entry: CacheEntry) -> None: ...

    async def delete_where(self, older_than: datetime, hit_count_below: int) -> int: ...

    async def stats(self) -> list[CacheProviderStats]: ...


def _to_entry(row: LocationCache) -> CacheEntry:
    return CacheEntry(
        id=row.id,
        address=row.address,
        normalized_address=row.normalized_address,
        latitude=row.latitude,
        longitude=row.longitude,
        confidence=row.confidence,
        provider=row.provider,
        components=row.components or {},
        metadata=row.metadata_ or {},
        hit_count=row.hit_count,
        last_used=row.last_used,
        created_at=row.created_at,
    )


class SqlLocationCacheStore:
    """LocationCacheStore backed by the ``location_cache`` table.

    Opens a short-lived session per operation so concurrent geocode calls
    never share a session.
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def find_by_normalized_address(self, normalized_address: str) -> CacheEntry | None:
        """Look up a cached entry.

        Args:
            normalized_address: Normalized address string (cache key).

        Returns:
            CacheEntry if found, None on cache miss.
        """
        try:
            async with self._session_factory() as session:
                result = await session.execute(
                    select(LocationCache).where(LocationCache.normalized_address == normalized_address)
                )
                row = result.scalar_one_or_none()
                return _to_entry(row) if row is not None else None
        except _BACKEND_ERRORS as e:
            raise CacheStoreError(f"Cache lookup failed: {e}") from e

    async def create(self, entry: CacheEntry) -> CacheEntry:
        """Upsert an entry keyed by its normalized address.

        INSERT ... ON CONFLICT (normalized_address) DO UPDATE, so concurrent
        misses for one address never collide and the last write wins.  The
        existing row keeps its id and created_at.

        Args:
            entry: Entry to persist.

        Returns:
            The stored entry with its id and timestamps.
        """
        columns = LocationCache.__table__.c
        fields = {
            columns.address: entry.address,
            columns.latitude: entry.latitude,
            columns.longitude: entry.longitude,
            columns.confidence: entry.confidence,
            columns.provider: entry.provider,
            columns.components: entry.components,
            columns["metadata"]: entry.metadata,
            columns.hit_count: entry.hit_count,
            columns.last_used: entry.last_used,
        }
        try:
            async with self._session_factory() as session:
                dialect = session.get_bind().dialect.name
                insert = _UPSERT_INSERTS.get(dialect)
                if insert is None:
                    raise CacheStoreError(f"Cache upsert is not supported on {dialect}")
                stmt = (
                    insert(LocationCache)
                    .values({columns.normalized_address: entry.normalized_address, **fields})
                    .on_conflict_do_update(
                        index_elements=[LocationCache.normalized_address],
                        set_={**fields, columns.updated_at: func.now()},
                    )
                    .returning(LocationCache)
                )
                result = await session.execute(stmt)
                row = result.scalar_one()
                stored = _to_entry(row)
                await session.commit()
                return stored
        except _BACKEND_ERRORS as e:
            raise CacheStoreError(f"Cache write failed: {e}") from e

    async def touch(self, entry: CacheEntry) -> None:
        """Record a cache hit: increment hit_count and refresh last_used.

        Args:
            entry: Entry previously returned by find_by_normalized_address.
        """
        try:
            async with self._session_factory() as session:
                await session.execute(
                    update(LocationCache)
                    .where(LocationCache.normalized_address == entry.normalized_address)
                    .values(hit_count=LocationCache.hit_count + 1, last_used=datetime.now(UTC))
                )
                await session.commit()
        except _BACKEND_ERRORS as e:
            raise CacheStoreError(f"Cache hit update failed: {e}") from e

    async def delete_where(self, older_than: datetime, hit_count_below: int) -> int:
        """Delete entries that are both stale and rarely used.

        Args:
            older_than: Entries last used before this instant are stale.
            hit_count_below: Entries with fewer hits are rarely used.

        Returns:
            Number of deleted entries.
        """
        try:
            async with self._session_factory() as session:
                result = await session.execute(
                    delete(LocationCache).where(
                        LocationCache.last_used < older_than,
                        LocationCache.hit_count < hit_count_below,
                    )
                )
                await session.commit()
                return result.rowcount or 0
        except _BACKEND_ERRORS as e:
            raise CacheStoreError(f"Cache cleanup failed: {e}") from e

    async def stats(self) -> list[CacheProviderStats]:
        """Per-provider entry counts, total hits and entry age range."""
        try:
            async with self._session_factory() as session:
                result = await session.execute(
                    select(
                        LocationCache.provider,
                        func.count(LocationCache.id).label("cached_count"),
                        func.coalesce(func.sum(LocationCache.hit_count), 0).label("total_hits"),
                        func.min(LocationCache.created_at).label("oldest_entry"),
                        func.max(LocationCache.created_at).label("newest_entry"),
                    )
                    .group_by(LocationCache.provider)
                    .order_by(LocationCache.provider)
                )
                return [
                    CacheProviderStats(
                        provider=row.provider,
                        cached_count=row.cached_count,
                        total_hits=row.total_hits,
                        oldest_entry=row.oldest_entry,
                        newest_entry=row.newest_entry,
                    )
                    for row in result.all()
                ]
        except _BACKEND_ERRORS as e:
            raise CacheStoreError(f"Cache stats query failed: {e}") from e
