"""Shared test fixtures: settings, in-memory SQLite engine, fake cache store, and stub providers."""

import asyncio
import uuid
from collections import defaultdict
from collections.abc import AsyncGenerator, Callable
from dataclasses import replace
from datetime import UTC, datetime

import pytest
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from geo_resolver.core.config import Settings
from geo_resolver.lib.geocoder import (
    BaseGeocoder,
    CacheEntry,
    CacheProviderStats,
    CacheStoreError,
    ProviderName,
    RawCandidate,
)
from geo_resolver.models import Base


@pytest.fixture
def settings() -> Settings:
    """Test application settings."""
    return Settings(
        _env_file=None,  # type: ignore[call-arg]
        database_url="sqlite+aiosqlite:///:memory:",
        geocoder_batch_delay=0.0,
    )


@pytest.fixture
async def async_engine() -> AsyncGenerator[AsyncEngine]:
    """Create an in-memory async SQLite engine for testing."""
    engine = create_async_engine("sqlite+aiosqlite:///:memory:", echo=False, poolclass=StaticPool)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


@pytest.fixture
def session_factory(async_engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Session factory bound to the in-memory engine."""
    return async_sessionmaker(async_engine, expire_on_commit=False)


class InMemoryLocationCacheStore:
    """LocationCacheStore kept in a dict, with switches to simulate an unavailable backend."""

    def __init__(self) -> None:
        self.entries: dict[str, CacheEntry] = {}
        self.fail_reads = False
        self.fail_writes = False
        self.create_calls = 0
        self.touch_calls = 0

    async def find_by_normalized_address(self, normalized_address: str) -> CacheEntry | None:
        if self.fail_reads:
            raise CacheStoreError("cache unavailable")
        entry = self.entries.get(normalized_address)
        return replace(entry) if entry is not None else None

    async def create(self, entry: CacheEntry) -> CacheEntry:
        self.create_calls += 1
        if self.fail_writes:
            raise CacheStoreError("cache unavailable")
        stored = replace(entry, id=entry.id or uuid.uuid4(), created_at=entry.created_at or datetime.now(UTC))
        self.entries[entry.normalized_address] = stored
        return replace(stored)

    async def touch(self, entry: CacheEntry) -> None:
        self.touch_calls += 1
        if self.fail_writes:
            raise CacheStoreError("cache unavailable")
        stored = self.entries.get(entry.normalized_address)
        if stored is not None:
            stored.hit_count += 1
            stored.last_used = datetime.now(UTC)

    async def delete_where(self, older_than: datetime, hit_count_below: int) -> int:
        doomed = [
            key
            for key, entry in self.entries.items()
            if entry.last_used < older_than and entry.hit_count < hit_count_below
        ]
        for key in doomed:
            del self.entries[key]
        return len(doomed)

    async def stats(self) -> list[CacheProviderStats]:
        grouped: dict[str, list[CacheEntry]] = defaultdict(list)
        for entry in self.entries.values():
            grouped[entry.provider].append(entry)
        return [
            CacheProviderStats(
                provider=provider,
                cached_count=len(entries),
                total_hits=sum(e.hit_count for e in entries),
                oldest_entry=min(e.created_at for e in entries if e.created_at),
                newest_entry=max(e.created_at for e in entries if e.created_at),
            )
            for provider, entries in sorted(grouped.items())
        ]


class StubGeocoder(BaseGeocoder):
    """Provider returning canned candidates (or raising) and recording every call.

    ``per_address`` outcomes take precedence over ``default``.  An outcome that
    is an exception instance is raised instead of returned.
    """

    def __init__(
        self,
        name: ProviderName,
        default: list[RawCandidate] | Exception | None = None,
        *,
        per_address: dict[str, list[RawCandidate] | Exception] | None = None,
        delay: float = 0.0,
    ) -> None:
        self._name = name
        self._default = default if default is not None else []
        self._per_address = per_address or {}
        self._delay = delay
        self.calls: list[str] = []
        self.in_flight = 0
        self.max_in_flight = 0

    @property
    def provider_name(self) -> ProviderName:
        return self._name

    async def geocode(self, address: str) -> list[RawCandidate]:
        self.calls.append(address)
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            if self._delay:
                await asyncio.sleep(self._delay)
            outcome = self._per_address.get(address, self._default)
            if isinstance(outcome, Exception):
                raise outcome
            return list(outcome)
        finally:
            self.in_flight -= 1


@pytest.fixture
def cache_store() -> InMemoryLocationCacheStore:
    """Fresh in-memory cache store per test."""
    return InMemoryLocationCacheStore()


@pytest.fixture
def make_geocoder() -> Callable[..., StubGeocoder]:
    """Factory for stub providers."""
    return StubGeocoder
