"""Geocoding service: cache-first resolution with ordered provider fallback and batched geocoding."""

import asyncio
from collections.abc import Sequence
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta

from loguru import logger
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from geo_resolver.core.config import Settings
from geo_resolver.lib.geocoder import (
    BaseGeocoder,
    CacheEntry,
    CacheProviderStats,
    CacheStoreError,
    GeocodeResult,
    GeocodingError,
    GeocodingErrorCode,
    GeocodingProviderError,
    LocationCacheStore,
    ProviderFailure,
    ProviderFailureReason,
    RawCandidate,
    SqlLocationCacheStore,
    get_configured_providers,
    is_valid_coordinates,
    normalize_address,
    score_candidate,
)

DEFAULT_PROVIDER_TIMEOUT = 10.0
DEFAULT_BATCH_SIZE = 10
DEFAULT_MAX_AGE_DAYS = 90
DEFAULT_MIN_HIT_COUNT_TO_KEEP = 10
DEFAULT_TEST_ADDRESS = "1600 Amphitheatre Parkway, Mountain View, CA"


@dataclass
class BatchSummary:
    """Counts for a batch run. ``cached`` is the subset of ``successful`` served from cache."""

    total: int = 0
    successful: int = 0
    failed: int = 0
    cached: int = 0


@dataclass
class BatchGeocodeResult:
    """Per-address outcomes in input order, plus a summary."""

    results: dict[str, GeocodeResult | GeocodingError] = field(default_factory=dict)
    summary: BatchSummary = field(default_factory=BatchSummary)


@dataclass
class ProviderCheck:
    """Outcome of calling one provider directly with a test address."""

    provider: str
    success: bool
    result: GeocodeResult | None = None
    error: str | None = None


def _chunked(items: Sequence[str], size: int) -> list[Sequence[str]]:
    return [items[i : i + size] for i in range(0, len(items), size)]


class GeocodingService:
    """Resolve addresses to coordinates through a cache and an ordered provider chain.

    Args:
        cache_store: Backend for cached locations.
        providers: Providers in priority order; the first valid candidate wins.
        provider_timeout: Upper bound in seconds for each provider call.
        batch_delay: Pause in seconds between batch chunks.
        cache_enabled: When False, the cache is neither read nor written.
    """

    def __init__(
        self,
        cache_store: LocationCacheStore,
        providers: Sequence[BaseGeocoder],
        *,
        provider_timeout: float = DEFAULT_PROVIDER_TIMEOUT,
        batch_delay: float = 0.0,
        cache_enabled: bool = True,
    ) -> None:
        self._cache = cache_store
        self._providers = list(providers)
        self._provider_timeout = provider_timeout
        self._batch_delay = batch_delay
        self._cache_enabled = cache_enabled

    @property
    def providers(self) -> list[BaseGeocoder]:
        return list(self._providers)

    async def geocode(self, address: str) -> GeocodeResult:
        """Geocode a single freeform address.

        Checks the cache first; on a miss walks the providers in order and
        caches the first valid, scored candidate.

        Args:
            address: Raw freeform address from the caller.

        Returns:
            GeocodeResult; ``from_cache`` is True for cache hits.

        Raises:
            GeocodingError: INVALID_ADDRESS if nothing survives normalization,
                ALL_PROVIDERS_FAILED if no provider yields a valid candidate.
        """
        normalized = normalize_address(address)
        if not normalized:
            raise GeocodingError(GeocodingErrorCode.INVALID_ADDRESS, "Address is empty after normalization")

        cached = await self._cache_lookup(normalized)
        if cached is not None:
            await self._cache_touch(cached)
            logger.debug(f"Cache hit for address (provider={cached.provider}, hits={cached.hit_count + 1})")
            return cached.to_result()

        result = await self._resolve_with_providers(address, normalized)
        await self._cache_store(address, result)
        return result

    async def batch_geocode(self, addresses: Sequence[str], batch_size: int = DEFAULT_BATCH_SIZE) -> BatchGeocodeResult:
        """Geocode many addresses with bounded concurrency.

        Addresses are resolved in chunks of ``batch_size``; each chunk runs
        concurrently and completes before the next one starts.  A failure for
        one address is captured as a GeocodingError value and never aborts
        the rest of the batch.

        Args:
            addresses: Raw freeform addresses.
            batch_size: Maximum number of concurrent geocode calls.

        Returns:
            BatchGeocodeResult with results in input order.

        Raises:
            ValueError: If batch_size is less than 1.
        """
        if batch_size < 1:
            msg = f"batch_size must be at least 1, got {batch_size}"
            raise ValueError(msg)

        batch = BatchGeocodeResult(summary=BatchSummary(total=len(addresses)))
        chunks = _chunked(addresses, batch_size)

        for index, chunk in enumerate(chunks):
            outcomes = await asyncio.gather(*(self._geocode_isolated(address) for address in chunk))

            for address, outcome in zip(chunk, outcomes, strict=True):
                batch.results[address] = outcome
                if isinstance(outcome, GeocodingError):
                    batch.summary.failed += 1
                else:
                    batch.summary.successful += 1
                    if outcome.from_cache is True:
                        batch.summary.cached += 1

            if self._batch_delay > 0 and index < len(chunks) - 1:
                await asyncio.sleep(self._batch_delay)

        summary = batch.summary
        logger.bind(json_output=True).info(
            f"Batch geocoding completed: {summary.total} total, {summary.successful} succeeded, "
            f"{summary.failed} failed, {summary.cached} cache hits"
        )
        return batch

    async def cleanup_cache(
        self,
        max_age_days: int = DEFAULT_MAX_AGE_DAYS,
        min_hit_count_to_keep: int = DEFAULT_MIN_HIT_COUNT_TO_KEEP,
    ) -> int:
        """Evict cache entries that are both stale and rarely used.

        An entry is deleted only if it was last used more than ``max_age_days``
        ago and has fewer than ``min_hit_count_to_keep`` hits.

        Args:
            max_age_days: Staleness threshold in days.
            min_hit_count_to_keep: Entries with at least this many hits are kept.

        Returns:
            Number of deleted entries.

        Raises:
            CacheStoreError: If the store cannot perform the delete.
        """
        cutoff = datetime.now(UTC) - timedelta(days=max_age_days)
        deleted = await self._cache.delete_where(older_than=cutoff, hit_count_below=min_hit_count_to_keep)
        logger.bind(json_output=True).info(
            f"Cache cleanup removed {deleted} entries (max_age_days={max_age_days}, "
            f"min_hit_count_to_keep={min_hit_count_to_keep})"
        )
        return deleted

    async def cache_stats(self) -> list[CacheProviderStats]:
        """Per-provider cache statistics."""
        return await self._cache.stats()

    async def test_providers(self, address: str = DEFAULT_TEST_ADDRESS) -> dict[str, ProviderCheck]:
        """Call every configured provider directly with a test address.

        Bypasses the cache and the fallback chain so each provider is exercised.

        Args:
            address: Address to resolve.

        Returns:
            Mapping of provider name to its check outcome, in provider order.
        """
        checks: dict[str, ProviderCheck] = {}
        normalized = normalize_address(address)

        for provider in self._providers:
            name = str(provider.provider_name)
            result, failure = await self._try_provider(provider, address, normalized)
            if result is not None:
                checks[name] = ProviderCheck(provider=name, success=True, result=result)
            else:
                error = (failure.detail or failure.reason.value) if failure else "No valid results"
                checks[name] = ProviderCheck(provider=name, success=False, error=error)

        return checks

    async def _geocode_isolated(self, address: str) -> GeocodeResult | GeocodingError:
        """Run geocode() and return failures as values."""
        try:
            return await self.geocode(address)
        except GeocodingError as e:
            return e
        except Exception as e:
            logger.exception("Unexpected error while geocoding batch item")
            return GeocodingError(GeocodingErrorCode.UNKNOWN_ERROR, f"Geocoding error: {e}", retryable=True)

    async def _resolve_with_providers(self, address: str, normalized: str) -> GeocodeResult:
        """Walk providers in order and return the first valid, scored candidate."""
        failures: list[ProviderFailure] = []

        for provider in self._providers:
            result, failure = await self._try_provider(provider, address, normalized)
            if result is not None:
                return result
            if failure is not None:
                failures.append(failure)

        raise GeocodingError(
            GeocodingErrorCode.ALL_PROVIDERS_FAILED,
            "All geocoding providers failed",
            failures=failures,
        )

    async def _try_provider(
        self,
        provider: BaseGeocoder,
        address: str,
        normalized: str,
    ) -> tuple[GeocodeResult | None, ProviderFailure | None]:
        """Attempt one provider. Exactly one element of the returned pair is set."""
        name = str(provider.provider_name)

        try:
            candidates = await asyncio.wait_for(provider.geocode(address), timeout=self._provider_timeout)
        except TimeoutError:
            logger.warning(f"Geocoding provider {name} timed out after {self._provider_timeout}s")
            return None, ProviderFailure(name, ProviderFailureReason.TIMEOUT, "Provider call timed out")
        except GeocodingProviderError as e:
            logger.warning(f"Geocoding failed with provider {name}: {e.message}")
            return None, ProviderFailure(name, ProviderFailureReason.PROVIDER_ERROR, e.message)
        except Exception as e:
            logger.exception(f"Unexpected error from geocoding provider {name}")
            return None, ProviderFailure(name, ProviderFailureReason.PROVIDER_ERROR, str(e))

        if not candidates:
            logger.debug(f"Geocoding provider {name} returned no candidates")
            return None, ProviderFailure(name, ProviderFailureReason.EMPTY_RESULT, "No candidates returned")

        candidate = candidates[0]
        if not is_valid_coordinates(candidate.latitude, candidate.longitude):
            logger.warning(f"Geocoding provider {name} returned invalid coordinates")
            return None, ProviderFailure(
                name,
                ProviderFailureReason.INVALID_COORDINATES,
                f"Invalid coordinates ({candidate.latitude}, {candidate.longitude})",
            )

        return self._to_result(candidate, normalized), None

    @staticmethod
    def _to_result(candidate: RawCandidate, normalized: str) -> GeocodeResult:
        return GeocodeResult(
            latitude=float(candidate.latitude),
            longitude=float(candidate.longitude),
            normalized_address=normalized,
            confidence=score_candidate(candidate),
            provider=candidate.provider,
            components=candidate.components,
            metadata=candidate.metadata(),
        )

    async def _cache_lookup(self, normalized: str) -> CacheEntry | None:
        if not self._cache_enabled:
            return None
        try:
            return await self._cache.find_by_normalized_address(normalized)
        except CacheStoreError as e:
            logger.warning(f"Cache lookup failed, resolving fresh: {e}")
            return None

    async def _cache_touch(self, entry: CacheEntry) -> None:
        try:
            await self._cache.touch(entry)
        except CacheStoreError as e:
            logger.warning(f"Failed to record cache hit: {e}")

    async def _cache_store(self, address: str, result: GeocodeResult) -> None:
        if not self._cache_enabled:
            return
        try:
            await self._cache.create(CacheEntry.from_result(address, result))
        except CacheStoreError as e:
            logger.warning(f"Failed to cache geocoding result: {e}")


def build_geocoding_service(
    settings: Settings,
    session_factory: async_sessionmaker[AsyncSession],
) -> GeocodingService:
    """Wire a GeocodingService from settings and a session factory.

    Args:
        settings: Application settings (provider keys, timeouts, cache flags).
        session_factory: Factory for the cache store's database sessions.

    Returns:
        A GeocodingService backed by the SQL cache store and configured providers.
    """
    providers = get_configured_providers(settings)
    if not providers:
        logger.warning("No geocoding providers are enabled and configured")
    else:
        logger.debug(f"Geocoding providers in fallback order: {[str(p.provider_name) for p in providers]}")

    return GeocodingService(
        SqlLocationCacheStore(session_factory),
        providers,
        provider_timeout=settings.geocoder_provider_timeout,
        batch_delay=settings.geocoder_batch_delay,
        cache_enabled=settings.geocoder_cache_enabled,
    )
