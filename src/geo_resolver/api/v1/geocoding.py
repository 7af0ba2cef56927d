"""Geocoding API endpoints."""

from fastapi import APIRouter, Depends, HTTPException, Query, status
from loguru import logger

from geo_resolver.core.config import Settings, get_settings
from geo_resolver.core.dependencies import get_geocoding_service
from geo_resolver.lib.geocoder import CacheStoreError, GeocodingError, GeocodingErrorCode
from geo_resolver.schemas.geocoding import (
    BatchGeocodeRequest,
    BatchGeocodeResponse,
    CacheCleanupRequest,
    CacheCleanupResponse,
    CacheStatsResponse,
    GeocodeErrorResponse,
    GeocodeResponse,
    ProviderCheckResponse,
)
from geo_resolver.services.geocoding_service import DEFAULT_TEST_ADDRESS, GeocodingService

geocoding_router = APIRouter(prefix="/geocoding", tags=["geocoding"])


@geocoding_router.get(
    "/geocode",
    response_model=GeocodeResponse,
)
async def geocode_address(
    address: str = Query(  # noqa: B008
        ...,
        min_length=1,
        max_length=500,
        description="Freeform address to geocode (1-500 characters)",
    ),
    service: GeocodingService = Depends(get_geocoding_service),  # noqa: B008
) -> GeocodeResponse:
    """Geocode a single freeform address to geographic coordinates."""
    try:
        result = await service.geocode(address)
    except GeocodingError as e:
        if e.code == GeocodingErrorCode.INVALID_ADDRESS:
            status_code = status.HTTP_422_UNPROCESSABLE_ENTITY
        else:
            status_code = status.HTTP_404_NOT_FOUND
        raise HTTPException(
            status_code=status_code,
            detail=GeocodeErrorResponse.from_error(e).model_dump(),
        ) from e

    return GeocodeResponse.from_result(result)


@geocoding_router.post(
    "/batch",
    response_model=BatchGeocodeResponse,
)
async def batch_geocode_addresses(
    request: BatchGeocodeRequest,
    service: GeocodingService = Depends(get_geocoding_service),  # noqa: B008
    settings: Settings = Depends(get_settings),  # noqa: B008
) -> BatchGeocodeResponse:
    """Geocode many addresses; per-address failures are reported inline."""
    batch_size = request.batch_size or settings.geocoder_batch_size
    try:
        batch = await service.batch_geocode(request.addresses, batch_size=batch_size)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e)) from e
    return BatchGeocodeResponse.from_batch(batch)


@geocoding_router.post(
    "/cache/cleanup",
    response_model=CacheCleanupResponse,
)
async def cleanup_cache(
    request: CacheCleanupRequest,
    service: GeocodingService = Depends(get_geocoding_service),  # noqa: B008
) -> CacheCleanupResponse:
    """Evict cache entries that are both stale and rarely used."""
    try:
        deleted = await service.cleanup_cache(request.max_age_days, request.min_hit_count_to_keep)
    except CacheStoreError as e:
        logger.error(f"Cache cleanup failed: {e}")
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Location cache is temporarily unavailable.",
        ) from e
    return CacheCleanupResponse(deleted=deleted)


@geocoding_router.get(
    "/cache/stats",
    response_model=CacheStatsResponse,
)
async def cache_stats(
    service: GeocodingService = Depends(get_geocoding_service),  # noqa: B008
) -> CacheStatsResponse:
    """Per-provider location cache statistics."""
    try:
        stats = await service.cache_stats()
    except CacheStoreError as e:
        logger.error(f"Cache stats query failed: {e}")
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Location cache is temporarily unavailable.",
        ) from e
    return CacheStatsResponse.from_stats(stats)


@geocoding_router.get(
    "/providers/test",
    response_model=list[ProviderCheckResponse],
)
async def test_providers(
    address: str = Query(  # noqa: B008
        DEFAULT_TEST_ADDRESS,
        min_length=1,
        max_length=500,
        description="Address used to exercise each provider",
    ),
    service: GeocodingService = Depends(get_geocoding_service),  # noqa: B008
) -> list[ProviderCheckResponse]:
    """Call each configured provider directly and report its outcome."""
    checks = await service.test_providers(address)
    return [ProviderCheckResponse.from_check(check) for check in checks.values()]
