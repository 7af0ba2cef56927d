"""Pydantic v2 schemas for the geocoding API."""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field

from geo_resolver.lib.geocoder import CacheProviderStats, GeocodeResult, GeocodingError
from geo_resolver.services.geocoding_service import BatchGeocodeResult, ProviderCheck

MAX_BATCH_ADDRESSES = 1000
MAX_BATCH_SIZE = 100


class AddressComponentsResponse(BaseModel):
    """Structured address breakdown reported by the provider."""

    model_config = {"from_attributes": True}

    street_number: str | None = None
    street_name: str | None = None
    city: str | None = None
    region: str | None = None
    postal_code: str | None = None
    country: str | None = None


class GeocodeResponse(BaseModel):
    """A resolved location."""

    latitude: float = Field(..., ge=-90, le=90)
    longitude: float = Field(..., ge=-180, le=180)
    confidence: float = Field(..., ge=0, le=1)
    provider: str
    components: AddressComponentsResponse
    metadata: dict[str, Any] = Field(default_factory=dict)
    from_cache: bool = False

    @classmethod
    def from_result(cls, result: GeocodeResult) -> "GeocodeResponse":
        return cls(
            latitude=result.latitude,
            longitude=result.longitude,
            confidence=result.confidence,
            provider=str(result.provider),
            components=AddressComponentsResponse.model_validate(result.components),
            metadata=result.metadata,
            from_cache=result.from_cache is True,
        )


class ProviderFailureResponse(BaseModel):
    """One rejected provider attempt."""

    provider: str
    reason: str
    detail: str = ""


class GeocodeErrorResponse(BaseModel):
    """Why an address could not be resolved."""

    code: str
    message: str
    retryable: bool = False
    failures: list[ProviderFailureResponse] = Field(default_factory=list)

    @classmethod
    def from_error(cls, error: GeocodingError) -> "GeocodeErrorResponse":
        return cls(
            code=error.code.value,
            message=error.message,
            retryable=error.retryable,
            failures=[
                ProviderFailureResponse(provider=f.provider, reason=f.reason.value, detail=f.detail)
                for f in error.failures
            ],
        )


class BatchGeocodeRequest(BaseModel):
    """Request to geocode many addresses at once."""

    addresses: list[str] = Field(..., min_length=1, max_length=MAX_BATCH_ADDRESSES)
    batch_size: int | None = Field(default=None, ge=1, le=MAX_BATCH_SIZE)


class BatchItemResponse(BaseModel):
    """Outcome for one address in a batch."""

    address: str
    success: bool
    result: GeocodeResponse | None = None
    error: GeocodeErrorResponse | None = None


class BatchSummaryResponse(BaseModel):
    """Counts for a batch run."""

    total: int
    successful: int
    failed: int
    cached: int


class BatchGeocodeResponse(BaseModel):
    """Batch outcomes in input order plus a summary."""

    results: list[BatchItemResponse]
    summary: BatchSummaryResponse

    @classmethod
    def from_batch(cls, batch: BatchGeocodeResult) -> "BatchGeocodeResponse":
        items: list[BatchItemResponse] = []
        for address, outcome in batch.results.items():
            if isinstance(outcome, GeocodingError):
                items.append(
                    BatchItemResponse(address=address, success=False, error=GeocodeErrorResponse.from_error(outcome))
                )
            else:
                items.append(BatchItemResponse(address=address, success=True, result=GeocodeResponse.from_result(outcome)))

        summary = batch.summary
        return cls(
            results=items,
            summary=BatchSummaryResponse(
                total=summary.total,
                successful=summary.successful,
                failed=summary.failed,
                cached=summary.cached,
            ),
        )


class CacheCleanupRequest(BaseModel):
    """Eviction thresholds for a cache cleanup run."""

    max_age_days: int = Field(default=90, gt=0)
    min_hit_count_to_keep: int = Field(default=10, gt=0)


class CacheCleanupResponse(BaseModel):
    """Result of a cache cleanup run."""

    deleted: int


class CacheProviderStatsResponse(BaseModel):
    """Per-provider cache statistics."""

    model_config = {"from_attributes": True}

    provider: str
    cached_count: int
    total_hits: int
    oldest_entry: datetime | None = None
    newest_entry: datetime | None = None


class CacheStatsResponse(BaseModel):
    """Response for geocoding cache statistics."""

    providers: list[CacheProviderStatsResponse]

    @classmethod
    def from_stats(cls, stats: list[CacheProviderStats]) -> "CacheStatsResponse":
        return cls(providers=[CacheProviderStatsResponse.model_validate(s) for s in stats])


class ProviderCheckResponse(BaseModel):
    """Outcome of a direct provider check."""

    provider: str
    success: bool
    result: GeocodeResponse | None = None
    error: str | None = None

    @classmethod
    def from_check(cls, check: ProviderCheck) -> "ProviderCheckResponse":
        return cls(
            provider=check.provider,
            success=check.success,
            result=GeocodeResponse.from_result(check.result) if check.result is not None else None,
            error=check.error,
        )
