"""Geocoder library — provider adapters, normalization, validation, scoring and caching.

Public API:
    - normalize_address: Canonical cache key for a freeform address
    - is_valid_coordinates: Reject physically impossible lat/lng pairs
    - score_candidate: Provider-specific confidence on a shared [0, 1] scale
    - BaseGeocoder: Abstract provider interface
    - RawCandidate / GeocodeResult: Provider output and resolved result
    - GoogleExtra / NominatimExtra / OpenCageExtra: Provider-tagged extras
    - GeocodingError / GeocodingProviderError: Resolution and transport errors
    - GoogleMapsGeocoder / NominatimGeocoder / OpenCageGeocoder: Providers
    - LocationCacheStore / SqlLocationCacheStore: Cache store contract and implementation
    - get_geocoder: Provider factory/registry
    - get_configured_providers: Providers that are enabled and configured, in fallback order
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from geo_resolver.lib.geocoder.address import normalize_address
from geo_resolver.lib.geocoder.base import (
    AddressComponents,
    BaseGeocoder,
    GeocodeResult,
    GeocodingError,
    GeocodingErrorCode,
    GeocodingProviderError,
    GoogleExtra,
    NominatimExtra,
    OpenCageExtra,
    ProviderFailure,
    ProviderFailureReason,
    ProviderName,
    RawCandidate,
)
from geo_resolver.lib.geocoder.cache import (
    CacheEntry,
    CacheProviderStats,
    CacheStoreError,
    LocationCacheStore,
    SqlLocationCacheStore,
)
from geo_resolver.lib.geocoder.google_maps import GoogleMapsGeocoder
from geo_resolver.lib.geocoder.nominatim import NominatimGeocoder
from geo_resolver.lib.geocoder.opencage import OpenCageGeocoder
from geo_resolver.lib.geocoder.scoring import score_candidate
from geo_resolver.lib.geocoder.validation import is_valid_coordinates

if TYPE_CHECKING:
    from geo_resolver.core.config import Settings

# Provider registry: every known provider
_PROVIDERS: dict[str, type[BaseGeocoder]] = {
    ProviderName.GOOGLE: GoogleMapsGeocoder,
    ProviderName.NOMINATIM: NominatimGeocoder,
    ProviderName.OPENCAGE: OpenCageGeocoder,
}


def get_available_providers() -> list[str]:
    """Return the names of all registered geocoder providers.

    Returns:
        Sorted list of provider name strings.
    """
    return sorted(str(name) for name in _PROVIDERS)


def get_geocoder(provider: str, **kwargs: Any) -> BaseGeocoder:
    """Get a geocoder instance by provider name.

    Args:
        provider: Provider name (e.g., "nominatim").
        **kwargs: Arguments forwarded to the provider constructor
            (e.g., ``api_key="..."``, ``timeout=2.0``).

    Returns:
        An instance of the requested geocoder provider.

    Raises:
        ValueError: If the provider is not registered.
    """
    cls = _PROVIDERS.get(provider)
    if cls is None:
        msg = f"Unknown geocoder provider: {provider!r}. Available: {get_available_providers()}"
        raise ValueError(msg)
    return cls(**kwargs)


def get_configured_providers(settings: Settings) -> list[BaseGeocoder]:
    """Build the ordered provider list from settings.

    Keyed providers (Google, OpenCage) are included only when enabled and an
    API key is set; Nominatim only needs to be enabled.  Order follows
    ``geocoder_fallback_order``; unknown and duplicate names are skipped.

    Args:
        settings: Application settings.

    Returns:
        Configured BaseGeocoder instances, in fallback order.
    """
    provider_configs: dict[str, dict[str, Any]] = {
        ProviderName.GOOGLE: {
            "enabled": settings.geocoder_google_enabled and bool(settings.geocoder_google_api_key),
            "kwargs": {
                "api_key": settings.geocoder_google_api_key or "",
                "timeout": settings.geocoder_google_timeout,
                "region": settings.geocoder_google_region,
            },
        },
        ProviderName.OPENCAGE: {
            "enabled": settings.geocoder_opencage_enabled and bool(settings.geocoder_opencage_api_key),
            "kwargs": {
                "api_key": settings.geocoder_opencage_api_key or "",
                "timeout": settings.geocoder_opencage_timeout,
            },
        },
        ProviderName.NOMINATIM: {
            "enabled": settings.geocoder_nominatim_enabled,
            "kwargs": {
                "timeout": settings.geocoder_nominatim_timeout,
                "email": settings.geocoder_nominatim_email,
                "user_agent": settings.geocoder_nominatim_user_agent,
                "base_url": settings.geocoder_nominatim_base_url,
            },
        },
    }

    providers: list[BaseGeocoder] = []
    seen: set[str] = set()

    for name in settings.geocoder_fallback_order_list:
        if name in seen:
            continue
        seen.add(name)
        config = provider_configs.get(name)
        if config is None or not config["enabled"]:
            continue

        geocoder = get_geocoder(name, **config["kwargs"])
        if geocoder.is_configured:
            providers.append(geocoder)

    return providers


__all__ = [
    "AddressComponents",
    "BaseGeocoder",
    "CacheEntry",
    "CacheProviderStats",
    "CacheStoreError",
    "GeocodeResult",
    "GeocodingError",
    "GeocodingErrorCode",
    "GeocodingProviderError",
    "GoogleExtra",
    "GoogleMapsGeocoder",
    "LocationCacheStore",
    "NominatimExtra",
    "NominatimGeocoder",
    "OpenCageExtra",
    "OpenCageGeocoder",
    "ProviderFailure",
    "ProviderFailureReason",
    "ProviderName",
    "RawCandidate",
    "SqlLocationCacheStore",
    "get_available_providers",
    "get_configured_providers",
    "get_geocoder",
    "is_valid_coordinates",
    "normalize_address",
    "score_candidate",
]
