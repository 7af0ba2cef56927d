"""Geocoder domain types and the abstract provider interface.

Providers return ``RawCandidate`` objects carrying a provider-tagged ``extra``
payload.  The service validates and scores the first candidate and turns it
into a ``GeocodeResult``.
"""

from abc import ABC, abstractmethod
from dataclasses import asdict, dataclass, field
from enum import StrEnum
from typing import Any


class ProviderName(StrEnum):
    """Tag identifying the provider that produced a result."""

    GOOGLE = "google"
    NOMINATIM = "nominatim"
    OPENCAGE = "opencage"


class GeocodingErrorCode(StrEnum):
    """Reason code carried by a GeocodingError."""

    ALL_PROVIDERS_FAILED = "all_providers_failed"
    INVALID_COORDINATES = "invalid_coordinates"
    EMPTY_RESULT = "empty_result"
    INVALID_ADDRESS = "invalid_address"
    UNKNOWN_ERROR = "unknown_error"


class ProviderFailureReason(StrEnum):
    """Why a single provider attempt was rejected."""

    PROVIDER_ERROR = "provider_error"
    TIMEOUT = "timeout"
    EMPTY_RESULT = "empty_result"
    INVALID_COORDINATES = "invalid_coordinates"


@dataclass
class AddressComponents:
    """Structured breakdown of a matched address. Every part is optional."""

    street_number: str | None = None
    street_name: str | None = None
    city: str | None = None
    region: str | None = None
    postal_code: str | None = None
    country: str | None = None

    def to_dict(self) -> dict[str, str | None]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> "AddressComponents":
        if not data:
            return cls()
        return cls(**{key: data.get(key) for key in cls.__dataclass_fields__})


@dataclass(frozen=True)
class GoogleExtra:
    """Google-specific candidate signals."""

    place_id: str | None
    location_type: str | None = None
    native_confidence: float = 0.5
    partial_match: bool = False

    provider = ProviderName.GOOGLE


@dataclass(frozen=True)
class NominatimExtra:
    """OpenStreetMap Nominatim candidate signals."""

    osm_id: int | None
    osm_type: str | None = None
    importance: float = 0.0
    place_rank: int | None = None

    provider = ProviderName.NOMINATIM


@dataclass(frozen=True)
class OpenCageExtra:
    """OpenCage candidate signals. ``confidence`` is OpenCage's 0-10 precision grade."""

    confidence: int = 0

    provider = ProviderName.OPENCAGE


ProviderExtra = GoogleExtra | NominatimExtra | OpenCageExtra


@dataclass
class RawCandidate:
    """Unvalidated candidate returned by a provider adapter."""

    latitude: float
    longitude: float
    extra: ProviderExtra
    components: AddressComponents = field(default_factory=AddressComponents)
    formatted_address: str | None = None

    @property
    def provider(self) -> ProviderName:
        return self.extra.provider

    def metadata(self) -> dict[str, Any]:
        """Provider-tagged extras as a JSON-serializable dict."""
        data: dict[str, Any] = {"provider": self.provider.value, **asdict(self.extra)}
        if self.formatted_address:
            data["formatted_address"] = self.formatted_address
        return data


@dataclass
class GeocodeResult:
    """Resolved location returned to callers.

    ``from_cache`` is ``True`` for cache hits and ``None`` for fresh resolutions.
    """

    latitude: float
    longitude: float
    normalized_address: str
    confidence: float
    provider: ProviderName
    components: AddressComponents = field(default_factory=AddressComponents)
    metadata: dict[str, Any] = field(default_factory=dict)
    from_cache: bool | None = None

    def __post_init__(self) -> None:
        if not (0 <= self.confidence <= 1):
            msg = f"confidence must be between 0 and 1, got {self.confidence}"
            raise ValueError(msg)


@dataclass(frozen=True)
class ProviderFailure:
    """One rejected provider attempt within a fallback walk."""

    provider: str
    reason: ProviderFailureReason
    detail: str = ""


class GeocodingError(Exception):
    """Raised when an address cannot be resolved.

    Args:
        code: Reason code.
        message: Human-readable error description.
        retryable: Whether retrying the same address later may succeed.
        failures: Per-provider failures, in the order providers were tried.
    """

    def __init__(
        self,
        code: GeocodingErrorCode,
        message: str,
        *,
        retryable: bool = False,
        failures: list[ProviderFailure] | None = None,
    ) -> None:
        self.code = code
        self.message = message
        self.retryable = retryable
        self.failures = failures or []
        super().__init__(f"{code.value}: {message}")


class GeocodingProviderError(Exception):
    """Raised when a geocoding provider experiences a transport or service error.

    Distinguishes provider failures (timeout, HTTP error, connection error)
    from a successful response with no match (which returns an empty list).

    Args:
        provider_name: Name of the failing provider.
        message: Human-readable error description.
        status_code: Optional HTTP status code from the provider.
    """

    def __init__(self, provider_name: str, message: str, status_code: int | None = None) -> None:
        self.provider_name = provider_name
        self.message = message
        self.status_code = status_code
        super().__init__(f"{provider_name}: {message}")


class BaseGeocoder(ABC):
    """Abstract geocoder interface. All providers must implement this."""

    @property
    @abstractmethod
    def provider_name(self) -> ProviderName:
        """Unique name identifying this geocoder provider."""

    @property
    def requires_api_key(self) -> bool:
        """Whether this provider requires an API key to function."""
        return False

    @property
    def is_configured(self) -> bool:
        """Whether this provider has all required configuration (e.g., API keys)."""
        return True

    @abstractmethod
    async def geocode(self, address: str) -> list[RawCandidate]:
        """Geocode a single address.

        Args:
            address: Freeform address string as supplied by the caller.

        Returns:
            Candidates in the provider's ranking order; empty when nothing matched.

        Raises:
            GeocodingProviderError: On transport or service errors.
        """
