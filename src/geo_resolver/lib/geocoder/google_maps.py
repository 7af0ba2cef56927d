"""Google Maps Geocoding API provider.

Uses the Google Maps Geocoding API
(https://developers.google.com/maps/documentation/geocoding/)
for address-to-coordinate resolution. Requires an API key.
"""

import httpx
from loguru import logger

from geo_resolver.lib.geocoder.base import (
    AddressComponents,
    BaseGeocoder,
    GeocodingProviderError,
    GoogleExtra,
    ProviderName,
    RawCandidate,
)
from geo_resolver.lib.geocoder.scoring import google_native_confidence

GOOGLE_API_URL = "https://maps.googleapis.com/maps/api/geocode/json"
DEFAULT_TIMEOUT = 10.0

# Google address_components type → AddressComponents field
_COMPONENT_TYPES: dict[str, str] = {
    "street_number": "street_number",
    "route": "street_name",
    "locality": "city",
    "administrative_area_level_1": "region",
    "postal_code": "postal_code",
    "country": "country",
}


class GoogleMapsGeocoder(BaseGeocoder):
    """Google Maps geocoder provider."""

    def __init__(
        self,
        api_key: str,
        timeout: float = DEFAULT_TIMEOUT,
        region: str = "us",
    ) -> None:
        self._api_key = api_key
        self._timeout = timeout
        self._region = region

    @property
    def provider_name(self) -> ProviderName:
        return ProviderName.GOOGLE

    @property
    def requires_api_key(self) -> bool:
        return True

    @property
    def is_configured(self) -> bool:
        return bool(self._api_key)

    async def geocode(self, address: str) -> list[RawCandidate]:
        """Geocode an address using the Google Maps API.

        Args:
            address: Freeform address string.

        Returns:
            Candidates in Google's ranking order; empty if no match.

        Raises:
            GeocodingProviderError: On transport, service, or API-specific errors.
        """
        params = {
            "address": address,
            "key": self._api_key,
            "region": self._region,
        }

        try:
            async with httpx.AsyncClient(timeout=self._timeout) as client:
                response = await client.get(GOOGLE_API_URL, params=params)
                response.raise_for_status()

            data = response.json()
            return self._parse_response(data)

        except httpx.TimeoutException as e:
            logger.warning("Google Maps geocoder timeout for address (redacted)")
            raise GeocodingProviderError("google", "Geocoding request timed out") from e
        except httpx.HTTPStatusError as e:
            logger.warning(f"Google Maps geocoder HTTP error {e.response.status_code}")
            raise GeocodingProviderError(
                "google",
                f"Provider returned HTTP {e.response.status_code}",
                status_code=e.response.status_code,
            ) from e
        except httpx.ConnectError as e:
            logger.warning("Google Maps geocoder connection error")
            raise GeocodingProviderError("google", "Connection to geocoding provider failed") from e
        except GeocodingProviderError:
            raise
        except Exception as e:
            logger.exception("Google Maps geocoder unexpected error")
            raise GeocodingProviderError("google", f"Unexpected error: {e}") from e

    def _parse_response(self, data: dict) -> list[RawCandidate]:
        """Parse Google Maps API response into candidates.

        Args:
            data: Raw JSON response from Google Maps API.

        Returns:
            One RawCandidate per result; empty on ZERO_RESULTS.

        Raises:
            GeocodingProviderError: On API-specific error statuses.
        """
        api_status = data.get("status", "UNKNOWN")

        if api_status == "ZERO_RESULTS":
            return []

        if api_status in ("REQUEST_DENIED", "OVER_QUERY_LIMIT", "OVER_DAILY_LIMIT", "INVALID_REQUEST"):
            msg = data.get("error_message", api_status)
            raise GeocodingProviderError("google", f"API error: {msg}")

        if api_status != "OK":
            raise GeocodingProviderError("google", f"Unexpected API status: {api_status}")

        candidates: list[RawCandidate] = []
        for result in data.get("results", []):
            try:
                location = result["geometry"]["location"]
                lat = float(location["lat"])
                lng = float(location["lng"])
            except (KeyError, ValueError, TypeError) as e:
                logger.warning(f"Failed to parse Google Maps response: {e}")
                raise GeocodingProviderError("google", f"Failed to parse response: {e}") from e

            location_type = result.get("geometry", {}).get("location_type")
            partial_match = bool(result.get("partial_match", False))
            candidates.append(
                RawCandidate(
                    latitude=lat,
                    longitude=lng,
                    extra=GoogleExtra(
                        place_id=result.get("place_id"),
                        location_type=location_type,
                        native_confidence=google_native_confidence(location_type, partial_match=partial_match),
                        partial_match=partial_match,
                    ),
                    components=self._parse_components(result.get("address_components", [])),
                    formatted_address=result.get("formatted_address"),
                )
            )
        return candidates

    @staticmethod
    def _parse_components(address_components: list[dict]) -> AddressComponents:
        """Map Google ``address_components`` onto AddressComponents.

        Regions use the short name (state code); everything else the long name.
        """
        values: dict[str, str] = {}
        for component in address_components:
            for component_type in component.get("types", []):
                field_name = _COMPONENT_TYPES.get(component_type)
                if field_name is None or field_name in values:
                    continue
                key = "short_name" if field_name == "region" else "long_name"
                values[field_name] = component.get(key) or component.get("long_name")
        return AddressComponents(**values)
