"""OpenCage Geocoding API provider.

Uses the OpenCage forward geocoding API (https://opencagedata.com/api).
Requires an API key. OpenCage grades each result with a 0-10 ``confidence``
describing the size of the matched bounding box (10 = under 0.25 km).
"""

import httpx
from loguru import logger

from geo_resolver.lib.geocoder.base import (
    AddressComponents,
    BaseGeocoder,
    GeocodingProviderError,
    OpenCageExtra,
    ProviderName,
    RawCandidate,
)

OPENCAGE_API_URL = "https://api.opencagedata.com/geocode/v1/json"
DEFAULT_TIMEOUT = 10.0
DEFAULT_LIMIT = 5

# Status codes OpenCage reports in the body alongside the HTTP status
_QUOTA_STATUS_CODES = {402, 403, 429}


class OpenCageGeocoder(BaseGeocoder):
    """OpenCage geocoder provider."""

    def __init__(
        self,
        api_key: str,
        timeout: float = DEFAULT_TIMEOUT,
    ) -> None:
        self._api_key = api_key
        self._timeout = timeout

    @property
    def provider_name(self) -> ProviderName:
        return ProviderName.OPENCAGE

    @property
    def requires_api_key(self) -> bool:
        return True

    @property
    def is_configured(self) -> bool:
        return bool(self._api_key)

    async def geocode(self, address: str) -> list[RawCandidate]:
        """Geocode an address using the OpenCage API.

        Args:
            address: Freeform address string.

        Returns:
            Candidates in OpenCage's ranking order; empty if no match.

        Raises:
            GeocodingProviderError: On transport, quota, or service errors.
        """
        params: dict[str, str | int] = {
            "q": address,
            "key": self._api_key,
            "limit": DEFAULT_LIMIT,
            "no_annotations": 1,
        }

        try:
            async with httpx.AsyncClient(timeout=self._timeout) as client:
                response = await client.get(OPENCAGE_API_URL, params=params)
                response.raise_for_status()

            data = response.json()
            return self._parse_response(data)

        except httpx.TimeoutException as e:
            logger.warning("OpenCage geocoder timeout for address (redacted)")
            raise GeocodingProviderError("opencage", "Geocoding request timed out") from e
        except httpx.HTTPStatusError as e:
            status_code = e.response.status_code
            if status_code in _QUOTA_STATUS_CODES:
                logger.warning(f"OpenCage geocoder quota or key rejected (HTTP {status_code})")
            else:
                logger.warning(f"OpenCage geocoder HTTP error {status_code}")
            raise GeocodingProviderError(
                "opencage",
                f"Provider returned HTTP {status_code}",
                status_code=status_code,
            ) from e
        except httpx.ConnectError as e:
            logger.warning("OpenCage geocoder connection error")
            raise GeocodingProviderError("opencage", "Connection to geocoding provider failed") from e
        except GeocodingProviderError:
            raise
        except Exception as e:
            logger.exception("OpenCage geocoder unexpected error")
            raise GeocodingProviderError("opencage", f"Unexpected error: {e}") from e

    def _parse_response(self, data: dict) -> list[RawCandidate]:
        """Parse an OpenCage response into candidates.

        Args:
            data: Raw JSON response from OpenCage.

        Returns:
            One RawCandidate per result, in response order.
        """
        status = data.get("status", {})
        code = status.get("code", 200)
        if code != 200:  # noqa: PLR2004
            raise GeocodingProviderError("opencage", f"API error: {status.get('message', code)}", status_code=code)

        candidates: list[RawCandidate] = []
        for result in data.get("results", []):
            try:
                geometry = result["geometry"]
                lat = float(geometry["lat"])
                lng = float(geometry["lng"])
            except (KeyError, ValueError, TypeError) as e:
                logger.warning(f"Failed to parse OpenCage response: {e}")
                raise GeocodingProviderError("opencage", f"Failed to parse response: {e}") from e

            candidates.append(
                RawCandidate(
                    latitude=lat,
                    longitude=lng,
                    extra=OpenCageExtra(confidence=int(result.get("confidence") or 0)),
                    components=self._parse_components(result.get("components") or {}),
                    formatted_address=result.get("formatted"),
                )
            )
        return candidates

    @staticmethod
    def _parse_components(components: dict) -> AddressComponents:
        """Map OpenCage ``components`` onto AddressComponents."""
        return AddressComponents(
            street_number=components.get("house_number"),
            street_name=components.get("road"),
            city=components.get("city") or components.get("town") or components.get("village"),
            region=components.get("state_code") or components.get("state"),
            postal_code=components.get("postcode"),
            country=components.get("country"),
        )
