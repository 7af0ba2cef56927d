"""OpenStreetMap Nominatim geocoder provider.

Uses the Nominatim search API (https://nominatim.org/release-docs/develop/api/Search/)
for address-to-coordinate resolution. Free but rate-limited to 1 req/sec on the
public instance; no API key.
"""

import httpx
from loguru import logger

from geo_resolver.lib.geocoder.base import (
    AddressComponents,
    BaseGeocoder,
    GeocodingProviderError,
    NominatimExtra,
    ProviderName,
    RawCandidate,
)

NOMINATIM_BASE_URL = "https://nominatim.openstreetmap.org"
DEFAULT_TIMEOUT = 10.0
DEFAULT_USER_AGENT = "geo-resolver/0.1"
DEFAULT_LIMIT = 5


class NominatimGeocoder(BaseGeocoder):
    """OpenStreetMap Nominatim geocoder provider."""

    def __init__(
        self,
        timeout: float = DEFAULT_TIMEOUT,
        email: str = "",
        user_agent: str = DEFAULT_USER_AGENT,
        base_url: str = NOMINATIM_BASE_URL,
    ) -> None:
        self._timeout = timeout
        self._email = email
        self._user_agent = user_agent
        self._base_url = base_url.rstrip("/")

    @property
    def provider_name(self) -> ProviderName:
        return ProviderName.NOMINATIM

    async def geocode(self, address: str) -> list[RawCandidate]:
        """Geocode an address using the Nominatim API.

        Args:
            address: Freeform address string.

        Returns:
            Candidates in Nominatim's ranking order; empty if no match.

        Raises:
            GeocodingProviderError: On transport or service errors.
        """
        params: dict[str, str | int] = {
            "q": address,
            "format": "jsonv2",
            "limit": DEFAULT_LIMIT,
            "addressdetails": 1,
        }
        if self._email:
            params["email"] = self._email

        headers = {"User-Agent": self._user_agent}

        try:
            async with httpx.AsyncClient(timeout=self._timeout) as client:
                response = await client.get(f"{self._base_url}/search", params=params, headers=headers)
                response.raise_for_status()

            data = response.json()
            return self._parse_response(data)

        except httpx.TimeoutException as e:
            logger.warning("Nominatim geocoder timeout for address (redacted)")
            raise GeocodingProviderError("nominatim", "Geocoding request timed out") from e
        except httpx.HTTPStatusError as e:
            logger.warning(f"Nominatim geocoder HTTP error {e.response.status_code}")
            raise GeocodingProviderError(
                "nominatim",
                f"Provider returned HTTP {e.response.status_code}",
                status_code=e.response.status_code,
            ) from e
        except httpx.ConnectError as e:
            logger.warning("Nominatim geocoder connection error")
            raise GeocodingProviderError("nominatim", "Connection to geocoding provider failed") from e
        except GeocodingProviderError:
            raise
        except Exception as e:
            logger.exception("Nominatim geocoder unexpected error")
            raise GeocodingProviderError("nominatim", f"Unexpected error: {e}") from e

    def _parse_response(self, data: list[dict]) -> list[RawCandidate]:
        """Parse a Nominatim search response into candidates.

        Args:
            data: Raw JSON response (list of places) from Nominatim.

        Returns:
            One RawCandidate per place, in response order.
        """
        if not isinstance(data, list):
            raise GeocodingProviderError("nominatim", "Unexpected response shape")

        candidates: list[RawCandidate] = []
        for place in data:
            try:
                lat = float(place["lat"])
                lon = float(place["lon"])
            except (KeyError, ValueError, TypeError) as e:
                logger.warning(f"Failed to parse Nominatim response: {e}")
                raise GeocodingProviderError("nominatim", f"Failed to parse response: {e}") from e

            osm_id = place.get("osm_id")
            candidates.append(
                RawCandidate(
                    latitude=lat,
                    longitude=lon,
                    extra=NominatimExtra(
                        osm_id=int(osm_id) if osm_id is not None else None,
                        osm_type=place.get("osm_type"),
                        importance=float(place.get("importance") or 0.0),
                        place_rank=place.get("place_rank"),
                    ),
                    components=self._parse_components(place.get("address") or {}),
                    formatted_address=place.get("display_name"),
                )
            )
        return candidates

    @staticmethod
    def _parse_components(address: dict) -> AddressComponents:
        """Map Nominatim ``addressdetails`` onto AddressComponents."""
        return AddressComponents(
            street_number=address.get("house_number"),
            street_name=address.get("road"),
            city=address.get("city") or address.get("town") or address.get("village"),
            region=address.get("state"),
            postal_code=address.get("postcode"),
            country=address.get("country"),
        )
