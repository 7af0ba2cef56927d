"""FastAPI dependency injection for the geocoding service."""

from typing import Annotated

from fastapi import Depends

from geo_resolver.core.config import Settings, get_settings
from geo_resolver.core.database import get_session_factory
from geo_resolver.services.geocoding_service import GeocodingService, build_geocoding_service


def get_geocoding_service(settings: Annotated[Settings, Depends(get_settings)]) -> GeocodingService:
    """Build a GeocodingService backed by the application's session factory.

    Args:
        settings: Application settings.

    Returns:
        A GeocodingService for the current request.
    """
    return build_geocoding_service(settings, get_session_factory())
