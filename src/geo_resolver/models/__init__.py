"""ORM model registry — import all models so metadata.create_all discovers them."""

from geo_resolver.models.base import Base
from geo_resolver.models.location_cache import LocationCache

__all__ = [
    "Base",
    "LocationCache",
]
