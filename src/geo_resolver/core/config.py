"""Application configuration via Pydantic Settings.

All configuration is loaded from environment variables following 12-factor principles.
"""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Database
    database_url: str = Field(
        description="Async SQLAlchemy connection string for the location cache",
    )
    database_echo: bool = Field(
        default=False,
        description="Echo SQL statements to the log",
    )

    # Geocoding: general
    geocoder_fallback_order: str = Field(
        default="google,opencage,nominatim",
        description="Comma-separated provider fallback order",
    )
    geocoder_provider_timeout: float = Field(
        default=10.0,
        description="Upper bound in seconds for a single provider call",
        gt=0,
    )
    geocoder_batch_size: int = Field(
        default=10,
        description="Addresses resolved concurrently per batch chunk",
        gt=0,
    )
    geocoder_batch_delay: float = Field(
        default=1.0,
        description="Pause in seconds between batch chunks",
        ge=0,
    )

    # Geocoding: cache
    geocoder_cache_enabled: bool = Field(
        default=True,
        description="Read and write the location cache",
    )
    geocoder_cache_max_age_days: int = Field(
        default=90,
        description="Entries unused for longer than this are eligible for cleanup",
        gt=0,
    )
    geocoder_cache_min_hit_count: int = Field(
        default=10,
        description="Entries with at least this many hits are never cleaned up",
        gt=0,
    )

    # Geocoding: Google Maps
    geocoder_google_enabled: bool = Field(
        default=True,
        description="Enable Google Maps geocoder (also requires an API key)",
    )
    geocoder_google_api_key: str | None = Field(
        default=None,
        description="Google Maps Geocoding API key",
    )
    geocoder_google_timeout: float = Field(
        default=10.0,
        description="Google Maps request timeout in seconds",
        gt=0,
    )
    geocoder_google_region: str = Field(
        default="us",
        description="Google Maps region bias (ccTLD)",
    )

    # Geocoding: OpenCage
    geocoder_opencage_enabled: bool = Field(
        default=True,
        description="Enable OpenCage geocoder (also requires an API key)",
    )
    geocoder_opencage_api_key: str | None = Field(
        default=None,
        description="OpenCage Geocoding API key",
    )
    geocoder_opencage_timeout: float = Field(
        default=10.0,
        description="OpenCage request timeout in seconds",
        gt=0,
    )

    # Geocoding: Nominatim (OpenStreetMap)
    geocoder_nominatim_enabled: bool = Field(
        default=True,
        description="Enable Nominatim (OpenStreetMap) geocoder",
    )
    geocoder_nominatim_base_url: str = Field(
        default="https://nominatim.openstreetmap.org",
        description="Nominatim base URL (self-hostable)",
    )
    geocoder_nominatim_email: str = Field(
        default="",
        description="Email for Nominatim usage policy compliance",
    )
    geocoder_nominatim_timeout: float = Field(
        default=10.0,
        description="Nominatim request timeout in seconds",
        gt=0,
    )
    geocoder_nominatim_user_agent: str = Field(
        default="geo-resolver/0.1",
        description="User-Agent header sent to Nominatim",
    )

    @property
    def geocoder_fallback_order_list(self) -> list[str]:
        """Parse fallback order string into a list of provider names.

        Returns:
            List of provider names in fallback order.
        """
        if not self.geocoder_fallback_order.strip():
            return []
        return [p.strip().lower() for p in self.geocoder_fallback_order.split(",") if p.strip()]

    # Logging
    log_level: str = Field(
        default="INFO",
        description="Logging level",
    )
    log_dir: str | None = Field(
        default=None,
        description="Directory for log files (enables file logging with 24h rotation when set)",
    )
    log_json: bool = Field(
        default=False,
        description="Emit all console logs as JSON",
    )

    # API
    api_v1_prefix: str = Field(
        default="/api/v1",
        description="URL prefix for version 1 API routes",
    )


def get_settings() -> Settings:
    """Create and return application settings."""
    return Settings()  # type: ignore[call-arg]
