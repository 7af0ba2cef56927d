"""LocationCache model — one resolved location per normalized address, with usage counters."""

from datetime import datetime

from sqlalchemy import JSON, DateTime, Double, Index, Integer, String, Text, UniqueConstraint
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column

from geo_resolver.models.base import Base, TimestampMixin, UUIDMixin

_JSON = JSON().with_variant(JSONB(), "postgresql")


class LocationCache(Base, UUIDMixin, TimestampMixin):
    """Cached geocoding result keyed by normalized address."""

    __tablename__ = "location_cache"

    address: Mapped[str] = mapped_column(Text, nullable=False)
    normalized_address: Mapped[str] = mapped_column(Text, nullable=False)
    latitude: Mapped[float] = mapped_column(Double, nullable=False)
    longitude: Mapped[float] = mapped_column(Double, nullable=False)
    confidence: Mapped[float] = mapped_column(Double, nullable=False)
    provider: Mapped[str] = mapped_column(String(50), nullable=False)
    components: Mapped[dict | None] = mapped_column(_JSON, nullable=True)
    metadata_: Mapped[dict | None] = mapped_column("metadata", _JSON, nullable=True)
    hit_count: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    last_used: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    __table_args__ = (
        UniqueConstraint("normalized_address", name="uq_location_cache_normalized"),
        Index("ix_location_cache_cleanup", "last_used", "hit_count"),
    )
