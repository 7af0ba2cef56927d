"""Geocoding CLI commands for single and batch geocoding, cache maintenance, and provider checks."""

import asyncio
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from pathlib import Path

import typer

from geo_resolver.lib.geocoder import GeocodeResult, GeocodingError
from geo_resolver.services.geocoding_service import DEFAULT_TEST_ADDRESS, GeocodingService

geocode_app = typer.Typer()


@geocode_app.command("address")
def geocode_address(
    address: str = typer.Argument(..., help="Freeform address to geocode"),  # noqa: B008
) -> None:
    """Geocode a single address."""
    asyncio.run(_geocode_address(address))


@geocode_app.command("batch")
def batch_geocode(
    input_file: Path = typer.Argument(..., exists=True, dir_okay=False, help="File with one address per line"),  # noqa: B008
    batch_size: int | None = typer.Option(None, "--batch-size", min=1, help="Concurrent geocode calls per chunk"),
) -> None:
    """Geocode every address in a file."""
    addresses = [line.strip() for line in input_file.read_text(encoding="utf-8").splitlines() if line.strip()]
    if not addresses:
        typer.echo("No addresses found in input file.")
        raise typer.Exit(code=1)
    asyncio.run(_batch_geocode(addresses, batch_size))


@geocode_app.command("cleanup")
def cleanup_cache(
    max_age_days: int | None = typer.Option(None, "--max-age-days", min=1, help="Staleness threshold in days"),
    min_hit_count: int | None = typer.Option(None, "--min-hit-count", min=1, help="Keep entries with this many hits"),
) -> None:
    """Evict cache entries that are both stale and rarely used."""
    asyncio.run(_cleanup_cache(max_age_days, min_hit_count))


@geocode_app.command("stats")
def cache_stats() -> None:
    """Show per-provider cache statistics."""
    asyncio.run(_cache_stats())


@geocode_app.command("test-providers")
def test_providers(
    address: str = typer.Option(DEFAULT_TEST_ADDRESS, "--address", help="Address used for the check"),
) -> None:
    """Call each configured provider directly and report its outcome."""
    asyncio.run(_test_providers(address))


@asynccontextmanager
async def _geocoding_service() -> AsyncGenerator[GeocodingService]:
    """Initialize the database engine and yield a wired GeocodingService."""
    from geo_resolver.core.config import get_settings
    from geo_resolver.core.database import dispose_engine, get_session_factory, init_engine
    from geo_resolver.services.geocoding_service import build_geocoding_service

    settings = get_settings()
    init_engine(settings.database_url, echo=settings.database_echo)
    try:
        yield build_geocoding_service(settings, get_session_factory())
    finally:
        await dispose_engine()


def _echo_result(result: GeocodeResult) -> None:
    typer.echo(f"  Coordinates:  {result.latitude}, {result.longitude}")
    typer.echo(f"  Confidence:   {result.confidence:.2f}")
    typer.echo(f"  Provider:     {result.provider}")
    typer.echo(f"  From cache:   {'yes' if result.from_cache else 'no'}")


async def _geocode_address(address: str) -> None:
    async with _geocoding_service() as service:
        try:
            result = await service.geocode(address)
        except GeocodingError as e:
            typer.echo(f"Geocoding failed: {e.message} ({e.code.value})")
            for failure in e.failures:
                typer.echo(f"  {failure.provider}: {failure.reason.value} {failure.detail}".rstrip())
            raise typer.Exit(code=1) from e

        typer.echo(f"Geocoded: {address}")
        _echo_result(result)


async def _batch_geocode(addresses: list[str], batch_size: int | None) -> None:
    from geo_resolver.core.config import get_settings

    size = batch_size or get_settings().geocoder_batch_size
    async with _geocoding_service() as service:
        batch = await service.batch_geocode(addresses, batch_size=size)

    for address, outcome in batch.results.items():
        if isinstance(outcome, GeocodingError):
            typer.echo(f"FAIL  {address}: {outcome.message}")
        else:
            cached = " (cached)" if outcome.from_cache else ""
            typer.echo(f"OK    {address}: {outcome.latitude}, {outcome.longitude}{cached}")

    summary = batch.summary
    typer.echo("\nBatch geocoding completed:")
    typer.echo(f"  Total:        {summary.total}")
    typer.echo(f"  Succeeded:    {summary.successful}")
    typer.echo(f"  Failed:       {summary.failed}")
    typer.echo(f"  Cache hits:   {summary.cached}")


async def _cleanup_cache(max_age_days: int | None, min_hit_count: int | None) -> None:
    from geo_resolver.core.config import get_settings

    settings = get_settings()
    async with _geocoding_service() as service:
        deleted = await service.cleanup_cache(
            max_age_days or settings.geocoder_cache_max_age_days,
            min_hit_count or settings.geocoder_cache_min_hit_count,
        )
    typer.echo(f"Removed {deleted} cache entries.")


async def _cache_stats() -> None:
    async with _geocoding_service() as service:
        stats = await service.cache_stats()

    if not stats:
        typer.echo("Location cache is empty.")
        return
    for row in stats:
        typer.echo(
            f"{row.provider:<10} entries={row.cached_count} hits={row.total_hits} "
            f"oldest={row.oldest_entry} newest={row.newest_entry}"
        )


async def _test_providers(address: str) -> None:
    async with _geocoding_service() as service:
        checks = await service.test_providers(address)

    if not checks:
        typer.echo("No geocoding providers are configured.")
        raise typer.Exit(code=1)
    for name, check in checks.items():
        if check.success and check.result is not None:
            typer.echo(f"{name:<10} OK    {check.result.latitude}, {check.result.longitude}")
        else:
            typer.echo(f"{name:<10} FAIL  {check.error}")
