"""Root `geo-resolver` command."""

import typer

from geo_resolver.core.config import get_settings
from geo_resolver.core.logging import setup_logging

app = typer.Typer(name="geo-resolver", help="Address geocoding and location cache CLI")


@app.callback()
def _configure() -> None:
    """Geocode addresses and manage the location cache."""
    settings = get_settings()
    setup_logging(settings.log_level, log_dir=settings.log_dir, json_logs=settings.log_json)


@app.command()
def serve(
    host: str = typer.Option("127.0.0.1", "--host", help="Bind host"),
    port: int = typer.Option(8000, "--port", help="Bind port"),
    reload: bool = typer.Option(False, "--reload", help="Restart on code changes"),  # noqa: FBT001
) -> None:
    """Run the geocoding HTTP API under uvicorn."""
    import uvicorn

    uvicorn.run("geo_resolver.main:create_app", factory=True, host=host, port=port, reload=reload)


def _register_subcommands() -> None:
    from geo_resolver.cli.db_cmd import db_app
    from geo_resolver.cli.geocode_cmd import geocode_app

    app.add_typer(db_app, name="db", help="Location cache database commands")
    app.add_typer(geocode_app, name="geocode", help="Geocoding and cache commands")


_register_subcommands()
