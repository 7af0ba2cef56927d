"""Database CLI commands."""

import asyncio

import typer
from loguru import logger

db_app = typer.Typer()


@db_app.command("create-tables")
def create_tables() -> None:
    """Create the location cache tables if they do not exist."""
    asyncio.run(_create_tables())


async def _create_tables() -> None:
    from geo_resolver.core import database
    from geo_resolver.core.config import get_settings

    settings = get_settings()
    database.init_engine(settings.database_url, echo=settings.database_echo)
    try:
        logger.info("Creating location cache tables")
        await database.create_tables()
        typer.echo("Location cache tables are ready.")
    finally:
        await database.dispose_engine()
