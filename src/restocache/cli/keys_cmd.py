"""CLI commands for inspecting and sweeping derived cache keys.

Usage:
    restocache keys --region city1 --cuisine cuisine3
    restocache keys --region city1 --cuisine cuisine3 --show 5
    restocache invalidate --region city1 --cuisine cuisine3 --name "Luigi's"
"""

from __future__ import annotations

import asyncio

import typer

from restocache.cache.invalidation import InvalidationOrchestrator, InvalidationReport
from restocache.cache.keys import CacheKeys, derive_invalidation_keys
from restocache.cache.redis import RedisCache, close_redis, get_redis
from restocache.config import settings
from restocache.core.ids import decode_component
from restocache.observability.logging import LogContext, configure_logging


_ENCODED_COMPONENTS = ("restaurant", "region", "cuisine")


def describe_key(key: str) -> str:
    """Readable form of a cache key with its components decoded."""
    parsed = CacheKeys.parse_key(key)
    if parsed is None:
        return "unrecognised"
    family = parsed.pop("family")
    parts = []
    for component, value in parsed.items():
        if component in _ENCODED_COMPONENTS:
            value = decode_component(value)
        parts.append(f"{component}={value}")
    return f"{family}: {', '.join(parts)}"


def keys(
    region: str = typer.Option(..., "--region", help="Restaurant region"),
    cuisine: str = typer.Option(..., "--cuisine", help="Restaurant cuisine"),
    name: str | None = typer.Option(None, "--name", help="Include the direct key"),
    show: int = typer.Option(0, "--show", "-s", help="Print the first N keys, decoded"),
) -> None:
    """Show the keys a mutation of this restaurant invalidates."""
    derived = derive_invalidation_keys(name, region, cuisine)
    typer.echo(f"{len(derived)} keys")
    for key in derived[:show]:
        typer.echo(f"  {key}  ({describe_key(key)})")


def invalidate(
    region: str = typer.Option(..., "--region", help="Restaurant region"),
    cuisine: str = typer.Option(..., "--cuisine", help="Restaurant cuisine"),
    name: str | None = typer.Option(None, "--name", help="Also delete the direct key"),
) -> None:
    """Delete every cache entry that could hold this restaurant."""
    from rich.console import Console

    console = Console()
    configure_logging(json_format=False, level=settings.log_level)
    derived = derive_invalidation_keys(name, region, cuisine)

    async def _sweep() -> InvalidationReport:
        try:
            orchestrator = InvalidationOrchestrator(RedisCache(await get_redis()))
            return await orchestrator.sweep(derived)
        finally:
            await close_redis()

    with LogContext(operation="invalidate"):
        report = asyncio.run(_sweep())
    summary = (
        f"{report.total} keys: {report.deleted} deleted, {report.absent} absent, "
        f"{len(report.failed)} failed ({report.duration:.3f}s)"
    )
    if report.failed:
        console.print(f"[red]{summary}[/red]")
        raise typer.Exit(code=1)
    console.print(f"[green]{summary}[/green]")
