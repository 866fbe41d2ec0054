"""`restocache serve`: run the API under uvicorn."""

from __future__ import annotations

import typer

from restocache.config import settings

app = typer.Typer(help="Run the restocache API server")


@app.callback(invoke_without_command=True)
def serve(
    host: str = typer.Option(settings.host, "--host", "-h", help="Bind address"),
    port: int = typer.Option(settings.port, "--port", "-p", help="Listen port"),
    reload: bool = typer.Option(False, "--reload", help="Restart on code changes"),
    workers: int = typer.Option(1, "--workers", "-w", help="Worker processes"),
) -> None:
    """Run the restocache API server.

    Each worker owns its own invalidation sweeps and drains them on shutdown.
    """
    import uvicorn

    if reload and workers > 1:
        typer.echo("--reload runs a single worker")
        workers = 1

    typer.echo(f"Serving restocache on http://{host}:{port} ({workers} worker(s))")
    uvicorn.run(
        "restocache.api.app:create_app",
        factory=True,
        host=host,
        port=port,
        reload=reload,
        workers=workers,
        log_level=settings.log_level.lower(),
    )
