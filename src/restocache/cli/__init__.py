"""CLI commands for restocache.

Provides command-line interface using Typer:
- restocache serve: Run the API server
- restocache keys: Show the cache keys a mutation invalidates
- restocache invalidate: Run an invalidation sweep against Redis

Usage:
    restocache --help
    restocache serve --port 8080
    restocache keys --region city1 --cuisine cuisine3
    restocache invalidate --region city1 --cuisine cuisine3 --name "Luigi's"
"""

import typer

from restocache.cli.keys_cmd import invalidate, keys
from restocache.cli.serve import app as serve_app

# Main CLI application
app = typer.Typer(
    name="restocache",
    help="restocache: restaurant ratings with a coherent Redis cache",
    no_args_is_help=True,
)

app.add_typer(serve_app, name="serve")
app.command("keys")(keys)
app.command("invalidate")(invalidate)


@app.callback()
def callback() -> None:
    """restocache: restaurant ratings with a coherent Redis cache."""
    pass


def main() -> None:
    """Entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()
