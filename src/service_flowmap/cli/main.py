"""Main CLI application for service-flowmap."""

import sys
from pathlib import Path

import typer
from loguru import logger

from .. import __version__
from ..config.defaults import get_default_config_path
from ..config.settings import FlowMapConfig
from ..core.exceptions import ConfigError
from .commands.config import config_app
from .commands.import_cmd import import_command
from .commands.search import search_command
from .commands.serve import serve_command
from .output import print_error

app = typer.Typer(
    name="flowmap",
    help="🗺️  Explore IT services and the interfaces between them",
    add_completion=False,
    rich_markup_mode="rich",
    no_args_is_help=True,
)

app.command("search")(search_command)
app.command("import")(import_command)
app.command("serve")(serve_command)
app.add_typer(config_app, name="config")


def setup_logging(verbose: bool) -> None:
    logger.remove()
    logger.add(sys.stderr, level="DEBUG" if verbose else "WARNING")


def version_callback(value: bool) -> None:
    if value:
        typer.echo(f"flowmap {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    ctx: typer.Context,
    config_path: Path | None = typer.Option(
        None,
        "--config",
        "-c",
        help="Configuration file (defaults to ./flowmap.yaml)",
        dir_okay=False,
        rich_help_panel="🔧 Global Options",
    ),
    db_path: Path | None = typer.Option(
        None,
        "--db",
        help="SQLite database path (overrides configuration)",
        dir_okay=False,
        rich_help_panel="🔧 Global Options",
    ),
    verbose: bool = typer.Option(
        False,
        "--verbose",
        "-v",
        help="Enable debug logging",
        rich_help_panel="🔧 Global Options",
    ),
    version: bool = typer.Option(
        False,
        "--version",
        help="Show version and exit",
        callback=version_callback,
        is_eager=True,
    ),
) -> None:
    """Service flow map: search a service, expand its neighbours, inspect interfaces."""
    setup_logging(verbose)

    config_path = config_path or get_default_config_path()
    try:
        config = FlowMapConfig.load(config_path)
    except ConfigError as e:
        print_error(str(e))
        raise typer.Exit(1)

    # An explicit database always means the local registry
    if db_path is not None:
        config = config.model_copy(update={"database_path": db_path, "remote_url": None})

    ctx.obj = {"config": config, "config_path": config_path}


if __name__ == "__main__":
    app()
