"""Serve command: run the flowmap HTTP API."""

import typer

from ...config.settings import FlowMapConfig
from ...core.exceptions import DataSourceError
from ...server import start_server
from ...sources.factory import create_source
from ..output import print_error


def serve_command(
    ctx: typer.Context,
    host: str | None = typer.Option(None, "--host", help="Bind address"),
    port: int | None = typer.Option(
        None, "--port", "-p", help="Port to listen on", min=1, max=65535
    ),
) -> None:
    """Start the flowmap API server."""
    config: FlowMapConfig = ctx.obj["config"]
    try:
        source = create_source(config)
    except DataSourceError as e:
        print_error(str(e))
        raise typer.Exit(1)

    start_server(source, config, host=host, port=port)
