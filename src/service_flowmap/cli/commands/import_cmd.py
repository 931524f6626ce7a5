"""Import command: load services and interfaces into the local registry."""

from pathlib import Path

import typer

from ...config.settings import FlowMapConfig
from ...core.exceptions import DataSourceError
from ...sources.sqlite_source import SQLiteSubgraphSource
from ..output import print_error, print_info, print_success


def import_command(
    ctx: typer.Context,
    seed_file: Path = typer.Argument(
        ...,
        help="JSON or YAML file with 'services' and 'interfaces' lists",
        exists=True,
        file_okay=True,
        dir_okay=False,
        readable=True,
    ),
) -> None:
    """Import a seed file into the SQLite registry (upserts by id)."""
    config: FlowMapConfig = ctx.obj["config"]

    try:
        source = SQLiteSubgraphSource(config.database_path)
        services, interfaces = source.import_file(seed_file)
        totals = source.counts()
    except DataSourceError as e:
        print_error(str(e))
        raise typer.Exit(1)

    print_success(f"Imported {services} services and {interfaces} interfaces")
    print_info(
        f"Registry {config.database_path} now holds "
        f"{totals['services']} services and {totals['interfaces']} interfaces"
    )
