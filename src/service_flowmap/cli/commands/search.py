"""Search command: look up a service and print its flow map."""

import asyncio

import typer
from loguru import logger

from ...config.settings import FlowMapConfig
from ...core.controller import ExpandStatus, FlowMapController
from ...core.exceptions import DataSourceError, ServiceNotFoundError
from ...core.view import FlowMapView
from ...sources.factory import create_source
from ..output import print_error, print_flowmap, print_json


async def build_view(config: FlowMapConfig, app_id: str, expand: list[str]) -> FlowMapView:
    """Search ``app_id`` then expand each id in ``expand`` in order.

    Raises:
        ServiceNotFoundError: If the registry knows nothing about ``app_id``
    """
    controller = FlowMapController(create_source(config), config.layout)
    view = await controller.search(app_id)
    if not view.service_found:
        raise ServiceNotFoundError(f"Service not found: {app_id}", {"app_id": app_id})

    for node_id in expand:
        outcome = await controller.toggle_expand(node_id)
        if outcome.status == ExpandStatus.IGNORED:
            logger.warning(f"Cannot expand {node_id}: not on the map")
        elif outcome.status == ExpandStatus.COLLAPSED:
            logger.debug(f"{node_id} was already expanded; collapsed it")
    return controller.view


def search_command(
    ctx: typer.Context,
    app_id: str = typer.Argument(..., help="Application instance id to centre on"),
    expand: list[str] = typer.Option(
        [],
        "--expand",
        "-e",
        help="Expand a service after the search (repeatable, applied in order)",
    ),
    json_output: bool = typer.Option(False, "--json", help="Output the view as JSON"),
) -> None:
    """Search for a service and show its direct interfaces.

    Examples:
        flowmap search APP-001
        flowmap search APP-001 --expand APP-002 --json
    """
    config: FlowMapConfig = ctx.obj["config"]
    app_id = app_id.strip()
    if not app_id:
        print_error("App ID is required")
        raise typer.Exit(2)

    try:
        view = asyncio.run(build_view(config, app_id, expand))
    except (DataSourceError, ServiceNotFoundError) as e:
        print_error(str(e))
        raise typer.Exit(1)

    if json_output:
        print_json(view.model_dump(mode="json"))
    else:
        print_flowmap(view)
