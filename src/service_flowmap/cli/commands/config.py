"""Config command for the flowmap CLI."""

import typer

from ...config.settings import ENV_OVERRIDES, FlowMapConfig
from ..output import console, print_config, print_info, print_json

# Create config subcommand app
config_app = typer.Typer(help="Inspect flowmap configuration")


@config_app.command()
def show(
    ctx: typer.Context,
    json_output: bool = typer.Option(
        False,
        "--json",
        help="Output configuration in JSON format",
    ),
) -> None:
    """Show the effective configuration (file plus environment overrides)."""
    config: FlowMapConfig = ctx.obj["config"]
    config_dict = config.model_dump(mode="json")

    if json_output:
        print_json(config_dict, title="Flowmap Configuration")
    else:
        console.print("[bold blue]Flowmap Configuration[/bold blue]\n")
        print_config(config_dict)
        console.print(
            f"\n[dim]Environment overrides: {', '.join(sorted(ENV_OVERRIDES))}[/dim]"
        )


@config_app.command()
def path(ctx: typer.Context) -> None:
    """Show which configuration file is read."""
    config_path = ctx.obj["config_path"]
    console.print(str(config_path))
    if not config_path.exists():
        print_info("File does not exist; defaults are in use")
