"""Rich output helpers for the flowmap CLI."""

from typing import Any

import orjson
from rich.console import Console
from rich.table import Table
from rich.tree import Tree

from ..core.view import FlowMapView

console = Console()


def print_success(message: str) -> None:
    console.print(f"[green]✓[/green] {message}")


def print_error(message: str) -> None:
    console.print(f"[red]✗[/red] {message}")


def print_warning(message: str) -> None:
    console.print(f"[yellow]⚠[/yellow] {message}")


def print_info(message: str) -> None:
    console.print(f"[blue]ℹ[/blue] {message}")


def print_json(data: Any, title: str | None = None) -> None:
    if title:
        console.print(f"[bold blue]{title}[/bold blue]")
    console.out(orjson.dumps(data, option=orjson.OPT_INDENT_2).decode(), highlight=False)


def print_config(config: dict[str, Any], prefix: str = "") -> None:
    """Print a nested configuration mapping as a flat key/value table."""
    table = Table(show_header=True, header_style="bold magenta")
    table.add_column("Setting", style="cyan")
    table.add_column("Value", style="green")
    for key, value in _flatten(config, prefix):
        table.add_row(key, str(value))
    console.print(table)


def _flatten(data: dict[str, Any], prefix: str = ""):
    for key, value in data.items():
        name = f"{prefix}{key}"
        if isinstance(value, dict):
            yield from _flatten(value, f"{name}.")
        else:
            yield name, value


STATUS_STYLES = {"ACTIVE": "green", "INACTIVE": "red", "TBC": "yellow"}


def _node_label(view: FlowMapView, node_id: str) -> str:
    node = view.node(node_id)
    if node is None:
        return node_id
    style = STATUS_STYLES.get(node.status.value, "white")
    marker = "▾" if node.is_expanded else "▸"
    pin = " [dim](pinned)[/dim]" if node.user_positioned else ""
    return (
        f"{marker} [bold]{node.label}[/bold] [dim]{node.id}[/dim] "
        f"[{style}]{node.status.value}[/{style}] "
        f"[dim]({node.position.x:.0f}, {node.position.y:.0f})[/dim]{pin}"
    )


def print_flowmap(view: FlowMapView) -> None:
    """Render a flow-map view as a hierarchy tree plus an edge table."""
    children: dict[str | None, list[str]] = {}
    for node in view.nodes:
        if node.is_center:
            continue
        children.setdefault(node.parent_id, []).append(node.id)

    tree = Tree(_node_label(view, view.center_id or ""))
    stack = [(tree, view.center_id)]
    seen = {view.center_id}
    while stack:
        branch, parent_id = stack.pop()
        for child_id in children.get(parent_id, []):
            if child_id in seen:
                continue
            seen.add(child_id)
            stack.append((branch.add(_node_label(view, child_id)), child_id))
    console.print(tree)

    if not view.edges:
        print_info("No interfaces")
        return

    table = Table(title="Interfaces", show_header=True, header_style="bold magenta")
    table.add_column("Edge", style="cyan")
    table.add_column("Direction")
    table.add_column("Count", justify="right")
    table.add_column("Interfaces")
    table.add_column("Handles", style="dim")
    for edge in view.edges:
        if edge.is_bidirectional:
            direction = "⇄"
        elif edge.reverse_count:
            direction = "←"
        else:
            direction = "→"
        names = ", ".join(i.name or i.id for i in edge.interfaces)
        table.add_row(
            edge.key,
            direction,
            f"{edge.forward_count}/{edge.reverse_count}",
            names,
            f"{edge.source_handle} → {edge.target_handle}",
        )
    console.print(table)

    for skipped in view.skipped_interfaces:
        print_warning(f"Skipped interface {skipped.interface_id}: {skipped.reason}")
