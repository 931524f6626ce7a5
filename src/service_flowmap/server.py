"""HTTP API for the flow map.

Two surfaces:
    - ``GET /api/flowmap``: stateless lookup returning a radially laid-out
      subgraph with grouped edges, for simple clients.
    - ``/api/sessions/...``: an interactive session per client, each backed
      by its own ``FlowMapController`` (expand/collapse, selection,
      interface navigation, drag).
"""

import uuid
from typing import Any, Literal

import typer
import uvicorn
from fastapi import FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse
from loguru import logger
from pydantic import BaseModel, ConfigDict, Field, model_validator
from rich.console import Console
from rich.panel import Panel

from . import __version__
from .config.settings import FlowMapConfig, LayoutConfig
from .core.controller import ExpandStatus, FlowMapController
from .core.edge_grouping import group_interfaces
from .core.edge_routing import select_handles
from .core.exceptions import DataSourceError, ExpansionError, SessionError
from .core.layout_engine import calculate_radial_layout
from .core.models import FlowNode, LogicalEdge, Subgraph
from .core.view import FlowMapView
from .sessions import SessionStore
from .sources.base import SubgraphSource

console = Console()


class SearchRequest(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    search: str = Field(..., min_length=1)


class InterfaceIndexRequest(BaseModel):
    """Either an absolute ``index`` or a relative ``step``."""

    index: int | None = None
    step: int | None = None

    @model_validator(mode="after")
    def _exactly_one(self) -> "InterfaceIndexRequest":
        if (self.index is None) == (self.step is None):
            raise ValueError("Provide exactly one of 'index' or 'step'")
        return self


class PositionRequest(BaseModel):
    x: float
    y: float


class SessionResponse(BaseModel):
    session_id: str
    view: FlowMapView


class ToggleResponse(SessionResponse):
    status: ExpandStatus
    added_node_ids: list[str] = Field(default_factory=list)


class InterfaceIndexResponse(SessionResponse):
    interface_index: int


class DragResponse(SessionResponse):
    updated_edges: list[LogicalEdge]


def flowmap_payload(
    subgraph: Subgraph,
    search_term: str,
    action: str = "search",
    layout: LayoutConfig | None = None,
) -> dict[str, Any]:
    """Build the stateless lookup response.

    The searched service is the parent of every other returned service. For
    ``action="expand"`` the parent itself is omitted, since the caller
    already has it.
    """
    if not subgraph.found:
        return {"nodes": [], "edges": [], "searchTerm": search_term, "serviceFound": False}

    layout = layout or LayoutConfig()
    center_id = subgraph.center_id
    flow_nodes = [
        FlowNode.from_record(r, parent_id=None if r.id == center_id else center_id)
        for r in subgraph.nodes
    ]
    positions = calculate_radial_layout(flow_nodes, center_id, layout)

    nodes = []
    for node in flow_nodes:
        is_center = node.id == center_id
        if is_center and action == "expand":
            continue
        x, y = positions[node.id]
        nodes.append(
            {
                "id": node.id,
                "type": "service",
                "position": {"x": x, "y": y},
                "data": {
                    "label": node.label,
                    "service": node.service.model_dump(mode="json"),
                    "status": node.status.value,
                    "isExpanded": is_center,
                    "parentId": node.parent_id,
                },
            }
        )

    edges = []
    for edge in group_interfaces(subgraph.interfaces).edges:
        if edge.source not in positions or edge.target not in positions:
            continue
        source_handle, target_handle = select_handles(
            positions[edge.source], positions[edge.target], layout.node_size
        )
        first = edge.interfaces[0]
        edges.append(
            {
                "id": edge.key,
                "type": "interface",
                "source": edge.source,
                "target": edge.target,
                "animated": False,
                "sourceHandle": source_handle,
                "targetHandle": target_handle,
                "data": {
                    "interfaces": [i.model_dump(mode="json") for i in edge.interfaces],
                    "isBidirectional": edge.is_bidirectional,
                    "forwardCount": edge.forward_count,
                    "reverseCount": edge.reverse_count,
                    "status": first.status.value,
                    "priority": first.priority.value,
                },
            }
        )

    return {"nodes": nodes, "edges": edges, "searchTerm": search_term, "serviceFound": True}


def create_app(source: SubgraphSource, config: FlowMapConfig | None = None) -> FastAPI:
    """Create the FastAPI application.

    Args:
        source: Where subgraphs are looked up
        config: Project configuration (defaults if omitted)

    Returns:
        Configured FastAPI application
    """
    config = config or FlowMapConfig()
    app = FastAPI(title="Service Flowmap", version=__version__)
    app.state.source = source
    app.state.config = config
    app.state.sessions = SessionStore(
        max_sessions=config.server.max_sessions,
        ttl_seconds=config.server.session_ttl_seconds,
    )
    get_controller = app.state.sessions.get

    @app.exception_handler(SessionError)
    async def session_error_handler(request: Request, exc: SessionError) -> JSONResponse:
        return JSONResponse(status_code=404, content={"error": str(exc)})

    @app.exception_handler(DataSourceError)
    async def data_source_error_handler(request: Request, exc: DataSourceError) -> JSONResponse:
        logger.error(f"Data source error on {request.url.path}: {exc}")
        return JSONResponse(status_code=502, content={"error": str(exc)})

    @app.get("/api/health")
    async def health() -> dict[str, str]:
        return {"status": "ok", "version": __version__}

    @app.get("/api/flowmap")
    async def lookup(
        search: str | None = None, action: Literal["search", "expand"] = "search"
    ) -> JSONResponse:
        """Look up a service and its directly connected services."""
        term = (search or "").strip()
        if not term:
            return JSONResponse(status_code=422, content={"error": "App ID is required"})

        subgraph = await source.fetch_subgraph(term)
        return JSONResponse(
            content=flowmap_payload(subgraph, term, action, config.layout),
            headers={"Cache-Control": "no-cache"},
        )

    @app.post("/api/sessions", response_model=SessionResponse)
    async def create_session(body: SearchRequest) -> SessionResponse:
        controller = FlowMapController(source, config.layout)
        view = await controller.search(body.search)
        session_id = uuid.uuid4().hex
        app.state.sessions.add(session_id, controller)
        logger.debug(f"Created session {session_id} for {body.search!r}")
        return SessionResponse(session_id=session_id, view=view)

    @app.get("/api/sessions/{session_id}", response_model=SessionResponse)
    async def get_session(session_id: str) -> SessionResponse:
        controller = get_controller(session_id)
        return SessionResponse(session_id=session_id, view=controller.view)

    @app.delete("/api/sessions/{session_id}")
    async def delete_session(session_id: str) -> dict[str, bool]:
        app.state.sessions.remove(session_id)
        return {"deleted": True}

    @app.post("/api/sessions/{session_id}/search", response_model=SessionResponse)
    async def research(session_id: str, body: SearchRequest) -> SessionResponse:
        controller = get_controller(session_id)
        view = await controller.search(body.search)
        return SessionResponse(session_id=session_id, view=view)

    @app.post("/api/sessions/{session_id}/nodes/{node_id:path}/toggle", response_model=ToggleResponse)
    async def toggle_node(session_id: str, node_id: str) -> ToggleResponse:
        controller = get_controller(session_id)
        try:
            outcome = await controller.toggle_expand(node_id)
        except ExpansionError as e:
            raise HTTPException(status_code=502, detail=str(e)) from e
        return ToggleResponse(
            session_id=session_id,
            view=outcome.view or controller.view,
            status=outcome.status,
            added_node_ids=outcome.added_node_ids,
        )

    @app.post("/api/sessions/{session_id}/nodes/{node_id:path}/select", response_model=SessionResponse)
    async def select_node(session_id: str, node_id: str) -> SessionResponse:
        controller = get_controller(session_id)
        return SessionResponse(session_id=session_id, view=controller.select_node(node_id))

    @app.post("/api/sessions/{session_id}/nodes/{node_id:path}/position", response_model=DragResponse)
    async def drag_node(session_id: str, node_id: str, body: PositionRequest) -> DragResponse:
        controller = get_controller(session_id)
        updated = controller.drag_node_stop(node_id, body.x, body.y)
        return DragResponse(session_id=session_id, view=controller.view, updated_edges=updated)

    @app.post("/api/sessions/{session_id}/edges/{key:path}/select", response_model=SessionResponse)
    async def select_edge(session_id: str, key: str) -> SessionResponse:
        controller = get_controller(session_id)
        return SessionResponse(session_id=session_id, view=controller.select_edge(key))

    @app.post("/api/sessions/{session_id}/selection/clear", response_model=SessionResponse)
    async def clear_selection(session_id: str) -> SessionResponse:
        controller = get_controller(session_id)
        return SessionResponse(session_id=session_id, view=controller.clear_selection())

    @app.post("/api/sessions/{session_id}/interface-index", response_model=InterfaceIndexResponse)
    async def navigate_interface(
        session_id: str, body: InterfaceIndexRequest
    ) -> InterfaceIndexResponse:
        controller = get_controller(session_id)
        if body.index is not None:
            index = controller.navigate_interface(body.index)
        else:
            index = controller.step_interface(body.step or 0)
        return InterfaceIndexResponse(
            session_id=session_id, view=controller.view, interface_index=index
        )

    return app


def start_server(
    source: SubgraphSource,
    config: FlowMapConfig,
    host: str | None = None,
    port: int | None = None,
) -> None:
    """Run the API server until interrupted.

    Raises:
        typer.Exit: If the server fails to start
    """
    host = host or config.server.host
    port = port or config.server.port
    try:
        app = create_app(source, config)
        url = f"http://{host}:{port}"

        console.print()
        console.print(
            Panel.fit(
                f"[green]✓[/green] Flowmap API running\n\n"
                f"URL: [cyan]{url}/api/health[/cyan]\n"
                f"Database: [dim]{config.remote_url or config.database_path}[/dim]\n\n"
                f"[dim]Press Ctrl+C to stop[/dim]",
                title="Server Started",
                border_style="green",
            )
        )

        server = uvicorn.Server(
            uvicorn.Config(app, host=host, port=port, log_level="warning", access_log=False)
        )
        server.run()

    except KeyboardInterrupt:
        console.print("\n[yellow]Stopping server...[/yellow]")
    except OSError as e:
        if "Address already in use" in str(e):
            console.print(
                f"[red]✗ Port {port} is already in use. Try a different port with --port[/red]"
            )
        else:
            console.print(f"[red]✗ Server error: {e}[/red]")
        raise typer.Exit(1)
