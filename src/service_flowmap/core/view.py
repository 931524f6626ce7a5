"""Derived render view handed to the rendering layer.

Everything here is recomputed from session state; nothing is patched.
"""

from __future__ import annotations

from pydantic import BaseModel, Field

from .models import InterfaceRecord, LogicalEdge, Position, ServiceRecord, ServiceStatus


class NodeView(BaseModel):
    id: str
    label: str
    status: ServiceStatus
    position: Position
    parent_id: str | None = None
    is_expanded: bool = False
    is_center: bool = False
    user_positioned: bool = False
    service: ServiceRecord


class SelectionView(BaseModel):
    """At most one of ``node_id``/``edge_key`` is set."""

    node_id: str | None = None
    edge_key: str | None = None
    interface_index: int = 0
    interface_count: int = 0
    current_interface: InterfaceRecord | None = None


class SkippedInterface(BaseModel):
    interface_id: str
    reason: str


class FlowMapView(BaseModel):
    search_term: str | None = None
    service_found: bool = True
    center_id: str | None = None
    nodes: list[NodeView] = Field(default_factory=list)
    edges: list[LogicalEdge] = Field(default_factory=list)
    selection: SelectionView = Field(default_factory=SelectionView)
    skipped_interfaces: list[SkippedInterface] = Field(default_factory=list)

    def node(self, node_id: str) -> NodeView | None:
        return next((n for n in self.nodes if n.id == node_id), None)

    def edge(self, key: str) -> LogicalEdge | None:
        return next((e for e in self.edges if e.key == key), None)
