"""Data models for the service flow map.

Records (``ServiceRecord``, ``InterfaceRecord``) come from a subgraph source
and are never mutated by the core. ``FlowNode`` is the session-local,
mutable view of a service; ``LogicalEdge`` is derived and recomputed from
the raw interface list on every change.
"""

from __future__ import annotations

from enum import StrEnum

from pydantic import BaseModel, ConfigDict, Field


class ServiceStatus(StrEnum):
    ACTIVE = "ACTIVE"
    INACTIVE = "INACTIVE"
    TBC = "TBC"


class InterfaceStatus(StrEnum):
    ACTIVE = "ACTIVE"
    INACTIVE = "INACTIVE"
    TBC = "TBC"


class Priority(StrEnum):
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"


class Position(BaseModel):
    """2D canvas coordinates."""

    x: float = 0.0
    y: float = 0.0

    def as_tuple(self) -> tuple[float, float]:
        return (self.x, self.y)


# --- Source records ---


class ServiceRecord(BaseModel):
    """One IT service as known to the service registry."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(..., description="Application instance id")
    name: str = Field(default="", description="Service display name")
    status: ServiceStatus = ServiceStatus.ACTIVE
    owner: str | None = None
    support_group: str | None = None
    criticality: str | None = None
    environment: str | None = None
    placeholder: bool = Field(
        default=False,
        description="Synthesised from an interface counterpart, not in the registry",
    )

    @property
    def label(self) -> str:
        return self.name or self.id


class InterfaceRecord(BaseModel):
    """One directional data feed between two services."""

    model_config = ConfigDict(frozen=True)

    id: str
    sender_id: str | None = None
    receiver_id: str | None = None
    sender_name: str | None = None
    receiver_name: str | None = None
    name: str | None = None
    status: InterfaceStatus = InterfaceStatus.ACTIVE
    priority: Priority = Priority.LOW
    transfer_type: str | None = None
    frequency: str | None = None
    technology: str | None = None
    pattern: str | None = None
    remarks: str | None = None


class Subgraph(BaseModel):
    """Result of a subgraph lookup around one service.

    ``found`` is False only for a lookup miss (no registry entry and no
    interfaces), which is distinct from a known service with no feeds.
    """

    center_id: str
    nodes: list[ServiceRecord] = Field(default_factory=list)
    interfaces: list[InterfaceRecord] = Field(default_factory=list)
    found: bool = True

    @classmethod
    def not_found(cls, center_id: str) -> Subgraph:
        return cls(center_id=center_id, found=False)


# --- Session state ---


class FlowNode(BaseModel):
    """A service as placed on the flow map.

    ``parent_id`` records which node's expansion discovered this one. It is
    set once and never reassigned when later expansions return the same id.
    """

    id: str
    label: str
    status: ServiceStatus = ServiceStatus.ACTIVE
    position: Position = Field(default_factory=Position)
    parent_id: str | None = None
    is_expanded: bool = False
    user_positioned: bool = False
    service: ServiceRecord

    @classmethod
    def from_record(cls, record: ServiceRecord, parent_id: str | None = None) -> FlowNode:
        return cls(
            id=record.id,
            label=record.label,
            status=record.status,
            parent_id=parent_id,
            service=record,
        )


class LogicalEdge(BaseModel):
    """All interface records between one unordered pair of services.

    ``source``/``target`` are the canonical (sorted) endpoints; the forward
    direction is ``source -> target``.
    """

    key: str
    source: str
    target: str
    interfaces: list[InterfaceRecord] = Field(min_length=1)
    is_bidirectional: bool = False
    forward_count: int = Field(default=0, ge=0)
    reverse_count: int = Field(default=0, ge=0)
    source_handle: str | None = None
    target_handle: str | None = None

    def touches(self, node_id: str) -> bool:
        return node_id in (self.source, self.target)
