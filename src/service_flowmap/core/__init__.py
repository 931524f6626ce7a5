"""Core flow-map functionality: grouping, layout, visibility, interaction."""

from .exceptions import (
    ConfigError,
    DataSourceError,
    ExpansionError,
    FlowMapError,
    ServiceNotFoundError,
    SessionError,
)
from .models import (
    FlowNode,
    InterfaceRecord,
    InterfaceStatus,
    LogicalEdge,
    Position,
    Priority,
    ServiceRecord,
    ServiceStatus,
    Subgraph,
)

__all__ = [
    "ConfigError",
    "DataSourceError",
    "ExpansionError",
    "FlowMapError",
    "FlowNode",
    "InterfaceRecord",
    "InterfaceStatus",
    "LogicalEdge",
    "Position",
    "Priority",
    "ServiceNotFoundError",
    "ServiceRecord",
    "ServiceStatus",
    "SessionError",
    "Subgraph",
]
