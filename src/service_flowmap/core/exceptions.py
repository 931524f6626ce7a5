"""Typed exception hierarchy for service-flowmap.

Hierarchy
---------
FlowMapError (base)
├── ConfigError            – configuration file / validation errors
├── DataSourceError        – subgraph collaborator failures (SQLite, HTTP)
│   └── ExpansionError     – fetch failure while expanding a node
├── SessionError           – unknown or closed interactive session
└── ServiceNotFoundError   – search target unknown (outer surfaces only)

The core never raises for malformed interface records or unknown node ids:
those are diagnostics and no-ops respectively. Everything here is scoped to
the single operation that raised it.
"""

from typing import Any


class FlowMapError(Exception):
    """Base exception for service-flowmap."""

    def __init__(self, message: str, context: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.context = context or {}


# ── Configuration layer ─────────────────────────────────────────────────


class ConfigError(FlowMapError):
    """Configuration / validation errors."""

    pass


# ── Data source layer ───────────────────────────────────────────────────


class DataSourceError(FlowMapError):
    """Subgraph lookup failed (database or remote API)."""

    pass


class ExpansionError(DataSourceError):
    """Fetching a node's neighbourhood failed.

    Raised by ``FlowMapController.toggle_expand()``. Expansion state,
    hierarchy and stored nodes are left exactly as they were before the
    request, so the caller may simply retry.
    """

    def __init__(
        self,
        node_id: str,
        message: str | None = None,
        context: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message or f"Failed to expand node {node_id}", context)
        self.node_id = node_id


# ── Session layer ───────────────────────────────────────────────────────


class SessionError(FlowMapError):
    """Interactive session does not exist."""

    pass


# ── Lookup ──────────────────────────────────────────────────────────────


class ServiceNotFoundError(FlowMapError):
    """Searched service has neither a registry entry nor interfaces."""

    pass
