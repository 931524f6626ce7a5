"""Interaction controller for the flow map.

Owns the single mutable ``FlowMapSession`` and turns discrete user actions
(search, select, navigate, drag, expand/collapse) into state transitions.
After every mutation the render view is rebuilt by ``recompute()``, a pure
function of session state: edges are regrouped, the visible set laid out,
and handles reassigned. Nothing is patched incrementally.

The only asynchronous boundary is the subgraph fetch. Requests follow a
last-request-wins discipline: when a node is expanded again (or a new
search starts) before an earlier fetch resolves, the earlier result is
discarded instead of applied.
"""

from __future__ import annotations

import asyncio
import itertools
from dataclasses import dataclass, field
from enum import StrEnum

from loguru import logger

from ..config.settings import LayoutConfig
from ..sources.base import SubgraphSource
from .edge_grouping import GroupingDiagnostic, group_interfaces
from .edge_routing import select_handles
from .exceptions import ExpansionError
from .layout_engine import calculate_hierarchical_layout
from .models import FlowNode, InterfaceRecord, LogicalEdge, Position, Subgraph
from .view import FlowMapView, NodeView, SelectionView, SkippedInterface
from .visibility import VisibilityState


@dataclass
class Selection:
    """Selected node or edge (never both) and the interface cursor."""

    node_id: str | None = None
    edge_key: str | None = None
    interface_index: int = 0


@dataclass
class FlowMapSession:
    """Everything one flow-map session knows.

    ``nodes`` and ``interfaces`` only ever grow within a session; nodes are
    hidden through ``visibility`` rather than removed.
    """

    search_term: str | None = None
    center_id: str | None = None
    service_found: bool = True
    nodes: dict[str, FlowNode] = field(default_factory=dict)
    interfaces: dict[str, InterfaceRecord] = field(default_factory=dict)
    visibility: VisibilityState = field(default_factory=VisibilityState)
    selection: Selection = field(default_factory=Selection)
    edges: dict[str, LogicalEdge] = field(default_factory=dict)
    diagnostics: list[GroupingDiagnostic] = field(default_factory=list)

    @classmethod
    def from_subgraph(cls, search_term: str, subgraph: Subgraph) -> FlowMapSession:
        if not subgraph.found:
            return cls(search_term=search_term, service_found=False)

        center_id = subgraph.center_id
        if not any(n.id == center_id for n in subgraph.nodes) and subgraph.nodes:
            center_id = subgraph.nodes[0].id

        session = cls(
            search_term=search_term,
            center_id=center_id,
            visibility=VisibilityState(center_id),
        )
        session.merge(subgraph, parent_id=center_id)
        return session

    def merge(self, subgraph: Subgraph, parent_id: str) -> list[str]:
        """Merge a lookup result, deduplicating nodes and interfaces by id.

        New nodes are registered as children of ``parent_id``; nodes already
        known keep their parent, position and flags. A placeholder record is
        replaced by a real registry record when one arrives.

        Returns:
            Ids of nodes that were not known before
        """
        added = []
        for record in subgraph.nodes:
            existing = self.nodes.get(record.id)
            if existing is not None:
                if existing.service.placeholder and not record.placeholder:
                    existing.service = record
                    existing.label = record.label
                    existing.status = record.status
                continue

            node_parent = None if record.id == self.center_id else parent_id
            self.nodes[record.id] = FlowNode.from_record(record, parent_id=node_parent)
            self.visibility.register_node(record.id, node_parent)
            added.append(record.id)

        for interface in subgraph.interfaces:
            self.interfaces.setdefault(interface.id, interface)

        return added


def recompute(session: FlowMapSession, config: LayoutConfig | None = None) -> FlowMapView:
    """Derive the render view from session state.

    Groups all known interfaces, lays out the visible nodes hierarchically,
    keeps edges whose endpoints are both visible, and assigns each edge the
    node faces closest to the other endpoint. Does not mutate ``session``.
    """
    config = config or LayoutConfig()
    if not session.service_found or session.center_id is None:
        return FlowMapView(search_term=session.search_term, service_found=session.service_found)

    grouping = group_interfaces(session.interfaces.values())
    visibility = session.visibility

    visible_nodes = [session.nodes[i] for i in visibility.visible_node_ids() if i in session.nodes]
    positions = calculate_hierarchical_layout(
        visible_nodes,
        session.center_id,
        visibility.hierarchy_map(),
        visibility.expanded,
        config,
    )

    edges = []
    for edge in visibility.visible_edges(grouping.edges):
        source_handle, target_handle = select_handles(
            positions[edge.source], positions[edge.target], config.node_size
        )
        edges.append(
            edge.model_copy(update={"source_handle": source_handle, "target_handle": target_handle})
        )

    node_views = [
        NodeView(
            id=node.id,
            label=node.label,
            status=node.status,
            position=Position(x=positions[node.id][0], y=positions[node.id][1]),
            parent_id=node.parent_id,
            is_expanded=visibility.is_expanded(node.id),
            is_center=node.id == session.center_id,
            user_positioned=node.user_positioned,
            service=node.service,
        )
        for node in visible_nodes
    ]

    return FlowMapView(
        search_term=session.search_term,
        service_found=True,
        center_id=session.center_id,
        nodes=node_views,
        edges=edges,
        selection=_selection_view(session.selection, {e.key: e for e in edges}),
        skipped_interfaces=[
            SkippedInterface(interface_id=d.interface_id, reason=d.reason)
            for d in grouping.diagnostics
        ],
    )


def _selection_view(selection: Selection, edges: dict[str, LogicalEdge]) -> SelectionView:
    edge = edges.get(selection.edge_key) if selection.edge_key else None
    if edge is None:
        return SelectionView(node_id=selection.node_id, edge_key=selection.edge_key)

    index = clamp_index(selection.interface_index, len(edge.interfaces))
    return SelectionView(
        edge_key=edge.key,
        interface_index=index,
        interface_count=len(edge.interfaces),
        current_interface=edge.interfaces[index],
    )


def clamp_index(index: int, length: int) -> int:
    """Clamp to ``[0, length - 1]``; never wraps. Empty lists give 0."""
    if length <= 0:
        return 0
    return max(0, min(index, length - 1))


class ExpandStatus(StrEnum):
    EXPANDED = "expanded"
    COLLAPSED = "collapsed"
    STALE = "stale"  # superseded by a later request; result discarded
    IGNORED = "ignored"  # unknown node


@dataclass
class ExpandOutcome:
    node_id: str
    status: ExpandStatus
    added_node_ids: list[str] = field(default_factory=list)
    view: FlowMapView | None = None


class FlowMapController:
    """Single owner of a flow-map session.

    Example:
        >>> controller = FlowMapController(SQLiteSubgraphSource(db_path))
        >>> view = await controller.search("APP-001")
        >>> outcome = await controller.toggle_expand("APP-002")
        >>> controller.select_edge(outcome.view.edges[0].key)
    """

    def __init__(self, source: SubgraphSource, layout: LayoutConfig | None = None) -> None:
        self.source = source
        self.layout = layout or LayoutConfig()
        self.session = FlowMapSession()
        self._tokens = itertools.count(1)
        self._search_token = 0
        self._expand_tokens: dict[str, int] = {}
        self._inflight: dict[str, asyncio.Future[Subgraph]] = {}
        self._view = FlowMapView(service_found=True)

    @property
    def view(self) -> FlowMapView:
        return self._view

    def refresh(self) -> FlowMapView:
        """Recompute the view and write laid-out positions back to nodes."""
        view = recompute(self.session, self.layout)
        for node_view in view.nodes:
            node = self.session.nodes[node_view.id]
            if not node.user_positioned:
                node.position = node_view.position
        for node_id, node in self.session.nodes.items():
            node.is_expanded = self.session.visibility.is_expanded(node_id)
        # Only rendered edges can be clicked
        self.session.edges = {e.key: e for e in view.edges}
        self.session.diagnostics = [
            GroupingDiagnostic(interface_id=s.interface_id, reason=s.reason)
            for s in view.skipped_interfaces
        ]
        self._view = view
        return view

    # ── Search ──────────────────────────────────────────────────────────

    async def search(self, term: str) -> FlowMapView:
        """Start a fresh session around ``term``.

        Discards all previous state, including manual positions and pending
        expansions. A lookup miss yields a view with ``service_found=False``.

        Raises:
            ValueError: If ``term`` is blank
            DataSourceError: If the lookup fails (previous session kept)
        """
        term = term.strip()
        if not term:
            raise ValueError("Search term must not be empty")

        token = self._search_token = next(self._tokens)
        subgraph = await self.source.fetch_subgraph(term)
        if token != self._search_token:
            logger.warning(f"Discarding stale search result for {term!r}")
            return self._view

        self._cancel_inflight()
        self.session = FlowMapSession.from_subgraph(term, subgraph)
        logger.info(
            f"Search {term!r}: found={subgraph.found}, "
            f"{len(self.session.nodes)} nodes, {len(self.session.interfaces)} interfaces"
        )
        return self.refresh()

    # ── Expand / collapse ───────────────────────────────────────────────

    async def toggle_expand(self, node_id: str) -> ExpandOutcome:
        """Expand a collapsed node, or collapse an expanded one.

        Expanding fetches the node's neighbourhood, merges it, then marks
        the node expanded. If the fetch fails nothing changes and
        ``ExpansionError`` is raised. If a newer request for the same node
        (or a new search) starts first, the result is discarded and the
        outcome is ``STALE``.
        """
        if node_id not in self.session.nodes:
            logger.debug(f"Ignoring expand of unknown node {node_id!r}")
            return ExpandOutcome(node_id, ExpandStatus.IGNORED, view=self._view)

        if self.session.visibility.is_expanded(node_id):
            self.collapse(node_id)
            return ExpandOutcome(node_id, ExpandStatus.COLLAPSED, view=self._view)

        session = self.session
        token = self._expand_tokens[node_id] = next(self._tokens)
        previous = self._inflight.get(node_id)
        if previous is not None and not previous.done():
            previous.cancel()

        task = asyncio.ensure_future(self.source.fetch_subgraph(node_id))
        self._inflight[node_id] = task
        try:
            subgraph = await task
        except asyncio.CancelledError:
            if self._is_stale(node_id, token, session):
                logger.warning(f"Expand of {node_id!r} superseded before completing")
                return ExpandOutcome(node_id, ExpandStatus.STALE, view=self._view)
            raise
        except Exception as e:
            if self._is_stale(node_id, token, session):
                logger.warning(f"Ignoring failure of superseded expand of {node_id!r}: {e}")
                return ExpandOutcome(node_id, ExpandStatus.STALE, view=self._view)
            logger.error(f"Failed to expand {node_id!r}: {e}")
            raise ExpansionError(node_id, f"Failed to expand {node_id}: {e}") from e
        finally:
            if self._inflight.get(node_id) is task:
                del self._inflight[node_id]

        if self._is_stale(node_id, token, session):
            logger.warning(f"Discarding stale expand result for {node_id!r}")
            return ExpandOutcome(node_id, ExpandStatus.STALE, view=self._view)

        added = session.merge(subgraph, parent_id=node_id)
        session.visibility.expand(node_id)
        logger.debug(f"Expanded {node_id!r}: {len(added)} new nodes")
        return ExpandOutcome(node_id, ExpandStatus.EXPANDED, added, view=self.refresh())

    def collapse(self, node_id: str) -> FlowMapView:
        """Collapse a node and reset its subtree; cancels a pending expand."""
        if node_id not in self.session.nodes:
            return self._view
        self._expand_tokens[node_id] = next(self._tokens)
        pending = self._inflight.pop(node_id, None)
        if pending is not None and not pending.done():
            pending.cancel()
        self.session.visibility.collapse(node_id)
        return self.refresh()

    def _is_stale(self, node_id: str, token: int, session: FlowMapSession) -> bool:
        return self.session is not session or self._expand_tokens.get(node_id) != token

    def _cancel_inflight(self) -> None:
        for pending in self._inflight.values():
            if not pending.done():
                pending.cancel()
        self._inflight.clear()
        self._expand_tokens.clear()

    # ── Selection ───────────────────────────────────────────────────────

    def select_node(self, node_id: str) -> FlowMapView:
        """Select a node; clears any edge selection. Unknown ids are ignored."""
        if node_id not in self.session.nodes:
            return self._view
        self.session.selection = Selection(node_id=node_id)
        return self.refresh()

    def select_edge(self, key: str) -> FlowMapView:
        """Select an edge at its first interface; clears any node selection."""
        if key not in self.session.edges:
            return self._view
        self.session.selection = Selection(edge_key=key, interface_index=0)
        return self.refresh()

    def clear_selection(self) -> FlowMapView:
        self.session.selection = Selection()
        return self.refresh()

    def navigate_interface(self, index: int) -> int:
        """Move the interface cursor of the selected edge, clamped, no wrap.

        Returns:
            The resulting index (0 when no edge is selected)
        """
        selection = self.session.selection
        edge = self.session.edges.get(selection.edge_key) if selection.edge_key else None
        if edge is None:
            return 0
        selection.interface_index = clamp_index(index, len(edge.interfaces))
        self.refresh()
        return selection.interface_index

    def step_interface(self, step: int) -> int:
        return self.navigate_interface(self.session.selection.interface_index + step)

    # ── Drag ────────────────────────────────────────────────────────────

    def drag_node_stop(self, node_id: str, x: float, y: float) -> list[LogicalEdge]:
        """Commit a dragged position and pin the node against auto layout.

        Returns:
            Visible edges touching the node, with recomputed handles
        """
        node = self.session.nodes.get(node_id)
        if node is None:
            return []
        node.position = Position(x=x, y=y)
        node.user_positioned = True
        view = self.refresh()
        return [edge for edge in view.edges if edge.touches(node_id)]
