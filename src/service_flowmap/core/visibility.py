"""Visibility and expansion state for the flow map.

A node is visible iff it is the root, or its parent is both visible and
expanded. Visibility is transitive, so it is always recomputed top-down
from the root rather than patched one level at a time.

Collapsing a node also clears the expansion flag of every descendant, so a
later re-expand shows only the direct children again. Nodes are hidden,
never deleted.
"""

from __future__ import annotations

from collections import deque
from collections.abc import Iterable
from typing import Any

from loguru import logger

from .models import LogicalEdge


class VisibilityState:
    """Per-session hierarchy, expansion set and derived visibility map.

    Operations on unknown node ids are no-ops: a node may be referenced
    (e.g. by a click) before its data has been merged.

    Example:
        >>> state = VisibilityState("X")
        >>> state.register_node("Y", parent_id="X")
        >>> state.is_visible("Y")
        True
        >>> state.collapse("X")
        >>> state.is_visible("Y")
        False
    """

    def __init__(self, root_id: str | None = None) -> None:
        self.root_id = root_id
        self.expanded: set[str] = set()
        # parent id -> ordered child ids (dict used as an ordered set)
        self.hierarchy: dict[str, dict[str, None]] = {}
        self.parents: dict[str, str | None] = {}
        self.visibility: dict[str, bool] = {}

        if root_id is not None:
            self.register_node(root_id)
            self.expanded.add(root_id)
            self._recompute()

    def __contains__(self, node_id: object) -> bool:
        return node_id in self.parents

    def register_node(self, node_id: str, parent_id: str | None = None) -> bool:
        """Add a node to the hierarchy.

        The first registration wins: a node rediscovered by a later
        expansion keeps its original parent.

        Returns:
            True if the node was new
        """
        if node_id in self.parents:
            return False

        if parent_id == node_id or node_id == self.root_id:
            parent_id = None

        self.parents[node_id] = parent_id
        if parent_id is not None:
            self.hierarchy.setdefault(parent_id, {})[node_id] = None
        self._recompute()
        return True

    def expand(self, node_id: str) -> None:
        """Mark a node expanded; its children become visible if it is."""
        if node_id not in self.parents:
            logger.debug(f"Ignoring expand of unknown node {node_id!r}")
            return
        self.expanded.add(node_id)
        self._recompute()

    def collapse(self, node_id: str) -> None:
        """Mark a node collapsed and reset its whole subtree to collapsed."""
        if node_id not in self.parents:
            logger.debug(f"Ignoring collapse of unknown node {node_id!r}")
            return

        self.expanded.discard(node_id)
        descendants = self.descendants(node_id)
        cleared = self.expanded & descendants
        self.expanded -= descendants
        if cleared:
            logger.debug(f"Collapse of {node_id!r} cleared {len(cleared)} expanded descendants")
        self._recompute()

    def is_expanded(self, node_id: str) -> bool:
        return node_id in self.expanded

    def is_visible(self, node_id: str) -> bool:
        return self.visibility.get(node_id, False)

    def children(self, node_id: str) -> list[str]:
        return list(self.hierarchy.get(node_id, {}))

    def descendants(self, node_id: str) -> set[str]:
        """All transitive children of ``node_id`` (excluding itself)."""
        found: set[str] = set()
        stack = self.children(node_id)
        while stack:
            child = stack.pop()
            if child in found or child == node_id:
                continue
            found.add(child)
            stack.extend(self.children(child))
        return found

    def hierarchy_map(self) -> dict[str, list[str]]:
        return {parent: list(children) for parent, children in self.hierarchy.items()}

    def visible_node_ids(self) -> list[str]:
        """Visible ids in registration order."""
        return [node_id for node_id, visible in self.visibility.items() if visible]

    def visible_edges(self, edges: Iterable[LogicalEdge]) -> list[LogicalEdge]:
        """Edges whose endpoints are both visible."""
        return [e for e in edges if self.is_visible(e.source) and self.is_visible(e.target)]

    def to_dict(self) -> dict[str, Any]:
        return {
            "root_id": self.root_id,
            "expanded": sorted(self.expanded),
            "visible": self.visible_node_ids(),
            "hierarchy": self.hierarchy_map(),
        }

    def _recompute(self) -> None:
        visibility = dict.fromkeys(self.parents, False)
        if self.root_id is None or self.root_id not in visibility:
            self.visibility = visibility
            return

        visibility[self.root_id] = True
        queue: deque[str] = deque([self.root_id])
        while queue:
            node_id = queue.popleft()
            if node_id not in self.expanded:
                continue
            for child in self.hierarchy.get(node_id, {}):
                if child in visibility and not visibility[child]:
                    visibility[child] = True
                    queue.append(child)

        self.visibility = visibility
