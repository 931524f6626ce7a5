"""Radial layout algorithms for the service flow map.

Two modes:
    - Flat: the center service sits at the viewport center and every other
      node is spread evenly on one ring around it.
    - Hierarchical: the center sits at the origin, its direct children form
      the first ring, and each expanded node's children ring around that
      node's own position, so expanding grows the diagram outward instead
      of recentering it.

Both are deterministic (same input -> same positions, no randomness, only
insertion-ordered iteration) and never raise; an empty node list gives an
empty layout. Nodes flagged ``user_positioned`` keep their position.
"""

from __future__ import annotations

import math
from collections import deque
from collections.abc import Mapping, Sequence

from loguru import logger

from ..config.settings import LayoutConfig
from .models import FlowNode

Positions = dict[str, tuple[float, float]]


def ring_radius(count: int, base_radius: float, spacing_factor: float) -> float:
    """Radius that grows with ring population so nodes don't overlap."""
    return max(base_radius, count * spacing_factor)


def child_ring_radius(count: int, config: LayoutConfig) -> float:
    """Radius around an expanded node, bounded below the first ring."""
    calculated = count * config.child_spacing
    return max(config.child_base_radius, min(calculated, config.child_max_radius))


def place_on_ring(
    center: tuple[float, float],
    node_ids: Sequence[str],
    radius: float,
    start_angle: float = 0.0,
) -> Positions:
    """Spread ``node_ids`` evenly on a circle around ``center``.

    Node ``i`` goes to angle ``start_angle + i * 2π / n``.
    """
    if not node_ids:
        return {}

    cx, cy = center
    angle_step = (2 * math.pi) / len(node_ids)
    positions: Positions = {}
    for i, node_id in enumerate(node_ids):
        angle = start_angle + angle_step * i
        positions[node_id] = (cx + radius * math.cos(angle), cy + radius * math.sin(angle))
    return positions


def _resolve_center(nodes: Sequence[FlowNode], center_id: str | None) -> FlowNode | None:
    if not nodes:
        return None
    for node in nodes:
        if node.id == center_id:
            return node
    # Unknown or missing center: first node, as the lookup returns it first
    return nodes[0]


def _keep_pinned(node: FlowNode, computed: tuple[float, float]) -> tuple[float, float]:
    if node.user_positioned:
        return node.position.as_tuple()
    return computed


def calculate_radial_layout(
    nodes: Sequence[FlowNode],
    center_id: str | None,
    config: LayoutConfig | None = None,
) -> Positions:
    """Calculate flat radial positions around the viewport center.

    Args:
        nodes: Nodes to place
        center_id: Node to put in the middle (first node if unresolvable)
        config: Layout parameters (defaults if omitted)

    Returns:
        Dictionary mapping node_id -> (x, y) position

    Example:
        >>> positions = calculate_radial_layout(nodes, "A")
        >>> positions["A"]
        (500.0, 400.0)
    """
    config = config or LayoutConfig()
    center = _resolve_center(nodes, center_id)
    if center is None:
        logger.debug("No nodes to layout")
        return {}

    origin = (config.viewport_width / 2, config.viewport_height / 2)
    others = [n for n in nodes if n.id != center.id]
    radius = ring_radius(len(others), config.base_radius, config.spacing_factor)

    ring = place_on_ring(origin, [n.id for n in others], radius)
    positions: Positions = {center.id: _keep_pinned(center, origin)}
    for node in others:
        positions[node.id] = _keep_pinned(node, ring[node.id])

    logger.debug(f"Flat radial layout: {len(positions)} nodes, radius={radius:.1f}px")
    return positions


def calculate_hierarchical_layout(
    nodes: Sequence[FlowNode],
    center_id: str | None,
    hierarchy: Mapping[str, Sequence[str]],
    expanded: set[str] | frozenset[str],
    config: LayoutConfig | None = None,
) -> Positions:
    """Calculate positions that follow the expansion hierarchy.

    Steps:
        1. Center at (0, 0).
        2. Center's children on a ring of ``max(base_radius, n * spacing)``.
        3. Breadth-first, every expanded node's not-yet-placed children on a
           smaller ring around that node's own position. The first child
           points away from the node's parent.
        4. Anything still unplaced on a fallback ring outside everything else.

    Only nodes in ``nodes`` are placed; hierarchy entries for other ids are
    ignored. A pinned (user-positioned) node keeps its position and its
    children ring around that pinned position.

    Args:
        nodes: Nodes to place (typically the visible set)
        center_id: Root of the hierarchy (first node if unresolvable)
        hierarchy: parent id -> ordered child ids
        expanded: Ids of expanded nodes
        config: Layout parameters (defaults if omitted)

    Returns:
        Dictionary mapping node_id -> (x, y) position
    """
    config = config or LayoutConfig()
    center = _resolve_center(nodes, center_id)
    if center is None:
        logger.debug("No nodes to layout")
        return {}

    by_id = {n.id: n for n in nodes}
    positions: Positions = {center.id: _keep_pinned(center, (0.0, 0.0))}
    origin = positions[center.id]

    # The center's own expansion flag does not gate the first ring
    first_ring = [
        cid for cid in hierarchy.get(center.id, ()) if cid in by_id and cid != center.id
    ]
    radius = ring_radius(len(first_ring), config.base_radius, config.spacing_factor)
    for node_id, pos in place_on_ring(origin, first_ring, radius).items():
        positions[node_id] = _keep_pinned(by_id[node_id], pos)
    outermost = radius if first_ring else 0.0

    queue: deque[str] = deque(first_ring)
    while queue:
        parent_id = queue.popleft()
        if parent_id not in expanded:
            continue

        children = [
            cid for cid in hierarchy.get(parent_id, ()) if cid in by_id and cid not in positions
        ]
        if not children:
            continue

        parent_pos = positions[parent_id]
        grandparent_id = by_id[parent_id].parent_id
        anchor = positions.get(grandparent_id, origin) if grandparent_id else origin
        outward = math.atan2(parent_pos[1] - anchor[1], parent_pos[0] - anchor[0])

        child_radius = child_ring_radius(len(children), config)
        for node_id, pos in place_on_ring(parent_pos, children, child_radius, outward).items():
            positions[node_id] = _keep_pinned(by_id[node_id], pos)
            outermost = max(outermost, math.dist(origin, pos))
        queue.extend(children)

    remainder = [n.id for n in nodes if n.id not in positions]
    if remainder:
        fallback_radius = max(
            outermost + config.fallback_gap,
            ring_radius(len(remainder), config.base_radius, config.spacing_factor),
        )
        for node_id, pos in place_on_ring(origin, remainder, fallback_radius).items():
            positions[node_id] = _keep_pinned(by_id[node_id], pos)
        logger.debug(
            f"Placed {len(remainder)} unreached nodes on fallback ring "
            f"radius={fallback_radius:.1f}px"
        )

    logger.debug(
        f"Hierarchical layout: {len(positions)} nodes, first ring "
        f"{len(first_ring)} at radius={radius:.1f}px, {len(expanded)} expanded"
    )
    return positions
