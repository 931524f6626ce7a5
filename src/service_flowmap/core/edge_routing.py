"""Choose which face of a node an edge attaches to.

Edges leave and enter the face of each node that points towards the other
endpoint, using 45° sectors around the node center.
"""

from __future__ import annotations

import math

from ..config.defaults import NODE_SIZE


def node_center(position: tuple[float, float], node_size: float = NODE_SIZE) -> tuple[float, float]:
    """Positions are top-left corners; nodes are ``node_size`` squares."""
    x, y = position
    return (x + node_size / 2, y + node_size / 2)


def face_for_angle(angle: float) -> str:
    """Map an angle in radians (screen coordinates, y down) to a face."""
    degrees = (math.degrees(angle) + 360) % 360
    if degrees >= 315 or degrees < 45:
        return "right"
    if degrees < 135:
        return "bottom"
    if degrees < 225:
        return "left"
    return "top"


def select_handles(
    source_pos: tuple[float, float],
    target_pos: tuple[float, float],
    node_size: float = NODE_SIZE,
) -> tuple[str, str]:
    """Return ``(source_face, target_face)`` for an edge between two nodes.

    Example:
        >>> select_handles((0, 0), (500, 0))
        ('right', 'left')
    """
    sx, sy = node_center(source_pos, node_size)
    tx, ty = node_center(target_pos, node_size)
    angle = math.atan2(ty - sy, tx - sx)
    return face_for_angle(angle), face_for_angle(angle + math.pi)
