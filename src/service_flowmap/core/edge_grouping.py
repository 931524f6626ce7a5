"""Grouping of directional interface records into logical edges.

Each unordered pair of services becomes one ``LogicalEdge`` carrying every
interface record between them, in either direction, in the order the
records were received. That order is what "interface 1 of N" navigation
walks, so it is never re-sorted.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field

from loguru import logger

from .models import InterfaceRecord, LogicalEdge

KEY_SEPARATOR = "::"

# Applied to ids inside a key so a separator can only come from the join
_KEY_ESCAPES = (("%", "%25"), (":", "%3A"))


def sorted_pair(a: str, b: str) -> tuple[str, str]:
    """Return the two ids in canonical order, independent of direction."""
    return (a, b) if a <= b else (b, a)


def _escape_id(node_id: str) -> str:
    for raw, escaped in _KEY_ESCAPES:
        node_id = node_id.replace(raw, escaped)
    return node_id


def edge_key(a: str, b: str) -> str:
    """Canonical key for the edge between ``a`` and ``b``.

    Colons and percent signs inside an id are percent-escaped, so distinct
    pairs never share a key.

    Example:
        >>> edge_key("B", "A") == edge_key("A", "B") == "A::B"
        True
    """
    first, second = sorted_pair(a, b)
    return f"{_escape_id(first)}{KEY_SEPARATOR}{_escape_id(second)}"


@dataclass(frozen=True)
class GroupingDiagnostic:
    """A record that was left out of grouping, and why."""

    interface_id: str
    reason: str


@dataclass
class GroupingResult:
    edges: list[LogicalEdge] = field(default_factory=list)
    diagnostics: list[GroupingDiagnostic] = field(default_factory=list)


def group_interfaces(interfaces: Iterable[InterfaceRecord]) -> GroupingResult:
    """Group interface records by unordered endpoint pair.

    Records with a missing or empty sender/receiver id are skipped and
    reported as diagnostics; the rest of the batch is still grouped.
    Edges are returned in order of first appearance of their pair.

    Args:
        interfaces: Raw interface records, as received from the source

    Returns:
        GroupingResult with the logical edges and any skipped records

    Example:
        >>> result = group_interfaces([ab, ba, ac])
        >>> [(e.key, e.is_bidirectional) for e in result.edges]
        [('A::B', True), ('A::C', False)]
    """
    groups: dict[tuple[str, str], list[InterfaceRecord]] = {}
    diagnostics: list[GroupingDiagnostic] = []

    for record in interfaces:
        if not record.sender_id or not record.receiver_id:
            missing = "sender_id" if not record.sender_id else "receiver_id"
            diagnostics.append(
                GroupingDiagnostic(interface_id=record.id, reason=f"missing {missing}")
            )
            logger.warning(f"Skipping interface {record.id!r}: missing {missing}")
            continue

        pair = sorted_pair(record.sender_id, record.receiver_id)
        groups.setdefault(pair, []).append(record)

    edges = []
    for (source, target), records in groups.items():
        forward = sum(1 for r in records if r.sender_id == source)
        reverse = len(records) - forward
        # A self-loop only ever flows one way
        is_bidirectional = source != target and forward > 0 and reverse > 0

        edges.append(
            LogicalEdge(
                key=edge_key(source, target),
                source=source,
                target=target,
                interfaces=records,
                is_bidirectional=is_bidirectional,
                forward_count=forward,
                reverse_count=reverse,
            )
        )

    logger.debug(
        f"Grouped {sum(len(e.interfaces) for e in edges)} interfaces into "
        f"{len(edges)} edges ({len(diagnostics)} skipped)"
    )

    return GroupingResult(edges=edges, diagnostics=diagnostics)
