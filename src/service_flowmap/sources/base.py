"""Subgraph source contract and shared subgraph assembly.

A source answers one question: given a service id, which services and
interfaces surround it. The core treats the initial search and every
incremental expand identically, merging results rather than replacing.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from pathlib import Path
from typing import Any, Protocol, runtime_checkable

import orjson
import yaml
from loguru import logger
from pydantic import ValidationError

from ..core.exceptions import DataSourceError
from ..core.models import InterfaceRecord, ServiceRecord, ServiceStatus, Subgraph


@runtime_checkable
class SubgraphSource(Protocol):
    """Anything that can look up the neighbourhood of a service."""

    async def fetch_subgraph(self, center_id: str) -> Subgraph:
        """Return the service plus every interface naming it.

        Must return ``Subgraph.not_found(center_id)`` (not raise) for an
        unknown id with no interfaces. Raises ``DataSourceError`` when the
        underlying store or API fails.
        """
        ...


def build_subgraph(
    center_id: str,
    services: Mapping[str, ServiceRecord],
    interfaces: list[InterfaceRecord],
) -> Subgraph:
    """Assemble a subgraph from registry services and matching interfaces.

    Connected ids are ``[center, *senders, *receivers]`` in first-appearance
    order with empty ids dropped. Ids missing from ``services`` get a
    placeholder named after the interface's counterpart name (or the id).

    Args:
        center_id: Searched service id
        services: Registry entries known for (a superset of) connected ids
        interfaces: Interfaces whose sender or receiver is ``center_id``

    Returns:
        Subgraph, with ``found=False`` when there is nothing to show
    """
    if not interfaces:
        service = services.get(center_id)
        if service is None:
            return Subgraph.not_found(center_id)
        return Subgraph(center_id=center_id, nodes=[service], interfaces=[])

    connected: dict[str, None] = {center_id: None}
    for record in interfaces:
        if record.sender_id:
            connected.setdefault(record.sender_id, None)
    for record in interfaces:
        if record.receiver_id:
            connected.setdefault(record.receiver_id, None)

    placeholder_names: dict[str, str] = {}
    for record in interfaces:
        if record.sender_id and record.sender_id not in services:
            placeholder_names[record.sender_id] = record.sender_name or record.sender_id
        if record.receiver_id and record.receiver_id not in services:
            placeholder_names[record.receiver_id] = record.receiver_name or record.receiver_id

    nodes = []
    for app_id in connected:
        existing = services.get(app_id)
        if existing is not None:
            nodes.append(existing)
            continue
        nodes.append(
            ServiceRecord(
                id=app_id,
                name=placeholder_names.get(app_id, app_id),
                status=ServiceStatus.ACTIVE,
                placeholder=True,
            )
        )

    placeholders = sum(1 for n in nodes if n.placeholder)
    logger.debug(
        f"Subgraph for {center_id!r}: {len(nodes)} services "
        f"({placeholders} placeholders), {len(interfaces)} interfaces"
    )
    return Subgraph(center_id=center_id, nodes=nodes, interfaces=interfaces)


def parse_records(
    data: Mapping[str, Any],
) -> tuple[list[ServiceRecord], list[InterfaceRecord]]:
    """Validate a ``{services: [...], interfaces: [...]}`` document.

    Raises:
        DataSourceError: If any record is invalid
    """
    try:
        services = [ServiceRecord.model_validate(s) for s in data.get("services") or []]
        interfaces = [InterfaceRecord.model_validate(i) for i in data.get("interfaces") or []]
    except ValidationError as e:
        raise DataSourceError(f"Invalid seed records: {e}", {"errors": e.errors()}) from e
    return services, interfaces


def load_seed_file(path: Path) -> tuple[list[ServiceRecord], list[InterfaceRecord]]:
    """Load services and interfaces from a JSON or YAML file.

    Raises:
        DataSourceError: If the file is missing, unparsable, or invalid
    """
    if not path.exists():
        raise DataSourceError(f"Seed file not found: {path}", {"path": str(path)})

    raw = path.read_bytes()
    try:
        if path.suffix.lower() == ".json":
            data = orjson.loads(raw)
        else:
            data = yaml.safe_load(raw) or {}
    except (orjson.JSONDecodeError, yaml.YAMLError) as e:
        raise DataSourceError(f"Failed to parse {path}: {e}", {"path": str(path)}) from e

    if not isinstance(data, dict):
        raise DataSourceError(
            f"Seed file must contain a mapping with services/interfaces: {path}",
            {"path": str(path)},
        )
    return parse_records(data)


def index_services(services: Iterable[ServiceRecord]) -> dict[str, ServiceRecord]:
    return {s.id: s for s in services}
