"""In-memory subgraph source."""

from __future__ import annotations

from collections.abc import Iterable
from pathlib import Path

from ..core.models import InterfaceRecord, ServiceRecord, Subgraph
from .base import build_subgraph, index_services, load_seed_file


class InMemorySubgraphSource:
    """Registry held in dictionaries, e.g. loaded from a seed file."""

    def __init__(
        self,
        services: Iterable[ServiceRecord] = (),
        interfaces: Iterable[InterfaceRecord] = (),
    ) -> None:
        self.services = index_services(services)
        self.interfaces: dict[str, InterfaceRecord] = {i.id: i for i in interfaces}

    @classmethod
    def from_file(cls, path: Path) -> InMemorySubgraphSource:
        services, interfaces = load_seed_file(path)
        return cls(services, interfaces)

    def add_service(self, service: ServiceRecord) -> None:
        self.services[service.id] = service

    def add_interface(self, interface: InterfaceRecord) -> None:
        self.interfaces[interface.id] = interface

    async def fetch_subgraph(self, center_id: str) -> Subgraph:
        matching = [
            i for i in self.interfaces.values() if center_id in (i.sender_id, i.receiver_id)
        ]
        return build_subgraph(center_id, self.services, matching)
