"""Subgraph sources: where services and interfaces come from."""

from .base import SubgraphSource, build_subgraph, load_seed_file
from .factory import create_source
from .http_source import HttpSubgraphSource
from .memory import InMemorySubgraphSource
from .sqlite_source import SQLiteSubgraphSource

__all__ = [
    "HttpSubgraphSource",
    "InMemorySubgraphSource",
    "SQLiteSubgraphSource",
    "SubgraphSource",
    "build_subgraph",
    "create_source",
    "load_seed_file",
]
