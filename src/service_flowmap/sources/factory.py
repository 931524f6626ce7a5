"""Pick a subgraph source from configuration."""

from loguru import logger

from ..config.settings import FlowMapConfig
from .base import SubgraphSource
from .http_source import HttpSubgraphSource
from .sqlite_source import SQLiteSubgraphSource


def create_source(config: FlowMapConfig) -> SubgraphSource:
    """Create the subgraph source for a configuration.

    A configured ``remote_url`` takes precedence over the local database.

    Args:
        config: Project configuration

    Returns:
        HttpSubgraphSource when ``remote_url`` is set, else SQLiteSubgraphSource
    """
    if config.remote_url:
        logger.debug(f"Using remote flowmap API at {config.remote_url}")
        return HttpSubgraphSource(config.remote_url)

    logger.debug(f"Using SQLite registry at {config.database_path}")
    return SQLiteSubgraphSource(config.database_path)
