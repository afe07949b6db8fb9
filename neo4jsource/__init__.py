"""Neo4j data source for query-serving frameworks."""

from .config import (
    AccessMode,
    ConfigurationError,
    DataSourceConfig,
    DataSourceError,
    load_config,
)
from .connections import ConnectionManager, ConnectivityError
from .datasource import DataSource, Neo4jDataSource
from .query import (
    QueryExecutionError,
    QueryExecutor,
    QueryOptions,
    QueryResult,
    SessionCloseError,
    resolve_options,
)
from .shutdown import ShutdownRegistry

__all__ = [
    "AccessMode",
    "ConfigurationError",
    "ConnectionManager",
    "ConnectivityError",
    "DataSource",
    "DataSourceConfig",
    "DataSourceError",
    "Neo4jDataSource",
    "QueryExecutionError",
    "QueryExecutor",
    "QueryOptions",
    "QueryResult",
    "SessionCloseError",
    "ShutdownRegistry",
    "load_config",
    "resolve_options",
]
