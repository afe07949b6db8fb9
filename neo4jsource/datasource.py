"""Neo4j data source exposed to the query-serving framework."""

from __future__ import annotations

from pathlib import Path
from typing import Any, Mapping, Protocol, runtime_checkable

from .config import DataSourceConfig, coerce_config, load_config
from .connections import ConnectionManager
from .query import QueryExecutor, QueryOptions, QueryResult
from .shutdown import ShutdownRegistry


@runtime_checkable
class DataSource(Protocol):
    """Capability interface the host framework relies on."""

    def initialize(self, config: Any) -> None:
        """Receive per-request framework config (notably ``context``)."""

    async def run(
        self,
        query: str,
        params: Mapping[str, Any] | None = None,
        options: QueryOptions | Mapping[str, Any] | None = None,
    ) -> QueryResult:
        """Execute a query and return its materialized result."""


class Neo4jDataSource:
    """Data source that runs Cypher queries through one shared driver."""

    def __init__(
        self,
        config: DataSourceConfig | Mapping[str, Any],
        *,
        shutdown: ShutdownRegistry | None = None,
    ) -> None:
        self._config = coerce_config(config)
        self.context: object = {}
        self._connections = ConnectionManager(self._config, shutdown=shutdown)
        self._executor = QueryExecutor(self._connections, context=lambda: self.context)

    @classmethod
    def from_config_file(
        cls,
        path: Path | None = None,
        *,
        shutdown: ShutdownRegistry | None = None,
    ) -> Neo4jDataSource:
        """Build a data source from the TOML config and NEO4J_* environment."""

        return cls(load_config(path), shutdown=shutdown)

    @property
    def config(self) -> DataSourceConfig:
        return self._config

    @property
    def connections(self) -> ConnectionManager:
        return self._connections

    def initialize(self, config: Any) -> None:
        """Rebind the context used to resolve default database and access mode."""

        if isinstance(config, Mapping):
            context = config.get("context")
        else:
            context = getattr(config, "context", None)
        self.context = context or {}

    async def run(
        self,
        query: str,
        params: Mapping[str, Any] | None = None,
        options: QueryOptions | Mapping[str, Any] | None = None,
    ) -> QueryResult:
        return await self._executor.run(query, params, options)

    async def close(self) -> None:
        """Close the driver inside the caller's event loop.

        Hosts with a running loop should await this on shutdown; the exit
        hook then finds the driver already closed.
        """

        await self._connections.close()


__all__ = ["DataSource", "Neo4jDataSource"]
