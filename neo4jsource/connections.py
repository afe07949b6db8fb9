"""Ownership of the long-lived Neo4j driver."""

from __future__ import annotations

import logging
from urllib.parse import urlsplit

from neo4j import AsyncDriver, AsyncGraphDatabase

from .config import ConfigurationError, DataSourceConfig, DataSourceError
from .shutdown import ShutdownRegistry

LOG = logging.getLogger(__name__)

SUPPORTED_SCHEMES = frozenset({"bolt", "bolt+s", "bolt+ssc", "neo4j", "neo4j+s", "neo4j+ssc"})


class ConnectivityError(DataSourceError):
    """Raised when the driver cannot reach the database."""

    def __init__(self, reason: str) -> None:
        super().__init__(f"Neo4j is unreachable: {reason}")
        self.reason = reason


class ConnectionManager:
    """Creates one driver per data source and closes it at shutdown."""

    def __init__(self, config: DataSourceConfig, *, shutdown: ShutdownRegistry | None = None) -> None:
        url = _require_url(config.url)
        if shutdown is None:
            shutdown = ShutdownRegistry.process()
        self._config = config
        self._closed = False
        self._driver: AsyncDriver = AsyncGraphDatabase.driver(
            url,
            auth=config.auth,
            **config.driver_options,
        )
        LOG.debug("Created Neo4j driver for %s", url)
        shutdown.register(self.close)

    @property
    def config(self) -> DataSourceConfig:
        return self._config

    @property
    def handle(self) -> AsyncDriver:
        """The live driver shared by every query."""

        return self._driver

    @property
    def closed(self) -> bool:
        return self._closed

    async def verify(self) -> None:
        """Check the driver can reach the server; raise ConnectivityError if not."""

        try:
            await self._driver.verify_connectivity()
        except Exception as exc:
            raise ConnectivityError(str(exc) or type(exc).__name__) from exc

    async def close(self) -> None:
        """Close the driver. Later calls, including the exit hook's, do nothing."""

        if self._closed:
            return
        self._closed = True
        await self._driver.close()
        LOG.debug("Closed Neo4j driver")


def _require_url(url: str | None) -> str:
    value = (url or "").strip()
    if not value:
        raise ConfigurationError("A Neo4j url is required.")
    scheme = urlsplit(value).scheme.lower()
    if scheme not in SUPPORTED_SCHEMES:
        raise ConfigurationError(f"Unsupported Neo4j url scheme in '{value}'.")
    return value


__all__ = [
    "ConnectionManager",
    "ConnectivityError",
    "SUPPORTED_SCHEMES",
]
