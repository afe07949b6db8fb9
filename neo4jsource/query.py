"""Query execution against sessions scoped to a single call."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Any, Callable, Mapping

from neo4j import Record

from .config import AccessMode, ConfigurationError, DataSourceConfig, DataSourceError
from .connections import ConnectionManager

LOG = logging.getLogger(__name__)

ContextProvider = Callable[[], object]


class QueryExecutionError(DataSourceError):
    """Raised when a query fails to execute."""

    def __init__(self, query: str, cause: BaseException | None = None, message: str | None = None) -> None:
        super().__init__(message or f"Query failed: {cause}")
        self.query = query
        self.cause = cause


class SessionCloseError(DataSourceError):
    """Raised when a query succeeded but its session failed to close."""

    def __init__(self, query: str, cause: BaseException, *, result: QueryResult) -> None:
        super().__init__(f"Session close failed after query completed: {cause}")
        self.query = query
        self.cause = cause
        self.result = result


@dataclass(frozen=True, slots=True)
class QueryOptions:
    """Per-call overrides for database and access mode."""

    database: str | None = None
    access_mode: AccessMode | None = None


@dataclass(frozen=True, slots=True)
class ResolvedOptions:
    database: str | None
    access_mode: AccessMode


@dataclass(frozen=True, slots=True)
class QueryResult:
    """Records materialized in memory once the query has finished."""

    keys: tuple[str, ...]
    records: tuple[Record, ...]
    database: str | None
    access_mode: AccessMode
    elapsed_ms: int
    summary: Any = None

    @property
    def row_count(self) -> int:
        return len(self.records)

    def single(self) -> Record:
        """Return the only record, raising ValueError for zero or many."""

        if len(self.records) != 1:
            raise ValueError(f"Expected exactly one record, got {len(self.records)}")
        return self.records[0]


def resolve_options(
    config: DataSourceConfig,
    context: object,
    options: QueryOptions | Mapping[str, Any] | None = None,
) -> ResolvedOptions:
    """Pick database and access mode: call options, then context, then config."""

    options = _coerce_options(options)
    database = _first_set(
        options.database,
        _context_value(context, "default_database", "defaultDatabase"),
        config.default_database,
    )
    access_mode = _first_set(
        options.access_mode,
        _context_value(context, "default_access_mode", "defaultAccessMode"),
        config.default_access_mode,
        AccessMode.READ,
    )
    return ResolvedOptions(database=database, access_mode=_parse_access_mode(access_mode))


class QueryExecutor:
    """Runs one query per call inside its own driver session."""

    def __init__(self, connections: ConnectionManager, context: ContextProvider | None = None) -> None:
        self._connections = connections
        self._context = context or dict

    async def run(
        self,
        query: str,
        params: Mapping[str, Any] | None = None,
        options: QueryOptions | Mapping[str, Any] | None = None,
    ) -> QueryResult:
        """Verify connectivity, then execute ``query`` in a fresh session.

        The session is closed before this returns, whether the query
        succeeded or not. Records are read eagerly so the result does not
        depend on the closed session.
        """

        if not query or not query.strip():
            raise QueryExecutionError(query, message="Provide a query to execute.")
        resolved = resolve_options(self._connections.config, self._context(), options)
        await self._connections.verify()

        started = time.perf_counter()
        session = self._connections.handle.session(
            database=resolved.database,
            default_access_mode=resolved.access_mode.value,
        )
        LOG.debug("Opened %s session on %s", resolved.access_mode.value, resolved.database or "<default>")
        result: QueryResult | None = None
        close_error: Exception | None = None
        try:
            eager = await (await session.run(query, dict(params or {}))).to_eager_result()
            result = QueryResult(
                keys=tuple(eager.keys),
                records=tuple(eager.records),
                database=resolved.database,
                access_mode=resolved.access_mode,
                elapsed_ms=int((time.perf_counter() - started) * 1000),
                summary=eager.summary,
            )
        except Exception as exc:
            raise QueryExecutionError(query, exc) from exc
        finally:
            try:
                await session.close()
            except Exception as exc:
                close_error = exc
                if result is None:
                    LOG.warning("Session close failed after query error: %s", exc)
        if close_error is not None:
            raise SessionCloseError(query, close_error, result=result) from close_error
        return result


def _coerce_options(options: QueryOptions | Mapping[str, Any] | None) -> QueryOptions:
    if options is None:
        return QueryOptions()
    if isinstance(options, QueryOptions):
        return options
    access_mode = _first_set(options.get("access_mode"), options.get("accessMode"))
    return QueryOptions(
        database=options.get("database"),
        access_mode=_parse_access_mode(access_mode) if access_mode is not None else None,
    )


def _parse_access_mode(value: object) -> AccessMode:
    try:
        return AccessMode.parse(value)
    except ValueError as exc:
        raise ConfigurationError(str(exc)) from exc


def _context_value(context: object, *names: str) -> Any:
    for name in names:
        if isinstance(context, Mapping):
            value = context.get(name)
        else:
            value = getattr(context, name, None)
        if value is not None:
            return value
    return None


def _first_set(*values: Any) -> Any:
    for value in values:
        if value is not None:
            return value
    return None


__all__ = [
    "ContextProvider",
    "QueryExecutionError",
    "QueryExecutor",
    "QueryOptions",
    "QueryResult",
    "ResolvedOptions",
    "SessionCloseError",
    "resolve_options",
]
