"""Fake Neo4j driver doubles shared by the test modules."""

from __future__ import annotations

from types import SimpleNamespace
from typing import Any

import anyio
import pytest
from neo4j import Record

from neo4jsource.shutdown import ShutdownRegistry


class FakeAccessModeError(Exception):
    """Stand-in for the server rejecting a write on a read replica."""


class _FakeResult:
    def __init__(self, keys: tuple[str, ...], rows: list[dict[str, Any]]) -> None:
        self._keys = keys
        self._rows = rows

    async def to_eager_result(self) -> SimpleNamespace:
        return SimpleNamespace(
            keys=list(self._keys),
            records=[Record(row) for row in self._rows],
            summary={"rows": len(self._rows)},
        )


class FakeSession:
    def __init__(self, driver: FakeDriver, database: str | None, default_access_mode: str) -> None:
        self.driver = driver
        self.database = database
        self.default_access_mode = default_access_mode
        self.closed = False
        self.queries: list[tuple[str, dict[str, Any]]] = []

    async def run(self, query: str, parameters: dict[str, Any] | None = None) -> _FakeResult:
        self.queries.append((query, dict(parameters or {})))
        await anyio.sleep(0)
        if self.driver.run_error is not None:
            raise self.driver.run_error
        if self.driver.read_only and self.default_access_mode == "WRITE":
            raise FakeAccessModeError("Writing in read access mode not allowed")
        keys, rows = self.driver.responses.get(query, ((), []))
        return _FakeResult(keys, rows)

    async def close(self) -> None:
        self.closed = True
        self.driver.sessions_closed += 1
        self.driver.open_sessions -= 1
        if self.driver.close_error is not None:
            raise self.driver.close_error


class FakeDriver:
    def __init__(self, url: str, auth: Any = None, **options: Any) -> None:
        self.url = url
        self.auth = auth
        self.options = options
        self.responses: dict[str, tuple[tuple[str, ...], list[dict[str, Any]]]] = {
            "RETURN 1 AS n": (("n",), [{"n": 1}]),
        }
        self.sessions: list[FakeSession] = []
        self.sessions_closed = 0
        self.open_sessions = 0
        self.max_open_sessions = 0
        self.verify_calls = 0
        self.close_calls = 0
        self.read_only = False
        self.connectivity_error: Exception | None = None
        self.run_error: Exception | None = None
        self.close_error: Exception | None = None

    async def verify_connectivity(self) -> None:
        self.verify_calls += 1
        if self.connectivity_error is not None:
            raise self.connectivity_error

    def session(self, *, database: str | None = None, default_access_mode: str = "WRITE") -> FakeSession:
        session = FakeSession(self, database, default_access_mode)
        self.sessions.append(session)
        self.open_sessions += 1
        self.max_open_sessions = max(self.max_open_sessions, self.open_sessions)
        return session

    async def close(self) -> None:
        self.close_calls += 1


class DriverFactory:
    """Replaces AsyncGraphDatabase.driver and remembers created drivers."""

    def __init__(self) -> None:
        self.drivers: list[FakeDriver] = []

    def __call__(self, url: str, auth: Any = None, **options: Any) -> FakeDriver:
        driver = FakeDriver(url, auth=auth, **options)
        self.drivers.append(driver)
        return driver

    @property
    def last(self) -> FakeDriver:
        return self.drivers[-1]


@pytest.fixture
def anyio_backend() -> str:
    return "asyncio"


@pytest.fixture
def driver_factory(monkeypatch: pytest.MonkeyPatch) -> DriverFactory:
    factory = DriverFactory()
    monkeypatch.setattr("neo4jsource.connections.AsyncGraphDatabase.driver", factory)
    return factory


@pytest.fixture
def shutdown() -> ShutdownRegistry:
    return ShutdownRegistry()
