"""Registry of cleanup actions drained once when the process exits."""

from __future__ import annotations

import asyncio
import atexit
import inspect
import logging
import threading
from typing import Any, Awaitable, Callable

LOG = logging.getLogger(__name__)

ShutdownCallback = Callable[[], "Awaitable[Any] | Any"]


class ShutdownRegistry:
    """Collects shutdown callbacks and runs each of them exactly once."""

    _process_registry: ShutdownRegistry | None = None
    _process_lock = threading.Lock()

    def __init__(self) -> None:
        self._callbacks: list[ShutdownCallback] = []
        self._drained = False
        self._installed = False

    @classmethod
    def process(cls) -> ShutdownRegistry:
        """Return the process-wide registry, hooked into interpreter exit."""

        with cls._process_lock:
            if cls._process_registry is None:
                registry = cls()
                registry.install()
                cls._process_registry = registry
            return cls._process_registry

    @property
    def drained(self) -> bool:
        return self._drained

    @property
    def pending(self) -> int:
        """Number of callbacks still waiting to run."""

        return len(self._callbacks)

    def register(self, callback: ShutdownCallback) -> None:
        """Register a sync or async callback to run at shutdown."""

        if self._drained:
            raise RuntimeError("Shutdown registry has already been drained")
        self._callbacks.append(callback)

    def install(self) -> None:
        """Drain this registry from an ``atexit`` hook."""

        if self._installed:
            return
        atexit.register(self._run_at_exit)
        self._installed = True

    async def drain(self) -> None:
        """Run pending callbacks, newest first. Later calls do nothing."""

        if self._drained:
            return
        self._drained = True
        callbacks, self._callbacks = self._callbacks, []
        for callback in reversed(callbacks):
            try:
                result = callback()
                if inspect.isawaitable(result):
                    await result
            except Exception:
                LOG.warning("Shutdown callback %r failed", callback, exc_info=True)
        LOG.debug("Drained %d shutdown callback(s)", len(callbacks))

    def _run_at_exit(self) -> None:
        if self._drained:
            return
        asyncio.run(self.drain())


__all__ = ["ShutdownCallback", "ShutdownRegistry"]
