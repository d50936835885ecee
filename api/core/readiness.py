"""
Database readiness gate.

`ConnectionGate` turns "connect to the database" into a state cell that every
request can consult cheaply:

    IDLE -> CONNECTING -> READY
                       -> FAILED -> CONNECTING (next request retries)

Only one connection attempt is ever in flight. Requests that arrive while it
is pending await the same task instead of starting their own. READY is final
for the life of the process.
"""

from __future__ import annotations

import asyncio
import logging
from enum import Enum
from typing import Awaitable, Callable

from starlette.types import ASGIApp, Receive, Scope, Send

from .errors import ServiceUnavailable
from .settings import API_PREFIX

logger = logging.getLogger(__name__)

Connector = Callable[[], Awaitable[None]]


class ConnectionState(str, Enum):
    IDLE = "idle"
    CONNECTING = "connecting"
    READY = "ready"
    FAILED = "failed"


class ConnectionGate:
    def __init__(self, connect: Connector) -> None:
        self._connect = connect
        self._state = ConnectionState.IDLE
        self._attempt: asyncio.Future[None] | None = None
        self._last_error: Exception | None = None
        self.attempts = 0

    @property
    def state(self) -> ConnectionState:
        return self._state

    @property
    def ready(self) -> bool:
        return self._state is ConnectionState.READY

    @property
    def last_error(self) -> Exception | None:
        return self._last_error

    async def ensure_ready(self) -> None:
        """
        Return once the database is connected; raise the connector's error if
        the (shared) attempt fails.
        """
        if self._state is ConnectionState.READY:
            return None

        # No await between the check and the assignment, so concurrent callers
        # on this event loop always see the same in-flight attempt.
        if self._attempt is None:
            self._attempt = asyncio.ensure_future(self._run_attempt())
        attempt = self._attempt

        # A cancelled request must not cancel the attempt other requests wait on.
        await asyncio.shield(attempt)

    async def _run_attempt(self) -> None:
        self._state = ConnectionState.CONNECTING
        self.attempts += 1
        try:
            await self._connect()
        except Exception as exc:
            self._state = ConnectionState.FAILED
            self._last_error = exc
            logger.error("Database connection attempt %d failed: %s", self.attempts, exc)
            raise
        else:
            self._state = ConnectionState.READY
            self._last_error = None
            logger.info("Database connected after %d attempt(s)", self.attempts)
        finally:
            if self._state is ConnectionState.CONNECTING:
                self._state = ConnectionState.IDLE
            self._attempt = None

    async def warm_up(self) -> None:
        """
        Eager connect at startup. Failures are logged; the next request retries.
        """
        try:
            await self.ensure_ready()
        except Exception as exc:
            logger.warning("Database warm-up failed, requests will retry: %s", exc)


def _under_prefix(path: str, prefix: str) -> bool:
    return path == prefix or path.startswith(prefix + "/")


class DatabaseGateMiddleware:
    def __init__(self, app: ASGIApp, gate: ConnectionGate, prefix: str = API_PREFIX) -> None:
        self.app = app
        self.gate = gate
        self.prefix = prefix.rstrip("/")

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http" or not _under_prefix(scope["path"], self.prefix):
            await self.app(scope, receive, send)
            return

        if not self.gate.ready:
            try:
                await self.gate.ensure_ready()
            except Exception as exc:
                error = str(exc) or exc.__class__.__name__
                await ServiceUnavailable(extra={"error": error}).to_response()(scope, receive, send)
                return

        await self.app(scope, receive, send)
