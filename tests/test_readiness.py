"""Tests for the database readiness gate."""

from __future__ import annotations

import asyncio

import pytest
from fastapi.testclient import TestClient

from core.readiness import ConnectionGate, ConnectionState

from .conftest import FakeConnector


class ConnectionTimeout(Exception):
    pass


class SlowConnector(FakeConnector):
    async def __call__(self) -> None:
        await asyncio.sleep(0.01)
        await super().__call__()


class TestConnectionGate:
    def test_starts_idle(self) -> None:
        gate = ConnectionGate(FakeConnector())
        assert gate.state is ConnectionState.IDLE
        assert gate.ready is False

    def test_concurrent_first_requests_share_one_attempt(self) -> None:
        connector = SlowConnector()
        gate = ConnectionGate(connector)

        async def scenario() -> None:
            await asyncio.gather(*(gate.ensure_ready() for _ in range(20)))

        asyncio.run(scenario())
        assert connector.calls == 1
        assert gate.ready is True
        assert gate.attempts == 1

    def test_ready_is_final(self) -> None:
        connector = FakeConnector()
        gate = ConnectionGate(connector)

        async def scenario() -> None:
            for _ in range(5):
                await gate.ensure_ready()

        asyncio.run(scenario())
        assert connector.calls == 1
        assert gate.state is ConnectionState.READY

    def test_concurrent_waiters_all_see_the_failure(self) -> None:
        connector = SlowConnector(failures=1)
        gate = ConnectionGate(connector)

        async def scenario() -> list:
            return await asyncio.gather(
                *(gate.ensure_ready() for _ in range(5)),
                return_exceptions=True,
            )

        results = asyncio.run(scenario())
        assert connector.calls == 1
        assert all(isinstance(result, ConnectionError) for result in results)
        assert gate.state is ConnectionState.FAILED

    def test_failure_is_retried_by_the_next_caller(self) -> None:
        connector = FakeConnector(failures=1, error=ConnectionTimeout("timed out"))
        gate = ConnectionGate(connector)

        async def scenario() -> None:
            with pytest.raises(ConnectionTimeout):
                await gate.ensure_ready()
            assert gate.state is ConnectionState.FAILED
            assert isinstance(gate.last_error, ConnectionTimeout)
            await gate.ensure_ready()

        asyncio.run(scenario())
        assert connector.calls == 2
        assert gate.ready is True
        assert gate.last_error is None

    def test_warm_up_logs_instead_of_raising(self, caplog) -> None:
        gate = ConnectionGate(FakeConnector(failures=1))
        with caplog.at_level("WARNING", logger="core.readiness"):
            asyncio.run(gate.warm_up())
        assert gate.state is ConnectionState.FAILED
        assert any("warm-up failed" in record.getMessage() for record in caplog.records)


class TestDatabaseGateMiddleware:
    def test_connection_failure_returns_503_and_retries(self, make_app) -> None:
        connector = FakeConnector(failures=1, error=ConnectionTimeout("Connection timed out after 10s."))
        app = make_app(connector=connector)
        client = TestClient(app, raise_server_exceptions=False)

        resp = client.get("/api/v1/dashboard/")
        assert resp.status_code == 503
        assert resp.json()["message"] == "Database connection failed"
        assert resp.json()["error"] == "Connection timed out after 10s."
        assert app.state.db_gate.ready is False

        # Next request retries; it now fails on auth instead of the database.
        resp = client.get("/api/v1/dashboard/")
        assert connector.calls == 2
        assert resp.status_code == 401
        assert app.state.db_gate.ready is True

    @pytest.mark.parametrize("path", ["/", "/api"])
    def test_health_does_not_touch_the_database(self, make_app, path: str) -> None:
        connector = FakeConnector(failures=99)
        client = TestClient(make_app(connector=connector), raise_server_exceptions=False)

        resp = client.get(path)
        assert resp.status_code == 200
        body = resp.json()
        assert body["status"] == "ok"
        assert body["dbConnected"] is False
        assert "timestamp" in body
        assert connector.calls == 0

    def test_health_reports_connection_after_first_api_request(self, client: TestClient) -> None:
        client.get("/api/v1/auth/getUser")
        assert client.get("/api").json()["dbConnected"] is True

    def test_lifespan_warm_up_connects_eagerly(self, make_app, connector) -> None:
        app = make_app(db_connect_on_startup=True)
        with TestClient(app) as client:
            for _ in range(50):
                if app.state.db_gate.ready:
                    break
                client.get("/")
            assert app.state.db_gate.ready is True
        assert connector.calls == 1
