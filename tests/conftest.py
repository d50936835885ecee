"""Shared pytest fixtures."""

from __future__ import annotations

import dataclasses
from datetime import datetime, timezone

import pytest
from fastapi.testclient import TestClient

import main
from auth import dependencies as auth_dependencies
from core.settings import AppSettings


class FakeConnector:
    """Stands in for the asyncpg pool opener; fails the first `failures` calls."""

    def __init__(self, failures: int = 0, error: Exception | None = None) -> None:
        self.failures = failures
        self.error = error or ConnectionError("Database unreachable")
        self.calls = 0

    async def __call__(self) -> None:
        self.calls += 1
        if self.calls <= self.failures:
            raise self.error


@pytest.fixture
def user_row() -> dict:
    return {
        "id": 7,
        "full_name": "Test User",
        "email": "test@example.com",
        "password_hash": "",
        "profile_image_url": None,
        "is_active": True,
        "created_at": datetime(2026, 1, 1, tzinfo=timezone.utc),
        "updated_at": datetime(2026, 1, 1, tzinfo=timezone.utc),
    }


@pytest.fixture
def settings(tmp_path) -> AppSettings:
    return AppSettings(uploads_dir=str(tmp_path / "uploads"), db_connect_on_startup=False)


@pytest.fixture
def connector() -> FakeConnector:
    return FakeConnector()


@pytest.fixture
def make_app(settings: AppSettings, connector: FakeConnector):
    def _make(*, connector=connector, route_table=None, **overrides):
        return main.create_app(
            dataclasses.replace(settings, **overrides),
            connector=connector,
            route_table=route_table,
        )

    return _make


@pytest.fixture
def app(make_app):
    return make_app()


@pytest.fixture
def client(app) -> TestClient:
    return TestClient(app, raise_server_exceptions=False)


@pytest.fixture
def authed_client(app, user_row: dict) -> TestClient:
    """Client whose requests are authenticated as `user_row`."""
    app.dependency_overrides[auth_dependencies.get_current_user] = lambda: user_row
    return TestClient(app, raise_server_exceptions=False)
