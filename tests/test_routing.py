"""Tests for route module loading, mounting and the not-found fallback."""

from __future__ import annotations

import os

from fastapi.testclient import TestClient

from core.routing import ROUTE_MODULES, LoadedRoute, RouteLoadError, load_route_module, load_route_modules


class TestLoadRouteModules:
    def test_all_business_modules_load(self) -> None:
        results = load_route_modules()
        assert set(results) == set(ROUTE_MODULES)
        assert all(isinstance(result, LoadedRoute) for result in results.values())

    def test_missing_module_is_a_load_error(self) -> None:
        result = load_route_module("does_not_exist")
        assert isinstance(result, RouteLoadError)
        assert "ModuleNotFoundError" in result.message

    def test_module_without_router_is_a_load_error(self) -> None:
        # ledger.router only exposes a factory.
        result = load_route_module("ledger")
        assert isinstance(result, RouteLoadError)
        assert "AttributeError" in result.message

    def test_failures_are_logged_once_at_startup(self, make_app, caplog) -> None:
        table = {**ROUTE_MODULES, "/api/v1/broken": "does_not_exist"}
        with caplog.at_level("ERROR", logger="core.routing"):
            app = make_app(route_table=table)
            client = TestClient(app, raise_server_exceptions=False)
            client.get("/api/v1/broken/anything")
            client.get("/api/v1/broken/anything")

        messages = [r.getMessage() for r in caplog.records if "does_not_exist" in r.getMessage()]
        assert len(messages) == 1


class TestDispatch:
    def test_mounted_prefixes_are_recorded(self, app) -> None:
        assert app.state.mounted_routes == list(ROUTE_MODULES)

    def test_unloaded_module_degrades_to_404(self, make_app) -> None:
        table = {"/api/v1/income": "income", "/api/v1/bill": "does_not_exist"}
        app = make_app(route_table=table)
        client = TestClient(app, raise_server_exceptions=False)

        resp = client.post("/api/v1/bill/scan")
        assert resp.status_code == 404
        body = resp.json()
        assert body["message"] == "Route not found"
        assert "/api/v1/bill" not in body["availableRoutes"]
        assert "/api/v1/income" in body["availableRoutes"]

        # The rest of the API still serves (401 = reached the income router).
        assert client.get("/api/v1/income/get").status_code == 401

    def test_unknown_api_path_is_404_json(self, client: TestClient) -> None:
        resp = client.get("/api/v1/doesnotexist")
        assert resp.status_code == 404
        body = resp.json()
        assert body["message"] == "Route not found"
        assert body["path"] == "/api/v1/doesnotexist"
        assert "/api/v1/auth" in body["availableRoutes"]

    def test_unknown_top_level_path_is_404_json(self, client: TestClient) -> None:
        resp = client.get("/nowhere")
        assert resp.status_code == 404
        assert resp.json()["message"] == "Route not found"

    def test_uploads_are_served_statically(self, app, settings) -> None:
        client = TestClient(app, raise_server_exceptions=False)
        target = f"{settings.uploads_dir}/bills"
        os.makedirs(target, exist_ok=True)
        with open(f"{target}/receipt.png", "wb") as fh:
            fh.write(b"\x89PNG fake")

        resp = client.get("/uploads/bills/receipt.png")
        assert resp.status_code == 200
        assert resp.content == b"\x89PNG fake"

        missing = client.get("/uploads/bills/missing.png")
        assert missing.status_code == 404
        assert missing.json()["message"] == "File not found"
        assert "availableRoutes" not in missing.json()
