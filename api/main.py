"""
FinBug API entrypoint.

Request pipeline, outermost first:
gzip -> CORS origin policy -> body size ceiling -> DB readiness gate (/api/v1)
-> unhandled-error rendering -> routes (/, /api, /api/v1/*, /uploads)
-> 404 / error translation.
"""

from __future__ import annotations

import asyncio
import os
from contextlib import asynccontextmanager
from datetime import datetime, timezone

import uvicorn
from fastapi import FastAPI, Request
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.staticfiles import StaticFiles

from core import db
from core.body import BodyLimitMiddleware
from core.cors import OriginPolicyMiddleware, build_origin_policy
from core.handlers import UnhandledErrorMiddleware, register_exception_handlers
from core.log import configure_logging
from core.readiness import ConnectionGate, Connector, DatabaseGateMiddleware
from core.routing import load_route_modules, mount_route_modules
from core.settings import UPLOADS_PATH, AppSettings, server_host, server_port

APP_NAME = "FinBug API"


def _default_connector(settings: AppSettings) -> Connector:
    async def connect() -> None:
        await db.init_pool(
            timeout_s=settings.db_connect_timeout_s,
            migrate=settings.db_auto_migrate,
        )

    return connect


def create_app(
    settings: AppSettings | None = None,
    *,
    connector: Connector | None = None,
    route_table: dict[str, str] | None = None,
) -> FastAPI:
    settings = settings or AppSettings.from_env()
    configure_logging(settings.log_level)
    gate = ConnectionGate(connector or _default_connector(settings))

    @asynccontextmanager
    async def lifespan(_: FastAPI):
        warm_up = asyncio.create_task(gate.warm_up()) if settings.db_connect_on_startup else None
        try:
            yield
        finally:
            if warm_up is not None and not warm_up.done():
                warm_up.cancel()
            await db.close_pool()

    app = FastAPI(title=APP_NAME, lifespan=lifespan)
    app.state.settings = settings
    app.state.db_gate = gate

    route_modules = load_route_modules(route_table)
    app.state.route_modules = route_modules
    app.state.mounted_routes = mount_route_modules(app, route_modules)

    @app.get("/")
    @app.get("/api")
    def health(request: Request) -> dict:
        return {
            "message": f"{APP_NAME} is running",
            "status": "ok",
            "dbConnected": request.app.state.db_gate.ready,
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }

    os.makedirs(settings.uploads_dir, exist_ok=True)
    app.mount(UPLOADS_PATH, StaticFiles(directory=settings.uploads_dir), name="uploads")

    register_exception_handlers(app, development=settings.is_development)

    # Starlette wraps in reverse order: the last middleware added runs first.
    app.add_middleware(UnhandledErrorMiddleware, development=settings.is_development)
    app.add_middleware(DatabaseGateMiddleware, gate=gate)
    app.add_middleware(BodyLimitMiddleware, max_bytes=settings.max_body_bytes)
    app.add_middleware(
        OriginPolicyMiddleware,
        policy=build_origin_policy(settings.client_url, mode=settings.cors_mode),
    )
    app.add_middleware(GZipMiddleware, minimum_size=1000)

    return app


app = create_app()


def run() -> None:
    uvicorn.run(app, host=server_host(), port=server_port())


if __name__ == "__main__":
    run()
