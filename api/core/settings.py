"""
Process configuration read from environment variables.

Feature modules keep reading their own variables where they are used
(see `auth/security.py`, `ai/service.py`). This module owns the values the
request pipeline needs, collected once into `AppSettings` so the app factory
can be built with explicit settings in tests.
"""

from __future__ import annotations

import os
from dataclasses import dataclass

# Hard ceiling for request bodies (JSON, form and multipart alike).
MAX_BODY_BYTES = 10 * 1024 * 1024  # 10 MiB

API_PREFIX = "/api/v1"

UPLOADS_PATH = "/uploads"

# Deployed frontends and local dev servers that may always call the API.
DEFAULT_ALLOWED_ORIGINS = (
    "https://finbug.vercel.app",
    "https://fin-bug.vercel.app",
    "http://localhost:5173",
    "http://localhost:5174",
    "http://localhost:3000",
)

CORS_MODES = ("strict", "permissive")


def env_str(name: str, default: str = "") -> str:
    return os.environ.get(name, default).strip() or default


def env_int(name: str, default: int) -> int:
    raw = os.environ.get(name, "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def env_float(name: str, default: float) -> float:
    raw = os.environ.get(name, "").strip()
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def env_bool(name: str, default: bool) -> bool:
    raw = os.environ.get(name, "").strip().lower()
    if not raw:
        return default
    return raw in {"1", "true", "yes", "on"}


@dataclass(frozen=True)
class AppSettings:
    client_url: str = ""
    cors_mode: str = "strict"
    node_env: str = "production"
    db_connect_timeout_s: float = 10.0
    db_connect_on_startup: bool = True
    db_auto_migrate: bool = True
    uploads_dir: str = "uploads"
    log_level: str = "INFO"
    max_body_bytes: int = MAX_BODY_BYTES

    @property
    def is_development(self) -> bool:
        return self.node_env.lower() == "development"

    @classmethod
    def from_env(cls) -> AppSettings:
        cors_mode = env_str("CORS_MODE", "strict").lower()
        if cors_mode not in CORS_MODES:
            cors_mode = "strict"

        return cls(
            client_url=env_str("CLIENT_URL"),
            cors_mode=cors_mode,
            node_env=env_str("NODE_ENV", "production"),
            db_connect_timeout_s=env_float("DB_CONNECT_TIMEOUT_S", 10.0),
            db_connect_on_startup=env_bool("DB_CONNECT_ON_STARTUP", True),
            db_auto_migrate=env_bool("DB_AUTO_MIGRATE", True),
            uploads_dir=env_str("UPLOADS_DIR", "uploads"),
            log_level=env_str("LOG_LEVEL", "INFO").upper(),
        )


def server_host() -> str:
    return env_str("HOST", "0.0.0.0")


def server_port() -> int:
    return env_int("PORT", 8000)
