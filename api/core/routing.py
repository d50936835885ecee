"""
Route module loading and mounting.

Each business area lives in its own package exposing `router` from
`<package>/router.py`. Modules are imported once at startup; a module that
fails to import is recorded as a `RouteLoadError`, logged once, and left
unmounted. The rest of the API keeps serving.
"""

from __future__ import annotations

import importlib
import logging
from dataclasses import dataclass
from typing import Union

from fastapi import APIRouter, FastAPI

from .settings import API_PREFIX

logger = logging.getLogger(__name__)

# Path prefix -> importable package name.
ROUTE_MODULES: dict[str, str] = {
    f"{API_PREFIX}/auth": "auth",
    f"{API_PREFIX}/income": "income",
    f"{API_PREFIX}/expense": "expense",
    f"{API_PREFIX}/dashboard": "dashboard",
    f"{API_PREFIX}/ai": "ai",
    f"{API_PREFIX}/bill": "bill",
}


@dataclass(frozen=True)
class LoadedRoute:
    package: str
    router: APIRouter


@dataclass(frozen=True)
class RouteLoadError:
    package: str
    message: str


RouteLoadResult = Union[LoadedRoute, RouteLoadError]


def load_route_module(package: str) -> RouteLoadResult:
    try:
        module = importlib.import_module(f"{package}.router")
        router = getattr(module, "router")
    except Exception as exc:
        return RouteLoadError(package=package, message=f"{exc.__class__.__name__}: {exc}")

    if not isinstance(router, APIRouter):
        return RouteLoadError(package=package, message=f"{package}.router.router is not an APIRouter")
    return LoadedRoute(package=package, router=router)


def load_route_modules(table: dict[str, str] | None = None) -> dict[str, RouteLoadResult]:
    results: dict[str, RouteLoadResult] = {}
    for prefix, package in (table or ROUTE_MODULES).items():
        result = load_route_module(package)
        if isinstance(result, RouteLoadError):
            logger.error("Error loading %s routes, %s stays unmounted: %s", package, prefix, result.message)
        results[prefix] = result
    return results


def mount_route_modules(app: FastAPI, results: dict[str, RouteLoadResult]) -> list[str]:
    """
    Include every loaded router under its prefix. Returns the mounted prefixes.
    """
    mounted: list[str] = []
    for prefix, result in results.items():
        if isinstance(result, LoadedRoute):
            app.include_router(result.router, prefix=prefix, tags=[result.package])
            mounted.append(prefix)
    return mounted
