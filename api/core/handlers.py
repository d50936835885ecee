"""
Terminal error translation.

Everything that escapes a route ends up here and leaves as a JSON body with at
least a `message` field. Stack traces are only ever sent to the client when the
app runs with `NODE_ENV=development`.

Unhandled exceptions are rendered by `UnhandledErrorMiddleware`, which sits
inside the CORS middleware, so error responses still carry the CORS headers
the browser needs to read them.
"""

from __future__ import annotations

import logging
import traceback

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.types import ASGIApp, Message, Receive, Scope, Send

from .errors import ApiError, InternalError, MalformedBody, NotFound, ValidationFailed
from .settings import UPLOADS_PATH

logger = logging.getLogger(__name__)

_ERROR_FIELDS = ("type", "loc", "msg")


def _status_from(exc: Exception) -> int:
    status_code = getattr(exc, "status_code", None)
    if isinstance(status_code, int) and 400 <= status_code <= 599:
        return status_code
    return 500


def _under_uploads(path: str) -> bool:
    return path == UPLOADS_PATH or path.startswith(UPLOADS_PATH + "/")


def route_not_found(request: Request) -> JSONResponse:
    mounted = getattr(request.app.state, "mounted_routes", [])
    error = NotFound(
        extra={
            "path": request.url.path,
            "availableRoutes": ["/", "/api", *mounted],
        }
    )
    return error.to_response()


def unhandled_error_response(exc: Exception, *, method: str, path: str, development: bool) -> JSONResponse:
    logger.error(
        "Unhandled error on %s %s",
        method,
        path,
        exc_info=(type(exc), exc, exc.__traceback__),
    )
    content = InternalError().body()
    if development:
        content["error"] = str(exc) or exc.__class__.__name__
        content["stack"] = "".join(traceback.format_exception(type(exc), exc, exc.__traceback__))
    return JSONResponse(status_code=_status_from(exc), content=content)


class UnhandledErrorMiddleware:
    """
    Innermost middleware: renders errors no route handled while the CORS and
    gzip layers are still around the response.
    """

    def __init__(self, app: ASGIApp, development: bool = False) -> None:
        self.app = app
        self.development = development

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        response_started = False

        async def tracking_send(message: Message) -> None:
            nonlocal response_started
            if message["type"] == "http.response.start":
                response_started = True
            await send(message)

        try:
            await self.app(scope, receive, tracking_send)
        except Exception as exc:
            if response_started:
                raise
            response = unhandled_error_response(
                exc,
                method=scope["method"],
                path=scope["path"],
                development=self.development,
            )
            await response(scope, receive, send)


def register_exception_handlers(app: FastAPI, *, development: bool = False) -> None:
    @app.exception_handler(StarletteHTTPException)
    async def http_error_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
        if isinstance(exc, ApiError):
            return exc.to_response()

        if exc.status_code == 404:
            if _under_uploads(request.url.path):
                return NotFound("File not found", extra={"path": request.url.path}).to_response()
            # No endpoint in scope means the router matched nothing at all.
            if "endpoint" not in request.scope:
                return route_not_found(request)

        detail = exc.detail
        content: dict = {"message": detail if isinstance(detail, str) else "Request failed"}
        if not isinstance(detail, str):
            content["detail"] = detail
        return JSONResponse(status_code=exc.status_code, content=content, headers=exc.headers)

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
        errors = [
            {key: error[key] for key in _ERROR_FIELDS if key in error}
            for error in exc.errors()
        ]
        if any(error.get("type") == "json_invalid" for error in errors):
            return MalformedBody("Malformed JSON body.").to_response()
        return ValidationFailed(extra={"errors": errors}).to_response()

    # Last resort for errors raised by the outer middleware layers themselves.
    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
        return unhandled_error_response(
            exc,
            method=request.method,
            path=request.url.path,
            development=development,
        )
