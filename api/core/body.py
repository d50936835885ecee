"""
Request body handling.

Two layers:
- `BodyLimitMiddleware` enforces the byte ceiling for every request, before
  any handler reads the body (declared Content-Length is checked up front,
  streamed bodies are counted as they arrive).
- `parse_body` / `body_model` decode JSON and URL-encoded payloads for route
  handlers and attach the result to `request.state.body`.
"""

from __future__ import annotations

import json
from typing import Any, Awaitable, Callable, TypeVar
from urllib.parse import parse_qsl

from fastapi import Request
from pydantic import BaseModel, ValidationError
from starlette.datastructures import Headers
from starlette.types import ASGIApp, Message, Receive, Scope, Send

from .errors import MalformedBody, PayloadTooLarge, ValidationFailed
from .settings import MAX_BODY_BYTES

ModelT = TypeVar("ModelT", bound=BaseModel)

JSON_TYPES = {"application/json", "text/json"}
FORM_TYPE = "application/x-www-form-urlencoded"


def _too_large(max_bytes: int) -> PayloadTooLarge:
    return PayloadTooLarge(
        f"Request body exceeds the {max_bytes} byte limit.",
        extra={"limit": max_bytes},
    )


class BodyLimitMiddleware:
    def __init__(self, app: ASGIApp, max_bytes: int = MAX_BODY_BYTES) -> None:
        self.app = app
        self.max_bytes = max_bytes

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        declared = Headers(scope=scope).get("content-length")
        if declared is not None:
            try:
                declared_bytes = int(declared)
            except ValueError:
                await MalformedBody("Invalid Content-Length header.").to_response()(scope, receive, send)
                return
            if declared_bytes > self.max_bytes:
                await _too_large(self.max_bytes).to_response()(scope, receive, send)
                return

        received = 0
        response_started = False

        async def limited_receive() -> Message:
            nonlocal received
            message = await receive()
            if message["type"] == "http.request":
                received += len(message.get("body", b""))
                if received > self.max_bytes:
                    raise _too_large(self.max_bytes)
            return message

        async def tracking_send(message: Message) -> None:
            nonlocal response_started
            if message["type"] == "http.response.start":
                response_started = True
            await send(message)

        try:
            await self.app(scope, limited_receive, tracking_send)
        except PayloadTooLarge as exc:
            # Raised outside a route (the route layer renders it itself).
            if response_started:
                raise
            await exc.to_response()(scope, receive, send)


def _media_type(request: Request) -> str:
    raw = request.headers.get("content-type", "")
    return raw.split(";", 1)[0].strip().lower()


def _decode_utf8(raw: bytes) -> str:
    try:
        return raw.decode("utf-8")
    except UnicodeDecodeError as exc:
        raise MalformedBody("Request body is not valid UTF-8.") from exc


async def parse_body(request: Request) -> Any:
    """
    Decode a JSON or URL-encoded body. Returns None for empty bodies and for
    content types this parser does not handle (multipart is left to FastAPI).
    """
    media_type = _media_type(request)
    is_json = media_type in JSON_TYPES or media_type.endswith("+json")
    if not is_json and media_type != FORM_TYPE:
        request.state.body = None
        return None

    raw = await request.body()
    if not raw.strip():
        request.state.body = None
        return None

    text = _decode_utf8(raw)
    if is_json:
        try:
            parsed: Any = json.loads(text)
        except json.JSONDecodeError as exc:
            raise MalformedBody(
                "Malformed JSON body.",
                extra={"position": exc.pos},
            ) from exc
    else:
        try:
            parsed = dict(parse_qsl(text, keep_blank_values=True, encoding="utf-8", errors="strict"))
        except UnicodeDecodeError as exc:
            raise MalformedBody("Malformed form body.") from exc

    request.state.body = parsed
    return parsed


def body_model(model: type[ModelT]) -> Callable[[Request], Awaitable[ModelT]]:
    """
    FastAPI dependency factory: parse the body and validate it into `model`.
    """

    async def dependency(request: Request) -> ModelT:
        payload = await parse_body(request)
        try:
            return model.model_validate(payload if payload is not None else {})
        except ValidationError as exc:
            errors = exc.errors(include_url=False, include_context=False, include_input=False)
            raise ValidationFailed(extra={"errors": errors}) from exc

    return dependency
