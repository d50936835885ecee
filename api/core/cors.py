"""
CORS origin policy.

The decision itself is a pure function (`evaluate_origin`) so it can be tested
without a server. `OriginPolicyMiddleware` plugs that decision into Starlette's
CORS middleware and adds one thing Starlette does not do: requests from an
origin the policy rejects are refused with a 403 before any route runs.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum

from starlette.datastructures import Headers
from starlette.middleware.cors import CORSMiddleware
from starlette.types import ASGIApp, Receive, Scope, Send

from .errors import OriginNotAllowed
from .settings import DEFAULT_ALLOWED_ORIGINS

ALLOWED_METHODS = ("GET", "POST", "PUT", "DELETE", "PATCH", "OPTIONS")
ALLOWED_HEADERS = ("Content-Type", "Authorization")

logger = logging.getLogger(__name__)


class CorsDecision(str, Enum):
    ALLOW = "allow"
    REJECT = "reject"


@dataclass(frozen=True)
class OriginPolicy:
    allowed_origins: tuple[str, ...]
    allow_any: bool = False
    mode: str = "strict"

    def is_listed(self, origin: str) -> bool:
        return origin in self.allowed_origins


def _normalize_origin(value: str) -> str:
    return (value or "").strip().rstrip("/")


def build_origin_policy(client_url: str = "", *, mode: str = "strict") -> OriginPolicy:
    """
    Build the immutable allow list from the deployed frontends, `CLIENT_URL`
    and the local dev servers (in that order). `CLIENT_URL="*"` allows any origin.
    """
    client_url = _normalize_origin(client_url)
    allow_any = client_url == "*"

    candidates = list(DEFAULT_ALLOWED_ORIGINS[:2])
    if client_url and not allow_any:
        candidates.append(client_url)
    candidates.extend(DEFAULT_ALLOWED_ORIGINS[2:])

    ordered: list[str] = []
    for origin in candidates:
        if origin not in ordered:
            ordered.append(origin)

    return OriginPolicy(allowed_origins=tuple(ordered), allow_any=allow_any, mode=mode)


def evaluate_origin(origin: str | None, policy: OriginPolicy) -> CorsDecision:
    # No Origin header: curl, mobile apps, server-to-server.
    if not origin:
        return CorsDecision.ALLOW
    if policy.allow_any or policy.is_listed(origin):
        return CorsDecision.ALLOW
    if policy.mode == "permissive":
        return CorsDecision.ALLOW
    return CorsDecision.REJECT


class OriginPolicyMiddleware(CORSMiddleware):
    def __init__(self, app: ASGIApp, policy: OriginPolicy) -> None:
        # Never hand Starlette "*": with credentials the exact origin must be echoed.
        super().__init__(
            app,
            allow_origins=policy.allowed_origins,
            allow_methods=ALLOWED_METHODS,
            allow_headers=ALLOWED_HEADERS,
            allow_credentials=True,
        )
        self.policy = policy

    def is_allowed_origin(self, origin: str) -> bool:
        return evaluate_origin(origin, self.policy) is CorsDecision.ALLOW

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        origin = Headers(scope=scope).get("origin")
        if origin and not self.policy.allow_any and not self.policy.is_listed(origin):
            if evaluate_origin(origin, self.policy) is CorsDecision.REJECT:
                logger.warning("CORS blocked origin: %s", origin)
                response = OriginNotAllowed(extra={"origin": origin}).to_response()
                await response(scope, receive, send)
                return
            logger.warning("CORS origin %s is not listed; allowed in permissive mode", origin)

        await super().__call__(scope, receive, send)
