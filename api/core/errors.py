"""
Error taxonomy for the request pipeline.

Every error here is an `HTTPException`, so it can be raised from a route,
a dependency or a middleware and still end up as the same JSON envelope:
`{"message": ..., "code": ..., **extra}`.
"""

from __future__ import annotations

from typing import Any

from fastapi import HTTPException, status
from fastapi.responses import JSONResponse


class ApiError(HTTPException):
    status_code_default = status.HTTP_500_INTERNAL_SERVER_ERROR
    code = "internal_error"
    message = "Internal server error"

    def __init__(
        self,
        message: str | None = None,
        *,
        status_code: int | None = None,
        extra: dict[str, Any] | None = None,
        headers: dict[str, str] | None = None,
    ) -> None:
        super().__init__(
            status_code=status_code or self.status_code_default,
            detail=message or self.message,
            headers=headers,
        )
        self.extra = dict(extra or {})

    def body(self) -> dict[str, Any]:
        return {"message": str(self.detail), "code": self.code, **self.extra}

    def to_response(self) -> JSONResponse:
        return JSONResponse(status_code=self.status_code, content=self.body(), headers=self.headers)


class OriginNotAllowed(ApiError):
    status_code_default = status.HTTP_403_FORBIDDEN
    code = "origin_not_allowed"
    message = "Origin not allowed by CORS policy"


class MalformedBody(ApiError):
    status_code_default = status.HTTP_400_BAD_REQUEST
    code = "malformed_body"
    message = "Malformed request body"


class PayloadTooLarge(ApiError):
    status_code_default = 413
    code = "payload_too_large"
    message = "Request body too large"


class ValidationFailed(ApiError):
    status_code_default = 422
    code = "validation_failed"
    message = "Request validation failed"


class NotFound(ApiError):
    status_code_default = status.HTTP_404_NOT_FOUND
    code = "not_found"
    message = "Route not found"


class InternalError(ApiError):
    pass


class ServiceUnavailable(ApiError):
    status_code_default = status.HTTP_503_SERVICE_UNAVAILABLE
    code = "service_unavailable"
    message = "Database connection failed"
