from __future__ import annotations

from typing import Any


class ServiceError(RuntimeError):
    """Business rule failure that maps onto an HTTP error response."""

    status_code: int = 400

    def __init__(self, message: str, *, status_code: int | None = None, payload: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code
        self.payload = payload or {}

    def to_dict(self) -> dict[str, Any]:
        return {"error": self.message, **self.payload}


class ValidationFailed(ServiceError):
    status_code = 400


class Unauthorized(ServiceError):
    status_code = 401


class PaymentRequired(ServiceError):
    status_code = 402


class Forbidden(ServiceError):
    status_code = 403


class NotFound(ServiceError):
    status_code = 404


class Conflict(ServiceError):
    status_code = 409


class RateLimited(ServiceError):
    status_code = 429


class UpstreamError(ServiceError):
    status_code = 502


class ServiceUnavailable(ServiceError):
    status_code = 503
