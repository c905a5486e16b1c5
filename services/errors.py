from __future__ import annotations

from typing import Optional


class ServiceError(Exception):
    """Base class for service-layer exceptions mapped to HTTP responses.

    Each subclass fixes an HTTP status_code and an error_code:
    - VALIDATION_ERROR / BAD_REQUEST (400)
    - UNAUTHORIZED (401)
    - FORBIDDEN (403)
    - NOT_FOUND (404)
    - CONFLICT (409)
    - INTERNAL_ERROR (500)
    """

    status_code: int = 400
    error_code: str = "VALIDATION_ERROR"

    def __init__(
        self,
        message: str,
        *,
        detail: Optional[dict] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.detail = detail or {}


class ValidationError(ServiceError):
    """Request validation failed (400)."""
    status_code = 400
    error_code = "VALIDATION_ERROR"


class BadRequestError(ValidationError):
    """Well-formed input that cannot be applied (400)."""
    error_code = "BAD_REQUEST"


class UnauthorizedError(ServiceError):
    """Missing, bad, expired or revoked credentials (401)."""
    status_code = 401
    error_code = "UNAUTHORIZED"


class ForbiddenError(ServiceError):
    """Authenticated, but role or ownership is insufficient (403)."""
    status_code = 403
    error_code = "FORBIDDEN"


class NotFoundError(ServiceError):
    status_code = 404
    error_code = "NOT_FOUND"


class ConflictError(ServiceError):
    """Uniqueness violation: duplicate email, duplicate check-in (409)."""
    status_code = 409
    error_code = "CONFLICT"


class InternalError(ServiceError):
    """Unexpected store/codec failure (500). The message is safe to return."""
    status_code = 500
    error_code = "INTERNAL_ERROR"


__all__ = [
    "ServiceError",
    "ValidationError",
    "BadRequestError",
    "UnauthorizedError",
    "ForbiddenError",
    "NotFoundError",
    "ConflictError",
    "InternalError",
]
