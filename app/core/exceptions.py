from __future__ import annotations

from typing import Any


class DomainError(Exception):
    """Base for errors raised by the service layer and rendered at the request boundary."""

    status_code = 400
    code = "bad_request"

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}


class ValidationError(DomainError):
    status_code = 400
    code = "validation_error"


class NotFoundError(DomainError):
    status_code = 404
    code = "not_found"


class AccessDenied(DomainError):
    status_code = 403
    code = "access_denied"


class InvalidStateError(DomainError):
    status_code = 400
    code = "invalid_state"


class LimitExceededError(DomainError):
    status_code = 400
    code = "limit_exceeded"


class ConflictError(DomainError):
    status_code = 409
    code = "conflict"


__all__ = [
    "DomainError",
    "ValidationError",
    "NotFoundError",
    "AccessDenied",
    "InvalidStateError",
    "LimitExceededError",
    "ConflictError",
]
