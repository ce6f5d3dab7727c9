"""Application error taxonomy shared by services and the HTTP layer."""

from __future__ import annotations

from typing import Any, Optional


class AppError(Exception):
    """Base error carrying the HTTP status it maps to."""

    status_code: int = 500
    default_message: str = "Internal error"

    def __init__(self, message: Optional[str] = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationError(AppError):
    status_code = 400
    default_message = "Invalid request"


class UnauthorizedError(AppError):
    status_code = 401
    default_message = "Invalid GitHub token"


class ForbiddenError(AppError):
    status_code = 403
    default_message = "Access forbidden or API rate limit exceeded"


class RateLimitedError(ForbiddenError):
    default_message = "GitHub API rate limit exceeded"

    def __init__(self, message: Optional[str] = None, status_code: int = 403) -> None:
        super().__init__(message)
        self.status_code = status_code


class NotFoundError(AppError):
    status_code = 404
    default_message = "Not found"


class ConflictError(AppError):
    status_code = 409
    default_message = "Already exists"


class StorageError(AppError):
    status_code = 500
    default_message = "Database operation failed"


class UpstreamError(AppError):
    status_code = 502
    default_message = "GitHub request failed"


def upstream_error_from_result(result: Any, what: str) -> AppError:
    """Translate a failed fetch contract into the matching error kind."""
    status = getattr(result, "status_code", None)
    detail = getattr(result, "error", None)

    if status == 404:
        return NotFoundError(f"{what} not found")
    if status == 401:
        return UnauthorizedError()
    if status == 429 or getattr(result, "rate_limited", False):
        return RateLimitedError(status_code=429 if status == 429 else 403)
    if status == 403:
        return ForbiddenError()
    if status is None:
        return UpstreamError(f"GitHub request failed for {what}: {detail or 'network error'}")
    return UpstreamError(f"GitHub returned {status} for {what}")
