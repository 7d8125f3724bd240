"""
Service Errors

Every expected failure of a business operation is raised as a ServiceError
carrying a machine-readable error code and the HTTP status it maps to. The
FastAPI handlers registered in main.py render them as
{"error": <code>, "code": <status>, "message": <text>}.
"""

import logging

from fastapi import Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


class ServiceError(Exception):
    """Base exception for service errors."""

    def __init__(
        self,
        message: str,
        error_code: str,
        status_code: int = 400,
        headers: dict[str, str] | None = None,
    ):
        self.message = message
        self.error_code = error_code
        self.status_code = status_code
        self.headers = headers
        super().__init__(message)

    def to_dict(self) -> dict:
        return {"error": self.error_code, "code": self.status_code, "message": self.message}


class UnauthorizedError(ServiceError):
    """Raised when the caller is not (or no longer) authenticated."""

    def __init__(self, error_code: str = "unauthorized", message: str = "Authentication required."):
        super().__init__(
            message=message,
            error_code=error_code,
            status_code=status.HTTP_401_UNAUTHORIZED,
            headers={"WWW-Authenticate": "Bearer"},
        )


class ForbiddenError(ServiceError):
    """Raised when the caller may not perform the action on the resource."""

    def __init__(
        self,
        message: str = "You are not allowed to perform this action.",
        error_code: str = "forbidden",
    ):
        super().__init__(
            message=message,
            error_code=error_code,
            status_code=status.HTTP_403_FORBIDDEN,
        )


class NotFoundError(ServiceError):
    """Raised when a resource is absent or soft-deleted."""

    def __init__(self, resource: str, resource_id: str | None = None):
        self.resource = resource
        message = f"{resource} {resource_id} not found" if resource_id else f"{resource} not found"
        super().__init__(
            message=message,
            error_code=f"{resource}_not_found",
            status_code=status.HTTP_404_NOT_FOUND,
        )


class ConflictError(ServiceError):
    """Raised when a business invariant or state transition would be violated."""

    def __init__(self, error_code: str, message: str):
        super().__init__(
            message=message,
            error_code=error_code,
            status_code=status.HTTP_409_CONFLICT,
        )


class RateLimitExceededError(ServiceError):
    """Raised when the caller exhausted its quota for the current window."""

    def __init__(self, limit: int, window_seconds: int, headers: dict[str, str]):
        super().__init__(
            message=f"Rate limit exceeded. Maximum {limit} requests per {window_seconds} seconds.",
            error_code="rate_limit_exceeded",
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            headers=headers,
        )


async def service_error_handler(_request: Request, exc: ServiceError) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict(), headers=exc.headers)


async def validation_error_handler(_request: Request, exc: RequestValidationError) -> JSONResponse:
    """Render request validation failures as a flat list of field errors."""
    errors = [
        {
            "field": ".".join(str(part) for part in error["loc"] if part != "body"),
            "message": error["msg"],
        }
        for error in exc.errors()
    ]
    return JSONResponse(
        status_code=422,
        content={"errors": errors, "message": "request_validation_error"},
    )
