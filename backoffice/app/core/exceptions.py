"""
Custom exceptions and error handlers for consistent error responses.

Provides standardized error codes and global exception handlers.
"""

import logging
from fastapi import HTTPException, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError
from typing import Any, Dict

logger = logging.getLogger(__name__)


class AppException(Exception):
    """Base application exception."""

    def __init__(self, message: str, error_code: str, status_code: int = 500, details: Dict[str, Any] = None):
        self.message = message
        self.error_code = error_code
        self.status_code = status_code
        self.details = details or {}
        super().__init__(message)


class ResourceNotFoundError(AppException):
    """Raised when requested resource is not found."""

    def __init__(self, resource: str, resource_id: Any = None):
        message = f"{resource} not found"
        if resource_id is not None:
            message = f"{resource} with ID {resource_id} not found"
        super().__init__(
            message=message,
            error_code="ERR_NOT_FOUND_001",
            status_code=status.HTTP_404_NOT_FOUND,
            details={"resource": resource, "id": resource_id}
        )


class DuplicateResourceError(AppException):
    """Raised when a unique field collides with an existing row."""

    def __init__(self, message: str = "Resource already exists", details: Dict[str, Any] = None):
        super().__init__(
            message=message,
            error_code="ERR_DUPLICATE_001",
            status_code=status.HTTP_409_CONFLICT,
            details=details
        )


class ValidationError(AppException):
    """Raised for malformed or missing input."""

    def __init__(self, message: str, details: Dict[str, Any] = None):
        super().__init__(
            message=message,
            error_code="ERR_VALIDATION_001",
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            details=details
        )


class BusinessRuleViolation(AppException):
    """
    Raised when a request is well-formed but breaks a business rule.

    Examples: inactive account, already-confirmed document,
    allocation outside tolerance, disallowed status precondition.
    """

    def __init__(self, message: str, details: Dict[str, Any] = None):
        super().__init__(
            message=message,
            error_code="ERR_BUSINESS_001",
            status_code=status.HTTP_400_BAD_REQUEST,
            details=details
        )


class InvalidTransitionError(AppException):
    """Raised when a state machine rejects a status change."""

    def __init__(self, from_state: Any, to_state: Any):
        self.from_state = getattr(from_state, "value", from_state)
        self.to_state = getattr(to_state, "value", to_state)
        super().__init__(
            message=f"Invalid status transition: {self.from_state} -> {self.to_state}",
            error_code="ERR_TRANSITION_001",
            status_code=status.HTTP_409_CONFLICT,
            details={"from": self.from_state, "to": self.to_state}
        )


class ConcurrentModificationError(AppException):
    """Raised when the caller's expected version no longer matches the stored one."""

    def __init__(self, current_version: Any, expected_version: Any):
        self.current_version = current_version
        self.expected_version = expected_version
        super().__init__(
            message=(
                f"Record was modified concurrently "
                f"(current version {current_version}, expected {expected_version})"
            ),
            error_code="ERR_CONFLICT_001",
            status_code=status.HTTP_409_CONFLICT,
            details={"current_version": current_version, "expected_version": expected_version}
        )


class InternalError(AppException):
    """Raised when the storage layer fails."""

    def __init__(self, message: str = "Internal storage error", details: Dict[str, Any] = None):
        super().__init__(
            message=message,
            error_code="ERR_INTERNAL_001",
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            details=details
        )


class AuthenticationError(AppException):
    """Raised for authentication failures."""

    def __init__(self, message: str = "Authentication failed"):
        super().__init__(
            message=message,
            error_code="ERR_AUTH_001",
            status_code=status.HTTP_401_UNAUTHORIZED
        )


# Global Exception Handlers

async def app_exception_handler(request: Request, exc: AppException) -> JSONResponse:
    """Handler for custom application exceptions."""
    return JSONResponse(
        status_code=exc.status_code,
        content={
            "error_code": exc.error_code,
            "message": exc.message,
            "details": exc.details
        }
    )


async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    """Handler for FastAPI HTTPException with standardized format."""
    # Map status code to error code
    error_code_map = {
        400: "ERR_BAD_REQUEST",
        401: "ERR_UNAUTHORIZED",
        403: "ERR_FORBIDDEN",
        404: "ERR_NOT_FOUND",
        500: "ERR_INTERNAL_SERVER"
    }

    error_code = error_code_map.get(exc.status_code, "ERR_UNKNOWN")

    return JSONResponse(
        status_code=exc.status_code,
        content={
            "error_code": error_code,
            "message": exc.detail,
            "details": {}
        },
        headers=getattr(exc, "headers", None)
    )


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Handler for Pydantic validation errors."""
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={
            "error_code": "ERR_VALIDATION",
            "message": "Validation error",
            "details": {
                "errors": jsonable_encoder(exc.errors())
            }
        }
    )


async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Handler for unhandled exceptions."""
    logger.exception("Unhandled exception: %s: %s", type(exc).__name__, exc)

    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "error_code": "ERR_INTERNAL_SERVER",
            "message": "An internal server error occurred",
            "details": {}
        }
    )
