"""Custom exception classes and global exception handlers."""

import logging
import traceback
from decimal import Decimal

from fastapi import Request
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


class MarketplaceException(Exception):
    """Base exception for all marketplace-specific errors."""

    def __init__(self, message: str, status_code: int = 400):
        self.message = message
        self.status_code = status_code
        super().__init__(self.message)


class NotFoundException(MarketplaceException):
    """Resource not found exception."""

    def __init__(self, resource: str = "Resource"):
        super().__init__(f"{resource} not found", 404)


class ForbiddenException(MarketplaceException):
    """Access forbidden exception."""

    def __init__(self, message: str = "You don't have permission to perform this action"):
        super().__init__(message, 403)


class UnauthorizedException(MarketplaceException):
    """Authentication required exception."""

    def __init__(self, message: str = "Authentication required"):
        super().__init__(message, 401)


class ConflictException(MarketplaceException):
    """Resource conflict exception."""

    def __init__(self, message: str = "Resource already exists"):
        super().__init__(message, 409)


class ValidationException(MarketplaceException):
    """Validation error exception with field-level errors."""

    def __init__(self, errors: list[dict] | str):
        if isinstance(errors, str):
            errors = [{"field": "general", "message": errors}]
        super().__init__("Validation failed", 422)
        self.errors = errors


class UserContextError(MarketplaceException):
    """User context not set error."""

    def __init__(self, message: str = "User context is required"):
        super().__init__(message, 401)


# === Rule engine errors ===


class InvalidSettingValue(ValidationException):
    """A system setting value does not match its key's declared type."""

    def __init__(self, key: str, value: object, reason: str):
        super().__init__([{"field": key, "message": reason}])
        self.message = f"Invalid value {value!r} for setting '{key}': {reason}"
        self.key = key
        self.value = value


class InvalidCommissionRange(ValidationException):
    """A commission percentage falls outside [0, 100]."""

    def __init__(self, field: str, value: Decimal):
        super().__init__([{"field": field, "message": "Must be between 0 and 100"}])
        self.message = f"Commission percentage '{field}' out of range: {value}"
        self.field = field
        self.value = value


class InvalidCommissionSplit(ValidationException):
    """Commission percentages do not add up to 100."""

    def __init__(self, total: Decimal, reason: str | None = None):
        reason = reason or f"Commission percentages must sum to 100 (got {total})"
        super().__init__([{"field": "commission", "message": reason}])
        self.message = reason
        self.total = total


class AllocatorExhausted(MarketplaceException):
    """The listing number sequence has reached the end of its integer range."""

    def __init__(self, sequence: str, last_value: int):
        super().__init__(
            f"Sequence '{sequence}' exhausted at {last_value}",
            507,
        )
        self.sequence = sequence
        self.last_value = last_value


class DispatchFailure(MarketplaceException):
    """A notification could not be written for an engine event.

    Raised and handled inside the dispatcher only; it never reaches callers.
    """

    def __init__(self, event_type: str, reason: str):
        super().__init__(f"Failed to dispatch {event_type}: {reason}", 500)
        self.event_type = event_type
        self.reason = reason


def create_exception_handlers():
    """Create JSON exception handlers for the application."""

    async def marketplace_exception_handler(request: Request, exc: MarketplaceException):
        """Handle marketplace custom exceptions."""
        logger.warning(f"MarketplaceException on {request.method} {request.url.path}: {exc.message} (status={exc.status_code})")

        content = {
            "status": "error",
            "message": exc.message,
        }
        if hasattr(exc, "errors"):
            content["errors"] = exc.errors
        return JSONResponse(status_code=exc.status_code, content=content)

    async def validation_exception_handler(request: Request, exc: ValidationException):
        """Handle validation exceptions with field-level errors."""
        logger.warning(f"ValidationException on {request.method} {request.url.path}: {exc.errors}")

        return JSONResponse(
            status_code=exc.status_code,
            content={
                "status": "error",
                "message": exc.message,
                "errors": exc.errors,
            },
        )

    async def generic_exception_handler(request: Request, exc: Exception):
        """Handle unexpected exceptions."""
        logger.error(f"Unhandled exception on {request.method} {request.url.path}")
        logger.error(f"Exception: {type(exc).__name__}: {exc}")
        tb_lines = traceback.format_exception(type(exc), exc, exc.__traceback__)
        logger.error("".join(tb_lines))

        return JSONResponse(
            status_code=500,
            content={
                "status": "error",
                "message": "An unexpected error occurred",
            },
        )

    return {
        MarketplaceException: marketplace_exception_handler,
        ValidationException: validation_exception_handler,
        Exception: generic_exception_handler,
    }
