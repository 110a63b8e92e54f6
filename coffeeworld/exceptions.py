"""
Error taxonomy for Coffee World.

Every error raised by the domain layer carries its HTTP status and a
machine-readable code so the API layer can translate it without
knowing about individual services.
"""

from typing import Optional


class CoffeeWorldException(Exception):
    """Base exception for Coffee World errors."""

    def __init__(
        self,
        message: str,
        code: str = "INTERNAL_ERROR",
        status_code: int = 500,
        detail: Optional[str] = None,
    ):
        self.message = message
        self.code = code
        self.status_code = status_code
        self.detail = detail
        super().__init__(message)


class InvalidInputError(CoffeeWorldException):
    """Caller supplied missing or malformed input."""

    def __init__(self, message: str, detail: Optional[str] = None):
        super().__init__(
            message=message,
            code="INVALID_INPUT",
            status_code=400,
            detail=detail,
        )


class UnauthenticatedError(CoffeeWorldException):
    """No valid session accompanies the request."""

    def __init__(self, message: str = "must be signed in"):
        super().__init__(
            message=message,
            code="UNAUTHENTICATED",
            status_code=401,
        )


class VerificationRequiredError(CoffeeWorldException):
    """Signed in, but World ID verification has not been completed."""

    def __init__(self, message: str = "verification required"):
        super().__init__(
            message=message,
            code="VERIFICATION_REQUIRED",
            status_code=403,
        )


class NotFoundError(CoffeeWorldException):
    """Resource not found."""

    def __init__(self, resource: str, identifier: str):
        super().__init__(
            message=f"{resource} not found",
            code="NOT_FOUND",
            status_code=404,
            detail=f"No {resource.lower()} with identifier '{identifier}' exists",
        )


class RateLimitedError(CoffeeWorldException):
    """A check-in for the same shop happened too recently."""

    def __init__(self, retry_after_minutes: int):
        self.retry_after_minutes = retry_after_minutes
        super().__init__(
            message=f"wait {retry_after_minutes} minutes",
            code="RATE_LIMITED",
            status_code=429,
            detail=(
                "You've already checked in here recently. "
                f"Please wait {retry_after_minutes} minutes before checking in again."
            ),
        )


class StorageUnavailableError(CoffeeWorldException):
    """Backing store failed. Surfaced as-is, never retried."""

    def __init__(self, operation: str):
        self.operation = operation
        super().__init__(
            message="Storage unavailable",
            code="STORAGE_UNAVAILABLE",
            status_code=500,
            detail="The request could not be completed, please try again later",
        )


class VerificationFailedError(CoffeeWorldException):
    """World ID proof was rejected."""

    def __init__(self, detail: Optional[str] = None):
        super().__init__(
            message="Invalid verification proof",
            code="VERIFICATION_FAILED",
            status_code=400,
            detail=detail,
        )


class ExternalServiceError(CoffeeWorldException):
    """External service failure."""

    def __init__(self, service: str, detail: Optional[str] = None):
        super().__init__(
            message=f"{service} service unavailable",
            code="EXTERNAL_SERVICE_ERROR",
            status_code=503,
            detail=detail,
        )
