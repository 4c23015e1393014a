"""Custom exceptions and error handling."""

from typing import Any

from fastapi import status


class AuditServiceError(Exception):
    """Base exception for the practice audit service."""

    def __init__(
        self,
        message: str,
        code: str = "error",
        status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR,
        details: dict[str, Any] | None = None,
    ):
        self.message = message
        self.code = code
        self.status_code = status_code
        self.details = details or {}
        super().__init__(message)


class NotFoundError(AuditServiceError):
    """Resource not found."""

    def __init__(self, resource: str, identifier: str | None = None):
        message = f"{resource} not found"
        if identifier:
            message = f"{resource} with id '{identifier}' not found"
        super().__init__(
            message=message,
            code="not_found",
            status_code=status.HTTP_404_NOT_FOUND,
        )


class ValidationError(AuditServiceError):
    """Malformed input, rejected before any side effect."""

    def __init__(self, message: str, field: str | None = None):
        details = {"field": field} if field else {}
        super().__init__(
            message=message,
            code="validation_error",
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            details=details,
        )


class MissingPrerequisiteError(AuditServiceError):
    """A report was requested before the audit it depends on exists."""

    def __init__(self, message: str, required: list[str] | None = None):
        super().__init__(
            message=message,
            code="missing_prerequisite",
            status_code=status.HTTP_400_BAD_REQUEST,
            details={"required": required} if required else None,
        )


class LockConflictError(AuditServiceError):
    """An audit is already in flight for this lead."""

    def __init__(self, key: str, message: str = "Audit already in progress for this lead"):
        self.key = key
        super().__init__(
            message=message,
            code="conflict",
            status_code=status.HTTP_409_CONFLICT,
            details={"lock": key},
        )


class CaptureFailedError(AuditServiceError):
    """The page could not be fetched or rendered."""

    def __init__(self, cause: str, *, timeout: bool = False, url: str | None = None):
        self.cause = "timeout" if timeout else cause
        self.timeout = timeout
        super().__init__(
            message=self.cause,
            code="capture_failed",
            status_code=status.HTTP_502_BAD_GATEWAY,
            details={"timeout": timeout, **({"url": url} if url else {})},
        )


class ScoringError(AuditServiceError):
    """A scorer returned data that cannot be turned into an audit record."""

    def __init__(self, message: str):
        super().__init__(
            message=message,
            code="scoring_error",
            status_code=status.HTTP_502_BAD_GATEWAY,
        )


class PersistenceError(AuditServiceError):
    """The storage layer failed to read or write audit data."""

    def __init__(self, operation: str, message: str):
        self.operation = operation
        super().__init__(
            message=f"{operation} failed: {message}",
            code="persistence_error",
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            details={"operation": operation},
        )


class ExternalServiceError(AuditServiceError):
    """External service error."""

    def __init__(self, service: str, message: str):
        super().__init__(
            message=f"{service}: {message}",
            code="external_service_error",
            status_code=status.HTTP_502_BAD_GATEWAY,
            details={"service": service},
        )


class ServiceUnavailableError(AuditServiceError):
    """A required collaborator is not configured."""

    def __init__(self, message: str):
        super().__init__(
            message=message,
            code="service_unavailable",
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        )
