"""Service error taxonomy.

Services raise these directly; they are ``HTTPException`` subclasses so the
HTTP layer renders them without extra handlers, while Python callers can still
catch them by type. ``detail`` always carries ``error`` and ``message`` (and
``field`` for validation failures), matching ``ErrorResponse``.
"""

from __future__ import annotations

from fastapi import HTTPException, status


class ServiceError(HTTPException):
    """Base class for failures reported synchronously to the caller."""

    status_code: int = status.HTTP_400_BAD_REQUEST
    error: str = "service_error"

    def __init__(
        self,
        message: str,
        *,
        headers: dict[str, str] | None = None,
        **extra: object,
    ) -> None:
        self.message = message
        detail: dict[str, object] = {"error": self.error, "message": message}
        detail.update({k: v for k, v in extra.items() if v is not None})
        super().__init__(status_code=self.status_code, detail=detail, headers=headers)

    def __str__(self) -> str:
        return self.message


class ValidationError(ServiceError):
    """Malformed or out-of-range input. Never retried."""

    status_code = status.HTTP_422_UNPROCESSABLE_ENTITY
    error = "validation_error"

    def __init__(self, field: str, message: str) -> None:
        self.field = field
        super().__init__(message, field=field)


class PermissionDenied(ServiceError):
    """Action not allowed given verification or ownership state."""

    status_code = status.HTTP_403_FORBIDDEN
    error = "permission_denied"


class NotFoundError(ServiceError):
    status_code = status.HTTP_404_NOT_FOUND
    error = "not_found"


class ConflictError(ServiceError):
    """State already moved on (re-assignment, duplicate submission, bad transition)."""

    status_code = status.HTTP_409_CONFLICT
    error = "conflict"


class ConsistencyError(ServiceError):
    """Cross-entity invariant violated, e.g. request owned by another organization."""

    status_code = status.HTTP_409_CONFLICT
    error = "consistency_error"


class StorageUnavailable(ServiceError):
    """Transient persistence failure. Callers may retry with backoff."""

    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    error = "storage_unavailable"

    def __init__(self, message: str = "Storage is temporarily unavailable", retry_after: int = 5):
        super().__init__(message, headers={"Retry-After": str(retry_after)})
