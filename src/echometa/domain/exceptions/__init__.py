"""Domain exceptions."""

from enum import Enum
from typing import Any


class DomainException(Exception):
    """Base exception for all domain exceptions."""

    # Hey future me, we store message as an attribute so code can inspect it without parsing
    # str(exception). Don't raise this directly - always use a specific subclass so callers
    # can catch precisely.
    def __init__(self, message: str, *args: Any) -> None:
        super().__init__(message, *args)
        self.message = message


class EnrichmentErrorCode(str, Enum):
    """Discriminant for every enrichment error kind.

    Hey future me - the code is what crosses boundaries (logs, API payloads,
    EnrichmentLog.error_message), not the Python class. Match on `code`, not on
    isinstance, when you only have the serialized form.
    """

    EXTERNAL_API_ERROR = "EXTERNAL_API_ERROR"
    TIMEOUT = "TIMEOUT"
    IMAGE_PROCESSING_ERROR = "IMAGE_PROCESSING_ERROR"
    INFRASTRUCTURE_ERROR = "INFRASTRUCTURE_ERROR"
    VALIDATION_ERROR = "VALIDATION_ERROR"
    CONFLICT_ALREADY_RESOLVED = "CONFLICT_ALREADY_RESOLVED"
    ENRICHMENT_ALREADY_RUNNING = "ENRICHMENT_ALREADY_RUNNING"
    ENTITY_NOT_FOUND = "ENTITY_NOT_FOUND"


class ImageErrorReason(str, Enum):
    """Why an image was refused."""

    INVALID_CONTENT_TYPE = "INVALID_CONTENT_TYPE"
    FILE_TOO_LARGE = "FILE_TOO_LARGE"
    INVALID_DIMENSIONS = "INVALID_DIMENSIONS"
    INVALID_IMAGE = "INVALID_IMAGE"
    DOWNLOAD_FAILED = "DOWNLOAD_FAILED"


class EnrichmentError(DomainException):
    """Base for all errors of the enrichment pipeline.

    Subclasses set `code` and keep their structured fields as attributes;
    to_dict() is the serialized form used by logs and the API.
    """

    code: EnrichmentErrorCode = EnrichmentErrorCode.INFRASTRUCTURE_ERROR

    def details(self) -> dict[str, Any]:
        """Structured fields of this error (empty for the base class)."""
        return {}

    def to_dict(self) -> dict[str, Any]:
        return {"code": self.code.value, "message": self.message, **self.details()}


class ExternalApiError(EnrichmentError):
    """Upstream provider answered with a failure (network error or non-2xx)."""

    code = EnrichmentErrorCode.EXTERNAL_API_ERROR

    def __init__(
        self,
        provider: str,
        message: str,
        http_status: int | None = None,
        http_status_text: str | None = None,
        url: str | None = None,
        retry_after: float | None = None,
    ) -> None:
        super().__init__(message)
        self.provider = provider
        self.http_status = http_status
        self.http_status_text = http_status_text
        self.url = url
        self.retry_after = retry_after

    @property
    def is_retryable(self) -> bool:
        """429 and 503 are worth another try after backoff; nothing else is."""
        return self.http_status in (429, 503)

    def details(self) -> dict[str, Any]:
        return {
            "provider": self.provider,
            "httpStatus": self.http_status,
            "httpStatusText": self.http_status_text,
            "url": self.url,
        }


class OperationTimeoutError(EnrichmentError):
    """An operation exceeded its time limit.

    Named so it does not shadow the builtin TimeoutError.
    """

    code = EnrichmentErrorCode.TIMEOUT

    def __init__(self, operation: str, timeout_ms: int, provider: str | None = None) -> None:
        super().__init__(f"{operation} timed out after {timeout_ms}ms")
        self.operation = operation
        self.timeout_ms = timeout_ms
        self.provider = provider

    def details(self) -> dict[str, Any]:
        return {
            "operation": self.operation,
            "timeoutMs": self.timeout_ms,
            "provider": self.provider,
        }


class ImageProcessingError(EnrichmentError):
    """An externally fetched image was refused."""

    code = EnrichmentErrorCode.IMAGE_PROCESSING_ERROR

    def __init__(self, reason: ImageErrorReason, message: str | None = None) -> None:
        super().__init__(message or reason.value)
        self.reason = reason

    def details(self) -> dict[str, Any]:
        return {"reason": self.reason.value}


class InfrastructureError(EnrichmentError):
    """Storage (conflict store, log) is unavailable. Fatal to a run."""

    code = EnrichmentErrorCode.INFRASTRUCTURE_ERROR


class ValidationError(EnrichmentError):
    """Input validation failed (bad trigger input, bad setting value).

    HTTP Status: 422
    """

    code = EnrichmentErrorCode.VALIDATION_ERROR


class EntityNotFoundError(EnrichmentError):
    """Raised when a library entity or conflict does not exist.

    HTTP Status: 404
    """

    code = EnrichmentErrorCode.ENTITY_NOT_FOUND

    def __init__(self, entity_type: str, entity_id: Any) -> None:
        super().__init__(f"{entity_type} with id {entity_id} not found")
        self.entity_type = entity_type
        self.entity_id = entity_id

    def details(self) -> dict[str, Any]:
        return {"entityType": self.entity_type, "entityId": str(self.entity_id)}


class ConflictAlreadyResolvedError(EnrichmentError):
    """A conflict left the pending state already; resolutions are terminal.

    HTTP Status: 409
    """

    code = EnrichmentErrorCode.CONFLICT_ALREADY_RESOLVED

    def __init__(self, conflict_id: str, status: str) -> None:
        super().__init__(f"Conflict {conflict_id} is already {status}")
        self.conflict_id = conflict_id
        self.status = status

    def details(self) -> dict[str, Any]:
        return {"conflictId": self.conflict_id, "status": self.status}


class EnrichmentAlreadyRunningError(EnrichmentError):
    """A run for the same (entity_type, entity_id) is in flight.

    HTTP Status: 409
    """

    code = EnrichmentErrorCode.ENRICHMENT_ALREADY_RUNNING

    def __init__(self, entity_type: str, entity_id: str) -> None:
        super().__init__(f"Enrichment already running for {entity_type} {entity_id}")
        self.entity_type = entity_type
        self.entity_id = entity_id

    def details(self) -> dict[str, Any]:
        return {"entityType": self.entity_type, "entityId": self.entity_id}


__all__ = [
    "ConflictAlreadyResolvedError",
    "DomainException",
    "EnrichmentAlreadyRunningError",
    "EnrichmentError",
    "EnrichmentErrorCode",
    "EntityNotFoundError",
    "ExternalApiError",
    "ImageErrorReason",
    "ImageProcessingError",
    "InfrastructureError",
    "OperationTimeoutError",
    "ValidationError",
]
