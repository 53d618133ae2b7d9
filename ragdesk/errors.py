"""
Error taxonomy for the retrieval and ingestion core.
Services raise these; the HTTP layer translates them into responses.
"""
from typing import Any, Dict, Optional


class RagDeskError(Exception):
    """Base class for every error raised by ragdesk services."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None) -> None:
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} | Details: {self.details}"
        return self.message


class InvalidInput(RagDeskError):
    """Bad caller arguments, rejected before any external call."""

    def __init__(self, message: str, field: Optional[str] = None, details: Optional[Dict[str, Any]] = None) -> None:
        details = details or {}
        if field:
            details["field"] = field
        super().__init__(message, details)


class ConfigurationError(RagDeskError):
    """Invalid or inconsistent configuration. Fatal, never a per-request failure."""


class VectorDimensionMismatch(ConfigurationError):
    """A vector does not have the dimensionality the store was configured with."""

    def __init__(self, expected: int, actual: int) -> None:
        super().__init__(
            f"Vector dimension mismatch: expected {expected}, got {actual}",
            {"expected": expected, "actual": actual},
        )
        self.expected = expected
        self.actual = actual


class ExtractionFailure(RagDeskError):
    """Uploaded file could not be turned into text."""

    def __init__(self, message: str, filename: Optional[str] = None, details: Optional[Dict[str, Any]] = None) -> None:
        details = details or {}
        if filename:
            details["filename"] = filename
        super().__init__(message, details)


class EmbeddingFailure(RagDeskError):
    """Embedding provider failed after all retry attempts."""


class GenerationFailure(RagDeskError):
    """Generator returned nothing usable or failed outright."""


class NotFound(RagDeskError):
    """A resource looked up by id does not exist."""

    def __init__(self, resource: str, resource_id: Any) -> None:
        super().__init__(f"{resource} not found: {resource_id}", {"resource": resource, "id": resource_id})
        self.resource = resource
        self.resource_id = resource_id


class OwnershipViolation(RagDeskError):
    """The acting user does not own the target resource."""

    def __init__(self, resource: str, resource_id: Any, owner_id: Any) -> None:
        super().__init__(
            f"User {owner_id} does not own {resource} {resource_id}",
            {"resource": resource, "id": resource_id, "owner_id": owner_id},
        )


class DataIntegrityError(RagDeskError):
    """Persisted or computed data disagree, e.g. embedding count != chunk count."""

    def __init__(self, message: str, document_id: Optional[int] = None, details: Optional[Dict[str, Any]] = None) -> None:
        details = details or {}
        if document_id is not None:
            details["document_id"] = document_id
        super().__init__(message, details)


class ChatFailure(RagDeskError):
    """Umbrella error for any failure while answering a chat message."""

    def __init__(self, message: str, cause: BaseException) -> None:
        super().__init__(message, {"cause": type(cause).__name__})
        self.cause = cause
