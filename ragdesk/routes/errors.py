"""
Translation of service errors into HTTP responses.
"""
from fastapi import HTTPException

from ..errors import (
    ChatFailure,
    EmbeddingFailure,
    ExtractionFailure,
    GenerationFailure,
    InvalidInput,
    NotFound,
    OwnershipViolation,
)

CALLER_ERRORS = {
    InvalidInput: 400,
    ExtractionFailure: 400,
    OwnershipViolation: 403,
    NotFound: 404,
}


def status_for(exc: BaseException) -> int:
    if isinstance(exc, ChatFailure):
        return status_for(exc.cause)
    for error_type, status in CALLER_ERRORS.items():
        if isinstance(exc, error_type):
            return status
    if isinstance(exc, (EmbeddingFailure, GenerationFailure)):
        return 502
    return 500


def http_error(exc: BaseException) -> HTTPException:
    status = status_for(exc)
    if status >= 500:
        # Provider and internal details stay in the logs
        detail = "Upstream model provider failed" if status == 502 else "Internal server error"
    elif isinstance(exc, ChatFailure):
        detail = getattr(exc.cause, "message", str(exc.cause))
    else:
        detail = getattr(exc, "message", str(exc))
    return HTTPException(status_code=status, detail=detail)
