"""
Translation of domain exceptions into HTTP errors
"""

from fastapi import HTTPException, status
from core.exceptions import (
    ConflictError,
    DependencyError,
    InboxAgentsException,
    IngestionError,
    NotFoundError,
    ValidationError,
)

_STATUS_BY_EXCEPTION = [
    (ValidationError, status.HTTP_400_BAD_REQUEST),
    (IngestionError, status.HTTP_400_BAD_REQUEST),
    (NotFoundError, status.HTTP_404_NOT_FOUND),
    (ConflictError, status.HTTP_409_CONFLICT),
    (DependencyError, status.HTTP_502_BAD_GATEWAY),
]


def to_http_exception(error: InboxAgentsException) -> HTTPException:
    """HTTPException with a {code, message[, details]} body. Unmapped errors (storage) become 500."""
    for exc_type, status_code in _STATUS_BY_EXCEPTION:
        if isinstance(error, exc_type):
            return HTTPException(status_code=status_code, detail=error.to_detail())
    return HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=error.to_detail())
