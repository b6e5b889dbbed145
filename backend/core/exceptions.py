"""
Custom exception hierarchy for the application
"""

from typing import Any, Dict, Optional


class InboxAgentsException(Exception):
    """Base exception for inbox agent and retrieval errors"""

    code: str = "Error"

    def __init__(self, message: str, code: Optional[str] = None, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        if code:
            self.code = code
        self.details = details or {}

    def to_detail(self) -> Dict[str, Any]:
        detail = {"code": self.code, "message": self.message}
        if self.details:
            detail["details"] = self.details
        return detail


class ValidationError(InboxAgentsException):
    """Malformed or missing input"""
    code = "InvalidInput"


class NotFoundError(InboxAgentsException):
    """Inbox, agent or assignment absent"""
    code = "NotFound"


class ConflictError(InboxAgentsException):
    """Duplicate, role mismatch or already assigned elsewhere"""
    code = "Conflict"


class DependencyError(InboxAgentsException):
    """Chunk store unreachable or erroring"""
    code = "DependencyUnavailable"


class StorageError(InboxAgentsException):
    """Error during SQL storage operations"""
    code = "StorageError"


class IngestionError(InboxAgentsException):
    """Error during document ingestion"""
    code = "IngestionError"
