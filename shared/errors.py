"""
Shared error handling for the catalog services.
"""

from typing import Dict, Any, Optional
from pydantic import BaseModel, Field


class ErrorResponse(BaseModel):
    """Standard error response format."""

    request_id: Optional[str] = None
    code: str
    message: str
    details: Dict[str, Any] = Field(default_factory=dict)


class AccessLayerException(Exception):
    """Base exception for catalog services."""

    status_code = 400

    def __init__(self, code: str, message: str, details: Optional[Dict[str, Any]] = None):
        self.code = code
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def to_response(self, request_id: Optional[str] = None) -> ErrorResponse:
        """Convert to error response."""
        return ErrorResponse(
            request_id=request_id,
            code=self.code,
            message=self.message,
            details=self.details
        )


class ValidationError(AccessLayerException):
    """Validation-related errors."""

    def __init__(self, message: str = "Validation failed", details: Optional[Dict[str, Any]] = None):
        super().__init__("VALIDATION_ERROR", message, details)


class NotFoundError(AccessLayerException):
    """Requested entity does not exist in the backing store."""

    status_code = 404

    def __init__(self, entity: str, entity_id: Any, details: Optional[Dict[str, Any]] = None):
        self.entity = entity
        self.entity_id = entity_id
        super().__init__("NOT_FOUND", f"{entity} {entity_id} not found", details)


class DataAccessError(AccessLayerException):
    """Backing store failures (connection, query, constraint)."""

    status_code = 500

    def __init__(self, operation: str, message: str = "Data access error", details: Optional[Dict[str, Any]] = None):
        self.operation = operation
        super().__init__("DATA_ACCESS_ERROR", f"{operation}: {message}", details)
