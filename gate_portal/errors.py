"""
gate_portal/errors.py
Centralized error handling

ERROR RESPONSE STRUCTURE:
{
    "success": false,
    "error": "ErrorType",
    "message": "Human-readable description",
    "code": "UNIQUE_ERROR_CODE",
    "details": {} (optional)
}

HTTP STATUS CODE DISCIPLINE:
- 400: Missing or malformed request fields (ValidationError)
- 401: Authentication missing or invalid
- 403: Role does not allow the operation
- 404: Unknown test / answer key
- 409: Submission already recorded for this attempt
- 422: Request body failed schema validation (Pydantic)
- 500: Storage failure or internal bug, never caused by user input
"""

import logging
import uuid
from typing import Optional, Dict, Any
from fastapi import status
from fastapi.responses import JSONResponse
from pydantic import BaseModel

logger = logging.getLogger(__name__)


class ErrorCode:
    """Unique error codes for machine-readable error handling"""

    VALIDATION_ERROR = "VALIDATION_ERROR"
    MISSING_FIELD = "MISSING_FIELD"
    INVALID_QUESTION = "INVALID_QUESTION"

    AUTH_REQUIRED = "AUTH_REQUIRED"
    AUTH_INVALID = "AUTH_INVALID"
    AUTH_EXPIRED = "AUTH_EXPIRED"

    FORBIDDEN = "FORBIDDEN"

    NOT_FOUND = "NOT_FOUND"
    TEST_NOT_FOUND = "TEST_NOT_FOUND"

    ALREADY_SUBMITTED = "ALREADY_SUBMITTED"

    PERSISTENCE_ERROR = "PERSISTENCE_ERROR"
    INTERNAL_ERROR = "INTERNAL_ERROR"


class ErrorResponse(BaseModel):
    """Standard error response model"""
    success: bool = False
    error: str
    message: str
    code: str
    details: Optional[Dict[str, Any]] = None


class APIError(Exception):
    """Base API exception with consistent structure"""

    def __init__(
        self,
        status_code: int,
        error: str,
        message: str,
        code: str,
        details: Optional[Dict[str, Any]] = None
    ):
        self.status_code = status_code
        self.error = error
        self.message = message
        self.code = code
        self.details = details
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        result = {
            "success": False,
            "error": self.error,
            "message": self.message,
            "code": self.code
        }
        if self.details:
            result["details"] = self.details
        return result

    def to_response(self) -> JSONResponse:
        """Convert to FastAPI JSONResponse"""
        return JSONResponse(status_code=self.status_code, content=self.to_dict())


class ValidationError(APIError):
    """400 - Missing or malformed request fields. Caller's fault, do not retry."""
    def __init__(self, message: str, code: str = ErrorCode.VALIDATION_ERROR, details: Optional[Dict] = None):
        super().__init__(
            status_code=status.HTTP_400_BAD_REQUEST,
            error="Validation Error",
            message=message,
            code=code,
            details=details
        )


class UnauthorizedError(APIError):
    """401 Unauthorized - Authentication required"""
    def __init__(self, message: str = "Authentication required", code: str = ErrorCode.AUTH_REQUIRED):
        super().__init__(
            status_code=status.HTTP_401_UNAUTHORIZED,
            error="Unauthorized",
            message=message,
            code=code
        )


class ForbiddenError(APIError):
    """403 Forbidden - Access denied"""
    def __init__(self, message: str = "Access forbidden", code: str = ErrorCode.FORBIDDEN, details: Optional[Dict] = None):
        super().__init__(
            status_code=status.HTTP_403_FORBIDDEN,
            error="Forbidden",
            message=message,
            code=code,
            details=details
        )


class NotFoundError(APIError):
    """404 Not Found - Resource does not exist"""
    def __init__(self, resource: str, identifier: Any = None, code: str = ErrorCode.NOT_FOUND):
        message = f"{resource} not found"
        if identifier is not None:
            message = f"{resource} with id '{identifier}' not found"
        super().__init__(
            status_code=status.HTTP_404_NOT_FOUND,
            error="Not Found",
            message=message,
            code=code
        )


class PersistenceError(APIError):
    """
    500 - The storage layer failed.

    Nothing from the failed operation is visible to readers; the caller may
    retry the same request.
    """
    def __init__(
        self,
        message: str = "Failed to save submission. Please try again.",
        status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR,
        code: str = ErrorCode.PERSISTENCE_ERROR,
        log_id: Optional[str] = None
    ):
        self.log_id = log_id or new_log_id()
        super().__init__(
            status_code=status_code,
            error="Persistence Error",
            message=message,
            code=code,
            details={"log_id": self.log_id}
        )


class SubmissionConflictError(PersistenceError):
    """409 - A submission for this (student, test, attempt) already exists."""
    def __init__(self, test_id: Any, attempt_number: int = 1):
        super().__init__(
            message=f"Test '{test_id}' has already been submitted (attempt {attempt_number})",
            status_code=status.HTTP_409_CONFLICT,
            code=ErrorCode.ALREADY_SUBMITTED
        )
        self.error = "Conflict"


class InternalComputationError(APIError):
    """500 - A bug in scoring or aggregation. Not recoverable by retrying."""
    def __init__(self, message: str = "An internal error occurred", log_id: Optional[str] = None):
        details = {"log_id": log_id} if log_id else None
        super().__init__(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            error="Internal Error",
            message=message,
            code=ErrorCode.INTERNAL_ERROR,
            details=details
        )


def new_log_id() -> str:
    return str(uuid.uuid4())[:8]


def safe_get_or_404(result: Any, resource: str, identifier: Any = None, code: str = ErrorCode.NOT_FOUND):
    """Return result or raise 404 if None"""
    if result is None:
        raise NotFoundError(resource, identifier, code=code)
    return result


def validate_not_empty(value: Optional[str], field_name: str) -> str:
    """Validate that a string is not empty"""
    if value is None or value.strip() == "":
        raise ValidationError(
            f"{field_name} is required",
            code=ErrorCode.MISSING_FIELD,
            details={"field": field_name}
        )
    return value.strip()


def get_error_summary() -> Dict[str, Any]:
    """Return summary of error handling system for documentation"""
    return {
        "service": "gate-portal-error-handler",
        "response_structure": {
            "success": "boolean (always false for errors)",
            "error": "string (error type)",
            "message": "string (human-readable)",
            "code": "string (machine-readable)",
            "details": "object (optional)"
        },
        "status_codes": {
            "400": "Missing or malformed request fields",
            "401": "Authentication missing or invalid",
            "403": "Access forbidden for this role",
            "404": "Resource does not exist",
            "409": "Submission already recorded",
            "422": "Validation error (Pydantic)",
            "500": "Storage failure or internal error (never caused by user input)"
        },
        "error_codes": [
            attr for attr in dir(ErrorCode)
            if not attr.startswith('_')
        ]
    }
