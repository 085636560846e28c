"""
Custom Exceptions for the Detention Scheduler

Typed error kinds raised by the scheduling and attendance core. Each
exception carries an ErrorCode and the HTTP status the API layer uses
when the error surfaces to a caller.
"""

from typing import Any, Dict, List, Optional
from enum import Enum


class ErrorCode(str, Enum):
    """Standard error codes for the application"""
    # General errors
    INTERNAL_ERROR = "INTERNAL_ERROR"
    VALIDATION_ERROR = "VALIDATION_ERROR"
    NOT_FOUND = "NOT_FOUND"
    CONFLICT = "CONFLICT"

    # Identity
    AUTHENTICATION_FAILED = "AUTHENTICATION_FAILED"
    FORBIDDEN = "FORBIDDEN"

    # Scheduling and attendance
    CAPACITY_EXCEEDED = "CAPACITY_EXCEEDED"
    NO_SLOT_AVAILABLE = "NO_SLOT_AVAILABLE"
    INVALID_TRANSITION = "INVALID_TRANSITION"
    ESCALATION_REQUIRED = "ESCALATION_REQUIRED"

    # Store and outbound collaborators
    DEPENDENCY_UNAVAILABLE = "DEPENDENCY_UNAVAILABLE"


class BaseAppException(Exception):
    """
    Base exception class for all application exceptions.

    Provides consistent error handling across the application with
    structured error information.
    """

    def __init__(
        self,
        message: str,
        error_code: ErrorCode = ErrorCode.INTERNAL_ERROR,
        details: Optional[Dict[str, Any]] = None,
        status_code: int = 500
    ):
        self.message = message
        self.error_code = error_code
        self.details = details or {}
        self.status_code = status_code
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary format"""
        return {
            "error": {
                "message": self.message,
                "code": self.error_code.value,
                "details": self.details,
                "type": self.__class__.__name__
            }
        }

    def __str__(self) -> str:
        return f"{self.error_code.value}: {self.message}"

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(message='{self.message}', error_code='{self.error_code.value}')"


class ValidationError(BaseAppException):
    """Malformed input: past date, non-positive capacity, missing field"""

    def __init__(
        self,
        message: str = "Validation failed",
        field_errors: Optional[Dict[str, List[str]]] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        details = dict(details or {})
        if field_errors:
            details["field_errors"] = field_errors
        super().__init__(message, ErrorCode.VALIDATION_ERROR, details, 422)


class ResourceNotFoundError(BaseAppException):
    """Exception raised when a requested resource is not found"""

    def __init__(
        self,
        resource_type: str = "Resource",
        resource_id: Optional[str] = None,
        message: Optional[str] = None
    ):
        if not message:
            message = f"{resource_type} not found"
            if resource_id:
                message += f" (ID: {resource_id})"

        details = {
            "resource_type": resource_type,
            "resource_id": resource_id
        }
        super().__init__(message, ErrorCode.NOT_FOUND, details, 404)


class ConflictError(BaseAppException):
    """Occupied slot deletion, duplicate sign-up, or a date the student already holds"""

    def __init__(self, message: str = "Conflict", details: Optional[Dict[str, Any]] = None):
        super().__init__(message, ErrorCode.CONFLICT, details, 409)


class CapacityExceededError(BaseAppException):
    """Slot full at reservation time"""

    def __init__(
        self,
        slot_date: Optional[Any] = None,
        message: Optional[str] = None,
    ):
        if not message:
            message = "Detention slot is full"
            if slot_date is not None:
                message += f" for {slot_date}"
        details = {"slot_date": str(slot_date)} if slot_date is not None else {}
        super().__init__(message, ErrorCode.CAPACITY_EXCEEDED, details, 409)


class NoSlotAvailableError(BaseAppException):
    """No qualifying reassignment date exists for a student"""

    def __init__(self, message: str = "No detention slot available", details: Optional[Dict[str, Any]] = None):
        super().__init__(message, ErrorCode.NO_SLOT_AVAILABLE, details, 409)


class InvalidTransitionError(BaseAppException):
    """Attendance mutation attempted from a state that does not permit it"""

    def __init__(
        self,
        from_status: Optional[str] = None,
        to_status: Optional[str] = None,
        message: Optional[str] = None,
    ):
        if not message:
            message = f"Cannot transition attendance from {from_status} to {to_status}"
        details = {"from_status": from_status, "to_status": to_status}
        super().__init__(message, ErrorCode.INVALID_TRANSITION, details, 409)


class ForbiddenError(BaseAppException):
    """Actor lacks permission for the requested mutation"""

    def __init__(self, message: str = "Operation not permitted", details: Optional[Dict[str, Any]] = None):
        super().__init__(message, ErrorCode.FORBIDDEN, details, 403)


class AuthenticationError(BaseAppException):
    """Missing or malformed identity"""

    def __init__(self, message: str = "Authentication required"):
        super().__init__(message, ErrorCode.AUTHENTICATION_FAILED, None, 401)


class EscalationRequiredError(BaseAppException):
    """Warning limit reached; the occurrence must be recorded as a violation"""

    def __init__(self, student_id: str, violation_type: str, warning_count: int, limit: int):
        message = (
            f"Student already has {warning_count} warning(s) for '{violation_type}'; "
            "record a violation instead"
        )
        details = {
            "student_id": student_id,
            "violation_type": violation_type,
            "warning_count": warning_count,
            "limit": limit,
        }
        super().__init__(message, ErrorCode.ESCALATION_REQUIRED, details, 409)


class DependencyUnavailableError(BaseAppException):
    """Notification sender or persistent store unreachable"""

    def __init__(
        self,
        dependency: str,
        message: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        details = dict(details or {})
        details["dependency"] = dependency
        super().__init__(
            message or f"{dependency} is unavailable",
            ErrorCode.DEPENDENCY_UNAVAILABLE,
            details,
            503,
        )


STATUS_BY_ERROR_CODE: Dict[ErrorCode, int] = {
    ErrorCode.INTERNAL_ERROR: 500,
    ErrorCode.VALIDATION_ERROR: 422,
    ErrorCode.NOT_FOUND: 404,
    ErrorCode.CONFLICT: 409,
    ErrorCode.AUTHENTICATION_FAILED: 401,
    ErrorCode.FORBIDDEN: 403,
    ErrorCode.CAPACITY_EXCEEDED: 409,
    ErrorCode.NO_SLOT_AVAILABLE: 409,
    ErrorCode.INVALID_TRANSITION: 409,
    ErrorCode.ESCALATION_REQUIRED: 409,
    ErrorCode.DEPENDENCY_UNAVAILABLE: 503,
}


__all__ = [
    "ErrorCode",
    "BaseAppException",
    "ValidationError",
    "ResourceNotFoundError",
    "ConflictError",
    "CapacityExceededError",
    "NoSlotAvailableError",
    "InvalidTransitionError",
    "ForbiddenError",
    "AuthenticationError",
    "EscalationRequiredError",
    "DependencyUnavailableError",
    "STATUS_BY_ERROR_CODE",
]
