"""Standardized error responses for the REST surface.

Errors are rendered in the envelope shared by every endpoint:

    {"success": false, "error": "...", "userFacingMessage": "...", "message": "..."}

Technical detail from QuickBooks Desktop is logged and returned in
``message``; ``userFacingMessage`` is always safe to show to an end user.
"""

from enum import Enum
from typing import Any, Dict, List, Optional

from fastapi import HTTPException, status
from pydantic import BaseModel, Field

from qbd_assistant.services.conductor import (
    ConductorConnectionError,
    ConductorError,
    ConductorTimeoutError,
)


class ErrorCode(str, Enum):
    """Standardized error codes for the application."""

    # Configuration errors
    CONFIGURATION_MISSING = "CONFIGURATION_MISSING"

    # QuickBooks Desktop (Conductor) errors
    QUICKBOOKS_CONNECTION_ERROR = "QUICKBOOKS_CONNECTION_ERROR"
    QUICKBOOKS_TIMEOUT = "QUICKBOOKS_TIMEOUT"
    QUICKBOOKS_AUTH_ERROR = "QUICKBOOKS_AUTH_ERROR"
    QUICKBOOKS_NOT_FOUND = "QUICKBOOKS_NOT_FOUND"
    QUICKBOOKS_CONFLICT = "QUICKBOOKS_CONFLICT"
    QUICKBOOKS_REQUEST_FAILED = "QUICKBOOKS_REQUEST_FAILED"

    # Validation errors
    VALIDATION_ERROR = "VALIDATION_ERROR"
    INVALID_FILE = "INVALID_FILE"

    # General errors
    INTERNAL_ERROR = "INTERNAL_ERROR"


class ErrorResponse(BaseModel):
    """Standardized error envelope.

    Attributes:
        success: Always False
        error: Short error description
        error_code: Machine-readable error code
        user_facing_message: Message safe to show to an end user
        message: Technical detail, when there is any
        details: Additional error details, such as offending field paths
    """
    success: bool = False
    error: str
    error_code: str = Field(serialization_alias="errorCode")
    user_facing_message: Optional[str] = Field(None, serialization_alias="userFacingMessage")
    message: Optional[str] = None
    details: Optional[Dict[str, Any]] = None

    def to_body(self) -> Dict[str, Any]:
        """Serialize to the JSON response body."""
        return self.model_dump(by_alias=True, exclude_none=True)


USER_FACING_MESSAGES = {
    ErrorCode.CONFIGURATION_MISSING: "QuickBooks Desktop connection is not configured. Please contact your administrator.",

    ErrorCode.QUICKBOOKS_CONNECTION_ERROR: "Cannot reach QuickBooks Desktop right now. Please try again in a moment.",
    ErrorCode.QUICKBOOKS_TIMEOUT: "QuickBooks Desktop took too long to respond. Please try again.",
    ErrorCode.QUICKBOOKS_AUTH_ERROR: "The QuickBooks Desktop connection credentials were rejected. Please contact your administrator.",
    ErrorCode.QUICKBOOKS_NOT_FOUND: "The requested record was not found in QuickBooks Desktop.",
    ErrorCode.QUICKBOOKS_CONFLICT: "The record was changed in QuickBooks Desktop since it was last read. Please reload it and try again.",
    ErrorCode.QUICKBOOKS_REQUEST_FAILED: "QuickBooks Desktop could not complete the request.",

    ErrorCode.VALIDATION_ERROR: "The submitted data is invalid. Please correct the listed fields.",
    ErrorCode.INVALID_FILE: "Invalid file type. Please upload an Excel (.xlsx, .xls) or CSV file.",

    ErrorCode.INTERNAL_ERROR: "An internal error occurred. Please try again or contact support.",
}


def create_error_response(
    error_code: ErrorCode,
    error: Optional[str] = None,
    user_facing_message: Optional[str] = None,
    message: Optional[str] = None,
    details: Optional[Dict[str, Any]] = None,
) -> ErrorResponse:
    """Create a standardized error response.

    Args:
        error_code: The error code
        error: Optional short description (defaults to the user-facing message)
        user_facing_message: Optional override of the default user-facing message
        message: Optional technical detail
        details: Optional additional details

    Returns:
        ErrorResponse for the error code
    """
    user_message = user_facing_message or USER_FACING_MESSAGES.get(error_code)
    return ErrorResponse(
        error=error or user_message or "An error occurred",
        error_code=error_code.value,
        user_facing_message=user_message,
        message=message,
        details=details,
    )


class AppException(HTTPException):
    """Application exception rendered as the standard error envelope."""

    def __init__(
        self,
        error_code: ErrorCode,
        status_code: int = status.HTTP_400_BAD_REQUEST,
        error: Optional[str] = None,
        user_facing_message: Optional[str] = None,
        message: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        self.error_code = error_code
        self.error_response = create_error_response(
            error_code=error_code,
            error=error,
            user_facing_message=user_facing_message,
            message=message,
            details=details,
        )

        super().__init__(
            status_code=status_code,
            detail=self.error_response.to_body(),
        )


class ConfigurationError(AppException):
    """A required setting is missing; no remote call was made."""

    def __init__(self, setting: str, message: Optional[str] = None):
        self.setting = setting
        super().__init__(
            error_code=ErrorCode.CONFIGURATION_MISSING,
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            error=message or f"{setting} environment variable is not set",
            details={"setting": setting},
        )


class RemoteServiceError(AppException):
    """QuickBooks Desktop rejected or failed the request."""

    def __init__(
        self,
        error_code: ErrorCode = ErrorCode.QUICKBOOKS_REQUEST_FAILED,
        error: Optional[str] = None,
        user_facing_message: Optional[str] = None,
        message: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(
            error_code=error_code,
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            error=error,
            user_facing_message=user_facing_message,
            message=message,
            details=details,
        )


class ServiceUnavailableError(AppException):
    """QuickBooks Desktop could not be reached or timed out."""

    def __init__(
        self,
        error_code: ErrorCode = ErrorCode.QUICKBOOKS_CONNECTION_ERROR,
        error: Optional[str] = None,
        user_facing_message: Optional[str] = None,
        message: Optional[str] = None,
    ):
        super().__init__(
            error_code=error_code,
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            error=error,
            user_facing_message=user_facing_message,
            message=message,
        )


class ValidationError(AppException):
    """Request data failed local schema validation; nothing was sent."""

    def __init__(
        self,
        fields: List[Dict[str, Any]],
        error_code: ErrorCode = ErrorCode.VALIDATION_ERROR,
        message: Optional[str] = None,
    ):
        super().__init__(
            error_code=error_code,
            status_code=status.HTTP_400_BAD_REQUEST,
            error="Validation failed",
            message=message,
            details={"fields": fields},
        )


def validation_error_fields(errors: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """Reduce pydantic/FastAPI error entries to ``{field, message}`` pairs.

    The ``body``/``query``/``path`` location prefix is dropped so the field
    path reads the way the caller sent it, e.g. ``billingAddress.city``.
    """
    fields = []
    for entry in errors:
        location = [str(part) for part in entry.get("loc", ())]
        if location and location[0] in ("body", "query", "path"):
            location = location[1:]
        fields.append({
            "field": ".".join(location),
            "message": entry.get("msg", "Invalid value"),
        })
    return fields


def error_from_conductor(exc: ConductorError) -> AppException:
    """Translate a gateway exception into the matching application exception.

    Args:
        exc: Exception raised by the Conductor client

    Returns:
        AppException carrying the remote detail in ``message``
    """
    if isinstance(exc, ConductorTimeoutError):
        return ServiceUnavailableError(
            error_code=ErrorCode.QUICKBOOKS_TIMEOUT,
            error="QuickBooks Desktop request timed out",
            message=str(exc),
        )
    if isinstance(exc, ConductorConnectionError):
        return ServiceUnavailableError(
            error_code=ErrorCode.QUICKBOOKS_CONNECTION_ERROR,
            error="Cannot connect to QuickBooks Desktop",
            message=str(exc),
        )

    error_code = {
        401: ErrorCode.QUICKBOOKS_AUTH_ERROR,
        403: ErrorCode.QUICKBOOKS_AUTH_ERROR,
        404: ErrorCode.QUICKBOOKS_NOT_FOUND,
        409: ErrorCode.QUICKBOOKS_CONFLICT,
    }.get(exc.status_code, ErrorCode.QUICKBOOKS_REQUEST_FAILED)
    if exc.is_conflict:
        error_code = ErrorCode.QUICKBOOKS_CONFLICT

    details = {"code": exc.code, "requestId": exc.request_id}
    return RemoteServiceError(
        error_code=error_code,
        error="QuickBooks Desktop request failed",
        user_facing_message=exc.user_facing_message,
        message=str(exc),
        details={k: v for k, v in details.items() if v} or None,
    )
