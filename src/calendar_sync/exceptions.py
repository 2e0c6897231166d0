"""Custom exception classes for the calendar sync service."""

from typing import Any, Dict, Optional


class APIException(Exception):
    """Base exception for all API errors."""

    def __init__(
        self,
        message: str,
        status_code: int = 500,
        code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.status_code = status_code
        self.code = code or self.__class__.__name__
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self, request_id: Optional[str] = None) -> Dict[str, Any]:
        """Convert exception to dictionary for JSON response."""
        return {
            "error": {
                "message": self.message,
                "code": self.code,
                "status_code": self.status_code,
                "details": self.details,
                "request_id": request_id,
            }
        }


class ConfigurationError(APIException):
    """Exception raised when required server configuration is missing."""

    def __init__(
        self,
        message: str = "Server configuration error",
        missing: Optional[list] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        error_details = details or {}
        if missing:
            error_details["missing"] = missing
        super().__init__(
            message=message,
            status_code=500,
            code="CONFIGURATION_ERROR",
            details=error_details,
        )


class AuthenticationError(APIException):
    """Exception raised for authentication failures."""

    def __init__(
        self,
        message: str = "Authentication failed",
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(
            message=message,
            status_code=401,
            code="AUTHENTICATION_ERROR",
            details=details,
        )


class ValidationError(APIException):
    """Exception raised for invalid or incomplete request input."""

    def __init__(
        self,
        message: str = "Validation failed",
        errors: Optional[Dict[str, Any]] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        error_details = details or {}
        if errors:
            error_details["validation_errors"] = errors
        super().__init__(
            message=message,
            status_code=400,
            code="VALIDATION_ERROR",
            details=error_details,
        )


class NotFoundError(APIException):
    """Exception raised when a resource is not found."""

    def __init__(
        self,
        resource: str = "Resource",
        resource_id: Optional[str] = None,
        message: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        if message is None:
            message = f"{resource} not found"
            if resource_id:
                message += f" with id: {resource_id}"
        error_details = details or {}
        error_details["resource"] = resource
        if resource_id:
            error_details["resource_id"] = resource_id
        super().__init__(
            message=message,
            status_code=404,
            code="NOT_FOUND",
            details=error_details,
        )


class CalendarNotConnectedError(NotFoundError):
    """Raised when a user has no stored Nylas account credential."""

    def __init__(self, user_id: Optional[str] = None):
        super().__init__(
            resource="NylasAccount",
            message="Calendar not connected. Please connect your calendar first.",
            details={"user_id": user_id} if user_id else None,
        )
        self.code = "CALENDAR_NOT_CONNECTED"


class DatabaseError(APIException):
    """Exception raised for database-related errors."""

    def __init__(
        self,
        message: str = "Database operation failed",
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(
            message=message,
            status_code=500,
            code="DATABASE_ERROR",
            details=details,
        )


class ExternalServiceError(APIException):
    """Exception raised when external service calls fail."""

    def __init__(
        self,
        service: str,
        message: Optional[str] = None,
        status_code: int = 502,
        details: Optional[Dict[str, Any]] = None,
    ):
        error_message = message or f"External service '{service}' unavailable"
        error_details = details or {}
        error_details["service"] = service
        super().__init__(
            message=error_message,
            status_code=status_code,
            code="EXTERNAL_SERVICE_ERROR",
            details=error_details,
        )


class WebhookSignatureError(APIException):
    """Exception raised when a webhook signature is absent or does not verify."""

    def __init__(
        self,
        message: str = "Invalid webhook signature",
        status_code: int = 401,
    ):
        super().__init__(
            message=message,
            status_code=status_code,
            code="WEBHOOK_SIGNATURE_ERROR",
        )
