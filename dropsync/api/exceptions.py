"""Error codes and HTTP exceptions for the trigger API."""

from enum import Enum
from typing import Any


class ErrorCode(str, Enum):
    """Standard error codes for API responses."""

    # Client errors (4xx)
    VALIDATION_ERROR = "VALIDATION_ERROR"
    UNAUTHORIZED = "UNAUTHORIZED"

    # Server errors (5xx)
    INTERNAL_ERROR = "INTERNAL_ERROR"
    EXTERNAL_API_ERROR = "EXTERNAL_API_ERROR"

    # Configuration errors
    CONFIGURATION_ERROR = "CONFIGURATION_ERROR"


class APIException(Exception):
    """Base exception for all API errors."""

    def __init__(
        self,
        message: str,
        error_code: ErrorCode,
        status_code: int = 500,
        details: dict[str, Any] | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.error_code = error_code
        self.status_code = status_code
        self.details = details or {}


class AuthenticationError(APIException):
    """Raised when a trigger request carries a missing or wrong token."""

    def __init__(self, message: str = "unauthorized"):
        super().__init__(
            message=message,
            error_code=ErrorCode.UNAUTHORIZED,
            status_code=401,
        )


class ExternalAPIError(APIException):
    """Raised when Raindrop or Notion fails."""

    def __init__(self, service_name: str, message: str | None = None, status: int | None = None):
        details: dict[str, Any] = {"service": service_name}
        if status is not None:
            details["upstream_status"] = status
        super().__init__(
            message=message or f"{service_name} request failed",
            error_code=ErrorCode.EXTERNAL_API_ERROR,
            status_code=502,
            details=details,
        )


class ConfigurationAPIError(APIException):
    """Raised when a required setting is missing or invalid."""

    def __init__(self, message: str, missing: tuple[str, ...] = ()):
        super().__init__(
            message=message,
            error_code=ErrorCode.CONFIGURATION_ERROR,
            status_code=500,
            details={"missing": list(missing)} if missing else None,
        )
