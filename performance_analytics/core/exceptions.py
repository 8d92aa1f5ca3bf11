from typing import Any, Dict, Optional

class AppException(Exception):
    def __init__(
        self,
        message: str,
        status_code: int = 400,
        error_code: str = "BUSINESS_ERROR",
        details: Optional[Dict[str, Any]] = None
    ):
        self.message = message
        self.status_code = status_code
        self.error_code = error_code
        self.details = details
        super().__init__(self.message)

class ValidationError(AppException):
    """Malformed scope, date range or export parameter. Raised before any fetch."""
    def __init__(
        self,
        message: str,
        details: Optional[Dict[str, Any]] = None,
        error_code: str = "VALIDATION_ERROR"
    ):
        super().__init__(
            message=message,
            status_code=400,
            error_code=error_code,
            details=details
        )

class UnsupportedFormatError(ValidationError):
    def __init__(self, requested_format: str):
        super().__init__(
            message=f"Unsupported export format: {requested_format!r}. Use 'csv' or 'json'.",
            details={"format": requested_format},
            error_code="UNSUPPORTED_FORMAT"
        )

class AuthenticationError(AppException):
    def __init__(self, message: str = "Could not identify the caller"):
        super().__init__(
            message=message,
            status_code=401,
            error_code="AUTH_FAILED"
        )

class AuthorizationError(AppException):
    """The caller's role cannot see the requested scope or cannot export."""
    def __init__(self, message: str = "Insufficient permissions", details: Optional[Dict[str, Any]] = None):
        super().__init__(
            message=message,
            status_code=403,
            error_code="PERMISSION_DENIED",
            details=details
        )

class DataSourceError(AppException):
    def __init__(self, message: str = "Analytics data source unavailable", details: Optional[Dict[str, Any]] = None):
        super().__init__(
            message=message,
            status_code=503,
            error_code="DATA_SOURCE_ERROR",
            details=details
        )
