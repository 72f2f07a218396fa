"""
Custom exception classes for the application.

Unresolved identifiers are NOT exceptions: they travel as Mismatch data
through the reconciliation flow. Exceptions here are for failures that stop
an operation.
"""

from typing import Optional, Any
from datetime import datetime, timezone


class AppError(Exception):
    """
    Base exception for all application errors.

    All custom exceptions inherit from this.

    Attributes:
        code: Error code (e.g., "LAYOUT_NOT_FOUND")
        message: Human-readable message
        status_code: HTTP status code
        details: Additional context
    """

    def __init__(
        self,
        code: str,
        message: str,
        status_code: int = 500,
        details: Optional[dict[str, Any]] = None
    ):
        self.code = code
        self.message = message
        self.status_code = status_code
        self.details = details or {}
        self.timestamp = datetime.now(timezone.utc).isoformat()
        super().__init__(message)

    def to_dict(self) -> dict:
        """Convert to API response format."""
        return {
            "error": {
                "code": self.code,
                "message": self.message,
                "details": self.details,
                "timestamp": self.timestamp
            }
        }


class NotFoundError(AppError):
    """Resource not found (404)."""

    def __init__(
        self,
        resource: str,
        identifier: str,
        code: Optional[str] = None
    ):
        super().__init__(
            code=code or f"{resource.upper().replace(' ', '_')}_NOT_FOUND",
            message=f"{resource} not found",
            status_code=404,
            details={"id": identifier}
        )


class ValidationError(AppError):
    """Validation failed (422)."""

    def __init__(
        self,
        message: str,
        code: str = "VALIDATION_ERROR",
        details: Optional[dict] = None
    ):
        super().__init__(
            code=code,
            message=message,
            status_code=422,
            details=details
        )


class ConflictError(AppError):
    """Conflict with current state (409)."""

    def __init__(
        self,
        message: str,
        code: str = "CONFLICT",
        details: Optional[dict] = None
    ):
        super().__init__(
            code=code,
            message=message,
            status_code=409,
            details=details
        )


class ExternalServiceError(AppError):
    """External service failure (503)."""

    def __init__(
        self,
        service: str,
        message: str,
        details: Optional[dict] = None
    ):
        super().__init__(
            code=f"{service.upper()}_ERROR",
            message=message,
            status_code=503,
            details={"service": service, **(details or {})}
        )


class DatabaseError(AppError):
    """Database operation failed (500)."""

    def __init__(
        self,
        operation: str,
        message: str,
        details: Optional[dict] = None
    ):
        super().__init__(
            code="DATABASE_ERROR",
            message=f"Database {operation} failed: {message}",
            status_code=500,
            details={"operation": operation, **(details or {})}
        )


# ===================
# WORKBOOK / LAYOUT ERRORS
# ===================

class ExcelParseError(ValidationError):
    """Workbook bytes could not be read."""

    def __init__(
        self,
        message: str,
        details: Optional[dict] = None
    ):
        super().__init__(
            code="EXCEL_PARSE_ERROR",
            message=message,
            details=details
        )


class LayoutError(ValidationError):
    """Header row or required column set not found in the report."""

    def __init__(
        self,
        message: str,
        details: Optional[dict] = None
    ):
        super().__init__(
            code="LAYOUT_NOT_FOUND",
            message=message,
            details=details
        )


class MissingPeriodStartError(ValidationError):
    """No PERIODO anchor in the file and no week start supplied."""

    def __init__(self):
        super().__init__(
            code="PERIOD_START_REQUIRED",
            message=(
                "Could not detect the report period in the file. "
                "Select the week start date (Monday) manually."
            ),
            details={"field": "week_start", "format": "YYYY-MM-DD"}
        )


class UploadTooLargeError(ValidationError):
    """Uploaded workbook exceeds the configured size."""

    def __init__(self, size_bytes: int, max_bytes: int):
        super().__init__(
            code="UPLOAD_TOO_LARGE",
            message=f"File exceeds the {max_bytes // (1024 * 1024)} MB limit",
            details={"size_bytes": size_bytes, "max_bytes": max_bytes}
        )


# ===================
# RECONCILIATION ERRORS
# ===================

class UploadSessionNotFoundError(NotFoundError):
    """Upload session expired or never existed."""

    def __init__(self, session_id: str):
        super().__init__(
            resource="Upload session",
            identifier=session_id,
            code="UPLOAD_SESSION_NOT_FOUND"
        )


class MismatchGroupNotFoundError(NotFoundError):
    """No mismatch group for the given (kind, raw value)."""

    def __init__(self, kind: str, raw_value: str):
        super().__init__(
            resource="Mismatch group",
            identifier=f"{kind}:{raw_value}",
            code="MISMATCH_GROUP_NOT_FOUND"
        )


class InvalidCorrectionError(ValidationError):
    """Correction target is not a valid catalog entry for the group."""

    def __init__(self, message: str, details: Optional[dict] = None):
        super().__init__(
            code="INVALID_CORRECTION",
            message=message,
            details=details
        )


class UnresolvedMismatchesError(ValidationError):
    """Save attempted while correctable groups are unresolved."""

    def __init__(self, unresolved: list[dict]):
        super().__init__(
            code="UNRESOLVED_MISMATCHES",
            message=(
                f"Correct or ignore all {len(unresolved)} unresolved "
                "mismatch groups before saving"
            ),
            details={"unresolved_count": len(unresolved), "groups": unresolved}
        )


class InvalidSessionStateError(ConflictError):
    """Operation not allowed in the session's current state."""

    def __init__(self, current_state: str, operation: str):
        super().__init__(
            code="INVALID_SESSION_STATE",
            message=f"Cannot {operation} while session is {current_state}",
            details={"current_state": current_state, "operation": operation}
        )


class TransactionSinkError(ExternalServiceError):
    """Batch submission to the transaction store failed."""

    def __init__(self, message: str, details: Optional[dict] = None):
        super().__init__(
            service="transaction_sink",
            message=message,
            details=details
        )


# ===================
# FACTOR ERRORS
# ===================

class InvalidFactorKeyError(ValidationError):
    """Unknown factor key."""

    def __init__(self, key: str, valid: list[str]):
        super().__init__(
            code="INVALID_FACTOR_KEY",
            message=f"Unknown factor key: {key}",
            details={"provided": key, "valid": valid}
        )
