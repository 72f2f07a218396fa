"""
Custom exceptions module.

Parsers raise LayoutError/ExcelParseError for unreadable reports; the
reconciliation flow raises the session errors; routes turn every AppError
into the standard JSON envelope.
"""

from exceptions.errors import (
    # Base exceptions
    AppError,
    NotFoundError,
    ValidationError,
    ConflictError,
    ExternalServiceError,
    DatabaseError,

    # Workbook / layout
    ExcelParseError,
    LayoutError,
    MissingPeriodStartError,
    UploadTooLargeError,

    # Reconciliation
    UploadSessionNotFoundError,
    MismatchGroupNotFoundError,
    InvalidCorrectionError,
    UnresolvedMismatchesError,
    InvalidSessionStateError,
    TransactionSinkError,

    # Factors
    InvalidFactorKeyError,
)

__all__ = [
    # Base
    "AppError",
    "NotFoundError",
    "ValidationError",
    "ConflictError",
    "ExternalServiceError",
    "DatabaseError",

    # Workbook / layout
    "ExcelParseError",
    "LayoutError",
    "MissingPeriodStartError",
    "UploadTooLargeError",

    # Reconciliation
    "UploadSessionNotFoundError",
    "MismatchGroupNotFoundError",
    "InvalidCorrectionError",
    "UnresolvedMismatchesError",
    "InvalidSessionStateError",
    "TransactionSinkError",

    # Factors
    "InvalidFactorKeyError",
]
