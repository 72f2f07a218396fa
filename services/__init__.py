"""
Business logic services.

Catalog reads, upload reconciliation, transaction batches and factor history.
"""

from services.catalog_service import CatalogService, get_catalog_service
from services.transaction_service import SinkResult, TransactionService, get_transaction_service
from services.factor_service import FactorService, get_factor_service
from services.reconciliation_service import (
    MismatchGroup,
    ReconciliationSession,
    ReportKind,
    SaveResult,
    SessionState,
    dropped_shift_tokens,
    reconstruct,
)
from services.upload_service import UploadService, get_upload_service

__all__ = [
    "CatalogService",
    "get_catalog_service",
    "SinkResult",
    "TransactionService",
    "get_transaction_service",
    "FactorService",
    "get_factor_service",
    "MismatchGroup",
    "ReconciliationSession",
    "ReportKind",
    "SaveResult",
    "SessionState",
    "dropped_shift_tokens",
    "reconstruct",
    "UploadService",
    "get_upload_service",
]
