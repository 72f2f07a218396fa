"""
Upload orchestration.

One upload: size check → catalog snapshot (fetched once) → parser →
ReconciliationSession stored under a session id. Later calls look the
session up and delegate to it.
"""

from datetime import date
from typing import Optional
import structlog

from config import settings
from exceptions import UploadSessionNotFoundError, UploadTooLargeError
from parsers import parse_sae_report, parse_weekly_hours
from services.catalog_service import CatalogService, get_catalog_service
from services.reconciliation_service import (
    KindLike,
    MismatchGroup,
    ReconciliationSession,
    ReportKind,
    SaveResult,
    SessionState,
)
from services.transaction_service import TransactionService, get_transaction_service
from services.upload_session_store import delete_session, retrieve_session, store_session

logger = structlog.get_logger(__name__)


class UploadService:
    """Upload and reconciliation workflow."""

    def __init__(
        self,
        catalog_service: Optional[CatalogService] = None,
        transaction_service: Optional[TransactionService] = None,
    ):
        self.catalog_service = catalog_service or get_catalog_service()
        self.transaction_service = transaction_service or get_transaction_service()

    # ===================
    # UPLOADS
    # ===================

    def upload_hours(
        self,
        content: bytes,
        filename: Optional[str] = None,
        week_start: Optional[date] = None,
    ) -> ReconciliationSession:
        """
        Parse a weekly-hours workbook and open a session.

        Raises:
            UploadTooLargeError, ExcelParseError, LayoutError,
            MissingPeriodStartError
        """
        self._check_size(content)
        logger.info("hours_upload_received", filename=filename, size=len(content))

        catalog = self.catalog_service.get_snapshot()
        result = parse_weekly_hours(
            content,
            catalog,
            week_start=week_start,
            header_scan_rows=settings.header_scan_rows,
            period_scan_rows=settings.period_scan_rows,
        )
        return self._open_session(ReportKind.HOURS, result, catalog)

    def upload_sae(self, content: bytes, filename: Optional[str] = None) -> ReconciliationSession:
        """
        Parse an SAE materials workbook and open a session.

        Raises:
            UploadTooLargeError, ExcelParseError, LayoutError
        """
        self._check_size(content)
        logger.info("sae_upload_received", filename=filename, size=len(content))

        catalog = self.catalog_service.get_snapshot()
        result = parse_sae_report(content, catalog)
        return self._open_session(ReportKind.SAE, result, catalog)

    # ===================
    # SESSION OPERATIONS
    # ===================

    def get_session(self, session_id: str) -> ReconciliationSession:
        """
        Raises:
            UploadSessionNotFoundError: If expired or unknown
        """
        session = retrieve_session(session_id)
        if session is None:
            raise UploadSessionNotFoundError(session_id)
        return session

    def correct(self, session_id: str, kind: KindLike, raw_value: str, catalog_id: str) -> MismatchGroup:
        return self.get_session(session_id).correct(kind, raw_value, catalog_id)

    def clear_correction(self, session_id: str, kind: KindLike, raw_value: str) -> MismatchGroup:
        return self.get_session(session_id).clear_correction(kind, raw_value)

    def set_ignored(self, session_id: str, kind: KindLike, raw_value: str, ignored: bool) -> MismatchGroup:
        return self.get_session(session_id).set_ignored(kind, raw_value, ignored)

    def save(self, session_id: str) -> SaveResult:
        """
        Submit the session's batch. Committed sessions are dropped from the
        store; failed saves keep the session for retry.
        """
        session = self.get_session(session_id)
        outcome = session.save(self.transaction_service)
        if session.state == SessionState.COMMITTED:
            delete_session(session_id)
        return outcome

    def discard(self, session_id: str) -> None:
        """Reset and drop a session."""
        session = self.get_session(session_id)
        session.reset()
        delete_session(session_id)

    # ===================
    # INTERNALS
    # ===================

    def _open_session(self, kind, result, catalog) -> ReconciliationSession:
        session = ReconciliationSession(kind, result, catalog)
        store_session(session, ttl_minutes=settings.upload_session_ttl_minutes)
        return session

    def _check_size(self, content: bytes) -> None:
        if len(content) > settings.max_upload_bytes:
            raise UploadTooLargeError(len(content), settings.max_upload_bytes)


# Singleton instance
_upload_service: Optional[UploadService] = None


def get_upload_service() -> UploadService:
    """Get or create UploadService instance."""
    global _upload_service
    if _upload_service is None:
        _upload_service = UploadService()
    return _upload_service
