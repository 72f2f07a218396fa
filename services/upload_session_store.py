"""
In-memory storage for reconciliation sessions.

Sessions live only until saved, discarded, or expired. Single-process only:
a restart drops unsaved uploads, which is fine since nothing was committed.
"""

from datetime import datetime, timedelta
from typing import Optional
import structlog

from services.reconciliation_service import ReconciliationSession

logger = structlog.get_logger(__name__)

DEFAULT_TTL_MINUTES = 30

_sessions: dict[str, tuple[datetime, ReconciliationSession]] = {}


def store_session(
    session: ReconciliationSession,
    ttl_minutes: int = DEFAULT_TTL_MINUTES,
) -> str:
    """Store a session, return its id."""
    expires_at = datetime.now() + timedelta(minutes=ttl_minutes)
    _sessions[session.session_id] = (expires_at, session)
    _cleanup_expired()
    return session.session_id


def retrieve_session(session_id: str) -> Optional[ReconciliationSession]:
    """Session by id, or None if expired/not found."""
    entry = _sessions.get(session_id)
    if entry is None:
        return None
    expires_at, session = entry
    if datetime.now() > expires_at:
        del _sessions[session_id]
        logger.info("upload_session_expired", session_id=session_id)
        return None
    return session


def delete_session(session_id: str) -> None:
    """Remove a session after commit or discard."""
    _sessions.pop(session_id, None)


def clear_sessions() -> None:
    _sessions.clear()


def _cleanup_expired() -> None:
    now = datetime.now()
    expired = [k for k, (exp, _) in _sessions.items() if now > exp]
    for k in expired:
        del _sessions[k]
    if expired:
        logger.debug("upload_sessions_evicted", count=len(expired))
