"""
Upload API routes.

Two-step flow for both report types:
1. POST /hours or /sae → parse, open a reconciliation session
2. Correct/ignore mismatch groups, then POST /{session_id}/save
"""

from fastapi import APIRouter, File, Form, UploadFile
from fastapi.responses import JSONResponse
from typing import Optional
import structlog

from exceptions import AppError, ValidationError
from models.uploads import (
    CorrectionRequest,
    GroupKey,
    GroupUpdateResponse,
    IgnoreRequest,
    SaveResponse,
)
from services.upload_service import get_upload_service
from utils.date_utils import parse_iso_date

logger = structlog.get_logger(__name__)

router = APIRouter()

EXCEL_EXTENSIONS = (".xlsx", ".xls")


# ===================
# EXCEPTION HANDLER
# ===================

def handle_error(e: Exception) -> JSONResponse:
    """Convert exception to JSON response."""
    if isinstance(e, AppError):
        return JSONResponse(
            status_code=e.status_code,
            content=e.to_dict()
        )
    logger.error("unexpected_error", error=str(e), type=type(e).__name__)
    return JSONResponse(
        status_code=500,
        content={
            "error": {
                "code": "INTERNAL_ERROR",
                "message": "An unexpected error occurred"
            }
        }
    )


def _check_extension(file: UploadFile) -> None:
    if not file.filename or not file.filename.lower().endswith(EXCEL_EXTENSIONS):
        raise ValidationError(
            message="File must be an Excel file (.xlsx or .xls)",
            code="INVALID_FILE_TYPE",
            details={"filename": file.filename}
        )


def _group_update(session, group) -> GroupUpdateResponse:
    return GroupUpdateResponse(
        group=group.to_dict(),
        state=session.state.value,
        unresolved_count=len(session.unresolved_groups()),
    )


# ===================
# UPLOADS
# ===================

@router.post("/hours")
async def upload_hours(
    file: UploadFile = File(...),
    week_start: Optional[str] = Form(None, description="Monday of the week (YYYY-MM-DD), used when the file has no PERIODO line"),
):
    """
    Upload a weekly-hours report.

    Returns the new session with candidates and mismatch groups.

    Raises:
        422: Unreadable file, header not found, or period start required
    """
    logger.info("hours_upload_started", filename=file.filename, week_start=week_start)

    try:
        _check_extension(file)
        try:
            start = parse_iso_date(week_start)
        except ValueError:
            raise ValidationError(
                message="week_start must be a date in YYYY-MM-DD format",
                code="INVALID_WEEK_START",
                details={"week_start": week_start}
            )

        content = await file.read()
        session = get_upload_service().upload_hours(content, file.filename, week_start=start)
        return session.to_dict()

    except Exception as e:
        return handle_error(e)


@router.post("/sae")
async def upload_sae(file: UploadFile = File(...)):
    """
    Upload an SAE materials report (all sheets).

    Raises:
        422: Unreadable file or no recognizable columns
    """
    logger.info("sae_upload_started", filename=file.filename)

    try:
        _check_extension(file)
        content = await file.read()
        session = get_upload_service().upload_sae(content, file.filename)
        return session.to_dict()

    except Exception as e:
        return handle_error(e)


# ===================
# SESSION
# ===================

@router.get("/{session_id}")
async def get_session(session_id: str):
    """Session state, candidates, groups and summary."""
    try:
        return get_upload_service().get_session(session_id).to_dict()
    except Exception as e:
        return handle_error(e)


@router.put("/{session_id}/corrections", response_model=GroupUpdateResponse)
async def correct_group(session_id: str, data: CorrectionRequest):
    """Assign a catalog id to every row of a mismatch group."""
    try:
        service = get_upload_service()
        group = service.correct(session_id, data.kind, data.raw_value, data.catalog_id)
        return _group_update(service.get_session(session_id), group)
    except Exception as e:
        return handle_error(e)


@router.delete("/{session_id}/corrections", response_model=GroupUpdateResponse)
async def clear_correction(session_id: str, data: GroupKey):
    """Remove a group's correction."""
    try:
        service = get_upload_service()
        group = service.clear_correction(session_id, data.kind, data.raw_value)
        return _group_update(service.get_session(session_id), group)
    except Exception as e:
        return handle_error(e)


@router.put("/{session_id}/ignored", response_model=GroupUpdateResponse)
async def set_ignored(session_id: str, data: IgnoreRequest):
    """Ignore (or un-ignore) a mismatch group."""
    try:
        service = get_upload_service()
        group = service.set_ignored(session_id, data.kind, data.raw_value, data.ignored)
        return _group_update(service.get_session(session_id), group)
    except Exception as e:
        return handle_error(e)


@router.post("/{session_id}/save", response_model=SaveResponse)
async def save_session(session_id: str):
    """
    Save candidates plus corrected rows in one batch.

    Raises:
        422: Unresolved groups remain
        503: Store rejected the batch (session kept for retry)
    """
    try:
        service = get_upload_service()
        session = service.get_session(session_id)
        outcome = service.save(session_id)

        logger.info(
            "upload_saved",
            session_id=session_id,
            created=outcome.created,
            submitted=outcome.submitted,
        )

        return SaveResponse(
            success=outcome.success,
            message=outcome.message,
            created=outcome.created,
            submitted=outcome.submitted,
            state=session.state.value,
        )
    except Exception as e:
        return handle_error(e)


@router.delete("/{session_id}", status_code=204)
async def discard_session(session_id: str):
    """Discard an unsaved upload."""
    try:
        get_upload_service().discard(session_id)
        return None
    except Exception as e:
        return handle_error(e)
