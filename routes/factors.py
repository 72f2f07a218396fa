"""
Expense factor API routes.

History is append-only: POST adds a new entry, nothing is updated.
"""

from fastapi import APIRouter, Query
from fastapi.responses import JSONResponse
from typing import Optional
import structlog

from models.factors import (
    FactorCreate,
    FactorCurrentResponse,
    FactorEntry,
    FactorHistoryResponse,
)
from services.factor_service import get_factor_service
from exceptions import AppError

logger = structlog.get_logger(__name__)

router = APIRouter()


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


# ===================
# ROUTES
# ===================

@router.get("/{key}", response_model=FactorHistoryResponse)
async def get_factor_history(key: str):
    """History for FACTOR_GASTOS_OP or FACTOR_GASTOS_FAB, newest first."""
    try:
        entries = get_factor_service().get_history(key)
        return FactorHistoryResponse(data=entries, total=len(entries))
    except Exception as e:
        return handle_error(e)


@router.get("/{key}/current", response_model=FactorCurrentResponse)
async def get_current_factor(
    key: str,
    year: Optional[int] = Query(None, ge=2020, le=2100, description="Year-specific value if recorded")
):
    """Value in effect for a key."""
    try:
        return get_factor_service().get_current(key, year=year)
    except Exception as e:
        return handle_error(e)


@router.post("/{key}", response_model=FactorEntry, status_code=201)
async def record_factor(key: str, data: FactorCreate):
    """Append a new factor value."""
    try:
        return get_factor_service().record(key, data)
    except Exception as e:
        return handle_error(e)
