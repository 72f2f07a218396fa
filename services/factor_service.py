"""
Factor service: append-only history of expense factors.

Reporting multiplies material cost by FACTOR_GASTOS_FAB and sale price by
FACTOR_GASTOS_OP; this service only stores and reads the values.
"""

from datetime import datetime, timezone
from decimal import Decimal
from typing import Optional
import structlog

from config import get_supabase_client
from exceptions import DatabaseError, InvalidFactorKeyError
from models.factors import FactorCreate, FactorCurrentResponse, FactorEntry, FactorKey

logger = structlog.get_logger(__name__)

DEFAULT_FACTOR_VALUE = Decimal("0")


class FactorService:
    """
    Factor history reads and appends.

    No updates or deletes: a correction is a newer entry.
    """

    def __init__(self):
        self.db = get_supabase_client()
        self.table = "factor_history"

    # ===================
    # READ OPERATIONS
    # ===================

    def get_history(self, key: str) -> list[FactorEntry]:
        """
        All entries for a key, newest first.

        Raises:
            InvalidFactorKeyError: If key is not a known factor
        """
        factor_key = _validate_key(key)
        logger.info("getting_factor_history", key=factor_key.value)

        try:
            response = (
                self.db.table(self.table)
                .select("*")
                .eq("clave", factor_key.value)
                .order("fecha_registro", desc=True)
                .execute()
            )
        except Exception as e:
            logger.error("factor_history_failed", key=factor_key.value, error=str(e))
            raise DatabaseError("select", str(e))

        entries = [FactorEntry(**row) for row in response.data]
        # Store ordering is not trusted for ties across clients
        entries.sort(key=lambda e: e.recorded_at, reverse=True)

        logger.info("factor_history_retrieved", key=factor_key.value, count=len(entries))
        return entries

    def get_current(self, key: str, year: Optional[int] = None) -> FactorCurrentResponse:
        """
        Value in effect.

        Latest entry for the year if one exists, else latest entry without a
        year, else the default (0).
        """
        history = self.get_history(key)
        factor_key = FactorKey(key)

        if year is not None:
            for entry in history:
                if entry.year == year:
                    return FactorCurrentResponse(
                        key=factor_key,
                        value=entry.value,
                        year=year,
                        source="year",
                        recorded_at=entry.recorded_at,
                    )

        for entry in history:
            if entry.year is None:
                return FactorCurrentResponse(
                    key=factor_key,
                    value=entry.value,
                    year=year,
                    source="general",
                    recorded_at=entry.recorded_at,
                )

        logger.debug("factor_default_used", key=factor_key.value, year=year)
        return FactorCurrentResponse(
            key=factor_key,
            value=DEFAULT_FACTOR_VALUE,
            year=year,
            source="default",
        )

    # ===================
    # APPEND
    # ===================

    def record(self, key: str, data: FactorCreate) -> FactorEntry:
        """
        Append a new value.

        Raises:
            InvalidFactorKeyError: If key is not a known factor
        """
        factor_key = _validate_key(key)
        logger.info(
            "recording_factor",
            key=factor_key.value,
            value=str(data.value),
            year=data.year,
            user=data.user,
        )

        row = {
            "clave": factor_key.value,
            "valor": float(data.value),
            "fecha_registro": datetime.now(timezone.utc).isoformat(),
            "usuario": data.user,
            "anio": data.year,
        }

        try:
            response = self.db.table(self.table).insert(row).execute()
        except Exception as e:
            logger.error("factor_record_failed", key=factor_key.value, error=str(e))
            raise DatabaseError("insert", str(e))

        stored = response.data[0] if response.data else row
        entry = FactorEntry(**stored)
        logger.info("factor_recorded", key=factor_key.value, id=entry.id)
        return entry


def _validate_key(key: str) -> FactorKey:
    try:
        return FactorKey(key)
    except ValueError:
        raise InvalidFactorKeyError(key, [k.value for k in FactorKey])


# Singleton instance
_factor_service: Optional[FactorService] = None


def get_factor_service() -> FactorService:
    """Get or create FactorService instance."""
    global _factor_service
    if _factor_service is None:
        _factor_service = FactorService()
    return _factor_service
