"""
Expense factor schemas.

Factors are append-only: every change is a new history row. The current
value is the newest row.
"""

from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Optional

from pydantic import Field, field_validator

from models.base import BaseSchema


class FactorKey(str, Enum):
    """Known expense factors."""
    OPERATING = "FACTOR_GASTOS_OP"
    MANUFACTURING = "FACTOR_GASTOS_FAB"


class FactorCreate(BaseSchema):
    """Record a new factor value."""

    value: Decimal = Field(..., ge=0, description="Factor value (0.15 = 15%)")
    user: str = Field(
        default="Admin",
        min_length=1,
        max_length=100,
        description="Who recorded the value"
    )
    year: Optional[int] = Field(
        None,
        ge=2020,
        le=2100,
        description="Year the factor applies to (None = general)"
    )


class FactorEntry(BaseSchema):
    """One history row."""

    id: Optional[str] = Field(None, alias="config_id")
    key: FactorKey = Field(..., alias="clave")
    value: Decimal = Field(..., alias="valor")
    recorded_at: datetime = Field(..., alias="fecha_registro")
    user: Optional[str] = Field(None, alias="usuario")
    year: Optional[int] = Field(None, alias="anio")

    @field_validator("id", mode="before")
    @classmethod
    def coerce_id(cls, v):
        return None if v is None else str(v)

    @field_validator("value", mode="before")
    @classmethod
    def float_to_decimal(cls, v):
        """Store returns floats; 0.12 must stay 0.12."""
        return Decimal(str(v)) if isinstance(v, float) else v


class FactorCurrentResponse(BaseSchema):
    """Value in effect for a key (and optional year)."""

    key: FactorKey
    value: Decimal
    year: Optional[int] = None
    source: str = Field(..., description="year, general or default")
    recorded_at: Optional[datetime] = None


class FactorHistoryResponse(BaseSchema):
    data: list[FactorEntry]
    total: int
