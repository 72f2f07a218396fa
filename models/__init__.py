"""
Pydantic models for validation and serialization.
"""

from models.base import BaseSchema
from models.catalog import (
    CatalogSnapshot,
    Employee,
    Project,
    ProjectStatus,
)
from models.factors import (
    FactorCreate,
    FactorCurrentResponse,
    FactorEntry,
    FactorHistoryResponse,
    FactorKey,
)

__all__ = [
    "BaseSchema",
    "CatalogSnapshot",
    "Employee",
    "Project",
    "ProjectStatus",
    "FactorCreate",
    "FactorCurrentResponse",
    "FactorEntry",
    "FactorHistoryResponse",
    "FactorKey",
]
