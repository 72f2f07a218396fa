"""
Catalog schemas and the per-upload lookup snapshot.

Projects and employees live in the external store with Spanish column
names (proyecto_id, nueva_sae, ...). The snapshot is built once per upload
and never mutated: every row of one parse resolves against the same
catalog version.
"""

from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
from types import MappingProxyType
from typing import Mapping, Optional

import structlog
from pydantic import Field, field_validator

from models.base import BaseSchema
from utils.text_utils import normalize_identifier

logger = structlog.get_logger(__name__)


class ProjectStatus(str, Enum):
    """Project lifecycle status as stored."""
    OPEN = "Abierto"
    IN_PROGRESS = "Proceso"
    FINISHED = "Terminado"


class Project(BaseSchema):
    """Project catalog record."""

    id: str = Field(..., alias="proyecto_id")
    name: str = Field(..., alias="nombre_proyecto")
    sae_code: Optional[str] = Field(None, alias="nueva_sae")
    internal_code: Optional[str] = Field(None, alias="clave_interna")
    status: ProjectStatus = Field(ProjectStatus.OPEN, alias="estatus")

    @field_validator("id", "sae_code", "internal_code", mode="before")
    @classmethod
    def coerce_code(cls, v):
        """Store returns numeric ids/codes for some rows."""
        if v is None:
            return v
        if isinstance(v, float) and v.is_integer():
            v = int(v)
        return str(v)

    @property
    def is_finished(self) -> bool:
        return self.status == ProjectStatus.FINISHED


class Employee(BaseSchema):
    """Employee catalog record."""

    id: str = Field(..., alias="empleado_id")
    name: str = Field(..., alias="nombre_completo")
    hourly_rate: Decimal = Field(Decimal("0"), ge=0, alias="costo_hora")
    overtime_rate: Decimal = Field(Decimal("0"), ge=0, alias="costo_hora_extra")
    active: bool = Field(True, alias="activo")

    @field_validator("id", mode="before")
    @classmethod
    def coerce_id(cls, v):
        if isinstance(v, float) and v.is_integer():
            v = int(v)
        return str(v)

    @field_validator("hourly_rate", "overtime_rate", mode="before")
    @classmethod
    def blank_rate_is_zero(cls, v):
        if v is None or v == "":
            return Decimal("0")
        return Decimal(str(v))


def _index(records, key_fn, index_name: str) -> Mapping:
    """Build an immutable normalized-key index; first record wins."""
    index = {}
    for record in records:
        key = normalize_identifier(key_fn(record))
        if not key:
            continue
        if key in index:
            logger.warning(
                "duplicate_catalog_key",
                index=index_name,
                key=key,
                kept=index[key].id,
                dropped=record.id,
            )
            continue
        index[key] = record
    return MappingProxyType(index)


@dataclass(frozen=True)
class CatalogSnapshot:
    """
    Immutable lookup tables over one catalog read.

    All keys are normalize_identifier() output.
    """
    projects: tuple[Project, ...] = ()
    employees: tuple[Employee, ...] = ()
    projects_by_sae_code: Mapping[str, Project] = field(default_factory=lambda: MappingProxyType({}))
    projects_by_internal_code: Mapping[str, Project] = field(default_factory=lambda: MappingProxyType({}))
    projects_by_name: Mapping[str, Project] = field(default_factory=lambda: MappingProxyType({}))
    projects_by_id: Mapping[str, Project] = field(default_factory=lambda: MappingProxyType({}))
    employees_by_id: Mapping[str, Employee] = field(default_factory=lambda: MappingProxyType({}))

    @classmethod
    def build(
        cls,
        projects: list[Project],
        employees: list[Employee],
    ) -> "CatalogSnapshot":
        """Index projects and employees by every lookup key."""
        projects = tuple(projects)
        employees = tuple(employees)
        return cls(
            projects=projects,
            employees=employees,
            projects_by_sae_code=_index(projects, lambda p: p.sae_code, "sae_code"),
            projects_by_internal_code=_index(projects, lambda p: p.internal_code, "internal_code"),
            projects_by_name=_index(projects, lambda p: p.name, "name"),
            projects_by_id=_index(projects, lambda p: p.id, "project_id"),
            employees_by_id=_index(employees, lambda e: e.id, "employee_id"),
        )

    def employee(self, raw: object) -> Optional[Employee]:
        """Look up an employee by raw id cell."""
        return self.employees_by_id.get(normalize_identifier(raw))

    def project(self, project_id: object) -> Optional[Project]:
        """Look up a project by catalog id."""
        return self.projects_by_id.get(normalize_identifier(project_id))
