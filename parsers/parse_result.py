"""
Parse artifacts shared by the weekly-hours and SAE parsers.

Everything here is transient: created per upload, held while the user
corrects mismatches, consumed once by a successful save.
"""

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Any, Optional, Union


class MismatchKind(str, Enum):
    """Why a row or cell could not become a transaction."""
    UNRESOLVED_EMPLOYEE = "employee"
    UNRESOLVED_PROJECT = "project"
    PROJECT_FINISHED = "project-finished"

    @property
    def correctable(self) -> bool:
        """Finished-project warnings are informational only."""
        return self != MismatchKind.PROJECT_FINISHED


class HourType(str, Enum):
    NORMAL = "Normal"
    EXTRA = "Extra"


@dataclass
class HourTransactionCandidate:
    """Resolved labor transaction ready for the hour_transactions table."""
    project_id: str
    project_name: str
    employee_id: str
    employee_name: str
    date: date
    week_number: int
    hours: Decimal
    rate: Decimal
    cost_total: Decimal
    hour_type: HourType = HourType.NORMAL

    def to_record(self) -> dict:
        """Row for the store (column names as stored)."""
        return {
            "proyecto_id": self.project_id,
            "nombre_proyecto": self.project_name,
            "empleado_id": self.employee_id,
            "nombre_completo_empleado": self.employee_name,
            "fecha_registro": self.date.isoformat(),
            "semana_del_anio": self.week_number,
            "horas_registradas": float(self.hours),
            "costo_hora_real": float(self.rate),
            "costo_total_mo": float(self.cost_total),
            "tipo_hora": self.hour_type.value,
        }


@dataclass
class MaterialTransactionCandidate:
    """Resolved SAE material movement ready for material_transactions."""
    project_id: str
    project_name: str
    part_number: str
    description: str
    quantity: Decimal
    unit_cost: Decimal
    total_cost: Decimal
    movement_date: date
    source_sheet: str

    def to_record(self) -> dict:
        """Row for the store (column names as stored)."""
        return {
            "proyecto_id": self.project_id,
            "nombre_proyecto": self.project_name,
            "numero_parte_sae": self.part_number,
            "descripcion_material": self.description,
            "cantidad": float(self.quantity),
            "costo_unitario": float(self.unit_cost),
            "costo_total_material": float(self.total_cost),
            "fecha_movimiento_sae": self.movement_date.isoformat(),
            "origen_dato": self.source_sheet,
        }


Candidate = Union[HourTransactionCandidate, MaterialTransactionCandidate]


@dataclass
class Mismatch:
    """
    A row or cell whose identifier did not resolve.

    recovered_context keeps enough of the original row to rebuild the
    transaction once a correction supplies the missing identifier:
    - hours/project: employee_id, date, week_number, hours
    - hours/employee: shifts (list of date, week_number, hours, project_token)
    - sae/project: part_number, description, quantity, unit_cost, amount, date
    """
    row_index: int
    kind: MismatchKind
    raw_value: str
    sheet_name: Optional[str] = None
    recovered_context: dict[str, Any] = field(default_factory=dict)

    @property
    def group_key(self) -> tuple[MismatchKind, str]:
        return (self.kind, self.raw_value)

    def to_dict(self) -> dict:
        return {
            "row_index": self.row_index,
            "kind": self.kind.value,
            "raw_value": self.raw_value,
            "sheet_name": self.sheet_name,
            "recovered_context": _jsonable(self.recovered_context),
        }


@dataclass
class ParseResult:
    """Partitioned output of one parser run."""
    message: str = ""
    candidates: list[Candidate] = field(default_factory=list)
    mismatches: list[Mismatch] = field(default_factory=list)
    period_start: Optional[date] = None
    success: bool = True

    @property
    def correctable_mismatches(self) -> list[Mismatch]:
        return [m for m in self.mismatches if m.kind.correctable]

    @property
    def warnings(self) -> list[Mismatch]:
        return [m for m in self.mismatches if not m.kind.correctable]

    @property
    def has_data(self) -> bool:
        return bool(self.candidates or self.mismatches)

    def summary(self) -> dict:
        """Totals for the upload screen."""
        return summarize(self.candidates)

    def to_dict(self) -> dict:
        """Convert to dictionary for API response."""
        return {
            "success": self.success,
            "message": self.message,
            "period_start": self.period_start.isoformat() if self.period_start else None,
            "candidates": [_jsonable(c.to_record()) for c in self.candidates],
            "mismatches": [m.to_dict() for m in self.mismatches],
            "summary": self.summary(),
        }


def summarize(candidates: list[Candidate]) -> dict:
    """
    Summaries shown after a parse.

    Hours: hours per project and per employee.
    Materials: total cost, count and cost per source sheet.
    """
    hours = [c for c in candidates if isinstance(c, HourTransactionCandidate)]
    materials = [c for c in candidates if isinstance(c, MaterialTransactionCandidate)]
    result: dict[str, Any] = {}

    if hours:
        by_project: dict[str, Decimal] = {}
        by_employee: dict[str, Decimal] = {}
        for c in hours:
            by_project[c.project_name] = by_project.get(c.project_name, Decimal("0")) + c.hours
            by_employee[c.employee_name] = by_employee.get(c.employee_name, Decimal("0")) + c.hours
        result["hours_by_project"] = {k: float(v) for k, v in by_project.items()}
        result["hours_by_employee"] = {k: float(v) for k, v in by_employee.items()}

    if materials:
        by_sheet: dict[str, Decimal] = {}
        for c in materials:
            by_sheet[c.source_sheet] = by_sheet.get(c.source_sheet, Decimal("0")) + c.total_cost
        result["total_materials_cost"] = float(sum(by_sheet.values(), Decimal("0")))
        result["materials_count"] = len(materials)
        result["cost_by_sheet"] = {k: float(v) for k, v in by_sheet.items()}

    return result


def _jsonable(value: Any) -> Any:
    if isinstance(value, dict):
        return {k: _jsonable(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_jsonable(v) for v in value]
    if isinstance(value, Decimal):
        return float(value)
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, Enum):
        return value.value
    return value
