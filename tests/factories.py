"""
Test data factories.

Catalog record dicts use store column names; workbook builders produce
in-memory .xlsx bytes shaped like the payroll and SAE exports.
"""

from io import BytesIO
from typing import Optional

import pandas as pd

from models.catalog import CatalogSnapshot, Employee, Project


class ProjectFactory:
    """
    Factory for project store rows.

    Usage:
        project = ProjectFactory.create(nueva_sae="PR100")
        projects = ProjectFactory.create_batch(3)
    """

    _counter = 0

    @classmethod
    def _next_counter(cls) -> int:
        cls._counter += 1
        return cls._counter

    @classmethod
    def create(
        cls,
        proyecto_id: Optional[str] = None,
        nombre_proyecto: Optional[str] = None,
        nueva_sae: Optional[str] = None,
        clave_interna: Optional[str] = None,
        estatus: str = "Abierto",
        is_deleted: bool = False,
    ) -> dict:
        n = cls._next_counter()
        return {
            "proyecto_id": proyecto_id or str(1000 + n),
            "nombre_proyecto": nombre_proyecto or f"Proyecto {n}",
            "nueva_sae": nueva_sae,
            "clave_interna": clave_interna,
            "estatus": estatus,
            "is_deleted": is_deleted,
        }

    @classmethod
    def create_batch(cls, count: int, **kwargs) -> list[dict]:
        return [cls.create(**kwargs) for _ in range(count)]


class EmployeeFactory:
    """Factory for employee store rows."""

    _counter = 0

    @classmethod
    def _next_counter(cls) -> int:
        cls._counter += 1
        return cls._counter

    @classmethod
    def create(
        cls,
        empleado_id: Optional[str] = None,
        nombre_completo: Optional[str] = None,
        costo_hora: float = 50.0,
        costo_hora_extra: float = 75.0,
        activo: bool = True,
        is_deleted: bool = False,
    ) -> dict:
        n = cls._next_counter()
        return {
            "empleado_id": empleado_id or f"E{500 + n}",
            "nombre_completo": nombre_completo or f"Empleado {n}",
            "costo_hora": costo_hora,
            "costo_hora_extra": costo_hora_extra,
            "activo": activo,
            "is_deleted": is_deleted,
        }


def make_catalog(
    projects: Optional[list[dict]] = None,
    employees: Optional[list[dict]] = None,
) -> CatalogSnapshot:
    """
    Snapshot from store rows.

    Defaults: PR100 (id 1), 25-046-00 (id 2, internal INT-2) open;
    PR300 (id 3) finished; employees E1 at 100/h and E2 at 80/h.
    """
    if projects is None:
        projects = [
            ProjectFactory.create(proyecto_id="1", nueva_sae="PR100", clave_interna="INT-1", nombre_proyecto="Tienda Centro"),
            ProjectFactory.create(proyecto_id="2", nueva_sae="25-046-00", clave_interna="INT-2", nombre_proyecto="Góndola Norte"),
            ProjectFactory.create(proyecto_id="3", nueva_sae="PR300", nombre_proyecto="Bodega Sur", estatus="Terminado"),
        ]
    if employees is None:
        employees = [
            EmployeeFactory.create(empleado_id="E1", nombre_completo="Juan Pérez", costo_hora=100),
            EmployeeFactory.create(empleado_id="E2", nombre_completo="Ana López", costo_hora=80),
        ]
    return CatalogSnapshot.build(
        [Project(**p) for p in projects],
        [Employee(**e) for e in employees],
    )


# ===================
# WORKBOOK BUILDERS
# ===================

PERIOD_LINE = "PERIODO DEL 06-11 DE OCTUBRE 2025"
HOURS_HEADER = [
    "Clave", "Nombre", "Departamento",
    "Lunes", None, None, "Martes", None, None, "Miércoles", None, None,
    "Jueves", None, None, "Viernes", None, None, "Sábado", None,
]
SUB_HEADER = [None, None, None] + ["08:00 - 13:00", "14:00 - 17:30", "17:30 - 19:30"] * 5 + [
    "08:00 - 13:00", "13:00 - 14:00"
]


def to_xlsx(sheets: dict[str, list[list]]) -> bytes:
    """Write {sheet_name: rows} to .xlsx bytes without headers or index."""
    buffer = BytesIO()
    with pd.ExcelWriter(buffer, engine="openpyxl") as writer:
        for name, rows in sheets.items():
            pd.DataFrame(rows).to_excel(writer, sheet_name=name, header=False, index=False)
    return buffer.getvalue()


def hours_workbook(
    data_rows: list[list],
    period_line: Optional[str] = PERIOD_LINE,
    sub_header: bool = True,
) -> bytes:
    """
    Weekly-hours export.

    Each data row is [employee_id, name, department, shift cells...] with
    shift cells in SHIFT_GRID order (Monday morning first).
    """
    rows = [["REPORTE DE ASISTENCIA SEMANAL"]]
    rows.append([period_line] if period_line else ["Departamento: Producción"])
    rows.append(HOURS_HEADER)
    if sub_header:
        rows.append(SUB_HEADER)
    rows.extend(data_rows)
    return to_xlsx({"Reporte": rows})


SAE_HEADER = ["Clave de artículo", "Descripción", "Cantidad", "Costo", "Importe", "Fecha", "Proyecto"]


def sae_workbook(sheets: dict[str, list[list]], header: Optional[list] = None) -> bytes:
    """SAE export: each sheet gets a title line, the header, then its rows."""
    header = header or SAE_HEADER
    return to_xlsx({
        name: [["SAE - Movimientos al inventario"], header] + rows
        for name, rows in sheets.items()
    })
