"""
Weekly-hours report parser.

Parses the payroll time-grid export: one employee per row, one shift per
column (see config/shift_grid.py). Every populated shift cell becomes either
an HourTransactionCandidate or a Mismatch.

Cell formats:
- "25-046-00"          → project code, column default duration
- "25-046-00(12:30)"   → project code, employee left at 12:30
- "X" / short tokens   → no work, skipped silently
"""

from datetime import date, timedelta
from decimal import Decimal, ROUND_HALF_UP
from typing import Optional
import re
import structlog

from config.shift_grid import EMPLOYEE_COLUMN, FIRST_SHIFT_COLUMN, SHIFT_GRID, ShiftColumn
from models.catalog import CatalogSnapshot, Employee, Project
from parsers.layout_detector import (
    HEADER_SCAN_ROWS,
    PERIOD_SCAN_ROWS,
    detect_hours_layout,
)
from parsers.parse_result import (
    HourTransactionCandidate,
    HourType,
    Mismatch,
    MismatchKind,
    ParseResult,
)
from parsers.workbook import WorkbookSource, read_first_sheet
from utils.date_utils import iso_week_number
from utils.text_utils import cell_text, normalize_identifier

logger = structlog.get_logger(__name__)

HOURS_SHEET_LABEL = "Horas"

# Tokens shorter than this are noise (initials, stray marks)
MIN_TOKEN_LENGTH = 3
NO_WORK_MARK = "X"

END_TIME_PATTERN = re.compile(r"^(.+?)\s*\((\d{1,2}):(\d{2})\)$")

TWO_PLACES = Decimal("0.01")


def parse_weekly_hours(
    file: WorkbookSource,
    catalog: CatalogSnapshot,
    week_start: Optional[date] = None,
    header_scan_rows: int = HEADER_SCAN_ROWS,
    period_scan_rows: int = PERIOD_SCAN_ROWS,
) -> ParseResult:
    """
    Parse a weekly-hours workbook (first sheet).

    Args:
        file: File path, BytesIO, or raw bytes
        catalog: Catalog snapshot to resolve employees and projects
        week_start: Fallback period start when the file has no PERIODO anchor

    Returns:
        ParseResult with hour candidates and mismatches

    Raises:
        ExcelParseError: If the workbook cannot be read
        LayoutError: If the header row is not found
        MissingPeriodStartError: If no period start is available
    """
    logger.info("parsing_hours_report", file_type=type(file).__name__)

    sheet_name, grid = read_first_sheet(file)
    layout = detect_hours_layout(
        grid,
        fallback_start=week_start,
        header_scan_rows=header_scan_rows,
        period_scan_rows=period_scan_rows,
    )

    result = ParseResult(period_start=layout.period_start)
    skipped_rows = 0

    for r in range(layout.data_start_row, len(grid)):
        row = grid[r]
        raw_employee = _cell(row, EMPLOYEE_COLUMN)
        if raw_employee is None:
            skipped_rows += 1
            continue

        employee_key = normalize_identifier(raw_employee)
        # Repeated header rows inside the data block
        if "CLAVE" in employee_key or "EMPLEAD" in employee_key:
            skipped_rows += 1
            continue

        _parse_employee_row(row, r + 1, employee_key, layout.period_start, catalog, result)

    hours_total = sum((c.hours for c in result.candidates), Decimal("0"))
    result.message = (
        f"Processed: {len(result.candidates)} hour records, "
        f"{len(result.mismatches)} mismatches"
    )

    logger.info(
        "hours_report_parsed",
        sheet=sheet_name,
        period_start=layout.period_start.isoformat(),
        candidates=len(result.candidates),
        mismatches=len(result.mismatches),
        warnings=len(result.warnings),
        skipped_rows=skipped_rows,
        total_hours=float(hours_total),
    )

    return result


def _parse_employee_row(
    row: list,
    row_index: int,
    employee_key: str,
    period_start: date,
    catalog: CatalogSnapshot,
    result: ParseResult,
) -> None:
    """Turn one employee row into candidates/mismatches."""
    shifts = list(_iter_shift_cells(row, period_start))

    employee = catalog.employee(employee_key)
    if employee is None:
        # One mismatch for the whole row; shifts kept for reconstruction
        result.mismatches.append(Mismatch(
            row_index=row_index,
            kind=MismatchKind.UNRESOLVED_EMPLOYEE,
            raw_value=employee_key,
            sheet_name=HOURS_SHEET_LABEL,
            recovered_context={"shifts": shifts},
        ))
        return

    for shift in shifts:
        token = shift["project_token"]
        project = resolve_hours_project(catalog, token)

        if project is None:
            result.mismatches.append(Mismatch(
                row_index=row_index,
                kind=MismatchKind.UNRESOLVED_PROJECT,
                raw_value=token,
                sheet_name=HOURS_SHEET_LABEL,
                recovered_context={
                    "employee_id": employee.id,
                    "date": shift["date"],
                    "week_number": shift["week_number"],
                    "hours": shift["hours"],
                },
            ))
            continue

        if project.is_finished:
            result.mismatches.append(Mismatch(
                row_index=row_index,
                kind=MismatchKind.PROJECT_FINISHED,
                raw_value=token,
                sheet_name=HOURS_SHEET_LABEL,
                recovered_context={"project_id": project.id, "project_name": project.name},
            ))
            continue

        result.candidates.append(build_hour_candidate(
            project, employee, shift["date"], shift["week_number"], shift["hours"]
        ))


def _iter_shift_cells(row: list, period_start: date):
    """Yield populated shift cells with their date and computed hours."""
    for i, column in enumerate(SHIFT_GRID):
        col_idx = FIRST_SHIFT_COLUMN + i
        if col_idx >= len(row):
            break

        value = _cell(row, col_idx)
        if value is None:
            continue

        text = cell_text(value).upper()
        if len(text) < MIN_TOKEN_LENGTH or text == NO_WORK_MARK:
            continue

        token, hours = split_shift_cell(text, column)
        shift_date = period_start + timedelta(days=column.day_offset)
        yield {
            "project_token": normalize_identifier(token),
            "date": shift_date,
            "week_number": iso_week_number(shift_date),
            "hours": hours,
            "column": column.label,
        }


def split_shift_cell(text: str, column: ShiftColumn) -> tuple[str, Decimal]:
    """
    Split a shift cell into project token and worked hours.

    "25-046-00(12:30)" in a shift starting 8.0 → ("25-046-00", 4.5)
    "25-046-00" with default 5.0 → ("25-046-00", 5.0)

    Departures before the shift start clamp to 0 (overnight shifts are not
    modeled).
    """
    match = END_TIME_PATTERN.match(text.strip())
    if not match:
        return text.strip(), column.default_hours

    token = match.group(1).strip()
    end_time = Decimal(int(match.group(2))) + Decimal(int(match.group(3))) / Decimal(60)
    worked = end_time - column.start_hour
    if worked < 0:
        worked = Decimal("0")
    return token, worked.quantize(TWO_PLACES, rounding=ROUND_HALF_UP)


def resolve_hours_project(catalog: CatalogSnapshot, token: str) -> Optional[Project]:
    """SAE code first, then internal code."""
    key = normalize_identifier(token)
    if not key:
        return None
    return catalog.projects_by_sae_code.get(key) or catalog.projects_by_internal_code.get(key)


def build_hour_candidate(
    project: Project,
    employee: Employee,
    shift_date: date,
    week_number: int,
    hours: Decimal,
) -> HourTransactionCandidate:
    """
    Build an hour candidate priced at the employee's standard rate.

    Grid hours are always Normal; the overtime rate is not applied here.
    """
    rate = employee.hourly_rate
    return HourTransactionCandidate(
        project_id=project.id,
        project_name=project.name,
        employee_id=employee.id,
        employee_name=employee.name,
        date=shift_date,
        week_number=week_number,
        hours=hours,
        rate=rate,
        cost_total=(hours * rate).quantize(TWO_PLACES, rounding=ROUND_HALF_UP),
        hour_type=HourType.NORMAL,
    )


def _cell(row: list, idx: int):
    return row[idx] if idx < len(row) else None
