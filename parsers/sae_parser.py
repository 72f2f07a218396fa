"""
SAE materials report parser.

SAE exports come as multi-sheet workbooks ("Compras_Dir", "Consumos", ...)
whose column order differs per sheet. Columns are located by header name,
never by position. Sheets without a recognizable header are skipped.
"""

from datetime import date
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Any, Optional
import re
import structlog

from exceptions import LayoutError
from models.catalog import CatalogSnapshot, Project
from parsers.layout_detector import HEADER_SCAN_ROWS
from parsers.parse_result import (
    MaterialTransactionCandidate,
    Mismatch,
    MismatchKind,
    ParseResult,
)
from parsers.workbook import Grid, WorkbookSource, read_workbook
from utils.date_utils import parse_movement_date
from utils.text_utils import cell_text, is_blank, normalize_identifier

logger = structlog.get_logger(__name__)

TWO_PLACES = Decimal("0.01")
ZERO = Decimal("0")

# Field → accepted header names (normalized: upper, no accents)
COLUMN_ALIASES: dict[str, tuple[str, ...]] = {
    "part_number": ("CLAVE DE ARTICULO", "ARTICULO", "CLAVE"),
    "description": ("DESCRIPCION", "DESCRIPCION DEL ARTICULO"),
    "quantity": ("CANTIDAD",),
    "unit_cost": ("COSTO", "COSTO UNITARIO"),
    "amount": ("IMPORTE", "COSTO TOTAL"),
    "date": ("FECHA", "FECHA DE MOVIMIENTO"),
    "project": ("PROYECTO", "REFERENCIA", "CAMPO LIBRE 1"),
}

PROJECT_PREFIX_PATTERN = re.compile(r"^PR-?")


def parse_sae_report(file: WorkbookSource, catalog: CatalogSnapshot) -> ParseResult:
    """
    Parse every sheet of an SAE materials workbook.

    Args:
        file: File path, BytesIO, or raw bytes
        catalog: Catalog snapshot to resolve project tokens

    Returns:
        ParseResult with material candidates and mismatches

    Raises:
        ExcelParseError: If the workbook cannot be read
        LayoutError: If no sheet produced any candidate or mismatch
    """
    logger.info("parsing_sae_report", file_type=type(file).__name__)

    sheets = read_workbook(file)
    result = ParseResult()
    parsed_sheets = []
    skipped_sheets = []

    for sheet_name, grid in sheets.items():
        header = find_sae_header(grid)
        if header is None:
            skipped_sheets.append(sheet_name)
            logger.debug("sae_sheet_skipped", sheet=sheet_name, reason="no_header")
            continue

        header_row, columns = header
        before = len(result.candidates) + len(result.mismatches)
        _parse_sheet(grid, sheet_name, header_row, columns, catalog, result)
        parsed_sheets.append(sheet_name)

        logger.debug(
            "sae_sheet_parsed",
            sheet=sheet_name,
            header_row=header_row,
            columns=sorted(columns),
            outcomes=len(result.candidates) + len(result.mismatches) - before,
        )

    if not result.has_data:
        logger.warning("sae_report_empty", sheets=list(sheets), skipped=skipped_sheets)
        raise LayoutError(
            message=(
                "No recognizable columns: expected a sheet with 'Clave de artículo' "
                "or 'Descripción' and 'Cantidad' headers"
            ),
            details={"sheets": list(sheets), "scanned_rows": HEADER_SCAN_ROWS}
        )

    result.message = (
        f"Processed: {len(result.candidates)} material records from "
        f"{len(parsed_sheets)} sheet(s), {len(result.mismatches)} mismatches"
    )

    logger.info(
        "sae_report_parsed",
        sheets=parsed_sheets,
        skipped_sheets=skipped_sheets,
        candidates=len(result.candidates),
        mismatches=len(result.mismatches),
        warnings=len(result.warnings),
    )

    return result


def find_sae_header(
    grid: Grid,
    scan_rows: int = HEADER_SCAN_ROWS,
) -> Optional[tuple[int, dict[str, int]]]:
    """
    Locate the header row and map fields to column indexes.

    A header has a "CLAVE DE ARTICULO" column, or both "DESCRIPCION"
    and "CANTIDAD".

    Returns:
        (header_row_index, {field: column_index}) or None
    """
    for idx, row in enumerate(grid[:scan_rows]):
        names = [normalize_identifier(c) for c in row]
        if "CLAVE DE ARTICULO" in names or ("DESCRIPCION" in names and "CANTIDAD" in names):
            return idx, map_columns(names)
    return None


def map_columns(header_names: list[str]) -> dict[str, int]:
    """First matching alias wins; first occurrence of a name wins."""
    positions: dict[str, int] = {}
    for col_idx, name in enumerate(header_names):
        if name and name not in positions:
            positions[name] = col_idx

    columns = {}
    for field_name, aliases in COLUMN_ALIASES.items():
        for alias in aliases:
            if alias in positions:
                columns[field_name] = positions[alias]
                break
    return columns


def _parse_sheet(
    grid: Grid,
    sheet_name: str,
    header_row: int,
    columns: dict[str, int],
    catalog: CatalogSnapshot,
    result: ParseResult,
) -> None:
    for r in range(header_row + 1, len(grid)):
        row = grid[r]

        def get(field_name: str) -> Any:
            idx = columns.get(field_name)
            if idx is None or idx >= len(row):
                return None
            return row[idx]

        part_number = cell_text(get("part_number"))
        description = cell_text(get("description"))
        if not part_number and not description:
            continue

        quantity = parse_decimal(get("quantity"))
        unit_cost = parse_decimal(get("unit_cost"))
        amount = parse_decimal(get("amount"))
        if amount == ZERO and quantity != ZERO and unit_cost != ZERO:
            amount = quantity * unit_cost
        amount = amount.quantize(TWO_PLACES, rounding=ROUND_HALF_UP)

        # Noise rows (subtotals, separators)
        if amount == ZERO and quantity == ZERO:
            continue

        raw_date = get("date")
        movement_date = parse_movement_date(raw_date)
        if movement_date is None:
            if not is_blank(raw_date):
                logger.warning("sae_date_unparseable", sheet=sheet_name, row=r + 1, value=str(raw_date))
            movement_date = date.today()

        token = normalize_identifier(get("project"))
        if not token:
            continue

        project = resolve_material_project(catalog, token)
        if project is None:
            result.mismatches.append(Mismatch(
                row_index=r + 1,
                kind=MismatchKind.UNRESOLVED_PROJECT,
                raw_value=token,
                sheet_name=sheet_name,
                recovered_context={
                    "part_number": part_number,
                    "description": description,
                    "quantity": quantity,
                    "unit_cost": unit_cost,
                    "amount": amount,
                    "date": movement_date,
                },
            ))
            continue

        if project.is_finished:
            result.mismatches.append(Mismatch(
                row_index=r + 1,
                kind=MismatchKind.PROJECT_FINISHED,
                raw_value=token,
                sheet_name=sheet_name,
                recovered_context={"project_id": project.id, "project_name": project.name},
            ))
            continue

        result.candidates.append(build_material_candidate(
            project,
            part_number=part_number,
            description=description,
            quantity=quantity,
            unit_cost=unit_cost,
            amount=amount,
            movement_date=movement_date,
            source_sheet=sheet_name,
        ))


def resolve_material_project(catalog: CatalogSnapshot, token: str) -> Optional[Project]:
    """
    SAE code → internal code → project name, then retry the two codes
    with a leading "PR"/"PR-" stripped.
    """
    key = normalize_identifier(token)
    if not key:
        return None

    project = (
        catalog.projects_by_sae_code.get(key)
        or catalog.projects_by_internal_code.get(key)
        or catalog.projects_by_name.get(key)
    )
    if project is not None:
        return project

    stripped = PROJECT_PREFIX_PATTERN.sub("", key).strip()
    if stripped and stripped != key:
        return (
            catalog.projects_by_sae_code.get(stripped)
            or catalog.projects_by_internal_code.get(stripped)
        )
    return None


def build_material_candidate(
    project: Project,
    part_number: str,
    description: str,
    quantity: Decimal,
    unit_cost: Decimal,
    amount: Decimal,
    movement_date: date,
    source_sheet: str,
) -> MaterialTransactionCandidate:
    return MaterialTransactionCandidate(
        project_id=project.id,
        project_name=project.name,
        part_number=part_number,
        description=description,
        quantity=quantity,
        unit_cost=unit_cost,
        total_cost=amount,
        movement_date=movement_date,
        source_sheet=source_sheet,
    )


def parse_decimal(value: Any) -> Decimal:
    """
    Numeric cell → Decimal. Accepts "$1,234.50" style strings.

    Blank, unparseable or non-finite (NaN, Infinity) values are 0.
    """
    if value is None or isinstance(value, bool):
        return ZERO
    if isinstance(value, (int, float)):
        text = str(value)
    else:
        text = str(value).replace("$", "").replace(",", "").replace(" ", "").strip()
    if not text:
        return ZERO
    try:
        parsed = Decimal(text)
    except InvalidOperation:
        return ZERO
    return parsed if parsed.is_finite() else ZERO
