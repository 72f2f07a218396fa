"""
Layout detection for the weekly-hours payroll export.

Header position and the presence of a shift time-range sub-header vary by
export run, so they are located by scanning the grid instead of assumed.
All "where is X" heuristics for the hours report live here; row processing
in hours_parser only consumes the resulting HoursLayout.
"""

from dataclasses import dataclass
from datetime import date
from typing import Optional
import re
import structlog

from config.shift_grid import SPANISH_MONTHS
from exceptions import LayoutError, MissingPeriodStartError
from parsers.workbook import Grid
from utils.text_utils import cell_text, normalize_identifier

logger = structlog.get_logger(__name__)

HEADER_SCAN_ROWS = 20
PERIOD_SCAN_ROWS = 5

# More than this many "HH:MM - HH:MM" cells marks the shift sub-header row
SUB_HEADER_MIN_RANGES = 2

# "PERIODO DEL 06-11 DE OCTUBRE 2025"
PERIOD_PATTERN = re.compile(
    r"PERIODO\s+DEL\s+(\d{1,2})\s*-\s*\d{1,2}\s+DE\s+([A-Z]{3,})\s+(\d{4})"
)
TIME_RANGE_PATTERN = re.compile(r"\d{1,2}:\d{2}\s*-\s*\d{1,2}:\d{2}")


@dataclass(frozen=True)
class HoursLayout:
    """Where the data lives in an hours report grid."""
    header_row: int
    data_start_row: int
    period_start: date
    period_from_file: bool
    has_sub_header: bool


def find_header_row(grid: Grid, scan_rows: int = HEADER_SCAN_ROWS) -> int:
    """
    Find the employee header row.

    The header is the first row whose lowercased text contains "clave"
    together with "emplead", "nombre" or "no.".

    Raises:
        LayoutError: If no header is found within scan_rows
    """
    for idx, row in enumerate(grid[:scan_rows]):
        row_text = " ".join(cell_text(c) for c in row if c is not None).lower()
        if "clave" in row_text and any(token in row_text for token in ("emplead", "nombre", "no.")):
            return idx

    raise LayoutError(
        message=(
            "Header row not found: expected a row with 'Clave' and "
            "'Empleado'/'Nombre'/'No.' within the first "
            f"{scan_rows} rows"
        ),
        details={"scanned_rows": min(scan_rows, len(grid))}
    )


def find_period_start(
    grid: Grid,
    header_row: int,
    scan_rows: int = PERIOD_SCAN_ROWS,
) -> Optional[date]:
    """
    Read the "PERIODO DEL dd-dd DE <mes> yyyy" anchor above the header.

    Returns:
        First day of the period, or None if no valid anchor is present
    """
    for idx in range(max(0, header_row - scan_rows), header_row):
        row_text = normalize_identifier(" ".join(cell_text(c) for c in grid[idx] if c is not None))
        match = PERIOD_PATTERN.search(row_text)
        if not match:
            continue

        day = int(match.group(1))
        month = SPANISH_MONTHS.get(match.group(2)[:3])
        year = int(match.group(3))
        if month is None:
            logger.warning("period_month_unknown", row=idx, month=match.group(2))
            return None
        try:
            return date(year, month, day)
        except ValueError:
            logger.warning("period_date_invalid", row=idx, text=match.group(0))
            return None

    return None


def has_time_range_sub_header(row: list) -> bool:
    """True if the row holds more than two "HH:MM - HH:MM" cells."""
    ranges = sum(1 for c in row if c is not None and TIME_RANGE_PATTERN.search(cell_text(c)))
    return ranges > SUB_HEADER_MIN_RANGES


def detect_hours_layout(
    grid: Grid,
    fallback_start: Optional[date] = None,
    header_scan_rows: int = HEADER_SCAN_ROWS,
    period_scan_rows: int = PERIOD_SCAN_ROWS,
) -> HoursLayout:
    """
    Locate header, period start and first data row.

    The in-file period anchor wins over fallback_start.

    Raises:
        LayoutError: If the header row is missing
        MissingPeriodStartError: If neither anchor nor fallback is available
    """
    header_row = find_header_row(grid, header_scan_rows)

    period_start = find_period_start(grid, header_row, period_scan_rows)
    period_from_file = period_start is not None
    if period_start is None:
        if fallback_start is None:
            raise MissingPeriodStartError()
        period_start = fallback_start

    data_start_row = header_row + 1
    has_sub_header = (
        data_start_row < len(grid)
        and has_time_range_sub_header(grid[data_start_row])
    )
    if has_sub_header:
        data_start_row += 1

    layout = HoursLayout(
        header_row=header_row,
        data_start_row=data_start_row,
        period_start=period_start,
        period_from_file=period_from_file,
        has_sub_header=has_sub_header,
    )

    logger.info(
        "hours_layout_detected",
        header_row=header_row,
        data_start_row=data_start_row,
        period_start=period_start.isoformat(),
        period_from_file=period_from_file,
        has_sub_header=has_sub_header,
    )

    return layout
