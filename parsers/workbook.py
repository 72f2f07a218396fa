"""
Workbook loading for report parsers.

Payroll and SAE exports are visually formatted reports, not tables, so
sheets are read without a header into plain 2-D grids. Layout detection
happens afterwards on the grid.
"""

from io import BytesIO
from pathlib import Path
from typing import Any, Optional, Union
import structlog

import pandas as pd

from exceptions import ExcelParseError
from utils.text_utils import is_blank

logger = structlog.get_logger(__name__)

Grid = list[list[Any]]
WorkbookSource = Union[str, Path, BytesIO, bytes]


def read_workbook(file: WorkbookSource) -> dict[str, Grid]:
    """
    Read every sheet of a workbook into grids.

    Tries openpyxl (.xlsx) first and falls back to xlrd (legacy .xls).

    Args:
        file: File path, BytesIO, or raw bytes

    Returns:
        Ordered dict of sheet name → grid (rows of primitive values,
        None for empty cells)

    Raises:
        ExcelParseError: If no engine can read the file
    """
    if isinstance(file, bytes):
        file = BytesIO(file)

    last_error: Optional[Exception] = None
    for engine in ["openpyxl", "xlrd"]:
        try:
            if isinstance(file, BytesIO):
                file.seek(0)
            frames = pd.read_excel(
                file,
                sheet_name=None,
                header=None,
                dtype=object,
                engine=engine,
            )
            logger.debug("workbook_loaded", engine=engine, sheets=list(frames.keys()))
            return {name: _to_grid(df) for name, df in frames.items()}
        except Exception as e:
            last_error = e
            continue

    logger.error("workbook_read_failed", error=str(last_error))
    raise ExcelParseError(
        message="Failed to read Excel file",
        details={"original_error": str(last_error)}
    )


def read_first_sheet(file: WorkbookSource) -> tuple[str, Grid]:
    """Read only the first sheet (weekly-hours exports have one)."""
    sheets = read_workbook(file)
    if not sheets:
        raise ExcelParseError(message="Workbook has no sheets")
    name = next(iter(sheets))
    return name, sheets[name]


def _to_grid(df: pd.DataFrame) -> Grid:
    """DataFrame → list of rows with None for blanks."""
    return [
        [None if is_blank(value) or _is_missing(value) else value for value in row]
        for row in df.itertuples(index=False, name=None)
    ]


def _is_missing(value: Any) -> bool:
    """pd.NA / NaT / NaN without choking on strings."""
    try:
        return bool(pd.isna(value))
    except (TypeError, ValueError):
        return False
