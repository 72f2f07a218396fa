"""
Date helpers for payroll and SAE exports.

Covers ISO week numbering, Excel serial dates and the lenient cell
parsing used by the SAE materials report.
"""

from datetime import date, datetime, timedelta
from typing import Any, Optional

import pandas as pd

from utils.text_utils import cell_text, is_blank

# Excel's day zero, shifted for the 1900 leap year bug
EXCEL_EPOCH = date(1899, 12, 30)


def iso_week_number(value: date) -> int:
    """
    ISO-8601 week of the year (Thursday-anchored).

    2025-10-06 (Monday) → 41
    2027-01-01 (Friday) → 53 (belongs to the last week of 2026)
    """
    return value.isocalendar()[1]


def excel_serial_to_date(serial: float) -> Optional[date]:
    """Convert an Excel serial day number to a date, None if out of range."""
    try:
        return EXCEL_EPOCH + timedelta(days=float(serial))
    except (OverflowError, ValueError):
        return None


def parse_movement_date(value: Any) -> Optional[date]:
    """
    Parse an SAE movement date cell.

    Priority order:
    1. date/datetime objects (openpyxl already converted the cell)
    2. Excel serial numbers
    3. DD/MM/YYYY strings
    4. ISO-8601 strings (YYYY-MM-DD)
    5. Any other string pandas can parse, day first

    Returns None when nothing matches; callers decide the fallback.
    """
    if is_blank(value):
        return None

    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value

    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return excel_serial_to_date(value)

    text = cell_text(value)

    parts = text.split("/")
    if len(parts) == 3 and len(parts[2].strip()) == 4:
        try:
            day, month, year = (int(p) for p in parts)
            return date(year, month, day)
        except ValueError:
            pass

    # ISO text is year-first; dayfirst would swap its month and day
    try:
        parsed = pd.to_datetime(text, format="ISO8601")
    except (ValueError, TypeError, OverflowError):
        try:
            parsed = pd.to_datetime(text, dayfirst=True)
        except (ValueError, TypeError, OverflowError):
            return None
    if pd.isna(parsed):
        return None
    return parsed.date()


def parse_iso_date(value: Optional[str]) -> Optional[date]:
    """Parse a YYYY-MM-DD string, None for empty input."""
    if not value or not value.strip():
        return None
    return date.fromisoformat(value.strip())
