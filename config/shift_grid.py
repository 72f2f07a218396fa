"""
Weekly-hours grid geometry.

The payroll export lays out one employee per row and one shift per column.
Column D onwards holds 17 shift cells: Monday to Friday have morning,
afternoon and evening shifts; Saturday has morning and afternoon only.

Each cell holds a project code ("25-046-00"), optionally followed by the
time the employee left ("25-046-00(18:30)").
"""

from dataclasses import dataclass
from decimal import Decimal


@dataclass(frozen=True)
class ShiftColumn:
    """One shift position in the weekly grid."""
    day_offset: int          # 0 = Monday (period start) ... 5 = Saturday
    start_hour: Decimal      # Shift start as decimal hours (14:30 → 14.5)
    default_hours: Decimal   # Duration when the cell has no end time
    label: str


# =============================================================================
# GRID LAYOUT
# =============================================================================

# Column D (0-based index 3) holds Monday morning
FIRST_SHIFT_COLUMN = 3

# Column A holds the employee key
EMPLOYEE_COLUMN = 0

_MORNING = (Decimal("8.0"), Decimal("5.0"))      # 08:00 - 13:00
_AFTERNOON = (Decimal("14.0"), Decimal("3.5"))   # 14:00 - 17:30
_EVENING = (Decimal("17.5"), Decimal("2.0"))     # 17:30 - 19:30
_SATURDAY_AFTERNOON = (Decimal("13.0"), Decimal("1.0"))

_WEEKDAYS = ["Lunes", "Martes", "Miercoles", "Jueves", "Viernes"]

SHIFT_GRID: tuple[ShiftColumn, ...] = tuple(
    [
        ShiftColumn(day, start, hours, f"{name} {shift}")
        for day, name in enumerate(_WEEKDAYS)
        for shift, (start, hours) in (
            ("manana", _MORNING),
            ("tarde", _AFTERNOON),
            ("noche", _EVENING),
        )
    ]
    + [
        ShiftColumn(5, *_MORNING, "Sabado manana"),
        ShiftColumn(5, *_SATURDAY_AFTERNOON, "Sabado tarde"),
    ]
)


# =============================================================================
# PERIOD ANCHOR
# =============================================================================

# First three letters of the Spanish month name → month number
SPANISH_MONTHS = {
    "ENE": 1,
    "FEB": 2,
    "MAR": 3,
    "ABR": 4,
    "MAY": 5,
    "JUN": 6,
    "JUL": 7,
    "AGO": 8,
    "SEP": 9,
    "SET": 9,
    "OCT": 10,
    "NOV": 11,
    "DIC": 12,
}
