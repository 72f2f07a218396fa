"""
Configuration module.

Exports:
    settings / get_settings: Environment settings (pydantic-settings)
    get_supabase_client: Record store client
    check_connection: Health check used by /health and startup
    SHIFT_GRID: Weekly-hours grid geometry
"""

from config.settings import settings, get_settings, Settings
from config.database import (
    get_supabase_client,
    check_connection,
)
from config.shift_grid import (
    SHIFT_GRID,
    ShiftColumn,
    FIRST_SHIFT_COLUMN,
    EMPLOYEE_COLUMN,
    SPANISH_MONTHS,
)

__all__ = [
    "settings",
    "get_settings",
    "Settings",
    "get_supabase_client",
    "check_connection",
    "SHIFT_GRID",
    "ShiftColumn",
    "FIRST_SHIFT_COLUMN",
    "EMPLOYEE_COLUMN",
    "SPANISH_MONTHS",
]
