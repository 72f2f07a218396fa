"""
Report parsers: weekly-hours time grid and SAE materials workbooks.
"""

from parsers.parse_result import (
    Candidate,
    HourTransactionCandidate,
    HourType,
    MaterialTransactionCandidate,
    Mismatch,
    MismatchKind,
    ParseResult,
)
from parsers.layout_detector import HoursLayout, detect_hours_layout
from parsers.hours_parser import parse_weekly_hours
from parsers.sae_parser import parse_sae_report

__all__ = [
    "Candidate",
    "HourTransactionCandidate",
    "HourType",
    "MaterialTransactionCandidate",
    "Mismatch",
    "MismatchKind",
    "ParseResult",
    "HoursLayout",
    "detect_hours_layout",
    "parse_weekly_hours",
    "parse_sae_report",
]
