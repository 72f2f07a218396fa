"""
Text utilities for handling Spanish text with accents.

Every catalog lookup key and every raw spreadsheet identifier goes through
normalize_identifier() so that "Clave de Artículo " and "CLAVE DE ARTICULO"
compare equal.
"""

import unicodedata
from typing import Any


def normalize_identifier(raw: Any) -> str:
    """
    Normalize a raw spreadsheet value into a canonical lookup key.

    Handles Spanish accents and stray whitespace:
    - "  pr-100 " → "PR-100"
    - "Instalación Góndola" → "INSTALACION GONDOLA"
    - None → ""

    Total and idempotent: normalize_identifier(normalize_identifier(x))
    equals normalize_identifier(x) for every input.

    Args:
        raw: Cell value (str, number, None)

    Returns:
        Uppercase string without diacritics, never None
    """
    if raw is None:
        return ""

    text = cell_text(raw)

    # NFD decomposition separates base chars from accents
    decomposed = unicodedata.normalize("NFD", text)
    stripped = "".join(c for c in decomposed if not unicodedata.combining(c))

    # Uppercasing can produce new combining marks (e.g. "ǰ"), strip again
    upper = unicodedata.normalize("NFD", stripped.upper())
    return "".join(c for c in upper if not unicodedata.combining(c)).strip()


def cell_text(value: Any) -> str:
    """
    Render a grid cell as trimmed text.

    Integral floats lose their ".0" suffix (Excel stores 101 as 101.0).
    """
    if value is None:
        return ""
    if isinstance(value, float) and value != value:
        return ""
    if isinstance(value, bool):
        return str(value).upper()
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value).strip()


def is_blank(value: Any) -> bool:
    """True for None, NaN and whitespace-only strings."""
    if value is None:
        return True
    if isinstance(value, float) and value != value:
        return True
    return isinstance(value, str) and not value.strip()
