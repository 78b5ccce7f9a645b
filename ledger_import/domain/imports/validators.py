"""
Value parsers and preset pattern checks used during row validation.

Each parser takes a raw (already trimmed) cell string and either returns the
typed value or raises ``ValueError`` with a user-facing message. String fields
may name a preset pattern; presets live in one registry so a schema refers to
them by name.
"""

import math
import re
from typing import Any, Dict, List, Mapping, Optional, Tuple

from ledger_import.domain.imports.headers import normalize_header


# name -> (regex, label used in error messages)
PRESETS: Dict[str, Tuple[str, str]] = {
    "email": (r"^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$", "email address"),
}


def get_preset_pattern(preset_name: str) -> Optional[str]:
    preset = PRESETS.get(preset_name)
    return preset[0] if preset else None


def validate_with_preset(value: Any, preset_name: str, allow_null: bool = True) -> Tuple[bool, Optional[str]]:
    """
    Check a cell against a named preset.

    Empty cells pass when ``allow_null`` is set. An unknown preset name is
    reported as a failure rather than silently accepted.

    Returns:
        ``(is_valid, error_message)``
    """
    cell = "" if value is None else str(value).strip()
    if not cell:
        return (True, None) if allow_null else (False, "Value is required")

    preset = PRESETS.get(preset_name)
    if preset is None:
        return False, f"Unknown preset validator: {preset_name}"

    pattern, label = preset
    if re.match(pattern, cell) is None:
        return False, f"'{cell}' is not a valid {label}"
    return True, None


# ---------------------------------------------------------------------------
# Value parsers
# ---------------------------------------------------------------------------

_CURRENCY_SYMBOLS = re.compile(r"[$€£₹¥\s]")
_NUMBER = re.compile(r"^[+-]?(\d+\.?\d*|\.\d+)([eE][+-]?\d+)?$")
# Commas are only accepted as US-style thousands groups; "1.234,56" and "12,5" are rejected.
_GROUPED_NUMBER = re.compile(r"^[+-]?\d{1,3}(,\d{3})+(\.\d+)?$")


def parse_number(raw: str) -> float:
    """
    Parse a numeric cell.

    Thousands separators and currency symbols are tolerated
    ("$1,250.50" -> 1250.5). A comma anywhere other than a well-formed
    thousands group is an error, as are NaN and infinities.

    Raises:
        ValueError: If the cell is not a finite number
    """
    cleaned = _CURRENCY_SYMBOLS.sub("", raw or "")
    if "," in cleaned:
        if not _GROUPED_NUMBER.match(cleaned):
            raise ValueError(f"'{raw}' is not a number (use ',' only as a thousands separator)")
        cleaned = cleaned.replace(",", "")
    if not _NUMBER.match(cleaned):
        raise ValueError(f"'{raw}' is not a number")
    value = float(cleaned)
    if not math.isfinite(value):
        raise ValueError(f"'{raw}' is not a finite number")
    return value


def parse_positive_int(raw: str) -> int:
    """Parse an id cell such as "12" or "12.0"; zero, negatives and fractions are rejected."""
    value = parse_number(raw)
    if value <= 0 or not value.is_integer():
        raise ValueError(f"'{raw}' is not a positive whole number")
    return int(value)


def check_range(value: float, min_value: Optional[float], min_inclusive: bool = True) -> Optional[str]:
    """Return the range complaint for ``value`` or None when it is acceptable."""
    if min_value is None:
        return None
    if min_inclusive and value < min_value:
        return "Must be a non-negative number." if min_value == 0 else f"Must be at least {min_value:g}."
    if not min_inclusive and value <= min_value:
        return "Must be a positive number." if min_value == 0 else f"Must be greater than {min_value:g}."
    return None


def parse_enum(raw: str, choices: Mapping[str, Any]) -> Any:
    """
    Match a cell against an enum alias table, ignoring case and separators.

    Raises:
        ValueError: If nothing in ``choices`` matches
    """
    token = normalize_header(raw)
    if token in choices:
        return choices[token]
    allowed = sorted({str(v) for v in choices.values()})
    raise ValueError(f"'{raw}' is not one of {', '.join(allowed)}")


def split_list(raw: str) -> List[str]:
    """Split a multi-value cell on ';', or on ',' when it has no ';'."""
    if not raw or not raw.strip():
        return []
    separator = ";" if ";" in raw else ","
    return [part.strip() for part in raw.split(separator) if part.strip()]


_HEX_COLOR = re.compile(r"^#?([A-Fa-f0-9]{6}|[A-Fa-f0-9]{3})$")
CSS_COLOR_NAMES = frozenset({
    "red", "blue", "green", "yellow", "orange", "purple", "pink", "brown",
    "black", "white", "gray", "grey", "cyan", "magenta", "lime", "navy",
    "teal", "olive", "maroon", "silver", "gold", "indigo", "violet",
})


def parse_color(raw: str) -> Optional[str]:
    """
    Normalize a color cell to ``#rrggbb``/``#rgb`` or a lower-case CSS name.

    Returns None for anything unrecognised; callers fall back to their default.
    """
    value = (raw or "").strip()
    if _HEX_COLOR.match(value):
        return value if value.startswith("#") else f"#{value}"
    if value.lower() in CSS_COLOR_NAMES:
        return value.lower()
    return None
