from typing import Any
from decimal import Decimal
from datetime import datetime, date
from enum import Enum


def _make_json_safe(value: Any) -> Any:
    """
    Convert validated import values into JSON-serialisable structures.

    Dates become ISO strings, enums their value, and dataclass-like
    references (anything exposing ``to_dict``) their dict form.
    """
    if isinstance(value, dict):
        return {key: _make_json_safe(val) for key, val in value.items()}
    if isinstance(value, (list, tuple, set)):
        return [_make_json_safe(item) for item in value]
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, Decimal):
        # Keep integers as ints, otherwise convert to string to avoid precision loss
        if value == value.to_integral():
            return int(value)
        return str(value)
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, bytes):
        return value.decode(errors="ignore")
    if isinstance(value, (int, float, str, bool)) or value is None:
        return value
    if hasattr(value, "to_dict"):
        return _make_json_safe(value.to_dict())
    # Fallback to string representation for unsupported types
    return str(value)
