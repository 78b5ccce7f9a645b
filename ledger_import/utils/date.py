"""
Date parsing utilities for import cells.

Import files may carry dates in exactly three layouts:

- ISO: ``YYYY-MM-DD``
- US: ``MM/DD/YYYY``
- European: ``DD-MM-YYYY``

Anything else is rejected rather than guessed. Parse failures are logged
sparingly (a few samples, then periodic summaries) so a file with thousands of
bad dates does not flood the log. The counters live in a ``DateFailureLog``
owned by the caller (one per import run), never in module state.
"""

import logging
import re
from datetime import date, datetime, timezone
from typing import Any, Dict, List, Optional

logger = logging.getLogger(__name__)

FAILED_SAMPLE_LIMIT = 5
SUPPRESSION_NOTICE_EVERY = 100

DATE_FORMAT_HINT = "Use YYYY-MM-DD, MM/DD/YYYY, or DD-MM-YYYY format."

_ISO = re.compile(r"^(\d{4})-(\d{2})-(\d{2})$")
_US = re.compile(r"^(\d{1,2})/(\d{1,2})/(\d{4})$")
_EU = re.compile(r"^(\d{1,2})-(\d{1,2})-(\d{4})$")


class DateFailureLog:
    """Per-run counters and samples of rejected date cells, grouped by context."""

    def __init__(self) -> None:
        self._stats: Dict[str, Dict[str, Any]] = {}

    def record(self, value: Any, context: Optional[str], error: Exception) -> None:
        """Count a failed date cell and log the first few samples for its context."""
        key = context or "default"
        label = f" ({key})" if context else ""
        stats = self._stats.setdefault(key, {"count": 0, "samples": []})
        stats["count"] += 1
        failures = stats["count"]

        if failures <= FAILED_SAMPLE_LIMIT:
            stats["samples"].append(value)
            logger.warning("Rejected date cell%s '%s': %s", label, value, error)
        elif failures == FAILED_SAMPLE_LIMIT + 1 or failures % SUPPRESSION_NOTICE_EVERY == 0:
            logger.info(
                "%d date cells rejected so far%s; further warnings suppressed (samples=%s)",
                failures,
                label,
                stats["samples"],
            )

    def snapshot(self) -> Dict[str, Dict[str, Any]]:
        return {key: {"count": s["count"], "samples": list(s["samples"])} for key, s in self._stats.items()}

    def samples(self, context: str) -> List[Any]:
        return list(self._stats.get(context, {}).get("samples", []))

    def __len__(self) -> int:
        return sum(s["count"] for s in self._stats.values())


def parse_import_date(value: Any, *, log_context: Optional[str] = None, failures: Optional[DateFailureLog] = None) -> date:
    """
    Parse a date cell in one of the accepted layouts.

    Args:
        value: Raw cell value (already a ``date`` is returned unchanged)
        log_context: Label used to group failure logs (e.g. "debt.lent_date")
        failures: Collector that records the failure; unrecorded when omitted

    Returns:
        The parsed calendar date

    Raises:
        ValueError: With a user-facing message naming the accepted formats
    """
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value

    text = str(value or "").strip()
    try:
        return _parse_layouts(text)
    except ValueError as exc:
        if failures is not None:
            failures.record(text, log_context, exc)
        else:
            logger.debug("Rejected date cell '%s': %s", text, exc)
        raise ValueError(f"Invalid date format: {text}. {DATE_FORMAT_HINT}") from exc


def parse_import_datetime(value: Any, *, log_context: Optional[str] = None, failures: Optional[DateFailureLog] = None) -> datetime:
    """
    Parse a timestamp cell: ISO 8601 (``2024-01-15T10:00:00.000Z``) or any date layout.

    Naive timestamps are taken as UTC; a bare date becomes midnight UTC.

    Raises:
        ValueError: With a user-facing message naming the accepted formats
    """
    if isinstance(value, datetime):
        return value if value.tzinfo else value.replace(tzinfo=timezone.utc)

    text = str(value or "").strip()
    if "T" in text or ":" in text:
        candidate = text[:-1] + "+00:00" if text.endswith(("Z", "z")) else text
        try:
            parsed = datetime.fromisoformat(candidate)
        except ValueError as exc:
            if failures is not None:
                failures.record(text, log_context, exc)
            raise ValueError(f"Invalid date format: {text}. Use an ISO timestamp or one of the date layouts (YYYY-MM-DD, MM/DD/YYYY, DD-MM-YYYY).") from exc
        return parsed if parsed.tzinfo else parsed.replace(tzinfo=timezone.utc)

    day = parse_import_date(text, log_context=log_context, failures=failures)
    return datetime(day.year, day.month, day.day, tzinfo=timezone.utc)


def _parse_layouts(text: str) -> date:
    match = _ISO.match(text)
    if match:
        year, month, day = match.groups()
        return date(int(year), int(month), int(day))

    match = _US.match(text)
    if match:
        month, day, year = match.groups()
        return date(int(year), int(month), int(day))

    match = _EU.match(text)
    if match:
        day, month, year = match.groups()
        return date(int(year), int(month), int(day))

    raise ValueError(f"unrecognised date layout '{text}'")
