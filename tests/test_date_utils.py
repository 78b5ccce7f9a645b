from datetime import date, datetime, timezone

import pytest

from ledger_import.utils.date import DateFailureLog, parse_import_date, parse_import_datetime


def test_three_layouts_agree():
    assert parse_import_date("2024-02-29") == date(2024, 2, 29)
    assert parse_import_date("2/29/2024") == date(2024, 2, 29)
    assert parse_import_date("29-02-2024") == date(2024, 2, 29)


def test_date_objects_pass_through():
    assert parse_import_date(date(2025, 1, 1)) == date(2025, 1, 1)


def test_error_message_names_accepted_formats():
    with pytest.raises(ValueError) as exc_info:
        parse_import_date("2023-02-29")
    assert str(exc_info.value) == (
        "Invalid date format: 2023-02-29. Use YYYY-MM-DD, MM/DD/YYYY, or DD-MM-YYYY format."
    )


def test_failures_sampled_per_context():
    failures = DateFailureLog()
    for value in ["a", "b", "c", "d", "e", "f", "g"]:
        with pytest.raises(ValueError):
            parse_import_date(value, log_context="expense.date", failures=failures)

    stats = failures.snapshot()
    assert stats["expense.date"]["count"] == 7
    assert stats["expense.date"]["samples"] == ["a", "b", "c", "d", "e"]
    assert len(failures) == 7


def test_failures_not_recorded_without_collector():
    failures = DateFailureLog()
    with pytest.raises(ValueError):
        parse_import_date("nope")
    assert failures.snapshot() == {}


def test_collectors_are_independent():
    first, second = DateFailureLog(), DateFailureLog()
    with pytest.raises(ValueError):
        parse_import_date("bogus", log_context="debt.lent_date", failures=first)
    with pytest.raises(ValueError):
        parse_import_date("bogus", log_context="debt.lent_date", failures=second)

    assert first.snapshot() == {"debt.lent_date": {"count": 1, "samples": ["bogus"]}}
    assert second.samples("debt.lent_date") == ["bogus"]


class TestTimestamps:
    def test_iso_timestamp_with_zulu(self):
        assert parse_import_datetime("2024-01-15T10:00:00.000Z") == datetime(2024, 1, 15, 10, 0, tzinfo=timezone.utc)

    def test_bare_date_is_midnight_utc(self):
        assert parse_import_datetime("15-01-2024") == datetime(2024, 1, 15, tzinfo=timezone.utc)

    def test_garbage_rejected(self):
        with pytest.raises(ValueError):
            parse_import_datetime("2024-01-15T25:99")
