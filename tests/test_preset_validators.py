"""
Tests for the preset pattern check and the cell value parsers used by row
validation.
"""

import pytest
from ledger_import.domain.imports.schemas import DEBT_STATUSES
from ledger_import.domain.imports.validators import (
    PRESETS,
    check_range,
    get_preset_pattern,
    parse_enum,
    parse_number,
    split_list,
    validate_with_preset,
)


def test_preset_lookup():
    assert get_preset_pattern("email") == PRESETS["email"][0]
    assert get_preset_pattern("nonexistent") is None


class TestEmailPreset:
    @pytest.mark.parametrize("email", [
        "user@example.com",
        "test.user@example.com",
        "user+tag@example.co.uk",
        "user_name@example-domain.com",
        "123@example.com",
    ])
    def test_email_valid(self, email):
        is_valid, error = validate_with_preset(email, "email")
        assert is_valid, f"Email '{email}' should be valid: {error}"

    @pytest.mark.parametrize("invalid_email", [
        "notanemail",
        "@example.com",
        "user@",
        "user @example.com",
        "user@example",
    ])
    def test_email_invalid(self, invalid_email):
        is_valid, error = validate_with_preset(invalid_email, "email")
        assert not is_valid
        assert "email address" in error


class TestNullHandling:
    def test_null_value_allowed(self):
        assert validate_with_preset(None, "email", allow_null=True) == (True, None)

    def test_null_value_not_allowed(self):
        is_valid, error = validate_with_preset(None, "email", allow_null=False)
        assert not is_valid
        assert "required" in error.lower()

    def test_whitespace_treated_as_empty(self):
        is_valid, _ = validate_with_preset("   ", "email", allow_null=False)
        assert not is_valid

    def test_unknown_preset_name(self):
        is_valid, error = validate_with_preset("test", "unknown_validator")
        assert not is_valid
        assert "unknown" in error.lower()


class TestValueParsers:
    @pytest.mark.parametrize("raw, expected", [
        ("42", 42.0),
        ("-3.5", -3.5),
        (".5", 0.5),
        ("1e3", 1000.0),
        ("€1,234.00", 1234.0),
    ])
    def test_parse_number(self, raw, expected):
        assert parse_number(raw) == expected

    @pytest.mark.parametrize("raw", ["", "abc", "NaN", "Infinity", "1.2.3"])
    def test_parse_number_rejects(self, raw):
        with pytest.raises(ValueError):
            parse_number(raw)

    @pytest.mark.parametrize("raw", ["1.234,56", "12,5", "1,23", "1,2345.00", ",500"])
    def test_parse_number_rejects_misplaced_commas(self, raw):
        with pytest.raises(ValueError) as exc_info:
            parse_number(raw)
        assert "thousands separator" in str(exc_info.value)

    @pytest.mark.parametrize("raw, expected", [
        ("1,234", 1234.0),
        ("-12,345,678.9", -12345678.9),
        ("$ 1,000", 1000.0),
    ])
    def test_parse_number_accepts_thousands_groups(self, raw, expected):
        assert parse_number(raw) == expected

    def test_check_range(self):
        assert check_range(0.0, 0, min_inclusive=False) == "Must be a positive number."
        assert check_range(0.0, 0, min_inclusive=True) is None
        assert check_range(-1.0, 0) == "Must be a non-negative number."
        assert check_range(-1.0, None) is None

    def test_parse_enum_ignores_case_and_separators(self):
        assert parse_enum("Fully-Paid", DEBT_STATUSES) == "FULLY_PAID"

    def test_parse_enum_lists_allowed_values(self):
        with pytest.raises(ValueError) as exc_info:
            parse_enum("forgiven", DEBT_STATUSES)
        assert "ACTIVE" in str(exc_info.value)

    @pytest.mark.parametrize("raw, expected", [
        ("a;b;c", ["a", "b", "c"]),
        ("a, b", ["a", "b"]),
        ("one, two; three", ["one, two", "three"]),
        ("  ", []),
    ])
    def test_split_list(self, raw, expected):
        assert split_list(raw) == expected
