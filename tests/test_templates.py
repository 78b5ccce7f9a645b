"""
Every entity's sample template must import cleanly through its own schema.
"""

import pytest

from ledger_import.domain.imports.headers import build_mapped_row, map_headers
from ledger_import.domain.imports.references import AccountEntry, CategoryEntry, ReferenceIndex
from ledger_import.domain.imports.row_validator import validate_row
from ledger_import.domain.imports.schemas import SCHEMAS
from ledger_import.domain.imports.templates import (
    build_template_csv,
    build_template_rows,
    describe_schema,
    template_filename,
)
from ledger_import.domain.imports.tokenizer import tokenize


@pytest.fixture
def index():
    return ReferenceIndex(
        categories=[
            CategoryEntry(id=1, name="Groceries", type="EXPENSE"),
            CategoryEntry(id=2, name="Utilities", type="EXPENSE"),
            CategoryEntry(id=3, name="Salary", type="INCOME"),
            CategoryEntry(id=4, name="Freelance", type="INCOME"),
        ],
        accounts=[AccountEntry(id=1, holder_name="John Doe", bank_name="Chase", account_number="1234567890")],
        debt_ids=[1, 2],
    )


@pytest.mark.parametrize("kind", sorted(SCHEMAS))
def test_template_rows_validate(kind, index):
    schema = SCHEMAS[kind]
    rows = tokenize(build_template_csv(schema))
    mapping = map_headers(rows[0], schema)

    assert mapping.unmapped_required == []
    assert mapping.ignored_headers == []
    assert len(rows) > 1
    for cells in rows[1:]:
        result = validate_row(build_mapped_row(cells, mapping, schema), schema, index)
        assert result.ok, f"{kind}: {result.message}"


@pytest.mark.parametrize("kind", sorted(SCHEMAS))
def test_headers_map_back_to_their_own_fields(kind):
    schema = SCHEMAS[kind]
    headers = schema.template_headers
    mapping = map_headers(headers, schema)
    for spec in schema.fields:
        assert headers[mapping.index_of(spec.name)] == spec.template_header


def test_required_headers_come_first():
    rows = build_template_rows(SCHEMAS["debt"])
    assert rows[0][:4] == ["Borrower Name", "Amount", "Interest Rate (%)", "Lent Date"]
    assert all(len(row) == len(rows[0]) for row in rows)


def test_template_csv_ends_with_newline():
    assert build_template_csv(SCHEMAS["budget_target"]).endswith("\n")
    assert template_filename(SCHEMAS["budget_target"]) == "budget_target_import_template.csv"


def test_describe_schema():
    summary = describe_schema(SCHEMAS["budget_target"])
    assert summary["required_headers"] == ["Category Name", "Category Type", "Target Amount", "Period"]
    assert summary["optional_headers"] == ["Start Date", "End Date"]
    assert summary["reference_policy"] == "auto_create"
