"""
Tests for the correction candidate state machine.
"""

import pytest

from ledger_import.domain.imports.corrections import (
    CandidateOrigin,
    CandidateState,
    CorrectionCandidate,
    CorrectionSession,
    RECORD_ERROR_FIELD,
)
from ledger_import.domain.imports.errors import (
    CandidateNotFoundError,
    InvalidTransitionError,
    UnknownFieldError,
)
from ledger_import.domain.imports.headers import build_mapped_row, map_headers
from ledger_import.domain.imports.references import CategoryEntry, ReferenceIndex
from ledger_import.domain.imports.row_validator import validate_row
from ledger_import.domain.imports.schemas import SCHEMAS

HEADERS = ["Borrower Name", "Amount", "Interest Rate (%)", "Lent Date", "Due Date"]


@pytest.fixture
def persisted():
    return []


@pytest.fixture
def session(persisted):
    schema = SCHEMAS["debt"]
    mapping = map_headers(HEADERS, schema)

    def persist(record):
        persisted.append(record)
        return 100 + len(persisted)

    corrections = CorrectionSession(schema, mapping, ReferenceIndex(), persist)
    cells = ["Jane", "500", "2", "2025-03-01", "2025-01-01"]
    mapped = build_mapped_row(cells, mapping, schema)
    result = validate_row(mapped, schema, corrections.reference_index, row_number=4)
    corrections.add(CorrectionCandidate(row_number=4, original_cells=cells, mapped_row=mapped, errors=result.errors))
    return corrections


def test_candidate_starts_pending_with_errors(session):
    candidate = session.get(4)
    assert candidate.state == CandidateState.PENDING
    assert candidate.origin == CandidateOrigin.VALIDATION
    assert candidate.message == "Due date must be after lent date"
    assert candidate.draft is None


def test_fix_and_submit_imports_and_removes_candidate(session, persisted):
    imported = []
    session._on_imported = lambda candidate, record_id: imported.append((candidate.row_number, record_id))

    session.begin_edit(4)
    session.edit_field(4, "due_date", "2025-06-01")
    assert session.preview(4) == []

    outcome = session.submit(4)

    assert outcome.success
    assert outcome.record_id == 101
    assert outcome.error is None
    assert 4 not in session
    assert imported == [(4, 101)]
    assert persisted[0].values["due_date"].isoformat() == "2025-06-01"


def test_still_invalid_submit_returns_to_pending_keeping_edits(session, persisted):
    session.begin_edit(4)
    session.edit_field(4, "amount", "-1")
    outcome = session.submit(4)

    assert not outcome.success
    candidate = session.get(4)
    assert candidate.state == CandidateState.PENDING
    assert candidate.mapped_row["amount"] == "-1"
    fields = {error.field for error in candidate.errors}
    assert fields == {"amount", "due_date"}
    assert persisted == []


def test_persistence_failure_becomes_record_error(session):
    def broken(record):
        raise RuntimeError("UNIQUE constraint failed: debts.id")

    session._persist = broken
    session.begin_edit(4)
    session.edit_field(4, "due_date", "")
    outcome = session.submit(4)

    assert not outcome.success
    candidate = session.get(4)
    assert candidate.origin == CandidateOrigin.PERSISTENCE
    assert candidate.errors[0].field == RECORD_ERROR_FIELD
    assert candidate.message == "Failed to import: UNIQUE constraint failed: debts.id"


def test_edits_mirror_into_cells(session):
    session.begin_edit(4)
    candidate = session.edit_field(4, "due_date", "2025-07-01")
    assert candidate.edited_cells == ["Jane", "500", "2", "2025-03-01", "2025-07-01"]
    assert candidate.original_cells[4] == "2025-01-01"


def test_edit_of_unmapped_field_only_touches_draft(session):
    session.begin_edit(4)
    candidate = session.edit_field(4, "purpose", "Car repair")
    assert candidate.draft["purpose"] == "Car repair"
    assert len(candidate.edited_cells) == len(HEADERS)


def test_reset_field_restores_uploaded_value(session):
    session.begin_edit(4)
    session.edit_field(4, "due_date", "2025-07-01")
    candidate = session.reset_field(4, "due_date")
    assert candidate.draft["due_date"] == "2025-01-01"
    assert candidate.edited_cells[4] == "2025-01-01"


def test_discard_edit_drops_draft(session):
    session.begin_edit(4)
    session.edit_field(4, "due_date", "2025-07-01")
    candidate = session.discard_edit(4)
    assert candidate.state == CandidateState.PENDING
    assert candidate.draft is None
    assert candidate.mapped_row["due_date"] == "2025-01-01"
    assert candidate.edited_cells[4] == "2025-01-01"


def test_preview_without_edit_reports_stored_errors(session):
    errors = session.preview(4)
    assert [error.field for error in errors] == ["due_date"]


@pytest.mark.parametrize("action", [
    lambda s: s.edit_field(4, "amount", "1"),
    lambda s: s.reset_field(4, "amount"),
    lambda s: s.discard_edit(4),
    lambda s: s.submit(4),
])
def test_editing_actions_require_begin_edit(session, action):
    with pytest.raises(InvalidTransitionError):
        action(session)


def test_begin_edit_twice_rejected(session):
    session.begin_edit(4)
    with pytest.raises(InvalidTransitionError) as exc_info:
        session.begin_edit(4)
    assert exc_info.value.state == "editing"


def test_unknown_field_rejected(session):
    session.begin_edit(4)
    with pytest.raises(UnknownFieldError):
        session.edit_field(4, "colour", "red")


def test_unknown_row_rejected(session):
    with pytest.raises(CandidateNotFoundError):
        session.begin_edit(99)


def test_dismiss_removes_candidate(session, persisted):
    session.begin_edit(4)
    session.dismiss(4)
    assert len(session) == 0
    assert persisted == []
    with pytest.raises(CandidateNotFoundError):
        session.get(4)


def test_categories_created_by_other_rows_visible_on_resubmit():
    schema = SCHEMAS["expense"]
    headers = ["Title", "Amount", "Date", "Category"]
    mapping = map_headers(headers, schema)
    index = ReferenceIndex()
    corrections = CorrectionSession(schema, mapping, index, persist=lambda record: 1)

    cells = ["Taxi", "12", "2025-01-05", "Travel"]
    mapped = build_mapped_row(cells, mapping, schema)
    errors = validate_row(mapped, schema, index).errors
    assert errors
    corrections.add(CorrectionCandidate(row_number=2, original_cells=cells, mapped_row=mapped, errors=errors))

    index.add_category(CategoryEntry(id=7, name="Travel", type="EXPENSE"))
    corrections.begin_edit(2)
    assert corrections.submit(2).success
