"""
Correction workflow for rows that failed validation or persistence.

Every failed row becomes a ``CorrectionCandidate`` with an explicit state:

    PENDING --begin_edit--> EDITING --submit--> VALIDATING --> PENDING | IMPORTED
                             |   ^
                             |   +-- edit_field / reset_field
                             +-- discard_edit --> PENDING

Edits only touch the candidate's Mapped Row draft. The edited raw cells are
kept alongside purely as an audit trail; validation always reads the Mapped
Row. A successful submit imports the single record and removes the candidate.
"""
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Dict, List, Optional

from ledger_import.domain.imports.batch_importer import describe_failure
from ledger_import.domain.imports.errors import (
    CandidateNotFoundError,
    InvalidTransitionError,
    UnknownFieldError,
)
from ledger_import.domain.imports.headers import HeaderMapping, build_mapped_row
from ledger_import.domain.imports.references import ReferenceIndex
from ledger_import.domain.imports.row_validator import (
    FieldError,
    ValidatedRecord,
    preview_errors,
    validate_row,
)
from ledger_import.domain.imports.schemas import EntitySchema, ReferencePolicy
from ledger_import.utils.date import DateFailureLog

logger = logging.getLogger(__name__)

RECORD_ERROR_FIELD = "_record"


class CandidateState(str, Enum):
    PENDING = "pending"
    EDITING = "editing"
    VALIDATING = "validating"
    IMPORTED = "imported"


class CandidateOrigin(str, Enum):
    VALIDATION = "validation"
    PERSISTENCE = "persistence"
    NOT_PROCESSED = "not_processed"


@dataclass
class CorrectionCandidate:
    row_number: int
    original_cells: List[str]
    mapped_row: Dict[str, str]
    errors: List[FieldError]
    origin: CandidateOrigin = CandidateOrigin.VALIDATION
    state: CandidateState = CandidateState.PENDING
    draft: Optional[Dict[str, str]] = None
    edited_cells: List[str] = field(default_factory=list)
    record_id: Optional[int] = None
    _cells_before_edit: List[str] = field(default_factory=list, repr=False)

    def __post_init__(self):
        if not self.edited_cells:
            self.edited_cells = list(self.original_cells)

    @property
    def message(self) -> str:
        return "; ".join(error.message for error in self.errors)

    @property
    def current_row(self) -> Dict[str, str]:
        """Draft while editing, otherwise the persisted Mapped Row."""
        return self.draft if self.draft is not None else self.mapped_row


@dataclass
class SubmitOutcome:
    success: bool
    row_number: int
    record_id: Optional[int] = None
    errors: List[FieldError] = field(default_factory=list)

    @property
    def error(self) -> Optional[str]:
        if not self.errors:
            return None
        return "; ".join(error.message for error in self.errors)


class CorrectionSession:
    """
    Holds the correction candidates of one import run.

    Args:
        schema: Entity schema of the run
        mapping: Header mapping of the uploaded file (used to reset fields
            from the original cells and to mirror edits into cells)
        reference_index: Lookup snapshot shared with the run
        persist: Callable writing one validated record in its own transaction
        policy: Reference policy used when re-validating
        on_imported: Called with (candidate, record id) after a successful submit
        date_failures: Collector for unparseable dates seen on submit
    """

    def __init__(
        self,
        schema: EntitySchema,
        mapping: HeaderMapping,
        reference_index: ReferenceIndex,
        persist: Callable[[ValidatedRecord], int],
        policy: Optional[ReferencePolicy] = None,
        on_imported: Optional[Callable[[CorrectionCandidate, int], None]] = None,
        date_failures: Optional[DateFailureLog] = None,
    ):
        self.schema = schema
        self.mapping = mapping
        self.reference_index = reference_index
        self.policy = policy or schema.reference_policy
        self._persist = persist
        self._on_imported = on_imported
        self.date_failures = date_failures
        self._candidates: Dict[int, CorrectionCandidate] = {}

    # ------------------------------------------------------------------
    # Candidate registry
    # ------------------------------------------------------------------

    def add(self, candidate: CorrectionCandidate) -> CorrectionCandidate:
        self._candidates[candidate.row_number] = candidate
        return candidate

    def get(self, row_number: int) -> CorrectionCandidate:
        candidate = self._candidates.get(row_number)
        if candidate is None:
            raise CandidateNotFoundError(row_number)
        return candidate

    @property
    def candidates(self) -> List[CorrectionCandidate]:
        return [self._candidates[row] for row in sorted(self._candidates)]

    def __len__(self) -> int:
        return len(self._candidates)

    def __contains__(self, row_number: int) -> bool:
        return row_number in self._candidates

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    def _require(self, candidate: CorrectionCandidate, action: str, *states: CandidateState) -> None:
        if candidate.state not in states:
            raise InvalidTransitionError(candidate.row_number, candidate.state.value, action)

    def _require_field(self, field_name: str) -> None:
        if self.schema.get_field(field_name) is None:
            raise UnknownFieldError(self.schema.kind, field_name)

    def _mirror_cell(self, candidate: CorrectionCandidate, field_name: str, value: str) -> None:
        index = self.mapping.index_of(field_name)
        if index is None:
            return
        if index >= len(candidate.edited_cells):
            candidate.edited_cells.extend([""] * (index + 1 - len(candidate.edited_cells)))
        candidate.edited_cells[index] = value

    def begin_edit(self, row_number: int) -> CorrectionCandidate:
        candidate = self.get(row_number)
        self._require(candidate, "edit", CandidateState.PENDING)
        candidate.draft = dict(candidate.mapped_row)
        candidate._cells_before_edit = list(candidate.edited_cells)
        candidate.state = CandidateState.EDITING
        return candidate

    def edit_field(self, row_number: int, field_name: str, value: str) -> CorrectionCandidate:
        candidate = self.get(row_number)
        self._require(candidate, "edit a field of", CandidateState.EDITING)
        self._require_field(field_name)
        value = "" if value is None else str(value)
        candidate.draft[field_name] = value
        self._mirror_cell(candidate, field_name, value)
        return candidate

    def reset_field(self, row_number: int, field_name: str) -> CorrectionCandidate:
        """Recompute one field from the originally uploaded cells."""
        candidate = self.get(row_number)
        self._require(candidate, "reset a field of", CandidateState.EDITING)
        self._require_field(field_name)
        original = build_mapped_row(candidate.original_cells, self.mapping, self.schema)[field_name]
        candidate.draft[field_name] = original
        self._mirror_cell(candidate, field_name, original)
        return candidate

    def discard_edit(self, row_number: int) -> CorrectionCandidate:
        candidate = self.get(row_number)
        self._require(candidate, "discard edits of", CandidateState.EDITING)
        candidate.draft = None
        candidate.edited_cells = list(candidate._cells_before_edit)
        candidate.state = CandidateState.PENDING
        return candidate

    def preview(self, row_number: int) -> List[FieldError]:
        """Live field errors of the draft (or of the stored row when not editing)."""
        candidate = self.get(row_number)
        return preview_errors(candidate.current_row, self.schema, self.reference_index, self.policy)

    def submit(self, row_number: int) -> SubmitOutcome:
        """
        Re-validate the draft and import it when valid.

        The draft becomes the candidate's Mapped Row whatever the outcome, so
        a failed submit keeps the user's edits.
        """
        candidate = self.get(row_number)
        self._require(candidate, "submit", CandidateState.EDITING)

        candidate.state = CandidateState.VALIDATING
        candidate.mapped_row = dict(candidate.draft)
        candidate.draft = None

        result = validate_row(
            candidate.mapped_row, self.schema, self.reference_index, self.policy, row_number, self.date_failures
        )
        if not result.ok:
            candidate.errors = result.errors
            candidate.state = CandidateState.PENDING
            logger.info("Correction of %s row %d still invalid: %s", self.schema.kind, row_number, result.message)
            return SubmitOutcome(False, row_number, errors=list(result.errors))

        try:
            record_id = self._persist(result.record)
        except Exception as exc:
            logger.exception("Failed to import corrected %s row %d", self.schema.kind, row_number)
            candidate.errors = [FieldError(RECORD_ERROR_FIELD, f"Failed to import: {describe_failure(exc)}")]
            candidate.origin = CandidateOrigin.PERSISTENCE
            candidate.state = CandidateState.PENDING
            return SubmitOutcome(False, row_number, errors=list(candidate.errors))

        candidate.state = CandidateState.IMPORTED
        candidate.record_id = record_id
        candidate.errors = []
        del self._candidates[row_number]
        if self._on_imported is not None:
            self._on_imported(candidate, record_id)
        return SubmitOutcome(True, row_number, record_id=record_id)

    def dismiss(self, row_number: int) -> CorrectionCandidate:
        """Drop a candidate without importing it."""
        candidate = self.get(row_number)
        self._require(candidate, "dismiss", CandidateState.PENDING, CandidateState.EDITING)
        del self._candidates[row_number]
        logger.info("Dismissed %s row %d without importing", self.schema.kind, row_number)
        return candidate
