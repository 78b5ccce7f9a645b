"""
Import run orchestration.

``run_import`` drives one upload end to end:

    tokenize -> map headers -> validate rows -> batch import -> reconcile -> result

and returns an ``ImportRun`` that keeps the failed rows as correction
candidates. ``import_corrected_row`` is the stateless single-row path used
when a client already holds the edited cells, and ``run_import_with_categories``
chains a categories file ahead of an expense or income upload.

Nothing in an ``ImportRun`` is persisted; it lives as long as the caller keeps it.
"""

import logging
import time
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence, Tuple

from sqlalchemy.orm import Session

from ledger_import.core.config import settings
from ledger_import.domain.imports.batch_importer import (
    BatchImportOutcome,
    ImportContext,
    describe_failure,
    import_batches,
    import_single_record,
)
from ledger_import.domain.imports.corrections import (
    CandidateOrigin,
    CorrectionCandidate,
    CorrectionSession,
    RECORD_ERROR_FIELD,
)
from ledger_import.domain.imports.errors import ImportStructureError
from ledger_import.domain.imports.headers import HeaderMapping, build_mapped_row, map_headers
from ledger_import.domain.imports.references import (
    ReferenceIndex,
    build_reference_index,
    reconcile_after_import,
)
from ledger_import.domain.imports.row_validator import FieldError, ValidatedRecord, validate_row
from ledger_import.domain.imports.schemas import EntitySchema, ReferencePolicy, get_schema
from ledger_import.domain.imports.tokenizer import is_blank_row, tokenize
from ledger_import.domain.imports.validators import parse_positive_int
from ledger_import.utils.date import DateFailureLog

logger = logging.getLogger(__name__)

STRUCTURAL_ERROR_ROW = 0
FIRST_DATA_ROW = 2  # the header is row 1


@dataclass
class RowError:
    row: int
    error: str
    data: Optional[List[str]] = None
    field_errors: List[FieldError] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"row": self.row, "error": self.error}
        if self.data is not None:
            payload["data"] = list(self.data)
        if self.field_errors:
            payload["field_errors"] = [error.to_dict() for error in self.field_errors]
        return payload


@dataclass
class ImportResult:
    success: bool
    imported_count: int
    skipped_count: int
    errors: List[RowError] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)
    total_rows: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "success": self.success,
            "imported_count": self.imported_count,
            "skipped_count": self.skipped_count,
            "errors": [error.to_dict() for error in self.errors],
            "warnings": list(self.warnings),
            "total_rows": self.total_rows,
        }


@dataclass
class CorrectedRowResult:
    success: bool
    record_id: Optional[int] = None
    record: Optional[Dict[str, Any]] = None
    error: Optional[str] = None
    field_errors: List[FieldError] = field(default_factory=list)


def _resolve_policy(schema: EntitySchema, policy: Optional[ReferencePolicy]) -> ReferencePolicy:
    if policy is not None:
        return policy
    if settings.auto_create_categories is not None:
        return ReferencePolicy.AUTO_CREATE if settings.auto_create_categories else ReferencePolicy.STRICT
    return schema.reference_policy


class ImportRun:
    """
    Ephemeral state of one upload.

    Counts:
        imported_count: records committed by batches or successful corrections
        skipped_count: blank rows plus rows rejected by validation
        errored_count: rows still waiting for correction

    ``id_mapping`` maps the source ids of an entity with a ``source_key``
    (the ID column of a debt file) to the ids the store assigned.
    ``date_failures`` collects the unparseable date cells of this run only.
    """

    def __init__(
        self,
        schema: EntitySchema,
        user_id: str,
        session_factory: Callable[[], Session],
        reference_index: Optional[ReferenceIndex] = None,
        policy: Optional[ReferencePolicy] = None,
        timeout_seconds: Optional[float] = None,
        run_id: Optional[str] = None,
    ):
        self.run_id = run_id or uuid.uuid4().hex
        self.schema = schema
        self.user_id = user_id
        self.policy = _resolve_policy(schema, policy)
        self.session_factory = session_factory
        self.reference_index = reference_index
        self.timeout_seconds = timeout_seconds
        self.created_at = datetime.now(timezone.utc)
        self.last_accessed = self.created_at

        self.headers: List[str] = []
        self.mapping: Optional[HeaderMapping] = None
        self.total_rows = 0
        self.imported_ids: List[int] = []
        self.skipped_count = 0
        self.structural_error: Optional[str] = None
        self.warnings: List[str] = []
        self.corrections: Optional[CorrectionSession] = None
        self.id_mapping: Dict[int, int] = {}
        self.date_failures = DateFailureLog()

    @property
    def entity(self) -> str:
        return self.schema.kind

    @property
    def imported_count(self) -> int:
        return len(self.imported_ids)

    @property
    def errored_count(self) -> int:
        return len(self.corrections) if self.corrections is not None else 0

    @property
    def candidates(self) -> List[CorrectionCandidate]:
        return self.corrections.candidates if self.corrections is not None else []

    def import_context(self, should_continue: Optional[Callable[[], bool]] = None) -> ImportContext:
        return ImportContext(
            session_factory=self.session_factory,
            user_id=self.user_id,
            schema=self.schema,
            reference_index=self.reference_index,
            timeout_seconds=self.timeout_seconds,
            should_continue=should_continue,
        )

    def record_source_id(self, raw: Any, record_id: int) -> None:
        if raw is None or raw == "":
            return
        try:
            source_id = raw if isinstance(raw, int) else parse_positive_int(str(raw))
        except ValueError:
            logger.debug("Run %s: ignoring unusable source id %r", self.run_id, raw)
            return
        self.id_mapping[source_id] = record_id

    def _on_correction_imported(self, candidate: CorrectionCandidate, record_id: int) -> None:
        self.imported_ids.append(record_id)
        if self.schema.source_key:
            self.record_source_id(candidate.mapped_row.get(self.schema.source_key), record_id)
        logger.info(
            "Run %s: corrected row %d imported (%d imported, %d still failing)",
            self.run_id,
            candidate.row_number,
            self.imported_count,
            self.errored_count,
        )

    def open_corrections(self, mapping: HeaderMapping) -> CorrectionSession:
        self.mapping = mapping
        self.corrections = CorrectionSession(
            schema=self.schema,
            mapping=mapping,
            reference_index=self.reference_index,
            persist=lambda record: import_single_record(record, self.import_context()),
            policy=self.policy,
            on_imported=self._on_correction_imported,
            date_failures=self.date_failures,
        )
        return self.corrections

    def fail_structure(self, message: str) -> "ImportRun":
        self.structural_error = message
        logger.warning("Run %s (%s): %s", self.run_id, self.entity, message)
        return self

    def result(self) -> ImportResult:
        if self.structural_error is not None:
            return ImportResult(
                success=False,
                imported_count=0,
                skipped_count=0,
                errors=[RowError(STRUCTURAL_ERROR_ROW, self.structural_error)],
                warnings=list(self.warnings),
                total_rows=self.total_rows,
            )
        errors = [
            RowError(
                row=candidate.row_number,
                error=candidate.message,
                data=list(candidate.original_cells),
                field_errors=list(candidate.errors),
            )
            for candidate in self.candidates
        ]
        return ImportResult(
            success=self.imported_count > 0,
            imported_count=self.imported_count,
            skipped_count=self.skipped_count,
            errors=errors,
            warnings=list(self.warnings),
            total_rows=self.total_rows,
        )


def _add_candidate(
    run: ImportRun,
    rows: Sequence[Sequence[str]],
    row_number: int,
    mapped_row: Dict[str, str],
    errors: List[FieldError],
    origin: CandidateOrigin,
) -> None:
    run.corrections.add(
        CorrectionCandidate(
            row_number=row_number,
            original_cells=list(rows[row_number - 1]),
            mapped_row=dict(mapped_row),
            errors=list(errors),
            origin=origin,
        )
    )


def _file_key(record: ValidatedRecord, schema: EntitySchema) -> Tuple[Any, ...]:
    return tuple(
        value.strip().lower() if isinstance(value, str) else value
        for value in record.natural_key(schema)
    )


def _duplicate_message(schema: EntitySchema, record: ValidatedRecord, first_row: int) -> str:
    described = ", ".join(
        f"{schema.get_field(name).display_label.lower()} '{value}'"
        for name, value in zip(schema.natural_key, record.natural_key(schema))
    )
    return f"Duplicate {described} already exists in this import (row {first_row})"


def _reconcile(run: ImportRun, outcome: BatchImportOutcome) -> None:
    if not run.schema.reconcile_visibility:
        return
    if not outcome.imported_records:
        logger.info("Run %s: nothing imported, skipping budget visibility reconciliation", run.run_id)
        return

    imported_names = [record.natural_key(run.schema)[0] for record in outcome.imported_records]
    try:
        with run.session_factory() as session:
            with session.begin():
                reconcile_after_import(session, run.user_id, imported_names)
    except Exception as exc:
        logger.exception("Run %s: budget visibility reconciliation failed", run.run_id)
        run.warnings.append(f"Could not update budget category visibility: {describe_failure(exc)}")


def run_import(
    text: str,
    entity_kind: str,
    user_id: str,
    session_factory: Callable[[], Session],
    *,
    reference_index: Optional[ReferenceIndex] = None,
    policy: Optional[ReferencePolicy] = None,
    batch_size: Optional[int] = None,
    timeout_seconds: Optional[float] = None,
    default_account_id: Optional[int] = None,
    should_continue: Optional[Callable[[], bool]] = None,
    debt_id_mapping: Optional[Mapping[int, int]] = None,
    run_id: Optional[str] = None,
) -> ImportRun:
    """
    Import one CSV upload.

    Args:
        text: Decoded CSV text (first row is the header row)
        entity_kind: Key of the entity schema (e.g. "budget_target")
        user_id: Owner of every record written
        session_factory: Callable returning a new SQLAlchemy session
        reference_index: Category/account snapshot; loaded from the store when omitted
        policy: Reference policy override
        batch_size: Per-call batch size override
        timeout_seconds: Per-batch transaction bound override
        default_account_id: Account used for rows whose optional account is blank or unmatched
        should_continue: Consulted before every batch; returning False stops the import
        run_id: Explicit id for the run (generated when omitted)
        debt_id_mapping: Source-to-stored debt ids from an earlier debt run, used when
            the reference index is loaded here

    Returns:
        The ImportRun; ``run.result()`` gives the structured outcome

    Raises:
        UnknownEntityError: If ``entity_kind`` has no schema
    """
    schema = get_schema(entity_kind)
    started = time.perf_counter()
    run = ImportRun(
        schema,
        user_id,
        session_factory,
        reference_index=reference_index,
        policy=policy,
        timeout_seconds=timeout_seconds,
        run_id=run_id,
    )

    rows = tokenize(text)
    if not rows:
        return run.fail_structure("CSV file is empty")

    run.headers = list(rows[0])
    if is_blank_row(run.headers):
        return run.fail_structure("CSV file has no headers")

    try:
        mapping = map_headers(run.headers, schema)
    except ImportStructureError as exc:
        return run.fail_structure(exc.message)
    run.warnings.extend(mapping.warnings(schema))

    if run.reference_index is None:
        with session_factory() as session:
            run.reference_index = build_reference_index(session, user_id, debt_id_mapping)
    run.open_corrections(mapping)

    records: List[ValidatedRecord] = []
    first_seen: Dict[Tuple[Any, ...], int] = {}
    for offset, cells in enumerate(rows[1:]):
        row_number = offset + FIRST_DATA_ROW
        run.total_rows += 1
        if is_blank_row(cells):
            run.skipped_count += 1
            continue

        mapped_row = build_mapped_row(cells, mapping, schema)
        result = validate_row(mapped_row, schema, run.reference_index, run.policy, row_number, run.date_failures)
        if result.ok and schema.unique_in_file:
            key = _file_key(result.record, schema)
            if key in first_seen:
                result.errors.append(FieldError(schema.natural_key[0], _duplicate_message(schema, result.record, first_seen[key])))
            else:
                first_seen[key] = row_number
        if result.ok:
            if default_account_id is not None and schema.get_field("account") and result.record.values.get("account") is None:
                result.record.values["account"] = default_account_id
            records.append(result.record)
        else:
            run.skipped_count += 1
            _add_candidate(run, rows, row_number, mapped_row, result.errors, CandidateOrigin.VALIDATION)

    logger.info(
        "Run %s (%s, user %s): %d data rows, %d valid, %d rejected by validation",
        run.run_id,
        schema.kind,
        user_id,
        run.total_rows,
        len(records),
        run.errored_count,
    )

    outcome = import_batches(records, run.import_context(should_continue), batch_size)
    run.imported_ids.extend(outcome.imported_ids)
    if schema.source_key:
        for record, record_id in zip(outcome.imported_records, outcome.imported_ids):
            run.record_source_id(record.values.get(schema.source_key), record_id)

    for error in outcome.errors:
        record = error.record
        _add_candidate(
            run, rows, record.row_number, record.mapped_row,
            [FieldError(RECORD_ERROR_FIELD, error.message)], CandidateOrigin.PERSISTENCE,
        )
    for record in outcome.pending_records:
        _add_candidate(
            run, rows, record.row_number, record.mapped_row,
            [FieldError(RECORD_ERROR_FIELD, "Import stopped before this row was processed")], CandidateOrigin.NOT_PROCESSED,
        )
    if outcome.stopped_early:
        run.warnings.append(f"Import stopped early; {len(outcome.pending_records)} row(s) were not processed")

    _reconcile(run, outcome)

    if run.date_failures:
        logger.info("Run %s: %d unparseable date cell(s): %s", run.run_id, len(run.date_failures), run.date_failures.snapshot())

    logger.info(
        "Run %s (%s) finished in %.2fs: %d imported, %d skipped, %d awaiting correction",
        run.run_id,
        schema.kind,
        time.perf_counter() - started,
        run.imported_count,
        run.skipped_count,
        run.errored_count,
    )
    return run


def run_import_with_categories(
    categories_text: str,
    text: str,
    entity_kind: str,
    user_id: str,
    session_factory: Callable[[], Session],
    **options: Any,
) -> Tuple[ImportRun, ImportRun]:
    """
    Import a categories file, then the transactions that refer to it.

    The category run commits first; the main run then loads a fresh
    reference index so its rows resolve against the new categories. A
    category file with failures does not block the main run, its rows stay
    correctable in the category run.

    Returns:
        (category run, main run)

    Raises:
        UnknownEntityError: If ``entity_kind`` has no schema
        ValueError: If ``entity_kind`` has no category reference
    """
    schema = get_schema(entity_kind)
    if not any(spec.reference == "category" for spec in schema.fields):
        raise ValueError(f"{schema.title} do not reference categories")

    options.pop("reference_index", None)
    main_run_id = options.pop("run_id", None)
    category_run = run_import(categories_text, "category", user_id, session_factory, **options)
    if category_run.structural_error is not None:
        logger.warning(
            "Run %s: categories file rejected (%s); importing %s against existing categories",
            category_run.run_id,
            category_run.structural_error,
            schema.kind,
        )
    main_run = run_import(text, entity_kind, user_id, session_factory, run_id=main_run_id, **options)
    return category_run, main_run


def import_corrected_row(
    cells: Sequence[str],
    headers: Sequence[str],
    entity_kind: str,
    user_id: str,
    session_factory: Callable[[], Session],
    *,
    reference_index: Optional[ReferenceIndex] = None,
    policy: Optional[ReferencePolicy] = None,
) -> CorrectedRowResult:
    """
    Validate and import one edited row without an import run.

    Args:
        cells: Edited raw cells of the row
        headers: Header row of the original upload
        entity_kind: Key of the entity schema
        user_id: Owner of the record
        session_factory: Callable returning a new SQLAlchemy session
        reference_index: Category/account snapshot; loaded from the store when omitted
        policy: Reference policy override

    Returns:
        CorrectedRowResult with the new record id or the error text
    """
    schema = get_schema(entity_kind)
    policy = _resolve_policy(schema, policy)

    try:
        mapping = map_headers(headers, schema)
    except ImportStructureError as exc:
        return CorrectedRowResult(success=False, error=exc.message)

    if reference_index is None:
        with session_factory() as session:
            reference_index = build_reference_index(session, user_id)

    mapped_row = build_mapped_row(cells, mapping, schema)
    result = validate_row(mapped_row, schema, reference_index, policy)
    if not result.ok:
        return CorrectedRowResult(success=False, error=result.message, field_errors=list(result.errors))

    context = ImportContext(
        session_factory=session_factory,
        user_id=user_id,
        schema=schema,
        reference_index=reference_index,
    )
    try:
        record_id = import_single_record(result.record, context)
    except Exception as exc:
        logger.exception("Failed to import corrected %s row for user %s", schema.kind, user_id)
        return CorrectedRowResult(success=False, error=f"Failed to import: {describe_failure(exc)}")
    return CorrectedRowResult(success=True, record_id=record_id, record=result.record.to_dict())
