from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, field_validator

from ledger_import.domain.imports.corrections import CorrectionCandidate, SubmitOutcome
from ledger_import.domain.imports.orchestrator import CorrectedRowResult, ImportResult, ImportRun
from ledger_import.domain.imports.row_validator import FieldError


class FieldErrorModel(BaseModel):
    field: str
    message: str

    @classmethod
    def from_error(cls, error: FieldError) -> "FieldErrorModel":
        return cls(field=error.field, message=error.message)


class RowErrorModel(BaseModel):
    """``data`` holds the raw cells of the failing row as uploaded."""
    row: int
    error: str
    data: Optional[List[str]] = None
    field_errors: List[FieldErrorModel] = Field(default_factory=list)


class ImportResultModel(BaseModel):
    """Structured outcome of an upload; ``row`` 0 marks a file-level error."""
    success: bool
    imported_count: int
    skipped_count: int
    errors: List[RowErrorModel] = Field(default_factory=list)
    warnings: List[str] = Field(default_factory=list)
    total_rows: int = 0

    @classmethod
    def from_result(cls, result: ImportResult) -> "ImportResultModel":
        return cls(**result.to_dict())


class CandidateModel(BaseModel):
    row: int
    state: str
    origin: str
    mapped_row: Dict[str, str]
    draft: Optional[Dict[str, str]] = None
    original_cells: List[str]
    edited_cells: List[str]
    errors: List[FieldErrorModel] = Field(default_factory=list)

    @classmethod
    def from_candidate(cls, candidate: CorrectionCandidate) -> "CandidateModel":
        return cls(
            row=candidate.row_number,
            state=candidate.state.value,
            origin=candidate.origin.value,
            mapped_row=dict(candidate.mapped_row),
            draft=dict(candidate.draft) if candidate.draft is not None else None,
            original_cells=list(candidate.original_cells),
            edited_cells=list(candidate.edited_cells),
            errors=[FieldErrorModel.from_error(e) for e in candidate.errors],
        )


class ImportRunModel(BaseModel):
    run_id: str
    entity: str
    created_at: datetime
    headers: List[str]
    field_mapping: Dict[str, str] = Field(default_factory=dict)
    imported_count: int
    skipped_count: int
    errored_count: int
    imported_ids: List[int] = Field(default_factory=list)
    id_mapping: Dict[int, int] = Field(default_factory=dict)
    date_failure_count: int = 0
    result: ImportResultModel
    candidates: List[CandidateModel] = Field(default_factory=list)
    category_run_id: Optional[str] = None
    category_result: Optional[ImportResultModel] = None

    @classmethod
    def from_run(cls, run: ImportRun, category_run: Optional[ImportRun] = None) -> "ImportRunModel":
        mapping = {}
        if run.mapping is not None:
            mapping = {name: run.headers[index] for name, index in run.mapping.field_to_index.items()}
        return cls(
            run_id=run.run_id,
            entity=run.entity,
            created_at=run.created_at,
            headers=list(run.headers),
            field_mapping=mapping,
            imported_count=run.imported_count,
            skipped_count=run.skipped_count,
            errored_count=run.errored_count,
            imported_ids=list(run.imported_ids),
            id_mapping=dict(run.id_mapping),
            date_failure_count=len(run.date_failures),
            result=ImportResultModel.from_result(run.result()),
            candidates=[CandidateModel.from_candidate(c) for c in run.candidates],
            category_run_id=category_run.run_id if category_run is not None else None,
            category_result=ImportResultModel.from_result(category_run.result()) if category_run is not None else None,
        )


class EntitySummary(BaseModel):
    entity: str
    title: str
    description: str = ""
    required_headers: List[str]
    optional_headers: List[str]
    reference_policy: str


class FieldEditRequest(BaseModel):
    value: str = ""

    @field_validator("value", mode="before")
    def coerce_value(cls, value: Any) -> str:
        """Numbers and nulls arrive from JSON clients; cells are always strings."""
        if value is None:
            return ""
        return str(value)


class FieldPreviewResponse(BaseModel):
    row: int
    errors: List[FieldErrorModel] = Field(default_factory=list)


class SubmitResponse(BaseModel):
    success: bool
    row: int
    record_id: Optional[int] = None
    error: Optional[str] = None
    errors: List[FieldErrorModel] = Field(default_factory=list)
    imported_count: int
    errored_count: int

    @classmethod
    def from_outcome(cls, outcome: SubmitOutcome, run: ImportRun) -> "SubmitResponse":
        return cls(
            success=outcome.success,
            row=outcome.row_number,
            record_id=outcome.record_id,
            error=outcome.error,
            errors=[FieldErrorModel.from_error(e) for e in outcome.errors],
            imported_count=run.imported_count,
            errored_count=run.errored_count,
        )


class CorrectedRowRequest(BaseModel):
    headers: List[str]
    cells: List[str]

    @field_validator("headers")
    def validate_headers(cls, value: List[str]) -> List[str]:
        if not any((h or "").strip() for h in value):
            raise ValueError("headers must contain at least one non-empty header")
        return value

    @field_validator("cells", mode="before")
    def coerce_cells(cls, value: Any) -> Any:
        if isinstance(value, list):
            return ["" if cell is None else str(cell) for cell in value]
        return value


class CorrectedRowResponse(BaseModel):
    success: bool
    record_id: Optional[int] = None
    record: Optional[Dict[str, Any]] = None
    error: Optional[str] = None
    field_errors: List[FieldErrorModel] = Field(default_factory=list)

    @classmethod
    def from_result(cls, result: CorrectedRowResult) -> "CorrectedRowResponse":
        return cls(
            success=result.success,
            record_id=result.record_id,
            record=result.record,
            error=result.error,
            field_errors=[FieldErrorModel.from_error(e) for e in result.field_errors],
        )
