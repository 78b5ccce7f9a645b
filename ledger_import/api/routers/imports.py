"""
Bulk import endpoints: templates, CSV uploads, import runs and row corrections.
"""
import logging
from typing import Callable, List, Optional

from fastapi import APIRouter, Depends, File, Form, HTTPException, Response, UploadFile
from sqlalchemy.orm import Session

from ledger_import.api.dependencies import (
    close_run,
    detect_file_type,
    get_current_user_id,
    get_run,
    get_session_factory,
    register_run,
)
from ledger_import.api.schemas.shared import (
    CandidateModel,
    CorrectedRowRequest,
    CorrectedRowResponse,
    EntitySummary,
    FieldEditRequest,
    FieldErrorModel,
    FieldPreviewResponse,
    ImportRunModel,
    SubmitResponse,
)
from ledger_import.core.config import settings
from ledger_import.domain.imports.errors import (
    CandidateNotFoundError,
    InvalidTransitionError,
    UnknownEntityError,
    UnknownFieldError,
)
from ledger_import.domain.imports.orchestrator import (
    ImportRun,
    import_corrected_row,
    run_import,
    run_import_with_categories,
)
from ledger_import.domain.imports.schemas import SCHEMAS, get_schema
from ledger_import.domain.imports.templates import build_template_csv, describe_schema, template_filename
from ledger_import.utils.locks import RunLockManager

router = APIRouter(prefix="/imports", tags=["imports"])

logger = logging.getLogger(__name__)


def _schema_or_404(entity: str):
    try:
        return get_schema(entity)
    except UnknownEntityError as e:
        raise HTTPException(status_code=404, detail=e.message)


def _corrections_or_409(run: ImportRun):
    if run.corrections is None:
        raise HTTPException(status_code=409, detail=f"Import run '{run.run_id}' has no rows to correct")
    return run.corrections


def _candidate_call(run: ImportRun, action: Callable):
    """
    Run a correction transition under the run's lock and translate domain
    errors into HTTP errors.
    """
    corrections = _corrections_or_409(run)
    try:
        with RunLockManager.acquire(run.run_id):
            return action(corrections)
    except CandidateNotFoundError as e:
        raise HTTPException(status_code=404, detail=e.message)
    except UnknownFieldError as e:
        raise HTTPException(status_code=404, detail=e.message)
    except InvalidTransitionError as e:
        raise HTTPException(status_code=409, detail=e.message)


@router.get("/entities", response_model=List[EntitySummary])
async def list_entities():
    """List every importable entity with its required and optional headers."""
    return [EntitySummary(**describe_schema(schema)) for schema in SCHEMAS.values()]


@router.get("/{entity}/template")
async def download_template(entity: str):
    """Download a sample CSV for an entity."""
    schema = _schema_or_404(entity)
    return Response(
        content=build_template_csv(schema),
        media_type="text/csv",
        headers={"Content-Disposition": f'attachment; filename="{template_filename(schema)}"'},
    )


def _read_csv_upload(upload: UploadFile) -> bytes:
    detect_file_type(upload.filename or "")
    content = upload.file.read()
    max_bytes = settings.upload_max_file_size_mb * 1024 * 1024
    if len(content) > max_bytes:
        raise HTTPException(
            status_code=413,
            detail=f"File exceeds the {settings.upload_max_file_size_mb} MB upload limit",
        )
    return content


def _decode(content: bytes) -> str:
    try:
        return content.decode("utf-8-sig")
    except UnicodeDecodeError:
        raise HTTPException(status_code=400, detail="File is not valid UTF-8 text")


@router.post("/{entity}", response_model=ImportRunModel)
def upload_csv(
    entity: str,
    file: UploadFile = File(...),
    categories_file: Optional[UploadFile] = File(None),
    batch_size: Optional[int] = Form(None),
    default_account_id: Optional[int] = Form(None),
    debt_run_id: Optional[str] = Form(None),
    user_id: str = Depends(get_current_user_id),
    session_factory: Callable[[], Session] = Depends(get_session_factory),
):
    """
    Upload a CSV and import it.

    Parameters:
    - entity: Entity kind (see ``GET /imports/entities``)
    - file: UTF-8 CSV file whose first row is the header row
    - categories_file: Optional category CSV imported first (entities with a category column)
    - batch_size: Optional per-upload batch size
    - default_account_id: Optional account for rows without a matching account
    - debt_run_id: Optional earlier debt run whose ID column the Debt ID cells refer to

    Returns:
    - The import run: counts, per-row errors and correction candidates
    """
    schema = _schema_or_404(entity)
    content = _read_csv_upload(file)
    text = _decode(content)

    debt_id_mapping = None
    if debt_run_id:
        debt_run = get_run(debt_run_id, user_id)
        if debt_run.entity != "debt":
            raise HTTPException(status_code=400, detail=f"Import run '{debt_run_id}' did not import debts")
        debt_id_mapping = dict(debt_run.id_mapping)

    logger.info(
        "Received %s import '%s' (%d bytes) from user %s",
        schema.kind,
        file.filename,
        len(content),
        user_id,
    )
    options = dict(batch_size=batch_size, default_account_id=default_account_id, debt_id_mapping=debt_id_mapping)

    if categories_file is not None and categories_file.filename:
        categories_text = _decode(_read_csv_upload(categories_file))
        try:
            category_run, run = run_import_with_categories(
                categories_text, text, schema.kind, user_id, session_factory, **options
            )
        except ValueError as e:
            raise HTTPException(status_code=400, detail=str(e))
        register_run(category_run)
        register_run(run)
        return ImportRunModel.from_run(run, category_run)

    run = run_import(text, schema.kind, user_id, session_factory, **options)
    register_run(run)
    return ImportRunModel.from_run(run)


@router.get("/runs/{run_id}", response_model=ImportRunModel)
async def get_import_run(run_id: str, user_id: str = Depends(get_current_user_id)):
    return ImportRunModel.from_run(get_run(run_id, user_id))


@router.delete("/runs/{run_id}")
async def close_import_run(run_id: str, user_id: str = Depends(get_current_user_id)):
    """Discard a run and its remaining correction candidates."""
    close_run(run_id, user_id)
    return {"success": True, "run_id": run_id}


@router.post("/runs/{run_id}/candidates/{row}/edit", response_model=CandidateModel)
def begin_edit(run_id: str, row: int, user_id: str = Depends(get_current_user_id)):
    run = get_run(run_id, user_id)
    candidate = _candidate_call(run, lambda c: c.begin_edit(row))
    return CandidateModel.from_candidate(candidate)


@router.patch("/runs/{run_id}/candidates/{row}/fields/{field}", response_model=CandidateModel)
def edit_field(
    run_id: str,
    row: int,
    field: str,
    request: FieldEditRequest,
    user_id: str = Depends(get_current_user_id),
):
    run = get_run(run_id, user_id)
    candidate = _candidate_call(run, lambda c: c.edit_field(row, field, request.value))
    return CandidateModel.from_candidate(candidate)


@router.post("/runs/{run_id}/candidates/{row}/fields/{field}/reset", response_model=CandidateModel)
def reset_field(run_id: str, row: int, field: str, user_id: str = Depends(get_current_user_id)):
    run = get_run(run_id, user_id)
    candidate = _candidate_call(run, lambda c: c.reset_field(row, field))
    return CandidateModel.from_candidate(candidate)


@router.get("/runs/{run_id}/candidates/{row}/preview", response_model=FieldPreviewResponse)
def preview_candidate(run_id: str, row: int, user_id: str = Depends(get_current_user_id)):
    """Field errors the row would have if submitted now."""
    run = get_run(run_id, user_id)
    errors = _candidate_call(run, lambda c: c.preview(row))
    return FieldPreviewResponse(row=row, errors=[FieldErrorModel.from_error(e) for e in errors])


@router.post("/runs/{run_id}/candidates/{row}/discard", response_model=CandidateModel)
def discard_edit(run_id: str, row: int, user_id: str = Depends(get_current_user_id)):
    run = get_run(run_id, user_id)
    candidate = _candidate_call(run, lambda c: c.discard_edit(row))
    return CandidateModel.from_candidate(candidate)


@router.post("/runs/{run_id}/candidates/{row}/submit", response_model=SubmitResponse)
def submit_candidate(run_id: str, row: int, user_id: str = Depends(get_current_user_id)):
    """Re-validate the edited row and import it when valid."""
    run = get_run(run_id, user_id)
    outcome = _candidate_call(run, lambda c: c.submit(row))
    return SubmitResponse.from_outcome(outcome, run)


@router.delete("/runs/{run_id}/candidates/{row}", response_model=CandidateModel)
def dismiss_candidate(run_id: str, row: int, user_id: str = Depends(get_current_user_id)):
    run = get_run(run_id, user_id)
    candidate = _candidate_call(run, lambda c: c.dismiss(row))
    return CandidateModel.from_candidate(candidate)


@router.post("/{entity}/corrected-row", response_model=CorrectedRowResponse)
def import_corrected(
    entity: str,
    request: CorrectedRowRequest,
    user_id: str = Depends(get_current_user_id),
    session_factory: Callable[[], Session] = Depends(get_session_factory),
):
    """Validate and import one edited row against the original headers, without a run."""
    schema = _schema_or_404(entity)
    result = import_corrected_row(request.cells, request.headers, schema.kind, user_id, session_factory)
    return CorrectedRowResponse.from_result(result)
