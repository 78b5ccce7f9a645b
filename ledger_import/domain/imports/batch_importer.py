"""
Transactional batch importer.

Validated records are written in fixed-size batches. Each batch is one
transaction: it commits entirely or not at all, and a failing batch turns all
of its records into errors without affecting batches before or after it.
Batches run strictly in order because a later batch may rely on categories an
earlier batch created.
"""
import logging
import time
from dataclasses import dataclass, field
from typing import Callable, List, Optional, Sequence, Tuple

from sqlalchemy import text
from sqlalchemy.exc import DBAPIError
from sqlalchemy.orm import Session

from ledger_import.core.config import resolve_batch_size, settings
from ledger_import.domain.imports.errors import BatchTimeoutError
from ledger_import.domain.imports.persisters import PersistContext, get_persister
from ledger_import.domain.imports.references import CategoryEntry, ReferenceIndex
from ledger_import.domain.imports.row_validator import ValidatedRecord
from ledger_import.domain.imports.schemas import EntitySchema

logger = logging.getLogger(__name__)


@dataclass
class ImportContext:
    """Everything a batch needs besides its records."""
    session_factory: Callable[[], Session]
    user_id: str
    schema: EntitySchema
    reference_index: ReferenceIndex
    timeout_seconds: Optional[float] = None
    should_continue: Optional[Callable[[], bool]] = None
    clock: Callable[[], float] = time.monotonic

    @property
    def effective_timeout(self) -> float:
        if self.timeout_seconds is not None:
            return self.timeout_seconds
        return settings.import_transaction_timeout_seconds


@dataclass
class RecordError:
    record: ValidatedRecord
    message: str


@dataclass
class BatchImportOutcome:
    imported_ids: List[int] = field(default_factory=list)
    imported_records: List[ValidatedRecord] = field(default_factory=list)
    errors: List[RecordError] = field(default_factory=list)
    failed_records: List[ValidatedRecord] = field(default_factory=list)
    pending_records: List[ValidatedRecord] = field(default_factory=list)
    batches_run: int = 0
    batches_failed: int = 0
    stopped_early: bool = False

    @property
    def imported_count(self) -> int:
        return len(self.imported_ids)


def describe_failure(exc: BaseException) -> str:
    """Short, user-facing reason for a failed transaction."""
    if isinstance(exc, DBAPIError) and exc.orig is not None:
        reason = str(exc.orig).strip()
    else:
        reason = getattr(exc, "message", None) or str(exc)
    reason = reason.splitlines()[0] if reason else ""
    return reason or exc.__class__.__name__


def _apply_statement_timeout(session: Session, timeout_seconds: float) -> None:
    bind = session.get_bind()
    if bind.dialect.name == "postgresql":
        session.execute(text(f"SET LOCAL statement_timeout = {int(timeout_seconds * 1000)}"))


def _run_batch(context: ImportContext, batch: Sequence[ValidatedRecord]) -> Tuple[List[int], List[CategoryEntry]]:
    """
    Persist ``batch`` in one transaction.

    Returns:
        (new record ids, categories created by the transaction)

    Raises:
        BatchTimeoutError: If the transaction ran past the configured bound
        Exception: Whatever the persister or the database raised; the
            transaction has been rolled back
    """
    persister = get_persister(context.schema.kind)
    timeout = context.effective_timeout
    started = context.clock()

    with context.session_factory() as session:
        with session.begin():
            _apply_statement_timeout(session, timeout)
            persist_ctx = PersistContext(session=session, user_id=context.user_id)
            ids = [persister(persist_ctx, record) for record in batch]

            elapsed = context.clock() - started
            if elapsed > timeout:
                raise BatchTimeoutError(elapsed, timeout)

    return ids, persist_ctx.created_categories


def import_batches(
    records: Sequence[ValidatedRecord],
    context: ImportContext,
    batch_size: Optional[int] = None,
) -> BatchImportOutcome:
    """
    Persist validated records in sequential, isolated batches.

    Args:
        records: Records in file order
        context: Session factory, user, schema and reference index for the run
        batch_size: Per-call batch size; falls back to the per-entity override
            and then ``IMPORT_BATCH_SIZE``

    Returns:
        BatchImportOutcome with ids of committed records and an error per
        record of every failed batch
    """
    size = resolve_batch_size(context.schema.kind, batch_size)
    outcome = BatchImportOutcome()
    batches = [list(records[i:i + size]) for i in range(0, len(records), size)]
    total = len(batches)

    for number, batch in enumerate(batches, start=1):
        if context.should_continue is not None and not context.should_continue():
            for remaining in batches[number - 1:]:
                outcome.pending_records.extend(remaining)
            outcome.stopped_early = True
            logger.info(
                "Stopped %s import before batch %d/%d; %d record(s) not processed",
                context.schema.kind,
                number,
                total,
                len(outcome.pending_records),
            )
            break

        outcome.batches_run += 1
        try:
            ids, created = _run_batch(context, batch)
        except Exception as exc:
            reason = describe_failure(exc)
            logger.exception(
                "Batch %d/%d of %s import failed for user %s (%d records): %s",
                number,
                total,
                context.schema.kind,
                context.user_id,
                len(batch),
                reason,
            )
            outcome.batches_failed += 1
            outcome.failed_records.extend(batch)
            outcome.errors.extend(RecordError(record, f"Failed to import: {reason}") for record in batch)
            continue

        # Only committed categories become visible to later batches.
        for entry in created:
            context.reference_index.add_category(entry)
        outcome.imported_ids.extend(ids)
        outcome.imported_records.extend(batch)
        logger.debug("Batch %d/%d of %s import committed %d records", number, total, context.schema.kind, len(ids))

    logger.info(
        "Batch import of %s finished: %d imported, %d failed in %d/%d failed batches",
        context.schema.kind,
        outcome.imported_count,
        len(outcome.failed_records),
        outcome.batches_failed,
        outcome.batches_run,
    )
    return outcome


def import_single_record(record: ValidatedRecord, context: ImportContext) -> int:
    """
    Persist one record in its own transaction (correction path).

    Returns:
        The new record id

    Raises:
        Exception: The persistence failure; nothing was written
    """
    ids, created = _run_batch(context, [record])
    for entry in created:
        context.reference_index.add_category(entry)
    logger.info("Imported corrected %s row %s as id %s", context.schema.kind, record.row_number, ids[0])
    return ids[0]
