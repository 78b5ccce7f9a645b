"""
Shared dependencies and in-process state for the API.

Import runs live in a process-local registry keyed by run id. They are
ephemeral by nature (nothing about a run is persisted) and disappear when the
client closes them, when they sit idle longer than
``import_run_ttl_minutes``, when the registry grows past
``import_run_registry_limit`` (least recently used first), or when the
process restarts.
"""
import logging
import threading
from datetime import datetime, timedelta, timezone
from typing import Callable, Dict, List, Optional

from fastapi import Header, HTTPException
from sqlalchemy.orm import Session

from ledger_import.core.config import settings
from ledger_import.db.session import get_session_local
from ledger_import.domain.imports.orchestrator import ImportRun
from ledger_import.utils.locks import RunLockManager

logger = logging.getLogger(__name__)

# Global run storage (in production, pin clients to one worker or move to Redis)
import_runs: Dict[str, ImportRun] = {}
_runs_lock = threading.Lock()


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _evict_stale_runs(now: datetime) -> List[str]:
    """Drop idle runs past the TTL, then the least recently used beyond the cap. Caller holds ``_runs_lock``."""
    ttl = timedelta(minutes=settings.import_run_ttl_minutes)
    evicted = [run_id for run_id, run in import_runs.items() if now - run.last_accessed > ttl]

    overflow = len(import_runs) - len(evicted) - max(1, settings.import_run_registry_limit)
    if overflow > 0:
        survivors = sorted(
            (run for run_id, run in import_runs.items() if run_id not in evicted),
            key=lambda run: run.last_accessed,
        )
        evicted.extend(run.run_id for run in survivors[:overflow])

    for run_id in evicted:
        import_runs.pop(run_id, None)
        RunLockManager.discard(run_id)
    if evicted:
        logger.info("Evicted %d import run(s) from the registry; %d remain", len(evicted), len(import_runs))
    return evicted


def evict_stale_runs(now: Optional[datetime] = None) -> List[str]:
    """Apply the registry TTL and size cap; returns the evicted run ids."""
    with _runs_lock:
        return _evict_stale_runs(now or _now())


def register_run(run: ImportRun) -> ImportRun:
    with _runs_lock:
        now = _now()
        run.last_accessed = now
        import_runs[run.run_id] = run
        _evict_stale_runs(now)
    return run


def get_run(run_id: str, user_id: str) -> ImportRun:
    """
    Fetch a run owned by ``user_id`` and mark it as recently used.

    Raises:
        HTTPException: 404 when the run does not exist, expired or belongs to someone else
    """
    with _runs_lock:
        now = _now()
        _evict_stale_runs(now)
        run = import_runs.get(run_id)
        if run is not None and run.user_id == user_id:
            run.last_accessed = now
    if run is None or run.user_id != user_id:
        raise HTTPException(status_code=404, detail=f"Import run '{run_id}' not found")
    return run


def close_run(run_id: str, user_id: str) -> Optional[ImportRun]:
    get_run(run_id, user_id)
    with _runs_lock:
        run = import_runs.pop(run_id, None)
    RunLockManager.discard(run_id)
    return run


def get_current_user_id(x_user_id: Optional[str] = Header(default=None)) -> str:
    """Identity is resolved upstream and forwarded in ``X-User-Id``."""
    if not x_user_id or not x_user_id.strip():
        raise HTTPException(status_code=401, detail="Missing X-User-Id header")
    return x_user_id.strip()


def get_session_factory() -> Callable[[], Session]:
    """Session factory handed to the import engine; overridden in tests."""
    return get_session_local()


def detect_file_type(filename: str) -> str:
    """
    Detect file type from filename extension.

    Raises:
        HTTPException: If the file is not a CSV
    """
    if (filename or "").lower().endswith('.csv'):
        return 'csv'
    raise HTTPException(status_code=400, detail="Unsupported file type; upload a .csv file")
