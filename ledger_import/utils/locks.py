import logging
import threading
from contextlib import contextmanager
from typing import Dict

logger = logging.getLogger(__name__)


class RunLockManager:
    """
    Per-run locks for the correction endpoints.

    Candidate state transitions (edit, submit, dismiss) are not atomic, and
    FastAPI runs sync handlers on a threadpool, so two requests against the
    same import run are serialized here. Requests for different runs never
    wait on each other.
    """
    _locks: Dict[str, threading.Lock] = {}
    _global_lock = threading.Lock()

    @classmethod
    def get_lock(cls, run_id: str) -> threading.Lock:
        """Get or create the lock of a run."""
        with cls._global_lock:
            if run_id not in cls._locks:
                cls._locks[run_id] = threading.Lock()
            return cls._locks[run_id]

    @classmethod
    @contextmanager
    def acquire(cls, run_id: str):
        """Context manager to acquire and release a run lock."""
        lock = cls.get_lock(run_id)
        lock.acquire()
        logger.debug("Acquired lock for import run '%s'", run_id)
        try:
            yield
        finally:
            lock.release()
            logger.debug("Released lock for import run '%s'", run_id)

    @classmethod
    def discard(cls, run_id: str) -> None:
        """Forget the lock of a run that left the registry."""
        with cls._global_lock:
            cls._locks.pop(run_id, None)

    @classmethod
    def is_locked(cls, run_id: str) -> bool:
        with cls._global_lock:
            lock = cls._locks.get(run_id)
        return lock is not None and lock.locked()
