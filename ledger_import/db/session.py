"""
Engine and session factory for the ledger store.

Both are created lazily on first use so importing the package never opens a
connection; tests swap in their own factory through the API dependency.
"""
import logging
import os

from sqlalchemy import create_engine, text
from sqlalchemy.engine.url import make_url
from sqlalchemy.orm import declarative_base, sessionmaker

from ledger_import.core.config import settings

logger = logging.getLogger(__name__)

Base = declarative_base()

_engine = None
_session_factory = None


def _engine_kwargs(database_url: str) -> dict:
    """SQLite connections are shared across the FastAPI threadpool."""
    if make_url(database_url).get_backend_name() == "sqlite":
        return {"connect_args": {"check_same_thread": False}}
    return {"pool_pre_ping": True}


def _log_unreachable_store(exc: Exception) -> None:
    logger.warning("Ledger store unreachable at startup: %s", exc)
    try:
        url = make_url(settings.database_url)
    except Exception as parse_error:  # pragma: no cover
        logger.warning("DATABASE_URL could not be parsed: %s", parse_error)
        return

    logger.warning(
        "Imports will fail until %s://%s:%s/%s (user=%s) accepts connections; SKIP_DB_INIT=%r",
        url.get_backend_name(),
        url.host or "localhost",
        url.port or "default",
        url.database,
        url.username,
        os.getenv("SKIP_DB_INIT"),
    )


def get_engine():
    """Return the process-wide engine, checked once with ``SELECT 1``."""
    global _engine
    if _engine is not None:
        return _engine

    engine = create_engine(settings.database_url, **_engine_kwargs(settings.database_url))
    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
    except Exception as exc:
        # The engine reconnects on demand, so keep it and let requests retry.
        _log_unreachable_store(exc)
    _engine = engine
    return _engine


def get_session_local():
    """Return the shared ``sessionmaker`` bound to the ledger engine."""
    global _session_factory
    if _session_factory is None:
        _session_factory = sessionmaker(autocommit=False, autoflush=False, bind=get_engine())
    return _session_factory


def create_tables() -> None:
    """Create every ledger table that does not exist yet."""
    from ledger_import.db import models  # noqa: F401

    Base.metadata.create_all(bind=get_engine())
    logger.info("Ledger tables created/verified")
