"""
FastAPI application for bulk ledger imports.

Creates the app, wires CORS and mounts the ``/imports`` router. Tables are
created on startup unless ``SKIP_DB_INIT=1``.
"""
import logging
import os
from contextlib import asynccontextmanager
from datetime import datetime

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .api.routers import imports
from .core.config import settings
from .core.logging_config import configure_logging

API_TITLE = "Ledger Import API"
API_VERSION = "1.0.0"

configure_logging(settings.log_level)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Create the ledger tables before serving requests."""
    if os.getenv("SKIP_DB_INIT") == "1":
        logger.info("SKIP_DB_INIT=1 detected; not touching the database at startup")
        yield
        return

    from .db.session import create_tables

    try:
        create_tables()
    except Exception:
        logger.exception("Could not create ledger tables; refusing to start")
        raise

    logger.info(
        "Import service ready (batch size %d, transaction timeout %.0fs)",
        settings.import_batch_size,
        settings.import_transaction_timeout_seconds,
    )
    yield


app = FastAPI(
    title=API_TITLE,
    version=API_VERSION,
    description="Bulk CSV import of budget targets, transactions, debts, investments, accounts and credentials",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=[origin.strip() for origin in settings.allowed_origins.split(",") if origin.strip()],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],  # includes X-User-Id
)

app.include_router(imports.router)


@app.get("/")
async def root():
    return {"message": API_TITLE, "version": API_VERSION}


@app.get("/health")
async def health_check():
    return {
        "status": "healthy",
        "timestamp": datetime.now().isoformat(),
        "service": "ledger-import-api",
    }
