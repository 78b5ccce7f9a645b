"""
Logging setup for the import service.

Modules log through ``logging.getLogger(__name__)``. ``configure_logging``
installs one console handler on the root logger so upload, batch and
correction messages from every module come out in the same format.
"""
from __future__ import annotations

import logging
from logging.config import dictConfig
from typing import Dict, Optional

LOG_FORMAT = "%(asctime)s | %(levelname)-7s | %(name)s | %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# Third-party loggers that stay quieter than the package itself.
QUIET_LOGGERS: Dict[str, str] = {
    "sqlalchemy.engine": "WARNING",
    "multipart": "WARNING",
}

_is_configured = False


def configure_logging(level: Optional[str] = None) -> None:
    """
    Install the console handler once per process.

    Args:
        level: Log level name for the root and ``ledger_import`` loggers
            (defaults to "INFO").
    """
    global _is_configured

    if _is_configured:
        return

    log_level = (level or "INFO").upper()
    loggers = {name: {"level": quiet_level} for name, quiet_level in QUIET_LOGGERS.items()}
    loggers["ledger_import"] = {"level": log_level}

    dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "formatters": {"standard": {"format": LOG_FORMAT, "datefmt": DATE_FORMAT}},
            "handlers": {
                "console": {
                    "class": "logging.StreamHandler",
                    "formatter": "standard",
                    "level": log_level,
                }
            },
            "root": {"handlers": ["console"], "level": log_level},
            "loggers": loggers,
        }
    )

    logging.getLogger(__name__).debug("Logging configured at %s", log_level)
    _is_configured = True
