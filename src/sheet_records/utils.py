"""Shared helpers — hashing, timestamps, logging setup."""

from __future__ import annotations

import hashlib
import logging
from datetime import datetime, timezone


def sha256_text(text: str) -> str:
    """Return the hex SHA-256 digest of *text* encoded as UTF-8."""
    return hashlib.sha256(text.encode("utf-8")).hexdigest()


def utcnow_iso() -> str:
    """Return the current UTC time as an ISO-8601 string."""
    return datetime.now(timezone.utc).isoformat()


def setup_logging(verbose: bool = False, name: str = "sheet_records") -> logging.Logger:
    """Set the package log level, attaching a console handler when *verbose*.

    Without *verbose* only WARNING and above get through, via whatever
    handlers the host application (or logging's last-resort handler) has.
    """
    logger = logging.getLogger(name)
    logger.setLevel(logging.INFO if verbose else logging.WARNING)

    if verbose and not logger.handlers:
        handler = logging.StreamHandler()
        handler.setLevel(logging.INFO)
        handler.setFormatter(logging.Formatter("%(asctime)s - %(levelname)s - %(message)s"))
        logger.addHandler(handler)
    return logger
