from __future__ import annotations

import hashlib
import logging
from collections.abc import Iterator
from datetime import datetime

import pytest

from sheet_records.utils import setup_logging, sha256_text, utcnow_iso


def test_sha256_text_hashes_utf8() -> None:
    assert sha256_text("café") == hashlib.sha256("café".encode("utf-8")).hexdigest()


def test_utcnow_iso_is_timezone_aware() -> None:
    assert datetime.fromisoformat(utcnow_iso()).tzinfo is not None


@pytest.fixture
def scratch_logger() -> Iterator[logging.Logger]:
    logger = logging.getLogger("sheet_records_scratch")
    yield logger
    logger.handlers.clear()


def test_setup_logging_quiet_sets_warning_without_handler(scratch_logger: logging.Logger) -> None:
    logger = setup_logging(False, name=scratch_logger.name)

    assert logger.level == logging.WARNING
    assert logger.handlers == []


def test_setup_logging_verbose_adds_one_handler(scratch_logger: logging.Logger) -> None:
    setup_logging(True, name=scratch_logger.name)
    logger = setup_logging(True, name=scratch_logger.name)

    assert logger.level == logging.INFO
    assert len(logger.handlers) == 1
