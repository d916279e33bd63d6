"""Spreadsheet reading — CSV text in, typed records out."""

from __future__ import annotations

import logging
from collections.abc import Iterable
from typing import Any

import requests

from sheet_records import DEFAULT_TIMEOUT
from sheet_records.binder import bind_row, is_blank, plan_columns, unknown_header_diagnostics
from sheet_records.fetch import FetchError, fetch_csv
from sheet_records.models import (
    Diagnostic,
    DiagnosticKind,
    ParseResult,
    RecordSchema,
    RowLengthError,
)
from sheet_records.splitter import split_line, split_lines

logger = logging.getLogger(__name__)


def parse_lines(
    lines: Iterable[str], schema: RecordSchema, *, strict: bool = False
) -> ParseResult:
    """Build records from already-split lines; the first line is the header row.

    Lines whose first cell is blank (or that have no cells) are skipped.
    Unknown headers are reported once, on row 0. With *strict*, a row missing
    a bound column raises :class:`RowLengthError` instead of being reported.
    """
    it = iter(lines)
    header_line = next(it, None)
    if header_line is None:
        return ParseResult()

    headers = split_line(header_line)
    plan = plan_columns(headers, schema)
    diagnostics: list[Diagnostic] = unknown_header_diagnostics(plan, schema, row=0)
    records: list[Any] = []
    rows_in = 0

    for row, line in enumerate(it, start=1):
        rows_in += 1
        cells = split_line(line)
        if not cells or is_blank(cells[0]):
            continue

        row_diagnostics: list[Diagnostic] = []
        record = bind_row(
            plan, cells, schema, schema.new_record(), row=row, diagnostics=row_diagnostics
        )
        if strict and any(d.kind is DiagnosticKind.SHORT_ROW for d in row_diagnostics):
            raise RowLengthError(row, len(cells), len(headers))
        diagnostics.extend(row_diagnostics)
        records.append(record)

    return ParseResult(
        records=records,
        diagnostics=diagnostics,
        rows_in=rows_in,
        rows_out=len(records),
        skipped_rows=rows_in - len(records),
    )


def parse(text: str, schema: RecordSchema, *, strict: bool = False) -> ParseResult:
    """Parse a whole CSV document into records of *schema*."""
    return parse_lines(split_lines(text), schema, strict=strict)


class SpreadsheetReader:
    """Reads one sheet of a published spreadsheet into ``items``.

    Every successful :meth:`read` replaces ``items`` and ``last_result``;
    a failed fetch leaves both untouched.
    """

    def __init__(
        self,
        document_url: str,
        sheet_name: str,
        schema: RecordSchema,
        *,
        session: requests.Session | None = None,
        timeout: float = DEFAULT_TIMEOUT,
        strict: bool = False,
    ) -> None:
        self.document_url = document_url
        self.sheet_name = sheet_name
        self.schema = schema
        self.session = session
        self.timeout = timeout
        self.strict = strict
        self.items: list[Any] = []
        self.last_result: ParseResult | None = None

    def read(self) -> ParseResult:
        try:
            text = fetch_csv(
                self.document_url, self.sheet_name, session=self.session, timeout=self.timeout
            )
        except FetchError as exc:
            logger.warning("%s", exc)
            raise
        return self.read_text(text)

    def read_text(self, text: str) -> ParseResult:
        result = parse(text, self.schema, strict=self.strict)
        self.items = result.records
        self.last_result = result
        return result
