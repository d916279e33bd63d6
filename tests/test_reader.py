"""Tests for whole-document parsing and the stateful reader."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from unittest.mock import Mock

import pytest
import requests

from sheet_records.fetch import FetchError
from sheet_records.models import DiagnosticKind, FieldKind, RowLengthError
from sheet_records.reader import SpreadsheetReader, parse, parse_lines
from sheet_records.schema import schema_for


class Affinity(Enum):
    Fire = 0
    Water = 1
    Earth = 2


@dataclass
class Monster:
    Name: str = ""
    Level: int = 0
    Speed: float = 0.0
    Boss: bool = False
    Element: Affinity = Affinity.Fire
    Hp: int = field(default=0, metadata={"kind": FieldKind.INT16})


SHEET = (
    "Name,Level,Speed,Boss,Element,Hp,Notes\r\n"
    'Slime,1,"1,5",false,Water,30,"weak, slow"\r\n'
    ",,,,,,\r\n"
    "Dragon,50,12.25,TRUE,fire,32000,\n"
    "   ,9,9,true,Earth,1\r"
    "Golem,20,0,false,earth,99999,tough\n"
)


def test_parse_builds_typed_records_in_row_order() -> None:
    result = parse(SHEET, schema_for(Monster))

    assert [m.Name for m in result.records] == ["Slime", "Dragon", "Golem"]
    slime, dragon, golem = result.records
    assert slime == Monster("Slime", 1, 1.5, False, Affinity.Water, 30)
    assert dragon == Monster("Dragon", 50, 12.25, True, Affinity.Fire, 32000)
    assert golem.Element is Affinity.Earth
    assert golem.Hp == 0  # out of int16 range


def test_parse_skips_rows_with_blank_leading_cell() -> None:
    result = parse(SHEET, schema_for(Monster))

    assert result.rows_in == 6
    assert result.rows_out == 3
    assert result.skipped_rows == 3


def test_parse_reports_unknown_header_once() -> None:
    result = parse(SHEET, schema_for(Monster))

    unknown = [d for d in result.diagnostics if d.kind is DiagnosticKind.UNKNOWN_HEADER]
    assert len(unknown) == 1
    assert unknown[0].row == 0
    assert unknown[0].header == "Notes"


def test_parse_reports_coercion_failures_with_row_numbers() -> None:
    result = parse(SHEET, schema_for(Monster))

    failures = [d for d in result.diagnostics if d.kind is DiagnosticKind.COERCION_FAILED]
    assert [(d.row, d.header) for d in failures] == [(5, "Hp")]


def test_parse_short_row_is_reported_not_raised() -> None:
    text = "Name,Level,Boss\nSlime,1\n"

    result = parse(text, schema_for(Monster))

    assert result.records == [Monster(Name="Slime", Level=1)]
    assert [d.kind for d in result.errors] == [DiagnosticKind.SHORT_ROW]
    assert result.errors[0].row == 1


def test_parse_strict_raises_on_short_row() -> None:
    text = "Name,Level,Boss\nSlime,1,true\nBat,2\n"

    with pytest.raises(RowLengthError) as excinfo:
        parse(text, schema_for(Monster), strict=True)

    assert excinfo.value.row == 2
    assert excinfo.value.cells == 2
    assert excinfo.value.headers == 3


def test_parse_trailing_empty_cell_drop_makes_row_short() -> None:
    result = parse("Name,Level\nSlime,\n", schema_for(Monster))

    assert result.records == [Monster(Name="Slime")]
    assert result.errors[0].kind is DiagnosticKind.SHORT_ROW


def test_parse_empty_document_has_no_records() -> None:
    result = parse("", schema_for(Monster))

    assert result.records == []
    assert result.rows_in == 0


def test_parse_header_only_document() -> None:
    result = parse("Name,Level\n", schema_for(Monster))

    assert result.records == []
    assert result.rows_in == 1
    assert result.skipped_rows == 1


def test_parse_is_idempotent() -> None:
    schema = schema_for(Monster)
    assert parse(SHEET, schema).records == parse(SHEET, schema).records


def test_parse_lines_accepts_a_stream() -> None:
    lines = iter(["Name,Level", "Imp,3", "", "Orc,7"])

    result = parse_lines(lines, schema_for(Monster))

    assert [(m.Name, m.Level) for m in result.records] == [("Imp", 3), ("Orc", 7)]


def _session_returning(text: str, status: int = 200) -> Mock:
    response = Mock()
    response.status_code = status
    response.encoding = "utf-8"
    response.text = text
    session = Mock(spec=requests.Session)
    session.get.return_value = response
    return session


def test_reader_read_replaces_items() -> None:
    session = _session_returning("Name,Level\nImp,3\n")
    reader = SpreadsheetReader(
        "https://docs.google.com/spreadsheets/d/abc123/edit?gid=0",
        "Monsters",
        schema_for(Monster),
        session=session,
    )
    reader.items = [Monster(Name="stale")]

    result = reader.read()

    assert reader.items == [Monster(Name="Imp", Level=3)]
    assert reader.last_result is result
    url = session.get.call_args.args[0]
    assert "/d/abc123/" in url
    assert url.endswith("sheet=Monsters")


def test_reader_fetch_failure_keeps_previous_items(caplog: pytest.LogCaptureFixture) -> None:
    session = _session_returning("nope", status=404)
    reader = SpreadsheetReader(
        "https://docs.google.com/spreadsheets/d/abc123/edit",
        "Monsters",
        schema_for(Monster),
        session=session,
    )
    previous = [Monster(Name="kept")]
    reader.items = previous

    with caplog.at_level("WARNING", logger="sheet_records"):
        with pytest.raises(FetchError):
            reader.read()

    assert reader.items is previous
    assert reader.last_result is None
    assert "Failed to read spreadsheet" in caplog.text


def test_reader_read_text_skips_fetch() -> None:
    reader = SpreadsheetReader("unused", "unused", schema_for(Monster))

    reader.read_text("Name\nImp\n")

    assert reader.items == [Monster(Name="Imp")]
