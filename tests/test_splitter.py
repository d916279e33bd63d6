from __future__ import annotations

import pytest

from sheet_records.splitter import split_line, split_lines


def test_split_line_keeps_commas_inside_quotes() -> None:
    assert split_line('A,"B,C",D') == ["A", "B,C", "D"]


def test_split_line_preserves_embedded_empty_cell() -> None:
    assert split_line("A,,C") == ["A", "", "C"]


def test_split_line_drops_trailing_empty_cell() -> None:
    assert split_line("A,B,") == ["A", "B"]
    assert split_line("A,,") == ["A", ""]


@pytest.mark.parametrize(
    "line",
    ["a", "a,b", "a,b,c", "1,,3,,5", ",x", "name,age,color,notes"],
)
def test_cell_count_matches_comma_count_without_quotes(line: str) -> None:
    assert len(split_line(line)) == 1 + line.count(",")


def test_split_line_leading_empty_cell_is_kept() -> None:
    assert split_line(",B") == ["", "B"]


def test_split_line_empty_line_has_no_cells() -> None:
    assert split_line("") == []
    assert split_line(",") == [""]


def test_quotes_are_structural_not_literal() -> None:
    assert split_line('"Hello"') == ["Hello"]
    assert split_line('say ""hi""') == ["say hi"]


def test_unbalanced_quote_runs_to_end_of_line() -> None:
    assert split_line('a,"b,c') == ["a", "b,c"]


def test_whitespace_is_not_trimmed() -> None:
    assert split_line(" a , b ") == [" a ", " b "]


def test_split_lines_tolerates_mixed_line_endings() -> None:
    assert split_lines("h\r\na\rb\nc") == ["h", "a", "b", "c"]


def test_split_lines_trailing_newline_yields_empty_line() -> None:
    assert split_lines("h\na\n") == ["h", "a", ""]
