"""Line splitting — documents into lines, lines into raw cells."""

from __future__ import annotations

import re

_LINE_BREAK_RE = re.compile(r"\r\n|\r|\n")


def split_lines(text: str) -> list[str]:
    """Split *text* on ``\\r\\n``, ``\\r`` or ``\\n``; mixed endings are fine.

    A trailing line break yields a final empty line, which the reader skips
    like any other blank row.
    """
    return _LINE_BREAK_RE.split(text)


def split_line(line: str) -> list[str]:
    """Split one CSV line into cells, keeping commas inside quoted spans.

    Quotes only toggle the quoted state and never reach the output, so ``""``
    inside a quoted span is two toggles rather than an escaped quote.
    Unbalanced quotes are not an error. The final cell is emitted only when
    non-empty: ``"a,b,"`` gives ``["a", "b"]`` while ``"a,,b"`` keeps the
    empty middle cell.
    """
    cells: list[str] = []
    buf: list[str] = []
    inside_quotes = False

    for ch in line:
        if ch == '"':
            inside_quotes = not inside_quotes
            continue
        if ch == "," and not inside_quotes:
            cells.append("".join(buf))
            buf = []
            continue
        buf.append(ch)

    if buf:
        cells.append("".join(buf))
    return cells
