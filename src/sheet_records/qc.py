"""Parse report persistence."""

from __future__ import annotations

from pathlib import Path

from sheet_records.io import write_json
from sheet_records.models import ParseResult


def write_parse_report(out_dir: Path, result: ParseResult) -> Path:
    """Write ``parse_report.json`` into *out_dir* and return the path."""
    return write_json(Path(out_dir) / "parse_report.json", result.to_dict())
