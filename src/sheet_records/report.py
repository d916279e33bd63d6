"""Excel report writer — produces Records.xlsx."""

from __future__ import annotations

import math
import re
from collections.abc import Iterable
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Any, cast

import pandas as pd
from openpyxl import Workbook
from openpyxl.styles import Alignment, Font, PatternFill
from openpyxl.utils import get_column_letter
from openpyxl.worksheet.table import Table, TableStyleInfo
from openpyxl.worksheet.worksheet import Worksheet

from sheet_records.io import records_to_dicts
from sheet_records.models import INT_RANGES, FieldKind, ParseResult, RecordSchema

# ── Style constants ──────────────────────────────────────────────

HEADER_FONT = Font(name="Calibri", bold=True, size=11, color="FFFFFF")
HEADER_FILL = PatternFill(start_color="2F5496", end_color="2F5496", fill_type="solid")
HEADER_ALIGN = Alignment(horizontal="center", vertical="center", wrap_text=True)

TITLE_FONT = Font(name="Calibri", bold=True, size=14, color="2F5496")
SUBTITLE_FONT = Font(name="Calibri", bold=False, size=10, color="808080")
LABEL_FONT = Font(name="Calibri", bold=True, size=11)
VALUE_FONT = Font(name="Calibri", size=11)
WARN_FONT = Font(name="Calibri", italic=True, size=10, color="CC6600")
ERROR_FONT = Font(name="Calibri", italic=True, size=10, color="C00000")

NOTE_FILL = PatternFill(start_color="FFF2CC", end_color="FFF2CC", fill_type="solid")

INT_FMT = "0"
FLOAT_FMT = "0.0###"

REPORT_NAME = "Records.xlsx"
DIAGNOSTIC_COLUMNS = ["severity", "kind", "row", "column", "header", "value", "message"]

_AUTO_WIDTH_SAMPLE_ROWS = 300
_EXCEL_FORMULA_PREFIXES = ("=", "+", "-", "@")


def _kind_format(kind: FieldKind) -> str | None:
    if kind in INT_RANGES:
        return INT_FMT
    if kind in (FieldKind.FLOAT32, FieldKind.FLOAT64):
        return FLOAT_FMT
    return None


# ── Helpers ──────────────────────────────────────────────────────


def _style_header(ws: Worksheet, ncols: int) -> None:
    for c in range(1, ncols + 1):
        cell = ws.cell(row=1, column=c)
        cell.font = HEADER_FONT
        cell.fill = HEADER_FILL
        cell.alignment = HEADER_ALIGN


def _auto_width(ws: Worksheet) -> None:
    max_row = min(ws.max_row, _AUTO_WIDTH_SAMPLE_ROWS + 1)  # include header row
    for c_idx in range(1, ws.max_column + 1):
        letter = get_column_letter(c_idx)
        width = 0
        for row in ws.iter_rows(min_row=1, max_row=max_row, min_col=c_idx, max_col=c_idx):
            cell = row[0]
            width = max(width, len(str(cell.value or "")))
        width += 4
        ws.column_dimensions[letter].width = min(width, 40)


def _apply_number_formats(ws: Worksheet, formats: dict[int, str]) -> None:
    """Apply number formats to data columns (rows 2+) by 1-based column index."""
    if ws.max_row < 2:
        return
    for c_idx, fmt in formats.items():
        for row in ws.iter_rows(min_row=2, max_row=ws.max_row, min_col=c_idx, max_col=c_idx):
            for cell in row:
                cell.number_format = fmt


def _sanitize_table_name(name: str) -> str:
    cleaned = re.sub(r"[^A-Za-z0-9_]", "_", name)
    if not cleaned:
        cleaned = "Table"
    if not re.match(r"^[A-Za-z_]", cleaned):
        cleaned = f"_{cleaned}"
    return cleaned[:255]


def _unique_table_name(ws: Worksheet, base_name: str) -> str:
    parent = ws.parent
    if parent is None:
        return base_name

    existing: set[str] = set()
    for sheet in parent.worksheets:
        existing.update(cast(Iterable[str], sheet.tables.keys()))
    if base_name not in existing:
        return base_name

    suffix = 1
    while True:
        suffix_str = f"_{suffix}"
        candidate = f"{base_name[: 255 - len(suffix_str)]}{suffix_str}"
        if candidate not in existing:
            return candidate
        suffix += 1


def _add_excel_table(ws: Worksheet, name: str, ncols: int, nrows: int) -> None:
    """Turn the data range into a proper Excel Table object."""
    if nrows < 1 or ncols < 1:
        return
    end_col = get_column_letter(ncols)
    ref = f"A1:{end_col}{nrows + 1}"  # +1 for header
    table_name = _unique_table_name(ws, _sanitize_table_name(name))
    table = Table(displayName=table_name, ref=ref)
    table.tableStyleInfo = TableStyleInfo(
        name="TableStyleMedium9", showFirstColumn=False,
        showLastColumn=False, showRowStripes=True, showColumnStripes=False,
    )
    ws.add_table(table)


def _excel_value(val: Any) -> Any:
    if isinstance(val, float) and math.isinf(val):
        return str(val)
    try:
        if pd.isna(val):
            return None
    except (TypeError, ValueError):
        return val

    if isinstance(val, str):
        if val.startswith("'"):
            return val
        stripped = val.lstrip()
        if stripped and stripped[0] in _EXCEL_FORMULA_PREFIXES:
            return f"'{val}"

    return val


def _df_to_sheet(
    wb: Workbook,
    name: str,
    df: pd.DataFrame,
    *,
    formats: dict[int, str] | None = None,
    as_table: bool = False,
) -> None:
    ws = wb.create_sheet(title=name)
    col_names = list(df.columns)

    if not col_names:
        ws.cell(row=1, column=1, value="No data").font = VALUE_FONT
        ws.column_dimensions["A"].width = 18
        return

    for c_idx, col_name in enumerate(col_names, 1):
        ws.cell(row=1, column=c_idx, value=str(col_name))
    for r_idx, row_vals in enumerate(df.itertuples(index=False, name=None), 2):
        for c_idx, val in enumerate(row_vals, 1):
            ws.cell(row=r_idx, column=c_idx, value=_excel_value(val))
    _style_header(ws, len(col_names))
    _apply_number_formats(ws, formats or {})
    ws.freeze_panes = "A2"
    if (not as_table) and (len(df) > 0):
        ws.auto_filter.ref = ws.dimensions
    _auto_width(ws)
    if as_table and len(df) > 0:
        _add_excel_table(ws, name, len(col_names), len(df))


def _write_summary(wb: Workbook, result: ParseResult, schema: RecordSchema) -> None:
    ws = wb.create_sheet(title="Summary")

    ws.cell(row=1, column=1, value=f"sheet-records — {schema.name}").font = TITLE_FONT
    ws.merge_cells("A1:D1")
    generated = datetime.now(timezone.utc).strftime("%Y-%m-%d %H:%M UTC")
    ws.cell(row=2, column=1, value=f"Generated {generated}").font = SUBTITLE_FONT
    ws.merge_cells("A2:D2")

    row = 4
    for label, value in (
        ("Rows in", result.rows_in),
        ("Records", result.rows_out),
        ("Skipped rows", result.skipped_rows),
        ("Errors", len(result.errors)),
        ("Warnings", len(result.warnings)),
    ):
        ws.cell(row=row, column=1, value=label).font = LABEL_FONT
        ws.cell(row=row, column=2, value=value).font = VALUE_FONT
        row += 1

    row += 1
    ws.cell(row=row, column=1, value="Notes").font = LABEL_FONT
    for c in range(1, 5):
        ws.cell(row=row, column=c).fill = NOTE_FILL
    ws.merge_cells(f"A{row}:D{row}")
    row += 1
    if result.diagnostics:
        for diag in result.diagnostics:
            font = ERROR_FONT if diag.severity == "error" else WARN_FONT
            ws.cell(row=row, column=1, value=f"⚠ {diag.message}").font = font
            for c in range(1, 5):
                ws.cell(row=row, column=c).fill = NOTE_FILL
            row += 1
    else:
        ws.cell(row=row, column=1, value="No diagnostics").font = VALUE_FONT
        for c in range(1, 5):
            ws.cell(row=row, column=c).fill = NOTE_FILL

    ws.column_dimensions["A"].width = 22
    ws.column_dimensions["B"].width = 14
    ws.column_dimensions["C"].width = 18
    ws.column_dimensions["D"].width = 18


# ── Public API ───────────────────────────────────────────────────


def records_frame(records: Iterable[Any], schema: RecordSchema) -> pd.DataFrame:
    """One column per schema field, one row per record; enums by member name."""
    rows = records_to_dicts(records, schema)
    df = pd.DataFrame(rows, columns=list(schema.fields))
    for name, spec in schema.fields.items():
        if spec.kind is FieldKind.ENUM:
            df[name] = df[name].map(lambda v: v.name if isinstance(v, Enum) else v)
    return df


def diagnostics_frame(result: ParseResult) -> pd.DataFrame:
    rows = [d.to_dict() for d in result.diagnostics]
    return pd.DataFrame(rows, columns=DIAGNOSTIC_COLUMNS, dtype=object)


def write_report(out_dir: Path, result: ParseResult, schema: RecordSchema) -> Path:
    """Write ``Records.xlsx`` and return the path."""
    out_dir = Path(out_dir)
    out_dir.mkdir(parents=True, exist_ok=True)
    report_path = out_dir / REPORT_NAME

    wb = Workbook()
    active_sheet = wb.active
    if active_sheet is not None:
        wb.remove(active_sheet)  # remove default sheet

    _write_summary(wb, result, schema)

    formats: dict[int, str] = {}
    for c_idx, spec in enumerate(schema.fields.values(), 1):
        fmt = _kind_format(spec.kind)
        if fmt:
            formats[c_idx] = fmt
    _df_to_sheet(wb, "Records", records_frame(result.records, schema), formats=formats, as_table=True)
    _df_to_sheet(wb, "Diagnostics", diagnostics_frame(result))

    tmp_path = out_dir / "Records.tmp.xlsx"
    wb.save(tmp_path)
    tmp_path.replace(report_path)
    return report_path
