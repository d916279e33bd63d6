"""Record binding — header columns onto schema fields, one row at a time."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Any

from sheet_records.coerce import try_coerce
from sheet_records.models import Diagnostic, DiagnosticKind, FieldKind, FieldSpec, RecordSchema

logger = logging.getLogger(__name__)


@dataclass
class ColumnPlan:
    """Header row resolved against a schema.

    ``bound`` holds ``(column, spec)`` pairs in column order; ``unknown`` holds
    ``(column, header)`` pairs for non-blank headers with no matching field.
    Blank headers appear in neither.
    """

    header_count: int
    bound: list[tuple[int, FieldSpec]] = field(default_factory=list)
    unknown: list[tuple[int, str]] = field(default_factory=list)


def is_blank(text: str) -> bool:
    return not text.strip()


def plan_columns(headers: Sequence[str], schema: RecordSchema) -> ColumnPlan:
    plan = ColumnPlan(header_count=len(headers))
    for col, header in enumerate(headers):
        if is_blank(header):
            continue
        spec = schema.get(header)
        if spec is None:
            plan.unknown.append((col, header))
        else:
            plan.bound.append((col, spec))
    return plan


def unknown_header_diagnostics(
    plan: ColumnPlan, schema: RecordSchema, *, row: int | None = None
) -> list[Diagnostic]:
    out: list[Diagnostic] = []
    for col, header in plan.unknown:
        logger.info("Field %s not found in records of type %s", header, schema.name)
        out.append(
            Diagnostic(
                DiagnosticKind.UNKNOWN_HEADER,
                f"Field {header!r} not found in records of type {schema.name}",
                row=row,
                column=col,
                header=header,
            )
        )
    return out


def bind_row(
    plan: ColumnPlan,
    cells: Sequence[str],
    schema: RecordSchema,
    record: Any,
    *,
    row: int | None = None,
    diagnostics: list[Diagnostic] | None = None,
) -> Any:
    """Write every bound column of *cells* into *record* and return it.

    Only columns below ``min(header_count, len(cells))`` are read. Bound
    columns past the end of *cells* keep the record's defaults and are
    reported once as a ``short_row`` diagnostic; cells past the header row are
    ignored and reported as ``extra_cells``.
    """
    sink: list[Diagnostic] = diagnostics if diagnostics is not None else []
    ncells = len(cells)
    missing: list[str] = []

    for col, spec in plan.bound:
        if col >= ncells:
            missing.append(spec.name)
            continue
        raw = cells[col]
        result = try_coerce(raw, spec)
        if not result.ok and spec.kind is not FieldKind.OTHER and not is_blank(raw):
            sink.append(
                Diagnostic(
                    DiagnosticKind.COERCION_FAILED,
                    f"Cannot read {spec.name!r} as {spec.kind.value}: {result.reason}",
                    row=row,
                    column=col,
                    header=spec.name,
                    value=raw,
                )
            )
        schema.set_value(record, spec.name, result.value)

    if missing:
        sink.append(
            Diagnostic(
                DiagnosticKind.SHORT_ROW,
                f"Row has {ncells} cells but the header row has {plan.header_count}; "
                f"left at default: {', '.join(missing)}",
                row=row,
            )
        )
    if ncells > plan.header_count:
        sink.append(
            Diagnostic(
                DiagnosticKind.EXTRA_CELLS,
                f"Row has {ncells} cells but the header row has {plan.header_count}; "
                f"ignored {ncells - plan.header_count} extra cell(s)",
                row=row,
            )
        )
    return record


def bind(
    headers: Sequence[str],
    cells: Sequence[str],
    schema: RecordSchema,
    *,
    record: Any = None,
    row: int | None = None,
    diagnostics: list[Diagnostic] | None = None,
) -> Any:
    """Build one record from a header row and a data row.

    Unknown headers and cells that fail to coerce are reported into
    *diagnostics* (when given) and never raise.
    """
    if record is None:
        record = schema.new_record()
    plan = plan_columns(headers, schema)
    found = unknown_header_diagnostics(plan, schema, row=row)
    if diagnostics is not None:
        diagnostics.extend(found)
    return bind_row(plan, cells, schema, record, row=row, diagnostics=diagnostics)
