"""Data models used across the package — schemas, diagnostics, results."""

from __future__ import annotations

from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass, field
from enum import Enum
from numbers import Integral
from typing import Any


class SheetRecordsError(Exception):
    """Base class for every error raised by sheet-records."""


class RowLengthError(SheetRecordsError, ValueError):
    """A data row has fewer cells than the header row (strict mode only)."""

    def __init__(self, row: int, cells: int, headers: int) -> None:
        super().__init__(
            f"Row {row} has {cells} cells but the header row has {headers}"
        )
        self.row = row
        self.cells = cells
        self.headers = headers


class SchemaError(SheetRecordsError, ValueError):
    """A record schema could not be built."""


class FieldKind(str, Enum):
    """Semantic type a cell is coerced into."""

    STRING = "string"
    INT8 = "int8"
    UINT8 = "uint8"
    INT16 = "int16"
    INT32 = "int32"
    INT64 = "int64"
    BOOL = "bool"
    FLOAT32 = "float32"
    FLOAT64 = "float64"
    ENUM = "enum"
    OTHER = "other"


# Inclusive bounds per integer width.
INT_RANGES: dict[FieldKind, tuple[int, int]] = {
    FieldKind.INT8: (-(2**7), 2**7 - 1),
    FieldKind.UINT8: (0, 2**8 - 1),
    FieldKind.INT16: (-(2**15), 2**15 - 1),
    FieldKind.INT32: (-(2**31), 2**31 - 1),
    FieldKind.INT64: (-(2**63), 2**63 - 1),
}

FLOAT_KINDS = frozenset({FieldKind.FLOAT32, FieldKind.FLOAT64})


def _to_non_negative_int(value: Any, field_name: str) -> int:
    if isinstance(value, bool) or not isinstance(value, Integral):
        raise TypeError(f"{field_name} must be an integer")
    result = int(value)
    if result < 0:
        raise ValueError(f"{field_name} must be >= 0")
    return result


@dataclass(frozen=True)
class FieldSpec:
    """One bindable field: its name, kind and (for enums) the enum type."""

    name: str
    kind: FieldKind
    enum_type: type[Enum] | None = None

    def __post_init__(self) -> None:
        if not isinstance(self.kind, FieldKind):
            object.__setattr__(self, "kind", FieldKind(self.kind))
        if self.kind is FieldKind.ENUM:
            if self.enum_type is None or not issubclass(self.enum_type, Enum):
                raise SchemaError(f"Field {self.name!r} is an enum but has no enum type")
            if not list(self.enum_type):
                raise SchemaError(f"Enum {self.enum_type.__name__} has no members")
        elif self.enum_type is not None:
            raise SchemaError(f"Field {self.name!r} has an enum type but kind {self.kind.value}")

    @property
    def default(self) -> Any:
        """Value a field takes when its cell is missing or fails to coerce."""
        if self.kind is FieldKind.STRING:
            return ""
        if self.kind in INT_RANGES:
            return 0
        if self.kind is FieldKind.BOOL:
            return False
        if self.kind in FLOAT_KINDS:
            return 0.0
        if self.kind is FieldKind.ENUM and self.enum_type is not None:
            return next(iter(self.enum_type))
        return None


def _set_attribute(record: Any, name: str, value: Any) -> None:
    setattr(record, name, value)


@dataclass(frozen=True)
class RecordSchema:
    """Field table for one record type.

    ``factory`` builds a default-initialised record and ``setter`` writes one
    coerced value into it. Header cells are looked up in ``fields`` by exact,
    case-sensitive name.
    """

    name: str
    fields: Mapping[str, FieldSpec]
    factory: Callable[[], Any]
    setter: Callable[[Any, str, Any], None] = _set_attribute

    def get(self, header: str) -> FieldSpec | None:
        return self.fields.get(header)

    def new_record(self) -> Any:
        return self.factory()

    def set_value(self, record: Any, name: str, value: Any) -> None:
        self.setter(record, name, value)


@dataclass(frozen=True)
class Coerced:
    """Outcome of coercing one cell: success with a value, or failure with a reason."""

    ok: bool
    value: Any
    reason: str = ""

    @classmethod
    def success(cls, value: Any) -> Coerced:
        return cls(True, value)

    @classmethod
    def failure(cls, default: Any, reason: str) -> Coerced:
        return cls(False, default, reason)


class DiagnosticKind(str, Enum):
    UNKNOWN_HEADER = "unknown_header"
    COERCION_FAILED = "coercion_failed"
    SHORT_ROW = "short_row"
    EXTRA_CELLS = "extra_cells"


_ERROR_KINDS = frozenset({DiagnosticKind.SHORT_ROW})


@dataclass(frozen=True)
class Diagnostic:
    """Advisory note about one header, row or cell. Never aborts parsing."""

    kind: DiagnosticKind
    message: str
    row: int | None = None
    column: int | None = None
    header: str | None = None
    value: str | None = None

    @property
    def severity(self) -> str:
        return "error" if self.kind in _ERROR_KINDS else "warning"

    def to_dict(self) -> dict[str, Any]:
        return {
            "kind": self.kind.value,
            "severity": self.severity,
            "message": self.message,
            "row": self.row,
            "column": self.column,
            "header": self.header,
            "value": self.value,
        }


@dataclass
class ParseResult:
    """Records produced from one document plus the diagnostics collected on the way.

    Contract invariant: ``skipped_rows == rows_in - rows_out``.
    """

    records: list[Any] = field(default_factory=list)
    diagnostics: list[Diagnostic] = field(default_factory=list)
    rows_in: int = 0
    rows_out: int = 0
    skipped_rows: int = 0

    def __post_init__(self) -> None:
        self.rows_in = _to_non_negative_int(self.rows_in, "rows_in")
        self.rows_out = _to_non_negative_int(self.rows_out, "rows_out")
        self.skipped_rows = _to_non_negative_int(self.skipped_rows, "skipped_rows")
        if self.rows_out > self.rows_in:
            raise ValueError("rows_out must be <= rows_in")
        if self.skipped_rows != self.rows_in - self.rows_out:
            raise ValueError("skipped_rows must equal rows_in - rows_out")
        if len(self.records) != self.rows_out:
            raise ValueError("rows_out must equal the number of records")

    @property
    def errors(self) -> list[Diagnostic]:
        return [d for d in self.diagnostics if d.severity == "error"]

    @property
    def warnings(self) -> list[Diagnostic]:
        return [d for d in self.diagnostics if d.severity == "warning"]

    def to_dict(self) -> dict[str, Any]:
        """Summary without the records themselves (see ``io.records_to_dicts``)."""
        return {
            "rows_in": self.rows_in,
            "rows_out": self.rows_out,
            "skipped_rows": self.skipped_rows,
            "error_count": len(self.errors),
            "warning_count": len(self.warnings),
            "diagnostics": [d.to_dict() for d in self.diagnostics],
        }


def _to_string_list(values: Sequence[Any] | None, field_name: str) -> list[str]:
    if values is None:
        return []
    if isinstance(values, str):
        raise TypeError(f"{field_name} must be a sequence of strings")
    normalized: list[str] = []
    for item in values:
        if not isinstance(item, str):
            raise TypeError(f"{field_name} items must be strings")
        normalized.append(item)
    return normalized


@dataclass
class RunManifest:
    """Audit-trail manifest for a single CLI run."""

    tool: str = "sheet-records"
    version: str = ""
    source: str = ""
    sheet: str = ""
    schema_path: str = ""
    output_dir: str = ""
    created_at_utc: str = ""
    rows_in: int = 0
    rows_out: int = 0
    sha256: str = ""
    status: str = "success"
    error_code: int | None = None
    error_message: str = ""
    artifacts: list[str] = field(default_factory=list)

    def __post_init__(self) -> None:
        self.rows_in = _to_non_negative_int(self.rows_in, "rows_in")
        self.rows_out = _to_non_negative_int(self.rows_out, "rows_out")
        if self.status not in {"success", "failed"}:
            raise ValueError("status must be 'success' or 'failed'")
        self.artifacts = _to_string_list(self.artifacts, "artifacts")

    def to_dict(self) -> dict[str, Any]:
        return {
            "tool": self.tool,
            "version": self.version,
            "source": self.source,
            "sheet": self.sheet,
            "schema_path": self.schema_path,
            "output_dir": self.output_dir,
            "created_at_utc": self.created_at_utc,
            "rows_in": self.rows_in,
            "rows_out": self.rows_out,
            "sha256": self.sha256,
            "status": self.status,
            "error_code": self.error_code,
            "error_message": self.error_message,
            "artifacts": list(self.artifacts),
        }
