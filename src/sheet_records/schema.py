"""Schema builders — dataclass descriptors and dict-record schemas."""

from __future__ import annotations

import dataclasses
import json
import typing
from collections.abc import Mapping
from enum import Enum
from functools import lru_cache
from pathlib import Path
from typing import Any

from sheet_records.models import FieldKind, FieldSpec, RecordSchema, SchemaError

# Type names accepted in schema files, after lower-casing.
TYPE_ALIASES: dict[str, FieldKind] = {
    "string": FieldKind.STRING,
    "str": FieldKind.STRING,
    "sbyte": FieldKind.INT8,
    "int8": FieldKind.INT8,
    "byte": FieldKind.UINT8,
    "uint8": FieldKind.UINT8,
    "short": FieldKind.INT16,
    "int16": FieldKind.INT16,
    "int": FieldKind.INT32,
    "int32": FieldKind.INT32,
    "long": FieldKind.INT64,
    "int64": FieldKind.INT64,
    "bool": FieldKind.BOOL,
    "boolean": FieldKind.BOOL,
    "single": FieldKind.FLOAT32,
    "float32": FieldKind.FLOAT32,
    "float": FieldKind.FLOAT64,
    "double": FieldKind.FLOAT64,
    "float64": FieldKind.FLOAT64,
}

_PY_TYPES: dict[Any, FieldKind] = {
    str: FieldKind.STRING,
    bool: FieldKind.BOOL,
    int: FieldKind.INT32,
    float: FieldKind.FLOAT64,
}

KIND_METADATA_KEY = "kind"


def field_spec_for_type(name: str, tp: Any) -> FieldSpec:
    """Map a Python annotation onto a field spec; unknown types become ``OTHER``."""
    if isinstance(tp, type) and issubclass(tp, Enum):
        return FieldSpec(name, FieldKind.ENUM, tp)
    kind = _PY_TYPES.get(tp, FieldKind.OTHER)
    return FieldSpec(name, kind)


def _dataclass_field_spec(f: dataclasses.Field[Any], tp: Any) -> FieldSpec:
    override = f.metadata.get(KIND_METADATA_KEY)
    if override is None:
        return field_spec_for_type(f.name, tp)
    try:
        kind = FieldKind(override)
    except ValueError as exc:
        raise SchemaError(f"Unknown kind {override!r} for field {f.name!r}") from exc
    if kind is FieldKind.ENUM:
        return field_spec_for_type(f.name, tp)
    return FieldSpec(f.name, kind)


@lru_cache(maxsize=None)
def schema_for(cls: type) -> RecordSchema:
    """Build (once per class) the schema of a dataclass record type.

    Field kinds come from the annotations: ``str``, ``bool``, ``int``
    (``int32``), ``float`` (``float64``) and ``Enum`` subclasses. Other widths
    are chosen with ``field(metadata={"kind": FieldKind.INT16})``. Fields
    without a default are constructed with their kind default.
    """
    if not (isinstance(cls, type) and dataclasses.is_dataclass(cls)):
        raise SchemaError(f"{cls!r} is not a dataclass type")
    if cls.__dataclass_params__.frozen:  # type: ignore[attr-defined]
        raise SchemaError(f"{cls.__name__} is frozen; record fields must be assignable")

    try:
        hints = typing.get_type_hints(cls)
    except NameError as exc:
        raise SchemaError(f"Cannot resolve annotations of {cls.__name__}: {exc}") from exc
    specs: dict[str, FieldSpec] = {}
    required: dict[str, Any] = {}
    for f in dataclasses.fields(cls):
        spec = _dataclass_field_spec(f, hints.get(f.name))
        specs[f.name] = spec
        no_default = f.default is dataclasses.MISSING and f.default_factory is dataclasses.MISSING
        if f.init and no_default:
            required[f.name] = spec.default

    def factory() -> Any:
        return cls(**required)

    return RecordSchema(name=cls.__name__, fields=specs, factory=factory)


def _set_item(record: dict[str, Any], name: str, value: Any) -> None:
    record[name] = value


def _spec_from_declaration(name: str, decl: Any) -> FieldSpec:
    if isinstance(decl, FieldSpec):
        return decl
    if isinstance(decl, FieldKind):
        return FieldSpec(name, decl)
    if isinstance(decl, str):
        kind = TYPE_ALIASES.get(decl.strip().lower())
        if kind is None:
            raise SchemaError(f"Unknown type {decl!r} for field {name!r}")
        return FieldSpec(name, kind)
    if isinstance(decl, (list, tuple)):
        if not decl:
            raise SchemaError(f"Enum field {name!r} declares no members")
        if not all(isinstance(m, str) and m for m in decl):
            raise SchemaError(f"Enum field {name!r} members must be non-empty strings")
        if len(set(decl)) != len(decl):
            raise SchemaError(f"Enum field {name!r} has duplicate members")
        try:
            enum_type = Enum(name, list(decl))  # type: ignore[misc]
        except ValueError as exc:
            raise SchemaError(f"Enum field {name!r}: {exc}") from exc
        return FieldSpec(name, FieldKind.ENUM, enum_type)
    if isinstance(decl, type):
        return field_spec_for_type(name, decl)
    raise SchemaError(f"Unsupported declaration for field {name!r}: {decl!r}")


def schema_from_mapping(fields: Mapping[str, Any], name: str = "record") -> RecordSchema:
    """Build a schema whose records are plain dicts.

    Each value is a type name (see ``TYPE_ALIASES``), a :class:`FieldKind`,
    a Python type, a :class:`FieldSpec`, or a list of enum member names.
    """
    if not isinstance(fields, Mapping):
        raise SchemaError("Schema must be a mapping of field name to type")
    specs: dict[str, FieldSpec] = {}
    for field_name, decl in fields.items():
        if not isinstance(field_name, str) or not field_name.strip():
            raise SchemaError(f"Invalid field name: {field_name!r}")
        specs[field_name] = _spec_from_declaration(field_name, decl)

    def factory() -> dict[str, Any]:
        return {n: spec.default for n, spec in specs.items()}

    return RecordSchema(name=name, fields=specs, factory=factory, setter=_set_item)


def load_schema(path: Path) -> RecordSchema:
    """Load a JSON schema file (``{"Name": "string", "Color": ["Red", "Blue"]}``)."""
    path = Path(path)
    if not path.exists():
        raise SchemaError(f"Schema not found: {path}")
    if path.is_dir():
        raise SchemaError(f"Schema is a directory, not a file: {path}")
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except OSError as exc:
        raise SchemaError(f"Cannot read schema {path}: {exc}") from exc
    except json.JSONDecodeError as exc:
        raise SchemaError(f"Schema {path} is not valid JSON: {exc}") from exc
    if not isinstance(data, dict) or not data:
        raise SchemaError(f"Schema {path} must be a non-empty JSON object")
    return schema_from_mapping(data, name=path.stem)
