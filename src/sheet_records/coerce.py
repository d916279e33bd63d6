"""Cell coercion — raw cell text into typed values.

Numbers are parsed with a fixed, locale-independent grammar. Every failure
degrades to the kind default; :func:`try_coerce` additionally says why.
"""

from __future__ import annotations

import math
import re
import struct
from enum import Enum
from functools import lru_cache
from typing import Any

from sheet_records.models import INT_RANGES, Coerced, FieldKind, FieldSpec
from sheet_records.schema import field_spec_for_type

_INT_RE = re.compile(r"^\s*[+-]?\d+\s*$", re.ASCII)
_FLOAT_RE = re.compile(r"^\s*[+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?\s*$", re.ASCII)
_FLOAT_SPECIAL_RE = re.compile(r"^\s*([+-]?)(nan|infinity)\s*$", re.IGNORECASE)

CoerceTarget = FieldSpec | FieldKind | type


@lru_cache(maxsize=None)
def _enum_lookup(enum_type: type[Enum]) -> dict[str, Enum]:
    # First declaration wins when two names differ only by case.
    lookup: dict[str, Enum] = {}
    for name, member in enum_type.__members__.items():
        lookup.setdefault(name.lower(), member)
    return lookup


def _as_spec(target: CoerceTarget) -> FieldSpec:
    if isinstance(target, FieldSpec):
        return target
    if isinstance(target, FieldKind):
        return FieldSpec("", target)
    return field_spec_for_type("", target)


def _coerce_int(raw: str, spec: FieldSpec) -> Coerced:
    if not _INT_RE.match(raw):
        return Coerced.failure(spec.default, f"{raw!r} is not a base-10 integer")
    value = int(raw.strip())
    low, high = INT_RANGES[spec.kind]
    if not low <= value <= high:
        return Coerced.failure(
            spec.default, f"{value} is out of range for {spec.kind.value} [{low}, {high}]"
        )
    return Coerced.success(value)


def _coerce_bool(raw: str, spec: FieldSpec) -> Coerced:
    token = raw.strip().lower()
    if token == "true":
        return Coerced.success(True)
    if token == "false":
        return Coerced.success(False)
    return Coerced.failure(spec.default, f"{raw!r} is not 'true' or 'false'")


def _to_single(value: float) -> float:
    return struct.unpack("f", struct.pack("f", value))[0]


def _coerce_float(raw: str, spec: FieldSpec) -> Coerced:
    # Decimal commas from the sheet's locale become decimal points.
    token = raw.replace(",", ".")
    special = _FLOAT_SPECIAL_RE.match(token)
    if special:
        sign, word = special.groups()
        value = float(f"{sign}{word}")
    elif _FLOAT_RE.match(token):
        value = float(token.strip())
    else:
        return Coerced.failure(spec.default, f"{raw!r} is not a decimal number")

    if spec.kind is FieldKind.FLOAT32:
        try:
            single = _to_single(value)
        except OverflowError:
            single = math.inf
        if math.isinf(single) and math.isfinite(value):
            return Coerced.failure(spec.default, f"{raw!r} is out of range for float32")
        value = single
    return Coerced.success(value)


def _coerce_enum(raw: str, spec: FieldSpec) -> Coerced:
    if spec.enum_type is None:
        return Coerced.failure(spec.default, "enum field has no enum type")
    member = _enum_lookup(spec.enum_type).get(raw.strip().lower())
    if member is None:
        names = ", ".join(spec.enum_type.__members__)
        return Coerced.failure(
            spec.default, f"{raw!r} is not a member of {spec.enum_type.__name__} ({names})"
        )
    return Coerced.success(member)


def try_coerce(raw: str, target: CoerceTarget) -> Coerced:
    """Coerce *raw* into *target*, reporting success or the failure reason.

    *target* may be a :class:`FieldSpec`, a :class:`FieldKind` (except
    ``ENUM``) or a Python type such as ``int``, ``float`` or an ``Enum``
    subclass.
    """
    spec = _as_spec(target)
    kind = spec.kind

    if kind is FieldKind.STRING:
        return Coerced.success(raw)
    if kind in INT_RANGES:
        return _coerce_int(raw, spec)
    if kind is FieldKind.BOOL:
        return _coerce_bool(raw, spec)
    if kind in (FieldKind.FLOAT32, FieldKind.FLOAT64):
        return _coerce_float(raw, spec)
    if kind is FieldKind.ENUM:
        return _coerce_enum(raw, spec)
    return Coerced.failure(spec.default, "unsupported field type")


def coerce(raw: str, target: CoerceTarget) -> Any:
    """Return *raw* coerced into *target*, or the kind default if it does not parse."""
    return try_coerce(raw, target).value
