from __future__ import annotations

import math
from enum import Enum

import pytest

from sheet_records.coerce import coerce, try_coerce
from sheet_records.models import FieldKind, FieldSpec


class Color(Enum):
    Red = 1
    Green = 2
    Blue = 3


COLOR = FieldSpec("color", FieldKind.ENUM, Color)


def test_string_is_returned_unchanged() -> None:
    assert coerce("  padded  ", str) == "  padded  "
    assert coerce("", FieldKind.STRING) == ""


def test_decimal_comma_is_accepted() -> None:
    assert coerce("3,14", float) == 3.14
    assert coerce("3.14", float) == 3.14


def test_float_grammar_is_locale_independent() -> None:
    assert coerce("-1.5e3", float) == -1500.0
    assert coerce(" .5 ", float) == 0.5
    assert coerce("7", float) == 7.0
    # Thousands separators are not part of the grammar.
    assert coerce("1,234.5", float) == 0.0
    assert coerce("1 000", float) == 0.0


def test_float_special_values() -> None:
    assert math.isnan(coerce("NaN", float))
    assert coerce("Infinity", float) == math.inf
    assert coerce("-infinity", float) == -math.inf
    assert coerce("inf", float) == 0.0


def test_float32_is_rounded_to_single_precision() -> None:
    value = coerce("0,1", FieldKind.FLOAT32)
    assert value == pytest.approx(0.1, rel=1e-6)
    assert value != 0.1


def test_float32_overflow_falls_back_to_default() -> None:
    result = try_coerce("1e39", FieldKind.FLOAT32)
    assert not result.ok
    assert result.value == 0.0
    assert coerce("1e39", FieldKind.FLOAT64) == 1e39


def test_int_failure_returns_zero() -> None:
    assert coerce("abc", int) == 0
    assert coerce("1.5", int) == 0
    assert coerce("", int) == 0


def test_int_accepts_sign_and_surrounding_whitespace() -> None:
    assert coerce("42", int) == 42
    assert coerce(" -7 ", int) == -7
    assert coerce("+3", int) == 3


def test_int_rejects_underscores_and_non_ascii_digits() -> None:
    assert coerce("1_000", int) == 0
    assert coerce("٣", int) == 0


@pytest.mark.parametrize(
    ("kind", "ok", "too_big"),
    [
        (FieldKind.INT8, "127", "128"),
        (FieldKind.UINT8, "255", "256"),
        (FieldKind.INT16, "32767", "32768"),
        (FieldKind.INT32, "2147483647", "2147483648"),
        (FieldKind.INT64, "9223372036854775807", "9223372036854775808"),
    ],
)
def test_int_widths_are_range_checked(kind: FieldKind, ok: str, too_big: str) -> None:
    assert coerce(ok, kind) == int(ok)
    result = try_coerce(too_big, kind)
    assert not result.ok
    assert result.value == 0
    assert "out of range" in result.reason


def test_uint8_rejects_negative_values() -> None:
    assert coerce("-1", FieldKind.UINT8) == 0


def test_bool_is_case_insensitive() -> None:
    assert coerce("True", bool) is True
    assert coerce("FALSE", bool) is False
    assert coerce(" true ", bool) is True


def test_bool_failure_returns_false() -> None:
    assert coerce("maybe", bool) is False
    assert coerce("1", bool) is False
    assert not try_coerce("yes", bool).ok


def test_enum_matches_member_names_case_insensitively() -> None:
    assert coerce("Blue", COLOR) is Color.Blue
    assert coerce("green", Color) is Color.Green
    assert coerce(" RED ", COLOR) is Color.Red


def test_enum_no_match_falls_back_to_first_member() -> None:
    result = try_coerce("Purple", COLOR)
    assert not result.ok
    assert result.value is Color.Red
    assert "Purple" in result.reason
    assert coerce("Purple", COLOR) is Color.Red


def test_enum_does_not_match_values() -> None:
    assert not try_coerce("2", COLOR).ok


def test_unsupported_type_returns_none() -> None:
    result = try_coerce("2024-01-01", FieldKind.OTHER)
    assert not result.ok
    assert result.value is None
    assert coerce("x", list) is None


def test_enum_kind_without_enum_type_is_rejected() -> None:
    with pytest.raises(ValueError, match="enum"):
        coerce("Red", FieldKind.ENUM)


def test_float32_overflow_reports_reason_and_keeps_infinity_literal() -> None:
    result = try_coerce("-3.5e38", FieldKind.FLOAT32)
    assert not result.ok
    assert "float32" in result.reason
    assert try_coerce("Infinity", FieldKind.FLOAT32).value == math.inf
    assert try_coerce("3.4e38", FieldKind.FLOAT32).ok
