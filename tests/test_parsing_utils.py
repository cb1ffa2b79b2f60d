from decimal import Decimal
from io import BytesIO

import pytest

from tb_checker.infrastructure.parsing.utils import (
    cell_to_text,
    column_keys,
    ensure_bytes,
    fold_text,
    is_blank_cell,
    parse_decimal,
)


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("1.234,56", Decimal("1234.56")),
        ("1234,56", Decimal("1234.56")),
        ("1234.56", Decimal("1234.56")),
        ("1,234.56", Decimal("1234.56")),
        ("12.345.678", Decimal("12345678")),
        ("1 234,56", Decimal("1234.56")),
        ("(250,00)", Decimal("-250.00")),
        ("250,00-", Decimal("-250.00")),
        ("-15", Decimal("-15")),
        ("1.000,00 RON", Decimal("1000.00")),
        ("lei 42", Decimal("42")),
        ("", Decimal("0")),
        ("-", Decimal("0")),
        (None, Decimal("0")),
        (float("nan"), Decimal("0")),
        (401, Decimal("401")),
        (12.5, Decimal("12.5")),
    ],
)
def test_parse_decimal_formats(raw, expected):
    assert parse_decimal(raw) == expected


@pytest.mark.parametrize("raw", ["abc", "12a", "1,2,3.4.5", True])
def test_parse_decimal_rejects_text(raw):
    with pytest.raises(ValueError):
        parse_decimal(raw)


def test_cell_to_text_drops_integral_float_suffix():
    assert cell_to_text(401.0) == "401"
    assert cell_to_text(401.01) == "401.01"
    assert cell_to_text(None) == ""
    assert cell_to_text("  Furnizori ") == "Furnizori"


def test_fold_text_strips_diacritics_and_punctuation():
    assert fold_text("Sold inițial (D)") == "sold initial d"
    assert fold_text("Rulaje perioadă - Credit") == "rulaje perioada credit"


def test_is_blank_cell():
    assert is_blank_cell(None)
    assert is_blank_cell("   ")
    assert is_blank_cell(float("nan"))
    assert not is_blank_cell(0)


def test_column_keys_are_unique():
    assert column_keys(["Cont", None, "Debit", "Debit"]) == ("Cont", "col_1", "Debit", "Debit_3")


def test_ensure_bytes_accepts_buffers():
    assert ensure_bytes(BytesIO(b"abc")) == b"abc"
    assert ensure_bytes(bytearray(b"abc")) == b"abc"
    with pytest.raises(TypeError):
        ensure_bytes(123)
