"""Shared parsing utilities for trial balance ingestion."""
from __future__ import annotations

from decimal import Decimal
from io import BytesIO
from pathlib import Path
import hashlib
import math
import re
import unicodedata
from typing import Sequence

ZERO = Decimal("0")

_PLAIN_INTEGER = re.compile(r"\d+")
_RO_DECIMAL = re.compile(r"\d+,\d+")
_RO_GROUPED = re.compile(r"\d{1,3}(\.\d{3})+(,\d+)?")
_PLAIN_DECIMAL = re.compile(r"\d+\.\d+")
_EN_GROUPED = re.compile(r"\d{1,3}(,\d{3})+(\.\d+)?")

_CURRENCY_MARKERS = ("RON", "LEI", "EUR", "USD", "€", "$")
_PLACEHOLDERS = {"", "-", "--", "nan", "NaN", "None"}


def ensure_bytes(source: BytesIO | Path | bytes | bytearray) -> bytes:
    if isinstance(source, bytes):
        return source
    if isinstance(source, bytearray):
        return bytes(source)
    if isinstance(source, BytesIO):
        return source.getvalue()
    if isinstance(source, Path):
        return source.read_bytes()
    raise TypeError(f"Unsupported source type: {type(source)!r}")


def compute_file_hash(data: bytes) -> str:
    return hashlib.sha256(data).hexdigest()


def is_blank_cell(value: object) -> bool:
    if value is None:
        return True
    if isinstance(value, float) and math.isnan(value):
        return True
    return isinstance(value, str) and not value.strip()


def cell_to_text(value: object) -> str:
    """Render a cell as text; integral floats lose their ".0" so 401.0 reads "401"."""
    if is_blank_cell(value):
        return ""
    if isinstance(value, bool):
        return str(value)
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value).strip()


def fold_text(value: object) -> str:
    """Lowercase, strip diacritics and punctuation: "Sold inițial (D)" -> "sold initial d"."""
    text = unicodedata.normalize("NFKD", cell_to_text(value))
    text = "".join(ch for ch in text if not unicodedata.combining(ch)).lower()
    return " ".join(re.sub(r"[^0-9a-z]+", " ", text).split())


def _normalize_separators(text: str) -> str | None:
    if _PLAIN_INTEGER.fullmatch(text):
        return text
    if _RO_DECIMAL.fullmatch(text):
        return text.replace(",", ".")
    if _RO_GROUPED.fullmatch(text):
        return text.replace(".", "").replace(",", ".")
    if _PLAIN_DECIMAL.fullmatch(text):
        return text
    if _EN_GROUPED.fullmatch(text):
        return text.replace(",", "")
    return None


def parse_decimal(value: object) -> Decimal:
    """Parse a monetary cell into a Decimal.

    Handles Romanian formatting ("1.234,56"), plain decimals ("1234.56"),
    English grouping ("1,234.56"), currency markers, parentheses and trailing
    minus for negatives. Blank cells and "-" placeholders are zero.

    Raises:
        ValueError: If the cell does not hold a number.
    """
    if value is None:
        return ZERO
    if isinstance(value, bool):
        raise ValueError(f"Could not parse amount {value!r}")
    if isinstance(value, Decimal):
        return value
    if isinstance(value, int):
        return Decimal(value)
    if isinstance(value, float):
        if math.isnan(value):
            return ZERO
        if math.isinf(value):
            raise ValueError(f"Could not parse amount {value!r}")
        return Decimal(str(value))

    text = str(value).replace("\u00a0", " ").strip()
    if text in _PLACEHOLDERS:
        return ZERO

    negative = False
    if text.startswith("(") and text.endswith(")"):
        negative = True
        text = text[1:-1].strip()
    if text.endswith("-"):
        negative = True
        text = text[:-1].strip()
    upper = text.upper()
    for marker in _CURRENCY_MARKERS:
        upper = upper.replace(marker, "")
    text = upper.replace(" ", "").replace("'", "")
    if text.startswith("-"):
        negative = True
        text = text[1:]
    elif text.startswith("+"):
        text = text[1:]

    normalized = _normalize_separators(text)
    if normalized is None:
        raise ValueError(f"Could not parse amount {value!r}")
    result = Decimal(normalized)
    return -result if negative else result


def column_keys(labels: Sequence[object]) -> tuple[str, ...]:
    """Stable, unique keys for header cells: blank labels become "col_<i>"."""
    keys: list[str] = []
    seen: set[str] = set()
    for index, label in enumerate(labels):
        key = cell_to_text(label) or f"col_{index}"
        if key in seen:
            key = f"{key}_{index}"
        seen.add(key)
        keys.append(key)
    return tuple(keys)
