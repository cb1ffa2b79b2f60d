"""Central configuration for the trial balance checker package."""
from __future__ import annotations

from dataclasses import dataclass
from decimal import Context, Decimal

DEFAULT_CURRENCY = "RON"

# Sheet names Romanian accounting packages commonly export the balance under.
PREFERRED_SHEET_NAMES = (
    "Balanta de verificare",
    "Balanta",
    "Trial Balance",
)

# utf-8 first, then the Windows code page most Romanian accounting software writes.
CSV_ENCODINGS = ("utf-8-sig", "cp1250", "latin-1")


@dataclass(slots=True, frozen=True)
class Settings:
    decimal_context: Context
    default_balance_tolerance: Decimal
    preview_balance_tolerance: Decimal
    header_scan_rows: int
    min_header_score: float
    min_confidence: float
    csv_sample_lines: int
    max_file_size_bytes: int
    preview_max_lines: int
    preview_accounts: int
    default_currency: str
    outlier_iqr_multiplier: Decimal
    preferred_sheet_names: tuple[str, ...]
    csv_encodings: tuple[str, ...]


SETTINGS = Settings(
    decimal_context=Context(prec=28),
    default_balance_tolerance=Decimal("0.01"),
    preview_balance_tolerance=Decimal("1"),
    header_scan_rows=20,
    min_header_score=0.5,
    min_confidence=0.7,
    csv_sample_lines=20,
    max_file_size_bytes=10 * 1024 * 1024,
    preview_max_lines=50,
    preview_accounts=10,
    default_currency=DEFAULT_CURRENCY,
    outlier_iqr_multiplier=Decimal("3"),
    preferred_sheet_names=PREFERRED_SHEET_NAMES,
    csv_encodings=CSV_ENCODINGS,
)
