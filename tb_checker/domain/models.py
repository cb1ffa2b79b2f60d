"""Domain models for the trial balance ingestion pipeline.

These dataclasses capture the canonical 8-column schema of a Romanian trial
balance (balanța de verificare) together with the caller-supplied inputs that
steer processing. Everything here is immutable once built.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Iterable, Mapping

from tb_checker.config import SETTINGS

ZERO = Decimal("0")

MONETARY_FIELDS = (
    "opening_debit",
    "opening_credit",
    "debit_turnover",
    "credit_turnover",
    "closing_debit",
    "closing_credit",
)
CANONICAL_FIELDS = ("account_code", "account_name") + MONETARY_FIELDS


class BalanceFormat(str, Enum):
    """Known trial balance layouts.

    standard: the classic 8 columns.
    extended: 8 columns plus analytic extras (previous turnover, cumulative totals).
    simplified: balances only, no turnover columns.
    """

    STANDARD = "standard"
    EXTENDED = "extended"
    SIMPLIFIED = "simplified"


class FileKind(str, Enum):
    EXCEL = "excel"
    CSV = "csv"


@dataclass(frozen=True)
class TrialBalanceAccount:
    """One normalized ledger line in the reporting currency."""

    account_code: str
    account_name: str
    opening_debit: Decimal = ZERO
    opening_credit: Decimal = ZERO
    debit_turnover: Decimal = ZERO
    credit_turnover: Decimal = ZERO
    closing_debit: Decimal = ZERO
    closing_credit: Decimal = ZERO
    line_number: int | None = None

    def amounts(self) -> tuple[Decimal, ...]:
        return tuple(getattr(self, name) for name in MONETARY_FIELDS)

    @property
    def opening_balance(self) -> Decimal:
        return self.opening_debit - self.opening_credit

    @property
    def turnover(self) -> Decimal:
        return self.debit_turnover - self.credit_turnover

    @property
    def closing_balance(self) -> Decimal:
        return self.closing_debit - self.closing_credit

    @property
    def expected_closing_balance(self) -> Decimal:
        return self.opening_balance + self.turnover

    def is_balanced(self, tolerance: Decimal = ZERO) -> bool:
        """Closing balance equals opening balance plus period turnover."""
        return abs(self.closing_balance - self.expected_closing_balance) <= tolerance

    def is_inactive(self) -> bool:
        return all(value == ZERO for value in self.amounts())


@dataclass(frozen=True)
class RawTrialBalanceLine:
    """A source row before normalization, keyed by column key in file order."""

    line_number: int
    cells: Mapping[str, object] = field(default_factory=dict)

    def get(self, key: str | None) -> object:
        if key is None:
            return None
        return self.cells.get(key)


@dataclass(frozen=True)
class ColumnMapping:
    """Canonical field name -> source column key. Unmapped optional fields are None."""

    account_code: str | None = None
    account_name: str | None = None
    opening_debit: str | None = None
    opening_credit: str | None = None
    debit_turnover: str | None = None
    credit_turnover: str | None = None
    closing_debit: str | None = None
    closing_credit: str | None = None

    def key_for(self, field_name: str) -> str | None:
        return getattr(self, field_name)

    def as_dict(self) -> dict[str, str | None]:
        return {name: self.key_for(name) for name in CANONICAL_FIELDS}


@dataclass(frozen=True)
class FormatDetectionResult:
    format: BalanceFormat
    confidence: float
    header_row: int
    data_start_row: int
    header_labels: tuple[str, ...] = ()
    column_count: int = 0
    delimiter: str | None = None


@dataclass(frozen=True)
class FileMetadata:
    """Describes the processed input file; attached to every ParseResult."""

    file_name: str
    file_size: int
    mime_type: str
    processed_at: datetime
    file_kind: FileKind | None = None
    detected_format: BalanceFormat | None = None
    column_count: int = 0
    column_mapping: ColumnMapping | None = None
    sheet_name: str | None = None
    delimiter: str | None = None
    header_row: int | None = None
    confidence: float = 0.0
    file_hash: str = ""


@dataclass(frozen=True)
class BalanceTotals:
    opening_debit: Decimal = ZERO
    opening_credit: Decimal = ZERO
    debit_turnover: Decimal = ZERO
    credit_turnover: Decimal = ZERO
    closing_debit: Decimal = ZERO
    closing_credit: Decimal = ZERO

    @classmethod
    def from_accounts(cls, accounts: Iterable[TrialBalanceAccount]) -> BalanceTotals:
        sums = {name: ZERO for name in MONETARY_FIELDS}
        for account in accounts:
            for name in MONETARY_FIELDS:
                sums[name] += getattr(account, name)
        return cls(**sums)


@dataclass(frozen=True)
class ProcessingContext:
    """Company and period the balance belongs to. Already authorized by the caller."""

    company_id: str
    period_start: date
    period_end: date
    currency: str = SETTINGS.default_currency
    fiscal_year: int | None = None

    def __post_init__(self) -> None:
        if self.period_start > self.period_end:
            raise ValueError(
                f"Period start {self.period_start} is after period end {self.period_end}"
            )


@dataclass(frozen=True)
class ProcessingOptions:
    balance_tolerance: Decimal = SETTINGS.default_balance_tolerance
    ignore_warnings: bool = False
    strict_account_format: bool = False
    auto_normalize_names: bool = True
    max_lines: int | None = None
    allow_negative_adjustments: bool = False

    def __post_init__(self) -> None:
        tolerance = Decimal(str(self.balance_tolerance))
        if tolerance < ZERO:
            raise ValueError(f"Balance tolerance must not be negative: {tolerance}")
        object.__setattr__(self, "balance_tolerance", tolerance)
        if self.max_lines is not None and self.max_lines < 1:
            raise ValueError(f"max_lines must be a positive integer: {self.max_lines}")
