"""Domain-level results for trial balance processing."""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Iterable, Literal, Mapping, Sequence, Union

from .models import BalanceTotals, FileMetadata, RawTrialBalanceLine, TrialBalanceAccount


class IssueType:
    """Machine-readable finding types."""

    # fatal, raised while reading or detecting the file
    UNSUPPORTED_FILE_TYPE = "unsupported-file-type"
    FILE_TOO_LARGE = "file-too-large"
    UNREADABLE_FILE = "unreadable-file"
    EMPTY_FILE = "empty-file"
    FORMAT_DETECTION_FAILED = "format-detection-failed"
    MISSING_COLUMNS = "missing-columns"
    LOW_DETECTION_CONFIDENCE = "low-detection-confidence"

    # row level
    INVALID_NUMERIC_VALUE = "invalid-numeric-value"
    INVALID_ACCOUNT_CODE_FORMAT = "invalid-account-code-format"
    MISSING_ACCOUNT_CODE = "missing-account-code"

    # batch level
    EMPTY_BALANCE = "empty-balance"
    OPENING_BALANCE_MISMATCH = "opening-balance-mismatch"
    TURNOVER_MISMATCH = "turnover-mismatch"
    CLOSING_BALANCE_MISMATCH = "closing-balance-mismatch"
    DUPLICATE_ACCOUNT_CODE = "duplicate-account-code"
    TURNOVER_INCONSISTENCY = "turnover-inconsistency"
    NEGATIVE_VALUE = "negative-value"
    TRUNCATED_INPUT = "truncated-input"
    DUAL_BALANCE = "dual-balance"
    MISSING_ACCOUNT_CLASSES = "missing-account-classes"
    INACTIVE_ACCOUNTS = "inactive-accounts"
    ANOMALOUS_VALUES = "anomalous-values"
    DUPLICATE_ACCOUNT_NAMES = "duplicate-account-names"
    ACCOUNT_HIERARCHY = "account-hierarchy"
    INCOMPLETE_DATA = "incomplete-data"
    FISCAL_YEAR_MISMATCH = "fiscal-year-mismatch"


@dataclass(frozen=True)
class ValidationError:
    """Blocking finding: the batch cannot be accepted while one exists."""

    type: str
    message: str
    line_number: int | None = None
    account_code: str | None = None
    details: Mapping[str, object] | None = None
    severity: Literal["error"] = "error"


@dataclass(frozen=True)
class ValidationWarning:
    """Advisory finding. Severity "info" marks findings permitted by convention."""

    type: str
    message: str
    line_number: int | None = None
    account_code: str | None = None
    suggestion: str | None = None
    details: Mapping[str, object] | None = None
    severity: Literal["warning", "info"] = "warning"


Issue = Union[ValidationError, ValidationWarning]


@dataclass(frozen=True)
class ValidationStatistics:
    total_checks: int
    passed_checks: int
    failed_checks: int
    error_count: int
    warning_count: int
    duration: float


@dataclass(frozen=True)
class ValidationResult:
    is_valid: bool
    errors: Sequence[ValidationError] = field(default_factory=tuple)
    warnings: Sequence[ValidationWarning] = field(default_factory=tuple)
    statistics: ValidationStatistics = field(
        default_factory=lambda: ValidationStatistics(0, 0, 0, 0, 0, 0.0)
    )


class PipelineStage(str, Enum):
    RECEIVED = "received"
    DETECTING = "detecting"
    MAPPING = "mapping"
    NORMALIZING = "normalizing"
    VALIDATING = "validating"
    ACCEPTED = "accepted"
    REJECTED = "rejected"


@dataclass(frozen=True)
class ProcessingStatistics:
    total_duration: float = 0.0
    parsing_duration: float = 0.0
    normalization_duration: float = 0.0
    validation_duration: float = 0.0
    total_lines: int = 0
    successful_lines: int = 0
    failed_lines: int = 0
    skipped_lines: int = 0
    truncated_lines: int = 0
    success_rate: float = 0.0


@dataclass(frozen=True)
class ParseResult:
    """Terminal aggregate of one pipeline run. Owned by the caller."""

    accounts: Sequence[TrialBalanceAccount]
    raw_lines: Sequence[RawTrialBalanceLine]
    total_lines: int
    totals: BalanceTotals
    errors: Sequence[ValidationError]
    warnings: Sequence[ValidationWarning]
    metadata: FileMetadata
    status: PipelineStage
    validation: ValidationResult | None = None
    statistics: ProcessingStatistics = field(default_factory=ProcessingStatistics)
    needs_review: bool = False

    @property
    def is_accepted(self) -> bool:
        return self.status is PipelineStage.ACCEPTED

    def iter_issues(self) -> Iterable[Issue]:
        yield from self.errors
        yield from self.warnings
