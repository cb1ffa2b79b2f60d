"""Convert raw rows into canonical trial balance accounts."""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Iterable, Sequence

from tb_checker.domain.chart import is_valid_account_code
from tb_checker.domain.models import (
    MONETARY_FIELDS,
    ZERO,
    ColumnMapping,
    ProcessingOptions,
    RawTrialBalanceLine,
    TrialBalanceAccount,
)
from tb_checker.domain.results import IssueType, ValidationError, ValidationWarning
from tb_checker.infrastructure.parsing.utils import cell_to_text, fold_text, parse_decimal

logger = logging.getLogger(__name__)

# Subtotal rows exported between classes; they are not accounts.
SUMMARY_PREFIXES = ("total", "clasa", "sold total")

# Romanian prepositions and conjunctions kept lowercase inside account names.
NAME_STOP_WORDS = frozenset({"al", "ale", "cu", "de", "din", "in", "la", "pe", "pentru", "pt", "sau", "si"})

FIELD_LABELS = {
    "opening_debit": "opening debit",
    "opening_credit": "opening credit",
    "debit_turnover": "debit turnover",
    "credit_turnover": "credit turnover",
    "closing_debit": "closing debit",
    "closing_credit": "closing credit",
}


@dataclass(frozen=True)
class LineOutcome:
    """Either an account or the reasons the row was rejected. Skipped rows carry neither."""

    account: TrialBalanceAccount | None = None
    errors: tuple[ValidationError, ...] = ()
    warnings: tuple[ValidationWarning, ...] = ()
    skipped: bool = False


@dataclass(frozen=True)
class NormalizationResult:
    accounts: Sequence[TrialBalanceAccount] = field(default_factory=tuple)
    errors: Sequence[ValidationError] = field(default_factory=tuple)
    warnings: Sequence[ValidationWarning] = field(default_factory=tuple)
    processed_lines: int = 0
    skipped_lines: int = 0

    @property
    def successful_lines(self) -> int:
        return len(self.accounts)

    @property
    def failed_lines(self) -> int:
        return self.processed_lines - self.successful_lines - self.skipped_lines


def normalize_account_code(value: object) -> str:
    return "".join(cell_to_text(value).split())


def normalize_account_name(name: str) -> str:
    """Collapse whitespace and title-case words.

    Prepositions after the first word are lowercased ("Cheltuieli cu Salariile");
    other short all-caps words are acronyms such as TVA or CAS and are kept.
    """
    words = []
    for position, word in enumerate(name.split()):
        if position and fold_text(word) in NAME_STOP_WORDS:
            words.append(word.lower())
        elif len(word) <= 3 and word.isupper():
            words.append(word)
        else:
            words.append(word[:1].upper() + word[1:].lower())
    return " ".join(words)


def is_summary_row(code: str, name: str) -> bool:
    label = fold_text(code) or fold_text(name)
    return label.startswith(SUMMARY_PREFIXES)


def _parse_amounts(
    line: RawTrialBalanceLine, mapping: ColumnMapping, code: str
) -> tuple[dict[str, Decimal], list[ValidationError]]:
    amounts: dict[str, Decimal] = {}
    errors: list[ValidationError] = []
    for name in MONETARY_FIELDS:
        key = mapping.key_for(name)
        raw = line.get(key)
        try:
            amounts[name] = parse_decimal(raw)
        except ValueError:
            errors.append(
                ValidationError(
                    type=IssueType.INVALID_NUMERIC_VALUE,
                    message=f"Line {line.line_number}: {FIELD_LABELS[name]} value {cell_to_text(raw)!r} is not a number",
                    line_number=line.line_number,
                    account_code=code or None,
                    details={"field": name, "column": key, "value": cell_to_text(raw)},
                )
            )
    return amounts, errors


def normalize_line(
    line: RawTrialBalanceLine,
    mapping: ColumnMapping,
    options: ProcessingOptions | None = None,
) -> LineOutcome:
    options = options or ProcessingOptions()
    code = normalize_account_code(line.get(mapping.account_code))
    name = " ".join(cell_to_text(line.get(mapping.account_name)).split())

    if is_summary_row(code, name):
        return LineOutcome(skipped=True)

    amounts, errors = _parse_amounts(line, mapping, code)
    if errors:
        return LineOutcome(errors=tuple(errors))

    if not code:
        if all(value == ZERO for value in amounts.values()):
            return LineOutcome(skipped=True)
        return LineOutcome(
            errors=(
                ValidationError(
                    type=IssueType.MISSING_ACCOUNT_CODE,
                    message=f"Line {line.line_number}: amounts present but no account code",
                    line_number=line.line_number,
                ),
            )
        )

    warnings: tuple[ValidationWarning, ...] = ()
    if not is_valid_account_code(code):
        message = f"Line {line.line_number}: account code {code!r} does not follow the chart of accounts format"
        if options.strict_account_format:
            return LineOutcome(
                errors=(
                    ValidationError(
                        type=IssueType.INVALID_ACCOUNT_CODE_FORMAT,
                        message=message,
                        line_number=line.line_number,
                        account_code=code,
                    ),
                )
            )
        warnings = (
            ValidationWarning(
                type=IssueType.INVALID_ACCOUNT_CODE_FORMAT,
                message=message,
                line_number=line.line_number,
                account_code=code,
                suggestion="Use a 2-3 digit synthetic code, optionally followed by .NN",
            ),
        )

    if options.auto_normalize_names:
        name = normalize_account_name(name)

    account = TrialBalanceAccount(
        account_code=code,
        account_name=name,
        line_number=line.line_number,
        **amounts,
    )
    return LineOutcome(account=account, warnings=warnings)


def normalize_lines(
    lines: Iterable[RawTrialBalanceLine],
    mapping: ColumnMapping,
    options: ProcessingOptions | None = None,
) -> NormalizationResult:
    accounts: list[TrialBalanceAccount] = []
    errors: list[ValidationError] = []
    warnings: list[ValidationWarning] = []
    processed = 0
    skipped = 0
    for line in lines:
        processed += 1
        outcome = normalize_line(line, mapping, options)
        if outcome.skipped:
            skipped += 1
            continue
        if outcome.account is not None:
            accounts.append(outcome.account)
        for error in outcome.errors:
            logger.debug(f"Rejected line {line.line_number}: {error.message}")
        errors.extend(outcome.errors)
        warnings.extend(outcome.warnings)

    logger.info(
        f"Normalized {len(accounts)} of {processed} lines ({skipped} skipped, {processed - len(accounts) - skipped} rejected)"
    )
    return NormalizationResult(
        accounts=tuple(accounts),
        errors=tuple(errors),
        warnings=tuple(warnings),
        processed_lines=processed,
        skipped_lines=skipped,
    )
