"""Domain services implementing trial balance validation rules."""
from __future__ import annotations

import logging
import time
from collections import defaultdict
from decimal import Decimal, localcontext
from typing import Sequence

from tb_checker.config import SETTINGS, Settings

from .chart import ACCOUNT_CLASSES, REQUIRED_CLASSES, account_class, is_valid_account_code, synthetic_parent
from .models import (
    MONETARY_FIELDS,
    ZERO,
    BalanceTotals,
    ProcessingContext,
    ProcessingOptions,
    TrialBalanceAccount,
)
from .results import (
    Issue,
    IssueType,
    ValidationError,
    ValidationResult,
    ValidationStatistics,
    ValidationWarning,
)

logger = logging.getLogger(__name__)

CHECK_WITH_ACCOUNTING_SOFTWARE = "Check this account in the accounting software export."


class TrialBalanceValidator:
    """Runs every business-rule check over a normalized set of accounts.

    Checks are independent: a failing check never skips the ones after it.
    Errors block acceptance, warnings never do.
    """

    def __init__(self, settings: Settings = SETTINGS) -> None:
        self._settings = settings

    def validate(
        self,
        accounts: Sequence[TrialBalanceAccount],
        options: ProcessingOptions | None = None,
        context: ProcessingContext | None = None,
        truncated_rows: int = 0,
        codes_checked: bool = False,
    ) -> ValidationResult:
        """Validate normalized accounts.

        ``codes_checked`` tells the validator that rows with a malformed code
        were already rejected during normalization, so the strict code format
        check is not run again.
        """
        options = options or ProcessingOptions()
        started = time.perf_counter()
        with localcontext(self._settings.decimal_context):
            totals = BalanceTotals.from_accounts(accounts)
            checks = self._run_checks(accounts, totals, options, context, truncated_rows, codes_checked)

        errors: list[ValidationError] = []
        warnings: list[ValidationWarning] = []
        total_checks = 0
        passed_checks = 0
        for issues in checks:
            if issues is None:
                continue
            total_checks += 1
            failed = False
            for issue in issues:
                if isinstance(issue, ValidationError):
                    errors.append(issue)
                    failed = True
                else:
                    warnings.append(issue)
                    failed = failed or issue.severity == "warning"
            if not failed:
                passed_checks += 1

        duration = (time.perf_counter() - started) * 1000
        statistics = ValidationStatistics(
            total_checks=total_checks,
            passed_checks=passed_checks,
            failed_checks=total_checks - passed_checks,
            error_count=len(errors),
            warning_count=len(warnings),
            duration=duration,
        )
        logger.info(
            f"Validation finished in {duration:.1f}ms: {passed_checks}/{total_checks} checks passed, "
            f"{len(errors)} errors, {len(warnings)} warnings"
        )
        return ValidationResult(
            is_valid=not errors,
            errors=tuple(errors),
            warnings=tuple(warnings),
            statistics=statistics,
        )

    def _run_checks(
        self,
        accounts: Sequence[TrialBalanceAccount],
        totals: BalanceTotals,
        options: ProcessingOptions,
        context: ProcessingContext | None,
        truncated_rows: int,
        codes_checked: bool,
    ) -> list[list[Issue] | None]:
        """One entry per check, in reporting order. None marks a check that does not apply."""
        currency = context.currency if context else self._settings.default_currency
        tolerance = options.balance_tolerance
        check_codes = options.strict_account_format and not codes_checked
        return [
            self._check_not_empty(accounts),
            self._check_totals(
                IssueType.OPENING_BALANCE_MISMATCH,
                "Opening balances",
                totals.opening_debit,
                totals.opening_credit,
                tolerance,
                currency,
            ),
            self._check_totals(
                IssueType.TURNOVER_MISMATCH,
                "Period turnover",
                totals.debit_turnover,
                totals.credit_turnover,
                tolerance,
                currency,
            ),
            self._check_totals(
                IssueType.CLOSING_BALANCE_MISMATCH,
                "Closing balances",
                totals.closing_debit,
                totals.closing_credit,
                tolerance,
                currency,
            ),
            self._check_duplicate_codes(accounts),
            self._check_code_format(accounts) if check_codes else None,
            self._check_turnover_consistency(accounts, tolerance, currency),
            self._check_negative_values(accounts, options.allow_negative_adjustments),
            self._check_truncation(truncated_rows, options.max_lines),
            self._check_dual_balances(accounts),
            self._check_account_classes(accounts),
            self._check_inactive(accounts),
            self._check_outliers(accounts),
            self._check_duplicate_names(accounts),
            self._check_hierarchy(accounts),
            self._check_completeness(accounts),
            self._check_fiscal_year(context),
        ]

    @staticmethod
    def _check_not_empty(accounts: Sequence[TrialBalanceAccount]) -> list[Issue]:
        if accounts:
            return []
        return [
            ValidationError(
                type=IssueType.EMPTY_BALANCE,
                message="The trial balance contains no accounts.",
            )
        ]

    @staticmethod
    def _check_totals(
        issue_type: str,
        label: str,
        debit: Decimal,
        credit: Decimal,
        tolerance: Decimal,
        currency: str,
    ) -> list[Issue]:
        difference = abs(debit - credit)
        if difference <= tolerance:
            return []
        return [
            ValidationError(
                type=issue_type,
                message=(
                    f"{label} are not balanced: debit {debit:,.2f} {currency}, "
                    f"credit {credit:,.2f} {currency}, difference {difference:,.2f} {currency}."
                ),
                details={"debit": debit, "credit": credit, "difference": difference},
            )
        ]

    @staticmethod
    def _check_duplicate_codes(accounts: Sequence[TrialBalanceAccount]) -> list[Issue]:
        lines_by_code: dict[str, list[int | None]] = defaultdict(list)
        for account in accounts:
            lines_by_code[account.account_code].append(account.line_number)
        issues: list[Issue] = []
        for code, lines in lines_by_code.items():
            if len(lines) < 2:
                continue
            known = [line for line in lines if line is not None]
            where = f" (lines {', '.join(str(line) for line in known)})" if known else ""
            issues.append(
                ValidationError(
                    type=IssueType.DUPLICATE_ACCOUNT_CODE,
                    message=f"Account {code} appears {len(lines)} times{where}.",
                    line_number=known[0] if known else None,
                    account_code=code,
                    details={"count": len(lines), "line_numbers": known},
                )
            )
        return issues

    @staticmethod
    def _check_code_format(accounts: Sequence[TrialBalanceAccount]) -> list[Issue]:
        return [
            ValidationError(
                type=IssueType.INVALID_ACCOUNT_CODE_FORMAT,
                message=f"Account code {account.account_code!r} does not match XX or XXX.XX.",
                line_number=account.line_number,
                account_code=account.account_code,
            )
            for account in accounts
            if not is_valid_account_code(account.account_code)
        ]

    @staticmethod
    def _check_turnover_consistency(
        accounts: Sequence[TrialBalanceAccount], tolerance: Decimal, currency: str
    ) -> list[Issue]:
        issues: list[Issue] = []
        for account in accounts:
            if account.is_balanced(tolerance):
                continue
            expected = account.expected_closing_balance
            actual = account.closing_balance
            issues.append(
                ValidationWarning(
                    type=IssueType.TURNOVER_INCONSISTENCY,
                    message=(
                        f"Account {account.account_code}: closing balance {actual:,.2f} {currency} "
                        f"differs from opening plus turnover {expected:,.2f} {currency}."
                    ),
                    line_number=account.line_number,
                    account_code=account.account_code,
                    suggestion=CHECK_WITH_ACCOUNTING_SOFTWARE,
                    details={"expected": expected, "actual": actual, "difference": actual - expected},
                )
            )
        return issues

    @staticmethod
    def _check_negative_values(
        accounts: Sequence[TrialBalanceAccount], allow_adjustments: bool
    ) -> list[Issue]:
        severity = "info" if allow_adjustments else "warning"
        issues: list[Issue] = []
        for account in accounts:
            negative = [
                name
                for name, value in zip(MONETARY_FIELDS, account.amounts())
                if value < ZERO
            ]
            if not negative:
                continue
            issues.append(
                ValidationWarning(
                    type=IssueType.NEGATIVE_VALUE,
                    message=f"Account {account.account_code} has negative values in: {', '.join(negative)}.",
                    line_number=account.line_number,
                    account_code=account.account_code,
                    details={"fields": negative},
                    severity=severity,
                )
            )
        return issues

    @staticmethod
    def _check_truncation(truncated_rows: int, max_lines: int | None) -> list[Issue]:
        if truncated_rows <= 0:
            return []
        return [
            ValidationWarning(
                type=IssueType.TRUNCATED_INPUT,
                message=f"Input exceeded {max_lines} lines; {truncated_rows} rows were not processed.",
                suggestion="Raise the line limit to process the whole file.",
                details={"skipped_rows": truncated_rows, "max_lines": max_lines},
            )
        ]

    @staticmethod
    def _check_dual_balances(accounts: Sequence[TrialBalanceAccount]) -> list[Issue]:
        issues: list[Issue] = []
        for account in accounts:
            for side, debit, credit in (
                ("opening", account.opening_debit, account.opening_credit),
                ("closing", account.closing_debit, account.closing_credit),
            ):
                if debit > ZERO and credit > ZERO:
                    issues.append(
                        ValidationWarning(
                            type=IssueType.DUAL_BALANCE,
                            message=(
                                f"Account {account.account_code} has both a debit ({debit:,.2f}) "
                                f"and a credit ({credit:,.2f}) {side} balance."
                            ),
                            line_number=account.line_number,
                            account_code=account.account_code,
                            suggestion=CHECK_WITH_ACCOUNTING_SOFTWARE,
                            details={"side": side},
                        )
                    )
        return issues

    @staticmethod
    def _check_account_classes(accounts: Sequence[TrialBalanceAccount]) -> list[Issue]:
        present = {account_class(account.account_code) for account in accounts}
        missing = [cls for cls in REQUIRED_CLASSES if cls not in present]
        if not missing:
            return []
        return [
            ValidationWarning(
                type=IssueType.MISSING_ACCOUNT_CLASSES,
                message=f"No accounts from classes: {'; '.join(f'{cls} ({ACCOUNT_CLASSES[cls]})' for cls in missing)}.",
                suggestion="Make sure the complete trial balance was exported.",
                details={"missing_classes": missing},
            )
        ]

    @staticmethod
    def _check_inactive(accounts: Sequence[TrialBalanceAccount]) -> list[Issue]:
        inactive = [account.account_code for account in accounts if account.is_inactive()]
        if not inactive:
            return []
        return [
            ValidationWarning(
                type=IssueType.INACTIVE_ACCOUNTS,
                message=f"{len(inactive)} accounts have no balances and no turnover.",
                suggestion="Filter inactive accounts out of the export.",
                details={"accounts": inactive},
            )
        ]

    def _check_outliers(self, accounts: Sequence[TrialBalanceAccount]) -> list[Issue]:
        values = sorted(value for account in accounts for value in account.amounts() if value > ZERO)
        if len(values) < 4:
            return []
        q1 = values[int(len(values) * 0.25)]
        q3 = values[int(len(values) * 0.75)]
        upper_bound = q3 + self._settings.outlier_iqr_multiplier * (q3 - q1)
        outliers = [
            {"account_code": account.account_code, "max_value": max(account.amounts())}
            for account in accounts
            if max(account.amounts()) > upper_bound
        ]
        if not outliers:
            return []
        return [
            ValidationWarning(
                type=IssueType.ANOMALOUS_VALUES,
                message=f"{len(outliers)} accounts carry unusually large amounts.",
                suggestion="Verify these amounts against the source ledger.",
                details={"upper_bound": upper_bound, "accounts": outliers},
            )
        ]

    @staticmethod
    def _check_duplicate_names(accounts: Sequence[TrialBalanceAccount]) -> list[Issue]:
        codes_by_name: dict[str, list[str]] = defaultdict(list)
        for account in accounts:
            name = account.account_name.strip().lower()
            if name:
                codes_by_name[name].append(account.account_code)
        duplicates = [
            {"name": name, "codes": codes}
            for name, codes in codes_by_name.items()
            if len(set(codes)) > 1
        ]
        if not duplicates:
            return []
        return [
            ValidationWarning(
                type=IssueType.DUPLICATE_ACCOUNT_NAMES,
                message=f"{len(duplicates)} account names are shared by different accounts.",
                details={"duplicates": duplicates[:5]},
            )
        ]

    @staticmethod
    def _check_hierarchy(accounts: Sequence[TrialBalanceAccount]) -> list[Issue]:
        codes = {account.account_code for account in accounts}
        orphans = [
            account.account_code
            for account in accounts
            if (parent := synthetic_parent(account.account_code)) is not None and parent not in codes
        ]
        if not orphans:
            return []
        return [
            ValidationWarning(
                type=IssueType.ACCOUNT_HIERARCHY,
                message=f"{len(orphans)} analytic accounts have no synthetic parent account.",
                suggestion="Include synthetic accounts in the export.",
                details={"accounts": orphans[:5], "count": len(orphans)},
            )
        ]

    @staticmethod
    def _check_completeness(accounts: Sequence[TrialBalanceAccount]) -> list[Issue]:
        incomplete = [
            account.account_code for account in accounts if len(account.account_name.strip()) < 3
        ]
        if not incomplete:
            return []
        return [
            ValidationWarning(
                type=IssueType.INCOMPLETE_DATA,
                message=f"{len(incomplete)} accounts have a missing or truncated name.",
                details={"accounts": incomplete},
            )
        ]

    @staticmethod
    def _check_fiscal_year(context: ProcessingContext | None) -> list[Issue] | None:
        if context is None or context.fiscal_year is None:
            return None
        if context.period_end.year == context.fiscal_year:
            return []
        return [
            ValidationWarning(
                type=IssueType.FISCAL_YEAR_MISMATCH,
                message=(
                    f"Reporting period ends in {context.period_end.year} "
                    f"but the fiscal year is {context.fiscal_year}."
                ),
                details={"fiscal_year": context.fiscal_year, "period_end": context.period_end.isoformat()},
            )
        ]
