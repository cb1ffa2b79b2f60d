"""Command-line entrypoint for trial balance ingestion."""
from __future__ import annotations

import argparse
import logging
import sys
from datetime import date
from decimal import Decimal, InvalidOperation
from pathlib import Path

from tb_checker.application.use_cases import ProcessTrialBalanceUseCase, QuickValidateUseCase
from tb_checker.application.dto import ProcessingRequest
from tb_checker.config import SETTINGS
from tb_checker.domain.models import ProcessingContext, ProcessingOptions
from tb_checker.infrastructure.repositories.file_repositories import LocalFileRepository
from tb_checker.presentation.issue_report import render_csv, render_html, render_text_summary


def _decimal(value: str) -> Decimal:
    try:
        return Decimal(value)
    except InvalidOperation as exc:
        raise argparse.ArgumentTypeError(f"not a number: {value!r}") from exc


def parse_args(argv: list[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Import and validate a Romanian trial balance (balanta de verificare)")
    parser.add_argument("file", type=str, help="Path to the .xlsx, .xls or .csv export")
    parser.add_argument("--tolerance", type=_decimal, default=SETTINGS.default_balance_tolerance,
                        help="Allowed debit/credit difference (default: %(default)s)")
    parser.add_argument("--strict", action="store_true", help="Reject account codes outside XX / XXX.XX")
    parser.add_argument("--max-lines", type=int, help="Process at most this many rows")
    parser.add_argument("--no-normalize-names", action="store_true", help="Keep account names as exported")
    parser.add_argument("--ignore-warnings", action="store_true", help="Do not flag warnings for review")
    parser.add_argument("--allow-negative", action="store_true", help="Treat negative amounts as adjustments")
    parser.add_argument("--company", type=str, help="Company identifier")
    parser.add_argument("--period-start", type=str, help="Period start (YYYY-MM-DD)")
    parser.add_argument("--period-end", type=str, help="Period end (YYYY-MM-DD)")
    parser.add_argument("--currency", type=str, default=SETTINGS.default_currency)
    parser.add_argument("--fiscal-year", type=int, help="Expected fiscal year of the period")
    parser.add_argument("--preview", action="store_true", help="Quick check of the first rows only")
    parser.add_argument("--issues-csv", type=str, help="Write all findings to this CSV file")
    parser.add_argument("--report-html", type=str, help="Write all findings as an HTML table")
    parser.add_argument("--verbose", "-v", action="store_true")
    return parser.parse_args(argv)


def _build_context(args: argparse.Namespace) -> ProcessingContext | None:
    if not (args.company or args.period_start or args.period_end):
        return None
    if not (args.company and args.period_start and args.period_end):
        raise ValueError("--company, --period-start and --period-end must be given together")
    return ProcessingContext(
        company_id=args.company,
        period_start=date.fromisoformat(args.period_start),
        period_end=date.fromisoformat(args.period_end),
        currency=args.currency,
        fiscal_year=args.fiscal_year,
    )


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv or sys.argv[1:])
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        context = _build_context(args)
        options = ProcessingOptions(
            balance_tolerance=args.tolerance,
            ignore_warnings=args.ignore_warnings,
            strict_account_format=args.strict,
            auto_normalize_names=not args.no_normalize_names,
            max_lines=args.max_lines,
            allow_negative_adjustments=args.allow_negative,
        )
    except ValueError as exc:
        print(f"Invalid arguments: {exc}", file=sys.stderr)
        return 2

    repository = LocalFileRepository(args.file)
    try:
        if args.preview:
            with repository.open() as stream:
                content = stream.read()
            preview = QuickValidateUseCase().execute(
                ProcessingRequest(
                    content=content,
                    file_name=repository.file_name,
                    mime_type=repository.mime_type,
                    options=options,
                    context=context,
                )
            )
            result = preview.result
        else:
            result = ProcessTrialBalanceUseCase().execute_from_repository(repository, options, context)
    except OSError as exc:
        print(f"Could not read {args.file}: {exc}", file=sys.stderr)
        return 2

    print(render_text_summary(result))
    if args.preview:
        print("\nPreview:")
        for account in preview.preview_accounts:
            print(
                f"  {account.account_code:<10} {account.account_name[:40]:<40} "
                f"{account.closing_debit:>15,.2f} {account.closing_credit:>15,.2f}"
            )

    if args.issues_csv:
        Path(args.issues_csv).write_bytes(render_csv(tuple(result.iter_issues())))
    if args.report_html:
        Path(args.report_html).write_text(render_html(result), encoding="utf-8")

    return 0 if result.is_accepted else 1


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
