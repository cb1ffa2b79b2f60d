"""Report generators for trial balance findings."""
from __future__ import annotations

import csv
import html
import io
from typing import Sequence

from tb_checker.domain.results import Issue, ParseResult


def issues_to_rows(issues: Sequence[Issue]) -> list[dict[str, str]]:
    rows: list[dict[str, str]] = []
    for item in issues:
        rows.append(
            {
                "severity": item.severity,
                "type": item.type,
                "line": "" if item.line_number is None else str(item.line_number),
                "account_code": item.account_code or "",
                "message": item.message,
                "suggestion": getattr(item, "suggestion", None) or "",
            }
        )
    return rows


def render_csv(issues: Sequence[Issue]) -> bytes:
    rows = issues_to_rows(issues)
    buffer = io.StringIO()
    writer = csv.DictWriter(buffer, fieldnames=list(rows[0].keys()) if rows else [])
    if rows:
        writer.writeheader()
        writer.writerows(rows)
    return buffer.getvalue().encode("utf-8")


def render_html(result: ParseResult) -> str:
    rows = issues_to_rows(tuple(result.iter_issues()))
    if not rows:
        return "<p>No issues detected.</p>"
    header = "".join(f"<th>{col}</th>" for col in rows[0].keys())
    body_parts = []
    for row in rows:
        body_parts.append(
            f'<tr class="{row["severity"]}">'
            + "".join(f"<td>{html.escape(value)}</td>" for value in row.values())
            + "</tr>"
        )
    body_html = "".join(body_parts)
    return f"<table><thead><tr>{header}</tr></thead><tbody>{body_html}</tbody></table>"


def render_text_summary(result: ParseResult) -> str:
    metadata = result.metadata
    totals = result.totals
    stats = result.statistics
    lines = [
        "Trial Balance Summary",
        "=====================",
        f"File: {metadata.file_name} ({metadata.file_size} bytes)",
        f"Status: {result.status.value}",
    ]
    if metadata.detected_format is not None:
        lines.append(f"Format: {metadata.detected_format.value} (confidence {metadata.confidence:.0%})")
    lines += [
        f"Rows: {stats.total_lines} total, {stats.successful_lines} accounts, "
        f"{stats.failed_lines} rejected, {stats.skipped_lines} skipped, {stats.truncated_lines} truncated",
        f"Opening:  D {totals.opening_debit:,.2f}  C {totals.opening_credit:,.2f}",
        f"Turnover: D {totals.debit_turnover:,.2f}  C {totals.credit_turnover:,.2f}",
        f"Closing:  D {totals.closing_debit:,.2f}  C {totals.closing_credit:,.2f}",
    ]
    if result.errors:
        lines.append("")
        lines.append("Errors:")
        lines.extend(f"- [{e.type}] {e.message}" for e in result.errors)
    if result.warnings:
        lines.append("")
        lines.append("Warnings:")
        lines.extend(f"- [{w.type}] {w.message}" for w in result.warnings)
    if not result.errors and not result.warnings:
        lines.append("")
        lines.append("No issues detected.")
    return "\n".join(lines)
