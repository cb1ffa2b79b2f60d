import csv
import io

from tb_checker.application.use_cases import process_trial_balance
from tb_checker.presentation.issue_report import (
    issues_to_rows,
    render_csv,
    render_html,
    render_text_summary,
)

from builders import build_csv


def _rejected_result(balanced_rows):
    balanced_rows[1][3] = 10005
    balanced_rows.append(["<script>", "Cont", 0, 0, 0, 0, 0, 0])
    return process_trial_balance(build_csv(balanced_rows), "balanta.csv")


def test_issues_to_rows_flattens_errors_and_warnings(balanced_rows):
    result = _rejected_result(balanced_rows)

    rows = issues_to_rows(tuple(result.iter_issues()))

    assert rows[0]["severity"] == "error"
    assert rows[0]["type"] == "opening-balance-mismatch"
    assert any(row["severity"] == "warning" for row in rows)
    assert set(rows[0]) == {"severity", "type", "line", "account_code", "message", "suggestion"}


def test_render_csv_round_trips_through_reader(balanced_rows):
    result = _rejected_result(balanced_rows)

    content = render_csv(tuple(result.iter_issues()))
    parsed = list(csv.DictReader(io.StringIO(content.decode("utf-8"))))

    assert parsed[0]["type"] == "opening-balance-mismatch"
    assert len(parsed) == len(result.errors) + len(result.warnings)


def test_render_csv_empty():
    assert render_csv(()) == b""


def test_render_html_escapes_values(balanced_rows):
    result = _rejected_result(balanced_rows)

    html = render_html(result)

    assert html.startswith("<table>")
    assert "<script>" not in html
    assert "&lt;script&gt;" in html


def test_render_html_without_issues(balanced_csv):
    result = process_trial_balance(balanced_csv, "balanta.csv")

    assert render_html(result) == "<p>No issues detected.</p>"


def test_text_summary_lists_findings(balanced_rows):
    result = _rejected_result(balanced_rows)

    summary = render_text_summary(result)

    assert "Status: rejected" in summary
    assert "[opening-balance-mismatch]" in summary
    assert "Format: standard" in summary
