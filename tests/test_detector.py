import pytest

from tb_checker.domain.errors import FormatDetectionError
from tb_checker.domain.models import BalanceFormat
from tb_checker.infrastructure.parsing.detector import (
    compose_header,
    detect_delimiter,
    detect_format,
    header_score,
    is_ordinal_row,
    token_matches,
)

from builders import BALANCED_ROWS, STANDARD_HEADER, build_csv


def test_header_score_counts_label_groups():
    assert header_score(STANDARD_HEADER) == 1.0
    assert header_score(["Cont", "Denumire"]) == 0.5
    assert header_score(["SC Exemplu SRL"]) == 0.25
    assert header_score(["Balanta de verificare"]) == 0.0


def test_detects_standard_layout_below_title_rows():
    rows = [["SC Exemplu SRL"], ["Balanta de verificare"], [], STANDARD_HEADER] + BALANCED_ROWS

    result = detect_format(rows)

    assert result.format is BalanceFormat.STANDARD
    assert result.header_row == 3
    assert result.data_start_row == 4
    assert result.column_count == 8
    assert result.confidence == 1.0


def test_detects_simplified_layout_without_turnover():
    rows = [
        ["Cont", "Denumire", "Sold debitor", "Sold creditor"],
        ["401", "Furnizori", 0, 1700],
        ["512", "Banca", 1700, 0],
    ]

    result = detect_format(rows)

    assert result.format is BalanceFormat.SIMPLIFIED
    assert result.column_count == 4


def test_detects_extended_layout_with_cumulative_columns():
    header = STANDARD_HEADER[:4] + [
        "Rulaje precedente debit",
        "Rulaje precedente credit",
        "Rulaj debitor",
        "Rulaj creditor",
        "Total sume debitoare",
        "Total sume creditoare",
        "Sold final debitor",
        "Sold final creditor",
    ]
    rows = [header, ["401", "Furnizori"] + [0] * 10]

    result = detect_format(rows)

    assert result.format is BalanceFormat.EXTENDED
    assert result.column_count == 12


def test_merged_two_row_header_is_composed():
    top = ["Cont", "Denumire", "Sold initial", None, "Rulaje perioada", None, "Sold final", None]
    bottom = [None, None, "Debit", "Credit", "Debit", "Credit", "Debit", "Credit"]
    rows = [top, bottom, ["401", "Furnizori", 0, 1500, 800, 1000, 0, 1700]]

    result = detect_format(rows)

    assert result.header_row == 1
    assert result.data_start_row == 2
    assert result.header_labels[2] == "Sold initial Debit"
    assert result.header_labels[5] == "Rulaje perioada Credit"
    assert result.format is BalanceFormat.STANDARD


def test_compose_header_carries_group_across_merged_cells():
    assert compose_header(["Sold final", None], ["Debit", "Credit"]) == ("Sold final Debit", "Sold final Credit")
    assert compose_header(["Cont"], [None]) == ("Cont",)


def test_no_header_raises():
    rows = [["Raport lunar"], ["1", "2", "3"], ["4", "5", "6"]]

    with pytest.raises(FormatDetectionError) as excinfo:
        detect_format(rows)

    assert excinfo.value.to_validation_error().type == "format-detection-failed"


def test_ragged_rows_lower_confidence():
    rows = [STANDARD_HEADER] + [list(row) for row in BALANCED_ROWS[:2]] + [["401"] + [""] * 7 + ["x", "y"]]

    result = detect_format(rows)

    assert result.confidence < 1.0


@pytest.mark.parametrize("delimiter", [";", ",", "\t", "|"])
def test_detect_delimiter(delimiter):
    lines = [delimiter.join(STANDARD_HEADER)] + [
        delimiter.join(str(cell) for cell in row) for row in BALANCED_ROWS
    ]

    chosen, consistency = detect_delimiter(lines)

    assert chosen == delimiter
    assert consistency == 1.0


def test_semicolon_wins_over_decimal_commas():
    lines = [
        "Balanta de verificare",
        ";".join(STANDARD_HEADER),
        "401;Furnizori;0,00;1.500,00;800,00;1.000,00;0,00;1.700,00",
        "512;Banca;1.500,00;0,00;1.000,00;800,00;1.700,00;0,00",
    ]

    chosen, consistency = detect_delimiter(lines)

    assert chosen == ";"
    assert consistency == 1.0


def test_semicolon_title_line_keeps_semicolon_delimiter():
    content = build_csv([STANDARD_HEADER] + BALANCED_ROWS, preamble=["Societatea;SC Exemplu SRL"])

    chosen, consistency = detect_delimiter(content.decode("utf-8").splitlines())

    assert chosen == ";"
    assert consistency == 8 / 9


def test_token_matches_accepts_abbreviations():
    assert token_matches("debit", "debitoare")
    assert token_matches("initial", "ini")
    assert token_matches("final", "fin")
    assert not token_matches("initial", "in")
    assert not token_matches("sd", "sdx")


def test_column_numbering_row_is_skipped():
    rows = [STANDARD_HEADER, list(range(1, 9))] + BALANCED_ROWS

    result = detect_format(rows)

    assert result.header_row == 0
    assert result.data_start_row == 2
    assert result.confidence == 1.0


def test_is_ordinal_row():
    assert is_ordinal_row([1, 2, 3, 4, 5, 6, 7, 8])
    assert is_ordinal_row(["A", "B", "1", "2", "3", "4", "5", "6"])
    assert is_ordinal_row(["0", "1", "2"])
    assert not is_ordinal_row(["101", "Capital", 0, 10000, 0, 0, 0, 10000])
    assert not is_ordinal_row([1, 2])
    assert not is_ordinal_row([1, 3, 4, 5])
