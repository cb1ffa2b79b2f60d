"""Layout detection for trial balance grids.

A trial balance export rarely starts with its header: accounting packages
prepend company name, period and title rows, and often split the header over
two rows ("Sold inițial" merged above "Debit | Credit"). The detector scans
the top of the grid, scores every candidate header and classifies the layout.
"""
from __future__ import annotations

import csv
import logging
from collections import Counter
from typing import Sequence

from tb_checker.config import SETTINGS, Settings
from tb_checker.domain.errors import FormatDetectionError
from tb_checker.domain.models import BalanceFormat, FormatDetectionResult
from tb_checker.infrastructure.parsing.utils import cell_to_text, fold_text, is_blank_cell, parse_decimal

logger = logging.getLogger(__name__)

DELIMITER_CANDIDATES = (";", ",", "|", "\t")

# Tokens announcing each of the four label groups a header must carry.
LABEL_GROUPS = {
    "account_code": ("cont", "conturi", "simbol", "cod", "account"),
    "account_name": ("denumire", "denumirea", "nume", "explicatie", "descriere", "name", "description"),
    "debit": ("debit", "debitor", "debitoare", "sd", "rd", "sid", "sfd", "dr"),
    "credit": ("credit", "creditor", "creditoare", "sc", "rc", "sic", "sfc", "cr"),
}

TURNOVER_TOKENS = ("rulaj", "rulaje", "turnover", "miscari", "rd", "rc")

# Extra analytic columns that turn a standard layout into an extended one.
EXTENDED_MARKERS = ("precedent", "precedente", "anterior", "cumulat", "cumulate", "total", "sume", "sectiune", "analitic")


def token_matches(wanted: str, token: str) -> bool:
    """Compare a wanted word with a label token.

    Words of up to 3 characters must match exactly. Longer words match a
    token that extends them ("debit" ~ "debitoare") or an abbreviation of
    at least 3 characters ("initial" ~ "ini").
    """
    if len(wanted) <= 3:
        return token == wanted
    return token.startswith(wanted) or (len(token) >= 3 and wanted.startswith(token))


def _has_any(tokens: Sequence[str], wanted: Sequence[str]) -> bool:
    return any(token_matches(w, token) for token in tokens for w in wanted)


def header_score(labels: Sequence[object]) -> float:
    """Fraction of the label groups present among the header cells."""
    tokens = [token for label in labels for token in fold_text(label).split()]
    matched = sum(1 for wanted in LABEL_GROUPS.values() if _has_any(tokens, wanted))
    return matched / len(LABEL_GROUPS)


def row_width(row: Sequence[object]) -> int:
    for index in range(len(row) - 1, -1, -1):
        if not is_blank_cell(row[index]):
            return index + 1
    return 0


def _is_numeric(value: object) -> bool:
    if is_blank_cell(value):
        return False
    try:
        parse_decimal(value)
    except ValueError:
        return False
    return True


def compose_header(top: Sequence[object], bottom: Sequence[object]) -> tuple[str, ...]:
    """Merge a group row with the sub-header below it.

    Group labels are carried right across merged (blank) cells, so
    ["Sold inițial", None] over ["Debit", "Credit"] becomes
    ["Sold inițial Debit", "Sold inițial Credit"].
    """
    width = max(len(top), len(bottom))
    labels: list[str] = []
    group = ""
    for index in range(width):
        upper = cell_to_text(top[index]) if index < len(top) else ""
        lower = cell_to_text(bottom[index]) if index < len(bottom) else ""
        if upper:
            group = upper
        if lower and group:
            labels.append(f"{group} {lower}")
        elif lower:
            labels.append(lower)
        else:
            labels.append(upper)
    return tuple(labels)


def _header_candidates(rows: Sequence[Sequence[object]], index: int) -> list[tuple[float, tuple[str, ...]]]:
    row = rows[index]
    candidates = [(header_score(row), tuple(cell_to_text(cell) for cell in row))]
    if index > 0 and rows[index - 1] and not any(_is_numeric(cell) for cell in row):
        composed = compose_header(rows[index - 1], row)
        candidates.append((header_score(composed), composed))
    return candidates


def classify_format(labels: Sequence[str], column_count: int) -> BalanceFormat:
    folded = [fold_text(label).split() for label in labels]
    has_turnover = any(_has_any(tokens, TURNOVER_TOKENS) for tokens in folded)
    if not has_turnover:
        return BalanceFormat.SIMPLIFIED
    has_extras = any(_has_any(tokens, EXTENDED_MARKERS) for tokens in folded)
    if column_count > 8 and has_extras:
        return BalanceFormat.EXTENDED
    return BalanceFormat.STANDARD


def is_ordinal_row(row: Sequence[object]) -> bool:
    """True for the "1 2 3 ... n" column numbering printed under some headers.

    Single letters ("A", "B") above the code and name columns are allowed.
    """
    numbers = []
    for cell in row:
        if is_blank_cell(cell):
            continue
        text = cell_to_text(cell)
        if len(text) == 1 and text.isalpha():
            continue
        try:
            value = parse_decimal(cell)
        except ValueError:
            return False
        if value != value.to_integral_value():
            return False
        numbers.append(int(value))
    if len(numbers) < 3 or numbers[0] not in (0, 1):
        return False
    return numbers == list(range(numbers[0], numbers[0] + len(numbers)))


def _row_consistency(rows: Sequence[Sequence[object]], start: int, header_width: int, sample: int) -> float:
    sampled = [row for row in rows[start:] if row_width(row) > 0][:sample]
    if not sampled:
        return 1.0
    consistent = sum(
        1
        for row in sampled
        if row_width(row) <= header_width and sum(not is_blank_cell(cell) for cell in row) >= 2
    )
    return consistent / len(sampled)


def detect_format(
    rows: Sequence[Sequence[object]],
    delimiter: str | None = None,
    delimiter_consistency: float = 1.0,
    settings: Settings = SETTINGS,
) -> FormatDetectionResult:
    """Find the header row and classify the layout of a cell grid.

    Raises:
        FormatDetectionError: If no scanned row reaches the minimum header score.
    """
    best_score = 0.0
    best_index = -1
    best_labels: tuple[str, ...] = ()
    for index in range(min(settings.header_scan_rows, len(rows))):
        if row_width(rows[index]) == 0:
            continue
        for score, labels in _header_candidates(rows, index):
            if score > best_score:
                best_score, best_index, best_labels = score, index, labels

    if best_index < 0 or best_score < settings.min_header_score:
        raise FormatDetectionError(
            "No trial balance header found: expected columns such as Cont, Denumire, Debit and Credit "
            f"within the first {settings.header_scan_rows} rows.",
            details={"best_score": best_score, "scanned_rows": min(settings.header_scan_rows, len(rows))},
        )

    header_width = row_width(best_labels)
    labels = best_labels[:header_width]
    data_start = best_index + 1
    if data_start < len(rows) and is_ordinal_row(rows[data_start]):
        logger.debug(f"Skipping column numbering row {data_start + 1}")
        data_start += 1
    data_width = row_width(rows[data_start]) if data_start < len(rows) else 0
    column_count = max(header_width, data_width)
    balance_format = classify_format(labels, column_count)
    consistency = _row_consistency(rows, data_start, header_width, settings.header_scan_rows)
    confidence = round(best_score * consistency * delimiter_consistency, 4)

    logger.info(
        f"Detected {balance_format.value} layout: header row {best_index + 1}, "
        f"{column_count} columns, confidence {confidence:.2f}"
    )
    return FormatDetectionResult(
        format=balance_format,
        confidence=confidence,
        header_row=best_index,
        data_start_row=data_start,
        header_labels=labels,
        column_count=column_count,
        delimiter=delimiter,
    )


def detect_delimiter(lines: Sequence[str], settings: Settings = SETTINGS) -> tuple[str, float]:
    """Pick the CSV delimiter that splits the sampled lines most consistently.

    Candidates are ranked by the share of sampled lines they split at all,
    then by the share of sampled lines agreeing on the modal field count, then
    by that field count. Decimal commas ("1.500,00") split data rows but not
    the header.

    Returns the delimiter and the share of multi-field lines agreeing on the
    modal field count; title lines without the delimiter do not lower it.
    """
    sample = [line for line in lines if line.strip()][: settings.csv_sample_lines]
    best_delimiter, best_key, best_consistency = ",", (0.0, 0.0, 0), 0.0
    for candidate in DELIMITER_CANDIDATES:
        counts = [len(fields) for fields in csv.reader(sample, delimiter=candidate) if len(fields) > 1]
        if not counts:
            continue
        fields, frequency = Counter(counts).most_common(1)[0]
        key = (len(counts) / len(sample), frequency / len(sample), fields)
        if key > best_key:
            best_delimiter, best_key, best_consistency = candidate, key, frequency / len(counts)
    logger.debug(f"Delimiter {best_delimiter!r} chosen with consistency {best_consistency:.2f}")
    return best_delimiter, best_consistency
