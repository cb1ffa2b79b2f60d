"""Turn uploaded bytes into a grid of cells, whatever the container format."""
from __future__ import annotations

import csv
import io
import logging
import zipfile
from dataclasses import dataclass
from pathlib import PurePath
from typing import Sequence

import pandas as pd
from openpyxl.utils.exceptions import InvalidFileException
from xlrd import XLRDError

from tb_checker.config import SETTINGS, Settings
from tb_checker.domain.errors import (
    FileTooLargeError,
    UnreadableFileError,
    UnsupportedFileError,
)
from tb_checker.domain.models import FileKind, RawTrialBalanceLine
from tb_checker.infrastructure.parsing.detector import detect_delimiter
from tb_checker.infrastructure.parsing.utils import column_keys, fold_text, is_blank_cell

logger = logging.getLogger(__name__)

MIME_TYPES = {
    ".xlsx": "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
    ".xls": "application/vnd.ms-excel",
    ".csv": "text/csv",
}

EXCEL_EXTENSIONS = (".xlsx", ".xlsm", ".xls")
CSV_EXTENSIONS = (".csv", ".txt")


@dataclass(frozen=True)
class CellGrid:
    """Every row of the source, blanks included, so row indexes match the file."""

    rows: Sequence[Sequence[object]]
    file_kind: FileKind
    sheet_name: str | None = None
    delimiter: str | None = None
    delimiter_consistency: float = 1.0


def guess_mime_type(file_name: str) -> str:
    return MIME_TYPES.get(PurePath(file_name).suffix.lower(), "application/octet-stream")


def detect_file_kind(file_name: str, mime_type: str | None = None) -> FileKind:
    """Decide between Excel and CSV from the extension, falling back to the MIME type.

    The extension wins because browsers on Windows report CSV uploads as
    application/vnd.ms-excel.
    """
    suffix = PurePath(file_name).suffix.lower()
    if suffix in EXCEL_EXTENSIONS:
        return FileKind.EXCEL
    if suffix in CSV_EXTENSIONS:
        return FileKind.CSV
    mime = (mime_type or "").lower()
    if "spreadsheet" in mime or "excel" in mime:
        return FileKind.EXCEL
    if "csv" in mime or mime == "text/plain":
        return FileKind.CSV
    raise UnsupportedFileError(
        f"Unsupported file type for {file_name!r}: expected .xlsx, .xls or .csv",
        details={"file_name": file_name, "mime_type": mime_type or ""},
    )


def check_file_size(data: bytes, settings: Settings = SETTINGS) -> None:
    if len(data) > settings.max_file_size_bytes:
        limit_mb = settings.max_file_size_bytes / (1024 * 1024)
        raise FileTooLargeError(
            f"File is {len(data)} bytes, above the {limit_mb:g} MB limit",
            details={"file_size": len(data), "max_file_size": settings.max_file_size_bytes},
        )


def _pick_sheet(sheets: Sequence[str], preferred: Sequence[str]) -> str:
    if not sheets:
        raise UnreadableFileError("Workbook has no sheets")
    folded = {fold_text(name): name for name in sheets}
    for wanted in preferred:
        if fold_text(wanted) in folded:
            return folded[fold_text(wanted)]
    for wanted in preferred:
        for name in sheets:
            if fold_text(wanted) in fold_text(name):
                return name
    return sheets[0]


def _excel_engine(file_name: str) -> str:
    return "xlrd" if PurePath(file_name).suffix.lower() == ".xls" else "openpyxl"


def read_excel_grid(data: bytes, file_name: str, settings: Settings = SETTINGS) -> CellGrid:
    """Read the balance sheet of a workbook as raw cells (no header inference)."""
    try:
        xls = pd.ExcelFile(io.BytesIO(data), engine=_excel_engine(file_name))
        sheet_name = _pick_sheet(xls.sheet_names, settings.preferred_sheet_names)
        frame = pd.read_excel(xls, sheet_name=sheet_name, header=None, dtype=object, keep_default_na=False)
    except (ValueError, KeyError, zipfile.BadZipFile, XLRDError, InvalidFileException) as exc:
        raise UnreadableFileError(
            f"Could not read {file_name!r} as an Excel workbook: {exc}",
            details={"file_name": file_name},
        ) from exc

    rows = [
        [None if is_blank_cell(value) else value for value in row]
        for row in frame.itertuples(index=False, name=None)
    ]
    logger.debug(f"Read sheet {sheet_name!r} from {file_name}: {len(rows)} rows")
    return CellGrid(rows=rows, file_kind=FileKind.EXCEL, sheet_name=sheet_name)


def decode_text(data: bytes, encodings: Sequence[str] = SETTINGS.csv_encodings) -> str:
    for encoding in encodings:
        try:
            return data.decode(encoding)
        except UnicodeDecodeError:
            continue
    raise UnreadableFileError(
        f"Could not decode file with any of: {', '.join(encodings)}",
        details={"encodings": list(encodings)},
    )


def read_csv_grid(data: bytes, settings: Settings = SETTINGS, delimiter: str | None = None) -> CellGrid:
    """Decode and split a delimited text export.

    The csv module is used instead of pandas.read_csv because title rows above
    the header carry fewer fields than the data rows.
    """
    text = decode_text(data, settings.csv_encodings)
    lines = text.splitlines()
    consistency = 1.0
    if delimiter is None:
        delimiter, consistency = detect_delimiter(lines, settings)
    try:
        rows = [
            [None if is_blank_cell(value) else value.strip() for value in fields]
            for fields in csv.reader(lines, delimiter=delimiter)
        ]
    except csv.Error as exc:
        raise UnreadableFileError(f"Malformed CSV content: {exc}") from exc
    return CellGrid(
        rows=rows,
        file_kind=FileKind.CSV,
        delimiter=delimiter,
        delimiter_consistency=consistency,
    )


def read_grid(data: bytes, file_name: str, file_kind: FileKind, settings: Settings = SETTINGS) -> CellGrid:
    if file_kind is FileKind.EXCEL:
        return read_excel_grid(data, file_name, settings)
    return read_csv_grid(data, settings)


def grid_to_raw_lines(
    rows: Sequence[Sequence[object]],
    header_labels: Sequence[object],
    data_start_row: int,
) -> list[RawTrialBalanceLine]:
    """Key every non-blank data row by its header label; line numbers are 1-based file rows."""
    keys = list(column_keys(header_labels))
    lines: list[RawTrialBalanceLine] = []
    for index in range(data_start_row, len(rows)):
        row = rows[index]
        if all(is_blank_cell(value) for value in row):
            continue
        while len(keys) < len(row):
            keys.append(f"col_{len(keys)}")
        cells = {keys[position]: value for position, value in enumerate(row)}
        lines.append(RawTrialBalanceLine(line_number=index + 1, cells=cells))
    return lines
