from __future__ import annotations

import io
from typing import Sequence

from openpyxl import Workbook

# ---------------------------------------------------------------------------
# Sample data
# ---------------------------------------------------------------------------

STANDARD_HEADER = [
    "Cont",
    "Denumire",
    "Sold initial debitor",
    "Sold initial creditor",
    "Rulaj debitor",
    "Rulaj creditor",
    "Sold final debitor",
    "Sold final creditor",
]

# Opening, turnover and closing all balance; every account satisfies
# closing = opening + turnover. Classes 1-7 are all present.
BALANCED_ROWS = [
    ["101", "Capital subscris varsat", 0, 10000, 0, 0, 0, 10000],
    ["212", "Constructii", 5000, 0, 0, 0, 5000, 0],
    ["371", "Marfuri", 2000, 0, 1000, 500, 2500, 0],
    ["401", "Furnizori", 0, 1500, 800, 1000, 0, 1700],
    ["512", "Conturi curente la banci", 4500, 0, 3000, 800, 6700, 0],
    ["607", "Cheltuieli privind marfurile", 0, 0, 500, 500, 0, 0],
    ["707", "Venituri din vanzarea marfurilor", 0, 0, 0, 2500, 0, 2500],
]


def ro_amount(value: object) -> str:
    """Format a number the way Romanian exports do: 10.000,00."""
    if not isinstance(value, (int, float)):
        return str(value)
    text = f"{value:,.2f}"
    return text.replace(",", " ").replace(".", ",").replace(" ", ".")


# ---------------------------------------------------------------------------
# Byte builders
# ---------------------------------------------------------------------------


def build_csv(rows: Sequence[Sequence[object]], delimiter: str = ";", preamble: Sequence[str] = ()) -> bytes:
    lines = list(preamble)
    for row in rows:
        lines.append(delimiter.join(ro_amount(cell) if delimiter != "," else str(cell) for cell in row))
    return ("\n".join(lines) + "\n").encode("utf-8")


def build_xlsx(rows: Sequence[Sequence[object]], sheet_title: str = "Balanta") -> bytes:
    wb = Workbook()
    ws = wb.active
    ws.title = sheet_title
    for row in rows:
        ws.append(list(row))
    buffer = io.BytesIO()
    wb.save(buffer)
    return buffer.getvalue()

