from __future__ import annotations

import pytest

from builders import BALANCED_ROWS, STANDARD_HEADER, build_csv, build_xlsx


@pytest.fixture
def balanced_rows() -> list[list[object]]:
    return [STANDARD_HEADER] + [list(row) for row in BALANCED_ROWS]


@pytest.fixture
def balanced_csv(balanced_rows) -> bytes:
    return build_csv(balanced_rows, preamble=["SC Exemplu SRL", "Balanta de verificare 31.12.2024", ""])


@pytest.fixture
def balanced_xlsx(balanced_rows) -> bytes:
    return build_xlsx([["SC Exemplu SRL"], ["Balanta de verificare"], []] + balanced_rows)
