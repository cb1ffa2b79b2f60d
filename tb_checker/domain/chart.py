"""Rules of the Romanian chart of accounts (OMFP 1802/2014) used during validation."""
from __future__ import annotations

import re

# Synthetic account (2-3 digits) optionally followed by a 1-2 digit analytic suffix.
ACCOUNT_CODE_PATTERN = re.compile(r"^\d{2,3}(\.\d{1,2})?$")

ACCOUNT_CLASSES = {
    1: "Conturi de capitaluri",
    2: "Conturi de imobilizări",
    3: "Conturi de stocuri și producție în curs de execuție",
    4: "Conturi de terți",
    5: "Conturi de trezorerie",
    6: "Conturi de cheltuieli",
    7: "Conturi de venituri",
    8: "Conturi speciale",
}

# A complete balance carries at least one account from each of these classes.
REQUIRED_CLASSES = (1, 2, 3, 4, 5, 6, 7)


def is_valid_account_code(code: str) -> bool:
    return bool(code) and ACCOUNT_CODE_PATTERN.match(code) is not None


def account_class(code: str) -> int | None:
    if code and code[0].isdigit():
        return int(code[0])
    return None


def synthetic_parent(code: str) -> str | None:
    """Return "401" for the analytic account "401.01", None for synthetic accounts."""
    if "." not in code:
        return None
    parent = code.split(".", 1)[0]
    return parent or None
