import pytest

from tb_checker.domain.errors import MissingColumnError
from tb_checker.domain.models import BalanceFormat
from tb_checker.infrastructure.parsing.mapper import map_columns

from builders import STANDARD_HEADER


def test_maps_romanian_standard_header():
    mapping = map_columns(BalanceFormat.STANDARD, STANDARD_HEADER)

    assert mapping.as_dict() == {
        "account_code": "Cont",
        "account_name": "Denumire",
        "opening_debit": "Sold initial debitor",
        "opening_credit": "Sold initial creditor",
        "debit_turnover": "Rulaj debitor",
        "credit_turnover": "Rulaj creditor",
        "closing_debit": "Sold final debitor",
        "closing_credit": "Sold final creditor",
    }


def test_maps_diacritics_and_column_order():
    header = [
        "Simbol cont",
        "Denumirea contului",
        "Sold final creditor",
        "Sold final debitor",
        "Rulaje perioadă credit",
        "Rulaje perioadă debit",
        "Sold inițial C",
        "Sold inițial D",
    ]

    mapping = map_columns(BalanceFormat.STANDARD, header)

    assert mapping.account_code == "Simbol cont"
    assert mapping.account_name == "Denumirea contului"
    assert mapping.closing_credit == "Sold final creditor"
    assert mapping.debit_turnover == "Rulaje perioadă debit"
    assert mapping.opening_debit == "Sold inițial D"


def test_maps_english_header():
    header = [
        "Account",
        "Account name",
        "Opening debit",
        "Opening credit",
        "Debit turnover",
        "Credit turnover",
        "Closing debit",
        "Closing credit",
    ]

    mapping = map_columns(BalanceFormat.STANDARD, header)

    assert mapping.account_code == "Account"
    assert mapping.account_name == "Account name"
    assert mapping.credit_turnover == "Credit turnover"
    assert mapping.closing_debit == "Closing debit"


def test_extended_layout_ignores_cumulative_columns():
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

    mapping = map_columns(BalanceFormat.EXTENDED, header)

    assert mapping.debit_turnover == "Rulaj debitor"
    assert mapping.credit_turnover == "Rulaj creditor"
    assert mapping.closing_debit == "Sold final debitor"


def test_simplified_layout_needs_only_closing_balances():
    mapping = map_columns(BalanceFormat.SIMPLIFIED, ["Cont", "Denumire", "Debit", "Credit"])

    assert mapping.closing_debit == "Debit"
    assert mapping.closing_credit == "Credit"
    assert mapping.opening_debit is None
    assert mapping.debit_turnover is None


def test_blank_header_cells_get_positional_keys():
    mapping = map_columns(BalanceFormat.SIMPLIFIED, ["Cont", None, "Denumire", "Sold debitor", "Sold creditor"])

    assert mapping.account_name == "Denumire"
    assert mapping.closing_debit == "Sold debitor"


def test_missing_required_columns_raise():
    header = ["Cont", "Denumire", "Sold initial debitor", "Sold initial creditor", "Rulaj debitor", "Rulaj creditor"]

    with pytest.raises(MissingColumnError) as excinfo:
        map_columns(BalanceFormat.STANDARD, header)

    assert excinfo.value.missing == ("closing_debit", "closing_credit")
    assert excinfo.value.to_validation_error().type == "missing-columns"


def test_maps_abbreviated_balance_labels():
    header = [
        "Cont",
        "Denumire",
        "Sold ini. debitor",
        "Sold ini. creditor",
        "Rulaj debitor",
        "Rulaj creditor",
        "Sold fin. debitor",
        "Sold fin. creditor",
    ]

    mapping = map_columns(BalanceFormat.STANDARD, header)

    assert mapping.opening_debit == "Sold ini. debitor"
    assert mapping.opening_credit == "Sold ini. creditor"
    assert mapping.closing_debit == "Sold fin. debitor"
    assert mapping.closing_credit == "Sold fin. creditor"


def test_maps_si_sf_column_codes():
    header = ["Cont", "Denumire", "SI D", "SI C", "RD", "RC", "SF D", "SF C"]

    mapping = map_columns(BalanceFormat.STANDARD, header)

    assert mapping.as_dict() == {
        "account_code": "Cont",
        "account_name": "Denumire",
        "opening_debit": "SI D",
        "opening_credit": "SI C",
        "debit_turnover": "RD",
        "credit_turnover": "RC",
        "closing_debit": "SF D",
        "closing_credit": "SF C",
    }
