"""Bind header columns to the canonical trial balance fields."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from itertools import product
from typing import Mapping, Sequence

from tb_checker.domain.errors import MissingColumnError
from tb_checker.domain.models import CANONICAL_FIELDS, BalanceFormat, ColumnMapping
from tb_checker.infrastructure.parsing.detector import token_matches
from tb_checker.infrastructure.parsing.utils import column_keys, fold_text

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FieldSynonyms:
    """Phrases naming a field; a label containing any excluded token never matches."""

    phrases: tuple[str, ...]
    exclude: frozenset[str] = frozenset()


_DEBIT = ("debit", "debitor", "d", "dr")
_CREDIT = ("credit", "creditor", "c", "cr")
_OPENING = ("sold initial", "solduri initiale", "sold inceput", "sold la inceputul", "opening", "opening balance")
_TURNOVER = ("rulaj", "rulaje", "rulaj curent", "rulaje curente", "rulaj perioada", "rulaje perioada", "turnover", "miscari")
_CLOSING = ("sold final", "solduri finale", "sold sfarsit", "sold la sfarsitul", "closing", "closing balance", "sold")
# Column abbreviations: "SI D" (sold inițial debitor), "SF C" (sold final creditor).
_OPENING_SHORT = ("si",)
_CLOSING_SHORT = ("sf",)

_OPENING_EXCLUDE = frozenset({"final", "finale", "sfarsit", "rulaj", "rulaje", "total", "sume"})
_TURNOVER_EXCLUDE = frozenset(
    {"sold", "solduri", "initial", "final", "precedent", "anterior", "cumulat", "total", "sume"}
)
_CLOSING_EXCLUDE = frozenset(
    {"initial", "initiale", "inceput", "inceputul", "opening", "rulaj", "rulaje", "turnover",
     "precedent", "anterior", "total", "sume"}
)


def _sided(groups: Sequence[str], sides: Sequence[str], extra: Sequence[str] = ()) -> tuple[str, ...]:
    return tuple(f"{group} {side}" for group, side in product(groups, sides)) + tuple(extra)


SYNONYMS: Mapping[str, FieldSynonyms] = {
    "account_code": FieldSynonyms(
        phrases=("cont", "conturi", "simbol", "simbol cont", "cod", "cod cont", "nr cont",
                 "numar cont", "cont contabil", "account", "account code", "account number"),
        exclude=frozenset({"denumire", "denumirea", "nume", "explicatie", "descriere", "name",
                           "sold", "rulaj", "debit", "credit", "total"}),
    ),
    "account_name": FieldSynonyms(
        phrases=("denumire", "denumirea", "denumire cont", "denumirea contului", "nume", "nume cont",
                 "explicatie", "explicatii", "descriere", "account name", "name", "description"),
        exclude=frozenset({"sold", "rulaj", "debit", "credit"}),
    ),
    "opening_debit": FieldSynonyms(
        phrases=_sided(_OPENING + _OPENING_SHORT, _DEBIT, ("sid", "sdi", "sd initial")),
        exclude=_OPENING_EXCLUDE,
    ),
    "opening_credit": FieldSynonyms(
        phrases=_sided(_OPENING + _OPENING_SHORT, _CREDIT, ("sic", "sci", "sc initial")),
        exclude=_OPENING_EXCLUDE,
    ),
    "debit_turnover": FieldSynonyms(
        phrases=_sided(_TURNOVER, _DEBIT, ("rd",)),
        exclude=_TURNOVER_EXCLUDE,
    ),
    "credit_turnover": FieldSynonyms(
        phrases=_sided(_TURNOVER, _CREDIT, ("rc",)),
        exclude=_TURNOVER_EXCLUDE,
    ),
    # bare "debit"/"credit" only ever wins in simplified layouts, where nothing else claims them
    "closing_debit": FieldSynonyms(
        phrases=_sided(_CLOSING + _CLOSING_SHORT, _DEBIT, ("sfd", "sdf", "sd final", "debit", "debitor")),
        exclude=_CLOSING_EXCLUDE,
    ),
    "closing_credit": FieldSynonyms(
        phrases=_sided(_CLOSING + _CLOSING_SHORT, _CREDIT, ("sfc", "scf", "sc final", "credit", "creditor")),
        exclude=_CLOSING_EXCLUDE,
    ),
}

REQUIRED_FIELDS: Mapping[BalanceFormat, tuple[str, ...]] = {
    BalanceFormat.STANDARD: CANONICAL_FIELDS,
    BalanceFormat.EXTENDED: CANONICAL_FIELDS,
    BalanceFormat.SIMPLIFIED: ("account_code", "account_name", "closing_debit", "closing_credit"),
}


def _phrase_score(phrase: str, tokens: Sequence[str]) -> int:
    """Characters of the phrase matched by the label, 0 when any phrase word is missing."""
    words = phrase.split()
    if all(any(token_matches(word, token) for token in tokens) for word in words):
        return sum(len(word) for word in words)
    return 0


def _is_excluded(tokens: Sequence[str], exclude: frozenset[str]) -> bool:
    return any(token_matches(word, token) for token in tokens for word in exclude)


def score_label(label: object, synonyms: FieldSynonyms) -> int:
    tokens = fold_text(label).split()
    if not tokens or _is_excluded(tokens, synonyms.exclude):
        return 0
    return max((_phrase_score(phrase, tokens) for phrase in synonyms.phrases), default=0)


def map_columns(
    balance_format: BalanceFormat,
    header_labels: Sequence[object],
    synonyms: Mapping[str, FieldSynonyms] = SYNONYMS,
) -> ColumnMapping:
    """Assign each canonical field to at most one header column.

    The most specific match wins ("Sold final debitor" beats a bare "Debit"),
    and a column, once claimed, is not offered to other fields.

    Raises:
        MissingColumnError: If a field required by the layout has no column.
    """
    keys = column_keys(header_labels)
    candidates: list[tuple[int, int, int, str]] = []
    for column, label in enumerate(header_labels):
        for order, (field_name, field_synonyms) in enumerate(synonyms.items()):
            score = score_label(label, field_synonyms)
            if score:
                candidates.append((-score, column, order, field_name))

    assigned: dict[str, str] = {}
    used_columns: set[int] = set()
    for _, column, _, field_name in sorted(candidates):
        if field_name in assigned or column in used_columns:
            continue
        assigned[field_name] = keys[column]
        used_columns.add(column)

    missing = [name for name in REQUIRED_FIELDS[balance_format] if name not in assigned]
    if missing:
        raise MissingColumnError(missing, balance_format.value)

    mapping = ColumnMapping(**assigned)
    logger.debug(f"Column mapping for {balance_format.value} layout: {mapping.as_dict()}")
    return mapping
