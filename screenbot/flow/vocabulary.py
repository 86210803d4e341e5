"""
screenbot/flow/vocabulary.py

Purpose: Accepted answer tokens per step

- Numeric shorthand, canonical keywords and Spanish/English synonyms
  all map to the same canonical answer value
- Built once as static data; lookups take an already normalized token
- Free-text steps (age) have no vocabulary and are parsed instead
"""

import re
from typing import Dict, FrozenSet, Mapping, Optional

from screenbot.flow.states import ScreeningStep


def _tokens(mapping: Dict[str, FrozenSet[str]]) -> Mapping[str, str]:
    """Inverts {canonical: tokens} into {token: canonical}."""
    table: Dict[str, str] = {}
    for canonical, tokens in mapping.items():
        for token in tokens:
            if token in table:
                raise ValueError(f"Token {token!r} maps to both {table[token]!r} and {canonical!r}")
            table[token] = canonical
    return table


YES_NO = _tokens({
    "yes": frozenset({"1", "YES", "Y", "SI", "SÍ", "S"}),
    "no": frozenset({"2", "NO", "N"}),
})

STEP_VOCABULARY: Dict[ScreeningStep, Mapping[str, str]] = {
    ScreeningStep.Q1: YES_NO,
    ScreeningStep.Q2: _tokens({
        "full_time": frozenset({"1", "FT", "FULLTIME", "FULL-TIME", "FULL TIME", "TIEMPO COMPLETO", "COMPLETO"}),
        "part_time": frozenset({"2", "PT", "PARTTIME", "PART-TIME", "PART TIME", "MEDIO TIEMPO", "MEDIO"}),
        "low": frozenset({"3", "LOW", "<15", "LESS", "MENOS", "MENOS DE 15"}),
    }),
    ScreeningStep.Q3: _tokens({
        "now": frozenset({"1", "NOW", "INMEDIATO", "INMEDIATAMENTE", "YA"}),
        "soon": frozenset({"2", "2WEEKS", "SOON", "PRONTO", "1-2"}),
        "later": frozenset({"3", "1MONTH", "LATER", "MAS", "MÁS", "1 MES"}),
    }),
    ScreeningStep.Q4: YES_NO,
    ScreeningStep.Q5: YES_NO,
    ScreeningStep.Q6: _tokens({
        "good": frozenset({"1", "GOOD", "BUENO", "B1", "B2", "C1", "C2"}),
        "ok": frozenset({"2", "DEFENDERME", "ME DEFIENDO", "OK", "BASIC", "BASICO", "BÁSICO"}),
        "low": frozenset({"3", "POCO", "NO MUCHO", "NO SE", "NO SÉ", "NO", "NADA"}),
    }),
    ScreeningStep.Q7: {},
    ScreeningStep.Q8: _tokens({
        "kids": frozenset({"1", "KIDS", "NIÑOS", "NINOS"}),
        "teens": frozenset({"2", "TEENS", "JOVENES", "JÓVENES"}),
        "adults": frozenset({"3", "ADULTS", "ADULTOS"}),
        "all": frozenset({"4", "ALL", "TODOS", "TODOS LOS ANTERIORES"}),
    }),
}

if set(STEP_VOCABULARY) != set(ScreeningStep):
    raise RuntimeError("STEP_VOCABULARY must cover every ScreeningStep")


_WHITESPACE = re.compile(r"\s+")
_TRAILING_PUNCTUATION = ".,!?)"
_LEADING_INTEGER = re.compile(r"^(\d+)")


def normalize_input(raw: str) -> str:
    """
    Canonical token form of a reply: trimmed, upper-cased,
    inner whitespace collapsed, trailing punctuation dropped ("1)" -> "1").
    """
    text = _WHITESPACE.sub(" ", (raw or "").strip()).upper()
    return text.rstrip(_TRAILING_PUNCTUATION).strip()


def lookup(step: ScreeningStep, token: str) -> Optional[str]:
    """Canonical answer for `token` at `step`, or None if unrecognized."""
    return STEP_VOCABULARY[step].get(token)


def parse_age(token: str) -> Optional[int]:
    """
    Leading integer of the reply ("24", "24 años").
    Returns None for non-numeric input; range checks are left to the caller.
    """
    match = _LEADING_INTEGER.match(token.strip())
    if not match:
        return None
    return int(match.group(1))
