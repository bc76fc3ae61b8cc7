# metascope/services/trend.py
# ============================================================================
# Classification des tendances : buff / nerf / ajustement
# Règles ordonnées, première qui répond gagne (l'ordre est important)
# ============================================================================

from __future__ import annotations

import math
import re
from typing import Callable, List, NamedTuple, Optional

from metascope.models.patch import ChangeType

BUFF = 1
NERF = -1
NEUTRAL = 0

# ────────────────────────────── Vocabulaire ─────────────────────────────────
# Verdict global d'une entrée (toutes ses lignes concaténées)
ENTRY_BUFF_RE = re.compile(r"(увеличен|усилен|added|increased|дополнительный урон)", re.IGNORECASE)
ENTRY_NERF_RE = re.compile(r"(уменьшен|ослаблен|removed|decreased)", re.IGNORECASE)

# Verdict par ligne
LINE_BUFF_RE = re.compile(r"(увеличен|усилен|increased|buffed|new effect|новый эффект)")
LINE_NERF_RE = re.compile(r"(уменьшен|ослаблен|decreased|nerfed|removed|\bудал[её]н[аоы]?\b)")

# "удалена" oui, "удаленной атаки" (à distance) non
REMOVED_RE = re.compile(r"\bудал[её]н[аоы]?\b|\bremoved\b")
NO_LONGER_WORDS = ("больше не", "no longer")
PENALTY_LIFTED_WORDS = (
    "больше не уменьшается",
    "больше не снижается",
    "no longer reduced",
    "no longer decreased",
)

# Stats "inverses" : plus bas = mieux
INVERSE_STAT_WORDS = (
    "перезарядка", "cooldown",
    "стоимость", "cost",
    "затраты",
    "маны", "mana",
    "энергии", "energy",
    "время", "time",
    "cast time", "charge time",
)

ARROW_RE = re.compile(r"\s*(?:→|⇒|->)\s*")
NUMBER_RE = re.compile(r"[-+]?\d+(?:[.,]\d+)?")


def _sum_numbers(segment: str) -> float:
    """Somme de tous les nombres d'un segment (NaN si aucun)."""
    values = []
    for token in NUMBER_RE.findall(segment):
        try:
            values.append(float(token.replace(",", ".")))
        except ValueError:
            continue
    if not values:
        return math.nan
    return sum(values)


def _is_inverse(lower: str) -> bool:
    return any(word in lower for word in INVERSE_STAT_WORDS)


def _compare(before: float, after: float, inverse: bool) -> Optional[int]:
    if not (math.isfinite(before) and math.isfinite(after)):
        return None
    if after > before:
        return NERF if inverse else BUFF
    if after < before:
        return BUFF if inverse else NERF
    return None


# ────────────────────────────── Règles ──────────────────────────────────────
class Rule(NamedTuple):
    name: str
    apply: Callable[[str, str], Optional[int]]   # (texte, texte minuscule) -> verdict | None


def _hard_nerf(text: str, lower: str) -> Optional[int]:
    if REMOVED_RE.search(lower):
        return NERF
    if any(word in lower for word in NO_LONGER_WORDS) and not _penalty_lifted(lower):
        return NERF
    return None


def _penalty_lifted(lower: str) -> bool:
    return any(word in lower for word in PENALTY_LIFTED_WORDS)


def _no_longer_reduced(text: str, lower: str) -> Optional[int]:
    return BUFF if _penalty_lifted(lower) else None


def _arrow_delta(text: str, lower: str) -> Optional[int]:
    parts = ARROW_RE.split(text)
    if len(parts) != 2:
        return None
    return _compare(_sum_numbers(parts[0]), _sum_numbers(parts[1]), _is_inverse(lower))


def _buff_words(text: str, lower: str) -> Optional[int]:
    return BUFF if LINE_BUFF_RE.search(lower) else None


def _nerf_words(text: str, lower: str) -> Optional[int]:
    return NERF if LINE_NERF_RE.search(lower) else None


LINE_RULES: List[Rule] = [
    Rule("hard_nerf", _hard_nerf),
    Rule("no_longer_reduced", _no_longer_reduced),
    Rule("arrow_delta", _arrow_delta),
    Rule("buff_words", _buff_words),
    Rule("nerf_words", _nerf_words),
]


# ────────────────────────────── API publique ────────────────────────────────
def score(line: str) -> int:
    """
    Score one change line: +1 buff, -1 nerf, 0 neutral.

    Rules are evaluated in LINE_RULES order; the first one returning a
    verdict wins.
    """
    if not line:
        return NEUTRAL
    lower = line.lower()
    for rule in LINE_RULES:
        verdict = rule.apply(line, lower)
        if verdict is not None:
            return verdict
    return NEUTRAL


def classify(text: str) -> ChangeType:
    """Whole-entry verdict: buff keywords win, then nerf keywords, else Adjusted."""
    if not text:
        return ChangeType.ADJUSTED
    if ENTRY_BUFF_RE.search(text):
        return ChangeType.BUFF
    if ENTRY_NERF_RE.search(text):
        return ChangeType.NERF
    return ChangeType.ADJUSTED


__all__ = ["BUFF", "NERF", "NEUTRAL", "LINE_RULES", "Rule", "score", "classify"]
