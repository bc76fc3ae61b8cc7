# metascope/services/tier_list.py
# ============================================================================
# Tier list : cumul buffs / nerfs / ajustements sur les N derniers patchs
# Mémoïsation : un seul slot (signature, résultat), remplacé en bloc
# ============================================================================

from __future__ import annotations

import logging
from typing import Dict, List, Optional, Sequence, Tuple

from metascope.models.patch import PatchCategory, PatchSnapshot, TierEntry
from metascope.services import trend

log = logging.getLogger(__name__)


def signature(snapshots: Sequence[PatchSnapshot]) -> str:
    """Signature bon marché de l'ensemble scanné : versions + dates de fetch."""
    return "".join(f"{s.version}|{s.fetched_at.isoformat()};" for s in snapshots)


def build_tier_list(snapshots: Sequence[PatchSnapshot]) -> List[TierEntry]:
    """Score every change line of every note, bucketed by (title, category)."""
    buckets: Dict[Tuple[str, PatchCategory], TierEntry] = {}

    for snapshot in snapshots:
        for note in snapshot.notes:
            key = (note.title, note.category)
            entry = buckets.get(key)
            if entry is None:
                entry = buckets[key] = TierEntry(name=note.title, category=note.category)

            # Dernière icône rencontrée
            if note.image_url:
                entry.icon_url = note.image_url

            for line in note.change_lines():
                verdict = trend.score(line)
                if verdict == trend.BUFF:
                    entry.buffs += 1
                elif verdict == trend.NERF:
                    entry.nerfs += 1
                else:
                    entry.adjusted += 1

    ranked = list(buckets.values())
    ranked.sort(key=lambda e: (-e.score, -e.buffs, e.nerfs))
    return ranked


class TierAggregator:
    """
    Memoized tier ranking.

    The cache is one ``(signature, result)`` tuple. Callers must hold the
    application lock around ``rank`` and ``invalidate``.
    """

    def __init__(self):
        self._cache: Optional[Tuple[str, List[TierEntry]]] = None

    @property
    def cached_signature(self) -> Optional[str]:
        return self._cache[0] if self._cache else None

    def rank(self, snapshots: Sequence[PatchSnapshot]) -> List[TierEntry]:
        sig = signature(snapshots)
        cache = self._cache
        if cache is not None and cache[0] == sig:
            log.debug("Tier list cache hit")
            return cache[1]

        log.debug(f"Tier list cache miss, scanning {len(snapshots)} snapshots")
        result = build_tier_list(snapshots)
        self._cache = (sig, result)
        return result

    def is_cached(self, snapshots: Sequence[PatchSnapshot]) -> bool:
        return self._cache is not None and self._cache[0] == signature(snapshots)

    def invalidate(self) -> None:
        self._cache = None
