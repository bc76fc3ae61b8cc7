# metascope/services/analyzer.py
# ============================================================================
# Comparaison de deux patchs : écarts winrate/pickrate + prédiction via notes
# ============================================================================

from __future__ import annotations

from typing import Dict, List, Optional, Tuple

from metascope.models.patch import (
    ChampionStats,
    ChangeType,
    LaneRole,
    MetaAnalysisDiff,
    PatchCategory,
    PatchSnapshot,
)

# Écart (en points de %) en dessous duquel un champion sans note est ignoré
MATERIALITY_THRESHOLD = 0.5


def _index_previous(previous: PatchSnapshot) -> Dict[Tuple[str, LaneRole], ChampionStats]:
    return {(c.name, c.role): c for c in previous.champions}


def _index_notes(current: PatchSnapshot) -> Dict[str, Tuple[ChangeType, Optional[str]]]:
    return {
        n.title: (n.change_type, n.image_url)
        for n in current.notes
        if n.category is PatchCategory.CHAMPIONS
    }


def compare_patches(current: PatchSnapshot, previous: PatchSnapshot) -> List[MetaAnalysisDiff]:
    """
    Diff champion stats between two snapshots.

    Champions are matched on exact (name, role); a champion missing from
    ``previous`` gets zero diffs. A Champions patch note whose title equals
    the champion name gives the predicted change. Only material rows are
    kept (a diff above MATERIALITY_THRESHOLD or a predicted change), with
    predicted rows first, then by absolute win-rate diff.
    """
    prev_map = _index_previous(previous)
    notes_map = _index_notes(current)

    diffs: List[MetaAnalysisDiff] = []
    for champ in current.champions:
        win_diff = 0.0
        pick_diff = 0.0
        prev = prev_map.get((champ.name, champ.role))
        if prev is not None:
            win_diff = champ.win_rate - prev.win_rate
            pick_diff = champ.pick_rate - prev.pick_rate

        predicted: Optional[ChangeType] = None
        note_image: Optional[str] = None
        if champ.name in notes_map:
            predicted, note_image = notes_map[champ.name]

        if (abs(win_diff) > MATERIALITY_THRESHOLD
                or abs(pick_diff) > MATERIALITY_THRESHOLD
                or predicted is not None):
            diffs.append(MetaAnalysisDiff(
                champion_name=champ.name,
                role=champ.role,
                win_rate_diff=round(win_diff, 1),
                pick_rate_diff=round(pick_diff, 1),
                predicted_change=predicted,
                champion_image_url=champ.image_url or note_image,
            ))

    diffs.sort(key=lambda d: (d.predicted_change is None, -abs(d.win_rate_diff)))
    return diffs
