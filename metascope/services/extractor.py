# metascope/services/extractor.py
# ============================================================================
# Extraction des patch notes : flux de nœuds sémantiques → PatchNoteEntry
# Un seul passage (fold) ; état externe = catégorie, état interne = bloc
# ============================================================================

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from functools import reduce
from typing import Callable, Iterable, List, Optional, Tuple

from metascope.models.nodes import NodeKind, SemanticNode
from metascope.models.patch import ChangeBlock, ChangeType, PatchCategory, PatchNoteEntry
from metascope.services import trend

log = logging.getLogger(__name__)

BUG_FIX_TITLE = "Исправление ошибки"

# CDN d'images de Riot : la vraie URL suit "?f="
IMAGE_PROXY_HOSTS = ("akamaihd.net",)
IMAGE_PROXY_PARAM = "?f="

# Table des sections, première correspondance gagnante
CATEGORY_RULES: List[Tuple[Callable[[str], bool], PatchCategory]] = [
    (lambda s: "champion" in s, PatchCategory.CHAMPIONS),
    (lambda s: "item" in s and "rune" not in s, PatchCategory.ITEMS),
    (lambda s: "rune" in s and "item" not in s, PatchCategory.RUNES),
    (lambda s: "item" in s or "rune" in s, PatchCategory.ITEMS_RUNES),
    (lambda s: "skin" in s or "chroma" in s, PatchCategory.SKINS),
    (lambda s: "bug" in s, PatchCategory.BUG_FIXES),
    (lambda s: "aram" in s or "arena" in s or "mode" in s, PatchCategory.MODES),
    (lambda s: "system" in s or "qol" in s, PatchCategory.SYSTEMS),
    (lambda s: "highlight" in s, PatchCategory.NEW_CONTENT),
]

# Titres de "chrome" qui ne sont pas des entrées (bannières, titres génériques)
DENIED_TITLE_PATTERNS = [
    re.compile(r"^(патч|patch)\s*\d+[\w.]*(\s+(notes|примечания))?$", re.IGNORECASE),
    re.compile(r"^(список изменений|обзор обновления|основные моменты патча|основные изменения)$", re.IGNORECASE),
    re.compile(r"^(patch notes|patch highlights|highlights|table of contents|содержание)$", re.IGNORECASE),
]


def category_for_heading(identifier: str) -> PatchCategory:
    """Map a section heading identifier (e.g. "patch-champions") to its category."""
    lowered = (identifier or "").lower()
    for predicate, category in CATEGORY_RULES:
        if predicate(lowered):
            return category
    return PatchCategory.UNKNOWN


def clean_image_url(url: Optional[str]) -> Optional[str]:
    """Strip Riot's image proxy: keep what follows "?f=" on proxied URLs."""
    if not url:
        return None
    if any(host in url for host in IMAGE_PROXY_HOSTS) and IMAGE_PROXY_PARAM in url:
        return url[url.find(IMAGE_PROXY_PARAM) + len(IMAGE_PROXY_PARAM):]
    return url


def is_denied_title(title: str) -> bool:
    text = " ".join(title.split())
    return any(p.match(text) for p in DENIED_TITLE_PATTERNS)


def finalize(entry: PatchNoteEntry) -> PatchNoteEntry:
    """Compute the entry-wide change type from all of its change lines."""
    entry.change_type = trend.classify(" ".join(entry.change_lines()))
    return entry


@dataclass
class _ParseState:
    """Accumulateur du fold ; n'existe que le temps d'un appel à extract()."""
    notes: List[PatchNoteEntry] = field(default_factory=list)
    category: PatchCategory = PatchCategory.UNKNOWN
    pending_icon: Optional[str] = None
    current: Optional[PatchNoteEntry] = None

    def flush(self) -> None:
        if self.current is not None:
            self.notes.append(finalize(self.current))
            self.current = None


def _on_heading(state: _ParseState, node: SemanticNode) -> _ParseState:
    state.category = category_for_heading(node.text)
    return state


def _on_block_start(state: _ParseState, node: SemanticNode) -> _ParseState:
    state.flush()
    state.pending_icon = None
    return state


def _on_block_end(state: _ParseState, node: SemanticNode) -> _ParseState:
    state.flush()
    state.pending_icon = None
    return state


def _on_icon(state: _ParseState, node: SemanticNode) -> _ParseState:
    state.pending_icon = clean_image_url(node.url)
    return state


def _on_title(state: _ParseState, node: SemanticNode) -> _ParseState:
    title = node.text.strip()
    if title and is_denied_title(title):
        log.debug(f"Ignoring chrome heading: {title!r}")
        return state

    state.flush()
    if not title:
        return state

    state.current = PatchNoteEntry(
        id=title,
        title=title,
        image_url=state.pending_icon,
        category=state.category,
        change_type=ChangeType.ADJUSTED,   # recalculé à la finalisation
    )
    state.pending_icon = None
    return state


def _on_summary(state: _ParseState, node: SemanticNode) -> _ParseState:
    if state.current is not None:
        state.current.summary = node.text.strip()
    return state


def _on_detail_title(state: _ParseState, node: SemanticNode) -> _ParseState:
    if state.current is not None:
        state.current.details.append(
            ChangeBlock(title=node.text.strip(), icon_url=clean_image_url(node.url), changes=[])
        )
    return state


def _on_list(state: _ParseState, node: SemanticNode) -> _ParseState:
    if state.current is None:
        return state
    changes = [item.strip() for item in node.items if item and item.strip()]
    if not changes:
        return state
    if state.current.details:
        state.current.details[-1].changes.extend(changes)
    else:
        state.current.details.append(ChangeBlock(title=None, icon_url=None, changes=changes))
    return state


def _on_bordered_list(state: _ParseState, node: SemanticNode) -> _ParseState:
    if state.category is not PatchCategory.BUG_FIXES:
        return state
    for item in node.items:
        text = (item or "").strip()
        if not text:
            continue
        state.notes.append(PatchNoteEntry(
            id=f"fix_{len(state.notes)}",
            title=BUG_FIX_TITLE,
            image_url=None,
            category=state.category,
            change_type=ChangeType.FIX,
            summary=text,
            details=[ChangeBlock(title=None, icon_url=None, changes=[text])],
        ))
    return state


_HANDLERS = {
    NodeKind.HEADING: _on_heading,
    NodeKind.BLOCK_START: _on_block_start,
    NodeKind.BLOCK_END: _on_block_end,
    NodeKind.ICON: _on_icon,
    NodeKind.TITLE: _on_title,
    NodeKind.SUMMARY: _on_summary,
    NodeKind.DETAIL_TITLE: _on_detail_title,
    NodeKind.LIST: _on_list,
    NodeKind.BORDERED_LIST: _on_bordered_list,
}


def _step(state: _ParseState, node: SemanticNode) -> _ParseState:
    handler = _HANDLERS.get(getattr(node, "kind", None))
    if handler is None:
        log.debug(f"Skipping unexpected node: {node!r}")
        return state
    return handler(state, node)


def extract(nodes: Optional[Iterable[SemanticNode]]) -> List[PatchNoteEntry]:
    """
    Build patch-note entries from a semantic node stream.

    Best effort: ``None`` (no content container) gives an empty list and
    nodes of unknown kind are skipped. An entry still open when the stream
    ends is finalized and kept.

    Args:
        nodes: Nodes in document order, as produced by scraper.document.

    Returns:
        list[PatchNoteEntry]: Entries in document order.
    """
    if nodes is None:
        return []
    state = reduce(_step, nodes, _ParseState())
    state.flush()
    return state.notes


__all__ = [
    "BUG_FIX_TITLE",
    "category_for_heading",
    "clean_image_url",
    "is_denied_title",
    "extract",
]
