# metascope/models/nodes.py
# Nœuds "sémantiques" d'une page de patch notes, indépendants du balisage HTML

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional, Tuple


class NodeKind(str, Enum):
    HEADING = "heading"              # titre de section (identifiant machine)
    BLOCK_START = "block_start"      # début d'un bloc de changements
    BLOCK_END = "block_end"
    ICON = "icon"                    # avatar / lien de référence avant un titre
    TITLE = "title"                  # nom du champion / objet / rune
    SUMMARY = "summary"              # citation de résumé
    DETAIL_TITLE = "detail_title"    # nom de sort / groupe de stats
    LIST = "list"                    # lignes de changement
    BORDERED_LIST = "bordered_list"  # liste dans une zone encadrée (bug fixes)


@dataclass(frozen=True)
class SemanticNode:
    kind: NodeKind
    text: str = ""
    url: Optional[str] = None
    items: Tuple[str, ...] = ()

    @classmethod
    def heading(cls, identifier: str) -> "SemanticNode":
        return cls(NodeKind.HEADING, text=identifier)

    @classmethod
    def block_start(cls) -> "SemanticNode":
        return cls(NodeKind.BLOCK_START)

    @classmethod
    def block_end(cls) -> "SemanticNode":
        return cls(NodeKind.BLOCK_END)

    @classmethod
    def icon(cls, url: Optional[str]) -> "SemanticNode":
        return cls(NodeKind.ICON, url=url)

    @classmethod
    def title(cls, text: str) -> "SemanticNode":
        return cls(NodeKind.TITLE, text=text)

    @classmethod
    def summary(cls, text: str) -> "SemanticNode":
        return cls(NodeKind.SUMMARY, text=text)

    @classmethod
    def detail_title(cls, text: str, url: Optional[str] = None) -> "SemanticNode":
        return cls(NodeKind.DETAIL_TITLE, text=text, url=url)

    @classmethod
    def list(cls, *items: str) -> "SemanticNode":
        return cls(NodeKind.LIST, items=tuple(items))

    @classmethod
    def bordered_list(cls, *items: str) -> "SemanticNode":
        return cls(NodeKind.BORDERED_LIST, items=tuple(items))
