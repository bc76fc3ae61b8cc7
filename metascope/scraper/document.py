# metascope/scraper/document.py
# ============================================================================
# HTML Riot (patch notes) → flux de SemanticNode pour l'extracteur
# Seul module qui connaît le balisage (tags, classes CSS)
# ============================================================================

from __future__ import annotations

import logging
from typing import Iterator, List, Optional

from bs4 import BeautifulSoup, Tag

from metascope.errors import ParseError
from metascope.models.nodes import SemanticNode

log = logging.getLogger(__name__)

CONTAINER_ID = "patch-notes-container"
CHANGE_BLOCK_CLASS = "patch-change-block"
BORDERED_CLASS = "content-border"
REFERENCE_LINK_CLASS = "reference-link"
TITLE_CLASS = "change-title"
DETAIL_TITLE_CLASSES = ("change-detail-title", "ability-title")


def _classes(el: Tag) -> List[str]:
    return list(el.get("class") or [])


def _text(el: Tag) -> str:
    return el.get_text().strip()


def _image_src(el: Tag) -> Optional[str]:
    img = el if el.name == "img" else el.find("img")
    if img is None:
        return None
    return img.get("src") or img.get("data-src")


def _child_tags(el: Tag) -> Iterator[Tag]:
    return (c for c in el.children if isinstance(c, Tag))


def _heading_identifier(el: Tag) -> Optional[str]:
    h2 = el if el.name == "h2" else el.find("h2")
    if h2 is None:
        return None
    return h2.get("id") or ""


def _element_node(el: Tag) -> Optional[SemanticNode]:
    """Un enfant direct d'un bloc de changements → nœud (ou None si ignoré)."""
    tag = el.name
    classes = _classes(el)
    is_detail = any(c in classes for c in DETAIL_TITLE_CLASSES)

    if tag == "a" and REFERENCE_LINK_CLASS in classes:
        return SemanticNode.icon(_image_src(el))
    if (tag in ("h3", "h4") or TITLE_CLASS in classes) and not is_detail:
        return SemanticNode.title(_text(el))
    if tag == "blockquote":
        return SemanticNode.summary(_text(el))
    if tag == "h4" and is_detail:
        return SemanticNode.detail_title(_text(el), _image_src(el))
    if tag == "ul":
        return SemanticNode.list(*(_text(li) for li in el.find_all("li")))
    return None


def _block_nodes(block: Tag) -> List[SemanticNode]:
    if block.find(class_=CHANGE_BLOCK_CLASS) is not None:
        raise ParseError("nested change blocks")

    # Structure Riot courante : un <div> intermédiaire dans le bloc
    wrapper = next((c for c in _child_tags(block) if c.name == "div"), block)

    nodes = [SemanticNode.block_start()]
    for child in _child_tags(wrapper):
        node = _element_node(child)
        if node is not None:
            nodes.append(node)
    nodes.append(SemanticNode.block_end())
    return nodes


def _section_nodes(el: Tag) -> Iterator[SemanticNode]:
    identifier = _heading_identifier(el)
    if identifier is not None:
        yield SemanticNode.heading(identifier)

    blocks = el.find_all(class_=CHANGE_BLOCK_CLASS)
    if CHANGE_BLOCK_CLASS in _classes(el):
        blocks.insert(0, el)
    for block in blocks:
        try:
            nodes = _block_nodes(block)
        except ParseError as e:
            log.debug(f"Skipping malformed change block: {e}")
            continue
        yield from nodes

    if BORDERED_CLASS in _classes(el):
        for ul in el.find_all("ul"):
            if ul.find_parent(class_=CHANGE_BLOCK_CLASS) is not None:
                continue    # déjà émise dans son bloc
            yield SemanticNode.bordered_list(*(_text(li) for li in ul.find_all("li")))


def parse_document(html: str) -> Optional[List[SemanticNode]]:
    """
    Flatten a patch-notes page into semantic nodes.

    Returns:
        Nodes in document order, or None when the page has no
        patch-notes container.
    """
    soup = BeautifulSoup(html or "", "html.parser")
    container = soup.find(id=CONTAINER_ID)
    if container is None:
        log.debug("No patch-notes container in document")
        return None

    nodes: List[SemanticNode] = []
    for child in _child_tags(container):
        nodes.extend(_section_nodes(child))
    return nodes
