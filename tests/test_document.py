"""Tests for HTML → semantic nodes, and end-to-end extraction from a page."""

from metascope.models.nodes import NodeKind
from metascope.models.patch import ChangeBlock, ChangeType, PatchCategory
from metascope.scraper.document import parse_document
from metascope.services import extractor

PAGE = """
<html><body>
<nav><h3>Патч 25.02</h3></nav>
<div id="patch-notes-container">
  <header class="header-primary"><h2 id="patch-champions">Чемпионы</h2></header>
  <div class="content-border">
    <div class="patch-change-block white-stone accent-before">
      <div>
        <a class="reference-link" href="/champions/ahri/">
          <img src="https://am-a.akamaihd.net/image?f=https://images.example.com/ahri.png">
        </a>
        <h3 class="change-title" id="patch-ahri"><a href="/champions/ahri/">Ари</a></h3>
        <blockquote class="blockquote context">Усиливаем раннюю игру.</blockquote>
        <h4 class="change-detail-title ability-title">
          <img src="https://images.example.com/q.png">Q – Сфера обмана
        </h4>
        <ul><li>Урон увеличен: 40 → 50</li><li>   </li></ul>
        <hr class="divider">
        <h3 class="change-title">Патч 25.02</h3>
        <a class="reference-link" href="/champions/zed/"><img data-src="https://images.example.com/zed.png"></a>
        <h3 class="change-title">Зед</h3>
        <ul><li>Броня: 30 → 28</li></ul>
      </div>
    </div>
  </div>
  <header class="header-primary"><h2 id="patch-items">Предметы</h2></header>
  <div class="content-border">
    <div class="patch-change-block"><div>
      <h3 class="change-title">Гидра</h3>
      <ul><li>Attack damage decreased</li></ul>
    </div></div>
  </div>
  <header class="header-primary"><h2 id="patch-bug-fixes">Исправления ошибок</h2></header>
  <div class="content-border">
    <ul><li>Исправлена ошибка A</li><li>Исправлена ошибка B</li></ul>
  </div>
</div>
</body></html>
"""


class TestParseDocument:
    """Markup → node stream."""

    def test_missing_container(self):
        assert parse_document("<html><body><h2>nothing</h2></body></html>") is None
        assert parse_document("") is None

    def test_node_order(self):
        kinds = [n.kind for n in parse_document(PAGE)]

        assert kinds[0] == NodeKind.HEADING
        assert kinds[1] == NodeKind.BLOCK_START
        assert kinds.count(NodeKind.BLOCK_START) == kinds.count(NodeKind.BLOCK_END) == 2
        assert kinds.count(NodeKind.HEADING) == 3
        assert kinds[-1] == NodeKind.BORDERED_LIST
        # les <ul> des blocs de changements ne sont pas réémises
        assert kinds.count(NodeKind.BORDERED_LIST) == 1

    def test_element_mapping(self):
        nodes = parse_document(PAGE)
        first_block = nodes[1:nodes.index(next(n for n in nodes if n.kind == NodeKind.BLOCK_END)) + 1]

        icon = first_block[1]
        assert icon.kind == NodeKind.ICON
        assert icon.url == "https://am-a.akamaihd.net/image?f=https://images.example.com/ahri.png"

        title = first_block[2]
        assert (title.kind, title.text) == (NodeKind.TITLE, "Ари")

        detail = first_block[4]
        assert detail.kind == NodeKind.DETAIL_TITLE
        assert detail.text == "Q – Сфера обмана"
        assert detail.url == "https://images.example.com/q.png"

        assert first_block[5].items == ("Урон увеличен: 40 → 50", "")

    def test_nested_change_block_skipped(self):
        html = """
        <div id="patch-notes-container"><div>
          <div class="patch-change-block"><div>
            <h3>Outer</h3>
            <div class="patch-change-block"><div><h3>Inner</h3><ul><li>Урон увеличен</li></ul></div></div>
          </div></div>
        </div></div>
        """
        notes = extractor.extract(parse_document(html))
        assert [n.title for n in notes] == ["Inner"]


class TestExtractFromPage:
    """The full path used when a patch is fetched."""

    def test_entries(self):
        notes = extractor.extract(parse_document(PAGE))

        assert [n.title for n in notes] == ["Ари", "Зед", "Гидра", extractor.BUG_FIX_TITLE,
                                            extractor.BUG_FIX_TITLE]

        ahri, zed, hydra, fix_a, fix_b = notes
        assert ahri.category == PatchCategory.CHAMPIONS
        assert ahri.image_url == "https://images.example.com/ahri.png"
        assert ahri.summary == "Усиливаем раннюю игру."
        assert ahri.change_type == ChangeType.BUFF
        assert ahri.details == [ChangeBlock(
            title="Q – Сфера обмана",
            icon_url="https://images.example.com/q.png",
            changes=["Урон увеличен: 40 → 50"],
        )]

        assert zed.image_url == "https://images.example.com/zed.png"
        assert zed.change_type == ChangeType.ADJUSTED
        assert zed.details[0].changes == ["Броня: 30 → 28"]

        assert hydra.category == PatchCategory.ITEMS
        assert hydra.change_type == ChangeType.NERF

        assert (fix_a.id, fix_a.summary) == ("fix_3", "Исправлена ошибка A")
        assert (fix_b.id, fix_b.summary) == ("fix_4", "Исправлена ошибка B")
        assert fix_a.change_type == ChangeType.FIX

    def test_idempotent(self):
        assert extractor.extract(parse_document(PAGE)) == extractor.extract(parse_document(PAGE))
