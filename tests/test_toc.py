# tests/test_toc.py

from notion_blog.toc import (
    TocItem,
    add_heading_ids,
    extract_toc,
    slugify_heading,
)


def test_extract_toc_keeps_existing_ids_and_skips_h4():
    html = '<h2 id="foo">A</h2><h3>B</h3><h4>C</h4>'

    assert extract_toc(html) == [
        TocItem(id="foo", text="A", level=2),
        TocItem(id=slugify_heading("B"), text="B", level=3),
    ]


def test_extract_toc_strips_nested_tags_and_drops_empty_headings():
    html = '<h2><img src="x.png"/></h2><h2>Hello <code>World</code></h2>'

    assert extract_toc(html) == [TocItem(id="hello-world", text="Hello World", level=2)]


def test_add_heading_ids_injects_ids_for_h2_to_h4():
    html = "<h1>Top</h1><h2>Hello <code>World</code></h2><h4>Deep</h4><h5>Deeper</h5>"

    result = add_heading_ids(html)

    assert result == (
        '<h1>Top</h1><h2 id="hello-world">Hello <code>World</code></h2>'
        '<h4 id="deep">Deep</h4><h5>Deeper</h5>'
    )


def test_add_heading_ids_keeps_other_attributes_and_existing_ids():
    html = '<h2 class="title">Intro</h2><h3 id="custom">Named</h3>'

    result = add_heading_ids(html)

    assert result == '<h2 class="title" id="intro">Intro</h2><h3 id="custom">Named</h3>'


def test_add_heading_ids_ignores_data_id_attribute():
    result = add_heading_ids('<h2 data-id="x">Title</h2>')

    assert result == '<h2 data-id="x" id="title">Title</h2>'


def test_add_heading_ids_is_idempotent():
    html = "<h2>One</h2><p>text</p><h3>Two <em>words</em></h3>"

    once = add_heading_ids(html)

    assert add_heading_ids(once) == once


def test_duplicate_headings_share_an_id():
    toc = extract_toc(add_heading_ids("<h2>Same</h2><h2>Same</h2>"))

    assert [item.id for item in toc] == ["same", "same"]


def test_slugify_heading_keeps_cjk_and_trims_hyphens():
    assert slugify_heading("RAG 入门 指南!") == "rag-入门-指南"
    assert slugify_heading("  --Hello--  ") == "hello"
    assert slugify_heading("What's   new?") == "whats-new"


def test_custom_scanner_is_used():
    class NoHeadings:
        def iter_headings(self, html, levels):
            return iter(())

    html = "<h2>Ignored</h2>"

    assert add_heading_ids(html, scanner=NoHeadings()) == html
    assert extract_toc(html, scanner=NoHeadings()) == []


def test_slugify_heading_drops_non_ascii_letters_outside_cjk():
    assert slugify_heading("Café ²") == "caf"
    assert slugify_heading("こんにちは 入門") == "入門"


def test_unquoted_existing_id_is_kept():
    html = "<h2 id=foo>Title</h2><h3 class=x id=bar>Sub</h3>"

    assert add_heading_ids(html) == html
    assert [item.id for item in extract_toc(html)] == ["foo", "bar"]
