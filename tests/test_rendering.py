# tests/test_rendering.py

from notion_blog.rendering import CODE_THEME, render_markdown


def test_headings_and_paragraphs():
    html = render_markdown("## Title\n\nSome *text*.\n")

    assert "<h2>Title</h2>" in html
    assert "<em>text</em>" in html


def test_fenced_code_is_highlighted_with_dark_theme():
    html = render_markdown('```python\nprint("<b>")\n```\n')

    assert '<pre style="background-color:' in html
    assert 'data-language="python"' in html
    assert f'data-theme="{CODE_THEME}"' in html
    assert "&lt;b&gt;" in html
    assert "<b>" not in html


def test_code_without_language_falls_back_to_plaintext():
    html = render_markdown("```\nplain code\n```\n")

    assert 'data-language="plaintext"' in html
    assert "plain code" in html


def test_unknown_language_does_not_fail():
    html = render_markdown("```nosuchlanguage\nx = 1\n```\n")

    assert 'data-language="nosuchlanguage"' in html


def test_raw_html_is_preserved():
    html = render_markdown('<div class="note">hi</div>\n\ntext\n')

    assert '<div class="note">hi</div>' in html


def test_gfm_tables_and_strikethrough():
    html = render_markdown("| a | b |\n| --- | --- |\n| 1 | 2 |\n\n~~gone~~\n")

    assert "<table>" in html
    assert "<td>1</td>" in html
    assert "<s>gone</s>" in html


def test_task_lists_render_checkboxes():
    html = render_markdown("- [x] done\n- [ ] open\n")

    assert html.count('type="checkbox"') == 2
    assert html.count('checked="checked"') == 1
    assert "[x]" not in html


def test_bare_urls_are_linked():
    html = render_markdown("see https://example.com\n")

    assert '<a href="https://example.com">https://example.com</a>' in html


def test_footnotes():
    html = render_markdown("Claim[^1]\n\n[^1]: Source.\n")

    assert 'class="footnotes"' in html
    assert "Source." in html
