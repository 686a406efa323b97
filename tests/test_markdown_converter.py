# tests/test_markdown_converter.py

import pytest

from notion_blog.markdown_converter import MarkdownConverter, rich_text_to_markdown
from notion_blog.notion_api import NotionBlock


def text(content, **annotations):
    return {"type": "text", "plain_text": content, "annotations": annotations, "href": None}


def block(block_type, children=None, **content):
    return NotionBlock(
        id=f"{block_type}-id",
        type=block_type,
        has_children=bool(children),
        content=content,
        children=children or [],
    )


def para(*rich):
    return block("paragraph", rich_text=list(rich))


def bullet(content, children=None):
    return block("bulleted_list_item", children=children, rich_text=[text(content)])


def numbered(content, children=None):
    return block("numbered_list_item", children=children, rich_text=[text(content)])


@pytest.fixture
def converter():
    return MarkdownConverter()


def test_rich_text_annotations():
    rich = [
        text("bold", bold=True),
        text(" "),
        text("code", code=True),
        text(" "),
        {"type": "text", "plain_text": "link", "annotations": {}, "href": "https://x.y"},
        text(" "),
        {"type": "equation", "plain_text": "E", "equation": {"expression": "E=mc^2"}},
    ]

    assert rich_text_to_markdown(rich) == "**bold** `code` [link](https://x.y) $E=mc^2$"


def test_document_layout(converter):
    blocks = [
        block("heading_2", rich_text=[text("Intro")]),
        para(text("Hello "), text("world", bold=True)),
        bullet("a"),
        bullet("b"),
        numbered("one"),
        numbered("two"),
        block("code", rich_text=[text("print(1)")], language="python"),
    ]

    assert converter.convert(blocks) == (
        "## Intro\n\n"
        "Hello **world**\n\n"
        "- a\n- b\n1. one\n2. two\n\n"
        "```python\nprint(1)\n```\n"
    )


def test_numbered_counter_resets_after_other_block(converter):
    blocks = [numbered("a"), numbered("b"), para(text("break")), numbered("c")]

    assert converter.convert(blocks) == "1. a\n2. b\n\nbreak\n\n1. c\n"


def test_nested_list_is_indented(converter):
    blocks = [bullet("parent", children=[bullet("child"), numbered("first")])]

    assert converter.convert(blocks) == "- parent\n  - child\n  1. first\n"


def test_empty_heading_is_dropped(converter):
    blocks = [block("heading_1", rich_text=[]), para(text("body"))]

    assert converter.convert(blocks) == "body\n"


def test_unknown_blocks_are_dropped(converter):
    blocks = [para(text("a")), block("child_page", title="Sub"), para(text("b"))]

    assert converter.convert(blocks) == "a\n\nb\n"


def test_empty_page(converter):
    assert converter.convert([]) == ""


def test_todo_quote_and_callout(converter):
    blocks = [
        block("to_do", rich_text=[text("done")], checked=True),
        block("to_do", rich_text=[text("open")], checked=False),
        block("quote", rich_text=[text("quoted")]),
        block("callout", rich_text=[text("note")], icon={"type": "emoji", "emoji": "💡"}),
    ]

    assert converter.convert(blocks) == "- [x] done\n- [ ] open\n\n> quoted\n\n> 💡 note\n"


def test_code_language_mapping(converter):
    blocks = [
        block("code", rich_text=[text("int x;")], language="C++"),
        block("code", rich_text=[text("raw")], language="plain text"),
    ]

    assert converter.convert(blocks) == "```cpp\nint x;\n```\n\n```\nraw\n```\n"


def test_blank_lines_inside_code_survive(converter):
    blocks = [block("code", rich_text=[text("a\n\n\nb")], language="python")]

    assert converter.convert(blocks) == "```python\na\n\n\nb\n```\n"


def test_media_blocks(converter):
    blocks = [
        block("image", type="external", external={"url": "https://img/a.png"},
              caption=[text("cap")]),
        block("bookmark", url="https://site.example", caption=[]),
        block("video", type="external", external={"url": "https://v/x.mp4"}, caption=[]),
        block("equation", expression="a^2"),
        block("divider"),
    ]

    assert converter.convert(blocks) == (
        "![cap](https://img/a.png)\n\n"
        "[https://site.example](https://site.example)\n\n"
        "[Video](https://v/x.mp4)\n\n"
        "$$\na^2\n$$\n\n"
        "---\n"
    )


def _row(*cells):
    return block("table_row", cells=[[text(c)] for c in cells])


def test_table_with_header(converter):
    table = block("table", children=[_row("A", "B"), _row("1", "2")], has_column_header=True)

    assert converter.convert([table]) == "| A | B |\n| --- | --- |\n| 1 | 2 |\n"


def test_table_without_header_gets_blank_header(converter):
    table = block("table", children=[_row("x|y", "2")], has_column_header=False)

    assert converter.convert([table]) == "|   |   |\n| --- | --- |\n| x\\|y | 2 |\n"


def test_toggle_becomes_details(converter):
    toggle = block("toggle", children=[para(text("hidden"))], rich_text=[text("More")])

    assert converter.convert([toggle]) == (
        "<details>\n<summary>More</summary>\n\nhidden\n\n</details>\n"
    )


def test_column_list_flattens_columns(converter):
    columns = block(
        "column_list",
        children=[
            block("column", children=[para(text("left"))]),
            block("column", children=[para(text("right"))]),
        ],
    )

    assert converter.convert([columns]) == "left\n\nright\n"
