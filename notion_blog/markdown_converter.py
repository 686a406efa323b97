"""
Notion blocks to Markdown converter.

Produces the post body written by the exporter. Images keep their remote
URLs here; the exporter downloads and rewrites them afterwards.
"""

from dataclasses import dataclass
from typing import Callable, Optional

from .notion_api import NotionBlock, plain_text

LIST_TYPES = {"bulleted_list_item", "numbered_list_item", "to_do"}

# Notion language names that differ from fenced-code info strings
LANGUAGE_MAP = {
    "plain text": "",
    "c++": "cpp",
    "c#": "csharp",
    "shell": "bash",
    "f#": "fsharp",
    "objective-c": "objectivec",
    "vb.net": "vbnet",
}


@dataclass
class ConversionContext:
    """State carried while walking one page's blocks."""

    indent_level: int = 0
    numbered_list_counter: int = 0


def _media_url(content: dict) -> Optional[str]:
    kind = content.get("type")
    if kind in ("external", "file"):
        return content.get(kind, {}).get("url")
    return None


def rich_text_to_markdown(rich_text: list[dict]) -> str:
    """Convert a Notion rich text array to inline markdown."""
    parts = []
    for item in rich_text or []:
        text = item.get("plain_text", "")
        if not text:
            continue
        notes = item.get("annotations", {})

        if notes.get("code"):
            text = f"`{text}`"
        if notes.get("bold"):
            text = f"**{text}**"
        if notes.get("italic"):
            text = f"*{text}*"
        if notes.get("strikethrough"):
            text = f"~~{text}~~"
        if notes.get("underline"):
            text = f"<u>{text}</u>"

        if item.get("type") == "equation":
            text = f"${item.get('equation', {}).get('expression', text)}$"

        href = item.get("href")
        if href:
            text = f"[{text}]({href})"
        parts.append(text)
    return "".join(parts)


class MarkdownConverter:
    """
    Converts a tree of NotionBlocks into a markdown document.

    Unknown block types are dropped. Child pages and databases are not
    inlined; the exporter writes them as posts of their own.
    """

    def __init__(self):
        self._handlers: dict[str, Callable[[NotionBlock, ConversionContext], Optional[str]]] = {
            "paragraph": self._paragraph,
            "heading_1": self._heading,
            "heading_2": self._heading,
            "heading_3": self._heading,
            "bulleted_list_item": self._bulleted,
            "numbered_list_item": self._numbered,
            "to_do": self._todo,
            "toggle": self._toggle,
            "code": self._code,
            "quote": self._quote,
            "callout": self._callout,
            "divider": lambda block, ctx: "---",
            "image": self._image,
            "video": self._link_media,
            "file": self._link_media,
            "pdf": self._link_media,
            "audio": self._link_media,
            "embed": self._bookmark,
            "bookmark": self._bookmark,
            "link_preview": self._bookmark,
            "equation": self._equation,
            "table": self._table,
            "column_list": self._column_list,
            "synced_block": self._passthrough,
            "template": self._passthrough,
        }

    def convert(self, blocks: list[NotionBlock]) -> str:
        """
        Convert top-level page blocks to markdown.

        Returns:
            The markdown body, ending with a single newline (empty string
            for a page without content).
        """
        body = self._convert_blocks(blocks, ConversionContext(), top_level=True)
        return self._normalize_whitespace(body)

    # =========================================================================
    # Traversal
    # =========================================================================

    def _convert_blocks(
        self, blocks: list[NotionBlock], context: ConversionContext, top_level: bool = False
    ) -> str:
        chunks: list[str] = []
        prev_type: Optional[str] = None

        for block in blocks:
            if block.type != "numbered_list_item":
                context.numbered_list_counter = 0

            handler = self._handlers.get(block.type)
            markdown = handler(block, context) if handler else None
            if markdown is None:
                continue

            if chunks:
                same_list = prev_type in LIST_TYPES and block.type in LIST_TYPES
                chunks.append("\n" if same_list or not top_level else "\n\n")
            chunks.append(markdown)
            prev_type = block.type

        return "".join(chunks)

    def _children(self, block: NotionBlock, context: ConversionContext, indent: bool = True) -> str:
        if not block.children:
            return ""

        saved_counter = context.numbered_list_counter
        context.numbered_list_counter = 0
        text = self._convert_blocks(block.children, context)
        context.numbered_list_counter = saved_counter

        if indent:
            text = "\n".join(f"  {line}" if line else line for line in text.split("\n"))
        return text

    def _with_children(self, head: str, block: NotionBlock, context: ConversionContext) -> str:
        children = self._children(block, context)
        return f"{head}\n{children}" if children else head

    # =========================================================================
    # Block handlers
    # =========================================================================

    def _paragraph(self, block: NotionBlock, context: ConversionContext) -> str:
        text = rich_text_to_markdown(block.content.get("rich_text", []))
        return self._with_children(text, block, context)

    def _heading(self, block: NotionBlock, context: ConversionContext) -> Optional[str]:
        text = rich_text_to_markdown(block.content.get("rich_text", []))
        if not text:
            return None
        level = int(block.type[-1])
        heading = f"{'#' * level} {text}"

        # toggleable headings
        if block.children:
            return f"{heading}\n\n{self._children(block, context, indent=False)}"
        return heading

    def _bulleted(self, block: NotionBlock, context: ConversionContext) -> str:
        text = rich_text_to_markdown(block.content.get("rich_text", []))
        return self._with_children(f"- {text}", block, context)

    def _numbered(self, block: NotionBlock, context: ConversionContext) -> str:
        context.numbered_list_counter += 1
        text = rich_text_to_markdown(block.content.get("rich_text", []))
        return self._with_children(f"{context.numbered_list_counter}. {text}", block, context)

    def _todo(self, block: NotionBlock, context: ConversionContext) -> str:
        text = rich_text_to_markdown(block.content.get("rich_text", []))
        box = "[x]" if block.content.get("checked") else "[ ]"
        return self._with_children(f"- {box} {text}", block, context)

    def _toggle(self, block: NotionBlock, context: ConversionContext) -> str:
        summary = rich_text_to_markdown(block.content.get("rich_text", []))
        inner = self._children(block, context, indent=False)
        return f"<details>\n<summary>{summary}</summary>\n\n{inner}\n\n</details>"

    def _code(self, block: NotionBlock, context: ConversionContext) -> str:
        code = plain_text(block.content.get("rich_text", []))
        language = block.content.get("language", "").lower()
        language = LANGUAGE_MAP.get(language, language)
        return f"```{language}\n{code}\n```"

    def _quote(self, block: NotionBlock, context: ConversionContext) -> str:
        text = rich_text_to_markdown(block.content.get("rich_text", []))
        children = self._children(block, context, indent=False)
        if children:
            text = f"{text}\n{children}"
        return "\n".join(f"> {line}" if line else ">" for line in text.split("\n"))

    def _callout(self, block: NotionBlock, context: ConversionContext) -> str:
        icon = block.content.get("icon") or {}
        emoji = icon.get("emoji", "") if icon.get("type") == "emoji" else ""
        text = rich_text_to_markdown(block.content.get("rich_text", []))
        if emoji:
            text = f"{emoji} {text}"
        children = self._children(block, context, indent=False)
        if children:
            text = f"{text}\n{children}"
        return "\n".join(f"> {line}" if line else ">" for line in text.split("\n"))

    def _image(self, block: NotionBlock, context: ConversionContext) -> Optional[str]:
        url = _media_url(block.content)
        if not url:
            return None
        caption = plain_text(block.content.get("caption", []))
        return f"![{caption}]({url})"

    def _link_media(self, block: NotionBlock, context: ConversionContext) -> Optional[str]:
        url = _media_url(block.content)
        if not url:
            return None
        caption = plain_text(block.content.get("caption", []))
        name = caption or block.content.get("name") or block.type.capitalize()
        return f"[{name}]({url})"

    def _bookmark(self, block: NotionBlock, context: ConversionContext) -> Optional[str]:
        url = block.content.get("url")
        if not url:
            return None
        caption = plain_text(block.content.get("caption", []))
        return f"[{caption or url}]({url})"

    def _equation(self, block: NotionBlock, context: ConversionContext) -> str:
        return f"$$\n{block.content.get('expression', '')}\n$$"

    def _table(self, block: NotionBlock, context: ConversionContext) -> Optional[str]:
        rows = [child for child in block.children if child.type == "table_row"]
        if not rows:
            return None

        def render_row(row: NotionBlock) -> str:
            cells = [
                rich_text_to_markdown(cell).replace("|", "\\|")
                for cell in row.content.get("cells", [])
            ]
            return "| " + " | ".join(cells) + " |"

        width = len(rows[0].content.get("cells", []))
        separator = "| " + " | ".join("---" for _ in range(width)) + " |"

        if block.content.get("has_column_header", False):
            header, body = render_row(rows[0]), rows[1:]
        else:
            # GFM tables need a header row
            header, body = "|" + "   |" * width, rows

        lines = [header, separator]
        lines.extend(render_row(row) for row in body)
        return "\n".join(lines)

    def _column_list(self, block: NotionBlock, context: ConversionContext) -> str:
        columns = [
            self._children(column, context, indent=False)
            for column in block.children
            if column.type == "column"
        ]
        return "\n\n".join(c for c in columns if c)

    def _passthrough(self, block: NotionBlock, context: ConversionContext) -> Optional[str]:
        return self._children(block, context, indent=False) or None

    # =========================================================================
    # Utilities
    # =========================================================================

    def _normalize_whitespace(self, content: str) -> str:
        """Strip trailing spaces and collapse runs of blank lines outside code."""
        lines = [line.rstrip() for line in content.split("\n")]

        result = []
        blank_count = 0
        in_code = False
        for line in lines:
            if line.lstrip().startswith("```"):
                in_code = not in_code
            if in_code:
                blank_count = 0
            elif not line:
                blank_count += 1
                if blank_count > 1:
                    continue
            else:
                blank_count = 0
            result.append(line)

        content = "\n".join(result).strip()
        return content + "\n" if content else ""
