"""
Markdown -> HTML rendering for post bodies.

Post content is authored by the site owner, so raw HTML passes through
untouched. Task lists, bare-URL autolinks and footnotes follow GitHub.
Fenced code is highlighted with Pygments using inline styles from a
fixed dark theme.
"""

from html import escape
from typing import Optional

from markdown_it import MarkdownIt
from mdit_py_plugins.footnote import footnote_plugin
from mdit_py_plugins.tasklists import tasklists_plugin
from pygments import highlight
from pygments.formatters import HtmlFormatter
from pygments.lexers import TextLexer, get_lexer_by_name
from pygments.styles import get_style_by_name
from pygments.util import ClassNotFound

CODE_THEME = "github-dark"
DEFAULT_LANGUAGE = "plaintext"

_formatter = HtmlFormatter(style=CODE_THEME, noclasses=True, nowrap=True)
_background = get_style_by_name(CODE_THEME).background_color


def _lexer_for(lang: str):
    if not lang or lang == DEFAULT_LANGUAGE:
        return TextLexer()
    try:
        return get_lexer_by_name(lang)
    except ClassNotFound:
        return TextLexer()


def highlight_code(code: str, lang: Optional[str], attrs: Optional[str] = None) -> str:
    """Render one fenced block as a `<pre>` element."""
    language = (lang or "").strip().lower() or DEFAULT_LANGUAGE
    body = highlight(code, _lexer_for(language), _formatter)
    return (
        f'<pre style="background-color: {_background}" '
        f'data-language="{escape(language)}" data-theme="{CODE_THEME}">'
        f"<code>{body}</code></pre>"
    )


def _make_parser() -> MarkdownIt:
    md = MarkdownIt(
        "gfm-like",
        options_update={"linkify": True, "html": True, "highlight": highlight_code},
    )
    return md.use(tasklists_plugin).use(footnote_plugin)


_parser = _make_parser()


def render_markdown(markdown: str) -> str:
    """
    Convert a post body to HTML.

    Errors from the parser or the highlighter are not caught here.
    """
    return _parser.render(markdown)
