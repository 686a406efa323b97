"""
Heading ids and table of contents for rendered post HTML.

Both passes go through a `HeadingScanner`. The default scanner matches
heading tags with a regular expression, which is fine for the HTML the
renderer produces itself but does not understand nested headings.
"""

import re
from dataclasses import dataclass
from typing import Iterable, Iterator, Optional, Protocol

ID_LEVELS = (2, 3, 4)
TOC_LEVELS = (2, 3)

_TAG = re.compile(r"<[^>]*>")
_ID_ATTR = re.compile(
    r"""(?:^|\s)id\s*=\s*(?:(["'])(.*?)\1|([^\s"'>]+))""", re.IGNORECASE
)
_NON_HEADING_CHARS = re.compile(r"[^A-Za-z0-9_\s一-龥-]")
_WHITESPACE = re.compile(r"\s+")
_HYPHENS = re.compile(r"-+")


@dataclass(frozen=True)
class TocItem:
    id: str
    text: str
    level: int

    def to_dict(self) -> dict:
        return {"id": self.id, "text": self.text, "level": self.level}


@dataclass(frozen=True)
class HeadingMatch:
    """One heading element found in an HTML string."""

    level: int
    attrs: str
    inner_html: str
    start: int
    end: int

    @property
    def existing_id(self) -> Optional[str]:
        m = _ID_ATTR.search(self.attrs)
        if m is None:
            return None
        return m.group(2) if m.group(1) else m.group(3)

    @property
    def text(self) -> str:
        return strip_tags(self.inner_html).strip()


class HeadingScanner(Protocol):
    def iter_headings(self, html: str, levels: Iterable[int]) -> Iterator[HeadingMatch]:
        ...


class RegexHeadingScanner:
    """Finds `<hN ...>...</hN>` pairs with a regular expression."""

    _pattern = re.compile(
        r"<h([1-6])(\s[^>]*)?>(.*?)</h\1\s*>", re.IGNORECASE | re.DOTALL
    )

    def iter_headings(self, html: str, levels: Iterable[int]) -> Iterator[HeadingMatch]:
        wanted = set(levels)
        for m in self._pattern.finditer(html):
            level = int(m.group(1))
            if level not in wanted:
                continue
            yield HeadingMatch(
                level=level,
                attrs=m.group(2) or "",
                inner_html=m.group(3),
                start=m.start(),
                end=m.end(),
            )


DEFAULT_SCANNER = RegexHeadingScanner()


def strip_tags(html: str) -> str:
    return _TAG.sub("", html)


def slugify_heading(text: str) -> str:
    """
    Turn heading text into an anchor id.

    Keeps ASCII letters, digits, underscores, hyphens and CJK
    ideographs; whitespace becomes a single hyphen.

    Examples:
        "Getting Started!" -> "getting-started"
        "RAG 入门" -> "rag-入门"
    """
    s = text.lower()
    s = _NON_HEADING_CHARS.sub("", s)
    s = _WHITESPACE.sub("-", s.strip())
    s = _HYPHENS.sub("-", s)
    return s.strip("-")


def add_heading_ids(html: str, scanner: Optional[HeadingScanner] = None) -> str:
    """
    Give every h2-h4 without an id attribute one derived from its text.

    Headings that already carry an id are left alone, so running this
    twice is a no-op. Duplicate headings get duplicate ids.
    """
    scanner = scanner or DEFAULT_SCANNER
    parts: list[str] = []
    last = 0

    for heading in scanner.iter_headings(html, ID_LEVELS):
        if heading.existing_id is not None:
            continue
        hid = slugify_heading(heading.text)
        parts.append(html[last:heading.start])
        parts.append(
            f'<h{heading.level}{heading.attrs} id="{hid}">'
            f"{heading.inner_html}</h{heading.level}>"
        )
        last = heading.end

    parts.append(html[last:])
    return "".join(parts)


def extract_toc(html: str, scanner: Optional[HeadingScanner] = None) -> list[TocItem]:
    """Collect h2/h3 headings in document order. Empty headings are skipped."""
    scanner = scanner or DEFAULT_SCANNER
    toc: list[TocItem] = []

    for heading in scanner.iter_headings(html, TOC_LEVELS):
        text = heading.text
        if not text:
            continue
        hid = heading.existing_id or slugify_heading(text)
        toc.append(TocItem(id=hid, text=text, level=heading.level))

    return toc
