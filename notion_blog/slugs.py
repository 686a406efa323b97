"""
Slug handling.

- `SlugResolver` maps content files to URL slugs (file stem, no directory)
- `generate_slug` derives a file slug from an exported Notion page title
"""

import re
from pathlib import Path
from typing import Optional
from urllib.parse import unquote

from rich.console import Console

console = Console()

POST_EXTENSION = ".mdx"
MAX_SLUG_LENGTH = 50

_QUOTES = re.compile(r"[\"'“”‘’]")
# ASCII word characters and CJK ideographs only
_NON_SLUG_CHARS = re.compile(r"[^A-Za-z0-9_\s一-龥-]")
_WHITESPACE = re.compile(r"\s+")
_HYPHENS = re.compile(r"-+")


class SlugCollisionError(ValueError):
    """Two content files share the same file stem."""


class SlugResolver:
    """
    Process-lifetime index of slug -> relative file path.

    The index is built lazily on first use and never refreshed on its own.
    Files added after that are invisible until `refresh()` is called.

    Two files with the same stem in different directories collide: the
    later one in sorted scan order wins, the collision is reported and
    kept in `collisions`. Pass `strict=True` to raise instead.
    """

    def __init__(self, content_dir: Path, strict: bool = False):
        self.content_dir = Path(content_dir)
        self.strict = strict
        self.collisions: list[tuple[str, str, str]] = []
        self._index: Optional[dict[str, str]] = None

    def _scan(self) -> list[str]:
        if not self.content_dir.exists():
            return []
        return sorted(
            path.relative_to(self.content_dir).as_posix()
            for path in self.content_dir.rglob(f"*{POST_EXTENSION}")
            if path.is_file()
        )

    def _build(self) -> dict[str, str]:
        index: dict[str, str] = {}
        collisions: list[tuple[str, str, str]] = []

        for rel_path in self._scan():
            slug = Path(rel_path).stem
            previous = index.get(slug)
            if previous is not None:
                if self.strict:
                    raise SlugCollisionError(
                        f"Slug '{slug}' is used by both {previous} and {rel_path}"
                    )
                console.print(
                    f"[yellow]Warning: slug '{slug}' of {previous} "
                    f"is shadowed by {rel_path}[/yellow]"
                )
                collisions.append((slug, previous, rel_path))
            index[slug] = rel_path

        self.collisions = collisions
        return index

    @property
    def index(self) -> dict[str, str]:
        if self._index is None:
            self._index = self._build()
        return self._index

    def refresh(self) -> None:
        """Drop the cached index; the next lookup rescans the content root."""
        self._index = None

    def slugs(self) -> list[str]:
        return list(self.index.keys())

    def resolve(self, slug: str) -> Optional[str]:
        """
        Look up the relative path for a slug.

        The slug is percent-decoded first, so both `%E4%B8%AD` and `中`
        resolve. Undecodable input resolves to None.
        """
        decoded = decode_slug(slug)
        if decoded is None:
            return None
        return self.index.get(decoded)


def decode_slug(slug: str) -> Optional[str]:
    """Percent-decode a slug, returning None when it is not valid UTF-8."""
    try:
        return unquote(slug, errors="strict")
    except UnicodeDecodeError:
        return None


def generate_slug(title: str, page_id: str) -> str:
    """
    Generate a file slug from a page title.

    Examples:
        "Dify 入门: 第一章" -> "Dify-入门-第一章"
        "" -> "post-5c4795ad"
    """
    slug = _QUOTES.sub("", title)
    slug = _NON_SLUG_CHARS.sub("", slug)
    slug = _WHITESPACE.sub("-", slug)
    slug = _HYPHENS.sub("-", slug)
    slug = slug.strip()[:MAX_SLUG_LENGTH]

    if not slug or slug == "untitled":
        slug = f"post-{page_id.replace('-', '')[:8]}"

    return slug
