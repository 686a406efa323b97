"""
Post repository.

Reads `.mdx` files with YAML frontmatter from the content root and
provides:
- Single post lookup by slug (with rendered HTML and TOC)
- Published/listed filtering and date ordering
- Category/tag views and pagination
- Full-text search
- Directory-based category rewriting
"""

import math
from dataclasses import asdict, dataclass, field
from datetime import date, datetime, timezone
from pathlib import Path
from typing import Any, Iterable, Optional

import frontmatter
import yaml
from rich.console import Console

from .config import DEFAULT_CATEGORY, SUMMARY_CATEGORY, SUMMARY_KEYWORDS
from .rendering import render_markdown
from .slugs import SlugResolver, decode_slug
from .toc import TocItem, add_heading_ids, extract_toc

console = Console()

POSTS_PER_PAGE = 10
DEFAULT_POST_CATEGORY = "uncategorized"
STANDALONE_DIR = "standalone"


@dataclass(frozen=True)
class Post:
    """One content file, as read from disk."""

    slug: str
    file_path: str
    title: str
    description: str
    date: str
    category: str
    tags: list[str] = field(default_factory=list)
    series: Optional[str] = None
    published: bool = True
    listed: bool = True
    cover: Optional[str] = None
    content: str = ""

    def summary(self) -> dict:
        """Fields exposed by search and listing responses."""
        return {
            "slug": self.slug,
            "title": self.title,
            "description": self.description,
            "category": self.category,
            "tags": list(self.tags),
            "date": self.date,
        }


@dataclass(frozen=True)
class RenderedPost:
    post: Post
    html: str
    toc: list[TocItem]

    def to_dict(self) -> dict:
        data = asdict(self.post)
        data["html"] = self.html
        data["toc"] = [item.to_dict() for item in self.toc]
        return data


def _as_date_string(value: Any) -> str:
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, date):
        return value.isoformat()
    if value:
        return str(value)
    return datetime.now(timezone.utc).isoformat()


def _as_text(value: Any, default: str = "") -> str:
    if value is None or value == "":
        return default
    return str(value)


def _as_tags(value: Any) -> list[str]:
    if not value:
        return []
    if isinstance(value, str):
        return [value]
    return [str(tag) for tag in value]


def date_sort_key(value: str) -> datetime:
    """Parse a frontmatter date for ordering; unparseable dates sort last."""
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return datetime.min
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
    return parsed


class PostRepository:
    """
    Facade over the content directory used by pages, search and the feed.

    Posts are re-read from disk on every call; only the slug index is
    cached (see `SlugResolver`).
    """

    def __init__(
        self,
        content_dir: Path,
        page_size: int = POSTS_PER_PAGE,
        resolver: Optional[SlugResolver] = None,
    ):
        """
        Initialize the repository.

        Args:
            content_dir: Root directory holding the `.mdx` files.
            page_size: Number of posts per listing page.
            resolver: Optional pre-built slug resolver to share.
        """
        if page_size < 1:
            raise ValueError("page_size must be positive")
        self.content_dir = Path(content_dir)
        self.page_size = page_size
        self.resolver = resolver or SlugResolver(self.content_dir)

    # =========================================================================
    # Single posts
    # =========================================================================

    def get_post(self, slug: str) -> Optional[Post]:
        """
        Load a post regardless of its published/listed flags.

        Returns:
            The Post, or None if the slug is unknown or the file is gone.
        """
        rel_path = self.resolver.resolve(slug)
        if rel_path is None:
            return None

        full_path = self.content_dir / rel_path
        if not full_path.exists():
            return None

        parsed = frontmatter.load(str(full_path))
        data = parsed.metadata or {}

        parts = rel_path.split("/")
        dir_series = parts[0] if len(parts) > 1 else None

        return Post(
            slug=decode_slug(slug),
            file_path=rel_path,
            title=_as_text(data.get("title"), "Untitled"),
            description=_as_text(data.get("description")),
            date=_as_date_string(data.get("date")),
            category=_as_text(data.get("category"), DEFAULT_POST_CATEGORY),
            tags=_as_tags(data.get("tags")),
            series=_as_text(data.get("series")) or dir_series,
            published=data.get("published") is not False,
            listed=data.get("listed") is not False,
            cover=_as_text(data.get("cover")) or None,
            content=parsed.content,
        )

    def get_published_post(self, slug: str) -> Optional[Post]:
        """Like `get_post`, but unpublished posts are treated as missing."""
        post = self.get_post(slug)
        if post is None or not post.published:
            return None
        return post

    def get_post_with_html(self, slug: str) -> Optional[RenderedPost]:
        """Render a published post and extract its table of contents."""
        post = self.get_published_post(slug)
        if post is None:
            return None

        html = add_heading_ids(render_markdown(post.content))
        return RenderedPost(post=post, html=html, toc=extract_toc(html))

    # =========================================================================
    # Listings
    # =========================================================================

    def all_posts(self) -> list[Post]:
        """Published and listed posts, newest first."""
        posts = []
        for slug in self.resolver.slugs():
            post = self.get_post(slug)
            if post is not None and post.published and post.listed:
                posts.append(post)

        # sorted() is stable, so equal dates keep scan order
        return sorted(posts, key=lambda p: date_sort_key(p.date), reverse=True)

    def posts_by_category(self, category: str) -> list[Post]:
        return [p for p in self.all_posts() if p.category == category]

    def posts_by_tag(self, tag: str) -> list[Post]:
        return [p for p in self.all_posts() if tag in p.tags]

    def categories(self) -> list[str]:
        return list(dict.fromkeys(p.category for p in self.all_posts()))

    def tags(self) -> list[str]:
        return list(dict.fromkeys(tag for p in self.all_posts() for tag in p.tags))

    def paginated_posts(self, page: int) -> list[Post]:
        """Posts for a 1-based page number; out-of-range pages are empty."""
        if page < 1:
            return []
        start = (page - 1) * self.page_size
        return self.all_posts()[start:start + self.page_size]

    def total_pages(self) -> int:
        return math.ceil(len(self.all_posts()) / self.page_size)

    def search(self, query: str) -> list[Post]:
        """Case-insensitive substring search over listed posts."""
        needle = query.strip().lower()
        if not needle:
            return []

        results = []
        for post in self.all_posts():
            haystack = "\n".join(
                [post.title, post.description, post.category, *post.tags, post.content]
            ).lower()
            if needle in haystack:
                results.append(post)
        return results


# =============================================================================
# Category rewriting
# =============================================================================


def category_for_path(
    rel_path: str,
    category_map: dict[str, str],
    default: str = DEFAULT_CATEGORY,
    summary_keywords: Iterable[str] = SUMMARY_KEYWORDS,
    summary_category: str = SUMMARY_CATEGORY,
) -> str:
    """
    Pick a category for a content file from its series directory.

    Examples:
        "rag/intro.mdx" -> category_map["rag"]
        "standalone/2024-总结.mdx" -> summary_category
        "intro.mdx" -> default
    """
    parts = rel_path.split("/")
    if len(parts) < 2:
        return default

    directory = parts[0]
    if directory == STANDALONE_DIR:
        name = parts[-1].lower()
        if any(keyword.lower() in name for keyword in summary_keywords):
            return summary_category

    return category_map.get(directory, default)


def update_categories(
    content_dir: Path,
    category_map: dict[str, str],
    default: str = DEFAULT_CATEGORY,
    dry_run: bool = False,
) -> list[str]:
    """
    Rewrite the `category` frontmatter field of every post from its directory.

    Args:
        content_dir: Root directory holding the `.mdx` files.
        category_map: Series directory -> category label.
        default: Category for root-level or unmapped files.
        dry_run: Report changes without writing files.

    Returns:
        Relative paths of the files whose category changed.
    """
    content_dir = Path(content_dir)
    changed: list[str] = []

    if not content_dir.exists():
        return changed

    for path in sorted(content_dir.rglob("*.mdx")):
        rel_path = path.relative_to(content_dir).as_posix()
        try:
            post = frontmatter.load(str(path))
        except (yaml.YAMLError, UnicodeDecodeError) as e:
            console.print(f"[red]✗ Failed to read {rel_path}: {e}[/red]")
            continue

        new_category = category_for_path(rel_path, category_map, default)
        old_category = post.metadata.get("category")
        if old_category == new_category:
            continue

        post.metadata["category"] = new_category
        if not dry_run:
            path.write_text(
                frontmatter.dumps(post, sort_keys=False) + "\n", encoding="utf-8"
            )

        console.print(
            f"[green]✓[/green] {rel_path}: {old_category or DEFAULT_POST_CATEGORY} → {new_category}"
        )
        changed.append(rel_path)

    return changed
