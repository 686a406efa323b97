"""
Notion → blog export pipeline.

Orchestrates:
- Page discovery (child pages and databases, optionally recursive)
- Property extraction and title fallbacks
- Content conversion and image re-hosting
- Series classification
- Writing `.mdx` files with YAML frontmatter
- The "about" summary of the root page

The run is strictly sequential, with a fixed delay between pages.
"""

import json
import re
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path, PurePosixPath
from typing import Any, Callable, Optional
from urllib.parse import urlparse

import yaml
from rich.console import Console
from rich.table import Table

from .config import DEFAULT_BIO, Config, SeriesRule
from .markdown_converter import MarkdownConverter
from .notion_api import NotionAPI, PageProperties, database_entry_title, download_image, plain_text
from .slugs import POST_EXTENSION, generate_slug

console = Console()

DEFAULT_MAX_DEPTH = 3
MAX_TITLE_LENGTH = 50
ABOUT_BIO_LIMIT = 500

_IMAGE_MD = re.compile(r"!\[([^\]]*)\]\(([^)]+)\)")
_LEADING_MARKERS = re.compile(r"^[#*_\->\s]+")

Downloader = Callable[[str, Path], Optional[Path]]


@dataclass(frozen=True)
class PageNode:
    """A page found while walking the workspace tree."""

    id: str
    title: str
    depth: int


@dataclass
class TaskResult:
    """Outcome of one queued page export."""

    page_id: str
    ok: bool
    value: Any = None
    error: Optional[BaseException] = None


@dataclass
class ExportResult:
    """Result of an export run."""

    pages_exported: list[str] = field(default_factory=list)
    pages_skipped: list[str] = field(default_factory=list)
    pages_failed: list[str] = field(default_factory=list)
    images_downloaded: int = 0
    about: Optional[dict] = None

    @property
    def success(self) -> bool:
        """Check if every page was written."""
        return len(self.pages_failed) == 0


class RateLimitedQueue:
    """
    Runs page tasks one at a time with a fixed pause between them.

    There is no retry: a task that raises is reported as failed and the
    queue moves on.
    """

    def __init__(self, delay: float = 0.5, sleep: Callable[[float], None] = time.sleep):
        self.delay = delay
        self._sleep = sleep
        self._has_run = False

    def submit(self, page_id: str, fn: Callable[..., Any], *args, **kwargs) -> TaskResult:
        if self._has_run and self.delay > 0:
            self._sleep(self.delay)
        self._has_run = True

        try:
            return TaskResult(page_id=page_id, ok=True, value=fn(*args, **kwargs))
        except Exception as e:  # noqa: BLE001
            return TaskResult(page_id=page_id, ok=False, error=e)


# =============================================================================
# Pure helpers
# =============================================================================


def detect_series(title: str, rules: list[SeriesRule]) -> Optional[str]:
    """First rule with a pattern matching the title (case-insensitive)."""
    for rule in rules:
        for pattern in rule.patterns:
            if re.search(pattern, title, re.IGNORECASE):
                return rule.name
    return None


def dedupe_pages(pages: list[PageNode]) -> list[PageNode]:
    """Drop repeated page ids, keeping the first occurrence."""
    seen: set[str] = set()
    unique = []
    for page in pages:
        if page.id in seen:
            continue
        seen.add(page.id)
        unique.append(page)
    return unique


def extract_title_from_blocks(blocks: list[dict]) -> str:
    """
    Guess a title from the first blocks of a page.

    A non-empty heading_1/heading_2 wins. The first paragraph is used when
    it is longer than 5 characters; scanning stops at that paragraph.
    """
    for block in blocks:
        block_type = block.get("type")
        if block_type in ("heading_1", "heading_2"):
            text = plain_text(block.get(block_type, {}).get("rich_text", []))
            if text:
                return text
        elif block_type == "paragraph":
            text = plain_text(block.get("paragraph", {}).get("rich_text", []))
            if len(text) > 5:
                return text[:MAX_TITLE_LENGTH]
            break
    return ""


def extract_title_from_markdown(markdown: str) -> str:
    """First h1/h2/h3 heading, else the first non-blank line without markers."""
    for level in (1, 2, 3):
        m = re.search(rf"^{'#' * level}\s+(.+)$", markdown, re.MULTILINE)
        if m:
            return m.group(1).strip()

    for line in markdown.split("\n"):
        if line.strip():
            cleaned = _LEADING_MARKERS.sub("", line).strip()
            return cleaned[:MAX_TITLE_LENGTH]
    return ""


def image_extension(url: str) -> str:
    return PurePosixPath(urlparse(url).path).suffix or ".png"


def build_frontmatter(
    title: str,
    props: PageProperties,
    cover: Optional[str],
    listed: bool,
) -> str:
    """YAML frontmatter block with a fixed key order."""
    data: dict[str, Any] = {
        "title": title,
        "description": props.description,
        "date": props.date,
        "category": props.category,
        "tags": list(props.tags),
        "published": True,
    }
    if cover:
        data["cover"] = cover
    if not listed:
        data["listed"] = False

    body = yaml.safe_dump(data, sort_keys=False, allow_unicode=True, default_flow_style=False)
    return f"---\n{body}---\n\n"


# =============================================================================
# Exporter
# =============================================================================


class NotionExporter:
    """
    Exports the pages under a Notion root page as blog posts.

    Coordinates the export:
    1. Write the root page's "about" summary
    2. Collect child pages (and database entries) up to a maximum depth
    3. Export each page once, pausing between pages
    4. Print a summary
    """

    def __init__(
        self,
        config: Config,
        notion_api: Optional[NotionAPI] = None,
        converter: Optional[MarkdownConverter] = None,
        downloader: Downloader = download_image,
        queue: Optional[RateLimitedQueue] = None,
    ):
        """
        Initialize the exporter.

        Args:
            config: Configuration instance.
            notion_api: API wrapper; built from config if omitted.
            converter: Block → markdown converter.
            downloader: Function saving a URL to a path, None on failure.
            queue: Page task queue; defaults to config.export_delay spacing.
        """
        self.config = config
        self.notion_api = notion_api or NotionAPI(config)
        self.converter = converter or MarkdownConverter()
        self.downloader = downloader
        self.queue = queue or RateLimitedQueue(delay=config.export_delay)
        self._images_downloaded = 0

    # =========================================================================
    # Traversal
    # =========================================================================

    def collect_pages(
        self,
        page_id: str,
        visited: set[str],
        recursive: bool = False,
        depth: int = 0,
        max_depth: int = DEFAULT_MAX_DEPTH,
    ) -> list[PageNode]:
        """
        List the pages below `page_id`.

        Child pages and database entries are recorded at `depth`. In
        recursive mode each one not already in `visited` is descended into
        at `depth + 1`. Only the first page of results of a listing or a
        database query is read.
        """
        if depth > max_depth:
            console.print(
                f"[yellow]  ⚠️ Max depth ({max_depth}) reached, skipping deeper pages[/yellow]"
            )
            return []

        pages: list[PageNode] = []

        for block in self.notion_api.list_children(page_id):
            block_type = block.get("type")

            if block_type == "child_page":
                node = PageNode(
                    id=block["id"],
                    title=block.get("child_page", {}).get("title", ""),
                    depth=depth,
                )
                pages.append(node)
                pages.extend(self._descend(node, visited, recursive, depth, max_depth))

            elif block_type == "child_database":
                try:
                    entries = self.notion_api.query_database(block["id"])
                except Exception as e:  # noqa: BLE001
                    console.print(
                        f"[yellow]  ⚠️ Cannot access database {block['id']}: {e}[/yellow]"
                    )
                    continue

                for entry in entries:
                    node = PageNode(
                        id=entry["id"], title=database_entry_title(entry), depth=depth
                    )
                    pages.append(node)
                    pages.extend(self._descend(node, visited, recursive, depth, max_depth))

        return pages

    def _descend(
        self,
        node: PageNode,
        visited: set[str],
        recursive: bool,
        depth: int,
        max_depth: int,
    ) -> list[PageNode]:
        if not recursive or node.id in visited:
            return []
        try:
            return self.collect_pages(node.id, visited, True, depth + 1, max_depth)
        except Exception as e:  # noqa: BLE001
            console.print(
                f"[yellow]  ⚠️ Cannot list pages under '{node.title}' ({node.id}): {e}[/yellow]"
            )
            return []

    # =========================================================================
    # Single page
    # =========================================================================

    def _fetch_properties(self, page_id: str) -> PageProperties:
        props = self.notion_api.get_page_properties(page_id)
        if props.has_title:
            return props

        console.print("[dim]  🔍 No title property, looking at the page content...[/dim]")
        try:
            title = extract_title_from_blocks(self.notion_api.list_children(page_id, page_size=10))
        except Exception as e:  # noqa: BLE001
            console.print(f"[yellow]  ⚠️ Cannot read blocks for a title: {e}[/yellow]")
            title = ""

        if title:
            props.title = title
            console.print(f"[green]  ✅ Title from content: {title}[/green]")
        return props

    def _image_dir(self, slug: str) -> Path:
        return self.config.images_dir / slug

    def _image_url(self, slug: str, name: str) -> str:
        return f"{self.config.images_url_prefix.rstrip('/')}/{slug}/{name}"

    def process_images(self, markdown: str, slug: str) -> str:
        """
        Download remote images and point the markdown at the local copies.

        Images are numbered in document order; a failed download keeps the
        remote URL. Non-http references are left untouched.
        """
        processed = markdown
        index = 0

        for m in list(_IMAGE_MD.finditer(markdown)):
            alt, url = m.group(1), m.group(2)
            if not url.startswith("http"):
                continue

            index += 1
            name = f"image-{index}{image_extension(url)}"
            console.print(f"[dim]  📷 Downloading image {index}...[/dim]")
            if self.downloader(url, self._image_dir(slug) / name):
                self._images_downloaded += 1
                processed = processed.replace(m.group(0), f"![{alt}]({self._image_url(slug, name)})", 1)

        return processed

    def export_page(self, node: PageNode) -> Path:
        """
        Export one page to `<content_dir>/<series>/<slug>.mdx`.

        Raises whatever the Notion API raises; the caller decides whether
        that stops the run.
        """
        props = self._fetch_properties(node.id)

        blocks = self.notion_api.get_page_blocks(node.id)
        markdown = self.converter.convert(blocks)

        title = props.title
        if not props.has_title:
            title = extract_title_from_markdown(markdown) or title

        slug = generate_slug(title, node.id)
        series = detect_series(title, self.config.series_rules)
        output_dir = self.config.content_dir / series if series else self.config.content_dir
        output_dir.mkdir(parents=True, exist_ok=True)

        console.print(f"\n[cyan]📄 Exporting:[/cyan] {title}")
        console.print(f"[dim]   Slug: {slug}[/dim]")
        if series:
            console.print(f"[dim]   Series: {series}[/dim]")

        markdown = self.process_images(markdown, slug)

        cover = None
        if props.cover:
            console.print("[dim]  🖼️ Downloading cover...[/dim]")
            if self.downloader(props.cover, self._image_dir(slug) / "cover.jpg"):
                self._images_downloaded += 1
                cover = self._image_url(slug, "cover.jpg")

        # pages below the root level render on their own but stay off listings
        listed = node.depth == 0
        content = build_frontmatter(title, props, cover, listed) + markdown

        output_path = output_dir / f"{slug}{POST_EXTENSION}"
        output_path.write_text(content, encoding="utf-8")
        console.print(f"[green]  ✅ Saved: {output_path}[/green]")
        return output_path

    # =========================================================================
    # About
    # =========================================================================

    def export_about(self) -> Optional[dict]:
        """
        Write the root page's introduction to `config.about_output`.

        Paragraph text up to the first heading, child page or database
        becomes the bio; an image icon becomes the avatar.
        """
        console.print("\n[cyan]📝 Exporting root page introduction...[/cyan]")
        root_id = self.config.root_page_id

        try:
            props = self.notion_api.get_page_properties(root_id)
            blocks = self.notion_api.list_children(root_id, page_size=20)

            bio = ""
            for block in blocks:
                block_type = block.get("type")
                if block_type == "paragraph":
                    text = plain_text(block.get("paragraph", {}).get("rich_text", []))
                    if text and len(bio) < ABOUT_BIO_LIMIT:
                        bio = f"{bio} {text}" if bio else text
                elif block_type in ("heading_1", "heading_2", "heading_3", "child_page", "child_database"):
                    break

            avatar = None
            if props.icon and props.icon.startswith("http"):
                console.print("[dim]  🖼️ Downloading avatar...[/dim]")
                if self.downloader(props.icon, self.config.avatar_path):
                    avatar = self.config.avatar_url

            about = {
                "title": props.title,
                "bio": bio or DEFAULT_BIO,
                "avatar": avatar,
                "exportedAt": datetime.now(timezone.utc).isoformat(),
            }

            self.config.about_output.parent.mkdir(parents=True, exist_ok=True)
            with open(self.config.about_output, "w", encoding="utf-8") as f:
                json.dump(about, f, ensure_ascii=False, indent=2)
        except Exception as e:  # noqa: BLE001
            console.print(f"[red]  ❌ Failed to export introduction: {e}[/red]")
            return None

        console.print(f"[green]  ✅ Saved introduction: {self.config.about_output}[/green]")
        console.print(f"[dim]     Title: {about['title']}[/dim]")
        console.print(f"[dim]     Bio: {about['bio'][:100]}...[/dim]")
        console.print(f"[dim]     Avatar: {about['avatar'] or 'none'}[/dim]")
        return about

    # =========================================================================
    # Run
    # =========================================================================

    def run(
        self,
        recursive: bool = False,
        max_depth: int = DEFAULT_MAX_DEPTH,
        about_only: bool = False,
        visited: Optional[set[str]] = None,
    ) -> ExportResult:
        """
        Perform a full export.

        Args:
            recursive: Descend into nested pages and database entries.
            max_depth: Deepest level to descend to.
            about_only: Only write the root page introduction.
            visited: Page ids already exported; updated in place.

        Returns:
            ExportResult with details of the run.
        """
        visited = visited if visited is not None else set()
        result = ExportResult()

        console.print("\n[bold blue]🚀 Exporting posts from Notion[/bold blue]\n")
        if recursive:
            console.print(f"[cyan]📂 Recursive mode (max depth: {max_depth})[/cyan]")

        self.config.content_dir.mkdir(parents=True, exist_ok=True)
        self.config.images_dir.mkdir(parents=True, exist_ok=True)

        result.about = self.export_about()
        if about_only:
            console.print("\n[green]✨ Export complete![/green]")
            return result

        console.print("\n[cyan]📚 Collecting pages...[/cyan]")
        pages = dedupe_pages(
            self.collect_pages(self.config.root_page_id, visited, recursive, 0, max_depth)
        )
        console.print(f"\nFound {len(pages)} pages")

        if recursive:
            depth_counts: dict[int, int] = {}
            for page in pages:
                depth_counts[page.depth] = depth_counts.get(page.depth, 0) + 1
            for depth, count in sorted(depth_counts.items()):
                console.print(f"[dim]   Depth {depth}: {count} pages[/dim]")

        for page in pages:
            if page.id in visited:
                result.pages_skipped.append(page.title)
                continue
            visited.add(page.id)

            task = self.queue.submit(page.id, self.export_page, page)
            if task.ok:
                result.pages_exported.append(page.title)
            else:
                console.print(
                    f"[red]  ❌ Failed to export '{page.title}' ({page.id}): {task.error}[/red]"
                )
                result.pages_failed.append(page.title)

        result.images_downloaded = self._images_downloaded
        self._print_summary(result)
        return result

    def _print_summary(self, result: ExportResult) -> None:
        """Print export summary."""
        console.print("\n" + "=" * 50)
        console.print("[bold]Export Summary[/bold]")
        console.print("=" * 50)

        table = Table(show_header=False, box=None)
        table.add_column("Metric", style="cyan")
        table.add_column("Value", style="white")

        table.add_row("Posts directory", str(self.config.content_dir))
        table.add_row("Images directory", str(self.config.images_dir))
        table.add_row("Pages exported", str(len(result.pages_exported)))
        table.add_row("Pages skipped", str(len(result.pages_skipped)))
        table.add_row("Pages failed", str(len(result.pages_failed)))
        table.add_row("Images downloaded", str(result.images_downloaded))
        table.add_row("API requests", str(getattr(self.notion_api, "request_count", 0)))

        console.print(table)

        if result.pages_failed:
            console.print(f"\n[red]Failed:[/red] {', '.join(result.pages_failed)}")

        console.print("")
