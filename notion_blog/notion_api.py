"""
Notion API wrapper for the exporter.

Provides a small interface to Notion's API with:
- Rate limiting compliance
- Page property extraction
- Block fetching (single page of results or recursive)
- Image downloading
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional

import requests
from notion_client import Client
from notion_client.errors import APIResponseError
from ratelimit import limits, sleep_and_retry
from rich.console import Console

from .config import Config

console = Console()

# Notion API rate limit: 3 requests per second
RATE_LIMIT_CALLS = 3
RATE_LIMIT_PERIOD = 1  # second

NOTION_VERSION = "2022-06-28"
DOWNLOAD_TIMEOUT = 30  # seconds
DEFAULT_CATEGORY = "uncategorized"


def plain_text(rich_text: list[dict]) -> str:
    """Join the plain text of a Notion rich text array."""
    return "".join(t.get("plain_text", "") for t in rich_text or [])


def _file_url(obj: Optional[dict]) -> Optional[str]:
    """URL of an external/file object (covers, icons, images)."""
    if not obj:
        return None
    if obj.get("type") == "external":
        return obj.get("external", {}).get("url")
    if obj.get("type") == "file":
        return obj.get("file", {}).get("url")
    return None


@dataclass
class PageProperties:
    """Metadata of a Notion page used to build post frontmatter."""

    title: str = "Untitled"
    date: str = ""
    tags: list[str] = field(default_factory=list)
    category: str = DEFAULT_CATEGORY
    description: str = ""
    cover: Optional[str] = None
    icon: Optional[str] = None

    @property
    def has_title(self) -> bool:
        return bool(self.title) and self.title != "Untitled"

    @classmethod
    def from_api_response(cls, page: dict) -> "PageProperties":
        """Create PageProperties from a pages.retrieve response."""
        result = cls()

        # created_time is the fallback date
        created = page.get("created_time")
        if created:
            result.date = created.split("T")[0]

        props = page.get("properties") or {}

        # "Name" is the title property of database entries and wins
        for key in ("title", "Name"):
            prop = props.get(key) or {}
            if prop.get("type") == "title":
                result.title = plain_text(prop.get("title", [])) or "Untitled"

        date_prop = props.get("Date") or {}
        if date_prop.get("type") == "date" and date_prop.get("date"):
            result.date = date_prop["date"].get("start") or result.date

        created_prop = props.get("Created") or {}
        if not result.date and created_prop.get("type") == "created_time":
            result.date = created_prop.get("created_time", "").split("T")[0]

        tags_prop = props.get("Tags") or {}
        if tags_prop.get("type") == "multi_select":
            result.tags = [t["name"] for t in tags_prop.get("multi_select", [])]

        category_prop = props.get("Category") or {}
        if category_prop.get("type") == "select" and category_prop.get("select"):
            result.category = category_prop["select"].get("name") or DEFAULT_CATEGORY

        description_prop = props.get("Description") or {}
        if description_prop.get("type") == "rich_text":
            result.description = plain_text(description_prop.get("rich_text", []))

        result.cover = _file_url(page.get("cover"))

        icon = page.get("icon")
        if icon:
            if icon.get("type") == "emoji":
                result.icon = icon.get("emoji")
            else:
                result.icon = _file_url(icon)

        return result


def database_entry_title(entry: dict) -> str:
    """Title of a database entry: its first non-empty title property."""
    for prop in (entry.get("properties") or {}).values():
        if prop and prop.get("type") == "title" and prop.get("title"):
            return plain_text(prop["title"])
    return "Untitled"


@dataclass
class NotionBlock:
    """Represents a Notion block."""

    id: str
    type: str
    has_children: bool
    content: dict
    children: list["NotionBlock"]

    @classmethod
    def from_api_response(cls, block: dict) -> "NotionBlock":
        """Create NotionBlock from API response."""
        block_type = block["type"]
        content = block.get(block_type, {})

        return cls(
            id=block["id"],
            type=block_type,
            has_children=block.get("has_children", False),
            content=content,
            children=[],
        )


class NotionAPI:
    """
    Wrapper around the Notion API with rate limiting and utilities.

    Handles:
    - Authentication
    - Rate limiting (3 req/sec)
    - Block fetching
    - Image downloading

    API errors are printed and re-raised; callers decide whether a
    failure aborts anything.
    """

    def __init__(self, config: Config, client: Optional[Client] = None):
        """
        Initialize the Notion API client.

        Args:
            config: Configuration instance with the Notion token.
            client: Optional pre-built client (used by tests).
        """
        self.config = config
        self.client = client or Client(
            auth=config.notion_token, notion_version=NOTION_VERSION
        )
        self._request_count = 0

    @sleep_and_retry
    @limits(calls=RATE_LIMIT_CALLS, period=RATE_LIMIT_PERIOD)
    def _rate_limited_call(self, func, *args, **kwargs) -> Any:
        """Execute a rate-limited API call."""
        self._request_count += 1
        return func(*args, **kwargs)

    def retrieve_page(self, page_id: str) -> dict:
        """Raw pages.retrieve response."""
        try:
            return self._rate_limited_call(
                self.client.pages.retrieve,
                page_id=format_page_id(page_id),
            )
        except APIResponseError as e:
            console.print(f"[red]API Error fetching page {page_id}: {e}[/red]")
            raise

    def get_page_properties(self, page_id: str) -> PageProperties:
        return PageProperties.from_api_response(self.retrieve_page(page_id))

    def list_children(self, block_id: str, page_size: int = 100) -> list[dict]:
        """
        First page of a block's children, as raw API dicts.

        Only one request is made; blocks beyond `page_size` are not listed.
        """
        try:
            response = self._rate_limited_call(
                self.client.blocks.children.list,
                block_id=format_page_id(block_id),
                page_size=page_size,
            )
        except APIResponseError as e:
            console.print(f"[red]API Error listing children of {block_id}: {e}[/red]")
            raise
        return response.get("results", [])

    def query_database(self, database_id: str) -> list[dict]:
        """
        First page of a database query.

        TODO: follow `next_cursor` so databases larger than one result
        page are exported completely.
        """
        try:
            response = self._rate_limited_call(
                self.client.request,
                path=f"databases/{format_page_id(database_id)}/query",
                method="POST",
                body={},
            )
        except APIResponseError as e:
            console.print(f"[red]API Error querying database {database_id}: {e}[/red]")
            raise
        return [entry for entry in response.get("results", []) if "properties" in entry]

    def get_page_blocks(self, page_id: str, recursive: bool = True) -> list[NotionBlock]:
        """
        Get all blocks from a page.

        Args:
            page_id: The Notion page ID.
            recursive: Whether to fetch children recursively.

        Returns:
            List of NotionBlock objects (with children populated if recursive).
        """
        return self._fetch_blocks(page_id, recursive)

    def _fetch_blocks(self, block_id: str, recursive: bool) -> list[NotionBlock]:
        """Recursively fetch blocks."""
        blocks = []
        has_more = True
        start_cursor = None

        formatted_id = format_page_id(block_id)

        while has_more:
            kwargs = {"block_id": formatted_id}
            if start_cursor:
                kwargs["start_cursor"] = start_cursor
            try:
                response = self._rate_limited_call(
                    self.client.blocks.children.list, **kwargs
                )
            except APIResponseError as e:
                console.print(f"[red]API Error fetching blocks: {e}[/red]")
                raise

            for block_data in response.get("results", []):
                block = NotionBlock.from_api_response(block_data)

                # Child pages and databases are exported on their own
                if (
                    recursive
                    and block.has_children
                    and block.type not in ("child_page", "child_database")
                ):
                    block.children = self._fetch_blocks(block.id, recursive)

                blocks.append(block)

            has_more = response.get("has_more", False)
            start_cursor = response.get("next_cursor")

        return blocks

    @property
    def request_count(self) -> int:
        """Number of API requests made."""
        return self._request_count


def download_image(url: str, target_path: Path) -> Optional[Path]:
    """
    Download an image to `target_path`.

    Redirects are followed. Any non-200 status or network error yields
    None instead of raising, so callers keep the remote URL.
    """
    try:
        response = requests.get(
            url, timeout=DOWNLOAD_TIMEOUT, stream=True, allow_redirects=True
        )
    except requests.RequestException as e:
        console.print(f"[yellow]Warning: Failed to download image {url}: {e}[/yellow]")
        return None

    with response:
        if response.status_code != 200:
            console.print(
                f"[yellow]Warning: Failed to download image {url} "
                f"({response.status_code})[/yellow]"
            )
            return None

        try:
            target_path.parent.mkdir(parents=True, exist_ok=True)
            with open(target_path, "wb") as f:
                for chunk in response.iter_content(chunk_size=8192):
                    f.write(chunk)
        except (requests.RequestException, OSError) as e:
            console.print(f"[yellow]Warning: Error saving image {url}: {e}[/yellow]")
            return None

    return target_path


def format_page_id(page_id: str) -> str:
    """
    Format a page ID for API calls.

    Notion API sometimes requires dashes, sometimes doesn't.
    This ensures consistent formatting.
    """
    clean_id = page_id.replace("-", "")

    if len(clean_id) == 32:
        return f"{clean_id[:8]}-{clean_id[8:12]}-{clean_id[12:16]}-{clean_id[16:20]}-{clean_id[20:]}"

    return page_id
