"""
Configuration management for the blog and the Notion exporter.

Loads settings from environment variables and provides
structured configuration for all components.
"""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv
from rich.console import Console

console = Console()

# Root page of the Notion workspace that holds the articles
DEFAULT_ROOT_PAGE_ID = "5c4795ad65e44db78b4921266107302e"


@dataclass
class SeriesRule:
    """Groups exported pages into a series directory by title patterns."""

    name: str
    patterns: list[str]
    order: Optional[int] = None


DEFAULT_SERIES_RULES: list[SeriesRule] = [
    SeriesRule(name="rag", patterns=["RAG", "向量数据库"], order=1),
    SeriesRule(name="workflow", patterns=["工作流编排", r"Part\d+[:：]"], order=2),
    SeriesRule(name="ai-agents", patterns=["AI Agent", "AI代理"], order=3),
    SeriesRule(
        name="ai-platforms",
        patterns=["Dify", "FastGPT", "Flowise", "n8n", "Autogen"],
        order=4,
    ),
    SeriesRule(
        name="vector-db",
        patterns=["Qdrant", "Milvus", "Pinecone", "Weaviate", "Chroma"],
        order=5,
    ),
    SeriesRule(
        name="tutorials",
        patterns=["第一章", "第二章", "第三章", "教程", "入门", "实战"],
        order=6,
    ),
]

# Series directory -> category label, used by `notion-blog categories`
DEFAULT_CATEGORY_MAP: dict[str, str] = {
    "ai-agent-fundamentals": "AI Agent",
    "ai-agent-design-patterns": "AI Agent",
    "ai-agents": "AI Agent",
    "autogen": "AI Agent",
    "mcp": "AI Agent",
    "deep-research": "AI Agent",
    "rag": "RAG 技术",
    "rag-guide": "RAG 技术",
    "vector-database": "RAG 技术",
    "vector-db": "RAG 技术",
    "workflow": "工作流编排",
    "workflow-tutorial": "工作流编排",
    "dify-practice": "工作流编排",
    "cursor-development": "开发工具",
    "prompts": "开发工具",
    "psds": "方法论",
    "recommendation-system": "技术分享",
    "standalone": "技术分享",
}
DEFAULT_CATEGORY = "技术分享"
SUMMARY_CATEGORY = "年度总结"
SUMMARY_KEYWORDS = ("总结", "summary", "2023", "2024", "2025")

DEFAULT_BIO = "专注于 AI、技术和创业的探索者。"


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw == "":
        return default
    try:
        return float(raw)
    except ValueError:
        raise ValueError(f"{name} must be a number, got {raw!r}") from None


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw == "":
        return default
    try:
        value = int(raw)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got {raw!r}") from None
    if value < 1:
        raise ValueError(f"{name} must be positive, got {value}")
    return value


@dataclass
class SiteConfig:
    """Public site metadata used by the feed and the HTTP app."""

    name: str = "AI关乎未来"
    url: str = "https://zerozzz.win"
    description: str = "AI关乎未来"
    language: str = "zh-CN"


@dataclass
class Config:
    """
    Central configuration.

    Loads from environment variables and provides defaults.
    The Notion token is optional here: the exporter only warns about a
    missing token, and the web side never needs one.
    """

    notion_token: Optional[str] = None
    root_page_id: str = DEFAULT_ROOT_PAGE_ID

    # Paths
    project_root: Path = field(default_factory=lambda: Path.cwd())
    content_dir: Path = Path("content/posts")
    images_dir: Path = Path("public/images/posts")
    avatar_path: Path = Path("public/images/avatar.jpg")
    about_output: Path = Path("content/about.json")

    # Public URLs the exported files are served under
    images_url_prefix: str = "/images/posts"
    avatar_url: str = "/images/avatar.jpg"

    # Behavior
    export_delay: float = 0.5
    posts_per_page: int = 10
    debug: bool = False

    site: SiteConfig = field(default_factory=SiteConfig)
    series_rules: list[SeriesRule] = field(
        default_factory=lambda: list(DEFAULT_SERIES_RULES)
    )

    @classmethod
    def from_env(cls, env_file: Optional[Path] = None) -> "Config":
        """
        Load configuration from environment variables.

        Args:
            env_file: Optional path to .env file. If not provided,
                     looks for .env in current directory.

        Returns:
            Configured Config instance.

        Raises:
            ValueError: If a numeric variable cannot be parsed.
        """
        if env_file:
            load_dotenv(env_file)
        else:
            load_dotenv()

        root_str = os.getenv("PROJECT_ROOT")
        project_root = Path(root_str) if root_str else Path.cwd()

        root_page_id = os.getenv("NOTION_ROOT_PAGE_ID") or DEFAULT_ROOT_PAGE_ID

        site = SiteConfig(
            name=os.getenv("SITE_NAME", SiteConfig.name),
            url=os.getenv("SITE_URL", SiteConfig.url).rstrip("/"),
            description=os.getenv("SITE_DESCRIPTION", SiteConfig.description),
            language=os.getenv("SITE_LANGUAGE", SiteConfig.language),
        )

        return cls(
            notion_token=os.getenv("NOTION_TOKEN") or None,
            root_page_id=root_page_id.replace("-", ""),
            project_root=project_root,
            content_dir=Path(os.getenv("CONTENT_DIR", "content/posts")),
            images_dir=Path(os.getenv("IMAGES_DIR", "public/images/posts")),
            avatar_path=Path(os.getenv("AVATAR_PATH", "public/images/avatar.jpg")),
            about_output=Path(os.getenv("ABOUT_OUTPUT", "content/about.json")),
            export_delay=_env_float("EXPORT_DELAY", 0.5),
            posts_per_page=_env_int("POSTS_PER_PAGE", 10),
            debug=os.getenv("DEBUG", "false").lower() == "true",
            site=site,
        )

    def __post_init__(self):
        """Resolve relative paths against the project root."""
        if isinstance(self.project_root, str):
            self.project_root = Path(self.project_root)

        for name in ("content_dir", "images_dir", "avatar_path", "about_output"):
            value = Path(getattr(self, name))
            if not value.is_absolute():
                value = self.project_root / value
            setattr(self, name, value)

    def warn_if_unauthenticated(self) -> bool:
        """Print a hint when NOTION_TOKEN is missing. Returns True if set."""
        if self.notion_token:
            return True
        console.print("[yellow]⚠️ NOTION_TOKEN is not set[/yellow]")
        console.print("[dim]   export NOTION_TOKEN=your_token[/dim]")
        console.print("[dim]   or add NOTION_TOKEN=your_token to a .env file[/dim]")
        return False
