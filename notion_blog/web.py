"""
HTTP surface of the blog.

- /api/search      free-text search over listed posts
- /api/posts       paginated post summaries
- /api/posts/{slug} one post with rendered HTML and TOC
- /feed.xml        RSS 2.0 feed
"""

from typing import Optional

from fastapi import FastAPI, HTTPException, Query, Request, Response, status
from rich.console import Console

from .config import Config
from .feed import FEED_CACHE_CONTROL, build_rss
from .posts import PostRepository

console = Console()


def _repository(request: Request) -> PostRepository:
    return request.app.state.repository


def create_app(
    config: Optional[Config] = None,
    repository: Optional[PostRepository] = None,
) -> FastAPI:
    """
    Application factory.

    Args:
        config: Site configuration; loaded from the environment if omitted.
        repository: Post repository; built from `config.content_dir` if omitted.
    """
    config = config or Config.from_env()
    repository = repository or PostRepository(
        config.content_dir, page_size=config.posts_per_page
    )

    app = FastAPI(title=config.site.name)
    app.state.config = config
    app.state.repository = repository

    @app.get("/health", tags=["health"])
    def health_check() -> dict:
        return {"status": "ok"}

    @app.get("/api/search", tags=["posts"])
    def search(request: Request, q: Optional[str] = None) -> dict:
        """Blank queries return no results without touching the index."""
        if not q or not q.strip():
            return {"results": []}
        results = _repository(request).search(q)
        return {"results": [post.summary() for post in results]}

    @app.get("/api/posts", tags=["posts"])
    def list_posts(request: Request, page: int = Query(1)) -> dict:
        repo = _repository(request)
        return {
            "page": page,
            "totalPages": repo.total_pages(),
            "posts": [post.summary() for post in repo.paginated_posts(page)],
        }

    @app.get("/api/posts/{slug}", tags=["posts"])
    def get_post(request: Request, slug: str) -> dict:
        try:
            rendered = _repository(request).get_post_with_html(slug)
        except Exception as exc:  # noqa: BLE001
            # A post that fails to render is reported as missing
            console.print(f"[red]Failed to render post {slug}: {exc}[/red]")
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND, detail="Post not found."
            ) from exc

        if rendered is None:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND, detail="Post not found."
            )
        return rendered.to_dict()

    @app.get("/api/categories", tags=["posts"])
    def categories(request: Request) -> dict:
        return {"categories": _repository(request).categories()}

    @app.get("/api/tags", tags=["posts"])
    def tags(request: Request) -> dict:
        return {"tags": _repository(request).tags()}

    @app.get("/feed.xml", tags=["feed"])
    def feed(request: Request) -> Response:
        posts = _repository(request).all_posts()
        return Response(
            content=build_rss(posts, request.app.state.config.site),
            media_type="application/xml",
            headers={"Cache-Control": FEED_CACHE_CONTROL},
        )

    return app
