"""
notion-blog CLI

Usage:
    notion-blog export                    # Export direct child pages
    notion-blog export --recursive        # Export nested pages too
    notion-blog export -r --max-depth 5   # Recursive, up to depth 5
    notion-blog export --about            # Only the root page introduction
    notion-blog categories [--dry-run]    # Recompute categories from directories
    notion-blog serve                     # Run the HTTP app
"""

import sys
import traceback

import click
from dotenv import load_dotenv
from rich.console import Console

from . import __version__
from .config import DEFAULT_CATEGORY, DEFAULT_CATEGORY_MAP, Config
from .exporter import DEFAULT_MAX_DEPTH, NotionExporter
from .posts import update_categories

console = Console()


def _load_config(debug: bool = False) -> Config:
    load_dotenv()
    try:
        config = Config.from_env()
    except ValueError as e:
        console.print(f"[red]Configuration error:[/red] {e}")
        sys.exit(1)
    if debug:
        config.debug = True
    return config


@click.group()
@click.version_option(__version__, prog_name="notion-blog")
def cli():
    """
    Notion → blog tools.

    Exports Notion pages as markdown posts and serves the blog API.
    """


@cli.command()
@click.option("-r", "--recursive", is_flag=True, help="Export nested pages and database entries")
@click.option(
    "--max-depth",
    type=click.IntRange(min=0),
    default=DEFAULT_MAX_DEPTH,
    show_default=True,
    help="Deepest level to descend to in recursive mode",
)
@click.option("--about", "about_only", is_flag=True, help="Only export the root page introduction")
@click.option("--debug", is_flag=True, help="Print tracebacks on failure")
def export(recursive: bool, max_depth: int, about_only: bool, debug: bool):
    """Export Notion pages into the content directory."""
    config = _load_config(debug)

    # Without a token every request fails; those failures are reported per page
    config.warn_if_unauthenticated()

    try:
        exporter = NotionExporter(config)
        result = exporter.run(recursive=recursive, max_depth=max_depth, about_only=about_only)
    except KeyboardInterrupt:
        console.print("\n[yellow]Export cancelled.[/yellow]")
        sys.exit(130)
    except Exception as e:  # noqa: BLE001
        console.print(f"\n[red]❌ Export failed:[/red] {e}")
        if config.debug:
            traceback.print_exc()
        sys.exit(1)

    if not about_only:
        console.print(f"[green]✨ Export complete![/green] {len(result.pages_exported)} posts written")


@cli.command()
@click.option("--dry-run", is_flag=True, help="Show changes without writing files")
def categories(dry_run: bool):
    """Set each post's category from its series directory."""
    config = _load_config()
    changed = update_categories(
        config.content_dir, DEFAULT_CATEGORY_MAP, DEFAULT_CATEGORY, dry_run=dry_run
    )
    suffix = " (dry run)" if dry_run else ""
    console.print(f"\n[bold]Updated {len(changed)} files{suffix}[/bold]")


@cli.command()
@click.option("--host", default="127.0.0.1", show_default=True)
@click.option("--port", default=8000, show_default=True, type=int)
def serve(host: str, port: int):
    """Serve the blog API."""
    import uvicorn

    from .web import create_app

    config = _load_config()
    uvicorn.run(create_app(config), host=host, port=port)


def main():
    """Main entry point."""
    cli()


if __name__ == "__main__":
    main()
