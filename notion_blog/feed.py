"""RSS 2.0 feed over the published and listed posts."""

from datetime import datetime, timezone
from email.utils import format_datetime
from typing import Optional
from xml.sax.saxutils import escape

from .config import SiteConfig
from .posts import Post, date_sort_key

FEED_CACHE_CONTROL = "s-maxage=3600, stale-while-revalidate"


def rfc822_date(value: str) -> str:
    parsed = date_sort_key(value)
    if parsed == datetime.min:
        parsed = datetime.now(timezone.utc)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return format_datetime(parsed, usegmt=True)


def _cdata(text: str) -> str:
    # "]]>" would end the section early
    return "<![CDATA[" + text.replace("]]>", "]]]]><![CDATA[>") + "]]>"


def build_rss(posts: list[Post], site: SiteConfig, now: Optional[datetime] = None) -> str:
    """Render the feed document for `posts` (already filtered and sorted)."""
    now = now or datetime.now(timezone.utc)
    base = site.url.rstrip("/")

    items = []
    for post in posts:
        link = escape(f"{base}/posts/{post.slug}")
        items.append(
            "\n".join(
                [
                    "    <item>",
                    f"      <title>{_cdata(post.title)}</title>",
                    f"      <link>{link}</link>",
                    f'      <guid isPermaLink="true">{link}</guid>',
                    f"      <description>{_cdata(post.description)}</description>",
                    f"      <pubDate>{rfc822_date(post.date)}</pubDate>",
                    f"      <category>{escape(post.category)}</category>",
                    "    </item>",
                ]
            )
        )

    lines = [
        '<?xml version="1.0" encoding="UTF-8"?>',
        '<rss version="2.0" xmlns:atom="http://www.w3.org/2005/Atom">',
        "  <channel>",
        f"    <title>{escape(site.name)}</title>",
        f"    <link>{escape(base)}</link>",
        f"    <description>{escape(site.description)}</description>",
        f"    <language>{escape(site.language)}</language>",
        f"    <lastBuildDate>{format_datetime(now, usegmt=True)}</lastBuildDate>",
        f'    <atom:link href="{escape(base)}/feed.xml" rel="self" type="application/rss+xml"/>',
        *items,
        "  </channel>",
        "</rss>",
    ]
    return "\n".join(lines) + "\n"
