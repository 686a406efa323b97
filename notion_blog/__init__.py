"""
Notion-backed blog

Content layer of a personal blog (slugs, posts, markdown rendering,
table of contents, search and feed) plus an exporter that turns a Notion
workspace into the blog's markdown files.
"""

__version__ = "1.0.0"
