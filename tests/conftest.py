# tests/conftest.py
"""
Shared fixtures.

- `content_dir`: empty content root under tmp_path
- `write_post`: writes an .mdx file with YAML frontmatter into it
- `config`: Config rooted at tmp_path with no export delay
"""

from pathlib import Path

import pytest
import yaml

from notion_blog.config import Config


@pytest.fixture
def content_dir(tmp_path) -> Path:
    root = tmp_path / "content" / "posts"
    root.mkdir(parents=True)
    return root


@pytest.fixture
def write_post(content_dir):
    def _write(rel_path: str, body: str = "Body text.\n", **meta) -> Path:
        path = content_dir / rel_path
        path.parent.mkdir(parents=True, exist_ok=True)
        text = body
        if meta:
            header = yaml.safe_dump(meta, allow_unicode=True, sort_keys=False)
            text = f"---\n{header}---\n\n{body}"
        path.write_text(text, encoding="utf-8")
        return path

    return _write


@pytest.fixture
def config(tmp_path) -> Config:
    return Config(project_root=tmp_path, root_page_id="root-page", export_delay=0)
