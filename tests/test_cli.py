# tests/test_cli.py

from unittest.mock import patch

import frontmatter
import pytest
from click.testing import CliRunner

from notion_blog.cli import cli
from notion_blog.exporter import ExportResult


@pytest.fixture
def env(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("PROJECT_ROOT", str(tmp_path))
    for name in ("NOTION_TOKEN", "EXPORT_DELAY", "POSTS_PER_PAGE", "CONTENT_DIR", "DEBUG"):
        monkeypatch.delenv(name, raising=False)
    return tmp_path


@pytest.fixture
def runner():
    return CliRunner()


def test_export_warns_without_token(env, runner):
    with patch("notion_blog.cli.NotionExporter") as exporter_cls:
        exporter_cls.return_value.run.return_value = ExportResult(pages_exported=["A"])
        result = runner.invoke(cli, ["export"])

    assert result.exit_code == 0
    assert "NOTION_TOKEN is not set" in result.output
    exporter_cls.return_value.run.assert_called_once_with(
        recursive=False, max_depth=3, about_only=False
    )


def test_export_passes_flags(env, runner, monkeypatch):
    monkeypatch.setenv("NOTION_TOKEN", "secret")

    with patch("notion_blog.cli.NotionExporter") as exporter_cls:
        exporter_cls.return_value.run.return_value = ExportResult()
        result = runner.invoke(cli, ["export", "-r", "--max-depth", "5", "--about"])

    assert result.exit_code == 0
    assert "NOTION_TOKEN is not set" not in result.output
    exporter_cls.return_value.run.assert_called_once_with(
        recursive=True, max_depth=5, about_only=True
    )
    config = exporter_cls.call_args.args[0]
    assert config.notion_token == "secret"


def test_export_failure_exits_nonzero(env, runner):
    with patch("notion_blog.cli.NotionExporter") as exporter_cls:
        exporter_cls.return_value.run.side_effect = RuntimeError("unauthorized")
        result = runner.invoke(cli, ["export"])

    assert result.exit_code == 1
    assert "unauthorized" in result.output


def test_export_rejects_negative_depth(env, runner):
    result = runner.invoke(cli, ["export", "--max-depth", "-1"])

    assert result.exit_code == 2


def test_invalid_numeric_env_is_a_config_error(env, runner, monkeypatch):
    monkeypatch.setenv("EXPORT_DELAY", "soon")

    result = runner.invoke(cli, ["export"])

    assert result.exit_code == 1
    assert "Configuration error" in result.output


def test_categories_command(env, runner):
    post = env / "content" / "posts" / "rag" / "intro.mdx"
    post.parent.mkdir(parents=True)
    post.write_text("---\ntitle: Intro\ncategory: old\n---\n\nBody\n", encoding="utf-8")

    dry = runner.invoke(cli, ["categories", "--dry-run"])
    assert dry.exit_code == 0
    assert frontmatter.load(str(post))["category"] == "old"

    result = runner.invoke(cli, ["categories"])
    assert result.exit_code == 0
    assert frontmatter.load(str(post))["category"] == "RAG 技术"
