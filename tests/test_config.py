# tests/test_config.py

import os

import pytest

from notion_blog.config import Config


@pytest.fixture
def clean_env(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    for name in (
        "PROJECT_ROOT", "NOTION_TOKEN", "NOTION_ROOT_PAGE_ID", "CONTENT_DIR",
        "EXPORT_DELAY", "POSTS_PER_PAGE", "SITE_URL", "DEBUG",
    ):
        monkeypatch.delenv(name, raising=False)
    return monkeypatch


def test_defaults_resolve_against_project_root(tmp_path, clean_env):
    clean_env.setenv("PROJECT_ROOT", str(tmp_path))

    config = Config.from_env()

    assert config.notion_token is None
    assert config.content_dir == tmp_path / "content" / "posts"
    assert config.images_dir == tmp_path / "public" / "images" / "posts"
    assert config.about_output == tmp_path / "content" / "about.json"
    assert config.export_delay == 0.5
    assert config.posts_per_page == 10
    assert not config.warn_if_unauthenticated()


def test_env_overrides(tmp_path, clean_env):
    clean_env.setenv("PROJECT_ROOT", str(tmp_path))
    clean_env.setenv("NOTION_TOKEN", "secret")
    clean_env.setenv("NOTION_ROOT_PAGE_ID", "abcd-ef01")
    clean_env.setenv("EXPORT_DELAY", "0")
    clean_env.setenv("POSTS_PER_PAGE", "5")
    clean_env.setenv("SITE_URL", "https://blog.example/")
    clean_env.setenv("DEBUG", "true")

    config = Config.from_env()

    assert config.root_page_id == "abcdef01"
    assert config.export_delay == 0
    assert config.posts_per_page == 5
    assert config.site.url == "https://blog.example"
    assert config.debug is True
    assert config.warn_if_unauthenticated()


def test_env_file_is_loaded(tmp_path, clean_env):
    env_file = tmp_path / "custom.env"
    env_file.write_text("NOTION_TOKEN=from-file\n", encoding="utf-8")

    try:
        assert Config.from_env(env_file).notion_token == "from-file"
    finally:
        os.environ.pop("NOTION_TOKEN", None)


@pytest.mark.parametrize(
    "name, value",
    [("EXPORT_DELAY", "soon"), ("POSTS_PER_PAGE", "ten"), ("POSTS_PER_PAGE", "0")],
)
def test_bad_numbers_raise(clean_env, name, value):
    clean_env.setenv(name, value)

    with pytest.raises(ValueError, match=name):
        Config.from_env()
