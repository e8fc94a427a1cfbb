"""
Shared fixtures for sitepub tests.
"""

import os

import pytest

from sitepub.domain.publish import AuthMethod, GitAuth, GitCommit, PublisherConfig
from sitepub.infra.fake import FakeGitClient
from sitepub.services.publisher import Publisher


@pytest.fixture(autouse=True)
def isolated_home(tmp_path, monkeypatch):
    """Keep tests away from the real ~/.sitepub and SITEPUB_* variables."""
    home = tmp_path / "home"
    home.mkdir()
    monkeypatch.setenv("HOME", str(home))
    for key in list(os.environ):
        if key.startswith("SITEPUB_"):
            monkeypatch.delenv(key)
    return home


@pytest.fixture
def sites_base(tmp_path):
    base = tmp_path / "sites"
    base.mkdir()
    return base


@pytest.fixture
def source_dir(tmp_path):
    """A small materialized tree."""
    src = tmp_path / "html"
    (src / "posts").mkdir(parents=True)
    (src / "index.html").write_text("<h1>Home</h1>")
    (src / "posts" / "first.html").write_text("<p>First</p>")
    (src / "style.css").write_text("body {}")
    return src


@pytest.fixture
def fake_git():
    return FakeGitClient()


@pytest.fixture
def publisher(sites_base, fake_git):
    return Publisher(work_root=str(sites_base), git_client=fake_git, base_env={"PATH": "/usr/bin"})


@pytest.fixture
def token_config():
    return PublisherConfig(
        repo_url="https://github.com/acme/site.git",
        branch="gh-pages",
        auth=GitAuth(method=AuthMethod.TOKEN, token="s3cret-token"),
        commit=GitCommit(message="Publish", user_name="Bot", user_email="bot@example.com"),
        site_slug="acme",
    )
