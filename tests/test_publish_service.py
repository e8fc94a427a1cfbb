"""
Tests for PublishService orchestration.
"""

import pytest

from sitepub.config import get_default_config
from sitepub.domain.param import ParamKey
from sitepub.errors import ConfigValidationError
from sitepub.infra.fake import FakePublisher, FakeRenderer
from sitepub.paths import site_html_path
from sitepub.preview.tree import TreeRegistry
from sitepub.services.params import ConfigParamSource, ParamManager
from sitepub.services.publish_service import PublishService


@pytest.fixture
def config(sites_base):
    config = get_default_config()
    config['paths']['sites_base'] = str(sites_base)
    config['publish']['auth_method'] = "none"
    config['sites'] = {
        'blog': {'params': {ParamKey.PUBLISH_REPO_URL: "https://github.com/acme/blog.git"}},
    }
    return config


@pytest.fixture
def fake_publisher():
    return FakePublisher()


@pytest.fixture
def renderer():
    return FakeRenderer({"index.html": "<h1>Blog</h1>", "a/b.html": "b"})


@pytest.fixture
def service(config, sites_base, fake_publisher, renderer):
    return PublishService(
        publisher=fake_publisher,
        params=ParamManager(ConfigParamSource(config), config),
        trees=TreeRegistry(str(sites_base)),
        renderer=renderer,
    )


class TestMaterialize:

    def test_renders_and_registers(self, service, sites_base, renderer):
        root = service.materialize("blog")

        assert root == site_html_path(str(sites_base), "blog")
        assert renderer.calls_for("render")[0]["output_dir"] == root
        assert service.trees.lookup("blog") == root
        with open(f"{root}/a/b.html") as f:
            assert f.read() == "b"

    def test_without_renderer_registers_existing_tree(self, config, sites_base, fake_publisher):
        trees = TreeRegistry(str(sites_base))
        service = PublishService(fake_publisher, ParamManager(ConfigParamSource(config), config), trees)

        service.materialize("blog")
        assert trees.lookup("blog") is None

        root = sites_base / "blog" / "documents" / "html"
        root.mkdir(parents=True)
        assert service.materialize("blog") == str(root)
        assert trees.lookup("blog") == str(root)

    def test_invalid_slug(self, service):
        with pytest.raises(ConfigValidationError):
            service.materialize("../etc")


class TestPlanAndPublish:

    def test_publish_uses_site_settings(self, service, fake_publisher, sites_base):
        result = service.publish("blog", message="New post")

        call = fake_publisher.calls_for("publish")[0]
        assert call["config"].repo_url == "https://github.com/acme/blog.git"
        assert call["config"].commit.message == "New post"
        assert call["config"].site_slug == "blog"
        assert call["source_dir"] == site_html_path(str(sites_base), "blog")
        assert result.commit_url == "fake-commit-url"

    def test_plan_delegates(self, service, fake_publisher):
        report = service.plan("blog")
        assert report.summary == "fake plan"
        assert fake_publisher.calls_for("plan")[0]["config"].branch == "gh-pages"

    def test_validate_delegates(self, service, fake_publisher):
        def reject(**kwargs):
            raise ConfigValidationError("repo_url", "nope")

        fake_publisher.validate_fn = reject
        with pytest.raises(ConfigValidationError):
            service.validate("blog")
