"""
Tests for the sitepub command line.
"""

import json
from unittest.mock import patch

import pytest
from click.testing import CliRunner

from sitepub import exit_codes
from sitepub.cli import cli
from sitepub.config import get_default_config
from sitepub.domain.publish import PlanReport, PublishResult, Stage
from sitepub.errors import (
    ConfigValidationError,
    GitCommandError,
    InvalidHostError,
    PublishCancelledError,
    StageError,
)
from sitepub.infra.fake import FakePublisher
from sitepub.preview.tree import TreeRegistry
from sitepub.services.params import ConfigParamSource, ParamManager
from sitepub.services.publish_service import PublishService


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture
def config(sites_base):
    config = get_default_config()
    config['paths']['sites_base'] = str(sites_base)
    config['publish']['auth_method'] = "none"
    config['publish']['auth_token'] = "do-not-print"
    config['sites'] = {'blog': {'params': {'ssg.publish.repo.url': "https://github.com/acme/blog.git"}}}
    return config


@pytest.fixture
def fake_publisher():
    return FakePublisher()


@pytest.fixture
def wired(config, sites_base, fake_publisher):
    """Patch config loading and service wiring to use a FakePublisher."""
    service = PublishService(
        fake_publisher,
        ParamManager(ConfigParamSource(config), config),
        TreeRegistry(str(sites_base)),
    )
    with patch('sitepub.commands.publish.load_config', return_value=config), \
            patch('sitepub.commands.publish.configure_logging'), \
            patch('sitepub.commands.publish.build_service', return_value=service):
        yield service


class TestValidateCommand:

    def test_valid(self, runner, wired):
        result = runner.invoke(cli, ['validate', 'blog'])
        assert result.exit_code == 0
        assert "valid" in result.output

    def test_invalid_exit_code(self, runner, wired, fake_publisher):
        def reject(**kwargs):
            raise ConfigValidationError("repo_url", "remote repository URL is required")

        fake_publisher.validate_fn = reject
        result = runner.invoke(cli, ['validate', 'blog'])

        assert result.exit_code == exit_codes.CONFIG_ERROR
        assert "repo_url: remote repository URL is required" in result.output


class TestPlanCommand:

    def test_json(self, runner, wired, fake_publisher):
        fake_publisher.plan_fn = lambda **kw: PlanReport(summary="Would publish 1 changes: 1 added",
                                                         added=["index.html"])
        result = runner.invoke(cli, ['plan', 'blog', '--json'])

        assert result.exit_code == 0
        data = json.loads(result.output)
        assert data['type'] == "plan"
        assert data['added'] == ["index.html"]

    def test_pretty(self, runner, wired, fake_publisher):
        fake_publisher.plan_fn = lambda **kw: PlanReport(summary="Would publish 1 changes: 1 removed",
                                                         removed=["old.html"], baseline="working-clone")
        result = runner.invoke(cli, ['plan', 'blog'])

        assert result.exit_code == 0
        assert "old.html" in result.output
        assert "1 removed" in result.output


class TestPublishCommand:

    def test_publish_json(self, runner, wired, fake_publisher):
        result = runner.invoke(cli, ['publish', 'blog', '-m', 'New post', '--yes', '--json'])

        assert result.exit_code == 0, result.output
        data = json.loads(result.output)
        assert data['type'] == "publish"
        assert data['new_commit'] is True
        assert fake_publisher.calls_for("publish")[0]["config"].commit.message == "New post"

    def test_confirmation_declined(self, runner, wired, fake_publisher):
        result = runner.invoke(cli, ['publish', 'blog'], input="n\n")
        assert result.exit_code == 0
        assert fake_publisher.calls_for("publish") == []

    def test_no_changes_message(self, runner, wired, fake_publisher):
        fake_publisher.publish_fn = lambda **kw: PublishResult(
            branch="gh-pages", commit_hash="abc123", new_commit=False, pushed=True)
        result = runner.invoke(cli, ['publish', 'blog', '--yes'])

        assert result.exit_code == 0
        assert "No changes" in result.output

    @pytest.mark.parametrize("error,code", [
        (StageError(Stage.PUSH, GitCommandError("git push", 1, "rejected")), exit_codes.NETWORK_ERROR),
        (StageError(Stage.COMMIT, GitCommandError("git commit", 1)), exit_codes.GENERAL_ERROR),
        (PublishCancelledError(Stage.CLONE), exit_codes.INTERRUPTED),
        (ConfigValidationError("source_dir", "not a directory"), exit_codes.CONFIG_ERROR),
    ])
    def test_error_exit_codes(self, runner, wired, fake_publisher, error, code):
        def raiser(**kwargs):
            raise error

        fake_publisher.publish_fn = raiser
        result = runner.invoke(cli, ['publish', 'blog', '--yes'])

        assert result.exit_code == code
        assert str(error) in result.output

    def test_stage_shown_in_error(self, runner, wired, fake_publisher):
        def raiser(**kwargs):
            raise StageError(Stage.PUSH, GitCommandError("git push", 1, "rejected"))

        fake_publisher.publish_fn = raiser
        result = runner.invoke(cli, ['publish', 'blog', '--yes'])
        assert "Error: push: " in result.output


class TestServeCommand:

    def test_uses_config_defaults(self, runner, config):
        with patch('sitepub.commands.serve.load_config', return_value=config), \
                patch('sitepub.commands.serve.configure_logging'), \
                patch('sitepub.commands.serve.run_preview_server') as run:
            result = runner.invoke(cli, ['serve'])

        assert result.exit_code == 0
        kwargs = run.call_args.kwargs
        assert kwargs['bind'] == "127.0.0.1"
        assert kwargs['port'] == 8080
        handler = run.call_args.args[0]
        assert handler.trees.sites_base == config['paths']['sites_base']

    def test_options_override(self, runner, config, tmp_path):
        with patch('sitepub.commands.serve.load_config', return_value=config), \
                patch('sitepub.commands.serve.configure_logging'), \
                patch('sitepub.commands.serve.run_preview_server') as run:
            result = runner.invoke(cli, ['serve', '--port', '9000', '--bind', '0.0.0.0',
                                         '--sites-dir', str(tmp_path)])

        assert result.exit_code == 0
        assert run.call_args.kwargs['port'] == 9000
        assert run.call_args.kwargs['bind'] == "0.0.0.0"
        assert run.call_args.args[0].trees.sites_base == str(tmp_path)


class TestBadConfiguration:

    @pytest.mark.parametrize("command", [
        ['validate', 'blog'],
        ['plan', 'blog'],
        ['publish', 'blog', '--yes'],
    ])
    def test_missing_sites_base(self, runner, config, command):
        config['paths']['sites_base'] = ""
        with patch('sitepub.commands.publish.load_config', return_value=config), \
                patch('sitepub.commands.publish.configure_logging'):
            result = runner.invoke(cli, command)

        assert result.exit_code == exit_codes.CONFIG_ERROR
        assert "paths.sites_base is not set" in result.output

    def test_serve_missing_sites_base(self, runner, config):
        del config['paths']['sites_base']
        with patch('sitepub.commands.serve.load_config', return_value=config), \
                patch('sitepub.commands.serve.configure_logging'), \
                patch('sitepub.commands.serve.run_preview_server') as run:
            result = runner.invoke(cli, ['serve'])

        assert result.exit_code == exit_codes.CONFIG_ERROR
        run.assert_not_called()

    def test_serve_bad_port(self, runner, config):
        config['preview']['port'] = "eighty"
        with patch('sitepub.commands.serve.load_config', return_value=config), \
                patch('sitepub.commands.serve.configure_logging'), \
                patch('sitepub.commands.serve.run_preview_server') as run:
            result = runner.invoke(cli, ['serve'])

        assert result.exit_code == exit_codes.CONFIG_ERROR
        assert "preview.port" in result.output
        run.assert_not_called()


class TestConfigCommand:

    def test_show_masks_tokens(self, runner, config):
        config['sites']['blog']['params']['ssg.publish.auth.token'] = "site-secret"
        with patch('sitepub.commands.config.load_config', return_value=config):
            result = runner.invoke(cli, ['config', 'show'])

        assert result.exit_code == 0
        assert "do-not-print" not in result.output
        assert "site-secret" not in result.output
        data = json.loads(result.output)
        assert data['publish']['auth_token'] == "***"

    def test_show_path(self, runner, isolated_home):
        result = runner.invoke(cli, ['config', 'show', '--path'])
        assert json.loads(result.output)['config_path'].startswith(str(isolated_home))

    def test_init_writes_defaults(self, runner, isolated_home):
        result = runner.invoke(cli, ['config', 'init'])

        assert result.exit_code == 0
        path = isolated_home / '.sitepub' / 'config.json'
        assert path.exists()
        assert json.loads(path.read_text())['publish']['branch'] == "gh-pages"

        again = runner.invoke(cli, ['config', 'init'])
        assert "already exists" in again.output


class TestExitCodes:

    @pytest.mark.parametrize("error,code", [
        (ConfigValidationError("repo_url", "x"), exit_codes.CONFIG_ERROR),
        (StageError(Stage.CLONE), exit_codes.NETWORK_ERROR),
        (StageError(Stage.SYNC), exit_codes.GENERAL_ERROR),
        (PublishCancelledError(Stage.ADD), exit_codes.INTERRUPTED),
        (InvalidHostError("example.com"), exit_codes.DATA_ERROR),
        (exit_codes.ConfigError("bad"), exit_codes.CONFIG_ERROR),
        (PermissionError("denied"), exit_codes.PERMISSION_ERROR),
        (RuntimeError("x"), exit_codes.GENERAL_ERROR),
    ])
    def test_mapping(self, error, code):
        assert exit_codes.get_exit_code_for_exception(error) == code


def test_version(runner):
    result = runner.invoke(cli, ['--version'])
    assert result.exit_code == 0
    assert "0.1.0" in result.output
