"""
Publish commands for sitepub.

- validate: check a site's publish settings without touching git
- plan: show what a publish would change
- publish: render-free publish of the site's current HTML tree
"""

import json
import sys
import threading
from typing import Any, Callable, Dict

import click

from ..config import configure_logging, load_config
from ..domain.publish import PlanReport, PublishResult
from ..errors import SitepubError
from ..exit_codes import (
    INTERRUPTED,
    CommandError,
    ConfigError,
    exit_with_code,
    get_exit_code_for_exception,
)
from ..infra.git_client import GitClient
from ..preview.tree import TreeRegistry
from ..services.params import ConfigParamSource, ParamManager
from ..services.publish_service import PublishService
from ..services.publisher import Publisher


def require_sites_base(config: Dict[str, Any]) -> str:
    """
    Return ``paths.sites_base``.

    Raises:
        ConfigError: when it is missing or empty
    """
    sites_base = config.get('paths', {}).get('sites_base')
    if not sites_base or not isinstance(sites_base, str):
        raise ConfigError("paths.sites_base is not set; run 'sitepub config init' or set SITEPUB_PATHS_SITES_BASE")
    return sites_base


def build_service(config: Dict[str, Any]) -> PublishService:
    """Wire a PublishService from configuration."""
    sites_base = require_sites_base(config)
    git_config = config.get('git', {})
    git = GitClient(
        binary=git_config.get('binary', 'git'),
        timeout=git_config.get('timeout_seconds') or None,
    )
    return PublishService(
        publisher=Publisher(work_root=sites_base, git_client=git),
        params=ParamManager(ConfigParamSource(config), config),
        trees=TreeRegistry(sites_base),
    )


def _setup(debug: bool):
    config = load_config()
    configure_logging(config, level='DEBUG' if debug else None)
    return config


def _fail(e: BaseException):
    exit_with_code(get_exit_code_for_exception(e), f"Error: {e}")


def _run_cancellable(fn: Callable[[threading.Event], Any]) -> Any:
    """
    Run ``fn(cancel)`` in a worker thread; Ctrl+C sets ``cancel``.

    The worker stops at its next cancellation point and its exception
    (usually PublishCancelledError) is re-raised here.
    """
    cancel = threading.Event()
    outcome: Dict[str, Any] = {}

    def target():
        try:
            outcome['result'] = fn(cancel)
        except BaseException as e:
            outcome['error'] = e

    worker = threading.Thread(target=target, name='sitepub-publish', daemon=True)
    worker.start()
    try:
        while worker.is_alive():
            worker.join(0.2)
    except KeyboardInterrupt:
        click.echo("Cancelling...", err=True)
        cancel.set()
        worker.join()

    if 'error' in outcome:
        raise outcome['error']
    return outcome['result']


def _print_plan(report: PlanReport):
    from rich.console import Console
    from rich.table import Table

    console = Console()
    console.print(f"\n[bold]Plan[/bold] {report.repo_url} ([cyan]{report.branch}[/cyan])")
    if report.baseline == "none":
        console.print("[dim]No working clone yet; every file counts as added.[/dim]")

    if report.has_changes:
        table = Table(show_header=True, box=None)
        table.add_column("Change")
        table.add_column("Path")
        for path in report.added:
            table.add_row("[green]added[/green]", path)
        for path in report.modified:
            table.add_row("[yellow]modified[/yellow]", path)
        for path in report.removed:
            table.add_row("[red]removed[/red]", path)
        console.print(table)

    console.print(f"\n{report.summary}")


def _print_result(result: PublishResult):
    from rich.console import Console

    console = Console()
    if result.new_commit:
        console.print(f"[green]Published[/green] to {result.branch}: {result.reference}")
    elif result.pushed:
        console.print(f"[yellow]No changes[/yellow]; {result.branch} is at {result.reference}")
    else:
        console.print(f"[yellow]Nothing to publish[/yellow]; {result.branch} has no commits")


@click.command('validate')
@click.argument('site')
@click.option('--debug', is_flag=True, help='Enable debug logging')
def validate_handler(site: str, debug: bool):
    """
    Check a site's publish settings without running git.

    \b
    Examples:
        sitepub validate my-blog
    """
    config = _setup(debug)
    try:
        build_service(config).validate(site)
    except (SitepubError, CommandError) as e:
        _fail(e)
    click.echo(f"Publish settings for {site} are valid")


@click.command('plan')
@click.argument('site')
@click.option('--json', 'output_json', is_flag=True, help='Output as JSON')
@click.option('--debug', is_flag=True, help='Enable debug logging')
def plan_handler(site: str, output_json: bool, debug: bool):
    """
    Show what publishing SITE would change.

    Compares the site's HTML tree with the working clone left by the last
    publish. Never contacts the remote.

    \b
    Examples:
        sitepub plan my-blog
        sitepub plan my-blog --json
    """
    config = _setup(debug)
    try:
        service = build_service(config)
        report = _run_cancellable(lambda cancel: service.plan(site, cancel=cancel))
    except (SitepubError, CommandError) as e:
        _fail(e)

    if output_json:
        print(json.dumps(report.to_dict()))
    else:
        _print_plan(report)


@click.command('publish')
@click.argument('site')
@click.option('--message', '-m', default=None, help='Commit message (overrides the configured one)')
@click.option('--yes', '-y', is_flag=True, help='Skip confirmation prompt')
@click.option('--json', 'output_json', is_flag=True, help='Output as JSON')
@click.option('--debug', is_flag=True, help='Enable debug logging')
def publish_handler(site: str, message: str, yes: bool, output_json: bool, debug: bool):
    """
    Publish SITE's HTML tree to its git branch.

    Publishing an unchanged tree succeeds without creating a commit.

    \b
    Examples:
        sitepub publish my-blog -m "New post" --yes
        sitepub publish my-blog --json --yes
    """
    config = _setup(debug)
    try:
        service = build_service(config)
        service.validate(site, message)
    except (SitepubError, CommandError) as e:
        _fail(e)

    if not yes and not click.confirm(f"Publish {site}?"):
        print("Aborted.", file=sys.stderr)
        return

    try:
        result = _run_cancellable(lambda cancel: service.publish(site, message, cancel=cancel))
    except SitepubError as e:
        _fail(e)
    except KeyboardInterrupt:
        sys.exit(INTERRUPTED)

    if output_json:
        print(json.dumps(result.to_dict()))
    else:
        _print_result(result)
