"""
Preview server command for sitepub.
"""

from typing import Optional

import click

from ..config import configure_logging, load_config
from ..exit_codes import CommandError, ConfigError, exit_with_code, get_exit_code_for_exception
from ..preview.handler import PreviewHandler
from ..preview.resolver import SiteResolver
from ..preview.server import run_preview_server
from ..preview.tree import TreeRegistry
from .publish import require_sites_base


def _check_port(port) -> int:
    if isinstance(port, bool) or not isinstance(port, int) or not 0 <= port <= 65535:
        raise ConfigError(f"preview.port must be an integer between 0 and 65535, got {port!r}")
    return port


@click.command('serve')
@click.option('--bind', default=None, help='Address to listen on (default: preview.bind)')
@click.option('--port', '-p', type=int, default=None, help='Port to listen on (default: preview.port)')
@click.option('--sites-dir', type=click.Path(file_okay=False), default=None,
              help='Root of the per-site trees (default: paths.sites_base)')
@click.option('--debug', is_flag=True, help='Enable debug logging')
def serve_handler(bind: Optional[str], port: Optional[int], sites_dir: Optional[str], debug: bool):
    """
    Serve every site's materialized tree for local preview.

    Sites are addressed by subdomain: http://<slug>.localhost:<port>/.
    Plain http://localhost:<port>/ serves the default site.

    \b
    Examples:
        sitepub serve
        sitepub serve --port 9000 --sites-dir ./sites
    """
    config = load_config()
    configure_logging(config, level='DEBUG' if debug else None)

    preview = config.get('preview', {})
    bind = bind or preview.get('bind', '127.0.0.1')
    try:
        port = _check_port(port if port is not None else preview.get('port', 8080))
        sites_dir = sites_dir or require_sites_base(config)
    except CommandError as e:
        exit_with_code(get_exit_code_for_exception(e), f"Error: {e}")

    resolver = SiteResolver(
        local_host=preview.get('local_host', 'localhost'),
        default_slug=preview.get('default_site', 'default'),
    )
    handler = PreviewHandler(resolver, TreeRegistry(sites_dir))

    click.echo(f"Previewing sites from {sites_dir} at http://{resolver.local_host}:{port}/", err=True)
    run_preview_server(handler, bind=bind, port=port)
