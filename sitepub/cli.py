#!/usr/bin/env python3

import click

from sitepub import __version__
from sitepub.commands.config import config_cmd
from sitepub.commands.publish import plan_handler, publish_handler, validate_handler
from sitepub.commands.serve import serve_handler


@click.group()
@click.version_option(__version__, prog_name='sitepub')
def cli():
    """sitepub - Render, preview and publish static sites.

    Serves each site's materialized tree at <slug>.localhost and publishes
    it to a git branch (gh-pages by default).
    """
    pass


cli.add_command(serve_handler, name='serve')
cli.add_command(validate_handler, name='validate')
cli.add_command(plan_handler, name='plan')
cli.add_command(publish_handler, name='publish')
cli.add_command(config_cmd)


def main():
    cli()

if __name__ == "__main__":
    main()
