import copy
import json

import click

from sitepub.config import generate_default_config, get_config_path, load_config

SECRET_KEYS = ('auth_token',)
REDACTED = '***'


def redact_config(config):
    """Copy of ``config`` with tokens masked, including per-site params."""
    redacted = copy.deepcopy(config)
    publish = redacted.get('publish', {})
    for key in SECRET_KEYS:
        if publish.get(key):
            publish[key] = REDACTED
    for site in (redacted.get('sites') or {}).values():
        params = (site or {}).get('params') or {}
        for key in params:
            if key.endswith('.auth.token') and params[key]:
                params[key] = REDACTED
    return redacted


@click.group("config")
def config_cmd():
    """Configuration management commands."""
    pass


@config_cmd.command("init")
def init_config():
    """Write the default configuration file if none exists."""
    existed = get_config_path().exists()
    path = generate_default_config()
    if existed:
        click.echo(f"Configuration already exists at {path}")
    else:
        click.echo(f"Default configuration written to {path}")


@config_cmd.command("show")
@click.option("--pretty", is_flag=True, help="Display as formatted JSON instead of single-line JSONL")
@click.option("--path", is_flag=True, help="Show the config file path being used")
def show_config(pretty, path):
    """Show the current configuration with all merges applied.

    Tokens are masked. By default, outputs single-line JSON (JSONL format).
    Use --pretty for human-readable formatted output.
    Use --path to see which config file is being used.
    """
    if path:
        print(json.dumps({"config_path": str(get_config_path())}))
        return

    config = redact_config(load_config())
    if pretty:
        print(json.dumps(config, indent=2, ensure_ascii=False))
    else:
        print(json.dumps(config, ensure_ascii=False))
