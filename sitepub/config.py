#!/usr/bin/env python3

import os
import json
import tomllib
from pathlib import Path

import logging
import sys

import yaml

logger = logging.getLogger("sitepub")

CONFIG_FILENAMES = ['config.json', 'config.toml', 'config.yaml', 'config.yml']


def configure_logging(config=None, level=None):
    """Configure the root logger from the ``logging`` config section.

    Args:
        config: Configuration dict (uses defaults if None)
        level: Explicit level name, overrides the configured one
    """
    section = (config or get_default_config()).get("logging", {})
    level_name = (level or section.get("level") or "INFO").upper()
    logging.basicConfig(
        level=getattr(logging, level_name, logging.INFO),
        format=section.get("format", "%(levelname)s: %(message)s"),
        handlers=[
            logging.StreamHandler(sys.stderr)  # Default to stderr
        ],
        force=True,
    )


def get_config_path():
    """Get the path to the configuration file.

    Checks in order:
    1. SITEPUB_CONFIG environment variable
    2. ~/.sitepub/ directory
    """
    if 'SITEPUB_CONFIG' in os.environ:
        path = Path(os.environ['SITEPUB_CONFIG'])
        if path.exists():
            return path

    sitepub_dir = Path.home() / '.sitepub'
    for filename in CONFIG_FILENAMES:
        path = sitepub_dir / filename
        if path.exists() and path.stat().st_size > 10:  # Not empty/trivial
            return path

    # If no file exists, return default path for saving
    return sitepub_dir / 'config.json'


def load_config():
    """Load configuration from file."""
    config_path = get_config_path()

    # Start with default config
    config = get_default_config()

    if config_path.exists():
        try:
            if config_path.suffix.lower() in ['.toml']:
                with open(config_path, 'rb') as f:
                    file_config = tomllib.load(f)
            elif config_path.suffix.lower() in ['.yaml', '.yml']:
                with open(config_path, 'r') as f:
                    file_config = yaml.safe_load(f) or {}
            else:
                with open(config_path, 'r') as f:
                    file_config = json.load(f)

            config = merge_configs(config, file_config)
        except (OSError, ValueError, yaml.YAMLError) as e:
            logger.error(f"Error loading config from {config_path}: {e}")

    return apply_env_overrides(config)


def save_config(config):
    """Save configuration to file."""
    config_path = get_config_path()

    try:
        config_path.parent.mkdir(parents=True, exist_ok=True)

        if config_path.suffix.lower() in ['.yaml', '.yml']:
            with open(config_path, 'w') as f:
                yaml.safe_dump(config, f, default_flow_style=False)
        else:
            if config_path.suffix.lower() == '.toml':
                # tomllib is read-only
                logger.warning("TOML config is read-only. Saving as JSON instead.")
                config_path = config_path.with_suffix('.json')
            with open(config_path, 'w') as f:
                json.dump(config, f, indent=2)

        logger.info(f"Configuration saved to {config_path}")
    except OSError as e:
        logger.error(f"Error saving config to {config_path}: {e}")
    return config_path


def get_default_config():
    """Get default configuration."""
    return {
        "paths": {
            "sites_base": "_workspace/sites",
        },
        "preview": {
            "bind": "127.0.0.1",
            "port": 8080,
            "local_host": "localhost",
            "default_site": "default",
        },
        "publish": {
            "repo_url": "",
            "branch": "gh-pages",
            "remote": "origin",
            "auth_method": "none",
            "auth_token": "",
            "auth_ssh_key": "",
            "commit_user_name": "sitepub",
            "commit_user_email": "sitepub@localhost",
            "commit_message": "Publish site",
        },
        "git": {
            "binary": "git",
            "timeout_seconds": 120,
        },
        "logging": {
            "level": "INFO",
            "format": "%(levelname)s: %(message)s"
        },
        "sites": {},
    }


def generate_default_config():
    """Write the default configuration to the config path if none exists."""
    config_path = get_config_path()
    if config_path.exists():
        logger.info(f"Configuration already exists at {config_path}")
        return config_path
    return save_config(get_default_config())


def merge_configs(base_config, override_config):
    """
    Recursively merge two configuration dictionaries.

    Args:
        base_config (dict): Base configuration
        override_config (dict): Configuration to merge/override with

    Returns:
        dict: Merged configuration
    """
    merged = base_config.copy()

    for key, value in override_config.items():
        if key in merged and isinstance(merged[key], dict) and isinstance(value, dict):
            merged[key] = merge_configs(merged[key], value)
        else:
            merged[key] = value

    return merged


def apply_env_overrides(config):
    """
    Apply environment variable overrides to configuration.
    Environment variables follow the pattern: SITEPUB_SECTION_KEY
    For example: SITEPUB_PUBLISH_AUTH_TOKEN=ghp_xxx
    """
    env_prefix = "SITEPUB_"

    for env_key, value in os.environ.items():
        if not env_key.startswith(env_prefix) or env_key == 'SITEPUB_CONFIG':
            continue

        key_parts = env_key[len(env_prefix):].lower().split('_')

        if value.lower() in ('true', 'yes', 'on'):
            typed_value = True
        elif value.lower() in ('false', 'no', 'off'):
            typed_value = False
        elif value.isdigit():
            typed_value = int(value)
        else:
            typed_value = value

        current_level = config
        i = 0
        while i < len(key_parts):
            # Find the longest key in current_level that is a prefix of the remaining key_parts
            best_match_len = 0
            matched_key = None

            for config_key in current_level.keys():
                config_key_parts = config_key.split('_')
                if key_parts[i:i + len(config_key_parts)] == config_key_parts:
                    if len(config_key_parts) > best_match_len:
                        best_match_len = len(config_key_parts)
                        matched_key = config_key

            if matched_key is None:
                break

            if i + best_match_len == len(key_parts):
                current_level[matched_key] = typed_value
                break

            if isinstance(current_level[matched_key], dict):
                current_level = current_level[matched_key]
                i += best_match_len
            else:
                # Path conflict: env var is longer than the config path
                break

    return config
