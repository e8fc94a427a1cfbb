"""
Unit tests for sitepub.config module
"""
import unittest
import tempfile
import os
import shutil
import json
import logging
from pathlib import Path
from unittest.mock import patch

import yaml

from sitepub.config import (
    apply_env_overrides,
    configure_logging,
    generate_default_config,
    get_config_path,
    get_default_config,
    load_config,
    merge_configs,
    save_config,
)


class TestConfigManagement(unittest.TestCase):
    """Test configuration management functionality"""

    def setUp(self):
        """Set up test environment"""
        self.temp_dir = tempfile.mkdtemp()
        self.env = patch.dict(os.environ, {'HOME': self.temp_dir}, clear=False)
        self.env.start()
        for key in [k for k in os.environ if k.startswith('SITEPUB_')]:
            del os.environ[key]
        self.config_dir = Path(self.temp_dir) / '.sitepub'
        self.config_dir.mkdir()

    def tearDown(self):
        """Clean up test environment"""
        self.env.stop()
        shutil.rmtree(self.temp_dir)

    def test_get_default_config(self):
        """Test default configuration structure"""
        config = get_default_config()

        for section in ('paths', 'preview', 'publish', 'git', 'logging', 'sites'):
            self.assertIn(section, config)

        self.assertEqual(config['publish']['branch'], 'gh-pages')
        self.assertEqual(config['preview']['local_host'], 'localhost')
        self.assertEqual(config['preview']['default_site'], 'default')
        self.assertEqual(config['publish']['auth_method'], 'none')
        self.assertEqual(config['publish']['auth_token'], '')

    def test_load_config_no_file(self):
        """Test loading config when no file exists"""
        config = load_config()
        self.assertEqual(config, get_default_config())

    def test_load_config_json_file(self):
        """Test loading config from JSON file"""
        with open(self.config_dir / 'config.json', 'w') as f:
            json.dump({'publish': {'branch': 'main'}, 'logging': {'level': 'DEBUG'}}, f)

        config = load_config()

        self.assertEqual(config['publish']['branch'], 'main')
        self.assertEqual(config['logging']['level'], 'DEBUG')
        # Defaults survive the merge
        self.assertEqual(config['publish']['remote'], 'origin')

    def test_load_config_yaml_file(self):
        """Test loading config with per-site params from YAML"""
        data = {
            'sites': {
                'blog': {'params': {'ssg.publish.repo.url': 'https://github.com/me/blog.git'}},
            },
        }
        with open(self.config_dir / 'config.yaml', 'w') as f:
            yaml.safe_dump(data, f)

        config = load_config()

        self.assertEqual(
            config['sites']['blog']['params']['ssg.publish.repo.url'],
            'https://github.com/me/blog.git',
        )

    def test_load_config_toml_file(self):
        """Test loading config from TOML file"""
        (self.config_dir / 'config.toml').write_text('[preview]\nport = 9090\nbind = "0.0.0.0"\n')

        config = load_config()

        self.assertEqual(config['preview']['port'], 9090)
        self.assertEqual(config['preview']['bind'], '0.0.0.0')

    def test_load_config_invalid_json_keeps_defaults(self):
        """A broken file is reported and defaults are used"""
        (self.config_dir / 'config.json').write_text('{"publish": {broken json')

        with self.assertLogs('sitepub', level='ERROR'):
            config = load_config()

        self.assertEqual(config['publish']['branch'], 'gh-pages')

    def test_config_path_from_env(self):
        """SITEPUB_CONFIG wins over the home directory"""
        custom = Path(self.temp_dir) / 'custom.json'
        custom.write_text(json.dumps({'publish': {'remote': 'upstream'}}))

        with patch.dict(os.environ, {'SITEPUB_CONFIG': str(custom)}):
            self.assertEqual(get_config_path(), custom)
            config = load_config()

        self.assertEqual(config['publish']['remote'], 'upstream')

    def test_save_and_reload(self):
        """Saved configuration loads back"""
        config = get_default_config()
        config['publish']['repo_url'] = 'https://github.com/me/site.git'

        path = save_config(config)

        self.assertEqual(path, self.config_dir / 'config.json')
        self.assertEqual(load_config()['publish']['repo_url'], 'https://github.com/me/site.git')

    def test_generate_default_config_does_not_overwrite(self):
        """Existing configuration is left alone"""
        path = self.config_dir / 'config.json'
        path.write_text(json.dumps({'publish': {'branch': 'keep-me'}}))

        self.assertEqual(generate_default_config(), path)
        self.assertEqual(json.loads(path.read_text())['publish']['branch'], 'keep-me')


class TestMergeAndOverrides(unittest.TestCase):
    """Test deep merge and environment overrides"""

    def test_merge_is_deep(self):
        base = {'a': {'x': 1, 'y': 2}, 'b': 1}
        merged = merge_configs(base, {'a': {'y': 3}})
        self.assertEqual(merged, {'a': {'x': 1, 'y': 3}, 'b': 1})

    def test_env_override_with_underscored_key(self):
        """SITEPUB_PUBLISH_AUTH_TOKEN sets publish.auth_token"""
        config = get_default_config()
        with patch.dict(os.environ, {'SITEPUB_PUBLISH_AUTH_TOKEN': 'abc'}):
            apply_env_overrides(config)
        self.assertEqual(config['publish']['auth_token'], 'abc')

    def test_env_override_types(self):
        config = get_default_config()
        with patch.dict(os.environ, {'SITEPUB_PREVIEW_PORT': '9000',
                                     'SITEPUB_GIT_TIMEOUT_SECONDS': '30'}):
            apply_env_overrides(config)
        self.assertEqual(config['preview']['port'], 9000)
        self.assertEqual(config['git']['timeout_seconds'], 30)

    def test_unknown_env_key_ignored(self):
        config = get_default_config()
        with patch.dict(os.environ, {'SITEPUB_NOPE_THING': 'x'}):
            apply_env_overrides(config)
        self.assertNotIn('nope', config)


class TestConfigureLogging(unittest.TestCase):

    def tearDown(self):
        logging.getLogger().setLevel(logging.WARNING)

    def test_level_from_config(self):
        configure_logging({'logging': {'level': 'DEBUG'}})
        self.assertEqual(logging.getLogger().level, logging.DEBUG)

    def test_explicit_level_wins(self):
        configure_logging({'logging': {'level': 'DEBUG'}}, level='error')
        self.assertEqual(logging.getLogger().level, logging.ERROR)


if __name__ == '__main__':
    unittest.main()
