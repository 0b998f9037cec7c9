"""
Unit tests for pluginrepo.config module
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

from pluginrepo.config import (
    apply_env_overrides,
    configure_logging,
    get_config_path,
    get_default_config,
    get_github_token,
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
        for key in list(os.environ):
            if key.startswith('PLUGINREPO_') or key == 'GITHUB_TOKEN':
                del os.environ[key]

    def tearDown(self):
        """Clean up test environment"""
        self.env.stop()
        shutil.rmtree(self.temp_dir)

    def test_get_default_config(self):
        """Test default configuration structure"""
        config = get_default_config()

        for section in ('repository', 'github', 'download', 'filters', 'limits', 'scan', 'logging'):
            self.assertIn(section, config)

        self.assertEqual(config['repository']['root'], 'plugin_repo')
        self.assertEqual(config['download']['max_attempts'], 3)
        self.assertEqual(config['download']['retry_delay_seconds'], 5)
        self.assertEqual(config['limits']['max_path_length'], 260)
        self.assertEqual(config['scan']['interval_seconds'], 900)

    def test_load_config_no_file(self):
        """Test loading config when no file exists"""
        config = load_config()
        self.assertEqual(config, get_default_config())

    def test_default_config_path(self):
        """Default path lives under ~/.pluginrepo"""
        path = get_config_path()
        self.assertEqual(path, Path(self.temp_dir) / '.pluginrepo' / 'config.json')

    def test_load_config_json_file(self):
        """Test loading config from JSON file"""
        config_path = Path(self.temp_dir) / 'config.json'
        config_path.write_text(json.dumps({
            'repository': {'url': 'https://github.com/acme/widgets'},
            'download': {'max_attempts': 5},
        }))

        config = load_config(config_path)

        self.assertEqual(config['repository']['url'], 'https://github.com/acme/widgets')
        self.assertEqual(config['repository']['root'], 'plugin_repo')
        self.assertEqual(config['download']['max_attempts'], 5)
        self.assertEqual(config['download']['retry_delay_seconds'], 5)

    def test_load_config_yaml_file(self):
        """Test loading config from YAML file"""
        config_path = Path(self.temp_dir) / 'config.yaml'
        config_path.write_text(yaml.safe_dump({'scan': {'interval_seconds': 60}}))

        config = load_config(config_path)
        self.assertEqual(config['scan']['interval_seconds'], 60)

    def test_load_config_toml_file(self):
        """Test loading config from TOML file"""
        config_path = Path(self.temp_dir) / 'config.toml'
        config_path.write_text('[github]\nper_page = 50\n')

        config = load_config(config_path)
        self.assertEqual(config['github']['per_page'], 50)

    def test_load_config_malformed_file_uses_defaults(self):
        config_path = Path(self.temp_dir) / 'config.json'
        config_path.write_text('{not json')

        with self.assertLogs('pluginrepo', level='ERROR'):
            config = load_config(config_path)
        self.assertEqual(config['repository']['root'], 'plugin_repo')

    def test_env_config_path(self):
        """PLUGINREPO_CONFIG points at an explicit file"""
        config_path = Path(self.temp_dir) / 'custom.yaml'
        config_path.write_text(yaml.safe_dump({'repository': {'root': '/srv/plugins'}}))

        with patch.dict(os.environ, {'PLUGINREPO_CONFIG': str(config_path)}):
            self.assertEqual(get_config_path(), config_path)
            config = load_config()
        self.assertEqual(config['repository']['root'], '/srv/plugins')

    def test_save_config_round_trip(self):
        """Test saving and reloading configuration"""
        config_path = Path(self.temp_dir) / 'sub' / 'config.json'
        config = get_default_config()
        config['repository']['url'] = 'https://github.com/acme/widgets'

        written = save_config(config, config_path)

        self.assertEqual(written, config_path)
        self.assertEqual(load_config(config_path)['repository']['url'],
                         'https://github.com/acme/widgets')

    def test_save_config_toml_falls_back_to_json(self):
        config_path = Path(self.temp_dir) / 'config.toml'
        written = save_config(get_default_config(), config_path)
        self.assertEqual(written.suffix, '.json')
        self.assertTrue(written.exists())

    def test_merge_configs_recursive(self):
        base = {'a': {'b': 1, 'c': 2}, 'd': 3}
        merged = merge_configs(base, {'a': {'b': 10}, 'e': 4})
        self.assertEqual(merged, {'a': {'b': 10, 'c': 2}, 'd': 3, 'e': 4})
        self.assertEqual(base['a']['b'], 1)


class TestEnvOverrides(unittest.TestCase):
    """Test PLUGINREPO_SECTION_KEY overrides"""

    def test_int_override_with_underscored_key(self):
        with patch.dict(os.environ, {'PLUGINREPO_DOWNLOAD_MAX_ATTEMPTS': '7'}):
            config = apply_env_overrides(get_default_config())
        self.assertEqual(config['download']['max_attempts'], 7)

    def test_string_override(self):
        with patch.dict(os.environ, {'PLUGINREPO_REPOSITORY_URL': 'https://github.com/a/b'}):
            config = apply_env_overrides(get_default_config())
        self.assertEqual(config['repository']['url'], 'https://github.com/a/b')

    def test_unknown_key_ignored(self):
        with patch.dict(os.environ, {'PLUGINREPO_NOPE_VALUE': '1'}):
            config = apply_env_overrides(get_default_config())
        self.assertNotIn('nope', config)

    def test_github_token_sources(self):
        with patch.dict(os.environ, {'GITHUB_TOKEN': 'env-token'}, clear=False):
            os.environ.pop('PLUGINREPO_GITHUB_TOKEN', None)
            self.assertEqual(get_github_token({'github': {'token': ''}}), 'env-token')
            self.assertEqual(get_github_token({'github': {'token': 'cfg'}}), 'cfg')


class TestConfigureLogging(unittest.TestCase):

    def test_verbose_sets_debug(self):
        configure_logging(get_default_config(), verbose=True)
        self.assertEqual(logging.getLogger('pluginrepo').level, logging.DEBUG)

    def test_level_from_config(self):
        config = get_default_config()
        config['logging']['level'] = 'warning'
        configure_logging(config)
        self.assertEqual(logging.getLogger('pluginrepo').level, logging.WARNING)
