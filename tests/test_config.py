"""
Unit tests for gitpipeline.config module
"""
import json
import logging
import os
import shutil
import tempfile
import unittest
from pathlib import Path

from gitpipeline.config import (
    apply_env_overrides,
    configure_logging,
    get_default_config,
    load_config,
    merge_configs,
    logger,
)


class TestConfigManagement(unittest.TestCase):
    """Test configuration management functionality"""

    def setUp(self):
        """Set up test environment"""
        self.temp_dir = tempfile.mkdtemp()
        self.original_environ = os.environ.copy()
        os.environ['HOME'] = self.temp_dir
        for key in list(os.environ):
            if key.startswith('GITPIPELINE_'):
                del os.environ[key]

    def tearDown(self):
        """Clean up test environment"""
        os.environ.clear()
        os.environ.update(self.original_environ)
        shutil.rmtree(self.temp_dir)
        logger.setLevel(logging.INFO)

    def write_config(self, filename, content):
        config_dir = Path(self.temp_dir) / '.gitpipeline'
        config_dir.mkdir(exist_ok=True)
        path = config_dir / filename
        path.write_text(content)
        return path

    def test_get_default_config(self):
        config = get_default_config()

        self.assertEqual(config['git']['depth'], 1)
        self.assertEqual(config['discovery']['config'], 'concourse.json')
        self.assertIn('keyserver', config['gpg'])
        self.assertIn('level', config['logging'])

    def test_load_config_no_file(self):
        self.assertEqual(load_config(), get_default_config())

    def test_load_config_json_file(self):
        self.write_config('config.json', json.dumps({'git': {'timeout_seconds': 60}}))

        config = load_config()

        self.assertEqual(config['git']['timeout_seconds'], 60)
        self.assertEqual(config['git']['depth'], 1)

    def test_load_config_toml_file(self):
        self.write_config('config.toml', '[discovery]\nconfig = "pipelines.json"\n')
        self.assertEqual(load_config()['discovery']['config'], 'pipelines.json')

    def test_load_config_yaml_file(self):
        self.write_config('config.yaml', 'gpg:\n  keyserver: hkp://keys.internal\n')
        self.assertEqual(load_config()['gpg']['keyserver'], 'hkp://keys.internal')

    def test_env_config_path(self):
        path = Path(self.temp_dir) / 'custom.json'
        path.write_text(json.dumps({'logging': {'level': 'DEBUG'}}))
        os.environ['GITPIPELINE_CONFIG'] = str(path)

        self.assertEqual(load_config()['logging']['level'], 'DEBUG')

    def test_broken_file_falls_back_to_defaults(self):
        self.write_config('config.json', '{broken')
        self.assertEqual(load_config(), get_default_config())

    def test_env_overrides(self):
        os.environ['GITPIPELINE_GIT_TIMEOUT_SECONDS'] = '42'
        os.environ['GITPIPELINE_GPG_HOME'] = '/tmp/gnupg'

        config = apply_env_overrides(get_default_config())

        self.assertEqual(config['git']['timeout_seconds'], 42)
        self.assertEqual(config['gpg']['home'], '/tmp/gnupg')

    def test_env_override_unknown_key_ignored(self):
        os.environ['GITPIPELINE_NOPE_VALUE'] = 'x'
        self.assertEqual(apply_env_overrides(get_default_config()), get_default_config())

    def test_merge_configs(self):
        merged = merge_configs({'a': {'b': 1, 'c': 2}}, {'a': {'b': 3}, 'd': 4})
        self.assertEqual(merged, {'a': {'b': 3, 'c': 2}, 'd': 4})

    def test_configure_logging(self):
        configure_logging({'logging': {'level': 'WARNING'}})
        self.assertEqual(logger.level, logging.WARNING)

        configure_logging({'logging': {'level': 'WARNING'}}, verbose=True)
        self.assertEqual(logger.level, logging.DEBUG)


if __name__ == '__main__':
    unittest.main()
