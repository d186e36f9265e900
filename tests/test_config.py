"""
Unit tests for grit.config module
"""
import json
import logging
import os
import shutil
import tempfile
import unittest
from pathlib import Path
from unittest.mock import patch

from grit.config import (
    apply_env_overrides,
    configure_logging,
    get_default_settings,
    get_settings_path,
    load_settings,
    logger,
    merge_configs,
)


class TestSettingsManagement(unittest.TestCase):
    """Test settings loading"""

    def setUp(self):
        """Set up test environment"""
        self.temp_dir = tempfile.mkdtemp()
        self.original_home = os.environ.get('HOME')
        os.environ['HOME'] = self.temp_dir
        self.grit_dir = Path(self.temp_dir) / '.grit'

    def tearDown(self):
        """Clean up test environment"""
        if self.original_home:
            os.environ['HOME'] = self.original_home
        else:
            del os.environ['HOME']
        shutil.rmtree(self.temp_dir)

    def test_get_default_settings(self):
        """Test default settings structure"""
        settings = get_default_settings()

        self.assertEqual(settings['git']['executable'], 'git')
        self.assertEqual(settings['workspace']['metadata_dir'], '.grit')
        self.assertEqual(settings['workspace']['config_file'], 'config.yml')
        self.assertTrue(settings['output']['color'])

    def test_load_settings_no_file(self):
        """Test loading settings when no file exists"""
        self.assertEqual(load_settings(), get_default_settings())

    def test_default_path(self):
        self.assertEqual(get_settings_path(), self.grit_dir / 'settings.yaml')

    def test_load_settings_yaml_file(self):
        """Test loading settings from a YAML file"""
        self.grit_dir.mkdir()
        (self.grit_dir / 'settings.yaml').write_text(
            "git:\n  executable: /usr/local/bin/git\nlogging:\n  level: DEBUG\n"
        )

        settings = load_settings()

        self.assertEqual(settings['git']['executable'], '/usr/local/bin/git')
        self.assertEqual(settings['logging']['level'], 'DEBUG')
        # Untouched sections keep their defaults
        self.assertEqual(settings['workspace']['metadata_dir'], '.grit')

    def test_load_settings_json_file(self):
        """Test loading settings from a JSON file"""
        self.grit_dir.mkdir()
        with open(self.grit_dir / 'settings.json', 'w') as f:
            json.dump({'output': {'color': False}}, f)

        self.assertFalse(load_settings()['output']['color'])

    def test_settings_env_path(self):
        """Test GRIT_SETTINGS points at an explicit file"""
        custom = Path(self.temp_dir) / 'custom.yml'
        custom.write_text("git:\n  executable: hub\n")

        with patch.dict(os.environ, {'GRIT_SETTINGS': str(custom)}):
            self.assertEqual(get_settings_path(), custom)
            self.assertEqual(load_settings()['git']['executable'], 'hub')

    def test_malformed_file_falls_back_to_defaults(self):
        """Test that an unreadable settings file is logged and ignored"""
        self.grit_dir.mkdir()
        (self.grit_dir / 'settings.yaml').write_text("git: [unclosed\n")

        with self.assertLogs('grit', level='ERROR'):
            settings = load_settings()

        self.assertEqual(settings, get_default_settings())

    @patch.dict(os.environ, {'GRIT_GIT_EXECUTABLE': '/opt/git/bin/git'})
    def test_environment_override(self):
        """Test environment variable override"""
        self.assertEqual(load_settings()['git']['executable'], '/opt/git/bin/git')

    @patch.dict(os.environ, {'GRIT_WORKSPACE_METADATA_DIR': '.workspace'})
    def test_environment_override_underscored_key(self):
        """Test env override of a key that itself contains underscores"""
        self.assertEqual(load_settings()['workspace']['metadata_dir'], '.workspace')

    @patch.dict(os.environ, {'GRIT_OUTPUT_COLOR': 'false'})
    def test_environment_override_boolean(self):
        self.assertIs(load_settings()['output']['color'], False)


class TestSettingsHelpers(unittest.TestCase):
    """Test merge and override helpers"""

    def test_merge_configs_nested(self):
        merged = merge_configs({'a': {'b': 1, 'c': 2}}, {'a': {'c': 3}, 'd': 4})

        self.assertEqual(merged, {'a': {'b': 1, 'c': 3}, 'd': 4})

    @patch.dict(os.environ, {'GRIT_ROOT': '/somewhere', 'GRIT_WORKSPACE': '/elsewhere'})
    def test_root_variables_are_not_settings(self):
        settings = apply_env_overrides(get_default_settings())

        self.assertEqual(settings, get_default_settings())

    @patch.dict(os.environ, {
        'GRIT_WORKSPACE_CONFIG_FILE': 'repos.yml',
        'GRIT_LOGGING_LEVEL': 'debug',
        'GRIT_OUTPUT_COLOR': 'Yes',
    })
    def test_each_mapped_variable(self):
        settings = apply_env_overrides(get_default_settings())

        self.assertEqual(settings['workspace']['config_file'], 'repos.yml')
        self.assertEqual(settings['logging']['level'], 'debug')
        self.assertIs(settings['output']['color'], True)

    @patch.dict(os.environ, {'GRIT_UNKNOWN_THING': 'x'})
    def test_unknown_env_ignored(self):
        self.assertEqual(apply_env_overrides(get_default_settings()), get_default_settings())


class TestConfigureLogging(unittest.TestCase):
    def tearDown(self):
        logger.setLevel(logging.WARNING)

    def test_level_from_settings(self):
        settings = get_default_settings()
        settings['logging']['level'] = 'info'

        self.assertEqual(configure_logging(settings), logging.INFO)
        self.assertEqual(logger.level, logging.INFO)

    def test_verbose_wins(self):
        self.assertEqual(configure_logging(get_default_settings(), verbose=True), logging.DEBUG)

    def test_unknown_level_defaults_to_warning(self):
        settings = get_default_settings()
        settings['logging']['level'] = 'LOUD'

        self.assertEqual(configure_logging(settings), logging.WARNING)


if __name__ == '__main__':
    unittest.main()
