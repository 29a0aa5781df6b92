#!/usr/bin/env python3
"""
Configuration Test Suite

Usage:
  pytest test_config.py
"""

import os
import shutil
import tempfile
import unittest

from container_orcha.config import Settings, load_settings
from container_orcha.core.errors import ConfigurationError


class TestLoadSettings(unittest.TestCase):
    """Test cases for defaults, YAML files and environment overrides"""

    def setUp(self):
        self.config_dir = tempfile.mkdtemp()

    def tearDown(self):
        shutil.rmtree(self.config_dir, ignore_errors=True)

    def write_config(self, content):
        path = os.path.join(self.config_dir, "orcha.yml")
        with open(path, 'w') as f:
            f.write(content)
        return path

    def test_defaults(self):
        settings = load_settings(environ={})
        self.assertEqual(settings, Settings())
        self.assertEqual(settings.runtime, 'podman')
        self.assertEqual(settings.reconcile_interval, 10)
        self.assertEqual(settings.logs_tail, 100)
        self.assertEqual(settings.state_path, os.path.join("./container_states", "orchestrator-state.json"))

    def test_yaml_file(self):
        path = self.write_config("runtime: docker\nport: 9000\nreconcile_interval: 30\n")

        settings = load_settings(path, environ={})

        self.assertEqual(settings.runtime, 'docker')
        self.assertEqual(settings.port, 9000)
        self.assertEqual(settings.reconcile_interval, 30)

    def test_config_path_from_environment(self):
        path = self.write_config("state_dir: /var/lib/orcha\n")

        settings = load_settings(environ={'CONTAINER_ORCHA_CONFIG': path})

        self.assertEqual(settings.state_dir, '/var/lib/orcha')

    def test_environment_overrides_file(self):
        path = self.write_config("port: 9000\nruntime: docker\n")

        settings = load_settings(path, environ={
            'CONTAINER_ORCHA_PORT': '9100',
            'CONTAINER_ORCHA_COMMAND_TIMEOUT': '15.5',
            'CONTAINER_ORCHA_RUNTIME_BINARY': '/usr/bin/docker',
        })

        self.assertEqual(settings.port, 9100)
        self.assertEqual(settings.command_timeout, 15.5)
        self.assertEqual(settings.runtime, 'docker')
        self.assertEqual(settings.runtime_binary, '/usr/bin/docker')

    def test_unknown_key(self):
        path = self.write_config("prot: 9000\n")
        with self.assertRaises(ConfigurationError):
            load_settings(path, environ={})

    def test_invalid_yaml(self):
        path = self.write_config("port: [9000\n")
        with self.assertRaises(ConfigurationError):
            load_settings(path, environ={})

    def test_non_mapping_file(self):
        path = self.write_config("- port\n")
        with self.assertRaises(ConfigurationError):
            load_settings(path, environ={})

    def test_missing_file(self):
        with self.assertRaises(ConfigurationError):
            load_settings(os.path.join(self.config_dir, "missing.yml"), environ={})

    def test_wrongly_typed_file_values(self):
        for content in ("reconcile_interval: ten\n", "log_level: 5\n", "port: true\n",
                        "state_dir:\n", "logs_tail: [100]\n"):
            path = self.write_config(content)
            with self.assertRaises(ConfigurationError):
                load_settings(path, environ={})

    def test_file_values_are_coerced(self):
        path = self.write_config("port: '9000'\ncommand_timeout: 5\nruntime_binary:\n")

        settings = load_settings(path, environ={})

        self.assertEqual(settings.port, 9000)
        self.assertEqual(settings.command_timeout, 5.0)
        self.assertIsNone(settings.runtime_binary)

    def test_invalid_values(self):
        with self.assertRaises(ConfigurationError):
            load_settings(environ={'CONTAINER_ORCHA_RUNTIME': 'containerd'})
        with self.assertRaises(ConfigurationError):
            load_settings(environ={'CONTAINER_ORCHA_PORT': 'eighty'})
        with self.assertRaises(ConfigurationError):
            load_settings(environ={'CONTAINER_ORCHA_RECONCILE_INTERVAL': '0'})
        with self.assertRaises(ConfigurationError):
            load_settings(environ={'CONTAINER_ORCHA_LOG_LEVEL': 'chatty'})


if __name__ == '__main__':
    unittest.main()
