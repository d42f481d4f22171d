"""Tests for ProjectConfig"""

import os
import tempfile
import unittest
from pathlib import Path
from unittest.mock import patch

from devserve_cli.config import ProjectConfig
from devserve_cli.errors import ConfigError

CLEAN_ENV = {k: v for k, v in os.environ.items() if not k.startswith("DEVSERVE_")}


@patch.dict(os.environ, CLEAN_ENV, clear=True)
class TestProjectConfig(unittest.TestCase):
    """Tests for ProjectConfig class"""

    def setUp(self):
        self._tmpdir = tempfile.TemporaryDirectory()
        self.tmp = Path(self._tmpdir.name).resolve()

    def tearDown(self):
        self._tmpdir.cleanup()

    def test_default_config_no_file(self):
        """Test defaults when no devserve.yml exists"""
        config = ProjectConfig(self.tmp)

        self.assertFalse(config.exists())
        self.assertEqual(config.port, 8787)
        self.assertIsNone(config.host)
        self.assertTrue(config.auto_host)
        self.assertEqual(config.max_port_attempts, 10)
        self.assertEqual(config.ready_timeout, 3.0)
        self.assertTrue(config.assume_ready_on_timeout)
        self.assertEqual(config.ready_patterns, ("Ready on", "Listening on"))
        self.assertIn("Address already in use", config.port_conflict_patterns)
        self.assertEqual(config.pid_dir, self.tmp / ".devserve")
        self.assertEqual(config.command, ["npx", "wrangler", "dev"])
        self.assertEqual(config.project_dir, self.tmp)

    def test_load_yaml_config(self):
        """Test loading devserve.yml"""
        (self.tmp / "devserve.yml").write_text(
            """
command: "node_modules/.bin/vite --strictPort"
port: 5173
host: 127.0.0.1
ready_timeout: 1.5
assume_ready_on_timeout: false
ready_patterns:
  - "ready in"
pid_dir: .run
"""
        )
        config = ProjectConfig(self.tmp)

        self.assertTrue(config.exists())
        self.assertEqual(config.command, ["node_modules/.bin/vite", "--strictPort"])
        self.assertEqual(config.port, 5173)
        self.assertEqual(config.host, "127.0.0.1")
        self.assertEqual(config.ready_timeout, 1.5)
        self.assertFalse(config.assume_ready_on_timeout)
        self.assertEqual(config.ready_patterns, ("ready in",))
        self.assertEqual(config.pid_dir, self.tmp / ".run")

    def test_yaml_search_parent_dirs(self):
        """Test that config is found in parent directories"""
        (self.tmp / "devserve.yaml").write_text("port: 3000\n")
        child_dir = self.tmp / "src" / "deep"
        child_dir.mkdir(parents=True)

        config = ProjectConfig(child_dir)

        self.assertTrue(config.exists())
        self.assertEqual(config.port, 3000)
        self.assertEqual(config.project_dir, self.tmp)

    def test_local_wrangler_preferred(self):
        """Test the project's own wrangler binary is used when installed"""
        local = self.tmp / "node_modules" / ".bin" / "wrangler"
        local.parent.mkdir(parents=True)
        local.write_text("")

        config = ProjectConfig(self.tmp)

        self.assertEqual(config.command, [str(local), "dev"])

    def test_unknown_keys_rejected(self):
        (self.tmp / "devserve.yml").write_text("prot: 3000\n")
        with self.assertRaises(ConfigError) as ctx:
            ProjectConfig(self.tmp)
        self.assertIn("prot", str(ctx.exception))

    def test_invalid_yaml_rejected(self):
        (self.tmp / "devserve.yml").write_text("port: [unclosed\n")
        with self.assertRaises(ConfigError):
            ProjectConfig(self.tmp)

    def test_non_mapping_rejected(self):
        (self.tmp / "devserve.yml").write_text("- a\n- b\n")
        with self.assertRaises(ConfigError):
            ProjectConfig(self.tmp)

    def test_invalid_values(self):
        """Test bad values surface as ConfigError when read"""
        config = ProjectConfig(self.tmp)
        config.config["port"] = 70000
        with self.assertRaises(ConfigError):
            _ = config.port
        config.config["port"] = "abc"
        with self.assertRaises(ConfigError):
            _ = config.port
        config.config["ready_timeout"] = 0
        with self.assertRaises(ConfigError):
            _ = config.ready_timeout
        config.config["ready_patterns"] = [""]
        with self.assertRaises(ConfigError):
            _ = config.ready_patterns
        config.config["command"] = 42
        with self.assertRaises(ConfigError):
            _ = config.command

    def test_env_overrides(self):
        """Test DEVSERVE_* variables win over the file"""
        (self.tmp / "devserve.yml").write_text("port: 3000\nhost: 127.0.0.1\n")
        with patch.dict(os.environ, {"DEVSERVE_PORT": "4000", "DEVSERVE_HOST": "0.0.0.0", "DEVSERVE_READY_TIMEOUT": "7"}):
            config = ProjectConfig(self.tmp)

        self.assertEqual(config.port, 4000)
        self.assertEqual(config.host, "0.0.0.0")
        self.assertEqual(config.ready_timeout, 7.0)

    def test_is_project_markers(self):
        """Test project detection by marker files"""
        config = ProjectConfig(self.tmp)
        self.assertFalse(config.is_project())

        for marker in ("conductor.config.ts", "conductor.config.js", "wrangler.toml"):
            path = self.tmp / marker
            path.write_text("")
            self.assertTrue(ProjectConfig(self.tmp).is_project(), marker)
            path.unlink()

    def test_save(self):
        config = ProjectConfig(self.tmp)
        config.config["port"] = 9000

        path = config.save()

        self.assertEqual(path, self.tmp / "devserve.yml")
        self.assertEqual(ProjectConfig(self.tmp).port, 9000)


if __name__ == "__main__":
    unittest.main()
