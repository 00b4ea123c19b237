"""Tests for config module."""

import unittest
from pathlib import Path
from tempfile import TemporaryDirectory
from unittest.mock import patch

from buildtree.config import (
    BuildSettings,
    ConfigError,
    PROJECT_CONFIG_NAME,
    find_project_config,
    get_machine_config_path,
    get_user_config_path,
    load_settings,
    parse_config_file,
)
from buildtree.context import DEFAULT_NUGET_SOURCE


class TestConfigPaths(unittest.TestCase):
    @patch("platformdirs.user_config_dir")
    def test_user_config_from_platformdirs(self, mock_user_config_dir):
        mock_user_config_dir.return_value = "/home/user/.config/buildtree"
        result = get_user_config_path()
        mock_user_config_dir.assert_called_once_with("buildtree")
        self.assertEqual(result, Path("/home/user/.config/buildtree/config.yml"))

    @patch("platformdirs.site_config_dir")
    def test_machine_config_from_platformdirs(self, mock_site_config_dir):
        mock_site_config_dir.return_value = "/etc/xdg/buildtree"
        result = get_machine_config_path()
        mock_site_config_dir.assert_called_once_with("buildtree")
        self.assertEqual(result, Path("/etc/xdg/buildtree/config.yml"))


class TestFindProjectConfig(unittest.TestCase):
    def test_found_in_start_directory(self):
        with TemporaryDirectory() as tmpdir:
            root = Path(tmpdir).resolve()
            config = root / PROJECT_CONFIG_NAME
            config.write_text("configuration: Release\n")

            self.assertEqual(find_project_config(root), config)

    def test_found_in_parent_directory(self):
        with TemporaryDirectory() as tmpdir:
            root = Path(tmpdir).resolve()
            config = root / PROJECT_CONFIG_NAME
            config.write_text("")
            nested = root / "src" / "Cli"
            nested.mkdir(parents=True)

            self.assertEqual(find_project_config(nested), config)


class TestParseConfigFile(unittest.TestCase):
    def parse(self, content: str) -> dict:
        with TemporaryDirectory() as tmpdir:
            path = Path(tmpdir) / "config.yml"
            path.write_text(content)
            return parse_config_file(path)

    def test_missing_file_is_empty(self):
        self.assertEqual(parse_config_file(Path("/nonexistent/config.yml")), {})

    def test_empty_file_is_empty(self):
        self.assertEqual(self.parse("   \n"), {})
        self.assertEqual(self.parse("# only a comment\n"), {})

    def test_settings_parsed(self):
        result = self.parse("configuration: Release\nlog_level: debug\noutput: err\n")
        self.assertEqual(result, {"configuration": "Release", "log_level": "debug", "output": "err"})

    def test_malformed_yaml(self):
        with self.assertRaises(ConfigError) as ctx:
            self.parse("configuration: [Release\n")
        self.assertIn("Error parsing YAML", str(ctx.exception))

    def test_top_level_must_be_mapping(self):
        with self.assertRaises(ConfigError):
            self.parse("- Release\n")

    def test_unknown_setting(self):
        with self.assertRaises(ConfigError) as ctx:
            self.parse("colour: blue\n")
        self.assertIn("colour", str(ctx.exception))

    def test_non_string_value(self):
        with self.assertRaises(ConfigError) as ctx:
            self.parse("project: 42\n")
        self.assertIn("'project' must be a string", str(ctx.exception))

    def test_secret_rejected(self):
        with self.assertRaises(ConfigError) as ctx:
            self.parse("nuget_api_key: oy2secret\n")
        self.assertIn("secrets must not be stored", str(ctx.exception))
        self.assertNotIn("oy2secret", str(ctx.exception))


class TestLoadSettings(unittest.TestCase):
    def setUp(self):
        self._tmp = TemporaryDirectory()
        base = Path(self._tmp.name).resolve()
        self.machine = base / "machine.yml"
        self.user = base / "user.yml"
        self.project = base / "repo"
        self.project.mkdir()

        patcher_machine = patch("buildtree.config.get_machine_config_path", return_value=self.machine)
        patcher_user = patch("buildtree.config.get_user_config_path", return_value=self.user)
        patcher_machine.start()
        patcher_user.start()
        self.addCleanup(patcher_machine.stop)
        self.addCleanup(patcher_user.stop)
        self.addCleanup(self._tmp.cleanup)

    def test_defaults(self):
        settings = load_settings(self.project, environ={})
        self.assertEqual(settings, BuildSettings())
        self.assertIsNone(settings.configuration)
        self.assertEqual(settings.nuget_source, DEFAULT_NUGET_SOURCE)

    def test_precedence(self):
        """Test machine < user < project < environment."""
        self.machine.write_text("configuration: Debug\nproject: Machine\noutput: none\nlog_level: trace\n")
        self.user.write_text("project: User\noutput: out\nlog_level: warn\n")
        (self.project / PROJECT_CONFIG_NAME).write_text("output: err\nlog_level: error\n")

        settings = load_settings(self.project, environ={"BUILDTREE_LOG_LEVEL": "debug"})

        self.assertEqual(settings.configuration, "Debug")
        self.assertEqual(settings.project, "User")
        self.assertEqual(settings.output, "err")
        self.assertEqual(settings.log_level, "debug")

    def test_empty_environment_value_ignored(self):
        settings = load_settings(self.project, environ={"BUILDTREE_CONFIGURATION": ""})
        self.assertIsNone(settings.configuration)

    def test_invalid_file_propagates(self):
        self.user.write_text("unknown: 1\n")
        with self.assertRaises(ConfigError):
            load_settings(self.project, environ={})


if __name__ == "__main__":
    unittest.main()
