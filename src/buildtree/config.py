"""
Configuration file parsing for build parameter defaults.

Parameters are resolved from, lowest to highest precedence: built-in
defaults, the machine config, the user config, the project
``.buildtree-config.yml``, environment variables and finally CLI options.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, fields, replace
from pathlib import Path
from typing import Any, Mapping, Optional

import platformdirs
import yaml

from buildtree.context import DEFAULT_NUGET_SOURCE

__all__ = [
    "BuildSettings",
    "ConfigError",
    "PROJECT_CONFIG_NAME",
    "find_project_config",
    "get_machine_config_path",
    "get_user_config_path",
    "load_settings",
    "parse_config_file",
]

PROJECT_CONFIG_NAME = ".buildtree-config.yml"

# Environment variable for each setting
ENV_VARS = {
    "configuration": "BUILDTREE_CONFIGURATION",
    "nuget_source": "BUILDTREE_NUGET_SOURCE",
    "project": "BUILDTREE_PROJECT",
    "output": "BUILDTREE_OUTPUT",
    "log_level": "BUILDTREE_LOG_LEVEL",
}

SECRET_KEYS = {"nuget_api_key", "api_key"}


class ConfigError(Exception):
    """
    Raised when a configuration file is invalid.
    """

    pass


@dataclass(frozen=True)
class BuildSettings:
    """Parameter defaults gathered from config files and the environment."""

    configuration: Optional[str] = None
    nuget_source: str = DEFAULT_NUGET_SOURCE
    project: str = "Cli"
    output: str = "all"
    log_level: str = "info"


def get_machine_config_path() -> Path:
    """
    Get the path to the machine-level (system-wide) configuration file.

    Uses platformdirs to determine the appropriate site config directory
    for the current platform, then appends 'buildtree/config.yml'.

    Returns:
        Path to the machine config file (may not exist)
    """
    config_dir = Path(platformdirs.site_config_dir("buildtree"))
    return config_dir / "config.yml"


def get_user_config_path() -> Path:
    """
    Get the path to the user-level configuration file.

    Returns:
        Path to the user config file (may not exist)
    """
    config_dir: Path = Path(platformdirs.user_config_dir("buildtree"))
    return config_dir / "config.yml"


def find_project_config(start_dir: Path) -> Optional[Path]:
    """
    Walk up the directory tree from start_dir to find .buildtree-config.yml.

    Args:
        start_dir: Directory to start searching from

    Returns:
        Path to .buildtree-config.yml if found, None otherwise
    """
    try:
        current = start_dir.resolve()
    except (OSError, RuntimeError):
        # resolve() can raise OSError on invalid paths or RuntimeError on symlink loops
        return None

    while True:
        config_path = current / PROJECT_CONFIG_NAME
        try:
            if config_path.exists():
                return config_path
        except OSError:
            # Permission denied or similar; keep walking up
            pass

        parent = current.parent
        if parent == current:
            # We've reached the root
            return None
        current = parent


def parse_config_file(path: Path) -> dict[str, Any]:
    """
    Parse a buildtree configuration file.

    Missing files, empty files and empty documents are valid and yield no
    settings.

    Args:
        path: Path to the configuration file

    Returns:
        Mapping of setting name to value for the settings the file defines

    Raises:
        ConfigError: If the file is unreadable, malformed, defines unknown
            settings, has values of the wrong type or contains a secret

    Config File Example:

        ```yaml
        configuration: Release
        nuget_source: https://nuget.example.com/v3/index.json
        project: Cli
        output: err
        log_level: debug
        ```
    """
    if not path.exists():
        return {}

    try:
        with open(path, "r") as f:
            content = f.read()
    except OSError as e:
        raise ConfigError(f"Error reading config file '{path}': {e}") from e

    if not content.strip():
        return {}

    try:
        data = yaml.safe_load(content)
    except yaml.YAMLError as e:
        raise ConfigError(f"Error parsing YAML in config file '{path}': {e}") from e

    if data is None:
        return {}

    if not isinstance(data, dict):
        raise ConfigError(f"Error in config file '{path}': top level must be a mapping")

    secrets = SECRET_KEYS.intersection(data)
    if secrets:
        raise ConfigError(
            f"Error in config file '{path}': secrets must not be stored in config files "
            f"({', '.join(sorted(secrets))}); use the NUGET_API_KEY environment variable"
        )

    known = {f.name for f in fields(BuildSettings)}
    unknown = [key for key in data if key not in known]
    if unknown:
        raise ConfigError(
            f"Error in config file '{path}': unknown settings: {', '.join(sorted(map(str, unknown)))}"
        )

    for key, value in data.items():
        if not isinstance(value, str):
            raise ConfigError(f"Error in config file '{path}': Field '{key}' must be a string")

    return dict(data)


def load_settings(
    start_dir: Path,
    environ: Optional[Mapping[str, str]] = None,
) -> BuildSettings:
    """
    Resolve settings from config files and environment variables.

    Args:
        start_dir: Directory the project config search starts from
        environ: Environment to read (defaults to os.environ)

    Raises:
        ConfigError: If any config file is invalid
    """
    environ = os.environ if environ is None else environ
    settings = BuildSettings()

    paths = [get_machine_config_path(), get_user_config_path()]
    project_config = find_project_config(start_dir)
    if project_config is not None:
        paths.append(project_config)

    for path in paths:
        settings = replace(settings, **parse_config_file(path))

    overrides = {key: environ[var] for key, var in ENV_VARS.items() if environ.get(var)}
    return replace(settings, **overrides)
