"""Immutable parameters threaded through every target action."""

from __future__ import annotations

import enum
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Mapping, Optional

from buildtree.logging import Logger
from buildtree.solution import Solution
from buildtree.tools import Toolchain

DEFAULT_NUGET_SOURCE = "https://api.nuget.org/v3/index.json"

# Environment variables whose presence marks a build running on a CI server
SERVER_BUILD_VARIABLES = ("CI", "GITHUB_ACTIONS", "TF_BUILD")


class Configuration(str, enum.Enum):
    """Build configuration passed to the compiler."""

    DEBUG = "Debug"
    RELEASE = "Release"

    @classmethod
    def from_name(cls, name: str) -> "Configuration":
        for member in cls:
            if member.value.lower() == name.strip().lower():
                return member
        valid = ", ".join(m.value for m in cls)
        raise ValueError(f"Invalid configuration '{name}'. Valid configurations: {valid}")

    def __str__(self) -> str:
        return self.value


def is_server_build(environ: Optional[Mapping[str, str]] = None) -> bool:
    environ = os.environ if environ is None else environ
    return any(environ.get(name) for name in SERVER_BUILD_VARIABLES)


def default_configuration(environ: Optional[Mapping[str, str]] = None) -> Configuration:
    """Debug for local builds, Release on a CI server."""
    return Configuration.RELEASE if is_server_build(environ) else Configuration.DEBUG


@dataclass(frozen=True)
class BuildContext:
    """Everything a target needs to know about the current invocation.

    The NuGet API key is a secret: it is excluded from ``repr`` and must only
    ever be handed to the tool that needs it.
    """

    root: Path
    configuration: Configuration
    tools: Toolchain
    logger: Logger
    solution: Solution
    nuget_api_key: Optional[str] = field(default=None, repr=False)
    nuget_source: str = DEFAULT_NUGET_SOURCE
    project_name: str = "Cli"
    is_local_build: bool = True

    @property
    def source_dir(self) -> Path:
        return self.root / "src"

    @property
    def test_dir(self) -> Path:
        return self.root / "tests"

    @property
    def project_dir(self) -> Path:
        return self.source_dir / self.project_name

    @property
    def artifacts_dir(self) -> Path:
        return self.root / ".artifacts"

    @property
    def publish_dir(self) -> Path:
        return self.root / "publish"

    @property
    def pack_dir(self) -> Path:
        return self.root / "packages"

    @property
    def results_dir(self) -> Path:
        return self.root / "TestResults"
