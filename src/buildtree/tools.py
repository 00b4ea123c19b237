"""Wrappers around the external build toolchain.

Each tool only builds a command line, runs it through a ProcessRunner and
checks the exit code. Tool behaviour itself is never reproduced here.
"""

from __future__ import annotations

import os
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Optional

from rich.markup import escape

from buildtree.console_logger import REDACTED
from buildtree.logging import Logger
from buildtree.process_runner import ProcessRunner

# Lines of captured tool output kept in a ToolError for diagnostics
DIAGNOSTIC_TAIL_LINES = 20

MAIN_BRANCHES = ("main", "master")


class ToolError(Exception):
    """Raised when a wrapped tool exits with a non-zero code."""

    def __init__(self, tool: str, command: list[str], exit_code: int, output: str = ""):
        self.tool = tool
        self.command = command
        self.exit_code = exit_code
        self.output = output
        super().__init__(f"{tool} failed with exit code {exit_code}")


def _diagnostic_tail(result: subprocess.CompletedProcess[str]) -> str:
    text = (result.stderr or "").strip() or (result.stdout or "").strip()
    return "\n".join(text.splitlines()[-DIAGNOSTIC_TAIL_LINES:])


class Tool:
    """Base class for a command-line tool invoked through a ProcessRunner."""

    executable = ""

    def __init__(self, runner: ProcessRunner, logger: Logger, cwd: Path):
        self._runner = runner
        self._logger = logger
        self._cwd = cwd

    def run(
        self,
        *args: str,
        allow_failure: bool = False,
        secrets: Iterable[str] = (),
    ) -> subprocess.CompletedProcess[str]:
        """Run the tool with the given arguments.

        Args:
            *args: Tool arguments
            allow_failure: Return a non-zero result instead of raising
            secrets: Argument values masked wherever the command is logged or reported

        Raises:
            ToolError: If the tool exits non-zero and failures are not allowed
        """
        cmd = [self.executable, *(str(a) for a in args)]
        masked = set(s for s in secrets if s)
        shown = [REDACTED if part in masked else part for part in cmd]
        self._logger.debug(f"[dim]> {escape(' '.join(shown))}[/dim]")
        try:
            result = self._runner.run(cmd, cwd=self._cwd, env=os.environ.copy())
        except FileNotFoundError as e:
            raise ToolError(self.executable, shown, 127, f"{self.executable} not found on PATH") from e

        if result.returncode != 0 and not allow_failure:
            raise ToolError(self.executable, shown, result.returncode, _diagnostic_tail(result))
        return result

    def output(self, *args: str) -> str:
        """Run the tool and return the last non-empty line of its stdout."""
        lines = [line.strip() for line in (self.run(*args).stdout or "").splitlines()]
        lines = [line for line in lines if line]
        return lines[-1] if lines else ""


class DotNet(Tool):
    executable = "dotnet"

    def restore(self, solution_dir: Path, force: bool = True) -> None:
        args = ["restore", str(solution_dir)]
        if force:
            args.append("--force")
        self.run(*args)

    def build(self, solution_dir: Path, configuration: str) -> None:
        self.run(
            "build", str(solution_dir),
            "--nologo",
            "--no-restore",
            "--configuration", configuration,
        )

    def test(
        self,
        configuration: str,
        results_dir: Path,
        data_collector: str,
        run_settings: Optional[dict[str, str]] = None,
    ) -> None:
        args = [
            "test",
            "--nologo",
            "--no-build",
            "--no-restore",
            "--configuration", configuration,
            "--collect", data_collector,
            "--results-directory", str(results_dir),
        ]
        if run_settings:
            args.append("--")
            args.extend(f"{key}={value}" for key, value in run_settings.items())
        self.run(*args)

    def publish(self, project: Path, output: Path, configuration: str) -> None:
        self.run(
            "publish", str(project),
            "--nologo",
            "--no-build",
            "--no-restore",
            "--configuration", configuration,
            "--output", str(output),
        )

    def pack(self, project: Path, configuration: str, output_dir: Path) -> None:
        self.run(
            "pack", str(project),
            "--nologo",
            "--no-build",
            "--no-restore",
            "--configuration", configuration,
            "--output", str(output_dir),
        )

    def nuget_push(self, package: Path, api_key: str, source: str) -> None:
        self.run(
            "nuget", "push", str(package),
            "--api-key", api_key,
            "--source", source,
            secrets=[api_key],
        )


class ReportGenerator(Tool):
    executable = "reportgenerator"

    def generate(self, reports: Iterable[Path], target_dir: Path) -> None:
        joined = ";".join(str(r) for r in reports)
        self.run(f"-reports:{joined}", f"-targetdir:{target_dir}")


class MinVer(Tool):
    """Version calculation from git tags via the minver CLI."""

    executable = "minver"

    def version(self) -> str:
        return self.output()

    def last_tag_version(self) -> str:
        """Version of the latest tag, ignoring commit height."""
        return self.output("-i")


class Git(Tool):
    executable = "git"

    def current_branch(self) -> str:
        branch = self.output("rev-parse", "--abbrev-ref", "HEAD")
        if branch == "HEAD":
            # Detached checkout on CI; the provider names the branch
            branch = os.environ.get("GITHUB_HEAD_REF") or os.environ.get("GITHUB_REF_NAME") or branch
        return branch

    def current_commit(self) -> str:
        return self.output("rev-parse", "HEAD")

    def tags(self) -> list[str]:
        """Tags pointing at the current commit."""
        result = self.run("tag", "--points-at", "HEAD")
        return [line.strip() for line in (result.stdout or "").splitlines() if line.strip()]

    def remote_url(self) -> Optional[str]:
        result = self.run("remote", "get-url", "origin", allow_failure=True)
        if result.returncode != 0:
            return None
        return (result.stdout or "").strip() or None

    def tag(self, name: str, force: bool = False) -> None:
        args = ["tag", name]
        if force:
            args.append("-f")
        self.run(*args)

    def push(self, tags: bool = False, force: bool = False) -> None:
        args = ["push"]
        if tags:
            args.append("--tags")
        if force:
            args.append("-f")
        self.run(*args)


def is_on_main_branch(branch: str) -> bool:
    return branch == "main"


def is_on_main_or_master_branch(branch: str) -> bool:
    return branch in MAIN_BRANCHES


def is_on_release_branch(branch: str) -> bool:
    return branch.startswith("release/")


def is_on_hotfix_branch(branch: str) -> bool:
    return branch.startswith("hotfix/")


@dataclass(frozen=True)
class Toolchain:
    """The external tools available to target actions."""

    dotnet: DotNet
    git: Git
    minver: MinVer
    report_generator: ReportGenerator

    @classmethod
    def create(cls, runner: ProcessRunner, logger: Logger, cwd: Path) -> "Toolchain":
        return cls(
            dotnet=DotNet(runner, logger, cwd),
            git=Git(runner, logger, cwd),
            minver=MinVer(runner, logger, cwd),
            report_generator=ReportGenerator(runner, logger, cwd),
        )
