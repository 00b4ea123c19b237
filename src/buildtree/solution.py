"""Discovery of the .NET solution and its projects."""

from __future__ import annotations

import re
import xml.etree.ElementTree as ET
from dataclasses import dataclass
from pathlib import Path, PureWindowsPath
from typing import Optional

SOLUTION_PATTERNS = ("*.sln", "*.slnx")
PROJECT_PATTERN = "*.csproj"
IGNORED_DIRS = {"bin", "obj", ".git", "node_modules"}

# Project("{type-guid}") = "Name", "relative\path.csproj", "{project-guid}"
SLN_PROJECT_LINE = re.compile(r'^Project\("\{[^}]*\}"\)\s*=\s*"[^"]*",\s*"([^"]+)"', re.MULTILINE)


class SolutionError(Exception):
    """Raised when a solution or project file cannot be read."""

    pass


@dataclass(frozen=True)
class Project:
    name: str
    path: Path
    is_packable: bool


@dataclass(frozen=True)
class Solution:
    name: str
    path: Optional[Path]
    directory: Path
    projects: tuple[Project, ...]

    def packable_projects(self) -> list[Project]:
        return [p for p in self.projects if p.is_packable]


def _read_is_packable(path: Path) -> bool:
    """Read the ``IsPackable`` property of an SDK-style project; unset means False."""
    try:
        root = ET.parse(path).getroot()
    except (ET.ParseError, OSError) as e:
        raise SolutionError(f"Error reading project file '{path}': {e}") from e

    value = None
    for element in root.iter():
        # Strip any MSBuild namespace
        if element.tag.rsplit("}", 1)[-1] == "IsPackable" and element.text:
            value = element.text.strip()
    return value is not None and value.lower() == "true"


def _find_projects(directory: Path) -> list[Path]:
    found = []
    for path in directory.rglob(PROJECT_PATTERN):
        if IGNORED_DIRS.intersection(path.relative_to(directory).parts):
            continue
        found.append(path)
    return sorted(found)


def _read_sln_projects(path: Path) -> list[str]:
    try:
        text = path.read_text(encoding="utf-8-sig")
    except OSError as e:
        raise SolutionError(f"Error reading solution file '{path}': {e}") from e
    # Solution folders are listed too; their "path" is just the folder name
    return [m.group(1) for m in SLN_PROJECT_LINE.finditer(text) if m.group(1).endswith(".csproj")]


def _read_slnx_projects(path: Path) -> list[str]:
    try:
        root = ET.parse(path).getroot()
    except (ET.ParseError, OSError) as e:
        raise SolutionError(f"Error reading solution file '{path}': {e}") from e
    return [
        element.get("Path", "")
        for element in root.iter("Project")
        if element.get("Path", "").endswith(".csproj")
    ]


def _solution_projects(path: Path) -> list[Path]:
    """Project files a solution lists, resolved against its directory."""
    if path.suffix == ".slnx":
        entries = _read_slnx_projects(path)
    else:
        entries = _read_sln_projects(path)

    projects = []
    for entry in entries:
        project = path.parent / PureWindowsPath(entry).as_posix()
        if not project.is_file():
            raise SolutionError(f"Project '{entry}' listed in '{path.name}' does not exist")
        projects.append(project)
    return projects


def load_solution(directory: Path) -> Solution:
    """Load the solution in ``directory``.

    Projects are the ones the solution file lists. Without a solution file
    every project below the directory counts, and the directory name stands
    in for the solution name.

    Raises:
        SolutionError: If the solution or one of its project files can't be read
    """
    directory = Path(directory)
    path = None
    for pattern in SOLUTION_PATTERNS:
        matches = sorted(directory.glob(pattern))
        if matches:
            path = matches[0]
            break

    project_paths = _solution_projects(path) if path else _find_projects(directory)
    projects = tuple(
        Project(name=p.stem, path=p, is_packable=_read_is_packable(p))
        for p in project_paths
    )
    return Solution(
        name=path.stem if path else directory.resolve().name,
        path=path,
        directory=directory,
        projects=projects,
    )
