"""Filesystem helpers for build output directories."""

from __future__ import annotations

import os
import shutil
import stat
import uuid
from pathlib import Path
from typing import Optional


def create_or_clean_directory(path: Path) -> Path:
    """Make ``path`` an empty directory.

    An existing directory is never emptied file by file. A fresh directory is
    staged next to it and swapped in by rename, then the old tree is deleted,
    so an interrupted clean leaves either the old tree or an empty directory.

    Args:
        path: Directory to create or clean

    Returns:
        The directory path
    """
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)

    if not path.exists():
        path.mkdir()
        return path

    staged = path.parent / f".{path.name}.new-{uuid.uuid4().hex[:8]}"
    staged.mkdir()
    staged.chmod(stat.S_IMODE(path.stat().st_mode))
    retired = path.parent / f".{path.name}.old-{uuid.uuid4().hex[:8]}"

    path.rename(retired)
    staged.rename(path)
    shutil.rmtree(retired)
    return path


def zip_to(directory: Path, archive: Path) -> Path:
    """Zip the contents of ``directory`` into ``archive``, replacing it if present.

    The archive is written under a temporary name and renamed into place.
    """
    directory = Path(directory)
    archive = Path(archive)
    archive.parent.mkdir(parents=True, exist_ok=True)

    staging_base = archive.parent / f".{archive.stem}.{uuid.uuid4().hex[:8]}"
    staged = Path(shutil.make_archive(str(staging_base), "zip", root_dir=directory))
    os.replace(staged, archive)
    return archive


def find_file(root: Path, name: str, max_depth: int) -> Optional[Path]:
    """Find the first file called ``name`` at most ``max_depth`` levels below ``root``."""
    root = Path(root)
    if not root.is_dir():
        return None

    for depth in range(max_depth + 1):
        pattern = "*/" * depth + name
        matches = sorted(p for p in root.glob(pattern) if p.is_file())
        if matches:
            return matches[0]
    return None
