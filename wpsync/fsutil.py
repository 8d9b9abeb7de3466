"""Filesystem and symlink helpers.

Directory links are real symlinks on POSIX and directory junctions on
Windows. All helpers return a boolean and log failures instead of raising,
so callers can keep going with the remaining modules.
"""

from __future__ import annotations

import logging
import os
import shutil
import stat
import subprocess
from pathlib import Path
from typing import NamedTuple

from config import HIDDEN_PREFIX
from wpsync.utils import log


IS_WINDOWS = os.name == "nt"


class DirEntry(NamedTuple):
    name: str
    path: Path
    is_dir: bool
    is_link: bool


def is_hidden(name: str) -> bool:
    return name.startswith(HIDDEN_PREFIX)


def is_link(path: Path | str) -> bool:
    """True for symlinks (dangling included) and, on Windows, junctions."""
    path = Path(path)
    try:
        st = os.lstat(path)
    except OSError:
        return False
    if stat.S_ISLNK(st.st_mode):
        return True
    if IS_WINDOWS:
        attrs = getattr(st, "st_file_attributes", 0)
        return bool(attrs & stat.FILE_ATTRIBUTE_REPARSE_POINT)
    return False


def list_entries(directory: Path) -> list[DirEntry]:
    """Return (name, path, is_dir, is_link) for entries of a directory.

    Missing directories yield an empty list. is_dir follows links, the same
    way a directory listing reports a linked directory.
    """
    if not directory.is_dir():
        return []
    try:
        children = sorted(directory.iterdir())
    except OSError as err:
        logging.error("Could not list %s: %s", directory, err)
        return []
    entries: list[DirEntry] = []
    for child in children:
        entries.append(DirEntry(child.name, child, child.is_dir(), is_link(child)))
    return entries


def ensure_dir(path: Path) -> bool:
    try:
        path.mkdir(parents=True, exist_ok=True)
        return True
    except OSError as err:
        logging.error("Could not create directory %s: %s", path, err)
        return False


def _unlink_link(path: Path) -> None:
    if IS_WINDOWS and path.is_dir():
        # junctions are removed like empty directories
        os.rmdir(path)
        return
    os.unlink(path)


def remove_path(path: Path) -> bool:
    """Remove a file, link or directory tree; missing paths are fine.

    Links are removed without touching what they point to.
    """
    try:
        if is_link(path):
            _unlink_link(path)
        elif path.is_dir():
            shutil.rmtree(path)
        elif path.exists():
            path.unlink()
        else:
            return True
    except OSError as err:
        logging.error("Could not remove %s: %s", path, err)
        return False
    log(f"PASS: Removed {path}")
    return True


def rename(source: Path, target: Path) -> bool:
    """Move source to target; works across volumes."""
    if not ensure_dir(target.parent):
        return False
    try:
        shutil.move(str(source), str(target))
    except OSError as err:
        logging.error("Could not move %s to %s: %s", source, target, err)
        return False
    log(f"PASS: Moved {source} -> {target}")
    return True


def _junction(target: Path, source: Path) -> None:
    subprocess.run(
        ["cmd", "/c", "mklink", "/J", str(target), str(source)],
        check=True,
        capture_output=True,
        text=True,
    )


def make_link(target: Path, source: Path) -> bool:
    """Create a link at target pointing to the source directory.

    A missing source or an existing target means an earlier step left the
    layout inconsistent; both are logged and nothing is created.
    """
    source = Path(os.path.abspath(source))
    target = Path(os.path.abspath(target))
    if not source.exists():
        logging.error(
            "Failed to create symlink from %s to %s: source path is not available",
            source, target,
        )
        return False
    if target.exists() or is_link(target):
        logging.error(
            "Failed to create symlink from %s to %s: target path is already available",
            source, target,
        )
        return False
    try:
        if IS_WINDOWS:
            _junction(target, source)
        else:
            relative = os.path.relpath(source, target.parent)
            os.symlink(relative, target, target_is_directory=True)
    except (OSError, subprocess.CalledProcessError) as err:
        logging.error("Failed to create symlink from %s to %s: %s", source, target, err)
        return False
    log(f"PASS: Linked {target} -> {source}")
    return True
