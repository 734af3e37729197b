# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
Secure scratch storage for pipeline staging files.

Scratch files live in a directory private to this process (mode 0700) and
are created with mode 0600 in the same system call that creates them, so
there is no window in which another local user can read partial dumps.
"""

import atexit
import os
import tempfile
from contextlib import contextmanager
from pathlib import Path
from typing import Dict, Iterator

import structlog

from pgs3backup.exceptions import ScratchFileError

logger = structlog.get_logger()

SCRATCH_DIR_PREFIX = "pgs3backup-"

# One private directory per (process, base directory)
_private_dirs: Dict[str, Path] = {}


def private_scratch_dir(base_dir: Path | None = None) -> Path:
    """
    Return the process-private scratch directory, creating it on first use.

    Args:
        base_dir: Parent directory; the system temp dir when None

    Returns:
        Path to a directory only the current user can enter
    """
    cache_key = str(base_dir) if base_dir else ""
    cached = _private_dirs.get(cache_key)
    if cached is not None and cached.is_dir():
        return cached

    try:
        if base_dir is not None:
            Path(base_dir).mkdir(parents=True, exist_ok=True)
        # mkdtemp creates the directory with mode 0700
        created = Path(
            tempfile.mkdtemp(prefix=SCRATCH_DIR_PREFIX, dir=str(base_dir) if base_dir else None)
        )
    except OSError as e:
        raise ScratchFileError(
            f"Failed to create scratch directory: {e}",
            details={"base_dir": str(base_dir) if base_dir else tempfile.gettempdir()},
        ) from e

    _private_dirs[cache_key] = created
    logger.debug("scratch_dir_created", path=str(created))
    return created


def remove_private_scratch_dirs() -> None:
    """
    Remove the private scratch directories created by this process.

    Runs at interpreter exit. A directory that still holds files is left in
    place with a warning.
    """
    for cache_key, directory in list(_private_dirs.items()):
        del _private_dirs[cache_key]
        try:
            directory.rmdir()
        except FileNotFoundError:
            continue
        except OSError as e:
            logger.warning("scratch_dir_not_removed", path=str(directory), error=str(e))
            continue
        logger.debug("scratch_dir_removed", path=str(directory))


atexit.register(remove_private_scratch_dirs)


def allocate_scratch_file(filename: str, base_dir: Path | None = None) -> Path:
    """
    Create an empty owner-only (0600) file in the private scratch directory.

    Args:
        filename: Plain file name, no directory components
        base_dir: Parent of the private scratch directory

    Returns:
        Absolute path of the new file

    Raises:
        ScratchFileError: If the name is unsafe or the file cannot be created
    """
    if (
        not filename
        or filename in (".", "..")
        or "/" in filename
        or "\\" in filename
        or ".." in filename
    ):
        raise ScratchFileError(
            f"Unsafe scratch file name: {filename!r}",
            details={"filename": filename},
        )

    path = private_scratch_dir(base_dir) / filename
    flags = os.O_WRONLY | os.O_CREAT | os.O_EXCL | getattr(os, "O_NOFOLLOW", 0)

    try:
        fd = os.open(path, flags, 0o600)
    except OSError as e:
        raise ScratchFileError(
            f"Failed to allocate scratch file: {e}",
            details={"path": str(path)},
        ) from e
    os.close(fd)

    logger.debug("scratch_file_allocated", path=str(path))
    return path.resolve()


def release_scratch_file(path: Path) -> None:
    """
    Delete a scratch file.

    A file that is already gone counts as released. Any other failure is
    raised so the caller can report it and carry on releasing other files.

    Raises:
        ScratchFileError: If deletion fails for a reason other than "not found"
    """
    try:
        os.unlink(path)
    except FileNotFoundError:
        logger.debug("scratch_file_already_gone", path=str(path))
        return
    except OSError as e:
        raise ScratchFileError(
            f"Failed to delete scratch file: {e}",
            details={"path": str(path)},
        ) from e

    logger.debug("scratch_file_released", path=str(path))


@contextmanager
def scratch_file(filename: str, base_dir: Path | None = None) -> Iterator[Path]:
    """
    Allocate a scratch file for the duration of a block.

    The file is released on every exit path. A failed release is logged as a
    warning and never replaces an exception raised inside the block.
    """
    path = allocate_scratch_file(filename, base_dir)
    try:
        yield path
    finally:
        try:
            release_scratch_file(path)
        except ScratchFileError as e:
            logger.warning(
                "scratch_release_failed",
                path=str(path),
                error=str(e),
            )
