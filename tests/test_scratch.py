# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
Scratch storage tests.

Scratch files hold complete database dumps, so they must be private to the
owner from the moment they exist and must never outlive their block.
"""

import stat
from pathlib import Path

import pytest
from structlog.testing import capture_logs

from pgs3backup import scratch
from pgs3backup.exceptions import ScratchFileError
from pgs3backup.scratch import (
    allocate_scratch_file,
    private_scratch_dir,
    release_scratch_file,
    remove_private_scratch_dirs,
    scratch_file,
)


def _mode(path: Path) -> int:
    return stat.S_IMODE(path.stat().st_mode)


def test_scratch_dir_is_owner_only(temp_dir: Path):
    directory = private_scratch_dir(temp_dir / "scratch")

    assert directory.is_dir()
    assert directory.parent == temp_dir / "scratch"
    assert _mode(directory) == 0o700


def test_scratch_dir_is_reused_within_process(temp_dir: Path):
    assert private_scratch_dir(temp_dir) == private_scratch_dir(temp_dir)


def test_allocated_file_is_empty_and_owner_only(temp_dir: Path):
    path = allocate_scratch_file("backup-x.tar.gz", temp_dir)

    assert path.is_absolute()
    assert path.exists()
    assert path.stat().st_size == 0
    assert _mode(path) == 0o600


def test_allocate_refuses_existing_file(temp_dir: Path):
    allocate_scratch_file("twice.tar.gz", temp_dir)

    with pytest.raises(ScratchFileError):
        allocate_scratch_file("twice.tar.gz", temp_dir)


@pytest.mark.parametrize(
    "name",
    ["", ".", "..", "../escape.tar.gz", "sub/file.tar.gz", "a\\b.tar.gz", "x..y"],
)
def test_allocate_rejects_unsafe_names(temp_dir: Path, name: str):
    with pytest.raises(ScratchFileError):
        allocate_scratch_file(name, temp_dir)


def test_release_deletes_file(temp_dir: Path):
    path = allocate_scratch_file("release-me.tar.gz", temp_dir)

    release_scratch_file(path)

    assert not path.exists()


def test_release_of_missing_file_is_success(temp_dir: Path):
    path = allocate_scratch_file("gone.tar.gz", temp_dir)
    path.unlink()

    release_scratch_file(path)


def test_release_reports_other_failures(temp_dir: Path, monkeypatch):
    path = allocate_scratch_file("stuck.tar.gz", temp_dir)

    def refuse(_path):
        raise PermissionError("Operation not permitted")

    monkeypatch.setattr(scratch.os, "unlink", refuse)

    with pytest.raises(ScratchFileError) as exc_info:
        release_scratch_file(path)

    assert exc_info.value.details["path"] == str(path)


def test_scratch_file_context_releases_on_success(temp_dir: Path):
    with scratch_file("ok.tar.gz", temp_dir) as path:
        path.write_bytes(b"data")
        assert path.exists()

    assert not path.exists()


def test_scratch_file_context_releases_on_error(temp_dir: Path):
    with pytest.raises(RuntimeError):
        with scratch_file("boom.tar.gz", temp_dir) as path:
            raise RuntimeError("stage failed")

    assert not path.exists()


def test_failed_release_never_masks_stage_error(temp_dir: Path, monkeypatch):
    def failing_release(path):
        raise ScratchFileError("Failed to delete scratch file", details={"path": str(path)})

    monkeypatch.setattr(scratch, "release_scratch_file", failing_release)

    with pytest.raises(RuntimeError, match="stage failed"):
        with scratch_file("masked.tar.gz", temp_dir):
            raise RuntimeError("stage failed")


def test_failed_release_after_success_is_not_raised(temp_dir: Path, monkeypatch):
    def failing_release(path):
        raise ScratchFileError("Failed to delete scratch file", details={"path": str(path)})

    monkeypatch.setattr(scratch, "release_scratch_file", failing_release)

    with scratch_file("leftover.tar.gz", temp_dir) as path:
        path.write_bytes(b"data")


def test_private_dirs_removed_at_exit(temp_dir: Path):
    directory = private_scratch_dir(temp_dir / "exit")
    with scratch_file("used.tar.gz", temp_dir / "exit"):
        pass

    remove_private_scratch_dirs()

    assert not directory.exists()
    # A later run in the same process gets a fresh directory
    recreated = private_scratch_dir(temp_dir / "exit")
    assert recreated.is_dir()
    assert recreated != directory


def test_private_dir_with_leftovers_is_kept(temp_dir: Path):
    path = allocate_scratch_file("leftover.tar.gz", temp_dir / "dirty")

    with capture_logs() as logs:
        remove_private_scratch_dirs()

    assert path.exists()
    assert any(entry["event"] == "scratch_dir_not_removed" for entry in logs)
