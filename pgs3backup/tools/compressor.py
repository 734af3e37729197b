# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
Compression helpers for backup archives.

This module provides:
1. Archive validation (full gzip decode, output discarded)
2. Streaming MD5 digests for object-lock uploads
3. Decompression through the external gzip tool

Validation and hashing are CPU/IO bound and run in a thread pool so the
event loop stays responsive.
"""

import asyncio
import base64
import gzip
import hashlib
import zlib
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path

import structlog

from pgs3backup.config import BackupConfig
from pgs3backup.exceptions import RestoreError, ValidationError
from pgs3backup.tools.process import decode_output, spawn, terminate

logger = structlog.get_logger()

# Thread pool for blocking file reads
_executor = ThreadPoolExecutor(max_workers=2)

READ_CHUNK_SIZE = 1024 * 1024


async def validate_archive(path: Path) -> int:
    """
    Check that a file is a complete gzip stream with non-empty content.

    The whole stream is decoded, so a download or dump cut short fails here
    even if the first bytes look fine. A zero exit code from the tool that
    produced the file proves nothing on its own.

    Args:
        path: Compressed archive to check

    Returns:
        Number of decompressed bytes

    Raises:
        ValidationError: If the file is empty, truncated or not gzip data
    """
    loop = asyncio.get_event_loop()
    size = await loop.run_in_executor(_executor, _validate_archive_sync, path)

    logger.debug("archive_validated", path=str(path), decompressed_size=size)
    return size


def _validate_archive_sync(path: Path) -> int:
    """Synchronous archive validation."""
    total = 0
    try:
        with gzip.open(path, "rb") as stream:
            while True:
                chunk = stream.read(READ_CHUNK_SIZE)
                if not chunk:
                    break
                total += len(chunk)
    except (OSError, EOFError, zlib.error) as e:
        raise ValidationError(
            f"Backup archive is invalid: {e}",
            details={"path": str(path)},
        ) from e

    if total == 0:
        raise ValidationError(
            "Backup archive is empty; check the tool output above",
            details={"path": str(path)},
        )

    return total


async def compute_content_md5(path: Path) -> str:
    """
    Compute the base64 MD5 digest of a file in one streaming pass.

    This is the format S3 expects in the Content-MD5 header.
    """
    loop = asyncio.get_event_loop()
    return await loop.run_in_executor(_executor, _compute_content_md5_sync, path)


def _compute_content_md5_sync(path: Path) -> str:
    digest = hashlib.md5()
    with open(path, "rb") as f:
        for chunk in iter(lambda: f.read(READ_CHUNK_SIZE), b""):
            digest.update(chunk)
    return base64.b64encode(digest.digest()).decode("ascii")


def md5_base64(data: bytes) -> str:
    """Base64 MD5 digest of an in-memory chunk."""
    return base64.b64encode(hashlib.md5(data).digest()).decode("ascii")


async def decompress_file(config: BackupConfig, source: Path, target: Path) -> None:
    """
    Decompress a gzip archive into target with ``gzip -dc``.

    Raises:
        RestoreError: If gzip fails to start or exits non-zero
    """
    process = None
    try:
        with open(target, "wb") as out:
            process = await spawn(
                [config.gzip_path, "-dc", str(source)],
                RestoreError,
                "gzip",
                stdout=out,
                stderr=asyncio.subprocess.PIPE,
            )
            _, stderr = await process.communicate()
    finally:
        await terminate(process)

    text = decode_output(stderr)

    if process.returncode != 0:
        raise RestoreError(
            f"gzip exited with code {process.returncode} while decompressing",
            details={
                "tool": "gzip",
                "exit_code": process.returncode,
                "path": str(source),
                "stderr": text,
            },
        )

    if text:
        logger.warning("gzip_stderr", stderr=text)
