# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
Dump pipeline - database -> scratch file -> bucket.

Stages run strictly in order: name the artifact, dump and compress into a
scratch file, validate the archive, optionally hash it, upload it. The
scratch file is released on every exit path.
"""

from datetime import datetime, UTC
from pathlib import Path

import structlog

from pgs3backup.config import BackupConfig
from pgs3backup.connection import describe_connection
from pgs3backup.errors import explain_missing_backup_url
from pgs3backup.exceptions import ConfigurationError
from pgs3backup.logging import format_duration
from pgs3backup.naming import Artifact, artifact_name, parse_artifact_timestamp
from pgs3backup.scratch import scratch_file
from pgs3backup.storage import (
    UploadOptions,
    create_s3_client,
    object_key,
    put_object_from_file,
)
from pgs3backup.tools import compute_content_md5, dump_to_file, validate_archive

logger = structlog.get_logger()


async def run_backup(config: BackupConfig, now: datetime | None = None) -> Artifact:
    """
    Dump the backup database and upload it as a new artifact.

    Args:
        config: Backup configuration
        now: Instant used for the artifact name (defaults to the current time)

    Returns:
        The uploaded Artifact

    Raises:
        ConfigurationError: If no backup database URL is configured
        InvalidKeyError: If the artifact name cannot form a safe key
        DumpError: If pg_dump or gzip fails
        ValidationError: If the produced archive is empty or corrupt
        TransferError: If the upload fails
    """
    if not config.backup_database_url:
        raise ConfigurationError(explain_missing_backup_url())

    start_time = now or datetime.now(UTC)
    name = artifact_name(config.file_prefix, start_time)
    key = object_key(config, name)

    logger.info(
        "backup_started",
        key=key,
        bucket=config.bucket,
        database=describe_connection(config.backup_database_url),
    )

    with scratch_file(name, config.scratch_dir) as path:
        await _dump_and_validate(config, path)
        size = path.stat().st_size

        options = UploadOptions()
        if config.support_object_lock:
            # Full extra read of the archive, hence opt-in
            logger.info("content_md5_computing", key=key)
            options = UploadOptions(content_md5=await compute_content_md5(path))

        async with create_s3_client(config) as s3_client:
            await put_object_from_file(s3_client, config, key, path, options)

    logger.info(
        "backup_completed",
        key=key,
        size=size,
        duration=format_duration(start_time, datetime.now(UTC)),
    )

    return Artifact(key=key, created_at=parse_artifact_timestamp(key), size_bytes=size)


async def _dump_and_validate(config: BackupConfig, path: Path) -> None:
    """Dump into path, then prove the result is a usable archive."""
    logger.info(
        "database_dump_started",
        database=describe_connection(config.backup_database_url),
        format="tar+gzip",
        options=config.backup_options or None,
    )

    stderr = await dump_to_file(config, path)
    decompressed_size = await validate_archive(path)

    # Not everything pg_dump prints is an error
    if stderr:
        logger.warning("pg_dump_stderr", stderr=stderr)

    logger.info(
        "database_dump_completed",
        size=path.stat().st_size,
        decompressed_size=decompressed_size,
    )
