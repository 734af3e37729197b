# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
Restore pipeline - bucket -> scratch files -> database.

The archive is downloaded and validated before anything destructive
happens to the target database. Both scratch files (compressed download
and decompressed tar) are released on every exit path, each independently.
"""

import posixpath
from contextlib import ExitStack
from datetime import datetime, UTC

import structlog

from pgs3backup.config import BackupConfig
from pgs3backup.connection import describe_connection
from pgs3backup.errors import explain_missing_restore_url
from pgs3backup.exceptions import ConfigurationError
from pgs3backup.logging import format_age, format_duration
from pgs3backup.naming import Artifact, decompressed_name, parse_artifact_timestamp
from pgs3backup.scratch import scratch_file
from pgs3backup.storage import (
    create_s3_client,
    get_object_to_file,
    object_key,
    resolve_newest,
)
from pgs3backup.tools import decompress_file, restore_from_file, validate_archive

logger = structlog.get_logger()


async def run_restore(config: BackupConfig) -> Artifact:
    """
    Restore the restore database from an artifact.

    Uses ``config.restore_file_key`` when set, otherwise the newest artifact
    under the configured subfolder and prefix.

    Returns:
        The Artifact that was restored

    Raises:
        ConfigurationError: If no restore database URL is configured
        InvalidKeyError: If restore_file_key would escape the subfolder
        NoArtifactsError: If no artifact exists and no key was given
        NotFoundError: If the requested key does not exist
        TransferError: If the download fails or is incomplete
        ValidationError: If the downloaded archive is empty or corrupt
        RestoreError: If decompression or pg_restore fails
    """
    if not config.restore_database_url:
        raise ConfigurationError(explain_missing_restore_url())

    start_time = datetime.now(UTC)

    # Validated before any network call
    key = object_key(config, config.restore_file_key) if config.restore_file_key else None

    logger.info(
        "restore_started",
        bucket=config.bucket,
        key=key or "latest",
        database=describe_connection(config.restore_database_url),
    )

    with ExitStack() as scratch:
        async with create_s3_client(config) as s3_client:
            if key is None:
                newest = await resolve_newest(
                    s3_client, config, object_key(config, config.artifact_search_name)
                )
                key = newest.key
                logger.info(
                    "latest_backup_selected",
                    key=key,
                    age=format_age(newest.last_modified),
                )

            name = posixpath.basename(key)
            downloaded = scratch.enter_context(scratch_file(name, config.scratch_dir))
            size = await get_object_to_file(s3_client, config, key, downloaded)

        await validate_archive(downloaded)
        logger.info("archive_validated", key=key, size=size)

        decompressed = scratch.enter_context(
            scratch_file(decompressed_name(name), config.scratch_dir)
        )
        await decompress_file(config, downloaded, decompressed)
        logger.info("archive_decompressed", size=decompressed.stat().st_size)

        stderr = await restore_from_file(config, decompressed)
        if stderr:
            logger.warning("pg_restore_stderr", stderr=stderr)

    logger.info(
        "restore_completed",
        key=key,
        duration=format_duration(start_time, datetime.now(UTC)),
    )

    return Artifact(key=key, created_at=parse_artifact_timestamp(key), size_bytes=size)
