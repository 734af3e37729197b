# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
PostgreSQL tools - pg_dump and pg_restore wrappers.

pg_dump writes a tar-format archive to an OS pipe that feeds gzip, and
gzip writes straight into the scratch file, so the dump never passes
through Python memory. Diagnostics are captured and scrubbed of the
connection URL before they leave this module.
"""

import asyncio
import os
from pathlib import Path

import structlog

from pgs3backup.config import BackupConfig
from pgs3backup.connection import describe_connection, scrub_secrets
from pgs3backup.exceptions import ConfigurationError, DumpError, RestoreError
from pgs3backup.tools.process import decode_output, spawn, split_options, terminate

logger = structlog.get_logger()


async def dump_to_file(config: BackupConfig, output_path: Path) -> str:
    """
    Dump the backup database as a gzip-compressed tar archive.

    Runs ``pg_dump --format=tar | gzip -c > output_path`` as two processes
    joined by a pipe.

    Args:
        config: Backup configuration (source URL, options, tool paths)
        output_path: Scratch file that receives the compressed archive

    Returns:
        Scrubbed stderr text of a successful run (may hold warnings)

    Raises:
        ConfigurationError: If no backup database URL is configured
        DumpError: If either process fails to start or exits non-zero
    """
    database_url = config.backup_database_url
    if not database_url:
        raise ConfigurationError("backup_database_url is not configured")

    dump_argv = [
        config.pg_dump_path,
        f"--dbname={database_url}",
        "--format=tar",
        *split_options(config.backup_options, "BACKUP_OPTIONS"),
    ]
    gzip_argv = [config.gzip_path, "-c"]
    target = describe_connection(database_url)

    read_fd, write_fd = os.pipe()
    dump_proc = None
    gzip_proc = None

    try:
        with open(output_path, "wb") as out:
            dump_proc = await spawn(
                dump_argv,
                DumpError,
                "pg_dump",
                stdout=write_fd,
                stderr=asyncio.subprocess.PIPE,
            )
            gzip_proc = await spawn(
                gzip_argv,
                DumpError,
                "gzip",
                stdin=read_fd,
                stdout=out,
                stderr=asyncio.subprocess.PIPE,
            )

            # Children hold their own copies; gzip only sees EOF once ours are closed
            os.close(write_fd)
            write_fd = -1
            os.close(read_fd)
            read_fd = -1

            (_, dump_stderr), (_, gzip_stderr) = await asyncio.gather(
                dump_proc.communicate(),
                gzip_proc.communicate(),
            )
    finally:
        for fd in (read_fd, write_fd):
            if fd >= 0:
                os.close(fd)
        await terminate(dump_proc)
        await terminate(gzip_proc)

    dump_text = scrub_secrets(decode_output(dump_stderr), database_url)
    gzip_text = decode_output(gzip_stderr)

    if dump_proc.returncode != 0:
        raise DumpError(
            f"pg_dump exited with code {dump_proc.returncode}",
            details={
                "tool": "pg_dump",
                "exit_code": dump_proc.returncode,
                "database": target,
                "stderr": dump_text,
            },
        )

    if gzip_proc.returncode != 0:
        raise DumpError(
            f"gzip exited with code {gzip_proc.returncode}",
            details={
                "tool": "gzip",
                "exit_code": gzip_proc.returncode,
                "stderr": gzip_text,
            },
        )

    return "\n".join(text for text in (dump_text, gzip_text) if text)


async def restore_from_file(config: BackupConfig, archive_path: Path) -> str:
    """
    Apply a decompressed tar archive to the restore database.

    Existing objects are left alone; if they conflict, pg_restore fails and
    so does the run.

    Returns:
        Scrubbed stderr text of a successful run (may hold warnings)

    Raises:
        ConfigurationError: If no restore database URL is configured
        RestoreError: If pg_restore fails to start or exits non-zero
    """
    database_url = config.restore_database_url
    if not database_url:
        raise ConfigurationError("restore_database_url is not configured")

    argv = [
        config.pg_restore_path,
        f"--dbname={database_url}",
        *split_options(config.restore_options, "RESTORE_OPTIONS"),
        str(archive_path),
    ]

    process = None
    try:
        process = await spawn(
            argv,
            RestoreError,
            "pg_restore",
            stdout=asyncio.subprocess.DEVNULL,
            stderr=asyncio.subprocess.PIPE,
        )
        _, stderr = await process.communicate()
    finally:
        await terminate(process)

    text = scrub_secrets(decode_output(stderr), database_url)

    if process.returncode != 0:
        raise RestoreError(
            f"pg_restore exited with code {process.returncode}",
            details={
                "tool": "pg_restore",
                "exit_code": process.returncode,
                "database": describe_connection(database_url),
                "stderr": text,
            },
        )

    return text
