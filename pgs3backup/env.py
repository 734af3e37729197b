# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
Environment-based configuration.

Reads the variables understood by the container image and turns them into
a BackupConfig. This is the only module that touches os.environ; the
pipelines receive the resulting config explicitly.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Mapping

from pgs3backup.config import BackupConfig, OperationMode
from pgs3backup.errors import (
    explain_invalid_bool_env,
    explain_invalid_mode_env,
    explain_missing_bucket_env,
    explain_missing_region_env,
    explain_missing_restore_url,
)
from pgs3backup.exceptions import ConfigurationError

_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off"}


def _parse_bool(env: Mapping[str, str], name: str, default: bool = False) -> bool:
    value = env.get(name)
    if value is None or value.strip() == "":
        return default
    lower = value.strip().lower()
    if lower in _TRUE_VALUES:
        return True
    if lower in _FALSE_VALUES:
        return False
    raise ConfigurationError(explain_invalid_bool_env(name, value))


def _parse_mode(value: str | None) -> OperationMode:
    if not value:
        return OperationMode.BACKUP
    try:
        return OperationMode(value.strip().lower())
    except ValueError as exc:
        raise ConfigurationError(explain_invalid_mode_env(value)) from exc


def _optional(env: Mapping[str, str], name: str) -> str | None:
    """Empty strings count as unset, matching the image's documented defaults."""
    value = env.get(name, "")
    return value or None


def create_config_from_env(environ: Mapping[str, str] | None = None) -> BackupConfig:
    """
    Create a BackupConfig from environment variables.

    Required:
        - AWS_S3_BUCKET: Bucket that holds the backups
        - AWS_S3_REGION: Region of the bucket
        - RESTORE_DATABASE_URL: only when MODE=restore

    Optional environment variables:
        - AWS_S3_ENDPOINT: Custom S3 endpoint (MinIO, R2, ...)
        - AWS_S3_FORCE_PATH_STYLE: Use path-style addressing (default: false)
        - BUCKET_SUBFOLDER: Folder inside the bucket
        - BACKUP_FILE_PREFIX: Artifact name prefix (default: backup)
        - MODE: 'backup' | 'restore' (default: backup)
        - BACKUP_DATABASE_URL, BACKUP_OPTIONS, BACKUP_CRON_SCHEDULE
        - RUN_ON_STARTUP, SINGLE_SHOT_MODE, SUPPORT_OBJECT_LOCK
        - RESTORE_FILE_KEY, RESTORE_OPTIONS, RESTORE_CRON_SCHEDULE
        - RESTORE_RUN_ON_STARTUP, RESTORE_SINGLE_SHOT_MODE
        - SCRATCH_DIR, PG_DUMP_PATH, PG_RESTORE_PATH, GZIP_PATH

    Credentials (AWS_ACCESS_KEY_ID, AWS_SECRET_ACCESS_KEY, ...) are not part
    of the config; the S3 client picks them up from the environment itself.
    """

    env = os.environ if environ is None else environ

    bucket = env.get("AWS_S3_BUCKET")
    if not bucket:
        raise ConfigurationError(explain_missing_bucket_env())

    region = env.get("AWS_S3_REGION")
    if not region:
        raise ConfigurationError(explain_missing_region_env())

    mode = _parse_mode(env.get("MODE"))
    restore_url = _optional(env, "RESTORE_DATABASE_URL")
    if mode == OperationMode.RESTORE and not restore_url:
        raise ConfigurationError(explain_missing_restore_url())

    scratch_dir = _optional(env, "SCRATCH_DIR")

    return BackupConfig(
        bucket=bucket,
        region=region,
        endpoint_url=_optional(env, "AWS_S3_ENDPOINT"),
        force_path_style=_parse_bool(env, "AWS_S3_FORCE_PATH_STYLE"),
        bucket_subfolder=env.get("BUCKET_SUBFOLDER", ""),
        file_prefix=env.get("BACKUP_FILE_PREFIX") or "backup",
        mode=mode,
        backup_database_url=_optional(env, "BACKUP_DATABASE_URL"),
        backup_options=env.get("BACKUP_OPTIONS", ""),
        backup_cron_schedule=env.get("BACKUP_CRON_SCHEDULE") or "0 5 * * *",
        run_on_startup=_parse_bool(env, "RUN_ON_STARTUP"),
        single_shot=_parse_bool(env, "SINGLE_SHOT_MODE"),
        support_object_lock=_parse_bool(env, "SUPPORT_OBJECT_LOCK"),
        restore_database_url=restore_url,
        restore_file_key=_optional(env, "RESTORE_FILE_KEY"),
        restore_options=env.get("RESTORE_OPTIONS", ""),
        restore_cron_schedule=_optional(env, "RESTORE_CRON_SCHEDULE"),
        restore_run_on_startup=_parse_bool(env, "RESTORE_RUN_ON_STARTUP"),
        restore_single_shot=_parse_bool(env, "RESTORE_SINGLE_SHOT_MODE"),
        scratch_dir=Path(scratch_dir) if scratch_dir else None,
        pg_dump_path=env.get("PG_DUMP_PATH") or "pg_dump",
        pg_restore_path=env.get("PG_RESTORE_PATH") or "pg_restore",
        gzip_path=env.get("GZIP_PATH") or "gzip",
    )
