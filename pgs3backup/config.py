# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
pgs3backup Configuration - Immutable configuration data structures.

All configuration is frozen (immutable) after creation and passed
explicitly into both pipelines, so nothing in the core reads the
process environment.
"""

from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import List
import re

from pgs3backup.errors import explain_invalid_cron

# S3 rejects multipart parts smaller than 5 MiB (except the last one)
MIN_MULTIPART_CHUNK_SIZE = 5 * 1024 * 1024
DEFAULT_MULTIPART_CHUNK_SIZE = 8 * 1024 * 1024


class OperationMode(str, Enum):
    """Which pipeline the service runs."""

    BACKUP = "backup"
    RESTORE = "restore"


def _validate_bucket_name(bucket: str) -> bool:
    """
    Validate S3 bucket name according to AWS rules.

    Rules:
    - 3-63 characters
    - Lowercase letters, numbers, hyphens
    - Must start and end with letter or number
    - No consecutive periods
    - Not formatted as IP address
    """
    if not bucket or len(bucket) < 3 or len(bucket) > 63:
        return False

    if not re.match(r"^[a-z0-9][a-z0-9.-]*[a-z0-9]$", bucket):
        return False

    if ".." in bucket:
        return False

    if re.match(r"^\d+\.\d+\.\d+\.\d+$", bucket):
        return False

    return True


def _validate_key_component(value: str) -> bool:
    """A subfolder or prefix must not escape or re-root the bucket namespace."""
    return ".." not in value and not value.startswith(("/", "\\"))


def _cron_error(expression: str) -> str | None:
    """Return why a crontab expression is invalid, or None if it parses."""
    from apscheduler.triggers.cron import CronTrigger

    try:
        CronTrigger.from_crontab(expression, timezone="UTC")
    except ValueError as e:
        return str(e)
    return None


@dataclass(frozen=True)
class BackupConfig:
    """
    Immutable configuration for backup and restore runs.

    Connection URLs are secrets: never log this object directly, use
    pgs3backup.connection.describe_connection() for the database fields.
    """

    # Required: bucket that holds the artifacts
    bucket: str

    # AWS region
    region: str = "us-east-1"

    # Custom S3 endpoint (MinIO, R2, ...); None uses the AWS default
    endpoint_url: str | None = None

    # Path-style addressing instead of virtual-host style
    force_path_style: bool = False

    # Optional folder inside the bucket, without trailing slash
    bucket_subfolder: str = ""

    # Artifact name prefix
    file_prefix: str = "backup"

    # Operation mode of the service
    mode: OperationMode = OperationMode.BACKUP

    # Source database for backups
    backup_database_url: str | None = None

    # Extra pg_dump arguments, split with shlex
    backup_options: str = ""

    # Cron schedule for backups (UTC)
    backup_cron_schedule: str = "0 5 * * *"

    # Run a backup when the service starts
    run_on_startup: bool = False

    # Run a single backup and exit
    single_shot: bool = False

    # Attach an MD5 digest to uploads (required by object-lock buckets)
    support_object_lock: bool = False

    # Target database for restores
    restore_database_url: str | None = None

    # Logical name of the artifact to restore; latest when unset
    restore_file_key: str | None = None

    # Extra pg_restore arguments, split with shlex
    restore_options: str = ""

    # Cron schedule for restores (UTC); no scheduled restores when unset
    restore_cron_schedule: str | None = None

    # Run a restore when the service starts
    restore_run_on_startup: bool = False

    # Run a single restore and exit
    restore_single_shot: bool = False

    # Parent directory for the process-private scratch directory
    scratch_dir: Path | None = None

    # External tool executables
    pg_dump_path: str = "pg_dump"
    pg_restore_path: str = "pg_restore"
    gzip_path: str = "gzip"

    # Files above this size use multipart upload with parts of this size
    multipart_chunk_size: int = DEFAULT_MULTIPART_CHUNK_SIZE

    # Page size for S3 listing
    s3_list_batch_size: int = 1000

    def __post_init__(self) -> None:
        """Validate configuration after creation."""
        errors: List[str] = []

        if not _validate_bucket_name(self.bucket):
            errors.append(f"Invalid bucket name: {self.bucket}")

        if not self.region:
            errors.append("region must not be empty")

        if not self.file_prefix:
            errors.append("file_prefix must not be empty")
        elif "/" in self.file_prefix or not _validate_key_component(self.file_prefix):
            errors.append(f"Invalid file_prefix: {self.file_prefix!r}")

        if self.bucket_subfolder:
            if not _validate_key_component(self.bucket_subfolder):
                errors.append(f"Invalid bucket_subfolder: {self.bucket_subfolder!r}")
            elif self.bucket_subfolder.endswith("/"):
                errors.append(
                    f"bucket_subfolder must not end with '/': {self.bucket_subfolder!r}"
                )

        if self.backup_cron_schedule:
            reason = _cron_error(self.backup_cron_schedule)
            if reason:
                errors.append(
                    explain_invalid_cron("backup_cron_schedule", self.backup_cron_schedule, reason)
                )

        if self.restore_cron_schedule:
            reason = _cron_error(self.restore_cron_schedule)
            if reason:
                errors.append(
                    explain_invalid_cron("restore_cron_schedule", self.restore_cron_schedule, reason)
                )

        if self.multipart_chunk_size < MIN_MULTIPART_CHUNK_SIZE:
            errors.append(
                f"multipart_chunk_size must be >= {MIN_MULTIPART_CHUNK_SIZE}, "
                f"got {self.multipart_chunk_size}"
            )

        if self.s3_list_batch_size < 1 or self.s3_list_batch_size > 1000:
            errors.append(
                f"s3_list_batch_size must be between 1 and 1000, got {self.s3_list_batch_size}"
            )

        if errors:
            from pgs3backup.exceptions import ConfigurationError

            raise ConfigurationError(
                "Configuration validation failed",
                details={"errors": errors},
            )

    @property
    def artifact_search_name(self) -> str:
        """Logical name prefix shared by every artifact this config produces."""
        return f"{self.file_prefix}-"

    def with_updates(self, **kwargs) -> "BackupConfig":
        """
        Create a new config with updated values.

        Since the config is frozen, this creates a new instance.
        """
        from dataclasses import asdict

        current = asdict(self)
        current.update(kwargs)
        return BackupConfig(**current)
