# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
Human-friendly error message helpers for pgs3backup.

These helpers centralize wording for common configuration errors so that
all modules present consistent, actionable messages.
"""


def explain_missing_bucket_env() -> str:
    """
    Explain that the S3 bucket environment variable is missing.
    """

    return (
        "S3 bucket is not configured. "
        "Set the AWS_S3_BUCKET environment variable or pass bucket=... to BackupConfig()."
    )


def explain_missing_region_env() -> str:
    return (
        "S3 region is not configured. "
        "Set the AWS_S3_REGION environment variable (e.g. 'us-east-1')."
    )


def explain_missing_backup_url() -> str:
    """
    Explain that a backup was requested without a source database.
    """

    return (
        "BACKUP_DATABASE_URL is required to run a backup. "
        "Set it to the connection string of the database to dump."
    )


def explain_missing_restore_url() -> str:
    """
    Explain that a restore was requested without a target database.
    """

    return (
        "RESTORE_DATABASE_URL is required when MODE=restore. "
        "Set it to the connection string of the database to restore into."
    )


def explain_invalid_mode_env(value: str | None) -> str:
    """
    Explain that MODE is invalid.
    """

    return (
        f"Invalid MODE value: {value!r}. "
        "Expected one of: 'backup' or 'restore'."
    )


def explain_invalid_bool_env(name: str, value: str | None) -> str:
    return (
        f"Invalid {name} value: {value!r}. "
        "Expected a boolean such as 'true', 'false', '1' or '0'."
    )


def explain_invalid_cron(name: str, value: str | None, reason: str) -> str:
    return (
        f"Invalid {name} value: {value!r}. "
        f"Expected a five-field crontab expression such as '0 5 * * *' ({reason})."
    )
