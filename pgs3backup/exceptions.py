# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
pgs3backup Exceptions - Custom exceptions for the pgs3backup package.

Every error is terminal for the current pipeline run. Nothing in the
package retries; the scheduler decides whether to try again later.
"""


class PGS3BackupError(Exception):
    """Base exception for all pgs3backup errors."""

    def __init__(self, message: str, details: dict | None = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} | Details: {self.details}"
        return self.message


class ConfigurationError(PGS3BackupError):
    """Raised when configuration is invalid or a required value is missing."""

    pass


class NoArtifactsError(PGS3BackupError):
    """Raised when the latest backup is requested but none exist."""

    pass


class NotFoundError(PGS3BackupError):
    """Raised when an object key does not exist in the bucket."""

    pass


class InvalidKeyError(PGS3BackupError):
    """Raised when a logical name would escape the configured subfolder."""

    pass


class TransferError(PGS3BackupError):
    """Raised when an object storage transfer fails."""

    pass


class ValidationError(PGS3BackupError):
    """Raised when an archive is empty, truncated or not a gzip stream."""

    pass


class ScratchFileError(PGS3BackupError):
    """Raised when a scratch file cannot be allocated or released."""

    pass


class ToolError(PGS3BackupError):
    """Base for failures of an external tool; carries its diagnostics."""

    @property
    def stderr(self) -> str:
        return self.details.get("stderr", "")


class DumpError(ToolError):
    """Raised when pg_dump or the compression stage exits non-zero."""

    pass


class RestoreError(ToolError):
    """Raised when decompression or pg_restore exits non-zero."""

    pass
