# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
Artifact naming.

Artifact names embed a UTC timestamp so that, for a fixed prefix, lexical
order equals creation order:

    backup-2025-01-02T03-04-05-678Z.tar.gz

This format is the only persisted contract of the project; "restore latest"
and "restore this key" rely on it staying stable.
"""

import posixpath
import re
from dataclasses import dataclass
from datetime import datetime, UTC

ARTIFACT_SUFFIX = ".tar.gz"

_TIMESTAMP_RE = re.compile(
    r"(\d{4})-(\d{2})-(\d{2})T(\d{2})-(\d{2})-(\d{2})-(\d{3})Z\.tar\.gz$"
)


@dataclass(frozen=True)
class Artifact:
    """One compressed database snapshot stored in the bucket."""

    key: str
    created_at: datetime | None
    size_bytes: int


def format_timestamp(instant: datetime) -> str:
    """
    Render an instant as ISO 8601 UTC with milliseconds, made key-safe.

    Naive datetimes are taken to be UTC.
    """
    if instant.tzinfo is None:
        instant = instant.replace(tzinfo=UTC)
    instant = instant.astimezone(UTC)
    millis = instant.microsecond // 1000
    iso = instant.strftime("%Y-%m-%dT%H:%M:%S") + f".{millis:03d}Z"
    return iso.replace(":", "-").replace(".", "-")


def artifact_name(prefix: str, instant: datetime) -> str:
    """Build the artifact file name for a prefix and instant."""
    return f"{prefix}-{format_timestamp(instant)}{ARTIFACT_SUFFIX}"


def parse_artifact_timestamp(key: str) -> datetime | None:
    """
    Recover the creation instant embedded in an artifact key.

    Works on bare names and on full keys with a subfolder. Returns None when
    the key does not follow the naming contract.
    """
    match = _TIMESTAMP_RE.search(posixpath.basename(key))
    if not match:
        return None
    year, month, day, hour, minute, second, millis = (int(g) for g in match.groups())
    try:
        return datetime(
            year, month, day, hour, minute, second, millis * 1000, tzinfo=UTC
        )
    except ValueError:
        return None


def decompressed_name(name: str) -> str:
    """Name of the staging file that holds the decompressed tar archive."""
    base = posixpath.basename(name)
    if base.endswith(".gz"):
        return base[: -len(".gz")]
    return base + ".tar"
