# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
pgs3backup - Scheduled PostgreSQL backups to S3, and restores from them.

Dumps a database with pg_dump, validates the compressed archive, and
uploads it to a bucket; or downloads an archive (a given key or the newest
one), validates it and applies it with pg_restore. Scratch files never
outlive a run, and connection credentials never reach the logs.
"""

__version__ = "0.1.0"

# Configuration (user-facing API)
from pgs3backup.config import BackupConfig, OperationMode
from pgs3backup.env import create_config_from_env

# Pipelines
from pgs3backup.backup import run_backup, run_restore

# Run tracking
from pgs3backup.core import PipelineRun, RunOutcome, track_run

# Artifacts
from pgs3backup.naming import Artifact, artifact_name

__all__ = [
    # Version
    "__version__",
    # Configuration
    "BackupConfig",
    "OperationMode",
    "create_config_from_env",
    # Pipelines
    "run_backup",
    "run_restore",
    # Run tracking
    "PipelineRun",
    "RunOutcome",
    "track_run",
    # Artifacts
    "Artifact",
    "artifact_name",
]
