# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
pgs3backup Core - Run tracking around the two pipelines.

run_backup() and run_restore() raise on failure. track_run() is the
boundary the scheduler uses: it runs one pipeline, logs the outcome and
returns a PipelineRun instead of raising.
"""

from dataclasses import dataclass, field
from datetime import datetime, UTC
from enum import Enum
from typing import Any, Dict

import structlog

from pgs3backup.backup import run_backup, run_restore
from pgs3backup.config import BackupConfig, OperationMode
from pgs3backup.exceptions import PGS3BackupError
from pgs3backup.logging import format_duration

logger = structlog.get_logger()


class RunOutcome(str, Enum):
    """Outcome of one pipeline run."""

    SUCCESS = "success"
    FAILURE = "failure"


@dataclass
class PipelineRun:
    """One execution of either pipeline. Lives only for one invocation."""

    operation: OperationMode
    started_at: datetime
    finished_at: datetime | None = None
    outcome: RunOutcome | None = None
    artifact_key: str | None = None
    error: str | None = None
    error_details: Dict[str, Any] = field(default_factory=dict)

    @property
    def succeeded(self) -> bool:
        return self.outcome == RunOutcome.SUCCESS

    @property
    def duration_seconds(self) -> float:
        if self.finished_at is None:
            return 0.0
        return (self.finished_at - self.started_at).total_seconds()


async def track_run(config: BackupConfig, operation: OperationMode) -> PipelineRun:
    """
    Run one pipeline and record how it went.

    Any exception from the pipeline is logged with its details and turned
    into a failed PipelineRun; no partial success is ever reported.

    Args:
        config: Backup configuration
        operation: Which pipeline to run

    Returns:
        PipelineRun with outcome, timing and the artifact key on success
    """
    run = PipelineRun(operation=operation, started_at=datetime.now(UTC))
    logger.info("run_started", operation=operation.value)

    try:
        if operation == OperationMode.BACKUP:
            artifact = await run_backup(config)
        else:
            artifact = await run_restore(config)
    except PGS3BackupError as e:
        _finish_failed(run, e, e.message, e.details)
        return run
    except Exception as e:
        # Anything unexpected still ends the run as a failure
        _finish_failed(run, e, str(e), {})
        return run

    run.finished_at = datetime.now(UTC)
    run.outcome = RunOutcome.SUCCESS
    run.artifact_key = artifact.key

    logger.info(
        "run_completed",
        operation=operation.value,
        key=artifact.key,
        duration=format_duration(run.started_at, run.finished_at),
    )
    return run


def _finish_failed(
    run: PipelineRun,
    error: Exception,
    message: str,
    details: Dict[str, Any],
) -> None:
    run.finished_at = datetime.now(UTC)
    run.outcome = RunOutcome.FAILURE
    run.error = message
    run.error_details = dict(details)

    logger.error(
        "run_failed",
        operation=run.operation.value,
        error_type=type(error).__name__,
        error=message,
        details=details or None,
        duration=format_duration(run.started_at, run.finished_at),
        exc_info=not isinstance(error, PGS3BackupError),
    )
