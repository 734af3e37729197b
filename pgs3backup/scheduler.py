# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
Run orchestrator - decides when the pipelines run.

Supports a run at startup, single-shot runs that exit when done, and cron
schedules driven by APScheduler. A failed run stops the service with a
non-zero exit code so the container supervisor can restart it.
"""

import asyncio
import signal

import structlog
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger

from pgs3backup.config import BackupConfig, OperationMode
from pgs3backup.core import track_run

logger = structlog.get_logger()

EXIT_OK = 0
EXIT_FAILURE = 1


def _mode_settings(config: BackupConfig) -> tuple[bool, bool, str | None]:
    """Return (run_on_startup, single_shot, cron_schedule) for the config's mode."""
    if config.mode == OperationMode.BACKUP:
        return config.run_on_startup, config.single_shot, config.backup_cron_schedule
    return (
        config.restore_run_on_startup,
        config.restore_single_shot,
        config.restore_cron_schedule,
    )


def job_id(operation: OperationMode) -> str:
    return f"pgs3backup_{operation.value}"


async def run_service(
    config: BackupConfig,
    scheduler: AsyncIOScheduler | None = None,
) -> int:
    """
    Run the service for the configured mode until it has nothing left to do.

    Args:
        config: Backup configuration
        scheduler: Scheduler to use for cron runs (a UTC AsyncIOScheduler by default)

    Returns:
        Process exit code: 0 on success or clean shutdown, 1 after a failed run
    """
    operation = config.mode
    on_startup, single_shot, schedule = _mode_settings(config)

    if on_startup or single_shot:
        logger.info("startup_run", operation=operation.value, single_shot=single_shot)
        run = await track_run(config, operation)

        if single_shot:
            logger.info(
                "single_shot_finished",
                operation=operation.value,
                outcome=run.outcome.value if run.outcome else None,
            )
            return EXIT_OK if run.succeeded else EXIT_FAILURE

        if not run.succeeded:
            return EXIT_FAILURE

    if not schedule:
        logger.info("no_schedule_configured", operation=operation.value)
        return EXIT_OK

    return await _run_scheduled(config, operation, schedule, scheduler)


async def _run_scheduled(
    config: BackupConfig,
    operation: OperationMode,
    schedule: str,
    scheduler: AsyncIOScheduler | None,
) -> int:
    """Run the pipeline on its cron schedule until a signal or a failed run."""
    loop = asyncio.get_running_loop()
    stopped: asyncio.Future = loop.create_future()

    def stop(exit_code: int) -> None:
        if not stopped.done():
            stopped.set_result(exit_code)

    async def scheduled_run() -> None:
        logger.info("scheduled_run_starting", operation=operation.value)
        run = await track_run(config, operation)
        if not run.succeeded:
            stop(EXIT_FAILURE)

    scheduler = scheduler or AsyncIOScheduler(timezone="UTC")
    scheduler.add_job(
        scheduled_run,
        trigger=CronTrigger.from_crontab(schedule, timezone="UTC"),
        id=job_id(operation),
        max_instances=1,
        coalesce=True,
        replace_existing=True,
    )
    scheduler.start()

    handled_signals = []
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, stop, EXIT_OK)
            handled_signals.append(sig)
        except (NotImplementedError, RuntimeError):
            # Not available off the main thread or on some platforms
            pass

    logger.info(
        "scheduler_started",
        operation=operation.value,
        schedule=schedule,
        next_run=scheduler.get_job(job_id(operation)).next_run_time.isoformat(),
    )

    try:
        exit_code = await stopped
    finally:
        for sig in handled_signals:
            loop.remove_signal_handler(sig)
        scheduler.shutdown(wait=False)

    logger.info("scheduler_stopped", operation=operation.value, exit_code=exit_code)
    return exit_code
