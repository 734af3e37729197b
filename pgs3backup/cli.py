# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
Command line entrypoint for the container.

Usage:
    pgs3backup                      # mode and schedule from the environment
    pgs3backup --mode restore --once
    python -m pgs3backup --log-format json

Exit codes:
    0  success or clean shutdown
    1  a backup/restore run failed
    2  invalid configuration
"""

import argparse
import asyncio
import os
import platform
import sys
from typing import List

import structlog

from pgs3backup import __version__
from pgs3backup.config import BackupConfig, OperationMode
from pgs3backup.env import create_config_from_env
from pgs3backup.errors import explain_missing_restore_url
from pgs3backup.exceptions import ConfigurationError
from pgs3backup.logging import LOG_FORMATS, configure_logging
from pgs3backup.scheduler import run_service

logger = structlog.get_logger()

EXIT_CONFIG_ERROR = 2


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="pgs3backup",
        description="Back up a PostgreSQL database to S3, or restore it from S3.",
    )
    parser.add_argument(
        "--mode",
        choices=[m.value for m in OperationMode],
        help="Override MODE from the environment",
    )
    parser.add_argument(
        "--once",
        action="store_true",
        help="Run a single backup/restore and exit",
    )
    parser.add_argument(
        "--log-level",
        default=os.getenv("LOG_LEVEL", "info"),
        help="Minimum log level (default: LOG_LEVEL or info)",
    )
    parser.add_argument(
        "--log-format",
        choices=LOG_FORMATS,
        default=os.getenv("LOG_FORMAT", "console"),
        help="Log renderer (default: LOG_FORMAT or console)",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return parser


def apply_overrides(config: BackupConfig, mode: str | None, once: bool) -> BackupConfig:
    """Apply command line overrides on top of the environment config."""
    if mode:
        config = config.with_updates(mode=OperationMode(mode))

    if once:
        if config.mode == OperationMode.BACKUP:
            config = config.with_updates(single_shot=True)
        else:
            config = config.with_updates(restore_single_shot=True)

    if config.mode == OperationMode.RESTORE and not config.restore_database_url:
        raise ConfigurationError(explain_missing_restore_url())

    return config


def main(argv: List[str] | None = None) -> int:
    args = build_parser().parse_args(argv)

    try:
        configure_logging(args.log_level, args.log_format)
    except ValueError as e:
        print(f"pgs3backup: {e}", file=sys.stderr)
        return EXIT_CONFIG_ERROR

    try:
        config = apply_overrides(create_config_from_env(), args.mode, args.once)
    except ConfigurationError as e:
        logger.error("configuration_invalid", error=e.message, details=e.details or None)
        return EXIT_CONFIG_ERROR

    logger.info(
        "service_starting",
        version=__version__,
        python=platform.python_version(),
        mode=config.mode.value,
        bucket=config.bucket,
        subfolder=config.bucket_subfolder or None,
        prefix=config.file_prefix,
    )

    return asyncio.run(run_service(config))
