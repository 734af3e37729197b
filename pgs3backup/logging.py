# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
Logging setup and small formatting helpers.

Modules log through ``structlog.get_logger()`` with event names and
key/value pairs; this module only decides how those events are rendered
when the service runs as a process.
"""

import logging
import sys
from datetime import datetime, UTC

import structlog
from structlog.tracebacks import ExceptionDictTransformer

LOG_FORMATS = ("console", "json")


def configure_logging(level: str = "info", fmt: str = "console") -> None:
    """
    Configure structlog for the service process.

    Args:
        level: Minimum level name ('debug', 'info', 'warning', 'error')
        fmt: 'console' for human-readable lines, 'json' for one JSON object per line
    """
    numeric_level = logging.getLevelName(level.upper())
    if not isinstance(numeric_level, int):
        raise ValueError(f"Unknown log level: {level!r}")
    if fmt not in LOG_FORMATS:
        raise ValueError(f"Unknown log format: {fmt!r}, expected one of {LOG_FORMATS}")

    processors: list = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
    ]

    # Frame locals hold connection URLs; tracebacks never render them
    if fmt == "json":
        processors += [
            structlog.processors.ExceptionRenderer(
                ExceptionDictTransformer(show_locals=False)
            ),
            structlog.processors.JSONRenderer(),
        ]
    else:
        processors.append(
            structlog.dev.ConsoleRenderer(
                colors=False,
                exception_formatter=structlog.dev.plain_traceback,
            )
        )

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(numeric_level),
        logger_factory=structlog.PrintLoggerFactory(file=sys.stdout),
        cache_logger_on_first_use=False,
    )


def format_duration(start_time: datetime, end_time: datetime) -> str:
    """Format an elapsed time as '1m 5s' or '42s'."""
    seconds = max(int((end_time - start_time).total_seconds()), 0)
    minutes, remaining = divmod(seconds, 60)
    if minutes > 0:
        return f"{minutes}m {remaining}s"
    return f"{seconds}s"


def format_age(moment: datetime, now: datetime | None = None) -> str:
    """Format how long ago something happened as '2d 3h', '4h 10m' or '7m'."""
    now = now or datetime.now(UTC)
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=UTC)
    age_minutes = max(int((now - moment).total_seconds() // 60), 0)
    age_hours = age_minutes // 60
    age_days = age_hours // 24

    if age_days > 0:
        return f"{age_days}d {age_hours % 24}h"
    if age_hours > 0:
        return f"{age_hours}h {age_minutes % 60}m"
    return f"{age_minutes}m"
