# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
Subprocess helpers shared by the external tool wrappers.

Tools are always started with an argument list; nothing is ever passed
through a shell.
"""

import asyncio
import shlex
from typing import List, Type

from pgs3backup.exceptions import ConfigurationError, ToolError


def split_options(options: str, setting: str) -> List[str]:
    """
    Split a user-supplied options string into arguments.

    The string is trusted configuration, but it is tokenized with shell
    quoting rules instead of being handed to a shell.
    """
    if not options or not options.strip():
        return []
    try:
        return shlex.split(options)
    except ValueError as e:
        raise ConfigurationError(
            f"Could not parse {setting}: {e}",
            details={"setting": setting},
        ) from e


async def spawn(
    argv: List[str],
    error_cls: Type[ToolError],
    tool: str,
    **kwargs,
) -> asyncio.subprocess.Process:
    """Start a tool, turning a missing or unrunnable executable into error_cls."""
    try:
        return await asyncio.create_subprocess_exec(*argv, **kwargs)
    except OSError as e:
        raise error_cls(
            f"Failed to start {tool}: {e}",
            details={"tool": tool, "executable": argv[0]},
        ) from e


async def terminate(process: asyncio.subprocess.Process | None) -> None:
    """Kill a process that is still running and reap it."""
    if process is None or process.returncode is not None:
        return
    try:
        process.kill()
    except ProcessLookupError:
        pass
    await process.wait()


def decode_output(data: bytes | None) -> str:
    if not data:
        return ""
    return data.decode("utf-8", errors="replace").strip()
