# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
External tools - pg_dump, pg_restore and gzip invoked as subprocesses.
"""

from pgs3backup.tools.compressor import (
    compute_content_md5,
    decompress_file,
    validate_archive,
)
from pgs3backup.tools.postgres import dump_to_file, restore_from_file

__all__ = [
    "compute_content_md5",
    "decompress_file",
    "dump_to_file",
    "restore_from_file",
    "validate_archive",
]
