# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
Backup Engine - Dump and restore pipelines.
"""

from pgs3backup.backup.dump import run_backup
from pgs3backup.backup.restore import run_restore

__all__ = [
    "run_backup",
    "run_restore",
]
