# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
Object Storage Gateway - S3 transfers for backup artifacts.
"""

from pgs3backup.storage.gateway import (
    StoredObject,
    UploadOptions,
    create_s3_client,
    get_object_to_file,
    list_objects,
    object_key,
    put_object_from_file,
    resolve_newest,
)

__all__ = [
    # Types
    "StoredObject",
    "UploadOptions",
    # Client
    "create_s3_client",
    # Keys
    "object_key",
    # Transfers
    "put_object_from_file",
    "get_object_to_file",
    "list_objects",
    "resolve_newest",
]
