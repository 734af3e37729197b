# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
Object storage gateway - put/get/list against the backup bucket.

All transfers stream: uploads read the scratch file one chunk at a time
(multipart above the chunk size) and downloads write the response body to
disk as it arrives. Keys are always built through object_key(), which
prepends the configured subfolder and refuses names that would escape it.
"""

import math
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Any, List

import aiofiles
import aiohttp
import structlog
from aiobotocore.config import AioConfig
from aiobotocore.session import get_session
from botocore.exceptions import BotoCoreError, ClientError

from pgs3backup.config import BackupConfig
from pgs3backup.exceptions import (
    InvalidKeyError,
    NoArtifactsError,
    NotFoundError,
    TransferError,
)
from pgs3backup.tools.compressor import md5_base64

logger = structlog.get_logger()

DOWNLOAD_CHUNK_SIZE = 1024 * 1024

# S3 rejects part numbers above this
MAX_MULTIPART_PARTS = 10_000

_NOT_FOUND_CODES = {"NoSuchKey", "404", "NotFound"}


@dataclass(frozen=True)
class StoredObject:
    """One entry of a bucket listing."""

    key: str
    last_modified: datetime
    size_bytes: int


@dataclass(frozen=True)
class UploadOptions:
    """Per-upload options."""

    # Base64 MD5 of the whole file; None skips integrity headers
    content_md5: str | None = None
    content_type: str = "application/gzip"


def create_s3_client(config: BackupConfig) -> Any:
    """
    Create an aiobotocore S3 client context manager for one run.

    Usage:
        async with create_s3_client(config) as s3_client:
            ...
    """
    client_kwargs: dict = {"region_name": config.region}

    if config.endpoint_url:
        logger.info("s3_custom_endpoint", endpoint=config.endpoint_url)
        client_kwargs["endpoint_url"] = config.endpoint_url

    if config.force_path_style:
        client_kwargs["config"] = AioConfig(s3={"addressing_style": "path"})

    return get_session().create_client("s3", **client_kwargs)


def object_key(config: BackupConfig, name: str) -> str:
    """
    Turn a logical name into a full object key.

    Raises:
        InvalidKeyError: If the name is empty, contains '..' or starts with
            a path separator
    """
    if not name:
        raise InvalidKeyError("Invalid S3 key: empty name", details={"name": name})

    if ".." in name or name.startswith(("/", "\\")):
        raise InvalidKeyError(
            f"Invalid S3 key: path traversal detected in {name!r}",
            details={"name": name},
        )

    if config.bucket_subfolder:
        return f"{config.bucket_subfolder}/{name}"
    return name


def _error_code(error: ClientError) -> str:
    return str(error.response.get("Error", {}).get("Code", ""))


async def put_object_from_file(
    s3_client: Any,
    config: BackupConfig,
    key: str,
    local_path: Path,
    options: UploadOptions | None = None,
) -> int:
    """
    Upload a local file to the bucket without loading it whole.

    Args:
        s3_client: aiobotocore S3 client
        config: Backup configuration
        key: Full object key (see object_key())
        local_path: File to upload
        options: Optional integrity/content settings

    Returns:
        Number of bytes uploaded

    Raises:
        TransferError: On network, auth or permission failures
    """
    options = options or UploadOptions()
    size = local_path.stat().st_size

    try:
        if size <= config.multipart_chunk_size:
            await _put_single(s3_client, config, key, local_path, options)
        else:
            await _put_multipart(s3_client, config, key, local_path, options)
    except (BotoCoreError, ClientError) as e:
        raise TransferError(
            f"Failed to upload object: {e}",
            details={"bucket": config.bucket, "key": key},
        ) from e

    logger.info(
        "object_uploaded",
        bucket=config.bucket,
        key=key,
        size=size,
        multipart=size > config.multipart_chunk_size,
    )
    return size


async def _put_single(
    s3_client: Any,
    config: BackupConfig,
    key: str,
    local_path: Path,
    options: UploadOptions,
) -> None:
    # Bounded by multipart_chunk_size
    async with aiofiles.open(local_path, "rb") as f:
        body = await f.read()

    params: dict = {
        "Bucket": config.bucket,
        "Key": key,
        "Body": body,
        "ContentType": options.content_type,
    }
    if options.content_md5:
        params["ContentMD5"] = options.content_md5

    await s3_client.put_object(**params)


def multipart_part_size(size: int, chunk_size: int) -> int:
    """
    Part size for a multipart upload of size bytes.

    Never below chunk_size, and large enough that the upload fits in
    MAX_MULTIPART_PARTS parts.
    """
    return max(chunk_size, math.ceil(size / MAX_MULTIPART_PARTS))


async def _put_multipart(
    s3_client: Any,
    config: BackupConfig,
    key: str,
    local_path: Path,
    options: UploadOptions,
) -> None:
    part_size = multipart_part_size(local_path.stat().st_size, config.multipart_chunk_size)

    create_params: dict = {
        "Bucket": config.bucket,
        "Key": key,
        "ContentType": options.content_type,
    }
    if options.content_md5:
        # Multipart ETags are not MD5s; keep the whole-file digest alongside
        create_params["Metadata"] = {"content-md5": options.content_md5}

    upload = await s3_client.create_multipart_upload(**create_params)
    upload_id = upload["UploadId"]
    parts: List[dict] = []

    try:
        async with aiofiles.open(local_path, "rb") as f:
            part_number = 1
            while True:
                chunk = await f.read(part_size)
                if not chunk:
                    break

                part_params: dict = {
                    "Bucket": config.bucket,
                    "Key": key,
                    "UploadId": upload_id,
                    "PartNumber": part_number,
                    "Body": chunk,
                }
                if options.content_md5:
                    part_params["ContentMD5"] = md5_base64(chunk)

                response = await s3_client.upload_part(**part_params)
                parts.append({"ETag": response["ETag"], "PartNumber": part_number})
                logger.debug("part_uploaded", key=key, part=part_number, size=len(chunk))
                part_number += 1

        await s3_client.complete_multipart_upload(
            Bucket=config.bucket,
            Key=key,
            UploadId=upload_id,
            MultipartUpload={"Parts": parts},
        )
    except Exception:
        await _abort_multipart(s3_client, config, key, upload_id)
        raise


async def _abort_multipart(
    s3_client: Any,
    config: BackupConfig,
    key: str,
    upload_id: str,
) -> None:
    """Best-effort abort; the upload failure is what the caller sees."""
    try:
        await s3_client.abort_multipart_upload(
            Bucket=config.bucket, Key=key, UploadId=upload_id
        )
    except (BotoCoreError, ClientError) as e:
        logger.warning(
            "multipart_abort_failed",
            key=key,
            upload_id=upload_id,
            error=str(e),
        )


async def get_object_to_file(
    s3_client: Any,
    config: BackupConfig,
    key: str,
    local_path: Path,
) -> int:
    """
    Stream an object into a local file.

    Args:
        s3_client: aiobotocore S3 client
        config: Backup configuration
        key: Full object key
        local_path: Destination file (truncated first)

    Returns:
        Number of bytes written

    Raises:
        NotFoundError: If the key does not exist
        TransferError: On any other failure, including a short body
    """
    try:
        response = await s3_client.get_object(Bucket=config.bucket, Key=key)
    except ClientError as e:
        if _error_code(e) in _NOT_FOUND_CODES:
            raise NotFoundError(
                f"Object not found: {key}",
                details={"bucket": config.bucket, "key": key},
            ) from e
        raise TransferError(
            f"Failed to download object: {e}",
            details={"bucket": config.bucket, "key": key},
        ) from e
    except BotoCoreError as e:
        raise TransferError(
            f"Failed to download object: {e}",
            details={"bucket": config.bucket, "key": key},
        ) from e

    expected = response.get("ContentLength")
    written = 0

    try:
        async with response["Body"] as stream:
            async with aiofiles.open(local_path, "wb") as f:
                while True:
                    chunk = await stream.read(DOWNLOAD_CHUNK_SIZE)
                    if not chunk:
                        break
                    await f.write(chunk)
                    written += len(chunk)
    except (BotoCoreError, ClientError, aiohttp.ClientError, OSError) as e:
        raise TransferError(
            f"Download interrupted: {e}",
            details={"bucket": config.bucket, "key": key, "bytes_written": written},
        ) from e

    if expected is not None and written != expected:
        raise TransferError(
            "Download incomplete: size mismatch",
            details={
                "bucket": config.bucket,
                "key": key,
                "expected": expected,
                "bytes_written": written,
            },
        )

    logger.info("object_downloaded", bucket=config.bucket, key=key, size=written)
    return written


async def list_objects(
    s3_client: Any,
    config: BackupConfig,
    prefix: str,
) -> List[StoredObject]:
    """List every object under a prefix, following pagination."""
    objects: List[StoredObject] = []

    try:
        paginator = s3_client.get_paginator("list_objects_v2")
        async for page in paginator.paginate(
            Bucket=config.bucket,
            Prefix=prefix,
            PaginationConfig={"PageSize": config.s3_list_batch_size},
        ):
            for obj in page.get("Contents", []):
                objects.append(
                    StoredObject(
                        key=obj["Key"],
                        last_modified=obj["LastModified"],
                        size_bytes=obj.get("Size", 0),
                    )
                )
    except (BotoCoreError, ClientError) as e:
        raise TransferError(
            f"Failed to list objects: {e}",
            details={"bucket": config.bucket, "prefix": prefix},
        ) from e

    return objects


async def resolve_newest(
    s3_client: Any,
    config: BackupConfig,
    prefix: str,
) -> StoredObject:
    """
    Find the most recently modified object under a prefix.

    Ties on last-modified go to the object listed last.

    Raises:
        NoArtifactsError: If nothing matches the prefix
        TransferError: If listing fails
    """
    newest: StoredObject | None = None

    for obj in await list_objects(s3_client, config, prefix):
        if newest is None or obj.last_modified >= newest.last_modified:
            newest = obj

    if newest is None:
        raise NoArtifactsError(
            f"No backup files found with prefix: {prefix}",
            details={"bucket": config.bucket, "prefix": prefix},
        )

    logger.info(
        "newest_object_resolved",
        key=newest.key,
        last_modified=newest.last_modified.isoformat(),
    )
    return newest
