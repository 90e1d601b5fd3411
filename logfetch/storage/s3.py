# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
S3 storage backend.

Listing uses the list_objects_v2 paginator with a "/" delimiter so a
folder sees its direct objects and sub-folders. Reads are served by
ranged GETs: seeking drops the current body and the next read asks for
"bytes=<pos>-", which keeps header inspection to a few bytes on the wire.
"""

from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, List, Tuple

import structlog

from logfetch.config import S3StorageConfig
from logfetch.exceptions import StorageError
from logfetch.storage import StorageObject, join_path

logger = structlog.get_logger()


def _error_code(exc: Exception) -> str | None:
    response = getattr(exc, "response", None)
    if isinstance(response, dict):
        return response.get("Error", {}).get("Code")
    return None


class S3ObjectStream:
    """SegmentStream over a single S3 object."""

    def __init__(self, s3_client: Any, bucket: str, key: str):
        self._client = s3_client
        self.bucket = bucket
        self.key = key
        self._position = 0
        self._body: Any = None
        self._size: int | None = None
        self.closed = False

    async def _open_body(self) -> None:
        params = {"Bucket": self.bucket, "Key": self.key}
        if self._position > 0:
            params["Range"] = f"bytes={self._position}-"

        response = await self._client.get_object(**params)
        self._body = response["Body"]

        logger.debug("s3_object_opened", key=self.key, position=self._position)

    def _drop_body(self) -> None:
        if self._body is not None:
            self._body.close()
            self._body = None

    async def read(self, size: int = -1) -> bytes:
        if self.closed:
            raise StorageError("Read from closed stream", details={"key": self.key})
        if size == 0:
            return b""

        try:
            if self._body is None:
                await self._open_body()
            data = await self._body.read() if size < 0 else await self._body.read(size)
        except StorageError:
            raise
        except Exception as e:
            if _error_code(e) == "InvalidRange":
                # Position is at or past the end of the object
                return b""
            logger.error("s3_read_failed", key=self.key, error=str(e))
            raise StorageError(
                f"Failed to read object: {e}",
                details={"bucket": self.bucket, "key": self.key},
            )

        self._position += len(data)
        return data

    async def _object_size(self) -> int:
        if self._size is None:
            try:
                response = await self._client.head_object(Bucket=self.bucket, Key=self.key)
            except Exception as e:
                raise StorageError(
                    f"Failed to stat object: {e}",
                    details={"bucket": self.bucket, "key": self.key},
                )
            self._size = int(response["ContentLength"])
        return self._size

    async def seek(self, offset: int, whence: int = 0) -> int:
        if self.closed:
            raise StorageError("Seek on closed stream", details={"key": self.key})

        if whence == 0:
            target = offset
        elif whence == 1:
            target = self._position + offset
        elif whence == 2:
            target = await self._object_size() + offset
        else:
            raise ValueError(f"Invalid whence: {whence}")

        if target < 0:
            raise ValueError(f"Negative seek position: {target}")

        if target != self._position:
            self._drop_body()
            self._position = target

        return self._position

    async def close(self) -> None:
        self._drop_body()
        self.closed = True


class S3Folder:
    """Folder view over an S3 bucket prefix."""

    def __init__(self, s3_client: Any, config: S3StorageConfig, path: str = ""):
        self._client = s3_client
        self.config = config
        self.path = join_path(path, "/") if path.strip("/") else ""

    def _key(self, path: str = "") -> str:
        return join_path(self.config.prefix, self.path, path)

    def _folder_prefix(self) -> str:
        prefix = self._key()
        return prefix + "/" if prefix and not prefix.endswith("/") else prefix

    async def list_folder(self) -> Tuple[List[StorageObject], List["S3Folder"]]:
        prefix = self._folder_prefix()
        objects: List[StorageObject] = []
        sub_folders: List[S3Folder] = []

        try:
            paginator = self._client.get_paginator("list_objects_v2")
            async for page in paginator.paginate(
                Bucket=self.config.bucket,
                Prefix=prefix,
                Delimiter="/",
                MaxKeys=self.config.list_batch_size,
            ):
                for obj in page.get("Contents", []):
                    name = obj["Key"][len(prefix):]
                    if not name:
                        continue
                    objects.append(
                        StorageObject(
                            name=name,
                            last_modified=obj["LastModified"],
                            size=obj.get("Size", 0),
                        )
                    )
                for common in page.get("CommonPrefixes", []):
                    child = common["Prefix"][len(prefix):].strip("/")
                    if child:
                        sub_folders.append(self.get_sub_folder(child))
        except Exception as e:
            logger.error(
                "s3_listing_failed",
                bucket=self.config.bucket,
                prefix=prefix,
                error=str(e),
            )
            raise StorageError(
                f"Failed to list folder: {e}",
                details={"bucket": self.config.bucket, "prefix": prefix},
            )

        logger.debug(
            "s3_folder_listed",
            bucket=self.config.bucket,
            prefix=prefix,
            objects=len(objects),
        )
        return objects, sub_folders

    def get_sub_folder(self, path: str) -> "S3Folder":
        return S3Folder(self._client, self.config, join_path(self.path, path, "/"))

    @asynccontextmanager
    async def open_object(self, path: str) -> AsyncIterator[S3ObjectStream]:
        stream = S3ObjectStream(self._client, self.config.bucket, self._key(path))
        try:
            yield stream
        finally:
            await stream.close()

    async def put_object(self, path: str, data: bytes) -> None:
        key = self._key(path)
        try:
            await self._client.put_object(Bucket=self.config.bucket, Key=key, Body=data)
        except Exception as e:
            raise StorageError(
                f"Failed to upload object: {e}",
                details={"bucket": self.config.bucket, "key": key},
            )

    async def exists(self, path: str) -> bool:
        try:
            await self._client.head_object(Bucket=self.config.bucket, Key=self._key(path))
            return True
        except Exception as e:
            if _error_code(e) in ("404", "NoSuchKey", "NotFound"):
                return False
            raise StorageError(
                f"Failed to check object: {e}",
                details={"bucket": self.config.bucket, "key": self._key(path)},
            )


@asynccontextmanager
async def open_s3_folder(config: S3StorageConfig) -> AsyncIterator[S3Folder]:
    """
    Create an S3 client for config and yield the root folder.

    The client is closed when the context exits.
    """
    from aiobotocore.session import get_session

    session = get_session()
    async with session.create_client(
        "s3",
        region_name=config.region,
        endpoint_url=config.endpoint_url,
    ) as s3_client:
        yield S3Folder(s3_client, config)
