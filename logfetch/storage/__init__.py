# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
Storage Layer - Folder and stream capabilities consumed by the fetch engine.

Concrete backends (memory, local filesystem, S3) satisfy these protocols
structurally; the engine never imports a backend directly.
"""

import io
from dataclasses import dataclass
from datetime import datetime
from typing import AsyncContextManager, List, Protocol, Tuple, runtime_checkable

from logfetch.exceptions import StorageError


@dataclass(frozen=True)
class StorageObject:
    """An object returned by a folder listing."""

    name: str
    last_modified: datetime
    size: int = 0


@runtime_checkable
class SegmentStream(Protocol):
    """Protocol for async read/seek/close byte streams."""

    async def read(self, size: int = -1) -> bytes:
        """
        Read up to size bytes (all remaining bytes when size < 0).

        Returns b"" at end of stream.
        """
        ...

    async def seek(self, offset: int, whence: int = 0) -> int:
        """Move the read position and return the new absolute offset."""
        ...

    async def close(self) -> None:
        ...


@runtime_checkable
class Folder(Protocol):
    """Protocol for a storage folder holding segment objects."""

    path: str

    async def list_folder(self) -> Tuple[List[StorageObject], List["Folder"]]:
        """
        List direct children of this folder.

        Returns:
            Tuple of (objects, sub-folders). No ordering is guaranteed.
        """
        ...

    def get_sub_folder(self, path: str) -> "Folder":
        ...

    def open_object(self, path: str) -> AsyncContextManager[SegmentStream]:
        """
        Open an object for reading.

        The returned context manager closes the stream on exit.
        """
        ...

    async def put_object(self, path: str, data: bytes) -> None:
        ...

    async def exists(self, path: str) -> bool:
        ...


class BytesStream:
    """
    SegmentStream over an in-memory byte string.

    Used for payloads already held in memory, such as a decompressed
    segment, and by the in-memory backend.
    """

    def __init__(self, data: bytes, name: str = "<bytes>"):
        self._buffer = io.BytesIO(data)
        self.name = name
        self.closed = False
        self.bytes_read = 0

    async def read(self, size: int = -1) -> bytes:
        if self.closed:
            raise StorageError("Read from closed stream", details={"name": self.name})
        chunk = self._buffer.read(size)
        self.bytes_read += len(chunk)
        return chunk

    async def seek(self, offset: int, whence: int = 0) -> int:
        if self.closed:
            raise StorageError("Seek on closed stream", details={"name": self.name})
        return self._buffer.seek(offset, whence)

    async def close(self) -> None:
        self.closed = True


def join_path(*parts: str) -> str:
    """Join folder-relative key parts with single slashes."""
    cleaned = [p.strip("/") for p in parts if p and p.strip("/")]
    joined = "/".join(cleaned)
    if parts and parts[-1].endswith("/") and joined:
        joined += "/"
    return joined


__all__ = [
    "BytesStream",
    "Folder",
    "SegmentStream",
    "StorageObject",
    "join_path",
]
