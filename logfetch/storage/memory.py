# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
In-memory storage backend.

Objects live in a dict keyed by their full path. Last-modified times are
taken from an injectable clock or passed explicitly to store(), so tests
can build a deterministic ordering without sleeping.
"""

from contextlib import asynccontextmanager
from dataclasses import dataclass
from datetime import datetime, UTC
from typing import AsyncIterator, Callable, Dict, List, Tuple

from logfetch.exceptions import StorageError
from logfetch.storage import BytesStream, StorageObject, join_path


@dataclass
class _StoredObject:
    data: bytes
    last_modified: datetime


class MemoryStorage:
    """Dict-backed object store shared by MemoryFolder instances."""

    def __init__(self, clock: Callable[[], datetime] | None = None):
        self._objects: Dict[str, _StoredObject] = {}
        self._clock = clock or (lambda: datetime.now(UTC))
        # Full keys in the order they were opened for reading
        self.opened: List[str] = []
        self.streams: List[BytesStream] = []

    def store(self, path: str, data: bytes, last_modified: datetime | None = None) -> None:
        self._objects[path.lstrip("/")] = _StoredObject(
            data=bytes(data),
            last_modified=last_modified or self._clock(),
        )

    def load(self, path: str) -> bytes | None:
        stored = self._objects.get(path.lstrip("/"))
        return stored.data if stored else None

    def delete(self, path: str) -> None:
        self._objects.pop(path.lstrip("/"), None)

    def items(self) -> List[Tuple[str, bytes, datetime]]:
        return [(k, v.data, v.last_modified) for k, v in self._objects.items()]


class MemoryFolder:
    """Folder view over a MemoryStorage prefix."""

    def __init__(self, storage: MemoryStorage, path: str = ""):
        self.storage = storage
        self.path = join_path(path, "/") if path.strip("/") else ""

    async def list_folder(self) -> Tuple[List[StorageObject], List["MemoryFolder"]]:
        objects: List[StorageObject] = []
        sub_folders: Dict[str, MemoryFolder] = {}

        for key, data, last_modified in self.storage.items():
            if not key.startswith(self.path):
                continue
            relative = key[len(self.path):]
            if "/" in relative:
                child = relative.split("/", 1)[0]
                if child not in sub_folders:
                    sub_folders[child] = self.get_sub_folder(child)
                continue
            objects.append(
                StorageObject(name=relative, last_modified=last_modified, size=len(data))
            )

        return objects, list(sub_folders.values())

    def get_sub_folder(self, path: str) -> "MemoryFolder":
        return MemoryFolder(self.storage, join_path(self.path, path, "/"))

    @asynccontextmanager
    async def open_object(self, path: str) -> AsyncIterator[BytesStream]:
        key = join_path(self.path, path)
        data = self.storage.load(key)
        if data is None:
            raise StorageError(f"Object not found: {key}", details={"path": key})

        self.storage.opened.append(key)
        stream = BytesStream(data, name=key)
        self.storage.streams.append(stream)
        try:
            yield stream
        finally:
            await stream.close()

    async def put_object(self, path: str, data: bytes) -> None:
        self.storage.store(join_path(self.path, path), data)

    async def exists(self, path: str) -> bool:
        return self.storage.load(join_path(self.path, path)) is not None
