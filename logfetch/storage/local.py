# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
Local filesystem storage backend.

Maps folder paths onto a root directory. Object last-modified times come
from file mtimes; writes are atomic (temp file, then rename).
"""

import os
from contextlib import asynccontextmanager
from datetime import datetime, UTC
from pathlib import Path
from typing import Any, AsyncIterator, List, Tuple

import aiofiles
import structlog

from logfetch.exceptions import StorageError
from logfetch.storage import StorageObject, join_path

logger = structlog.get_logger()


class LocalFolder:
    """Folder backed by a directory on the local filesystem."""

    def __init__(self, root: Path, path: str = ""):
        self.root = Path(root)
        self.path = join_path(path, "/") if path.strip("/") else ""

    def _resolve(self, path: str = "") -> Path:
        relative = join_path(self.path, path)
        resolved = (self.root / relative).resolve()
        root = self.root.resolve()
        if resolved != root and root not in resolved.parents:
            raise StorageError(
                f"Path escapes storage root: {path}",
                details={"root": str(root), "path": path},
            )
        return resolved

    async def list_folder(self) -> Tuple[List[StorageObject], List["LocalFolder"]]:
        directory = self._resolve()
        if not directory.exists():
            logger.debug("local_folder_missing", path=str(directory))
            return [], []

        objects: List[StorageObject] = []
        sub_folders: List[LocalFolder] = []

        try:
            with os.scandir(directory) as entries:
                for entry in entries:
                    if entry.is_dir():
                        sub_folders.append(self.get_sub_folder(entry.name))
                        continue
                    # Skip in-flight atomic writes
                    if entry.name.endswith(".tmp"):
                        continue
                    stat = entry.stat()
                    objects.append(
                        StorageObject(
                            name=entry.name,
                            last_modified=datetime.fromtimestamp(stat.st_mtime, UTC),
                            size=stat.st_size,
                        )
                    )
        except OSError as e:
            logger.error("local_listing_failed", path=str(directory), error=str(e))
            raise StorageError(
                f"Failed to list folder: {e}",
                details={"path": str(directory)},
            )

        logger.debug("local_folder_listed", path=str(directory), objects=len(objects))
        return objects, sub_folders

    def get_sub_folder(self, path: str) -> "LocalFolder":
        return LocalFolder(self.root, join_path(self.path, path, "/"))

    @asynccontextmanager
    async def open_object(self, path: str) -> AsyncIterator[Any]:
        file_path = self._resolve(path)
        try:
            handle = await aiofiles.open(file_path, "rb")
        except FileNotFoundError:
            raise StorageError(
                f"Object not found: {file_path}",
                details={"path": str(file_path)},
            )
        except OSError as e:
            raise StorageError(
                f"Failed to open object: {e}",
                details={"path": str(file_path)},
            )

        try:
            yield handle
        finally:
            await handle.close()

    async def put_object(self, path: str, data: bytes) -> None:
        file_path = self._resolve(path)
        temp_path = file_path.with_name(file_path.name + ".tmp")

        try:
            file_path.parent.mkdir(parents=True, exist_ok=True)
            async with aiofiles.open(temp_path, "wb") as f:
                await f.write(data)
            temp_path.rename(file_path)
        except OSError as e:
            raise StorageError(
                f"Failed to write object: {e}",
                details={"path": str(file_path)},
            )

        logger.debug("local_object_written", path=str(file_path), size=len(data))

    async def exists(self, path: str) -> bool:
        return self._resolve(path).is_file()
