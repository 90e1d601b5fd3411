# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
Test fixtures for logfetch tests.

Provides in-memory storage with explicit last-modified times, header
builders and temporary directories.
"""

import tempfile
from datetime import datetime, timedelta, UTC
from pathlib import Path
from typing import Callable, Generator

import pytest

from logfetch.config import BINLOG_PATH
from logfetch.header import build_header
from logfetch.storage.memory import MemoryFolder, MemoryStorage

# Fixed reference time; segment clocks are derived from it, never from now()
BASE_TIME = datetime(2026, 1, 1, 12, 0, 0, tzinfo=UTC)


def at(minutes: int) -> datetime:
    """BASE_TIME shifted by minutes."""
    return BASE_TIME + timedelta(minutes=minutes)


def epoch(moment: datetime) -> int:
    return int(moment.timestamp())


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for tests."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def memory_storage() -> MemoryStorage:
    """Empty in-memory storage whose default clock is BASE_TIME."""
    return MemoryStorage(clock=lambda: BASE_TIME)


@pytest.fixture
def memory_folder(memory_storage: MemoryStorage) -> MemoryFolder:
    return MemoryFolder(memory_storage)


@pytest.fixture
def store_segment(memory_storage: MemoryStorage) -> Callable[..., str]:
    """
    Store a binlog segment under BINLOG_PATH.

    Usage: store_segment("mysql-bin.000001", last_modified, first_event_at)
    Returns the segment path relative to the storage root.
    """

    def _store(
        name: str,
        last_modified: datetime,
        first_event_at: datetime | None = None,
        body: bytes | None = None,
    ) -> str:
        if body is None:
            body = build_header(epoch(first_event_at or last_modified)) + b"\x00" * 15
        path = f"{BINLOG_PATH}{name}"
        memory_storage.store(path, body, last_modified=last_modified)
        return path

    return _store
