# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
Segment catalog - lists log segments stored under a folder.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Iterable, List

from logfetch.config import BINLOG_PATH
from logfetch.storage import Folder, join_path


@dataclass(frozen=True)
class Segment:
    """One stored log segment."""

    name: str  # e.g. mysql-bin.000018.zst
    last_modified: datetime  # storage-assigned
    path: str  # relative to the folder passed to list_segments
    size: int = 0


async def list_segments(folder: Folder, sub_path: str = BINLOG_PATH) -> List[Segment]:
    """
    List the segments stored in folder/sub_path.

    Listing errors propagate unchanged. The result is in storage order,
    which is not meaningful; use sort_segments() before iterating.
    """
    objects, _ = await folder.get_sub_folder(sub_path).list_folder()

    return [
        Segment(
            name=obj.name,
            last_modified=obj.last_modified,
            path=join_path(sub_path, obj.name),
            size=obj.size,
        )
        for obj in objects
    ]


def sort_segments(segments: Iterable[Segment]) -> List[Segment]:
    """Stable sort ascending by last-modified time."""
    return sorted(segments, key=lambda s: s.last_modified)
