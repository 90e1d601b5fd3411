# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
Fetch orchestrator - bounded, sequential log segment fetch.

Segments are visited strictly in last-modified order starting from the
first one at or after settings.start_time. Each segment is handed to the
caller's handlers, which decide whether it lies past the boundary; the
first segment that does stops the run and is not part of the result.

This module does not log or retry. Listing, stream and handler errors
propagate to the caller unchanged.
"""

from typing import List, Protocol

from logfetch.catalog import Segment, list_segments, sort_segments
from logfetch.config import BINLOG_PATH, FetchSettings
from logfetch.storage import Folder, SegmentStream


class FetchHandlers(Protocol):
    """Protocol for the per-run handler set driven by fetch_logs()."""

    async def fetch_log(
        self,
        folder: Folder,
        segment_path: str,
        stream: SegmentStream,
    ) -> bool:
        """
        Inspect and process one segment.

        Args:
            folder: Folder the fetch runs against
            segment_path: Segment path relative to folder
            stream: Open stream over the raw segment, closed by the caller

        Returns:
            True if the segment lies past the boundary and the fetch must stop
        """
        ...

    async def handle_abort_fetch(self, segment_path: str) -> None:
        """Called once, with the path of the segment that stopped the fetch."""
        ...

    async def after_fetch(self, fetched: List[Segment]) -> None:
        """Called once after a run that did not raise, with the ordered result."""
        ...


def find_start_index(segments: List[Segment], settings: FetchSettings) -> int | None:
    """Index of the first sorted segment with last_modified >= start_time."""
    for index, segment in enumerate(segments):
        if segment.last_modified >= settings.start_time:
            return index
    return None


async def fetch_logs(
    folder: Folder,
    settings: FetchSettings,
    handlers: FetchHandlers,
    sub_path: str = BINLOG_PATH,
) -> List[Segment]:
    """
    Fetch the contiguous run of segments inside the settings window.

    Args:
        folder: Storage folder holding sub_path
        settings: Fetch window
        handlers: Handler set deciding and processing each segment
        sub_path: Folder (relative to folder) holding the segments

    Returns:
        Segments processed before any abort, ascending by last_modified

    Raises:
        Whatever the storage listing, stream or handlers raise. In that case
        neither handle_abort_fetch nor after_fetch is called.
    """
    segments = sort_segments(await list_segments(folder, sub_path))

    start = find_start_index(segments, settings)
    if start is None:
        return []

    fetched: List[Segment] = []

    for segment in segments[start:]:
        async with folder.open_object(segment.path) as stream:
            need_abort = await handlers.fetch_log(folder, segment.path, stream)

        if need_abort:
            await handlers.handle_abort_fetch(segment.path)
            break

        fetched.append(segment)

    await handlers.after_fetch(fetched)

    return fetched
