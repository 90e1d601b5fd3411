# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
MySQL binlog fetch handler.

Downloads binlog segments into a local destination, stopping at the first
binlog whose first event happened after the configured end time. After
the fetch it writes an index file listing the binlogs in replay order and,
when asked to apply, runs a replay command once per binlog.

The binlog position is decoded from the decompressed content, not from
storage metadata: a binlog can be uploaded after the end time and still
start before it, and the other way round.
"""

import asyncio
import dataclasses
import os
from pathlib import Path
from typing import List

import aiofiles
import structlog

from logfetch.boundary import is_past_boundary
from logfetch.catalog import Segment
from logfetch.config import BINLOG_PATH, BinlogHandlerConfig, FetchSettings
from logfetch.exceptions import HandlerError
from logfetch.fetcher import fetch_logs
from logfetch.handlers.decompress import binlog_name, decompress_segment
from logfetch.header import decode_position
from logfetch.storage import BytesStream, Folder, SegmentStream

logger = structlog.get_logger()

STOP_DATETIME_FORMAT = "%Y-%m-%d %H:%M:%S"


async def _write_atomic(path: Path, data: bytes) -> None:
    """Write to a temp file, then rename over path."""
    temp_path = path.with_name(path.name + ".tmp")
    async with aiofiles.open(temp_path, "wb") as f:
        await f.write(data)
    temp_path.rename(path)


class BinlogFetchHandler:
    """FetchHandlers implementation for MySQL binlogs."""

    def __init__(self, config: BinlogHandlerConfig):
        self.config = config
        # Cumulative across runs; replay only uses the run's own result
        self.fetched_paths: List[Path] = []
        self.aborted_at: str | None = None

    async def fetch_log(
        self,
        folder: Folder,
        segment_path: str,
        stream: SegmentStream,
    ) -> bool:
        name = segment_path.rsplit("/", 1)[-1]

        await stream.seek(0)
        raw = await stream.read()
        data = await decompress_segment(name, raw)

        position = await decode_position(BytesStream(data, name=name), check_marker=True)

        if is_past_boundary(position, self.config.end_time):
            logger.info(
                "binlog_past_boundary",
                segment=segment_path,
                first_event_at=position.isoformat(),
                end_time=self.config.end_time.isoformat() if self.config.end_time else None,
            )
            return True

        destination = self.config.destination / binlog_name(name)
        try:
            self.config.destination.mkdir(parents=True, exist_ok=True)
            await _write_atomic(destination, data)
        except OSError as e:
            raise HandlerError(
                f"Failed to write binlog: {e}",
                details={"segment": segment_path, "destination": str(destination)},
            )

        self.fetched_paths.append(destination)

        logger.info(
            "binlog_fetched",
            segment=segment_path,
            destination=str(destination),
            size=len(data),
            first_event_at=position.isoformat(),
        )
        return False

    async def handle_abort_fetch(self, segment_path: str) -> None:
        self.aborted_at = segment_path
        logger.info(
            "binlog_fetch_aborted",
            segment=segment_path,
            fetched=len(self.fetched_paths),
        )

    async def after_fetch(self, fetched: List[Segment]) -> None:
        index_path = self.config.destination / self.config.index_file_name
        names = [binlog_name(segment.name) for segment in fetched]

        try:
            self.config.destination.mkdir(parents=True, exist_ok=True)
            await _write_atomic(index_path, "".join(f"{n}\n" for n in names).encode())
        except OSError as e:
            raise HandlerError(
                f"Failed to write binlog index: {e}",
                details={"index_path": str(index_path)},
            )

        logger.info("binlog_index_written", index_path=str(index_path), binlogs=len(names))

        if self.config.apply_after_fetch:
            for name in names:
                await self._replay(self.config.destination / name)

    async def _replay(self, binlog_path: Path) -> None:
        stop = (
            self.config.end_time.strftime(STOP_DATETIME_FORMAT)
            if self.config.end_time
            else ""
        )
        env = {
            **os.environ,
            **self.config.extra_env,
            "LOGFETCH_CURRENT_BINLOG": str(binlog_path.resolve()),
            "LOGFETCH_BINLOG_STOP_DATETIME": stop,
        }

        process = await asyncio.create_subprocess_shell(
            self.config.replay_command,
            env=env,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
        _, stderr = await process.communicate()

        if process.returncode != 0:
            raise HandlerError(
                f"Replay command failed for {binlog_path.name}",
                details={
                    "returncode": process.returncode,
                    "stderr": stderr.decode(errors="replace").strip(),
                },
            )

        logger.info("binlog_replayed", binlog=str(binlog_path))


async def fetch_binlogs(
    folder: Folder,
    settings: FetchSettings,
    config: BinlogHandlerConfig,
    sub_path: str = BINLOG_PATH,
) -> List[Segment]:
    """
    Fetch binlogs in the settings window into config.destination.

    The window's end time and apply flag override the handler config so the
    engine and the handler agree on the boundary. When config.journal_path
    is set the run is recorded in the fetch journal.

    Returns:
        Fetched segments, ascending by last_modified
    """
    config = dataclasses.replace(
        config,
        end_time=settings.end_time,
        apply_after_fetch=settings.apply_after_fetch or config.apply_after_fetch,
    )
    handler = BinlogFetchHandler(config)

    if config.journal_path is not None:
        from logfetch.journal import run_journaled_fetch

        return await run_journaled_fetch(
            config.journal_path, folder, settings, handler, sub_path=sub_path
        )

    return await fetch_logs(folder, settings, handler, sub_path=sub_path)
