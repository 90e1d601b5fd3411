# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
Journaled fetch - runs fetch_logs() and records the run in the journal.
"""

from pathlib import Path
from typing import List

import aiosqlite
import structlog

from logfetch.catalog import Segment
from logfetch.config import BINLOG_PATH, FetchSettings
from logfetch.fetcher import FetchHandlers, fetch_logs
from logfetch.journal.sqlite_journal import (
    complete_run,
    init_journal_db,
    record_fetched_segment,
    record_run,
    record_truncation,
)
from logfetch.storage import Folder, SegmentStream

logger = structlog.get_logger()


class JournalingHandlers:
    """FetchHandlers wrapper that records truncation and results."""

    def __init__(self, inner: FetchHandlers, db: aiosqlite.Connection, run_id: str):
        self.inner = inner
        self.db = db
        self.run_id = run_id

    async def fetch_log(
        self,
        folder: Folder,
        segment_path: str,
        stream: SegmentStream,
    ) -> bool:
        return await self.inner.fetch_log(folder, segment_path, stream)

    async def handle_abort_fetch(self, segment_path: str) -> None:
        await record_truncation(self.db, self.run_id, segment_path)
        await self.inner.handle_abort_fetch(segment_path)

    async def after_fetch(self, fetched: List[Segment]) -> None:
        for segment in fetched:
            await record_fetched_segment(self.db, self.run_id, segment)
        await self.inner.after_fetch(fetched)


async def run_journaled_fetch(
    journal_path: Path,
    folder: Folder,
    settings: FetchSettings,
    handlers: FetchHandlers,
    sub_path: str = BINLOG_PATH,
) -> List[Segment]:
    """
    Run fetch_logs() and record it in the journal at journal_path.

    The run, every fetched segment and the truncation point are recorded.
    If the fetch raises, the error is stored on the run and the original
    exception is re-raised.

    Returns:
        Fetched segments, as returned by fetch_logs()
    """
    from ulid import ULID

    run_id = str(ULID())

    await init_journal_db(journal_path)

    async with aiosqlite.connect(journal_path) as db:
        await record_run(db, run_id, settings)

        try:
            fetched = await fetch_logs(
                folder,
                settings,
                JournalingHandlers(handlers, db, run_id),
                sub_path=sub_path,
            )
        except Exception as e:
            await complete_run(db, run_id, None, error=str(e))
            logger.error("fetch_run_failed", run_id=run_id, error=str(e))
            raise

        await complete_run(db, run_id, len(fetched))

    logger.info("fetch_run_completed", run_id=run_id, fetched=len(fetched))

    return fetched
