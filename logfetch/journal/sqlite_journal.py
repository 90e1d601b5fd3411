# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
Fetch Journal - Append-only audit trail of fetch runs.

Each run records its window, the segments it fetched in order, and the
segment that stopped it (the truncation point), so a later catch-up can
resume from exactly where the previous one ended.
"""

from datetime import datetime, UTC
from pathlib import Path
from typing import List, TypedDict

import aiosqlite
import structlog

from logfetch.catalog import Segment
from logfetch.config import FetchSettings
from logfetch.exceptions import JournalError

logger = structlog.get_logger()


class RunRecord(TypedDict):
    """Record of a fetch run."""

    id: str  # ULID
    started_at: str  # ISO 8601
    start_time: str  # ISO 8601
    end_time: str | None  # ISO 8601 or None for unbounded
    apply_after_fetch: bool
    completed_at: str | None
    fetched_count: int | None
    aborted_at: str | None  # path of the segment past the boundary
    error: str | None


class FetchedSegmentRecord(TypedDict):
    """Record of a segment fetched by a run."""

    id: int  # Auto-increment, reflects fetch order
    run_id: str
    path: str
    name: str
    last_modified: str  # ISO 8601
    size: int
    fetched_at: str  # ISO 8601


async def init_journal_db(db_path: Path) -> None:
    """
    Initialize the journal database schema.

    Creates tables if they don't exist. This is idempotent.

    Args:
        db_path: Path to the SQLite database file
    """
    try:
        db_path.parent.mkdir(parents=True, exist_ok=True)

        async with aiosqlite.connect(db_path) as db:
            await db.execute("""
                CREATE TABLE IF NOT EXISTS runs (
                    id TEXT PRIMARY KEY,
                    started_at TEXT NOT NULL,
                    start_time TEXT NOT NULL,
                    end_time TEXT,
                    apply_after_fetch INTEGER NOT NULL,
                    completed_at TEXT,
                    fetched_count INTEGER,
                    aborted_at TEXT,
                    error TEXT
                )
            """)

            await db.execute("""
                CREATE TABLE IF NOT EXISTS fetched_segments (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    run_id TEXT NOT NULL,
                    path TEXT NOT NULL,
                    name TEXT NOT NULL,
                    last_modified TEXT NOT NULL,
                    size INTEGER NOT NULL,
                    fetched_at TEXT NOT NULL,
                    FOREIGN KEY (run_id) REFERENCES runs(id)
                )
            """)

            await db.execute("""
                CREATE INDEX IF NOT EXISTS idx_fetched_segments_run_id
                ON fetched_segments(run_id)
            """)

            await db.execute("""
                CREATE INDEX IF NOT EXISTS idx_runs_started_at
                ON runs(started_at)
            """)

            await db.commit()

        logger.info("journal_db_initialized", db_path=str(db_path))

    except Exception as e:
        raise JournalError(
            f"Failed to initialize journal database: {e}",
            details={"db_path": str(db_path)},
        )


async def record_run(
    db: aiosqlite.Connection,
    run_id: str,
    settings: FetchSettings,
) -> None:
    """
    Record the start of a fetch run.

    Args:
        db: SQLite database connection
        run_id: Unique run ID (ULID)
        settings: Window the run fetches
    """
    now = datetime.now(UTC).isoformat()

    await db.execute(
        """
        INSERT INTO runs (id, started_at, start_time, end_time, apply_after_fetch)
        VALUES (?, ?, ?, ?, ?)
        """,
        (
            run_id,
            now,
            settings.start_time.isoformat(),
            settings.end_time.isoformat() if settings.end_time else None,
            int(settings.apply_after_fetch),
        ),
    )
    await db.commit()

    logger.info("fetch_run_recorded", run_id=run_id)


async def complete_run(
    db: aiosqlite.Connection,
    run_id: str,
    fetched_count: int | None,
    error: str | None = None,
) -> None:
    """
    Mark a run as completed.

    Args:
        db: SQLite database connection
        run_id: Run ID
        fetched_count: Number of segments fetched, None if the run failed
        error: Error message if the run failed
    """
    now = datetime.now(UTC).isoformat()

    await db.execute(
        """
        UPDATE runs
        SET completed_at = ?, fetched_count = ?, error = ?
        WHERE id = ?
        """,
        (now, fetched_count, error, run_id),
    )
    await db.commit()


async def record_fetched_segment(
    db: aiosqlite.Connection,
    run_id: str,
    segment: Segment,
) -> int:
    """
    Record a segment fetched by a run.

    Returns:
        Record ID
    """
    now = datetime.now(UTC).isoformat()

    cursor = await db.execute(
        """
        INSERT INTO fetched_segments
        (run_id, path, name, last_modified, size, fetched_at)
        VALUES (?, ?, ?, ?, ?, ?)
        """,
        (
            run_id,
            segment.path,
            segment.name,
            segment.last_modified.isoformat(),
            segment.size,
            now,
        ),
    )
    await db.commit()

    logger.debug("fetched_segment_recorded", run_id=run_id, path=segment.path)

    return cursor.lastrowid


async def record_truncation(
    db: aiosqlite.Connection,
    run_id: str,
    segment_path: str,
) -> None:
    """Record the segment that stopped a run."""
    await db.execute(
        "UPDATE runs SET aborted_at = ? WHERE id = ?",
        (segment_path, run_id),
    )
    await db.commit()

    logger.info("fetch_truncation_recorded", run_id=run_id, segment=segment_path)


def _row_to_run(row) -> RunRecord:
    return RunRecord(
        id=row[0],
        started_at=row[1],
        start_time=row[2],
        end_time=row[3],
        apply_after_fetch=bool(row[4]),
        completed_at=row[5],
        fetched_count=row[6],
        aborted_at=row[7],
        error=row[8],
    )


_RUN_COLUMNS = """
    id, started_at, start_time, end_time, apply_after_fetch,
    completed_at, fetched_count, aborted_at, error
"""


async def get_run(
    db: aiosqlite.Connection,
    run_id: str,
) -> RunRecord | None:
    """
    Get a run record.

    Returns:
        Run record or None if not found
    """
    async with db.execute(
        f"SELECT {_RUN_COLUMNS} FROM runs WHERE id = ?",
        (run_id,),
    ) as cursor:
        row = await cursor.fetchone()
        return _row_to_run(row) if row else None


async def list_runs(
    db: aiosqlite.Connection,
    limit: int = 50,
    offset: int = 0,
) -> List[RunRecord]:
    """
    List runs, newest first.

    Args:
        db: SQLite database connection
        limit: Maximum number of records to return
        offset: Number of records to skip
    """
    records: List[RunRecord] = []

    async with db.execute(
        f"SELECT {_RUN_COLUMNS} FROM runs ORDER BY started_at DESC, id DESC LIMIT ? OFFSET ?",
        (limit, offset),
    ) as cursor:
        async for row in cursor:
            records.append(_row_to_run(row))

    return records


async def get_fetched_segments(
    db: aiosqlite.Connection,
    run_id: str,
) -> List[FetchedSegmentRecord]:
    """Get the segments fetched by a run, in fetch order."""
    records: List[FetchedSegmentRecord] = []

    async with db.execute(
        """
        SELECT id, run_id, path, name, last_modified, size, fetched_at
        FROM fetched_segments
        WHERE run_id = ?
        ORDER BY id
        """,
        (run_id,),
    ) as cursor:
        async for row in cursor:
            records.append(
                FetchedSegmentRecord(
                    id=row[0],
                    run_id=row[1],
                    path=row[2],
                    name=row[3],
                    last_modified=row[4],
                    size=row[5],
                    fetched_at=row[6],
                )
            )

    return records


async def get_last_fetched_segment(
    db: aiosqlite.Connection,
) -> FetchedSegmentRecord | None:
    """
    Get the most recently fetched segment of any successful run.

    A caller resuming a catch-up uses its last_modified as the next
    start time.
    """
    async with db.execute(
        """
        SELECT s.id, s.run_id, s.path, s.name, s.last_modified, s.size, s.fetched_at
        FROM fetched_segments s
        JOIN runs r ON r.id = s.run_id
        WHERE r.error IS NULL AND r.completed_at IS NOT NULL
        ORDER BY s.last_modified DESC, s.id DESC
        LIMIT 1
        """
    ) as cursor:
        row = await cursor.fetchone()

        if row:
            return FetchedSegmentRecord(
                id=row[0],
                run_id=row[1],
                path=row[2],
                name=row[3],
                last_modified=row[4],
                size=row[5],
                fetched_at=row[6],
            )

        return None
