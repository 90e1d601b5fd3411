# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
Fetch Journal - Audit trail of fetch runs and truncation points.
"""

from logfetch.journal.sqlite_journal import (
    init_journal_db,
    record_run,
    complete_run,
    record_fetched_segment,
    record_truncation,
    get_run,
    list_runs,
    get_fetched_segments,
    get_last_fetched_segment,
    RunRecord,
    FetchedSegmentRecord,
)

from logfetch.journal.runner import (
    JournalingHandlers,
    run_journaled_fetch,
)

__all__ = [
    # Journal functions
    "init_journal_db",
    "record_run",
    "complete_run",
    "record_fetched_segment",
    "record_truncation",
    "get_run",
    "list_runs",
    "get_fetched_segments",
    "get_last_fetched_segment",
    # Types
    "RunRecord",
    "FetchedSegmentRecord",
    # Runner
    "JournalingHandlers",
    "run_journaled_fetch",
]
