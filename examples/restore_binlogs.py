# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
Example restore job: fetch MySQL binlogs from S3 up to a target time.

The base backup is assumed to be restored already; this script pulls the
binlogs uploaded since the backup was taken and optionally replays them.

Run with:
    python examples/restore_binlogs.py 2026-03-01T02:30:00Z

Environment variables:
    LOGFETCH_S3_BUCKET: Bucket holding the backups
    LOGFETCH_S3_PREFIX: Key prefix of the backup tree
    LOGFETCH_BINLOG_DST: Directory receiving fetched binlogs
    LOGFETCH_BINLOG_END_TS: Restore target (unbounded if unset)
    LOGFETCH_APPLY_AFTER_FETCH: Replay binlogs after fetching them
    LOGFETCH_BINLOG_REPLAY_COMMAND: e.g. mysqlbinlog --stop-datetime=... | mysql
    LOGFETCH_JOURNAL_PATH: Optional SQLite journal of fetch runs
"""

import asyncio
import sys
from datetime import datetime

import structlog

from logfetch.env import (
    create_handler_config_from_env,
    create_s3_config_from_env,
    create_settings_from_env,
)
from logfetch.exceptions import LogFetchError
from logfetch.handlers import fetch_binlogs
from logfetch.storage.s3 import open_s3_folder

logger = structlog.get_logger()


async def restore(backup_finished_at: datetime) -> int:
    settings = create_settings_from_env(backup_finished_at)
    handler_config = create_handler_config_from_env()
    s3_config = create_s3_config_from_env()

    async with open_s3_folder(s3_config) as folder:
        fetched = await fetch_binlogs(folder, settings, handler_config)

    logger.info(
        "restore_binlogs_done",
        fetched=len(fetched),
        destination=str(handler_config.destination),
    )
    return len(fetched)


def main() -> int:
    if len(sys.argv) != 2:
        print(f"usage: {sys.argv[0]} BACKUP_FINISHED_AT", file=sys.stderr)
        return 2

    try:
        asyncio.run(restore(datetime.fromisoformat(sys.argv[1])))
    except LogFetchError as e:
        logger.error("restore_binlogs_failed", error=str(e))
        return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())
