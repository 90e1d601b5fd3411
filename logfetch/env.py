# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
Environment-based configuration helpers.

These helpers are for callers wrapping the fetch engine (a CLI, a restore
job). They read a small set of well-known environment variables once and
produce explicit configuration objects; the engine itself never reads the
environment.
"""

from __future__ import annotations

import os
from datetime import datetime
from pathlib import Path

from logfetch.builder import create_settings
from logfetch.config import BinlogHandlerConfig, FetchSettings, S3StorageConfig
from logfetch.errors import (
    explain_invalid_bool_env,
    explain_invalid_end_ts_env,
    explain_missing_bucket_env,
    explain_missing_destination_env,
)
from logfetch.exceptions import ConfigurationError

END_TS_ENV = "LOGFETCH_BINLOG_END_TS"
DST_ENV = "LOGFETCH_BINLOG_DST"
APPLY_ENV = "LOGFETCH_APPLY_AFTER_FETCH"
REPLAY_COMMAND_ENV = "LOGFETCH_BINLOG_REPLAY_COMMAND"
JOURNAL_PATH_ENV = "LOGFETCH_JOURNAL_PATH"
BUCKET_ENV = "LOGFETCH_S3_BUCKET"
PREFIX_ENV = "LOGFETCH_S3_PREFIX"

_TRUE_VALUES = ("1", "true", "yes", "on")
_FALSE_VALUES = ("0", "false", "no", "off")


def _parse_end_ts(value: str | None) -> datetime | None:
    if not value:
        return None
    try:
        parsed = datetime.fromisoformat(value)
    except ValueError as exc:
        raise ConfigurationError(explain_invalid_end_ts_env(value)) from exc
    if parsed.tzinfo is None:
        raise ConfigurationError(explain_invalid_end_ts_env(value))
    return parsed


def _parse_bool(name: str, value: str | None) -> bool:
    if not value:
        return False
    lower = value.strip().lower()
    if lower in _TRUE_VALUES:
        return True
    if lower in _FALSE_VALUES:
        return False
    raise ConfigurationError(explain_invalid_bool_env(name, value))


def create_settings_from_env(start_time: datetime) -> FetchSettings:
    """
    Create FetchSettings from environment variables plus an explicit start.

    Optional environment variables:
        - LOGFETCH_BINLOG_END_TS: RFC 3339 end of the window (unbounded if unset)
        - LOGFETCH_APPLY_AFTER_FETCH: boolean, replay after fetch (default: false)
    """

    return create_settings(
        start_time,
        end_time=_parse_end_ts(os.getenv(END_TS_ENV)),
        apply=_parse_bool(APPLY_ENV, os.getenv(APPLY_ENV)),
    )


def create_handler_config_from_env() -> BinlogHandlerConfig:
    """
    Create a BinlogHandlerConfig from environment variables.

    Required:
        - LOGFETCH_BINLOG_DST: Directory receiving fetched binlogs

    Optional environment variables:
        - LOGFETCH_BINLOG_END_TS: RFC 3339 end of the window
        - LOGFETCH_APPLY_AFTER_FETCH: boolean, replay after fetch
        - LOGFETCH_BINLOG_REPLAY_COMMAND: shell command run once per binlog
        - LOGFETCH_JOURNAL_PATH: SQLite journal file
    """

    destination = os.getenv(DST_ENV)
    if not destination:
        raise ConfigurationError(explain_missing_destination_env())

    journal_env = os.getenv(JOURNAL_PATH_ENV)

    return BinlogHandlerConfig(
        destination=Path(destination),
        end_time=_parse_end_ts(os.getenv(END_TS_ENV)),
        apply_after_fetch=_parse_bool(APPLY_ENV, os.getenv(APPLY_ENV)),
        replay_command=os.getenv(REPLAY_COMMAND_ENV) or None,
        journal_path=Path(journal_env) if journal_env else None,
    )


def create_s3_config_from_env() -> S3StorageConfig:
    """
    Create an S3StorageConfig from environment variables.

    Required:
        - LOGFETCH_S3_BUCKET: Bucket holding the backups

    Optional environment variables:
        - AWS_REGION: AWS region (default: us-east-1)
        - LOGFETCH_S3_PREFIX: Key prefix of the backup tree
        - AWS_ENDPOINT_URL: Custom S3 endpoint
    """

    bucket = os.getenv(BUCKET_ENV)
    if not bucket:
        raise ConfigurationError(explain_missing_bucket_env())

    return S3StorageConfig(
        bucket=bucket,
        region=os.getenv("AWS_REGION", "us-east-1"),
        prefix=os.getenv(PREFIX_ENV, ""),
        endpoint_url=os.getenv("AWS_ENDPOINT_URL") or None,
    )
