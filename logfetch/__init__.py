# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
logfetch - Bounded log segment fetch for database point-in-time restore.

Selects the contiguous run of binlog/WAL segments needed to bring a
database up to a target time, streams each one through pluggable
handlers, and stops at the first segment past the boundary.
"""

__version__ = "0.1.0"

# Settings creation (user-facing API)
from logfetch.builder import create_settings
from logfetch.config import (
    BINLOG_PATH,
    BinlogHandlerConfig,
    FetchSettings,
    S3StorageConfig,
)

# Core engine
from logfetch.catalog import Segment, list_segments, sort_segments
from logfetch.fetcher import FetchHandlers, fetch_logs
from logfetch.header import decode_position, parse_first_timestamp_from_header
from logfetch.boundary import is_past_boundary

# Environment-based configuration (caller-side helpers)
from logfetch.env import (
    create_handler_config_from_env,
    create_s3_config_from_env,
    create_settings_from_env,
)

__all__ = [
    # Version
    "__version__",
    # Settings
    "create_settings",
    "FetchSettings",
    "BinlogHandlerConfig",
    "S3StorageConfig",
    "BINLOG_PATH",
    # Core engine
    "Segment",
    "list_segments",
    "sort_segments",
    "FetchHandlers",
    "fetch_logs",
    "decode_position",
    "parse_first_timestamp_from_header",
    "is_past_boundary",
    # Environment helpers
    "create_settings_from_env",
    "create_handler_config_from_env",
    "create_s3_config_from_env",
]
