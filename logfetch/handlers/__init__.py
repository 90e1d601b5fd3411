# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
Fetch Handlers - Concrete FetchHandlers implementations.
"""

from logfetch.handlers.binlog import BinlogFetchHandler, fetch_binlogs
from logfetch.handlers.decompress import (
    binlog_name,
    decompress_segment,
    split_compression_suffix,
)

__all__ = [
    "BinlogFetchHandler",
    "fetch_binlogs",
    "binlog_name",
    "decompress_segment",
    "split_compression_suffix",
]
