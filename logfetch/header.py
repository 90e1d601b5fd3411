# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
Binlog header position parser.

A binlog starts with a 4-byte magic marker followed by the header of its
first event, whose first field is the event timestamp as a little-endian
uint32 of unix epoch seconds:

    offset 0  fe 62 69 6e   marker ("\\xfebin")
    offset 4  xx xx xx xx   first event timestamp

Only these 8 bytes are ever consumed. The stream may be a live reader
that has nothing buffered beyond them.
"""

import struct
from datetime import datetime, UTC

from logfetch.exceptions import HeaderParseError
from logfetch.storage import SegmentStream

BINLOG_MAGIC = b"\xfebin"
TIMESTAMP_SIZE = 4


async def _read_exactly(stream: SegmentStream, size: int, what: str) -> bytes:
    data = b""
    while len(data) < size:
        chunk = await stream.read(size - len(data))
        if not chunk:
            raise HeaderParseError(
                f"Segment header too short: expected {size} bytes of {what}, got {len(data)}",
                details={"field": what, "expected": size, "received": len(data)},
            )
        data += chunk
    return data


async def parse_first_timestamp_from_header(
    stream: SegmentStream,
    check_marker: bool = False,
) -> int:
    """
    Decode the first event timestamp from a segment header.

    Args:
        stream: Stream positioned anywhere; it is repositioned to the header
        check_marker: Read and verify the marker instead of seeking past it

    Returns:
        Unix epoch seconds of the first event

    Raises:
        HeaderParseError: If the header is short or the marker is wrong
    """
    if check_marker:
        await stream.seek(0)
        marker = await _read_exactly(stream, len(BINLOG_MAGIC), "marker")
        if marker != BINLOG_MAGIC:
            raise HeaderParseError(
                "Segment does not start with the binlog marker",
                details={"marker": marker.hex()},
            )
    else:
        await stream.seek(len(BINLOG_MAGIC))

    raw = await _read_exactly(stream, TIMESTAMP_SIZE, "timestamp")
    (timestamp,) = struct.unpack("<I", raw)
    return timestamp


async def decode_position(stream: SegmentStream, check_marker: bool = False) -> datetime:
    """Decode the header timestamp as an aware UTC datetime."""
    timestamp = await parse_first_timestamp_from_header(stream, check_marker=check_marker)
    return datetime.fromtimestamp(timestamp, UTC)


def build_header(timestamp: int, marker: bytes = BINLOG_MAGIC) -> bytes:
    """Build the 8-byte header prefix for a segment starting at timestamp."""
    return marker + struct.pack("<I", timestamp)
