# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
Segment decompression keyed on the object name suffix.

Segments are uploaded either raw (mysql-bin.000018) or compressed with one
of the uploader's codecs (mysql-bin.000018.lz4, .lzma, .br, .zst). Gzip is
recognised so such segments fail loudly instead of being written out as
garbage.
"""

import asyncio
import lzma
from concurrent.futures import ThreadPoolExecutor
from typing import Callable, Dict, Tuple

import brotli
import lz4.frame
import structlog
import zstandard as zstd

from logfetch.exceptions import HandlerError

logger = structlog.get_logger()

# Thread pool for CPU-bound decompression of large segments
_executor = ThreadPoolExecutor(max_workers=2)

ZSTD_SUFFIX = ".zst"
LZ4_SUFFIX = ".lz4"
LZMA_SUFFIX = ".lzma"
BROTLI_SUFFIX = ".br"

UNSUPPORTED_SUFFIXES = {
    ".gz",
}

# Segments above this size are decompressed off the event loop
_OFFLOAD_THRESHOLD = 1024 * 1024


def _decompress_zstd_sync(data: bytes) -> bytes:
    dctx = zstd.ZstdDecompressor()
    # Streaming reader handles frames written without a content size
    with dctx.stream_reader(data) as reader:
        return reader.read()


def _decompress_lz4_sync(data: bytes) -> bytes:
    return lz4.frame.decompress(data)


def _decompress_lzma_sync(data: bytes) -> bytes:
    # FORMAT_AUTO accepts both .xz and legacy .lzma containers
    return lzma.decompress(data, format=lzma.FORMAT_AUTO)


def _decompress_brotli_sync(data: bytes) -> bytes:
    return brotli.decompress(data)


DECOMPRESSORS: Dict[str, Callable[[bytes], bytes]] = {
    ZSTD_SUFFIX: _decompress_zstd_sync,
    LZ4_SUFFIX: _decompress_lz4_sync,
    LZMA_SUFFIX: _decompress_lzma_sync,
    BROTLI_SUFFIX: _decompress_brotli_sync,
}

# Exceptions each codec raises on corrupt input
_CODEC_ERRORS: Tuple[type, ...] = (
    zstd.ZstdError,
    lzma.LZMAError,
    brotli.error,
    RuntimeError,  # lz4.frame
)


def split_compression_suffix(name: str) -> Tuple[str, str | None]:
    """
    Split a segment name into (binlog name, compression suffix).

    Returns:
        (name, None) when the name carries no compression suffix
    """
    lower = name.lower()
    for suffix in (*DECOMPRESSORS, *UNSUPPORTED_SUFFIXES):
        if lower.endswith(suffix):
            return name[: -len(suffix)], suffix
    return name, None


def binlog_name(segment_name: str) -> str:
    """Name the decompressed binlog is stored under."""
    # Drop any folder component first
    base = segment_name.rsplit("/", 1)[-1]
    return split_compression_suffix(base)[0]


async def decompress_segment(name: str, raw_bytes: bytes) -> bytes:
    """
    Decompress a segment according to its name.

    Args:
        name: Segment object name (used to detect compression)
        raw_bytes: Raw object bytes

    Returns:
        Decompressed binlog bytes

    Raises:
        HandlerError: If the compression is unsupported or the data is corrupt
    """
    _, suffix = split_compression_suffix(name)

    if suffix is None:
        return raw_bytes

    decompress = DECOMPRESSORS.get(suffix)
    if decompress is None:
        raise HandlerError(
            f"Unsupported segment compression: {suffix}",
            details={"segment": name},
        )

    try:
        if len(raw_bytes) > _OFFLOAD_THRESHOLD:
            loop = asyncio.get_running_loop()
            data = await loop.run_in_executor(_executor, decompress, raw_bytes)
        else:
            data = decompress(raw_bytes)
    except _CODEC_ERRORS as e:
        raise HandlerError(
            f"Decompression failed for {name}: {e}",
            details={"segment": name, "codec": suffix, "compressed_size": len(raw_bytes)},
        )

    logger.debug(
        "segment_decompressed",
        segment=name,
        codec=suffix,
        compressed_size=len(raw_bytes),
        size=len(data),
    )
    return data
