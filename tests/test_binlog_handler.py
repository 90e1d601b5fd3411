# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
MySQL binlog handler tests.

These tests verify that the binlog handler:
1. Writes only binlogs whose first event is inside the window
2. Writes the replay index in fetch order
3. Replays fetched binlogs in order when asked to
4. Decodes every codec the uploader writes
5. Fails the fetch on unsupported or corrupt segments
"""

import lzma
import threading
from pathlib import Path

import aiosqlite
import brotli
import lz4.frame
import pytest
import zstandard as zstd

from conftest import BASE_TIME, at, epoch
from logfetch.config import BinlogHandlerConfig, FetchSettings
from logfetch.exceptions import ConfigurationError, HandlerError, HeaderParseError
from logfetch.handlers import BinlogFetchHandler, decompress, fetch_binlogs
from logfetch.handlers.decompress import (
    binlog_name,
    decompress_segment,
    split_compression_suffix,
)
from logfetch.header import build_header
from logfetch.journal import get_fetched_segments, list_runs
from logfetch.storage import BytesStream
from logfetch.storage.memory import MemoryFolder


def binlog_bytes(first_event_minutes: int) -> bytes:
    return build_header(epoch(at(first_event_minutes))) + b"\x13" * 64


def zst(data: bytes) -> bytes:
    return zstd.ZstdCompressor(level=3).compress(data)


@pytest.fixture
def stored_binlogs(store_segment):
    """Three zstd binlogs; the third starts after at(20)."""
    store_segment("mysql-bin.000001.zst", at(1), body=zst(binlog_bytes(0)))
    store_segment("mysql-bin.000002.zst", at(2), body=zst(binlog_bytes(10)))
    store_segment("mysql-bin.000003.zst", at(3), body=zst(binlog_bytes(30)))


# ============================================================================
# Decompression helpers
# ============================================================================

def test_split_compression_suffix():
    assert split_compression_suffix("mysql-bin.000001.zst") == ("mysql-bin.000001", ".zst")
    assert split_compression_suffix("mysql-bin.000001.lz4") == ("mysql-bin.000001", ".lz4")
    assert split_compression_suffix("mysql-bin.000001.gz") == ("mysql-bin.000001", ".gz")
    assert split_compression_suffix("mysql-bin.000001") == ("mysql-bin.000001", None)


def test_binlog_name_drops_folder_and_suffix():
    assert binlog_name("binlog_005/mysql-bin.000042.zst") == "mysql-bin.000042"


@pytest.mark.asyncio
async def test_decompress_segment_round_trips_zstd():
    data = binlog_bytes(5)

    assert await decompress_segment("mysql-bin.000001.zst", zst(data)) == data


@pytest.mark.asyncio
async def test_decompress_segment_passes_raw_binlogs_through():
    data = binlog_bytes(5)

    assert await decompress_segment("mysql-bin.000001", data) == data


@pytest.mark.asyncio
async def test_decompress_segment_rejects_unsupported_compression():
    with pytest.raises(HandlerError, match="Unsupported"):
        await decompress_segment("mysql-bin.000001.gz", b"\x1f\x8b\x08\x00")


@pytest.mark.asyncio
async def test_decompress_segment_rejects_corrupt_zstd():
    with pytest.raises(HandlerError, match="Decompression failed"):
        await decompress_segment("mysql-bin.000001.zst", b"definitely not zstd")


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "suffix, compress",
    [
        (".lz4", lz4.frame.compress),
        (".lzma", lzma.compress),
        (".br", brotli.compress),
    ],
)
async def test_decompress_segment_round_trips_uploader_codecs(suffix, compress):
    data = binlog_bytes(5)

    assert await decompress_segment(f"mysql-bin-log.000018{suffix}", compress(data)) == data


@pytest.mark.asyncio
async def test_decompress_segment_accepts_legacy_lzma_container():
    data = binlog_bytes(5)
    raw = lzma.compress(data, format=lzma.FORMAT_ALONE)

    assert await decompress_segment("mysql-bin-log.000018.lzma", raw) == data


@pytest.mark.asyncio
@pytest.mark.parametrize("suffix", [".lz4", ".lzma", ".br"])
async def test_decompress_segment_rejects_corrupt_payloads(suffix):
    with pytest.raises(HandlerError, match="Decompression failed"):
        await decompress_segment(f"mysql-bin-log.000018{suffix}", b"definitely not compressed")


@pytest.mark.asyncio
async def test_large_segments_decompress_off_the_event_loop(monkeypatch):
    calls = []

    def tracking_decompress(data: bytes) -> bytes:
        calls.append(threading.get_ident())
        return lz4.frame.decompress(data)

    monkeypatch.setattr(decompress, "_OFFLOAD_THRESHOLD", 16)
    monkeypatch.setitem(decompress.DECOMPRESSORS, ".lz4", tracking_decompress)
    data = binlog_bytes(5) + b"\x00" * 4096

    assert await decompress_segment("mysql-bin-log.000018.lz4", lz4.frame.compress(data)) == data
    assert len(calls) == 1
    assert calls[0] != threading.get_ident()


# ============================================================================
# Fetch into destination
# ============================================================================

@pytest.mark.asyncio
async def test_fetch_binlogs_writes_in_bounds_binlogs(
    memory_folder: MemoryFolder, stored_binlogs, temp_dir: Path
):
    destination = temp_dir / "restore"
    settings = FetchSettings(start_time=BASE_TIME, end_time=at(20))

    fetched = await fetch_binlogs(
        memory_folder, settings, BinlogHandlerConfig(destination=destination)
    )

    assert [s.name for s in fetched] == ["mysql-bin.000001.zst", "mysql-bin.000002.zst"]
    assert (destination / "mysql-bin.000001").read_bytes() == binlog_bytes(0)
    assert (destination / "mysql-bin.000002").read_bytes() == binlog_bytes(10)
    assert not (destination / "mysql-bin.000003").exists()
    assert (destination / "binlogs_order").read_text() == "mysql-bin.000001\nmysql-bin.000002\n"


@pytest.mark.asyncio
async def test_fetch_binlogs_unbounded_fetches_everything(
    memory_folder: MemoryFolder, stored_binlogs, temp_dir: Path
):
    fetched = await fetch_binlogs(
        memory_folder,
        FetchSettings(start_time=BASE_TIME),
        BinlogHandlerConfig(destination=temp_dir),
    )

    assert len(fetched) == 3
    assert (temp_dir / "binlogs_order").read_text().splitlines() == [
        "mysql-bin.000001",
        "mysql-bin.000002",
        "mysql-bin.000003",
    ]


@pytest.mark.asyncio
async def test_settings_boundary_overrides_handler_config(
    memory_folder: MemoryFolder, stored_binlogs, temp_dir: Path
):
    """The engine window is authoritative for the handler boundary."""
    config = BinlogHandlerConfig(destination=temp_dir, end_time=at(100))

    fetched = await fetch_binlogs(
        memory_folder, FetchSettings(start_time=BASE_TIME, end_time=at(5)), config
    )

    assert [s.name for s in fetched] == ["mysql-bin.000001.zst"]


@pytest.mark.asyncio
async def test_fetch_binlogs_over_mixed_codec_segments(
    memory_folder: MemoryFolder, store_segment, temp_dir: Path
):
    store_segment("mysql-bin-log.000017.lz4", at(0), body=lz4.frame.compress(binlog_bytes(-10)))
    store_segment("mysql-bin-log.000018.lzma", at(1), body=lzma.compress(binlog_bytes(-5)))
    store_segment("mysql-bin-log.000019.br", at(3), body=brotli.compress(binlog_bytes(1)))
    store_segment("mysql-bin-log.000020.lz4", at(4), body=lz4.frame.compress(binlog_bytes(3)))

    fetched = await fetch_binlogs(
        memory_folder,
        FetchSettings(start_time=at(1), end_time=at(2)),
        BinlogHandlerConfig(destination=temp_dir),
    )

    assert [s.name for s in fetched] == ["mysql-bin-log.000018.lzma", "mysql-bin-log.000019.br"]
    assert (temp_dir / "mysql-bin-log.000018").read_bytes() == binlog_bytes(-5)
    assert (temp_dir / "mysql-bin-log.000019").read_bytes() == binlog_bytes(1)
    assert not (temp_dir / "mysql-bin-log.000020").exists()


@pytest.mark.asyncio
async def test_handler_records_abort_point(
    memory_folder: MemoryFolder, stored_binlogs, temp_dir: Path
):
    from logfetch.fetcher import fetch_logs

    handler = BinlogFetchHandler(BinlogHandlerConfig(destination=temp_dir, end_time=at(20)))
    await fetch_logs(
        memory_folder, FetchSettings(start_time=BASE_TIME, end_time=at(20)), handler
    )

    assert handler.aborted_at == "binlog_005/mysql-bin.000003.zst"
    assert [p.name for p in handler.fetched_paths] == ["mysql-bin.000001", "mysql-bin.000002"]


@pytest.mark.asyncio
async def test_handler_requires_binlog_marker(temp_dir: Path, memory_folder: MemoryFolder):
    handler = BinlogFetchHandler(BinlogHandlerConfig(destination=temp_dir))

    with pytest.raises(HeaderParseError):
        await handler.fetch_log(
            memory_folder,
            "binlog_005/mysql-bin.000001",
            BytesStream(b"\x00\x00\x00\x00\x01\x00\x00\x00"),
        )

    assert list(temp_dir.iterdir()) == []


@pytest.mark.asyncio
async def test_unsupported_segment_fails_fetch_without_index(
    memory_folder: MemoryFolder, store_segment, temp_dir: Path
):
    store_segment("mysql-bin.000001.zst", at(1), body=zst(binlog_bytes(0)))
    store_segment("mysql-bin.000002.gz", at(2), body=b"\x1f\x8b\x08\x00")

    with pytest.raises(HandlerError):
        await fetch_binlogs(
            memory_folder,
            FetchSettings(start_time=BASE_TIME),
            BinlogHandlerConfig(destination=temp_dir),
        )

    assert not (temp_dir / "binlogs_order").exists()


# ============================================================================
# Replay
# ============================================================================

@pytest.mark.asyncio
async def test_replay_command_runs_once_per_binlog_in_order(
    memory_folder: MemoryFolder, stored_binlogs, temp_dir: Path
):
    destination = temp_dir / "restore"
    replay_log = temp_dir / "replay.log"
    config = BinlogHandlerConfig(
        destination=destination,
        replay_command=(
            f'echo "$LOGFETCH_CURRENT_BINLOG|$LOGFETCH_BINLOG_STOP_DATETIME|$CLUSTER"'
            f' >> "{replay_log}"'
        ),
        extra_env={"CLUSTER": "main"},
    )

    await fetch_binlogs(
        memory_folder,
        FetchSettings(start_time=BASE_TIME, end_time=at(20), apply_after_fetch=True),
        config,
    )

    lines = replay_log.read_text().splitlines()
    assert lines == [
        f"{(destination / 'mysql-bin.000001').resolve()}|2026-01-01 12:20:00|main",
        f"{(destination / 'mysql-bin.000002').resolve()}|2026-01-01 12:20:00|main",
    ]


@pytest.mark.asyncio
async def test_no_replay_without_apply_flag(
    memory_folder: MemoryFolder, stored_binlogs, temp_dir: Path
):
    marker = temp_dir / "replayed"
    config = BinlogHandlerConfig(
        destination=temp_dir / "restore",
        replay_command=f'touch "{marker}"',
    )

    await fetch_binlogs(memory_folder, FetchSettings(start_time=BASE_TIME), config)

    assert not marker.exists()


@pytest.mark.asyncio
async def test_reused_handler_replays_only_the_current_run(
    memory_folder: MemoryFolder, memory_storage, store_segment, temp_dir: Path
):
    from logfetch.fetcher import fetch_logs

    replay_log = temp_dir / "replay.log"
    handler = BinlogFetchHandler(
        BinlogHandlerConfig(
            destination=temp_dir / "restore",
            apply_after_fetch=True,
            replay_command=f'basename "$LOGFETCH_CURRENT_BINLOG" >> "{replay_log}"',
        )
    )
    store_segment("mysql-bin.000001.zst", at(1), body=zst(binlog_bytes(0)))
    await fetch_logs(memory_folder, FetchSettings(start_time=BASE_TIME), handler)

    memory_storage.delete("binlog_005/mysql-bin.000001.zst")
    store_segment("mysql-bin.000002.zst", at(2), body=zst(binlog_bytes(1)))
    await fetch_logs(memory_folder, FetchSettings(start_time=BASE_TIME), handler)

    assert replay_log.read_text().splitlines() == ["mysql-bin.000001", "mysql-bin.000002"]
    assert (temp_dir / "restore" / "binlogs_order").read_text() == "mysql-bin.000002\n"


@pytest.mark.asyncio
async def test_failing_replay_raises_handler_error(
    memory_folder: MemoryFolder, stored_binlogs, temp_dir: Path
):
    config = BinlogHandlerConfig(
        destination=temp_dir,
        replay_command="echo replay broke >&2; exit 3",
    )

    with pytest.raises(HandlerError) as exc_info:
        await fetch_binlogs(
            memory_folder,
            FetchSettings(start_time=BASE_TIME, apply_after_fetch=True),
            config,
        )

    assert exc_info.value.details["returncode"] == 3
    assert exc_info.value.details["stderr"] == "replay broke"


@pytest.mark.asyncio
async def test_apply_without_replay_command_is_rejected(
    memory_folder: MemoryFolder, temp_dir: Path
):
    with pytest.raises(ConfigurationError):
        await fetch_binlogs(
            memory_folder,
            FetchSettings(start_time=BASE_TIME, apply_after_fetch=True),
            BinlogHandlerConfig(destination=temp_dir),
        )


# ============================================================================
# Journal integration
# ============================================================================

@pytest.mark.asyncio
async def test_fetch_binlogs_records_run_in_journal(
    memory_folder: MemoryFolder, stored_binlogs, temp_dir: Path
):
    journal_path = temp_dir / "journal" / "fetch.db"
    config = BinlogHandlerConfig(destination=temp_dir / "restore", journal_path=journal_path)

    await fetch_binlogs(
        memory_folder, FetchSettings(start_time=BASE_TIME, end_time=at(20)), config
    )

    async with aiosqlite.connect(journal_path) as db:
        runs = await list_runs(db)
        assert len(runs) == 1
        assert runs[0]["fetched_count"] == 2
        assert runs[0]["aborted_at"] == "binlog_005/mysql-bin.000003.zst"
        assert runs[0]["error"] is None

        segments = await get_fetched_segments(db, runs[0]["id"])
        assert [s["name"] for s in segments] == [
            "mysql-bin.000001.zst",
            "mysql-bin.000002.zst",
        ]
