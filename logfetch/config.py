# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
logfetch Configuration - Immutable configuration data structures.

All configuration is frozen (immutable) after creation. Callers build it
once and pass it into the fetch engine; nothing inside the engine reads
process-wide state.
"""

from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Dict, List
import re

from logfetch.errors import explain_naive_datetime


# Default folder (relative to the storage root) holding binlog segments
BINLOG_PATH = "binlog_005/"

# Name of the file listing fetched binlogs in replay order
DEFAULT_INDEX_FILE_NAME = "binlogs_order"


def _is_aware(value: datetime) -> bool:
    return value.tzinfo is not None and value.tzinfo.utcoffset(value) is not None


def _validate_bucket_name(bucket: str) -> bool:
    """
    Validate S3 bucket name according to AWS rules.

    Rules:
    - 3-63 characters
    - Lowercase letters, numbers, hyphens
    - Must start and end with letter or number
    - No consecutive periods
    - Not formatted as IP address
    """
    if not bucket or len(bucket) < 3 or len(bucket) > 63:
        return False

    if not re.match(r"^[a-z0-9][a-z0-9.-]*[a-z0-9]$", bucket):
        return False

    if ".." in bucket:
        return False

    if re.match(r"^\d+\.\d+\.\d+\.\d+$", bucket):
        return False

    return True


def _raise_if_errors(message: str, errors: List[str]) -> None:
    if errors:
        from logfetch.exceptions import ConfigurationError

        raise ConfigurationError(message, details={"errors": errors})


@dataclass(frozen=True)
class FetchSettings:
    """
    Caller-supplied window for a fetch run.

    start_time is an inclusive lower bound on segment last-modified time.
    end_time bounds the decoded segment position; None fetches everything.
    apply_after_fetch is passed through to handlers untouched.
    """

    start_time: datetime

    end_time: datetime | None = None

    apply_after_fetch: bool = False

    def __post_init__(self) -> None:
        """Validate settings after creation."""
        errors: List[str] = []

        if not isinstance(self.start_time, datetime):
            errors.append(f"start_time must be a datetime, got {type(self.start_time).__name__}")
        elif not _is_aware(self.start_time):
            errors.append(explain_naive_datetime("start_time"))

        if self.end_time is not None:
            if not isinstance(self.end_time, datetime):
                errors.append(f"end_time must be a datetime, got {type(self.end_time).__name__}")
            elif not _is_aware(self.end_time):
                errors.append(explain_naive_datetime("end_time"))

        if not errors and self.end_time is not None and self.end_time < self.start_time:
            errors.append(
                f"end_time ({self.end_time.isoformat()}) is before "
                f"start_time ({self.start_time.isoformat()})"
            )

        _raise_if_errors("Fetch settings validation failed", errors)

    @property
    def is_bounded(self) -> bool:
        return self.end_time is not None

    def with_updates(self, **kwargs) -> "FetchSettings":
        """
        Create new settings with updated values.

        Since settings are frozen, this creates a new instance.
        """
        from dataclasses import asdict

        current = asdict(self)
        current.update(kwargs)
        return FetchSettings(**current)


@dataclass(frozen=True)
class S3StorageConfig:
    """Location of the segment store in S3."""

    # Required: bucket holding the backups
    bucket: str

    # AWS region (default: us-east-1)
    region: str = "us-east-1"

    # Key prefix under which the backup tree lives
    prefix: str = ""

    # Custom endpoint (MinIO, localstack, ...)
    endpoint_url: str | None = None

    # Page size for object listing
    list_batch_size: int = 1000

    def __post_init__(self) -> None:
        errors: List[str] = []

        if not _validate_bucket_name(self.bucket):
            errors.append(f"Invalid bucket name: {self.bucket}")

        if self.list_batch_size < 1 or self.list_batch_size > 1000:
            errors.append(
                f"list_batch_size must be between 1 and 1000, got {self.list_batch_size}"
            )

        _raise_if_errors("S3 storage configuration validation failed", errors)


@dataclass(frozen=True)
class BinlogHandlerConfig:
    """
    Configuration for the MySQL binlog fetch handler.

    The handler writes in-bounds binlogs into destination, records their
    order in index_file_name and optionally replays them with
    replay_command once the fetch completes.
    """

    # Directory receiving decompressed binlogs
    destination: Path

    # Binlogs whose first event is after this time are not fetched
    end_time: datetime | None = None

    # Replay fetched binlogs after the fetch completes
    apply_after_fetch: bool = False

    # Shell command run once per binlog when applying
    replay_command: str | None = None

    index_file_name: str = DEFAULT_INDEX_FILE_NAME

    # Optional SQLite journal recording fetched binlogs and truncation points
    journal_path: Path | None = None

    # Extra environment variables passed to replay_command
    extra_env: Dict[str, str] = field(default_factory=dict)

    def __post_init__(self) -> None:
        errors: List[str] = []

        if not isinstance(self.destination, Path):
            errors.append(
                f"destination must be a Path, got {type(self.destination).__name__}"
            )

        if self.end_time is not None and not _is_aware(self.end_time):
            errors.append(explain_naive_datetime("end_time"))

        if self.apply_after_fetch and not self.replay_command:
            errors.append("replay_command required when apply_after_fetch is set")

        if not self.index_file_name or "/" in self.index_file_name:
            errors.append(f"Invalid index_file_name: {self.index_file_name!r}")

        _raise_if_errors("Binlog handler configuration validation failed", errors)
