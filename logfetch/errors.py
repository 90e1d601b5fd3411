# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
Human-friendly error message helpers for logfetch.

These helpers centralize wording for common configuration errors so that
all modules present consistent, actionable messages.
"""


def explain_missing_destination_env() -> str:
    """
    Explain that the binlog destination environment variable is missing.
    """

    return (
        "Binlog destination is not configured. "
        "Set the LOGFETCH_BINLOG_DST environment variable or pass "
        "destination=... to BinlogHandlerConfig()."
    )


def explain_missing_bucket_env() -> str:
    """
    Explain that the S3 bucket environment variable is missing.
    """

    return (
        "S3 bucket is not configured. "
        "Set the LOGFETCH_S3_BUCKET environment variable or pass bucket=... "
        "to S3StorageConfig()."
    )


def explain_invalid_end_ts_env(value: str | None) -> str:
    """
    Explain that LOGFETCH_BINLOG_END_TS is invalid.
    """

    return (
        f"Invalid LOGFETCH_BINLOG_END_TS value: {value!r}. "
        "Expected an RFC 3339 timestamp with a UTC offset, "
        "e.g. '2026-01-31T12:00:00Z'."
    )


def explain_invalid_bool_env(name: str, value: str | None) -> str:
    """
    Explain that a boolean environment variable is invalid.
    """

    return (
        f"Invalid {name} value: {value!r}. "
        "Expected one of: '1', 'true', 'yes', '0', 'false', 'no'."
    )


def explain_naive_datetime(field_name: str) -> str:
    """
    Explain that a datetime must carry timezone information.
    """

    return (
        f"{field_name} must be timezone-aware. "
        "Segment times from storage are UTC; use datetime(..., tzinfo=UTC)."
    )
