# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
logfetch Exceptions - Custom exceptions for the logfetch package.
"""


class LogFetchError(Exception):
    """Base exception for all logfetch errors."""

    def __init__(self, message: str, details: dict | None = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} | Details: {self.details}"
        return self.message


class ConfigurationError(LogFetchError):
    """Raised when settings or environment configuration are invalid."""

    pass


class StorageError(LogFetchError):
    """Raised when a storage backend fails to list or read objects."""

    pass


class HeaderParseError(LogFetchError):
    """Raised when a segment header is short or corrupt."""

    pass


class HandlerError(LogFetchError):
    """Raised when a fetch handler fails to process a segment."""

    pass


class JournalError(LogFetchError):
    """Raised when fetch journal operations fail."""

    pass
