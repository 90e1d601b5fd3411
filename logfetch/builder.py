# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
logfetch Builder - Functional builder pattern for fetch settings.

This module provides pure functions for building FetchSettings objects.
Each function takes a settings dict and returns a new dict with the
modification applied (immutable updates).
"""

from datetime import datetime
from typing import Any, Callable, Dict

from logfetch.config import FetchSettings


# Type alias for builder functions
SettingsDict = Dict[str, Any]
BuilderFunc = Callable[[SettingsDict], SettingsDict]


def create_empty_settings() -> SettingsDict:
    """
    Create an initial empty settings dictionary.

    Returns:
        Dict with default values for all settings fields
    """
    return {
        "start_time": None,
        "end_time": None,
        "apply_after_fetch": False,
    }


def starting_at(settings: SettingsDict, start_time: datetime) -> SettingsDict:
    """
    Set the earliest segment last-modified time to consider (inclusive).

    Args:
        settings: Current settings dictionary
        start_time: Timezone-aware start of the window

    Returns:
        New settings dictionary with start_time set
    """
    return {**settings, "start_time": start_time}


def until(settings: SettingsDict, end_time: datetime) -> SettingsDict:
    """
    Bound the fetch: segments whose first event is after end_time are not fetched.

    Args:
        settings: Current settings dictionary
        end_time: Timezone-aware end of the window

    Returns:
        New settings dictionary with end_time set
    """
    return {**settings, "end_time": end_time}


def unbounded(settings: SettingsDict) -> SettingsDict:
    """
    Remove the end boundary and fetch everything available.

    Args:
        settings: Current settings dictionary

    Returns:
        New settings dictionary without end_time
    """
    return {**settings, "end_time": None}


def apply_after_fetch(settings: SettingsDict, enabled: bool = True) -> SettingsDict:
    """
    Ask handlers to apply (replay) the fetched segments once the fetch completes.

    Args:
        settings: Current settings dictionary
        enabled: Whether to apply after fetch

    Returns:
        New settings dictionary with apply_after_fetch set
    """
    return {**settings, "apply_after_fetch": enabled}


def build_settings(settings: SettingsDict) -> FetchSettings:
    """
    Build immutable FetchSettings from a settings dictionary.

    Raises:
        ConfigurationError: If start_time is missing or settings are invalid
    """
    if settings.get("start_time") is None:
        from logfetch.exceptions import ConfigurationError

        raise ConfigurationError(
            "Fetch settings validation failed",
            details={"errors": ["start_time is required"]},
        )

    return FetchSettings(**settings)


def pipe(*funcs: BuilderFunc) -> BuilderFunc:
    """
    Compose multiple builder functions into a single function.

    This allows a more readable pipeline style:

        settings = pipe(
            lambda s: starting_at(s, last_backup_time),
            lambda s: until(s, restore_target),
            apply_after_fetch,
        )(create_empty_settings())

    Args:
        *funcs: Builder functions to compose

    Returns:
        A single function that applies all functions in sequence
    """

    def composed(settings: SettingsDict) -> SettingsDict:
        result = settings
        for func in funcs:
            result = func(result)
        return result

    return composed


def build_from_steps(*steps: BuilderFunc) -> FetchSettings:
    """
    Build settings by applying a sequence of builder functions.

    This is a convenience function that combines pipe() and build_settings().

    Args:
        *steps: Builder functions to apply in sequence

    Returns:
        Validated, immutable FetchSettings instance
    """
    return build_settings(pipe(*steps)(create_empty_settings()))


def create_settings(
    start_time: datetime,
    *,
    end_time: datetime | None = None,
    apply: bool = False,
) -> FetchSettings:
    """
    Create fetch settings from simple parameters.

    This is the recommended user-facing API for creating settings.

    Args:
        start_time: Earliest segment last-modified time to consider (inclusive)
        end_time: Boundary on segment positions; None fetches everything
        apply: Ask handlers to replay fetched segments afterwards

    Returns:
        Validated, immutable FetchSettings instance

    Example:
        settings = create_settings(
            datetime(2026, 3, 1, tzinfo=UTC),
            end_time=datetime(2026, 3, 1, 12, 30, tzinfo=UTC),
        )
    """
    settings = starting_at(create_empty_settings(), start_time)

    if end_time is not None:
        settings = until(settings, end_time)

    if apply:
        settings = apply_after_fetch(settings)

    return build_settings(settings)
