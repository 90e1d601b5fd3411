# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
Boundary policy - the single place segment positions are compared with the
fetch window's end.
"""

from datetime import datetime


def is_past_boundary(position: datetime, end_time: datetime | None) -> bool:
    """
    Return True iff end_time is set and position is strictly after it.

    A position equal to end_time is still inside the window.
    """
    if end_time is None:
        return False
    return position > end_time
