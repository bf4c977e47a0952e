# src/taskly/tasks/gestures.py

from __future__ import annotations

from enum import StrEnum

DEFAULT_SWIPE_THRESHOLD_PX = 80


class SwipeAction(StrEnum):
    ARCHIVE = "archive"
    DELETE = "delete"
    CANCEL = "cancel"


def swipe_decision(dx: float, threshold: float = DEFAULT_SWIPE_THRESHOLD_PX) -> SwipeAction:
    """
    Commit/cancel policy for a released horizontal swipe on a task row.

    Strictly beyond the threshold commits: left archives, right deletes.
    Anything shorter snaps back.
    """
    if abs(dx) <= threshold:
        return SwipeAction.CANCEL
    return SwipeAction.ARCHIVE if dx < 0 else SwipeAction.DELETE
