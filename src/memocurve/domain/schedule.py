"""
Schedule generation and progress resolution for the Ebbinghaus curve.

This is a pure computation module with no I/O.
"""

from collections.abc import Sequence
from enum import Enum

from .constants import (
    GRACE_MS,
    INTERVAL_MINUTES,
    MS_PER_MINUTE,
    STAGE_COUNT,
    STAGE_LABELS,
    UNKNOWN_STAGE_LABEL,
)


class StageStatus(str, Enum):
    COMPLETED = "Completed"
    OVERDUE = "Overdue"
    PENDING = "Pending"


def generate_schedule(start_time: int) -> list[int]:
    """
    Build the 12 absolute due timestamps for a card created at start_time.

    Args:
        start_time: Creation time in epoch milliseconds.

    Returns:
        Ascending list of epoch-millisecond due times, one per stage.
    """
    return [start_time + minutes * MS_PER_MINUTE for minutes in INTERVAL_MINUTES]


def resolve_next_due(schedule: Sequence[int], completed_at: Sequence[int]) -> int:
    """
    The due time of the next pending stage.

    Once every stage is completed the card stays on its final stage.
    """
    next_index = len(completed_at)
    if next_index >= len(schedule):
        return schedule[-1]
    return schedule[next_index]


def classify_stage(
    schedule: Sequence[int], completed_at: Sequence[int], index: int, now: int
) -> StageStatus:
    if index < len(completed_at):
        return StageStatus.COMPLETED
    if schedule[index] < now:
        return StageStatus.OVERDUE
    return StageStatus.PENDING


def stage_label(index: int) -> str:
    if 0 <= index < STAGE_COUNT:
        return STAGE_LABELS[index]
    return UNKNOWN_STAGE_LABEL


def is_due(next_due: int, now: int, grace_ms: int = GRACE_MS) -> bool:
    """A review counts as on time when it happens no earlier than grace_ms before due."""
    return next_due <= now + grace_ms
