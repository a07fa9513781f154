"""
Domain models for cards and their review progress.

These are pure data structures with no I/O or external dependencies.
"""

from dataclasses import dataclass, field, replace

from .constants import ORDER_VIOLATION_MESSAGE
from .errors import OrderViolationError
from .schedule import StageStatus, generate_schedule, resolve_next_due


@dataclass
class Card:
    """
    A flashcard and its position on the review curve.

    Attributes:
        id: Opaque, immutable identifier.
        content: The word or phrase being learned.
        created_at: Creation time (epoch ms). The schedule is derived from it.
        schedule: The 12 absolute due times, fixed at creation.
        completed_at: When each stage was actually completed, oldest first.
        review_count: Number of completed stages.
        next_due: Due time of the next pending stage. Derived, never set directly.
    """

    id: str
    content: str
    created_at: int
    schedule: list[int]
    meaning: str = ""
    example: str = ""
    ai_question: str | None = None
    review_count: int = 0
    completed_at: list[int] = field(default_factory=list)
    next_due: int = 0

    @classmethod
    def create(
        cls, card_id: str, content: str, now: int, meaning: str = "", example: str = ""
    ) -> "Card":
        schedule = generate_schedule(now)
        return cls(
            id=card_id,
            content=content,
            created_at=now,
            schedule=schedule,
            meaning=meaning,
            example=example,
            next_due=schedule[0],
        )

    @property
    def completed_stages(self) -> int:
        return len(self.completed_at)

    @property
    def is_complete(self) -> bool:
        return len(self.completed_at) >= len(self.schedule)

    @property
    def next_stage(self) -> int | None:
        """Index of the next pending stage, or None when fully reviewed."""
        return None if self.is_complete else len(self.completed_at)

    def copy(self) -> "Card":
        return replace(self, schedule=list(self.schedule), completed_at=list(self.completed_at))

    def mark_stage(self, index: int, completed: bool, now: int) -> None:
        """
        Complete or undo one stage. The only way review progress changes.

        Completing is allowed only for the immediate next pending stage and
        undoing only for the most recently completed one, so completed_at
        only ever grows or shrinks at its tail.

        Raises:
            OrderViolationError: index is not the stage the transition applies to.
        """
        done = len(self.completed_at)
        if completed:
            allowed = index == done and done < len(self.schedule)
        else:
            allowed = done > 0 and index == done - 1

        if not allowed:
            raise OrderViolationError(index, done, completed, ORDER_VIOLATION_MESSAGE)

        if completed:
            self.completed_at.append(now)
            self.review_count += 1
        else:
            self.completed_at.pop()
            self.review_count -= 1
        self.next_due = resolve_next_due(self.schedule, self.completed_at)


@dataclass(frozen=True)
class StageView:
    """One row of the progress chart for a card."""

    index: int
    label: str
    due_at: int
    status: StageStatus
    is_next: bool


@dataclass(frozen=True)
class ImportResult:
    imported: int
    skipped: int
