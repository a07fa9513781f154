"""
Manual progress editing from the stage chart.

Check/uncheck of a single stage goes through Card.mark_stage, the same
entry point the review session uses, so ordering rules live in one place.
"""

import logging
from collections.abc import Callable
from dataclasses import dataclass

from memocurve.application.utils.clock import now_ms
from memocurve.domain.errors import CardNotFoundError, OrderViolationError
from memocurve.domain.models import Card, StageView
from memocurve.domain.ports import CardRepository
from memocurve.domain.schedule import StageStatus, classify_stage, stage_label

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ToggleResult:
    ok: bool
    card: Card
    message: str | None = None


class ProgressEditor:
    def __init__(self, repository: CardRepository, clock: Callable[[], int] = now_ms):
        self._repo = repository
        self._clock = clock

    def toggle_stage(self, card: Card, index: int, set_completed: bool) -> ToggleResult:
        """
        Check (set_completed=True) or uncheck one stage of a card.

        Only the next pending stage can be checked and only the most recent
        completed stage can be unchecked. The edit is applied to the stored
        copy of the card so it composes with reviews recorded meanwhile.
        Anything else is rejected with a user-facing message and no change.
        """
        current = self._repo.get(card.id)
        if current is None:
            raise CardNotFoundError(card.id)

        try:
            current.mark_stage(index, set_completed, self._clock())
        except OrderViolationError as e:
            logger.info(
                f"[progress] {card.id}: rejected {'check' if set_completed else 'uncheck'} "
                f"of stage {index} with {e.completed} completed"
            )
            return ToggleResult(ok=False, card=self._repo.get(card.id), message=str(e))

        self._repo.update(current)
        return ToggleResult(ok=True, card=current)

    def toggle_by_id(self, card_id: str, index: int, set_completed: bool) -> ToggleResult:
        card = self._repo.get(card_id)
        if card is None:
            raise CardNotFoundError(card_id)
        return self.toggle_stage(card, index, set_completed)

    def stage_rows(self, card: Card, now: int | None = None) -> list[StageView]:
        """Rows for the progress chart: one per stage, with the next pending one flagged."""
        now = self._clock() if now is None else now
        next_index = card.next_stage
        return [
            StageView(
                index=i,
                label=stage_label(i),
                due_at=due_at,
                status=classify_stage(card.schedule, card.completed_at, i, now),
                is_next=i == next_index,
            )
            for i, due_at in enumerate(card.schedule)
        ]


def overdue_count(rows: list[StageView]) -> int:
    return sum(1 for row in rows if row.status is StageStatus.OVERDUE)
