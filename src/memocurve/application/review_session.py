"""
Review session state machine.

Holds the ordered queue for one review pass, counts how long the current
card has been on screen, and turns a long enough look at a due card into a
recorded review. The session is synchronous and clock-injected; the
DwellTimer in dwell_timer.py feeds it one tick per second.
"""

import logging
from collections.abc import Callable, Coroutine
from dataclasses import dataclass
from enum import Enum
from typing import Any

from memocurve.application.config import ReviewConfig
from memocurve.application.utils.clock import now_ms
from memocurve.domain.constants import AI_QUESTION_PLACEHOLDER, FALLBACK_QUESTION
from memocurve.domain.models import Card
from memocurve.domain.ports import CardRepository, QuestionGenerator
from memocurve.domain.schedule import is_due

logger = logging.getLogger(__name__)


class SessionState(str, Enum):
    IDLE = "idle"  # no current card
    VIEWING = "viewing"  # dwell timer running
    REGISTERED = "registered"  # review recorded (or skipped) for this visit


@dataclass(frozen=True)
class CommitOutcome:
    """What a Commit Review did to the current card."""

    card_id: str
    credited: bool  # completed_at grew by one
    due: bool  # the card was within the grace window
    review_count: int
    next_due: int


class ReviewSession:
    """
    One review pass over the card collection.

    Usage:
        session = ReviewSession(store, store.load_config(), generator)
        session.start()
        session.tick()           # once per second while viewing
        session.next()           # navigation resets the visit
        session.close()

    The queue holds card ids only; the repository stays the source of truth
    and every read of current_card returns its latest stored state.
    """

    def __init__(
        self,
        repository: CardRepository,
        config: ReviewConfig | None = None,
        question_generator: QuestionGenerator | None = None,
        clock: Callable[[], int] = now_ms,
        inflight: set[tuple[str, str]] | None = None,
    ):
        self._repo = repository
        self.config = config or repository.load_config()
        self._generator = question_generator
        self._clock = clock

        self.queue: list[str] = []
        self.position = 0
        self.dwell_seconds = 0
        self.registered = False
        self.flipped = False
        self.active = False
        self.last_outcome: CommitOutcome | None = None

        self._enrichment_requested = False
        # (id, content) pairs being fetched; may be shared by sessions of one process.
        self._inflight = inflight if inflight is not None else set()

    # ---------- Lifecycle ----------

    def start(self) -> SessionState:
        """Snapshot the queue, most urgent first, and show its first card."""
        cards = sorted(self._repo.list_cards(), key=lambda c: (c.next_due, c.created_at))
        self.queue = [c.id for c in cards]
        self.position = 0
        self.active = True
        self._begin_visit()
        logger.info(f"Review session started with {len(self.queue)} cards")
        return self.state

    def close(self) -> None:
        self.active = False
        self.queue = []
        self.position = 0
        self._begin_visit()
        logger.debug("Review session closed")

    def _begin_visit(self) -> None:
        self.dwell_seconds = 0
        self.registered = False
        self.flipped = False
        self.last_outcome = None
        self._enrichment_requested = False

    # ---------- State ----------

    @property
    def current_card(self) -> Card | None:
        if not self.active or not self.queue:
            return None
        return self._repo.get(self.queue[self.position])

    @property
    def state(self) -> SessionState:
        if self.current_card is None:
            return SessionState.IDLE
        return SessionState.REGISTERED if self.registered else SessionState.VIEWING

    @property
    def trigger(self) -> int:
        return self.config.review_duration_trigger

    def progress_fraction(self) -> float:
        return min(self.dwell_seconds / self.trigger, 1.0)

    def is_current_due(self) -> bool:
        card = self.current_card
        return card is not None and is_due(card.next_due, self._clock())

    # ---------- Transitions ----------

    def tick(self) -> SessionState:
        """Account for one elapsed second of display time."""
        if self.state is not SessionState.VIEWING:
            return self.state
        self.dwell_seconds += 1
        if self.dwell_seconds >= self.trigger:
            self.commit_review()
        return self.state

    def next(self) -> bool:
        if not self.active or self.position >= len(self.queue) - 1:
            return False
        self.position += 1
        self._begin_visit()
        return True

    def prev(self) -> bool:
        if not self.active or self.position == 0:
            return False
        self.position -= 1
        self._begin_visit()
        return True

    def flip(self) -> bool:
        self.flipped = not self.flipped
        return self.flipped

    def commit_review(self) -> CommitOutcome | None:
        """
        Record a review of the current card if it has been earned.

        A review is credited when the card is due (allowing GRACE_MS of early
        credit), its current stage has not already been recorded, and this
        visit has not credited it yet. Otherwise the visit is still marked
        registered so the timer stops, but progress is left untouched.
        The card is written back either way.
        """
        card = self.current_card
        if card is None:
            return None

        now = self._clock()
        due = is_due(card.next_due, now)
        already_done = len(card.completed_at) > card.review_count
        credited = False

        if due and not already_done and not self.registered and not card.is_complete:
            card.mark_stage(len(card.completed_at), True, now)
            credited = True

        self.registered = True
        self._repo.update(card)

        outcome = CommitOutcome(
            card_id=card.id,
            credited=credited,
            due=due,
            review_count=card.review_count,
            next_due=card.next_due,
        )
        self.last_outcome = outcome
        logger.debug(
            f"[review] {card.id}: credited={credited} due={due} reviews={card.review_count}"
        )
        return outcome

    # ---------- Display ----------

    def front_fields(self) -> list[tuple[str, str]]:
        fields = list(self.config.front_fields)
        if not self.config.show_ai_question_on_front and "aiQuestion" in fields:
            fields.remove("aiQuestion")
        return self._render(fields)

    def back_fields(self) -> list[tuple[str, str]]:
        return self._render(self.config.back_fields)

    def _render(self, fields: list[str]) -> list[tuple[str, str]]:
        card = self.current_card
        if card is None:
            return []

        rendered = []
        for name in fields:
            if name == "content":
                rendered.append((name, card.content))
            elif name == "meaning" and card.meaning:
                rendered.append((name, card.meaning))
            elif name == "example" and card.example:
                rendered.append((name, card.example))
            elif name == "aiQuestion":
                rendered.append((name, card.ai_question or self._pending_question(card)))
        return rendered

    def _pending_question(self, card: Card) -> str:
        if self._generator is None:
            return FALLBACK_QUESTION.format(content=card.content)
        return AI_QUESTION_PLACEHOLDER

    # ---------- Enrichment ----------

    def needs_enrichment(self) -> bool:
        card = self.current_card
        return (
            card is not None
            and not card.ai_question
            and self._generator is not None
            and self.config.wants_ai_question
            and not self._enrichment_requested
            and (card.id, card.content) not in self._inflight
        )

    def request_enrichment(self) -> Coroutine[Any, Any, str] | None:
        """
        Claim this visit's enrichment request for the current card.

        Returns the coroutine that fetches and caches the question, or None
        when no request is needed. Issued at most once per visit; concurrent
        requests for the same (id, content) are collapsed.
        """
        if not self.needs_enrichment():
            return None
        card = self.current_card
        self._enrichment_requested = True
        self._inflight.add((card.id, card.content))
        return self._fetch_question(card.id, card.content)

    async def enrich_current(self) -> str | None:
        request = self.request_enrichment()
        if request is None:
            return None
        return await request

    async def _fetch_question(self, card_id: str, content: str) -> str:
        try:
            question = await self._generator.generate_question(content)
        finally:
            self._inflight.discard((card_id, content))
        return self._apply_question(card_id, question)

    def _apply_question(self, card_id: str, question: str) -> str:
        # Applied to the freshest stored copy, even after the user moved on.
        fresh = self._repo.get(card_id)
        if fresh is None:
            logger.debug(f"[enrich] {card_id} was deleted before its question arrived")
            return question
        if fresh.ai_question != question:
            fresh.ai_question = question
            self._repo.update(fresh)
        return question

    # ---------- Views ----------

    def snapshot(self) -> dict:
        """A plain-data view of the session for UIs."""
        card = self.current_card
        return {
            "state": self.state.value,
            "position": self.position,
            "total": len(self.queue),
            "dwell_seconds": self.dwell_seconds,
            "trigger": self.trigger,
            "registered": self.registered,
            "flipped": self.flipped,
            "card_id": card.id if card else None,
            "due": self.is_current_due() if card else None,
            "next_due": card.next_due if card else None,
            "review_count": card.review_count if card else None,
            "front": self.front_fields(),
            "back": self.back_fields(),
            "last_outcome": (
                {"credited": self.last_outcome.credited, "due": self.last_outcome.due}
                if self.last_outcome
                else None
            ),
        }
