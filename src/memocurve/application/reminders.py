"""
Periodic review reminders.

Best-effort: the notifier may be unavailable or blocked, and nothing here
is allowed to take the application down.
"""

import asyncio
import logging
from collections.abc import Callable, Iterable

from memocurve.application.utils.clock import now_ms
from memocurve.domain.constants import PERMISSION_DENIED_MESSAGE, REMINDER_POLL_INTERVAL
from memocurve.domain.models import Card
from memocurve.domain.ports import CardRepository, NotificationPermission, Notifier

logger = logging.getLogger(__name__)


def count_due(cards: Iterable[Card], now: int) -> int:
    return sum(1 for c in cards if c.next_due <= now)


class ReminderService:
    def __init__(
        self,
        repository: CardRepository,
        notifier: Notifier,
        clock: Callable[[], int] = now_ms,
    ):
        self._repo = repository
        self._notifier = notifier
        self._clock = clock
        self._denial_explained = False

    def poll_once(self) -> int:
        """
        Check for due cards and surface at most one reminder.

        Returns the number of due cards.
        """
        due = count_due(self._repo.list_cards(), self._clock())
        if due <= 0:
            return 0

        try:
            permission = self._notifier.permission()
            if permission is NotificationPermission.DEFAULT:
                permission = self._notifier.request_permission()

            if permission is NotificationPermission.DENIED:
                if not self._denial_explained:
                    self._notifier.explain(PERMISSION_DENIED_MESSAGE)
                    self._denial_explained = True
                return due

            if permission is NotificationPermission.GRANTED:
                noun = "card" if due == 1 else "cards"
                self._notifier.notify("Time to review", f"You have {due} {noun} due for review.")
        except Exception as e:
            logger.warning(f"Reminder could not be delivered: {e}")
        return due

    async def run(self, interval: float = REMINDER_POLL_INTERVAL, iterations: int | None = None):
        """Poll every `interval` seconds, forever or for a fixed number of iterations."""
        done = 0
        while True:
            self.poll_once()
            done += 1
            if iterations is not None and done >= iterations:
                break
            await asyncio.sleep(interval)
