"""
Timed-tick driver for the review session.

A DwellTimer is an asyncio task that sleeps between ticks; ReviewRunner
wires it to a ReviewSession so every navigation cancels the pending timer
(no partial credit carries over) and kicks off the card's enrichment.
"""

import asyncio
import logging
from collections.abc import Callable

from memocurve.domain.constants import TICK_INTERVAL

from .review_session import ReviewSession, SessionState

logger = logging.getLogger(__name__)


class DwellTimer:
    """
    Calls on_tick every `interval` seconds until it returns False or the
    timer is stopped.
    """

    def __init__(self, on_tick: Callable[[], bool], interval: float = TICK_INTERVAL):
        self._on_tick = on_tick
        self.interval = interval
        self._task: asyncio.Task | None = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        if self.running:
            return
        self._task = asyncio.create_task(self._run())

    def stop(self) -> None:
        if self._task is not None:
            self._task.cancel()
            self._task = None

    def restart(self) -> None:
        self.stop()
        self.start()

    async def _run(self) -> None:
        while True:
            await asyncio.sleep(self.interval)
            try:
                keep_going = self._on_tick()
            except Exception as e:
                logger.error(f"Dwell timer stopped: tick failed: {e}", exc_info=True)
                break
            if not keep_going:
                break


class ReviewRunner:
    """
    Drives a ReviewSession on the running event loop.

    Must be used from within a coroutine (the timer and enrichment are tasks).
    """

    def __init__(
        self,
        session: ReviewSession,
        interval: float = TICK_INTERVAL,
        on_change: Callable[[ReviewSession], None] | None = None,
    ):
        self.session = session
        self.timer = DwellTimer(self._tick, interval)
        self._on_change = on_change
        self._enrichments: set[asyncio.Task] = set()

    def start(self) -> SessionState:
        self.session.start()
        self._enter_card()
        return self.session.state

    def next(self) -> bool:
        moved = self.session.next()
        if moved:
            self._enter_card()
        return moved

    def prev(self) -> bool:
        moved = self.session.prev()
        if moved:
            self._enter_card()
        return moved

    def close(self) -> None:
        self.timer.stop()
        self.session.close()

    async def drain(self) -> None:
        """Wait for outstanding enrichment requests to land."""
        if self._enrichments:
            await asyncio.gather(*self._enrichments, return_exceptions=True)

    def _enter_card(self) -> None:
        if self.session.state is SessionState.VIEWING:
            self.timer.restart()
        else:
            self.timer.stop()

        request = self.session.request_enrichment()
        if request is not None:
            task = asyncio.create_task(request)
            self._enrichments.add(task)
            task.add_done_callback(self._enrichment_done)

        self._notify()

    def _enrichment_done(self, task: asyncio.Task) -> None:
        self._enrichments.discard(task)
        if task.cancelled():
            return
        if task.exception() is not None:
            logger.error(f"Question enrichment failed: {task.exception()}")
            return
        self._notify()

    def _tick(self) -> bool:
        state = self.session.tick()
        self._notify()
        return state is SessionState.VIEWING

    def _notify(self) -> None:
        if self._on_change:
            self._on_change(self.session)
