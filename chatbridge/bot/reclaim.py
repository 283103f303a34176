"""Periodic reclamation of idle conversations via APScheduler."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from chatbridge.config import settings

if TYPE_CHECKING:
    from chatbridge.bot.session import ConversationStore

logger = logging.getLogger(__name__)

JOB_ID = "reclaim_conversations"


class ReclaimScheduler:
    """Runs ``ConversationStore.reclaim`` on a fixed interval.

    The job is a coroutine so it runs on the event loop alongside request
    handling instead of in a worker thread.

    Args:
        store: The conversation store to sweep.
        interval_hours: Time between sweeps (default from settings).
        max_age_days: Idle time after which an entry is dropped (default from settings).
    """

    def __init__(
        self,
        store: ConversationStore,
        interval_hours: float | None = None,
        max_age_days: float | None = None,
    ) -> None:
        self._store = store
        self._interval_hours = interval_hours or settings.reclaim_interval_hours
        self._max_age_seconds = (max_age_days or settings.context_max_age_days) * 24 * 3600
        self._scheduler = AsyncIOScheduler()
        self._running = False

    @property
    def running(self) -> bool:
        return self._running

    async def start(self) -> None:
        """Register the sweep job and start the scheduler."""
        self._scheduler.add_job(
            self.run_once,
            trigger=IntervalTrigger(hours=self._interval_hours),
            id=JOB_ID,
            replace_existing=True,
        )
        self._scheduler.start()
        self._running = True
        logger.info(
            "Reclamation scheduled every %sh (max idle %.0f days)",
            self._interval_hours,
            self._max_age_seconds / 86400,
        )

    async def stop(self) -> None:
        """Shut down the scheduler."""
        if self._running:
            self._scheduler.shutdown(wait=False)
            self._running = False
            logger.info("Reclamation scheduler stopped")

    async def run_once(self) -> int:
        """Sweep idle conversations now. Returns the number removed."""
        removed = self._store.reclaim(max_inactivity=self._max_age_seconds)
        logger.info(
            "Reclamation pass: removed %d, %d active", removed, self._store.active_count
        )
        return removed
