# -*- coding: utf-8 -*-
"""
Host loop for reminders.

Runs the reminder pass periodically and after feed refreshes, delivers due
reminders through a notifier callback, and applies the user's snooze and
mark-complete actions. Every read-modify-write of the stored state happens
under one asyncio lock plus the store's own transaction.
"""
from __future__ import annotations

import asyncio
import logging
import os
import typing as t

from calendar_feed.fetch import FeedFetchError, FeedRefresher
from calendar_feed.timestamps import now_ms
from reminder_scheduler.models import ReminderComputation, ReminderEntry, ReminderSettings
from reminder_scheduler.scheduler import (DEFAULT_SNOOZE_MINUTES, fire_due, mark_complete, plan_reminders,
                                          prune_fired, reconcile_reminders, snooze_reminder)
from reminder_scheduler.store import StateStore


logger = logging.getLogger(__name__)

CHECK_INTERVAL_MINUTES = float(os.getenv("REMINDER_CHECK_INTERVAL_MINUTES", "30"))

Notifier = t.Callable[[ReminderEntry], t.Any]


class ReminderService:
    """Owns the stored reminder state for one process."""

    def __init__(
            self,
            store: StateStore,
            notifier: Notifier,
            refresher: t.Optional[FeedRefresher] = None,
            clock: t.Callable[[], int] = now_ms,
    ) -> None:
        self.store = store
        self.notifier = notifier
        self.refresher = refresher or FeedRefresher()
        self.clock = clock
        self._lock = asyncio.Lock()

    async def _notify(self, entry: ReminderEntry) -> None:
        try:
            result = self.notifier(entry)
            if asyncio.iscoroutine(result):
                await result
        except Exception:
            # A broken notifier must not stop the remaining deliveries
            logger.exception("Notifier failed for reminder %s", entry.reminder_id)

    async def check_upcoming(self) -> ReminderComputation:
        """Run one reminder pass and deliver everything that is due.

        :return: The computation of this pass.
        """
        async with self._lock:
            now = self.clock()
            with self.store.transaction() as stored:
                computation = ReminderComputation()
                state = prune_fired(stored.reminder_state, stored.records, now)
                state = reconcile_reminders(state, stored.records)
                if stored.settings.enabled:
                    computation, state = plan_reminders(stored.records, stored.settings, state, now)
                state, delivered = fire_due(state, now)
                stored.reminder_state = state

        for entry in delivered:
            await self._notify(entry)
        if delivered:
            logger.info("Delivered %d reminder(s)", len(delivered))
        return computation

    async def refresh_feed(self, url: str) -> ReminderComputation:
        """Refresh records from ``url`` and run a reminder pass.

        :raises FeedFetchError: When the feed can't be fetched; stored records stay as they were.
        """
        records = await self.refresher.refresh(url)
        async with self._lock:
            with self.store.transaction() as stored:
                stored.records = list(records)
        return await self.check_upcoming()

    async def update_settings(self, settings: ReminderSettings) -> None:
        async with self._lock:
            with self.store.transaction() as stored:
                stored.settings = settings

    async def snooze(self, reminder_id: str, minutes: float = DEFAULT_SNOOZE_MINUTES) -> None:
        """User asked to be reminded again in ``minutes``."""
        async with self._lock:
            with self.store.transaction() as stored:
                stored.reminder_state = snooze_reminder(stored.reminder_state, reminder_id, self.clock(), minutes)

    async def complete(self, reminder_id: str) -> None:
        """User marked the assignment behind a reminder as done."""
        async with self._lock:
            with self.store.transaction() as stored:
                stored.reminder_state = mark_complete(stored.reminder_state, reminder_id, self.clock())

    async def run_periodic(
            self,
            interval_minutes: float = CHECK_INTERVAL_MINUTES,
            url: t.Optional[str] = None,
            stop_event: t.Optional[asyncio.Event] = None,
    ) -> None:
        """Check (and optionally refresh) every ``interval_minutes`` until ``stop_event`` is set."""
        stop_event = stop_event or asyncio.Event()
        while not stop_event.is_set():
            if url:
                try:
                    await self.refresh_feed(url)
                except FeedFetchError as e:
                    logger.error("Could not refresh calendar: %s", e)
                    await self.check_upcoming()
            else:
                await self.check_upcoming()
            try:
                await asyncio.wait_for(stop_event.wait(), timeout=self.seconds_until_next_check(interval_minutes))
            except asyncio.TimeoutError:
                pass

    def seconds_until_next_check(self, interval_minutes: float = CHECK_INTERVAL_MINUTES) -> float:
        """Seconds until the next periodic check or the earliest scheduled reminder, whichever is first."""
        wait = interval_minutes * 60
        scheduled = self.store.load().reminder_state.reminders.values()
        if scheduled:
            earliest = min(entry.target_time for entry in scheduled)
            wait = min(wait, max(earliest - self.clock(), 0) / 1000)
        return wait
