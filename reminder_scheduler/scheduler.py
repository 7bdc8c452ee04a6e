# -*- coding: utf-8 -*-
"""
Reminder scheduling.

Every function here is pure: it reads records, settings and a ReminderState
and returns new values. Persisting the result (atomically) is up to the
caller, see :mod:`reminder_scheduler.store` and :mod:`reminder_scheduler.service`.
"""
from __future__ import annotations

import logging
import typing as t
from dataclasses import replace
from datetime import datetime, timezone

from calendar_feed.models import CalendarRecord
from reminder_scheduler.models import (CompletionMark, ReminderComputation, ReminderEntry, ReminderSettings,
                                       ReminderState)


logger = logging.getLogger(__name__)

HOUR_MS = 60 * 60 * 1000
MINUTE_MS = 60 * 1000
# Smallest delay handed out for a future reminder (0.1 minute)
MIN_DELAY_MS = 6_000
DEFAULT_SNOOZE_MINUTES = 60


def format_hours(hours: float) -> str:
    """``24`` -> ``"24"``, ``1.5`` -> ``"1.5"``."""
    return str(int(hours)) if float(hours).is_integer() else str(hours)


def reminder_id_for(record_identity: str, hours: float) -> str:
    """Deterministic id of the reminder for one record and lead time."""
    return f"reminder_{record_identity}_{format_hours(hours)}h"


def reminder_message(title: str, hours: float) -> str:
    unit = "hour" if float(hours) == 1 else "hours"
    return f"{title} is due in {format_hours(hours)} {unit}!"


def _entry(record: CalendarRecord, hours: float, target_time: int, delay: int) -> ReminderEntry:
    identity = record.identity
    return ReminderEntry(
        reminder_id=reminder_id_for(identity, hours),
        record_identity=identity,
        title=record.title,
        message=reminder_message(record.title, hours),
        due_display=record.due_time or record.start_time or "",
        lead_hours=hours,
        target_time=target_time,
        delay=delay,
    )


def _still_scheduled(entry: t.Optional[ReminderEntry], target_time: int) -> bool:
    return entry is not None and entry.target_time == target_time


def compute_reminders(
        records: t.Iterable[CalendarRecord],
        completed_ids: t.Container[str],
        settings: ReminderSettings,
        persisted_reminders: t.Mapping[str, ReminderEntry],
        persisted_history: t.Container[str],
        now: int,
) -> ReminderComputation:
    """Work out which reminders must fire now and which to schedule.

    For each pending assignment and each lead time ``h``, the reminder targets
    ``due - h hours``:

    - already delivered (in history): skipped, never re-fired;
    - target already reached but not yet due: fire now, and the id goes
      straight into ``history_additions`` so a quick re-run can't duplicate it;
    - target in the future and not yet scheduled (or scheduled for a target
      that no longer matches the due moment): schedule it;
    - otherwise it is already scheduled and skipped.

    :param records: Parsed calendar records.
    :param completed_ids: Identities of assignments the user completed.
    :param settings: Notification settings.
    :param persisted_reminders: Currently scheduled reminders by id.
    :param persisted_history: Ids already delivered.
    :param now: Current time in epoch milliseconds.
    :return: The reminders to fire, to schedule, and the history additions.
    """
    result = ReminderComputation()
    if not settings.enabled:
        return result

    intervals = settings.effective_intervals
    seen: set[str] = set()

    for record in records:
        if not record.is_assignment or record.identity in completed_ids:
            continue

        due_ts = record.due_timestamp
        if not due_ts or due_ts <= now:
            continue

        for hours in intervals:
            target_time = due_ts - int(hours * HOUR_MS)
            reminder_id = reminder_id_for(record.identity, hours)
            if reminder_id in persisted_history or reminder_id in seen:
                continue
            seen.add(reminder_id)

            if target_time <= now:
                result.to_fire_now.append(_entry(record, hours, target_time, 0))
                result.history_additions.add(reminder_id)
            elif not _still_scheduled(persisted_reminders.get(reminder_id), target_time):
                delay = max(target_time - now, MIN_DELAY_MS)
                result.to_schedule_future.append(_entry(record, hours, target_time, delay))

    logger.debug(
        "Reminder pass: %d to fire now, %d to schedule",
        len(result.to_fire_now), len(result.to_schedule_future),
    )
    return result


def apply_computation(state: ReminderState, computation: ReminderComputation) -> ReminderState:
    """Record a computation's reminders as scheduled and extend the history."""
    reminders = dict(state.reminders)
    for entry in (*computation.to_fire_now, *computation.to_schedule_future):
        reminders[entry.reminder_id] = entry
    return replace(
        state,
        reminders=reminders,
        history=state.history | computation.history_additions,
    )


def plan_reminders(
        records: t.Iterable[CalendarRecord],
        settings: ReminderSettings,
        state: ReminderState,
        now: int,
) -> tuple[ReminderComputation, ReminderState]:
    """Compute reminders against ``state`` and return the computation with the updated state.

    Scheduled reminders that no longer match ``records`` are dropped first, see
    :func:`reconcile_reminders`.
    """
    records = list(records)
    state = reconcile_reminders(state, records)
    computation = compute_reminders(
        records,
        completed_ids=state.completed_ids,
        settings=settings,
        persisted_reminders=state.reminders,
        persisted_history=state.history,
        now=now,
    )
    return computation, apply_computation(state, computation)


def reconcile_reminders(state: ReminderState, records: t.Iterable[CalendarRecord]) -> ReminderState:
    """Drop scheduled reminders that the current records no longer back.

    A refresh replaces the record list wholesale, so an entry goes when its
    record left the feed (or stopped being an assignment). An entry that was
    never delivered also goes when its record's due moment moved; the next
    pass schedules it again at the right time. Snoozed entries (already in
    history) stay as long as their record exists. Fired entries and history
    are untouched.
    """
    due_by_identity = {r.identity: r.due_timestamp for r in records if r.is_assignment}
    kept: dict[str, ReminderEntry] = {}
    for reminder_id, entry in state.reminders.items():
        due_ts = due_by_identity.get(entry.record_identity)
        if due_ts is None:
            continue
        if reminder_id not in state.history and entry.target_time != due_ts - int(entry.lead_hours * HOUR_MS):
            continue
        kept[reminder_id] = entry

    if len(kept) == len(state.reminders):
        return state
    logger.debug("Dropped %d stale reminder(s)", len(state.reminders) - len(kept))
    return replace(state, reminders=kept)


def prune_fired(state: ReminderState, records: t.Iterable[CalendarRecord], now: int) -> ReminderState:
    """Forget delivered reminders whose record is gone or already past due."""
    due_by_identity = {r.identity: r.due_timestamp for r in records}
    fired = {
        reminder_id: entry for reminder_id, entry in state.fired.items()
        if due_by_identity.get(entry.record_identity, 0) > now
    }
    if len(fired) == len(state.fired):
        return state
    return replace(state, fired=fired)


def due_reminders(state: ReminderState, now: int) -> list[ReminderEntry]:
    """Scheduled reminders whose target time has arrived, earliest first."""
    return sorted(
        (entry for entry in state.reminders.values() if entry.target_time <= now),
        key=lambda entry: entry.target_time,
    )


def fire_reminder(state: ReminderState, reminder_id: str) -> tuple[ReminderState, t.Optional[ReminderEntry]]:
    """Deliver a scheduled reminder: move it to ``fired`` and record it in history.

    A snoozed reminder fires again even though its id is already in history.

    :return: The new state and the fired entry, or None if nothing is scheduled under that id.
    """
    entry = state.reminders.get(reminder_id)
    if entry is None:
        return state, None

    reminders = {k: v for k, v in state.reminders.items() if k != reminder_id}
    fired = {**state.fired, reminder_id: entry}
    return replace(state, reminders=reminders, fired=fired, history=state.history | {reminder_id}), entry


def fire_due(state: ReminderState, now: int) -> tuple[ReminderState, list[ReminderEntry]]:
    """Fire every scheduled reminder whose time has arrived, earliest first."""
    delivered: list[ReminderEntry] = []
    for entry in due_reminders(state, now):
        state, fired = fire_reminder(state, entry.reminder_id)
        if fired is not None:
            delivered.append(fired)
    return state, delivered


def snooze_reminder(
        state: ReminderState,
        reminder_id: str,
        now: int,
        minutes: float = DEFAULT_SNOOZE_MINUTES,
) -> ReminderState:
    """Re-arm a reminder ``minutes`` from now under the same id."""
    entry = state.fired.get(reminder_id) or state.reminders.get(reminder_id)
    if entry is None:
        logger.warning("Cannot snooze unknown reminder %s", reminder_id)
        return state

    delay = int(minutes * MINUTE_MS)
    snoozed = replace(entry, target_time=now + delay, delay=delay)
    fired = {k: v for k, v in state.fired.items() if k != reminder_id}
    return replace(state, reminders={**state.reminders, reminder_id: snoozed}, fired=fired)


def mark_complete(state: ReminderState, reminder_id: str, now: int) -> ReminderState:
    """Complete the assignment a reminder belongs to.

    The record's pending reminders leave the active schedule; history is kept.
    """
    entry = state.fired.get(reminder_id) or state.reminders.get(reminder_id)
    if entry is None:
        logger.warning("Cannot complete unknown reminder %s", reminder_id)
        return state

    state = replace(state, fired={k: v for k, v in state.fired.items() if k != reminder_id})
    return complete_record(state, entry.record_identity, now, title=entry.title)


def complete_record(state: ReminderState, record_identity: str, now: int, title: str = "") -> ReminderState:
    """Mark a record completed and drop its reminders from the active schedule."""
    completed_at = datetime.fromtimestamp(now / 1000, tz=timezone.utc).isoformat()
    return replace(
        state,
        reminders={k: v for k, v in state.reminders.items() if v.record_identity != record_identity},
        completed={**state.completed, record_identity: CompletionMark(completed_at=completed_at, title=title)},
    )
