# -*- coding: utf-8 -*-
from __future__ import annotations

import typing as t
from datetime import datetime

from fastmcp import FastMCP

from calendar_feed.models import CalendarRecord
from calendar_feed.parser import upcoming_major_assignments
from calendar_feed.timestamps import now_ms
from reminder_scheduler.models import ReminderComputation, ReminderEntry, ReminderSettings
from reminder_scheduler.scheduler import (DEFAULT_SNOOZE_MINUTES, fire_reminder, mark_complete, plan_reminders,
                                          snooze_reminder)
from reminder_scheduler.store import JsonFileStateStore, StateStore

mcp = FastMCP("ReminderSchedulerServer")

_store: StateStore = JsonFileStateStore()


def use_store(store: StateStore) -> None:
    """Swap the backing store (tests, embedding)."""
    global _store
    _store = store


def _compute_assignment_reminders(
        records: t.Optional[list[CalendarRecord]] = None,
        intervals_hours: t.Optional[list[float]] = None,
) -> ReminderComputation:
    with _store.transaction() as stored:
        if records is not None:
            stored.records = list(records)
        if intervals_hours:
            stored.settings = ReminderSettings(
                enabled=stored.settings.enabled,
                intervals_hours=tuple(intervals_hours),
            )
        computation, state = plan_reminders(stored.records, stored.settings, stored.reminder_state, now_ms())
        # The caller receives to_fire_now, so those are delivered here
        for entry in computation.to_fire_now:
            state, _ = fire_reminder(state, entry.reminder_id)
        stored.reminder_state = state
    return computation


def _snooze_reminder(reminder_id: str, minutes: float = DEFAULT_SNOOZE_MINUTES) -> t.Optional[ReminderEntry]:
    with _store.transaction() as stored:
        stored.reminder_state = snooze_reminder(stored.reminder_state, reminder_id, now_ms(), minutes)
        return stored.reminder_state.reminders.get(reminder_id)


def _mark_reminder_complete(reminder_id: str) -> bool:
    with _store.transaction() as stored:
        before = stored.reminder_state
        stored.reminder_state = mark_complete(before, reminder_id, now_ms())
        return stored.reminder_state is not before


def _format_target(target_time: int) -> str:
    return datetime.fromtimestamp(target_time / 1000).strftime("%a %m/%d %I:%M %p")


def format_reminders(state_reminders: dict[str, ReminderEntry], fired: dict[str, ReminderEntry]) -> str:
    """Formats scheduled and delivered reminders as a clean table.

    :return: Formatted table string.
    """
    if not state_reminders and not fired:
        return "✅ No reminders found."

    lines = []
    lines.append("✅ REMINDERS")
    lines.append("=" * 100)
    lines.append(f"{'#':<4} {'Message':<50} {'Fires':<20} {'State':<10}")
    lines.append("-" * 100)

    rows = [(e, "scheduled") for e in state_reminders.values()] + [(e, "delivered") for e in fired.values()]
    rows.sort(key=lambda row: row[0].target_time)
    for idx, (entry, status) in enumerate(rows, 1):
        message = entry.message[:49] if len(entry.message) > 49 else entry.message
        lines.append(f"{idx:<4} {message:<50} {_format_target(entry.target_time):<20} {status:<10}")

    lines.append("=" * 100)
    lines.append(f"Total: {len(rows)} reminder(s)")
    return "\n".join(lines)


@mcp.tool()
def compute_assignment_reminders(
        records: t.Optional[list[CalendarRecord]] = None,
        intervals_hours: t.Optional[list[float]] = None,
) -> ReminderComputation:
    """Work out which assignment reminders fire now and which are scheduled.

    Reminders already delivered or already scheduled are never produced twice.
    The ``to_fire_now`` entries count as delivered by this call.

    :param records: Parsed records; when omitted the stored records are used.
    :param intervals_hours: Lead times in hours (default 24, 16, 4, 1).
    :return: Reminders to fire now, to schedule, and the ids added to history.
    """
    return _compute_assignment_reminders(records, intervals_hours)


@mcp.tool(name="snooze_reminder")
def snooze_reminder_tool(reminder_id: str, minutes: float = DEFAULT_SNOOZE_MINUTES) -> t.Optional[ReminderEntry]:
    """Snooze a reminder; it fires again after ``minutes`` under the same id.

    :param reminder_id: Id of a delivered or scheduled reminder.
    :param minutes: Snooze length (default 60).
    :return: The re-armed reminder, or None if the id is unknown.
    """
    return _snooze_reminder(reminder_id, minutes)


@mcp.tool()
def mark_reminder_complete(reminder_id: str) -> bool:
    """Mark the assignment behind a reminder as completed.

    :param reminder_id: Id of a delivered or scheduled reminder.
    :return: True if the reminder was known.
    """
    return _mark_reminder_complete(reminder_id)


@mcp.tool()
def show_reminders() -> str:
    """Displays all scheduled and delivered reminders, soonest first.

    :return: Formatted table string, or a message if no reminders exist.
    """
    state = _store.load().reminder_state
    return format_reminders(state.reminders, state.fired)


@mcp.tool()
def list_upcoming_major_assignments(window_days: float = 14) -> list[CalendarRecord]:
    """Lists major assignments (exams, projects, papers...) due in the next ``window_days``.

    :param window_days: Look-ahead window in days.
    :return: Matching stored records, soonest first.
    """
    stored = _store.load()
    return upcoming_major_assignments(
        stored.records, now_ms(), window_days, completed_ids=stored.reminder_state.completed_ids
    )


if __name__ == "__main__":
    mcp.run()
