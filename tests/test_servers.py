# -*- coding: utf-8 -*-
"""Tests for the plain functions behind the MCP tools."""
from datetime import datetime, timedelta, timezone

import pytest

from calendar_feed.models import CalendarRecord
from calendar_feed.server import _parse_calendar_feed, format_assignments
from reminder_scheduler import server as reminder_server
from reminder_scheduler.store import MemoryStateStore


def token_in(hours: float) -> str:
    """UTC date-time token ``hours`` from now."""
    return (datetime.now(timezone.utc) + timedelta(hours=hours)).strftime("%Y%m%dT%H%M%SZ")


@pytest.fixture
def store():
    memory = MemoryStateStore()
    reminder_server.use_store(memory)
    return memory


def quiz(hours: float) -> CalendarRecord:
    return CalendarRecord(title="Chapter quiz", uid="quiz-1", due_raw=token_in(hours), is_assignment=True)


def test_format_assignments():
    records = _parse_calendar_feed(
        "BEGIN:VEVENT\nSUMMARY:Final exam\nDTSTART:20240510\nEND:VEVENT\n"
        "BEGIN:VEVENT\nSUMMARY:Pep rally\nDTSTART:20240511\nEND:VEVENT\n"
    )

    table = format_assignments(records)
    assert "Final exam" in table
    assert "Pep rally" not in table
    assert "Total: 1 item(s)" in table
    assert "Pep rally" in format_assignments(records, include_events=True)
    assert format_assignments([]) == "📚 No assignments found."


def test_compute_assignment_reminders_uses_and_stores_records(store):
    computation = reminder_server._compute_assignment_reminders(records=[quiz(20)])
    assert [e.lead_hours for e in computation.to_fire_now] == [24]
    state = store.load().reminder_state
    assert list(state.fired) == ["reminder_quiz-1_24h"]
    assert "reminder_quiz-1_24h" not in state.reminders

    # Stored records are reused when none are passed
    again = reminder_server._compute_assignment_reminders()
    assert again.is_empty
    assert [r.uid for r in store.load().records] == ["quiz-1"]


def test_custom_intervals_are_saved(store):
    computation = reminder_server._compute_assignment_reminders(records=[quiz(20)], intervals_hours=[2])

    assert [e.lead_hours for e in computation.to_schedule_future] == [2]
    assert store.load().settings.intervals_hours == (2,)


def test_snooze_and_complete(store):
    reminder_server._compute_assignment_reminders(records=[quiz(20)])

    snoozed = reminder_server._snooze_reminder("reminder_quiz-1_16h", minutes=5)
    assert snoozed is not None
    assert reminder_server._snooze_reminder("reminder_unknown_1h") is None

    assert reminder_server._mark_reminder_complete("reminder_quiz-1_16h") is True
    assert reminder_server._mark_reminder_complete("reminder_quiz-1_16h") is False
    assert store.load().reminder_state.reminders == {}


def test_format_reminders(store):
    assert reminder_server.format_reminders({}, {}) == "✅ No reminders found."

    reminder_server._compute_assignment_reminders(records=[quiz(20)])
    state = store.load().reminder_state
    table = reminder_server.format_reminders(state.reminders, state.fired)

    assert "Chapter quiz is due in 16 hours!" in table
    assert "Total: 4 reminder(s)" in table
