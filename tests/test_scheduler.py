# -*- coding: utf-8 -*-
"""Tests for the pure reminder scheduling functions."""
from dataclasses import replace

from calendar_feed.models import CalendarRecord
from calendar_feed.timestamps import ical_to_timestamp
from reminder_scheduler.models import ReminderSettings, ReminderState
from reminder_scheduler.scheduler import (HOUR_MS, MIN_DELAY_MS, MINUTE_MS, compute_reminders, due_reminders,
                                          fire_due, fire_reminder, mark_complete, plan_reminders, prune_fired,
                                          reconcile_reminders, reminder_id_for, reminder_message,
                                          snooze_reminder)


DUE = "20240510T120000Z"
DUE_TS = ical_to_timestamp(DUE)
NOW = DUE_TS - 20 * HOUR_MS

QUIZ = CalendarRecord(title="Chapter quiz", uid="quiz-1", due_raw=DUE, is_assignment=True)


def test_due_in_twenty_hours_splits_fire_now_and_future():
    """24h is already late and fires now; 16h, 4h and 1h are scheduled."""
    result = compute_reminders([QUIZ], set(), ReminderSettings(), {}, set(), NOW)

    assert [e.lead_hours for e in result.to_fire_now] == [24]
    assert [e.lead_hours for e in result.to_schedule_future] == [16, 4, 1]
    assert all(e.delay > 0 for e in result.to_schedule_future)
    assert result.to_schedule_future[0].delay == 4 * HOUR_MS
    assert result.history_additions == {"reminder_quiz-1_24h"}


def test_reminder_ids_and_messages():
    assert reminder_id_for("quiz-1", 24) == "reminder_quiz-1_24h"
    assert reminder_id_for("quiz-1", 1.5) == "reminder_quiz-1_1.5h"
    assert reminder_message("Chapter quiz", 4) == "Chapter quiz is due in 4 hours!"
    assert reminder_message("Chapter quiz", 1) == "Chapter quiz is due in 1 hour!"


def test_recompute_after_apply_is_empty():
    """Nothing is produced twice once a computation has been applied."""
    settings = ReminderSettings()
    first, state = plan_reminders([QUIZ], settings, ReminderState(), NOW)
    assert not first.is_empty

    second, state_after = plan_reminders([QUIZ], settings, state, NOW)
    assert second.is_empty
    assert state_after.reminders == state.reminders


def test_duplicate_records_in_one_pass_are_deduplicated():
    result = compute_reminders([QUIZ, QUIZ], set(), ReminderSettings(), {}, set(), NOW)
    assert len(result.to_fire_now) == 1
    assert len(result.to_schedule_future) == 3


def test_future_delay_has_a_floor():
    now = DUE_TS - HOUR_MS - 1000
    result = compute_reminders([QUIZ], set(), ReminderSettings(intervals_hours=(1,)), {}, set(), now)
    assert result.to_schedule_future[0].delay == MIN_DELAY_MS


def test_skipped_records():
    """Completed, past-due, undated and non-assignment records get nothing."""
    records = [
        QUIZ,
        CalendarRecord(title="Old quiz", uid="old", due_raw="20240101T000000Z", is_assignment=True),
        CalendarRecord(title="Undated quiz", uid="undated", is_assignment=True),
        CalendarRecord(title="Assembly", uid="event", due_raw=DUE),
    ]
    result = compute_reminders(records, {"quiz-1"}, ReminderSettings(), {}, set(), NOW)
    assert result.is_empty


def test_disabled_settings_produce_nothing():
    result = compute_reminders([QUIZ], set(), ReminderSettings(enabled=False), {}, set(), NOW)
    assert result.is_empty


def test_empty_intervals_use_defaults():
    result = compute_reminders([QUIZ], set(), ReminderSettings(intervals_hours=()), {}, set(), NOW)
    assert len(result.to_fire_now) + len(result.to_schedule_future) == 4


def test_fire_then_snooze_then_fire_again():
    _, state = plan_reminders([QUIZ], ReminderSettings(), ReminderState(), NOW)

    [due] = due_reminders(state, NOW)
    state, fired = fire_reminder(state, due.reminder_id)
    assert fired is not None
    assert due.reminder_id in state.fired
    assert due.reminder_id not in state.reminders
    assert due_reminders(state, NOW) == []

    state = snooze_reminder(state, due.reminder_id, NOW, minutes=30)
    assert due.reminder_id not in state.fired
    assert state.reminders[due.reminder_id].target_time == NOW + 30 * MINUTE_MS

    # Snoozing doesn't let the reminder pass schedule it again
    again, _ = plan_reminders([QUIZ], ReminderSettings(), state, NOW)
    assert again.is_empty

    later = NOW + 30 * MINUTE_MS
    assert [e.reminder_id for e in due_reminders(state, later)] == [due.reminder_id]


def test_snooze_unknown_reminder_changes_nothing():
    state = ReminderState()
    assert snooze_reminder(state, "reminder_nope_1h", NOW) is state


def test_mark_complete_clears_the_record():
    _, state = plan_reminders([QUIZ], ReminderSettings(), ReminderState(), NOW)
    state, _ = fire_reminder(state, "reminder_quiz-1_24h")

    state = mark_complete(state, "reminder_quiz-1_24h", NOW)

    assert "quiz-1" in state.completed_ids
    assert state.completed["quiz-1"].title == "Chapter quiz"
    assert state.fired == {}
    assert state.reminders == {}
    assert "reminder_quiz-1_24h" in state.history

    result, _ = plan_reminders([QUIZ], ReminderSettings(), state, NOW + HOUR_MS)
    assert result.is_empty


MOVED_DUE = "20240512T120000Z"
MOVED_QUIZ = replace(QUIZ, due_raw=MOVED_DUE)


def delivered_state():
    """State after the first pass at NOW, with the 24h reminder delivered."""
    _, state = plan_reminders([QUIZ], ReminderSettings(), ReminderState(), NOW)
    state, delivered = fire_due(state, NOW)
    assert [e.reminder_id for e in delivered] == ["reminder_quiz-1_24h"]
    return state


def test_moved_due_date_reschedules_pending_reminders():
    """Same UID, new due moment: pending reminders move with it."""
    state = delivered_state()

    computation, state = plan_reminders([MOVED_QUIZ], ReminderSettings(), state, NOW + 4 * HOUR_MS)

    new_due = ical_to_timestamp(MOVED_DUE)
    assert [e.lead_hours for e in computation.to_schedule_future] == [16, 4, 1]
    assert len(state.reminders) == 3
    assert all(e.target_time == new_due - int(e.lead_hours * HOUR_MS) for e in state.reminders.values())
    assert due_reminders(state, NOW + 4 * HOUR_MS) == []


def test_stale_persisted_entries_are_scheduled_again():
    """An entry persisted for an old due moment doesn't count as scheduled."""
    _, state = plan_reminders([QUIZ], ReminderSettings(), ReminderState(), NOW)

    result = compute_reminders([MOVED_QUIZ], set(), ReminderSettings(), state.reminders, state.history, NOW)

    assert [e.lead_hours for e in result.to_schedule_future] == [16, 4, 1]


def test_reminders_of_records_that_left_the_feed_are_dropped():
    state = delivered_state()

    state = reconcile_reminders(state, [])

    assert state.reminders == {}
    assert "reminder_quiz-1_24h" in state.fired
    assert "reminder_quiz-1_24h" in state.history


def test_snoozed_reminder_survives_a_refresh():
    state = snooze_reminder(delivered_state(), "reminder_quiz-1_24h", NOW, minutes=30)

    state = reconcile_reminders(state, [MOVED_QUIZ])

    assert state.reminders["reminder_quiz-1_24h"].target_time == NOW + 30 * MINUTE_MS


def test_prune_fired():
    """Delivered reminders are forgotten once their record is past due or gone."""
    state = delivered_state()

    assert prune_fired(state, [QUIZ], NOW) is state
    assert prune_fired(state, [QUIZ], DUE_TS + 1).fired == {}
    assert prune_fired(state, [], NOW).fired == {}
