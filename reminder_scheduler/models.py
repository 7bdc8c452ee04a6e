"""
Data models for assignment reminders.

This module contains the dataclasses used to represent reminder entries,
notification settings and the reminder state the scheduler reads and returns.
"""
from __future__ import annotations

from dataclasses import dataclass, field
import typing as t


DEFAULT_INTERVALS_HOURS: tuple[float, ...] = (24, 16, 4, 1)


@dataclass(frozen=True)
class ReminderSettings:
    """Notification settings supplied by the user."""
    enabled: bool = True
    intervals_hours: tuple[float, ...] = DEFAULT_INTERVALS_HOURS

    @property
    def effective_intervals(self) -> tuple[float, ...]:
        """Configured lead times, or the defaults when none are set."""
        return tuple(self.intervals_hours) or DEFAULT_INTERVALS_HOURS


@dataclass(frozen=True)
class ReminderEntry:
    """
    One (record, lead-time) reminder obligation.
    The id is derived from the record identity and the lead time, so the same
    future reminder always maps to the same id.
    """
    reminder_id: str
    record_identity: str
    title: str
    message: str
    due_display: str = ""
    lead_hours: float = 0
    target_time: int = 0    # epoch ms
    delay: int = 0          # ms from when it was computed


@dataclass(frozen=True)
class CompletionMark:
    """Recorded when the user completes an assignment."""
    completed_at: str       # ISO datetime
    title: str = ""


@dataclass
class ReminderComputation:
    """Result of one reminder pass."""
    to_fire_now: list[ReminderEntry] = field(default_factory=list)
    to_schedule_future: list[ReminderEntry] = field(default_factory=list)
    history_additions: set[str] = field(default_factory=set)

    @property
    def is_empty(self) -> bool:
        return not (self.to_fire_now or self.to_schedule_future)


@dataclass(frozen=True)
class ReminderState:
    """
    Persisted reminder bookkeeping:
    - reminders: active schedule (id -> entry)
    - fired: delivered, waiting for the user to act (id -> entry)
    - history: every id ever delivered or queued for immediate delivery
    - completed: record identity -> completion mark
    """
    reminders: dict[str, ReminderEntry] = field(default_factory=dict)
    fired: dict[str, ReminderEntry] = field(default_factory=dict)
    history: frozenset[str] = frozenset()
    completed: dict[str, CompletionMark] = field(default_factory=dict)

    @property
    def completed_ids(self) -> t.AbstractSet[str]:
        return self.completed.keys()
