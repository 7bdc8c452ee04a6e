"""
Shared Pydantic models for REST API serialization.

This module contains Pydantic equivalents of the dataclass models used by the
calendar feed parser and the reminder scheduler, ensuring consistent JSON
serialization across services.
"""
from __future__ import annotations

import typing as t
from dataclasses import asdict

from pydantic import BaseModel, Field

from calendar_feed.models import CalendarRecord as CalendarRecordDataclass
from reminder_scheduler.models import (DEFAULT_INTERVALS_HOURS, ReminderEntry as ReminderEntryDataclass,
                                       ReminderSettings as ReminderSettingsDataclass)


RecordKind = t.Literal["VEVENT", "VTODO"]


class CalendarRecord(BaseModel):
    """
    One parsed calendar item.
    Raw tokens are "YYYYMMDD" or "YYYYMMDDTHHMMSS[Z]"; *_time fields are display strings.
    """
    title: str = "Untitled Event"
    kind: RecordKind = "VEVENT"
    description: t.Optional[str] = None
    location: t.Optional[str] = None
    start_raw: t.Optional[str] = None
    start_time: t.Optional[str] = None
    due_raw: t.Optional[str] = None
    due_time: t.Optional[str] = None
    end_raw: t.Optional[str] = None
    end_time: t.Optional[str] = None
    completed_raw: t.Optional[str] = None
    completed_time: t.Optional[str] = None
    uid: t.Optional[str] = None
    status: t.Optional[str] = None
    priority: t.Optional[int] = None
    percent_complete: t.Optional[int] = None
    recurrence_rule: t.Optional[str] = None
    organizer: t.Optional[str] = None
    attendees: list[str] = Field(default_factory=list)
    is_assignment: bool = False
    is_major: bool = False
    extracted_time_hint: t.Optional[str] = None
    used_fallback_due_date: bool = False
    identity: str = ""

    @classmethod
    def from_record(cls, record: CalendarRecordDataclass) -> "CalendarRecord":
        return cls(**asdict(record), identity=record.identity)

    def to_record(self) -> CalendarRecordDataclass:
        data = self.model_dump(exclude={"identity"})
        data["attendees"] = tuple(data["attendees"])
        return CalendarRecordDataclass(**data)


class ReminderEntry(BaseModel):
    """One (record, lead-time) reminder."""
    reminder_id: str
    record_identity: str
    title: str
    message: str
    due_display: str = ""
    lead_hours: float = 0
    target_time: int = 0
    delay: int = 0

    @classmethod
    def from_entry(cls, entry: ReminderEntryDataclass) -> "ReminderEntry":
        return cls(**asdict(entry))

    def to_entry(self) -> ReminderEntryDataclass:
        return ReminderEntryDataclass(**self.model_dump())


class ReminderSettings(BaseModel):
    """Notification settings."""
    enabled: bool = True
    intervals_hours: list[float] = Field(default_factory=lambda: list(DEFAULT_INTERVALS_HOURS))

    def to_settings(self) -> ReminderSettingsDataclass:
        return ReminderSettingsDataclass(enabled=self.enabled, intervals_hours=tuple(self.intervals_hours))


# Calendar Service Request/Response Models
class ParseFeedRequest(BaseModel):
    """Request model for parsing raw feed text."""
    feed_text: str = ""


class FetchFeedRequest(BaseModel):
    """Request model for fetching and parsing a feed URL (http, https, webcal)."""
    url: str


class ParseFeedResponse(BaseModel):
    """Response model for parsed records."""
    records: list[CalendarRecord] = Field(default_factory=list)
    assignment_count: int = 0


class ComputeRemindersRequest(BaseModel):
    """Request model for one reminder pass over caller-supplied state."""
    records: list[CalendarRecord] = Field(default_factory=list)
    completed_ids: list[str] = Field(default_factory=list)
    settings: ReminderSettings = Field(default_factory=ReminderSettings)
    persisted_reminders: dict[str, ReminderEntry] = Field(default_factory=dict)
    persisted_history: list[str] = Field(default_factory=list)
    now: t.Optional[int] = None     # epoch ms; server time when omitted


class ComputeRemindersResponse(BaseModel):
    """Response model for a reminder pass."""
    to_fire_now: list[ReminderEntry] = Field(default_factory=list)
    to_schedule_future: list[ReminderEntry] = Field(default_factory=list)
    history_additions: list[str] = Field(default_factory=list)
