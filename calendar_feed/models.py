"""
Data models for calendar feed parsing.

This module contains the dataclasses used to represent one parsed calendar
record and the intermediate values produced while building it.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Literal, Optional

from .timestamps import ical_to_timestamp


RecordKind = Literal["VEVENT", "VTODO"]

UNTITLED_EVENT = "Untitled Event"


@dataclass(frozen=True)
class Property:
    """One unfolded content line: ``NAME;PARAM=VALUE:value``."""
    name: str
    value: str
    params: dict[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class RecordBlock:
    """
    The text span of one calendar item between its BEGIN/END markers.
    Nested components (VALARM etc.) are already excluded from ``lines``.
    """
    kind: RecordKind
    lines: tuple[str, ...] = ()


@dataclass
class ExtractedFields:
    """Raw property values pulled out of a record block, not yet decoded."""
    summary: Optional[str] = None
    description: Optional[str] = None
    location: Optional[str] = None
    start_raw: Optional[str] = None
    due_raw: Optional[str] = None
    end_raw: Optional[str] = None
    completed_raw: Optional[str] = None
    uid: Optional[str] = None
    status: Optional[str] = None
    priority: Optional[int] = None
    percent_complete: Optional[int] = None
    recurrence_rule: Optional[str] = None
    organizer: Optional[str] = None
    attendees: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class Classification:
    """Classifier output for a single title."""
    is_assignment: bool = False
    extracted_time_hint: Optional[str] = None


@dataclass(frozen=True)
class DueResolution:
    """Outcome of due-date resolution for one record."""
    due_raw: Optional[str] = None
    due_time: Optional[str] = None
    used_fallback: bool = False


@dataclass(frozen=True)
class CalendarRecord:
    """
    One calendar item as returned by the feed parser.

    Records are immutable once returned; presentation and the reminder
    scheduler only read them.
    """
    title: str = UNTITLED_EVENT
    kind: RecordKind = "VEVENT"
    description: Optional[str] = None
    location: Optional[str] = None
    start_raw: Optional[str] = None     # "YYYYMMDD" or "YYYYMMDDTHHMMSS[Z]"
    start_time: Optional[str] = None    # display string
    due_raw: Optional[str] = None
    due_time: Optional[str] = None
    end_raw: Optional[str] = None
    end_time: Optional[str] = None
    completed_raw: Optional[str] = None
    completed_time: Optional[str] = None
    uid: Optional[str] = None
    status: Optional[str] = None
    priority: Optional[int] = None
    percent_complete: Optional[int] = None
    recurrence_rule: Optional[str] = None
    organizer: Optional[str] = None
    attendees: tuple[str, ...] = ()
    is_assignment: bool = False
    is_major: bool = False
    extracted_time_hint: Optional[str] = None
    used_fallback_due_date: bool = False

    @property
    def effective_raw(self) -> Optional[str]:
        """The token the due moment is derived from: due, else start."""
        return self.due_raw or self.start_raw

    @property
    def identity(self) -> str:
        """Stable key for completion and reminder bookkeeping."""
        if self.uid:
            return self.uid
        return f"{self.title}_{self.effective_raw or ''}"

    @property
    def due_timestamp(self) -> int:
        """Due moment in epoch milliseconds, 0 when unknown."""
        return ical_to_timestamp(self.effective_raw)
