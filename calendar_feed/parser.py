# -*- coding: utf-8 -*-
"""Top-level calendar feed parser: raw feed text -> list of CalendarRecord."""
from __future__ import annotations

import logging
import re
import typing as t

from .classifier import ClassifierRules, classify, is_major_assignment
from .due_resolver import resolve_due
from .field_extractor import extract_fields, iter_record_blocks, unfold
from .models import UNTITLED_EVENT, CalendarRecord, RecordBlock
from .text_decoder import decode_entities, decode_text
from .timestamps import format_ical_datetime


logger = logging.getLogger(__name__)

DAY_MS = 24 * 60 * 60 * 1000

# Also strips legitimate numbers ("Chapter 7"); kept for id compatibility.
_TRAILING_NUMBER = re.compile(r"\s+\d+$")


def clean_title(raw: t.Optional[str]) -> str:
    """Decode a SUMMARY value and trim any trailing numeric suffix."""
    if raw is None:
        return UNTITLED_EVENT
    title = decode_text(decode_entities(unfold(raw).strip()))
    title = _TRAILING_NUMBER.sub("", title).strip()
    return title or UNTITLED_EVENT


def _decode_optional(raw: t.Optional[str], entities: bool = False) -> t.Optional[str]:
    if raw is None:
        return None
    text = unfold(raw).strip()
    if entities:
        text = decode_entities(text)
    return decode_text(text)


def parse_record(block: RecordBlock, rules: t.Optional[ClassifierRules] = None) -> CalendarRecord:
    """Build one record from a record block.

    :param block: The record block.
    :param rules: Classifier rules; defaults to the package rule set.
    :return: An immutable record.
    """
    fields = extract_fields(block)
    title = clean_title(fields.summary)
    description = _decode_optional(fields.description, entities=True)
    classification = classify(title, rules)
    due = resolve_due(fields, classification)

    return CalendarRecord(
        title=title,
        kind=block.kind,
        description=description,
        location=_decode_optional(fields.location),
        start_raw=fields.start_raw,
        start_time=format_ical_datetime(fields.start_raw),
        due_raw=due.due_raw,
        due_time=due.due_time,
        end_raw=fields.end_raw,
        end_time=format_ical_datetime(fields.end_raw),
        completed_raw=fields.completed_raw,
        completed_time=format_ical_datetime(fields.completed_raw),
        uid=fields.uid or None,
        status=fields.status,
        priority=fields.priority,
        percent_complete=fields.percent_complete,
        recurrence_rule=fields.recurrence_rule,
        organizer=fields.organizer,
        attendees=tuple(fields.attendees),
        is_assignment=classification.is_assignment,
        is_major=is_major_assignment(title, description, rules),
        extracted_time_hint=classification.extracted_time_hint,
        used_fallback_due_date=due.used_fallback,
    )


def parse_feed(feed_text: str, rules: t.Optional[ClassifierRules] = None) -> list[CalendarRecord]:
    """Parse calendar feed text into records, in order of appearance.

    A feed without any record blocks (including an empty string) yields an
    empty list.

    :param feed_text: Raw iCalendar text.
    :param rules: Classifier rules; defaults to the package rule set.
    :return: The parsed records.
    """
    records = [parse_record(block, rules) for block in iter_record_blocks(feed_text or "")]
    logger.debug(
        "Parsed %d record(s), %d assignment(s)",
        len(records), sum(1 for r in records if r.is_assignment),
    )
    return records


def sort_by_due(records: t.Iterable[CalendarRecord]) -> list[CalendarRecord]:
    """Records ordered by due moment; unknown due moments (0) sort first."""
    return sorted(records, key=lambda r: r.due_timestamp)


def upcoming_major_assignments(
        records: t.Iterable[CalendarRecord],
        now: int,
        window_days: float = 14,
        completed_ids: t.Container[str] = (),
) -> list[CalendarRecord]:
    """Major assignments due between ``now`` and ``now + window_days``, soonest first.

    Records with an unknown due moment are never "due soon".

    :param records: Parsed records.
    :param now: Current time in epoch milliseconds.
    :param window_days: Size of the look-ahead window.
    :param completed_ids: Identities to leave out.
    :return: Matching records sorted by due moment.
    """
    horizon = now + int(window_days * DAY_MS)
    majors = [
        r for r in records
        if r.is_major
        and r.identity not in completed_ids
        and r.due_timestamp
        and now <= r.due_timestamp <= horizon
    ]
    return sort_by_due(majors)
