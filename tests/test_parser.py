# -*- coding: utf-8 -*-
"""Tests for the calendar feed parser and due-date resolution."""
from calendar_feed.classifier import classify
from calendar_feed.due_resolver import resolve_due
from calendar_feed.models import CalendarRecord, ExtractedFields
from calendar_feed.parser import clean_title, parse_feed, sort_by_due, upcoming_major_assignments
from calendar_feed.timestamps import ical_to_timestamp


def make_feed(*blocks: str) -> str:
    """Wrap record blocks in a VCALENDAR."""
    return "\r\n".join(["BEGIN:VCALENDAR", "VERSION:2.0", *blocks, "END:VCALENDAR", ""])


def event(*lines: str, kind: str = "VEVENT") -> str:
    return "\r\n".join([f"BEGIN:{kind}", *lines, f"END:{kind}"])


def test_biology_lab_report_due_from_title_time():
    """Class-prefixed title with an inline time and no DUE."""
    feed = make_feed(event(
        "SUMMARY:ADV. BIOLOGY - B: Lab Report due 11:59 p.m.",
        "DTSTART:20240510",
    ))
    [record] = parse_feed(feed)

    assert record.title == "ADV. BIOLOGY - B: Lab Report due 11:59 p.m."
    assert record.is_assignment
    assert record.extracted_time_hint == "11:59 p.m."
    assert record.due_raw == "20240510T235900"
    assert record.due_time == "May 10, 2024 11:59 PM"
    assert record.used_fallback_due_date
    assert record.start_time == "2024-05-10"


def test_explicit_due_is_not_a_fallback():
    feed = make_feed(event(
        "SUMMARY:Research paper draft due 9am",
        "DTSTART:20240520",
        "DUE:20240601T120000Z",
        kind="VTODO",
    ))
    [record] = parse_feed(feed)

    assert record.kind == "VTODO"
    assert record.due_raw == "20240601T120000Z"
    assert not record.used_fallback_due_date
    assert record.is_major


def test_assignment_without_time_falls_back_to_start():
    [record] = parse_feed(make_feed(event("SUMMARY:Read chapter 4", "DTSTART;VALUE=DATE:20240512")))

    assert record.due_raw == "20240512"
    assert record.due_time == "2024-05-12"
    assert record.used_fallback_due_date


def test_plain_event_has_no_due():
    [record] = parse_feed(make_feed(event("SUMMARY:Soccer practice", "DTSTART:20240512T160000Z")))

    assert not record.is_assignment
    assert record.due_raw is None
    assert not record.used_fallback_due_date
    assert record.identity == "Soccer practice_20240512T160000Z"


def test_empty_feed():
    assert parse_feed("") == []
    assert parse_feed(make_feed()) == []


def test_records_keep_feed_order_and_decode_text():
    feed = make_feed(
        event(
            "UID:one",
            "SUMMARY:Tom &amp; Jerry\\, reading quiz",
            "DESCRIPTION:Pages 1&ndash;10\\n<b>closed book</b> &amp; timed",
            "LOCATION:Room 101\\, Main",
            "ORGANIZER;CN=Ms. Smith:mailto:smith@school.edu",
            "DTSTART:20240513",
        ),
        event("UID:two", "SUMMARY:Staff meeting"),
        event("DESCRIPTION:no summary here"),
    )
    records = parse_feed(feed)

    assert [r.uid for r in records] == ["one", "two", None]
    first = records[0]
    assert first.title == "Tom & Jerry, reading quiz"
    assert first.description == "Pages 1–10\nclosed book & timed"
    assert first.location == "Room 101, Main"
    assert first.organizer == "smith@school.edu"
    assert first.identity == "one"
    assert records[2].title == "Untitled Event"


def test_folded_summary_is_unfolded():
    feed = "BEGIN:VEVENT\r\nSUMMARY:Lab write\r\n -up for chemistry\r\nDTSTART:20240510\r\nEND:VEVENT\r\n"
    [record] = parse_feed(feed)
    assert record.title == "Lab write-up for chemistry"


def test_clean_title_trims_trailing_number():
    assert clean_title("Final Exam   3") == "Final Exam"
    assert clean_title("Quiz") == "Quiz"
    assert clean_title("   ") == "Untitled Event"
    assert clean_title(None) == "Untitled Event"


def test_resolve_due_prefers_explicit_due():
    fields = ExtractedFields(summary="Quiz 8am", start_raw="20240510", due_raw="20240511")
    resolution = resolve_due(fields, classify("Quiz 8am"))

    assert resolution.due_raw == "20240511"
    assert not resolution.used_fallback


def test_resolve_due_with_unreadable_hint_uses_start_date():
    fields = ExtractedFields(summary="Quiz", start_raw="20240510")
    resolution = resolve_due(fields, classify("Quiz 13pm"))

    assert resolution.due_raw == "20240510"
    assert resolution.used_fallback


def test_sort_and_upcoming_major_assignments():
    now = ical_to_timestamp("20240501T000000Z")
    records = [
        CalendarRecord(title="Final exam", uid="a", due_raw="20240510T120000Z", is_assignment=True, is_major=True),
        CalendarRecord(title="Midterm", uid="b", due_raw="20240503T120000Z", is_assignment=True, is_major=True),
        CalendarRecord(title="Old exam", uid="c", due_raw="20240420T120000Z", is_assignment=True, is_major=True),
        CalendarRecord(title="Far project", uid="d", due_raw="20240701T120000Z", is_assignment=True, is_major=True),
        CalendarRecord(title="Homework", uid="e", due_raw="20240502T120000Z", is_assignment=True),
        CalendarRecord(title="No date exam", uid="f", is_assignment=True, is_major=True),
    ]

    assert [r.uid for r in upcoming_major_assignments(records, now)] == ["b", "a"]
    assert [r.uid for r in upcoming_major_assignments(records, now, completed_ids={"b"})] == ["a"]
    assert [r.uid for r in sort_by_due(records)][:2] == ["f", "c"]
