# -*- coding: utf-8 -*-
"""
Line tokenizer for calendar feeds.

Scans raw feed text for record blocks, joins folded continuation lines back
into logical property lines and maps the properties this package cares about
onto :class:`ExtractedFields`.
"""
from __future__ import annotations

import logging
import re
import typing as t

from .models import ExtractedFields, Property, RecordBlock


logger = logging.getLogger(__name__)

RECORD_KINDS = ("VEVENT", "VTODO")

_FOLD = re.compile(r"\r?\n[ \t]")
_LINE_BREAK = re.compile(r"\r?\n")
_PROPERTY_START = re.compile(r"^[A-Z-]+[:;]")
_COMPONENT_MARKER = re.compile(r"^(BEGIN|END):[A-Z-]+$", re.IGNORECASE)
_MAILTO = re.compile(r"mailto:(.+?)(?:$|[\s;])", re.IGNORECASE)
_LEADING_INT = re.compile(r"[+-]?\d+")


def unfold(text: str) -> str:
    """Remove line folds (a line break followed by one space or tab).

    The fold is deleted, not replaced by a space. Applying it to text that
    is already unfolded changes nothing.
    """
    return _FOLD.sub("", text)


def iter_record_blocks(feed_text: str) -> t.Iterator[RecordBlock]:
    """Yield the record blocks of a feed in source order.

    Lines belonging to components nested inside a record (``VALARM`` and the
    like) are skipped. A block that is still open at the end of the input is
    dropped.

    :param feed_text: Raw calendar feed text.
    """
    kind: t.Optional[str] = None
    depth = 0
    lines: list[str] = []

    # Only CRLF and LF end a line; other Unicode separators belong to the value
    for line in _LINE_BREAK.split(feed_text):
        is_marker = line[:1] not in (" ", "\t") and _COMPONENT_MARKER.match(line.strip())
        marker = line.strip().upper() if is_marker else ""

        if kind is None:
            for candidate in RECORD_KINDS:
                if marker == f"BEGIN:{candidate}":
                    kind, depth, lines = candidate, 0, []
                    break
            continue

        if marker.startswith("BEGIN:"):
            depth += 1
            continue
        if marker.startswith("END:"):
            if depth == 0:
                if marker == f"END:{kind}":
                    yield RecordBlock(kind=kind, lines=tuple(lines))  # type: ignore[arg-type]
                else:
                    logger.debug("Mismatched %s inside %s block, dropping it", marker, kind)
                kind = None
            else:
                depth -= 1
            continue
        if depth == 0:
            lines.append(line)

    if kind is not None:
        logger.debug("Unterminated %s block at end of feed, dropping it", kind)


def logical_lines(lines: t.Iterable[str]) -> list[str]:
    """Join physical lines into one string per property.

    A line starting with a space or tab continues the previous value (its
    first character is the fold and is dropped). A line that starts with a
    property name begins a new property. Anything else is a stray line of the
    current value and is kept behind a newline.
    """
    result: list[str] = []
    for line in lines:
        line = line.rstrip("\r")
        if line[:1] in (" ", "\t") and result:
            result[-1] += line[1:]
        elif _PROPERTY_START.match(line) or not result:
            result.append(line)
        else:
            result[-1] += "\n" + line
    return result


def _split_params(head: str) -> tuple[str, dict[str, str]]:
    """Split ``NAME;K=V;K2="a;b"`` into the name and a parameter dict."""
    parts: list[str] = []
    current = []
    quoted = False
    for ch in head:
        if ch == '"':
            quoted = not quoted
        if ch == ";" and not quoted:
            parts.append("".join(current))
            current = []
        else:
            current.append(ch)
    parts.append("".join(current))

    params: dict[str, str] = {}
    for part in parts[1:]:
        key, _, value = part.partition("=")
        if key:
            params[key.upper()] = value.strip('"')
    return parts[0].upper(), params


def parse_property_line(line: str) -> t.Optional[Property]:
    """Parse one logical content line into a :class:`Property`.

    :param line: ``NAME[;PARAMS]:value``.
    :return: The property, or None if the line has no unquoted colon.
    """
    quoted = False
    for index, ch in enumerate(line):
        if ch == '"':
            quoted = not quoted
        elif ch == ":" and not quoted:
            name, params = _split_params(line[:index])
            return Property(name=name, value=line[index + 1:], params=params)
    return None


def extract_email(value: str) -> str:
    """Reduce an organizer/attendee value to its ``mailto:`` address, if it has one."""
    match = _MAILTO.search(value)
    return match.group(1) if match else value


def _parse_int(value: str) -> t.Optional[int]:
    match = _LEADING_INT.match(value.strip())
    return int(match.group(0)) if match else None


# Single-valued properties: property name -> ExtractedFields attribute
_TEXT_FIELDS: dict[str, str] = {
    "SUMMARY": "summary",
    "DESCRIPTION": "description",
    "LOCATION": "location",
    "DTSTART": "start_raw",
    "DUE": "due_raw",
    "DTDUE": "due_raw",
    "DTEND": "end_raw",
    "COMPLETED": "completed_raw",
    "UID": "uid",
    "STATUS": "status",
    "RRULE": "recurrence_rule",
}

# Values that keep their inner text untouched (decoded later by the parser)
_FREE_TEXT = {"SUMMARY", "DESCRIPTION", "LOCATION"}


def extract_fields(block: RecordBlock) -> ExtractedFields:
    """Pull the known properties out of one record block.

    The first occurrence of a single-valued property wins; ``ATTENDEE`` is
    collected in order. Missing properties stay None.

    :param block: A record block from :func:`iter_record_blocks`.
    :return: Undecoded field values.
    """
    fields = ExtractedFields()

    for line in logical_lines(block.lines):
        prop = parse_property_line(line)
        if prop is None:
            logger.debug("Skipping malformed content line: %r", line[:60])
            continue

        value = prop.value if prop.name in _FREE_TEXT else prop.value.strip()
        attr = _TEXT_FIELDS.get(prop.name)
        if attr is not None:
            if getattr(fields, attr) is None:
                setattr(fields, attr, value)
        elif prop.name == "PRIORITY" and fields.priority is None:
            fields.priority = _parse_int(value)
        elif prop.name == "PERCENT-COMPLETE" and fields.percent_complete is None:
            fields.percent_complete = _parse_int(value)
        elif prop.name == "ORGANIZER" and fields.organizer is None:
            fields.organizer = extract_email(value)
        elif prop.name == "ATTENDEE":
            fields.attendees.append(extract_email(value))

    return fields
