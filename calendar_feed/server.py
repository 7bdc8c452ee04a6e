# -*- coding: utf-8 -*-
from __future__ import annotations

from fastmcp import FastMCP

from calendar_feed.fetch import fetch_and_parse
from calendar_feed.models import CalendarRecord
from calendar_feed.parser import parse_feed, sort_by_due


mcp = FastMCP("CalendarFeedServer")


def _parse_calendar_feed(feed_text: str) -> list[CalendarRecord]:
    return parse_feed(feed_text)


async def _fetch_calendar_feed(url: str) -> list[CalendarRecord]:
    return await fetch_and_parse(url)


def format_assignments(records: list[CalendarRecord], include_events: bool = False) -> str:
    """Formats records as a clean table, soonest due first.

    :param records: Parsed calendar records.
    :param include_events: Also list records that aren't assignments.
    :return: Formatted table string.
    """
    shown = [r for r in sort_by_due(records) if include_events or r.is_assignment]
    if not shown:
        return "📚 No assignments found."

    lines = []
    lines.append("📚 ASSIGNMENTS")
    lines.append("=" * 100)
    lines.append(f"{'#':<4} {'Title':<45} {'Due':<24} {'Major':<6} {'Location':<18}")
    lines.append("-" * 100)

    for idx, record in enumerate(shown, 1):
        title = record.title[:44] if len(record.title) > 44 else record.title
        due = record.due_time or record.start_time or "—"
        location = record.location[:17] if record.location and len(record.location) > 17 else (record.location or "—")
        lines.append(
            f"{idx:<4} {title:<45} {due:<24} {'yes' if record.is_major else '':<6} {location:<18}"
        )

    lines.append("=" * 100)
    lines.append(f"Total: {len(shown)} item(s)")
    return "\n".join(lines)


@mcp.tool()
def parse_calendar_feed(feed_text: str) -> list[CalendarRecord]:
    """Parse iCalendar feed text into calendar records.

    Records keep the order they appear in the feed. Each one carries
    ``is_assignment`` and a resolved ``due_raw`` when one could be derived.

    :param feed_text: Raw .ics content.
    :return: The parsed records.
    """
    return _parse_calendar_feed(feed_text)


@mcp.tool()
async def fetch_calendar_feed(url: str) -> list[CalendarRecord]:
    """Fetch a calendar feed (http, https, webcal) and parse it.

    :param url: Feed URL.
    :return: The parsed records.
    """
    return await _fetch_calendar_feed(url)


@mcp.tool()
def show_assignments(records: list[CalendarRecord], include_events: bool = False) -> str:
    """Displays parsed records as a table sorted by due date.

    :param records: Records returned by parse_calendar_feed or fetch_calendar_feed.
    :param include_events: Also list plain events.
    :return: Formatted table string.
    """
    return format_assignments(records, include_events)


if __name__ == "__main__":
    # Run as an MCP server over stdio
    mcp.run()
