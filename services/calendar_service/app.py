"""
FastAPI service for calendar feed parsing and reminder computation.

This service exposes the calendar_feed parser and the pure reminder pass as
REST API endpoints. Parsing and reminder computation are fast; fetching a
feed depends on the upstream calendar provider.
"""
from __future__ import annotations

import os
from contextlib import asynccontextmanager

from fastapi import FastAPI, HTTPException

from calendar_feed.fetch import FeedFetchError, fetch_and_parse
from calendar_feed.parser import parse_feed
from calendar_feed.timestamps import now_ms
from reminder_scheduler.scheduler import compute_reminders
from services.shared.models import (
    CalendarRecord as PydanticCalendarRecord,
    ComputeRemindersRequest,
    ComputeRemindersResponse,
    FetchFeedRequest,
    ParseFeedRequest,
    ParseFeedResponse,
    ReminderEntry as PydanticReminderEntry,
)


CALENDAR_SERVICE_PORT = int(os.getenv("CALENDAR_SERVICE_PORT", "8004"))


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Initialize resources on startup and cleanup on shutdown."""
    # No special initialization needed for the calendar service
    yield


app = FastAPI(
    title="Calendar Service",
    description="REST API for calendar feed parsing and assignment reminders",
    version="1.0.0",
    lifespan=lifespan,
)


def _parse_response(records) -> ParseFeedResponse:
    return ParseFeedResponse(
        records=[PydanticCalendarRecord.from_record(r) for r in records],
        assignment_count=sum(1 for r in records if r.is_assignment),
    )


@app.get("/health")
async def health_check():
    """Health check endpoint for container orchestration."""
    return {"status": "healthy", "service": "calendar-service"}


@app.post("/feed:parse", response_model=ParseFeedResponse)
async def parse_calendar_feed(request: ParseFeedRequest) -> ParseFeedResponse:
    """
    Parse raw iCalendar text into records.

    Malformed fragments never fail the request; an empty feed yields no records.
    """
    return _parse_response(parse_feed(request.feed_text))


@app.post("/feed:fetch", response_model=ParseFeedResponse)
async def fetch_calendar_feed(request: FetchFeedRequest) -> ParseFeedResponse:
    """
    Fetch a feed URL (webcal links are rewritten to https) and parse it.

    Upstream failures are reported as 502.
    """
    try:
        records = await fetch_and_parse(request.url)
    except FeedFetchError as e:
        raise HTTPException(status_code=502, detail=f"Could not refresh calendar: {e}")
    return _parse_response(records)


@app.post("/reminders:compute", response_model=ComputeRemindersResponse)
async def compute_assignment_reminders(request: ComputeRemindersRequest) -> ComputeRemindersResponse:
    """
    Run one reminder pass over the supplied records and reminder state.

    The caller owns persistence: it should store the returned entries and
    history additions before the next call.
    """
    computation = compute_reminders(
        [r.to_record() for r in request.records],
        completed_ids=set(request.completed_ids),
        settings=request.settings.to_settings(),
        persisted_reminders={k: v.to_entry() for k, v in request.persisted_reminders.items()},
        persisted_history=set(request.persisted_history),
        now=request.now if request.now is not None else now_ms(),
    )
    return ComputeRemindersResponse(
        to_fire_now=[PydanticReminderEntry.from_entry(e) for e in computation.to_fire_now],
        to_schedule_future=[PydanticReminderEntry.from_entry(e) for e in computation.to_schedule_future],
        history_additions=sorted(computation.history_additions),
    )


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=CALENDAR_SERVICE_PORT)
