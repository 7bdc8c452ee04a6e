# -*- coding: utf-8 -*-
"""
Retrieval of calendar feeds over HTTP.

Fetching is the only suspending step of a refresh. Every failure (timeout,
transport error, non-2xx status) is surfaced as a single FeedFetchError;
nothing here retries.
"""
from __future__ import annotations

import asyncio
import logging
import os
import typing as t
from pathlib import Path

import httpx

from .classifier import ClassifierRules
from .models import CalendarRecord
from .parser import parse_feed


logger = logging.getLogger(__name__)

# Timeout settings for feed downloads (in seconds)
FEED_FETCH_TIMEOUT = float(os.getenv("CALENDAR_FEED_TIMEOUT", "30.0"))

_SCHEME_REWRITES = (
    ("webcal://", "https://"),
    ("webcals://", "https://"),
)


class FeedFetchError(RuntimeError):
    """The calendar feed could not be retrieved."""


def normalize_feed_url(url: str) -> str:
    """Rewrite ``webcal://`` and ``webcals://`` subscription links to ``https://``."""
    url = url.strip()
    for prefix, replacement in _SCHEME_REWRITES:
        if url.lower().startswith(prefix):
            return replacement + url[len(prefix):]
    return url


def _is_url(path_or_url: str) -> bool:
    lowered = path_or_url.lower()
    return lowered.startswith(("http://", "https://", "webcal://", "webcals://"))


async def fetch_feed_text(
        url: str,
        timeout: float = FEED_FETCH_TIMEOUT,
        client: t.Optional[httpx.AsyncClient] = None,
) -> str:
    """Download a calendar feed.

    :param url: Feed URL; webcal schemes are accepted.
    :param timeout: Request timeout in seconds.
    :param client: Optional client to reuse (its own timeout applies).
    :return: The response body.
    :raises FeedFetchError: On timeout, transport failure or a non-2xx status.
    """
    fetch_url = normalize_feed_url(url)
    try:
        if client is None:
            async with httpx.AsyncClient(timeout=timeout, follow_redirects=True) as own_client:
                response = await own_client.get(fetch_url)
        else:
            response = await client.get(fetch_url)
        response.raise_for_status()
    except httpx.TimeoutException:
        raise FeedFetchError(f"Failed to fetch calendar feed: timed out after {timeout} seconds")
    except httpx.HTTPStatusError as e:
        raise FeedFetchError(
            f"Failed to fetch calendar feed: HTTP error {e.response.status_code} from {fetch_url}"
        )
    except httpx.HTTPError as e:
        raise FeedFetchError(f"Failed to fetch calendar feed: {e}")

    logger.debug("Fetched %d bytes from %s", len(response.content), fetch_url)
    return response.text


async def fetch_and_parse(
        url: str,
        timeout: float = FEED_FETCH_TIMEOUT,
        client: t.Optional[httpx.AsyncClient] = None,
        rules: t.Optional[ClassifierRules] = None,
) -> list[CalendarRecord]:
    """Fetch a feed and parse it into records."""
    return parse_feed(await fetch_feed_text(url, timeout=timeout, client=client), rules)


def load_feed_source(path_or_url: str, timeout: float = FEED_FETCH_TIMEOUT) -> str:
    """
    Loads calendar feed text from a local path or a URL.

    :param path_or_url: A local .ics file path or a feed URL.
    :param timeout: Request timeout in seconds for URLs.
    :return: The feed text.
    :raises FeedFetchError: If the URL can't be fetched.
    :raises FileNotFoundError: If the local file doesn't exist.
    """
    if _is_url(path_or_url):
        return asyncio.run(fetch_feed_text(path_or_url, timeout=timeout))

    path = Path(path_or_url)
    if not path.is_file():
        raise FileNotFoundError(f"File not found: {path}")
    return path.read_text(encoding="utf-8", errors="replace")


class FeedRefresher:
    """Keeps at most one refresh per feed URL in flight.

    A ``refresh`` of the URL that is already being fetched awaits the pending
    request instead of issuing a second one. A refresh of a different URL
    supersedes it: both callers get their own records, but only the newest
    URL's result replaces the record list, wholesale.
    """

    def __init__(
            self,
            timeout: float = FEED_FETCH_TIMEOUT,
            client: t.Optional[httpx.AsyncClient] = None,
            rules: t.Optional[ClassifierRules] = None,
    ) -> None:
        self.timeout = timeout
        self.client = client
        self.rules = rules
        self.records: list[CalendarRecord] = []
        self._pending: t.Optional[asyncio.Task[list[CalendarRecord]]] = None
        self._pending_url: t.Optional[str] = None

    async def _run(self, url: str) -> list[CalendarRecord]:
        records = await fetch_and_parse(url, timeout=self.timeout, client=self.client, rules=self.rules)
        if url == self._pending_url:
            self.records = records
            logger.info("Calendar refreshed: %d record(s)", len(records))
        return records

    async def refresh(self, url: str) -> list[CalendarRecord]:
        """Refresh from ``url``, joining a refresh of the same URL that is already running."""
        url = normalize_feed_url(url)
        if self._pending is None or self._pending.done() or url != self._pending_url:
            self._pending_url = url
            self._pending = asyncio.ensure_future(self._run(url))
        return await asyncio.shield(self._pending)
