# -*- coding: utf-8 -*-
from calendar_feed.classifier import DEFAULT_RULES, ClassifierRules, classify, is_major_assignment, load_rules
from calendar_feed.fetch import FeedFetchError, FeedRefresher, fetch_and_parse, normalize_feed_url
from calendar_feed.models import CalendarRecord
from calendar_feed.parser import parse_feed, sort_by_due, upcoming_major_assignments
from calendar_feed.timestamps import ical_to_timestamp, now_ms

__all__ = [
    "CalendarRecord",
    "ClassifierRules",
    "DEFAULT_RULES",
    "FeedFetchError",
    "FeedRefresher",
    "classify",
    "fetch_and_parse",
    "ical_to_timestamp",
    "is_major_assignment",
    "load_rules",
    "normalize_feed_url",
    "now_ms",
    "parse_feed",
    "sort_by_due",
    "upcoming_major_assignments",
]
