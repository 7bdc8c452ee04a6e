# -*- coding: utf-8 -*-
"""
Due-date resolution.

Each strategy looks at the extracted fields and the classification and either
returns a :class:`DueResolution` or ``None`` ("no opinion"). Strategies are
tried in the order of :data:`DUE_STRATEGIES`; the first opinion wins.
"""
from __future__ import annotations

import typing as t

from .models import Classification, DueResolution, ExtractedFields
from .timestamps import combine_date_and_time, date_portion, format_ical_datetime, parse_time_hint


DueStrategy = t.Callable[[ExtractedFields, Classification], t.Optional[DueResolution]]


def explicit_due(fields: ExtractedFields, classification: Classification) -> t.Optional[DueResolution]:
    """An explicit DUE/DTDUE property is used as-is."""
    if not fields.due_raw:
        return None
    return DueResolution(
        due_raw=fields.due_raw,
        due_time=format_ical_datetime(fields.due_raw),
        used_fallback=False,
    )


def start_with_time_hint(fields: ExtractedFields, classification: Classification) -> t.Optional[DueResolution]:
    """Assignment start date combined with the clock time found in its title."""
    if not (classification.is_assignment and fields.start_raw and classification.extracted_time_hint):
        return None

    date_str = date_portion(fields.start_raw)
    clock = parse_time_hint(classification.extracted_time_hint)
    if date_str is None or clock is None:
        return None

    due_raw = combine_date_and_time(date_str, *clock)
    return DueResolution(
        due_raw=due_raw,
        due_time=format_ical_datetime(due_raw),
        used_fallback=True,
    )


def start_date_fallback(fields: ExtractedFields, classification: Classification) -> t.Optional[DueResolution]:
    """Assignment with no usable time: due when it starts."""
    if not (classification.is_assignment and fields.start_raw):
        return None
    return DueResolution(
        due_raw=fields.start_raw,
        due_time=format_ical_datetime(fields.start_raw),
        used_fallback=True,
    )


DUE_STRATEGIES: tuple[DueStrategy, ...] = (
    explicit_due,
    start_with_time_hint,
    start_date_fallback,
)


def resolve_due(
        fields: ExtractedFields,
        classification: Classification,
        strategies: t.Sequence[DueStrategy] = DUE_STRATEGIES,
) -> DueResolution:
    """Run the strategies in order and return the first resolution.

    :param fields: Extracted (undecoded) record fields.
    :param classification: Classifier output for the record's title.
    :param strategies: Resolution strategies, highest precedence first.
    :return: The resolution; empty when no strategy had an opinion.
    """
    for strategy in strategies:
        resolution = strategy(fields, classification)
        if resolution is not None:
            return resolution
    return DueResolution()
