"""Resolve the occurrences of one marker inside a time window."""

from datetime import datetime, time, timedelta
from typing import Optional

from .models import TimeMarker, TimeType
from .timestamp import RecurringTimestamp, at_time_of_day, next_occurrence_on_or_after, parse

# Smallest step past a found occurrence; datetimes have microsecond resolution
_PAST = timedelta(microseconds=1)


def is_enabled(marker: TimeMarker, enabled_types: set[TimeType]) -> bool:
    """Whether reminders are turned on for this marker's time type."""
    return marker.time_type in enabled_types


def resolve(
    marker: TimeMarker,
    window_from: datetime,
    window_to: Optional[datetime],
    enabled_types: set[TimeType],
    timestamp: Optional[RecurringTimestamp] = None,
    default_time: Optional[time] = None,
    limit: int = 0,
) -> list[datetime]:
    """Occurrences of a marker in the half-open window [window_from, window_to).

    Args:
        marker: The note time marker
        window_from: Inclusive start
        window_to: Exclusive end, or None for an open-ended window
        enabled_types: Time types with reminders turned on
        timestamp: Already parsed ``marker.raw_expression`` (parsed here if omitted)
        default_time: Time of day at which all-day timestamps fire
        limit: Stop after this many occurrences (0 = no limit)

    Returns:
        Occurrences in ascending order

    Raises:
        ParseError: if the marker's expression is malformed
    """
    if not is_enabled(marker, enabled_types):
        return []

    if timestamp is None:
        timestamp = parse(marker.raw_expression)
    effective = at_time_of_day(timestamp, default_time)

    if window_to is not None and window_to <= window_from:
        return []
    if window_to is None and not limit:
        limit = 1  # an open-ended repeater never runs out

    occurrences = []
    bound = window_from
    while True:
        occurrence = next_occurrence_on_or_after(effective, bound)
        if occurrence is None:
            break
        if window_to is not None and occurrence >= window_to:
            break
        occurrences.append(occurrence)
        if limit and len(occurrences) >= limit:
            break
        bound = occurrence + _PAST

    return occurrences
