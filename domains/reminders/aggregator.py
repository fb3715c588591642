"""Merge occurrences from all note markers into one ordered reminder list."""

from datetime import datetime, time
from enum import Enum
from typing import Callable, Optional

from .models import Reminder, ReminderPayload, TimeMarker, TimeType, sort_reminders
from .resolver import is_enabled, resolve
from .timestamp import ParseError, parse

SkipCallback = Callable[[TimeMarker, ParseError], None]


class IntervalMode(Enum):
    """Which window the aggregate covers."""
    CATCH_UP = "catch_up"      # [last run, now)
    LOOK_AHEAD = "look_ahead"  # [now, ...) - nearest occurrence per marker


def interval_for(
    mode: IntervalMode,
    now: datetime,
    last_run: Optional[datetime]
) -> Optional[tuple[datetime, Optional[datetime]]]:
    """Window for a mode, or None when there is nothing to look at.

    Catch-up needs a previous run: a fresh install never back-fires old reminders.
    """
    if mode is IntervalMode.CATCH_UP:
        if last_run is None:
            return None
        return last_run, now
    return now, None


def collect(
    markers: list[TimeMarker],
    mode: IntervalMode,
    now: datetime,
    last_run: Optional[datetime],
    enabled_types: set[TimeType],
    default_time: Optional[time] = None,
    on_skip: Optional[SkipCallback] = None,
) -> list[Reminder]:
    """Collect reminders across all markers for the given mode.

    Args:
        markers: Snapshot of all note time markers
        mode: CATCH_UP or LOOK_AHEAD
        now: Current instant
        last_run: End of the previous completed cycle (None on first run)
        enabled_types: Time types with reminders turned on
        default_time: Time of day at which all-day timestamps fire
        on_skip: Called with (marker, error) for markers that fail to parse

    Returns:
        Reminders sorted by fire time, then note id
    """
    window = interval_for(mode, now, last_run)
    if window is None:
        return []
    window_from, window_to = window
    limit = 1 if mode is IntervalMode.LOOK_AHEAD else 0

    reminders = []
    for marker in markers:
        if not is_enabled(marker, enabled_types):
            continue

        try:
            timestamp = parse(marker.raw_expression)
        except ParseError as e:
            if on_skip:
                on_skip(marker, e)
            continue

        payload = ReminderPayload.from_marker(marker, timestamp)
        for occurrence in resolve(
            marker, window_from, window_to, enabled_types,
            timestamp=timestamp, default_time=default_time, limit=limit,
        ):
            reminders.append(Reminder(fire_at=occurrence, payload=payload))

    return sort_reminders(reminders)
