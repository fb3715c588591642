"""Rebuild reminders for a snoozed marker at the instant the snooze ends."""

from datetime import datetime
from typing import Optional

from .aggregator import SkipCallback
from .models import Reminder, ReminderPayload, TimeMarker, TimeType
from .resolver import is_enabled
from .timestamp import ParseError, parse


def resume(
    note_id: int,
    time_type: TimeType,
    resume_at: datetime,
    markers: list[TimeMarker],
    enabled_types: set[TimeType],
    on_skip: Optional[SkipCallback] = None,
) -> list[Reminder]:
    """Reminders for every marker matching (note_id, time_type), due at ``resume_at``.

    The fire time is the snooze target itself, not an occurrence of the
    marker's repeater. A type disabled since snoozing yields nothing.
    """
    reminders = []
    for marker in markers:
        if marker.note_id != note_id or marker.time_type != time_type:
            continue
        if not is_enabled(marker, enabled_types):
            continue

        try:
            timestamp = parse(marker.raw_expression)
        except ParseError as e:
            if on_skip:
                on_skip(marker, e)
            continue

        payload = ReminderPayload.from_marker(marker, timestamp)
        reminders.append(Reminder(fire_at=resume_at, payload=payload))

    return reminders
