"""Data types shared by the reminder engine."""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum

from .timestamp import RecurringTimestamp


class PersistenceUnavailable(Exception):
    """The run-state store, timer service or marker source cannot be reached."""


class TimeType(Enum):
    """Which kind of note time a marker is."""
    SCHEDULED = 1
    DEADLINE = 2
    EVENT = 3

    @classmethod
    def from_value(cls, value) -> "TimeType":
        """Accept the stored integer code or the (case-insensitive) name."""
        if isinstance(value, cls):
            return value
        if isinstance(value, str) and not value.isdigit():
            return cls[value.strip().upper()]
        return cls(int(value))


@dataclass(frozen=True)
class TimeMarker:
    """One date/time attached to a note, as read from the marker source."""
    note_id: int
    container_id: int
    container_name: str
    title: str
    time_type: TimeType
    raw_expression: str

    @classmethod
    def from_row(cls, row: dict) -> "TimeMarker":
        """Build a marker from a ``note_times`` row."""
        return cls(
            note_id=int(row["note_id"]),
            container_id=int(row.get("book_id") or 0),
            container_name=row.get("book_name") or "",
            title=row.get("title") or "",
            time_type=TimeType.from_value(row["time_type"]),
            raw_expression=row["timestamp"],
        )


@dataclass(frozen=True)
class ReminderPayload:
    """Everything needed to show a reminder without re-reading the source."""
    note_id: int
    container_id: int
    container_name: str
    title: str
    time_type: TimeType
    timestamp: RecurringTimestamp

    @classmethod
    def from_marker(cls, marker: TimeMarker, timestamp: RecurringTimestamp) -> "ReminderPayload":
        return cls(
            note_id=marker.note_id,
            container_id=marker.container_id,
            container_name=marker.container_name,
            title=marker.title,
            time_type=marker.time_type,
            timestamp=timestamp,
        )


@dataclass(frozen=True)
class Reminder:
    """A payload due at ``fire_at``."""
    fire_at: datetime
    payload: ReminderPayload

    @property
    def sort_key(self) -> tuple:
        return (self.fire_at, self.payload.note_id)


@dataclass(frozen=True)
class SnoozeRequest:
    """A snoozed marker to show again at ``resume_at``."""
    note_id: int
    time_type: TimeType
    resume_at: datetime


def sort_reminders(reminders: list[Reminder]) -> list[Reminder]:
    """Order by fire time, ties broken by note id."""
    return sorted(reminders, key=lambda r: r.sort_key)
